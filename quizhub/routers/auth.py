# quizhub/routers/auth.py

from fastapi import APIRouter, Depends

from quizhub.core.config import settings
from quizhub.core.dependencies import get_current_session, get_identity_provider, get_reconciler
from quizhub.core.response import success
from quizhub.core.security import ACCESS_TOKEN_COOKIE, close_session, open_session
from quizhub.db.database import get_store
from quizhub.db.store import DocumentStore
from quizhub.logging import get_logger, LogSection, LogSubsection
from quizhub.schemas.auth_schemas import LoginRequest, SessionResponse, SignupRequest
from quizhub.services.identity import ProfileReconciler, SessionContext
from quizhub.services.identity_provider import LocalIdentityProvider

router = APIRouter()
logger = get_logger(__name__)


def _session_response(token: str, session: SessionContext, message: str):
    payload = SessionResponse(access_token=token, profile=session.require_profile())
    response = success(data=payload.model_dump(mode="json"), message=message)
    response.set_cookie(
        key=ACCESS_TOKEN_COOKIE,
        value=token,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="lax",
        max_age=settings.ACCESS_TOKEN_EXPIRE_DAYS * 24 * 3600
    )
    return response


@router.post("/signup")
async def signup(
    data: SignupRequest,
    store: DocumentStore = Depends(get_store),
    provider: LocalIdentityProvider = Depends(get_identity_provider),
    reconciler: ProfileReconciler = Depends(get_reconciler)
):
    """
    Явная регистрация: учётная запись у провайдера, затем профиль.
    Ошибка записи профиля возвращается клиенту, запасного пути нет.
    """
    logger.info(
        section=LogSection.AUTH,
        subsection=LogSubsection.AUTH.REGISTER_ATTEMPT,
        message=f"Попытка регистрации {data.email}"
    )

    principal = await provider.create_account(data.email, data.password, data.name)
    profile = await reconciler.create_profile(principal, data.name)

    session = SessionContext(reconciler)
    session.adopt(profile)
    token = await open_session(store, profile)

    logger.info(
        section=LogSection.AUTH,
        subsection=LogSubsection.AUTH.REGISTER_SUCCESS,
        message=f"Зарегистрирован пользователь {profile.id}",
        user_id=profile.id
    )
    return _session_response(token, session, "Регистрация прошла успешно")


@router.post("/login")
async def login(
    data: LoginRequest,
    store: DocumentStore = Depends(get_store),
    provider: LocalIdentityProvider = Depends(get_identity_provider),
    reconciler: ProfileReconciler = Depends(get_reconciler)
):
    event = await provider.sign_in(data.email, data.password)

    session = SessionContext(reconciler)
    profile = await session.bootstrap(event)
    token = await open_session(store, profile)

    logger.info(
        section=LogSection.AUTH,
        subsection=LogSubsection.AUTH.LOGIN_SUCCESS,
        message=f"Успешный вход пользователя {profile.id}",
        user_id=profile.id
    )
    return _session_response(token, session, "Вход выполнен")


@router.get("/session")
async def get_session(session: SessionContext = Depends(get_current_session)):
    profile = session.require_profile()
    return success(data=profile.model_dump(mode="json"), message="Сессия активна")


@router.post("/logout")
async def logout(
    session: SessionContext = Depends(get_current_session),
    store: DocumentStore = Depends(get_store)
):
    user_id = session.user_id
    await close_session(store, session.session_id)
    session.clear()

    logger.info(
        section=LogSection.AUTH,
        subsection=LogSubsection.AUTH.LOGOUT_SUCCESS,
        message=f"Пользователь {user_id} вышел",
        user_id=user_id
    )
    response = success(message="Вы вышли из системы")
    response.delete_cookie(ACCESS_TOKEN_COOKIE)
    return response
