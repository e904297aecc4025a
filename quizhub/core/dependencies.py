# quizhub/core/dependencies.py

from fastapi import Depends, HTTPException, Request, status

from quizhub.core.config import settings
from quizhub.core.security import SESSIONS_COLLECTION, decode_access_token, extract_token
from quizhub.db.database import get_store
from quizhub.db.store import DocumentStore, document_path
from quizhub.logging import get_logger, LogSection, LogSubsection
from quizhub.schemas.profile_schemas import IdentityEvent
from quizhub.services.attempts import AttemptRecorder
from quizhub.services.identity import ProfileReconciler, SessionContext
from quizhub.services.identity_provider import LocalIdentityProvider
from quizhub.services.leaderboard import LeaderboardRanker
from quizhub.services.quizzes import QuizRepository
from quizhub.services.verification import EmailJSDispatcher, VerificationDispatcher, VerificationService

logger = get_logger(__name__)


def get_reconciler(store: DocumentStore = Depends(get_store)) -> ProfileReconciler:
    return ProfileReconciler(store)


def get_identity_provider(store: DocumentStore = Depends(get_store)) -> LocalIdentityProvider:
    return LocalIdentityProvider(store)


def get_quiz_repository(store: DocumentStore = Depends(get_store)) -> QuizRepository:
    return QuizRepository(store, origin=settings.PUBLIC_ORIGIN)


def get_attempt_recorder(store: DocumentStore = Depends(get_store)) -> AttemptRecorder:
    return AttemptRecorder(store)


def get_leaderboard_ranker(recorder: AttemptRecorder = Depends(get_attempt_recorder)) -> LeaderboardRanker:
    return LeaderboardRanker(recorder)


def get_dispatcher() -> VerificationDispatcher:
    return EmailJSDispatcher.from_settings()


def get_verification_service(
    store: DocumentStore = Depends(get_store),
    dispatcher: VerificationDispatcher = Depends(get_dispatcher)
) -> VerificationService:
    return VerificationService(
        store,
        dispatcher,
        expire_minutes=settings.VERIFICATION_CODE_EXPIRE_MIN,
        max_attempts=settings.VERIFICATION_MAX_ATTEMPTS,
        resend_cooldown_sec=settings.VERIFICATION_RESEND_COOLDOWN_SEC
    )


async def _bootstrap_session(
    token: str,
    request: Request,
    store: DocumentStore,
    reconciler: ProfileReconciler
) -> SessionContext:
    payload = decode_access_token(token, request)
    session_id = payload["sid"]

    # StoreReadError пробрасывается: недоступное хранилище не означает отозванный токен
    session_doc = await store.get(document_path(SESSIONS_COLLECTION, session_id))

    if not isinstance(session_doc, dict) or session_doc.get("user_id") != payload["sub"]:
        logger.warning(
            section=LogSection.AUTH,
            subsection=LogSubsection.AUTH.TOKEN_REVOKED,
            message=f"Токен сессии {session_id} отозван или не найден",
            user_id=payload["sub"]
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"message": "Сессия завершена", "hint": "Выполните вход заново"}
        )

    session = SessionContext(reconciler, session_id=session_id)
    await session.bootstrap(IdentityEvent(
        subject_id=payload["sub"],
        email=payload.get("email"),
        display_name=payload.get("name")
    ))
    return session


async def get_current_session(
    request: Request,
    store: DocumentStore = Depends(get_store),
    reconciler: ProfileReconciler = Depends(get_reconciler)
) -> SessionContext:
    token = extract_token(request)
    if not token:
        logger.warning(
            section=LogSection.AUTH,
            subsection=LogSubsection.AUTH.TOKEN_MISSING,
            message=f"Запрос без токена к {request.url.path}"
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"message": "Требуется авторизация", "hint": "Авторизуйтесь, чтобы получить доступ"}
        )
    return await _bootstrap_session(token, request, store, reconciler)


async def get_optional_session(
    request: Request,
    store: DocumentStore = Depends(get_store),
    reconciler: ProfileReconciler = Depends(get_reconciler)
) -> SessionContext:
    """Анонимный контекст, если токена нет; с недействительным токеном всё равно 401"""
    token = extract_token(request)
    if not token:
        return SessionContext(reconciler)
    return await _bootstrap_session(token, request, store, reconciler)
