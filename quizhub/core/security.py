from datetime import datetime, timedelta
from typing import Optional

import jwt
from fastapi import HTTPException, Request, status
from passlib.context import CryptContext

from quizhub.core.config import settings
from quizhub.db.store import DocumentStore, document_path
from quizhub.logging import get_logger, LogSection, LogSubsection
from quizhub.schemas.profile_schemas import Profile
from quizhub.utils.id_generator import generate_document_id
from quizhub.utils.timestamps import to_iso, utc_now

logger = get_logger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

SESSIONS_COLLECTION = "sessions"
ACCESS_TOKEN_COOKIE = "access_token"


def hash_password(plain_password: str) -> str:
    return pwd_context.hash(plain_password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # неизвестный формат хэша
        return False


def create_access_token(data: dict, expires_delta: timedelta = None) -> tuple[str, datetime]:
    expire = utc_now() + (expires_delta or timedelta(days=settings.ACCESS_TOKEN_EXPIRE_DAYS))
    to_encode = data.copy()
    to_encode.update({"exp": expire})
    token = jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

    logger.info(
        section=LogSection.AUTH,
        subsection=LogSubsection.AUTH.TOKEN_CREATE,
        message=f"JWT токен создан для пользователя {data.get('sub', 'неизвестен')} - действует до {expire.strftime('%H:%M:%S %d.%m.%Y')}"
    )
    return token, expire


async def open_session(store: DocumentStore, profile: Profile) -> str:
    """Создаёт документ sessions/{sid} и выдаёт токен с этим sid"""
    session_id = generate_document_id()
    token, expire = create_access_token({
        "sub": profile.id,
        "sid": session_id,
        "email": profile.email,
        "name": profile.name
    })
    await store.set(document_path(SESSIONS_COLLECTION, session_id), {
        "user_id": profile.id,
        "created_at": to_iso(utc_now()),
        "expires_at": to_iso(expire)
    })
    return token


async def close_session(store: DocumentStore, session_id: str) -> None:
    await store.remove(document_path(SESSIONS_COLLECTION, session_id))


def extract_token(request: Request) -> Optional[str]:
    """Bearer-заголовок приоритетнее cookie"""
    authorization = request.headers.get("Authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials.strip()
    return request.cookies.get(ACCESS_TOKEN_COOKIE)


def decode_access_token(token: str, request: Request) -> dict:
    client_host = request.client.host if request.client else "unknown"
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except jwt.ExpiredSignatureError:
        logger.warning(
            section=LogSection.AUTH,
            subsection=LogSubsection.AUTH.TOKEN_EXPIRED,
            message=f"Попытка использования просроченного токена с IP {client_host}"
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"message": "Срок действия токена истёк", "hint": "Выполните вход заново"}
        )
    except jwt.PyJWTError:
        logger.warning(
            section=LogSection.AUTH,
            subsection=LogSubsection.AUTH.TOKEN_INVALID,
            message=f"Ошибка валидации JWT токена с IP {client_host}"
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"message": "Ошибка валидации токена"}
        )

    if not payload.get("sub") or not payload.get("sid"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"message": "Недействительный токен", "hint": "Проверьте корректность токена"}
        )
    return payload
