# quizhub/services/identity.py

from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError as SchemaValidationError

from quizhub.core.errors import AuthenticationError, StoreReadError, StoreWriteError
from quizhub.db.store import DocumentStore, document_path
from quizhub.logging import get_logger, LogSection, LogSubsection
from quizhub.schemas.profile_schemas import DEFAULT_DISPLAY_NAME, IdentityEvent, Profile, Role
from quizhub.utils.timestamps import to_iso, utc_now

logger = get_logger(__name__)

USERS_COLLECTION = "users"

# Эвристика для удобства, а не граница безопасности: см. quizhub/admin/permissions.py
ADMIN_EMAIL_MARKER = "admin"


def derive_role(email: Optional[str]) -> Role:
    if email and ADMIN_EMAIL_MARKER in email:
        return Role.ADMIN
    return Role.USER


def build_profile(principal: IdentityEvent, name: Optional[str], now: str) -> Profile:
    return Profile(
        id=principal.subject_id,
        email=principal.email,
        name=name or principal.display_name or DEFAULT_DISPLAY_NAME,
        role=derive_role(principal.email),
        photo_url=principal.photo_url,
        created_at=now
    )


class ProfileReconciler:
    """
    Сопоставляет событие входа с долговременным профилем users/{subject_id}.

    Существующий профиль возвращается как есть: role и created_at не
    перезаписываются, name/photo_url/email дополняются из события только
    если в хранилище их нет.
    """

    def __init__(self, store: DocumentStore, clock: Callable = utc_now):
        self.store = store
        self.clock = clock

    def _now(self) -> str:
        return to_iso(self.clock())

    def _merge(self, stored: Dict[str, Any], event: IdentityEvent) -> Profile:
        document = dict(stored)
        document["id"] = event.subject_id
        if not document.get("email"):
            document["email"] = event.email
        if not document.get("name"):
            document["name"] = event.display_name or DEFAULT_DISPLAY_NAME
        if not document.get("photo_url"):
            document["photo_url"] = event.photo_url
        if not document.get("created_at"):
            document["created_at"] = self._now()
        return Profile.model_validate(document)

    def _merge_stored(self, stored: dict, event: IdentityEvent, path: str) -> Profile:
        try:
            return self._merge(stored, event)
        except SchemaValidationError as e:
            logger.error(
                section=LogSection.USER,
                subsection=LogSubsection.USER.PROFILE_RECONCILE,
                message=f"Повреждённый профиль {event.subject_id} в хранилище: {e.error_count()} ошибок",
                user_id=event.subject_id
            )
            raise StoreReadError(f"Профиль {event.subject_id} в хранилище повреждён", path=path) from e

    async def reconcile(self, event: IdentityEvent) -> Profile:
        path = document_path(USERS_COLLECTION, event.subject_id)

        try:
            stored = await self.store.get(path)
        except StoreReadError as e:
            # Продолжаем через условную запись: существующий профиль она не затрёт
            logger.warning(
                section=LogSection.USER,
                subsection=LogSubsection.USER.PROFILE_RECONCILE,
                message=f"Не удалось прочитать профиль {event.subject_id}: {e.message}",
                user_id=event.subject_id
            )
            stored = None

        if isinstance(stored, dict):
            return self._merge_stored(stored, event, path)

        profile = build_profile(event, event.display_name, self._now())

        try:
            persisted = await self.store.set_if_absent(path, profile.to_document())
        except StoreWriteError as e:
            # Сессия продолжается с профилем в памяти
            logger.error(
                section=LogSection.USER,
                subsection=LogSubsection.USER.PROFILE_CREATE,
                message=f"Не удалось сохранить новый профиль {event.subject_id}: {e.message}",
                user_id=event.subject_id
            )
            return profile

        logger.info(
            section=LogSection.USER,
            subsection=LogSubsection.USER.PROFILE_CREATE,
            message=f"Создан профиль {event.subject_id} с ролью {profile.role.value}",
            user_id=event.subject_id
        )
        # Если параллельный вход успел создать профиль первым, возвращаем его
        return self._merge_stored(persisted, event, path)

    async def create_profile(self, principal: IdentityEvent, supplied_name: Optional[str] = None) -> Profile:
        """
        Явная регистрация: всегда пишет профиль.
        StoreWriteError пробрасывается вызывающему коду.
        """
        profile = build_profile(principal, supplied_name, self._now())
        await self.store.set(document_path(USERS_COLLECTION, principal.subject_id), profile.to_document())

        logger.info(
            section=LogSection.USER,
            subsection=LogSubsection.USER.PROFILE_CREATE,
            message=f"Профиль {principal.subject_id} создан при регистрации",
            user_id=principal.subject_id
        )
        return profile


class SessionContext:
    """
    Явный контекст сессии вместо глобального "текущего пользователя".
    bootstrap() при старте сессии, clear() при выходе.
    """

    def __init__(self, reconciler: ProfileReconciler, session_id: Optional[str] = None):
        self.reconciler = reconciler
        self.session_id = session_id
        self.profile: Optional[Profile] = None

    @property
    def is_authenticated(self) -> bool:
        return self.profile is not None

    @property
    def user_id(self) -> Optional[str]:
        return self.profile.id if self.profile else None

    async def bootstrap(self, event: IdentityEvent) -> Profile:
        self.profile = await self.reconciler.reconcile(event)
        logger.info(
            section=LogSection.AUTH,
            subsection=LogSubsection.AUTH.SESSION_BOOTSTRAP,
            message=f"Сессия {self.session_id or '-'} инициализирована",
            user_id=self.profile.id
        )
        return self.profile

    def adopt(self, profile: Profile) -> Profile:
        """Привязать уже созданный профиль (после явной регистрации)"""
        self.profile = profile
        return profile

    def clear(self) -> None:
        self.profile = None
        self.session_id = None

    def require_profile(self) -> Profile:
        if self.profile is None:
            raise AuthenticationError("Требуется авторизация")
        return self.profile
