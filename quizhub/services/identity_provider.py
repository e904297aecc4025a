# quizhub/services/identity_provider.py

from typing import Callable, Optional

from quizhub.core.errors import AuthenticationError
from quizhub.core.security import hash_password, verify_password
from quizhub.db.store import DocumentStore, document_path
from quizhub.logging import get_logger, LogSection, LogSubsection
from quizhub.schemas.profile_schemas import IdentityEvent
from quizhub.services.verification import validate_email
from quizhub.utils.id_generator import email_key, generate_document_id
from quizhub.utils.timestamps import to_iso, utc_now

logger = get_logger(__name__)

ACCOUNTS_COLLECTION = "accounts"


class LocalIdentityProvider:
    """
    Провайдер идентификации по email и паролю.
    Учётные данные лежат отдельно от профилей: accounts/{sha256(email)}.
    Результат входа: IdentityEvent, который дальше сверяет ProfileReconciler.
    """

    def __init__(
        self,
        store: DocumentStore,
        id_factory: Callable[[], str] = generate_document_id,
        clock: Callable = utc_now
    ):
        self.store = store
        self.id_factory = id_factory
        self.clock = clock

    async def create_account(self, email: str, password: str, display_name: Optional[str] = None) -> IdentityEvent:
        email = validate_email(email)
        subject_id = self.id_factory()

        stored = await self.store.set_if_absent(
            document_path(ACCOUNTS_COLLECTION, email_key(email)),
            {
                "subject_id": subject_id,
                "email": email,
                "display_name": display_name,
                "hashed_password": hash_password(password),
                "created_at": to_iso(self.clock())
            }
        )
        if stored.get("subject_id") != subject_id:
            logger.warning(
                section=LogSection.AUTH,
                subsection=LogSubsection.AUTH.REGISTER_FAILED,
                message=f"Повторная регистрация на занятый email {email}"
            )
            raise AuthenticationError("Пользователь с таким email уже существует")

        return IdentityEvent(subject_id=subject_id, email=email, display_name=display_name)

    async def sign_in(self, email: str, password: str) -> IdentityEvent:
        email = validate_email(email)
        account = await self.store.get(document_path(ACCOUNTS_COLLECTION, email_key(email)))

        hashed = account.get("hashed_password") if isinstance(account, dict) else None
        if not hashed or not verify_password(password, hashed):
            logger.info(
                section=LogSection.AUTH,
                subsection=LogSubsection.AUTH.LOGIN_FAILED,
                message=f"Неуспешный вход: {email}"
            )
            raise AuthenticationError("Неправильный email или пароль")

        return IdentityEvent(
            subject_id=account["subject_id"],
            email=account.get("email", email),
            display_name=account.get("display_name")
        )
