# quizhub/services/verification.py

import re
import secrets
from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Any, Callable, Dict, List, Optional

import httpx

from quizhub.core.config import settings
from quizhub.core.errors import DispatchError, RateLimitError, StoreReadError, ValidationError
from quizhub.db.store import DocumentStore, document_path
from quizhub.logging import get_logger, LogSection, LogSubsection
from quizhub.schemas.profile_schemas import DEFAULT_DISPLAY_NAME
from quizhub.utils.id_generator import email_key, generate_numeric_code
from quizhub.utils.timestamps import parse_timestamp, to_iso, utc_now

logger = get_logger(__name__)

EMAIL_PATTERN = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")
OTP_PATTERN = re.compile(r"[0-9]{6}")
OTP_LENGTH = 6

VERIFICATIONS_COLLECTION = "verifications"
# После стольких неверных вводов код аннулируется
MAX_CONFIRM_ATTEMPTS = 5
RESEND_COOLDOWN_SEC = 60


def validate_email(email: Optional[str]) -> str:
    """Проверка формы local@domain.tld до любых сетевых вызовов"""
    value = (email or "").strip()
    if not EMAIL_PATTERN.fullmatch(value):
        raise ValidationError("Некорректный формат email", field="email")
    return value


def validate_otp(code: Optional[str]) -> str:
    """Код подтверждения: ровно 6 цифр 0-9"""
    if not isinstance(code, str) or not OTP_PATTERN.fullmatch(code):
        raise ValidationError("Код подтверждения должен состоять из 6 цифр", field="code")
    return code


def generate_otp() -> str:
    return generate_numeric_code(OTP_LENGTH)


def classify_failure(status_code: int, body: str) -> DispatchError:
    """
    Переводит ответ EmailJS в понятное пользователю сообщение.
    Проблемы настройки отделяются от временных сбоев доставки.
    """
    text = (body or "").lower()

    if "recipient" in text:
        return DispatchError(
            "Почтовый сервис не знает адрес получателя. "
            "В настройках сервиса EmailJS укажите {{to_email}} в поле «To Email».",
            kind="configuration"
        )
    if "template id" in text or "template_id" in text:
        return DispatchError("Шаблон письма настроен неверно. Обратитесь в поддержку.", kind="configuration")
    if "service id" in text or "service_id" in text:
        return DispatchError("Почтовый сервис настроен неверно. Обратитесь в поддержку.", kind="configuration")
    if "user_id" in text or "public key" in text:
        return DispatchError("Почтовый сервис отклонил публичный ключ. Проверьте ключ EmailJS.", kind="configuration")
    if status_code in (400, 422):
        return DispatchError("Почтовый сервис отклонил запрос. Проверьте настройки EmailJS.", kind="configuration")

    return DispatchError("Не удалось отправить письмо с кодом. Попробуйте позже.", kind="delivery")


class VerificationDispatcher(ABC):
    """Доставка одноразового кода на email"""

    @abstractmethod
    async def send_verification(self, name: Optional[str], email: str, code: str) -> Dict[str, Any]:
        ...


class EmailJSDispatcher(VerificationDispatcher):
    """Отправка писем через REST API EmailJS"""

    def __init__(
        self,
        service_id: str,
        template_id: str,
        public_key: str,
        api_url: str = "https://api.emailjs.com/api/v1.0/email/send",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.service_id = service_id
        self.template_id = template_id
        self.public_key = public_key
        self.api_url = api_url
        self.timeout = httpx.Timeout(timeout)
        self.transport = transport

    @classmethod
    def from_settings(cls, transport: Optional[httpx.AsyncBaseTransport] = None) -> "EmailJSDispatcher":
        return cls(
            service_id=settings.EMAILJS_SERVICE_ID,
            template_id=settings.EMAILJS_TEMPLATE_ID,
            public_key=settings.EMAILJS_PUBLIC_KEY,
            api_url=settings.EMAILJS_API_URL,
            timeout=settings.EMAILJS_TIMEOUT_SEC,
            transport=transport
        )

    def missing_configuration(self) -> List[str]:
        missing = []
        if not self.service_id:
            missing.append("EMAILJS_SERVICE_ID")
        if not self.template_id:
            missing.append("EMAILJS_TEMPLATE_ID")
        if not self.public_key:
            missing.append("EMAILJS_PUBLIC_KEY")
        return missing

    def _ensure_configured(self):
        missing = self.missing_configuration()
        if missing:
            logger.error(
                section=LogSection.VERIFICATION,
                subsection=LogSubsection.VERIFICATION.CONFIG,
                message=f"EmailJS не настроен, отсутствуют: {', '.join(missing)}"
            )
            raise DispatchError("Почтовый сервис не настроен. Обратитесь в поддержку.", kind="configuration")

    async def _post(self, template_params: Dict[str, Any]) -> None:
        self._ensure_configured()

        request_data = {
            "service_id": self.service_id,
            "template_id": self.template_id,
            "user_id": self.public_key,
            "template_params": template_params
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.api_url, json=request_data)
        except httpx.HTTPError as e:
            logger.warning(
                section=LogSection.VERIFICATION,
                subsection=LogSubsection.VERIFICATION.SEND,
                message=f"EmailJS недоступен: {type(e).__name__}"
            )
            raise DispatchError("Не удалось отправить письмо с кодом. Попробуйте позже.", kind="delivery") from e

        # EmailJS отвечает 200 и текстом "OK"
        if response.status_code == 200 and response.text == "OK":
            return

        logger.warning(
            section=LogSection.VERIFICATION,
            subsection=LogSubsection.VERIFICATION.SEND,
            message=f"EmailJS ответил {response.status_code}: {response.text[:200]}"
        )
        raise classify_failure(response.status_code, response.text)

    async def send_verification(self, name: Optional[str], email: str, code: str) -> Dict[str, Any]:
        email = validate_email(email)
        code = validate_otp(code)
        display_name = name or DEFAULT_DISPLAY_NAME

        # Сервисы EmailJS ждут получателя под разными именами параметров
        template_params = {
            "user_name": display_name,
            "user_email": email,
            "otp_code": code,
            "to_email": email,
            "to_name": display_name,
            "email": email,
            "reply_to": email
        }

        await self._post(template_params)

        logger.info(
            section=LogSection.VERIFICATION,
            subsection=LogSubsection.VERIFICATION.SEND,
            message=f"Письмо с кодом отправлено на {email}"
        )
        return {"success": True, "message": "Письмо с кодом подтверждения отправлено"}

    async def check_configuration(self, test_email: str = "test@example.com") -> Dict[str, Any]:
        """Отправляет тестовое письмо; не бросает исключений"""
        try:
            await self.send_verification("Test User", test_email, "123456")
        except (DispatchError, ValidationError) as e:
            return {"success": False, "message": f"Проверка EmailJS не прошла: {e.message}"}
        return {"success": True, "message": "Настройки EmailJS корректны, тестовое письмо отправлено"}


class VerificationService:
    """
    Выдача и проверка одноразовых кодов.
    Код хранится в verifications/{sha256(email)} до истечения срока или использования.
    После max_attempts неверных вводов код больше не принимается, нужен новый.
    """

    def __init__(
        self,
        store: DocumentStore,
        dispatcher: VerificationDispatcher,
        expire_minutes: int = 30,
        clock: Callable = utc_now,
        code_factory: Callable[[], str] = generate_otp,
        max_attempts: int = MAX_CONFIRM_ATTEMPTS,
        resend_cooldown_sec: int = RESEND_COOLDOWN_SEC
    ):
        self.store = store
        self.dispatcher = dispatcher
        self.expire_minutes = expire_minutes
        self.clock = clock
        self.code_factory = code_factory
        self.max_attempts = max_attempts
        self.resend_cooldown_sec = resend_cooldown_sec

    async def request_code(self, name: Optional[str], email: str) -> Dict[str, Any]:
        email = validate_email(email)
        path = document_path(VERIFICATIONS_COLLECTION, email_key(email))
        now = self.clock()

        previous = await self.store.get(path)
        if isinstance(previous, dict) and not previous.get("used"):
            try:
                elapsed = (now - parse_timestamp(previous.get("created_at"))).total_seconds()
            except ValueError:
                # повреждённую запись просто перезаписываем
                elapsed = self.resend_cooldown_sec
            if elapsed < self.resend_cooldown_sec:
                retry_after = int(self.resend_cooldown_sec - elapsed) + 1
                logger.warning(
                    section=LogSection.VERIFICATION,
                    subsection=LogSubsection.VERIFICATION.SEND,
                    message=f"Повторный запрос кода для {email} раньше чем через {self.resend_cooldown_sec} с"
                )
                raise RateLimitError("Код уже отправлен, повторите запрос позже", retry_after=retry_after)

        code = validate_otp(self.code_factory())
        expires_at = to_iso(now + timedelta(minutes=self.expire_minutes))

        await self.store.set(
            path,
            {
                "email": email,
                "code": code,
                "expires_at": expires_at,
                "used": False,
                "failed_attempts": 0,
                "created_at": to_iso(now)
            }
        )
        try:
            await self.dispatcher.send_verification(name, email, code)
        except DispatchError:
            # неотправленный код не должен блокировать повторный запрос
            await self.store.remove(path)
            raise

        return {"email": email, "expires_at": expires_at}

    async def confirm_code(self, email: str, code: str) -> bool:
        email = validate_email(email)
        code = validate_otp(code)
        path = document_path(VERIFICATIONS_COLLECTION, email_key(email))

        try:
            document = await self.store.get(path)
        except StoreReadError:
            return False

        if not isinstance(document, dict) or document.get("used"):
            return False

        failed_attempts = document.get("failed_attempts", 0)
        if failed_attempts >= self.max_attempts:
            return False

        if not secrets.compare_digest(str(document.get("code", "")), code):
            failed_attempts += 1
            await self.store.set(path, {**document, "failed_attempts": failed_attempts})
            logger.warning(
                section=LogSection.VERIFICATION,
                subsection=LogSubsection.VERIFICATION.CONFIRM,
                message=f"Неверный код подтверждения для {email} (попытка {failed_attempts} из {self.max_attempts})"
            )
            return False
        if parse_timestamp(document["expires_at"]) < self.clock():
            return False

        await self.store.set(path, {**document, "used": True})

        logger.info(
            section=LogSection.VERIFICATION,
            subsection=LogSubsection.VERIFICATION.CONFIRM,
            message=f"Email {email} подтверждён"
        )
        return True
