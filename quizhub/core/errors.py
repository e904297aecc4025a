# quizhub/core/errors.py

from typing import Literal, Optional


class QuizHubError(Exception):
    """Базовая ошибка подсистемы"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class StoreError(QuizHubError):
    """Ошибка обращения к хранилищу документов"""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class StoreReadError(StoreError):
    pass


class StoreWriteError(StoreError):
    pass


class ValidationError(QuizHubError, ValueError):
    """Некорректный email, код подтверждения или путь документа"""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class DispatchError(QuizHubError):
    """
    Не удалось доставить письмо с кодом.
    kind = "configuration": сервис настроен неверно, повтор не поможет;
    kind = "delivery": временная проблема доставки.
    """

    def __init__(self, message: str, kind: Literal["configuration", "delivery"] = "delivery"):
        super().__init__(message)
        self.kind = kind


class AuthenticationError(QuizHubError):
    pass


class RateLimitError(QuizHubError):
    """Слишком частые запросы; retry_after в секундах"""

    def __init__(self, message: str, retry_after: int = 0):
        super().__init__(message)
        self.retry_after = retry_after
