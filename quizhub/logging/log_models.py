import json
import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

import pytz


class LogLevel(Enum):
    """Уровни серьезности логов"""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogSection(Enum):
    """Основные разделы системы"""
    AUTH = "auth"
    USER = "user"
    QUIZ = "quiz"
    ATTEMPT = "attempt"
    LEADERBOARD = "leaderboard"
    VERIFICATION = "verification"
    SECURITY = "security"
    DATABASE = "database"
    SYSTEM = "system"
    API = "api"


class LogSubsection:
    """Подразделы для каждого раздела"""

    class AUTH:
        REGISTER_ATTEMPT = "register_attempt"
        REGISTER_SUCCESS = "register_success"
        REGISTER_FAILED = "register_failed"
        LOGIN_SUCCESS = "login_success"
        LOGIN_FAILED = "login_failed"
        LOGOUT_SUCCESS = "logout_success"
        TOKEN_CREATE = "token_create"
        TOKEN_MISSING = "token_missing"
        TOKEN_INVALID = "token_invalid"
        TOKEN_EXPIRED = "token_expired"
        TOKEN_REVOKED = "token_revoked"
        SESSION_BOOTSTRAP = "session_bootstrap"

    class USER:
        PROFILE_CREATE = "profile_create"
        PROFILE_RECONCILE = "profile_reconcile"

    class QUIZ:
        CREATE = "create"
        FETCH = "fetch"
        LIST = "list"
        DELETE = "delete"
        SHARE_LINK = "share_link"

    class ATTEMPT:
        RECORD = "record"
        LIST = "list"

    class LEADERBOARD:
        RANK = "rank"

    class VERIFICATION:
        SEND = "send"
        CONFIRM = "confirm"
        CONFIG = "config"

    class SECURITY:
        ACCESS_DENIED = "access_denied"
        VALIDATION = "validation"

    class DATABASE:
        READ = "read"
        WRITE = "write"
        ERROR = "error"
        INDEXES_CREATE = "indexes_create"
        INDEXES_SUCCESS = "indexes_success"
        INDEXES_ERROR = "indexes_error"

    class SYSTEM:
        STARTUP = "startup"
        SHUTDOWN = "shutdown"

    class API:
        ERROR = "error"
        VALIDATION = "validation"


class StructuredLogEntry:
    """Модель структурированного лог-сообщения"""

    def __init__(
        self,
        level: LogLevel,
        section: LogSection,
        subsection: str,
        message: str,
        extra_data: Optional[Dict[str, Any]] = None,
        user_id: Optional[str] = None,
        timezone: str = "UTC"
    ):
        self.timestamp = datetime.now(pytz.timezone(timezone)).strftime('%Y-%m-%d %H:%M:%S %Z')
        self.log_id = str(uuid.uuid4())[:8]  # Короткий уникальный ID
        self.level = level.value
        self.section = section.value
        self.subsection = subsection
        self.message = message
        self.extra_data = extra_data or {}
        self.user_id = user_id

    def to_dict(self) -> Dict[str, Any]:
        """Преобразование в словарь для логирования"""
        log_dict = {
            "timestamp": self.timestamp,
            "log_id": self.log_id,
            "level": self.level,
            "section": self.section,
            "subsection": self.subsection,
            "message": self.message
        }

        # Добавляем опциональные поля если они есть
        if self.user_id:
            log_dict["user_id"] = self.user_id
        if self.extra_data:
            log_dict["extra_data"] = self.extra_data

        return log_dict

    def to_json_string(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, default=str)
