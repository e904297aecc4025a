# quizhub/logging/logger_setup.py

import asyncio
import inspect
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, Optional

from pythonjsonlogger import jsonlogger

from quizhub.core.config import settings
from .log_models import StructuredLogEntry, LogLevel, LogSection
from .rabbitmq_handler import get_rabbitmq_publisher


class StructuredFormatter(jsonlogger.JsonFormatter):
    """
    Форматтер для структурированных логов.
    Записи StructuredLogger выводятся как есть, обычные записи библиотек
    (uvicorn, motor и т.д.) форматируются python-json-logger.
    """

    def format(self, record):
        if hasattr(record, "structured_data"):
            return record.structured_data.to_json_string()
        return super().format(record)


class StructuredLogger:
    """Обертка для создания структурированных логов"""

    def __init__(self, logger_name: str):
        self.logger = logging.getLogger(logger_name)
        self._rabbitmq_tasks = set()

    def _get_caller_info(self) -> Dict[str, Any]:
        """
        Определяет файл и функцию, откуда был вызван лог.
        [0] _get_caller_info, [1] _log, [2] info/warning/..., [3] вызывающий код
        """
        frame = inspect.currentframe()
        try:
            caller_frame = frame.f_back.f_back.f_back if frame else None
            if caller_frame is None:
                return {"source_file": "unknown", "source_function": "unknown", "source_line": 0}
            return {
                "source_file": os.path.basename(caller_frame.f_code.co_filename),
                "source_function": caller_frame.f_code.co_name,
                "source_line": caller_frame.f_lineno
            }
        finally:
            del frame

    def _log(
        self,
        level: LogLevel,
        section: LogSection,
        subsection: str,
        message: str,
        extra_data: Optional[Dict[str, Any]] = None,
        user_id: Optional[str] = None
    ):
        levelno = getattr(logging, level.value)
        if not self.logger.isEnabledFor(levelno):
            return

        combined_extra_data = {**(extra_data or {}), **self._get_caller_info()}

        entry = StructuredLogEntry(
            level=level,
            section=section,
            subsection=subsection,
            message=message,
            extra_data=combined_extra_data,
            user_id=user_id,
            timezone=settings.LOG_TIMEZONE
        )

        log_record = self.logger.makeRecord(
            name=self.logger.name,
            level=levelno,
            fn=combined_extra_data["source_file"],
            lno=combined_extra_data["source_line"],
            msg=message,
            args=(),
            exc_info=None
        )
        log_record.structured_data = entry

        self.logger.handle(log_record)

        # WARNING и выше дополнительно уходят в RabbitMQ
        if settings.RABBITMQ_LOGGING and level in (LogLevel.WARNING, LogLevel.ERROR, LogLevel.CRITICAL):
            self._schedule_rabbitmq_send(entry)

    def _schedule_rabbitmq_send(self, entry: StructuredLogEntry):
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            # Нет активного event loop, пропускаем отправку
            return

        task = asyncio.create_task(get_rabbitmq_publisher().publish_log(entry))
        self._rabbitmq_tasks.add(task)
        task.add_done_callback(self._rabbitmq_tasks.discard)

    async def wait_for_rabbitmq_tasks(self):
        """Ждет завершения всех задач RabbitMQ"""
        if self._rabbitmq_tasks:
            await asyncio.gather(*self._rabbitmq_tasks, return_exceptions=True)
            self._rabbitmq_tasks.clear()

    def debug(self, section: LogSection, subsection: str, message: str, **kwargs):
        self._log(LogLevel.DEBUG, section, subsection, message, **kwargs)

    def info(self, section: LogSection, subsection: str, message: str, **kwargs):
        self._log(LogLevel.INFO, section, subsection, message, **kwargs)

    def warning(self, section: LogSection, subsection: str, message: str, **kwargs):
        self._log(LogLevel.WARNING, section, subsection, message, **kwargs)

    def error(self, section: LogSection, subsection: str, message: str, **kwargs):
        self._log(LogLevel.ERROR, section, subsection, message, **kwargs)

    def critical(self, section: LogSection, subsection: str, message: str, **kwargs):
        self._log(LogLevel.CRITICAL, section, subsection, message, **kwargs)


def setup_application_logging():
    """
    Настройка централизованного логирования приложения

    - Структурированные JSON логи
    - Консольный хендлер и ротация файлов логов
    - Отправка WARNING и выше в RabbitMQ (если RABBITMQ_LOGGING включен)
    """
    log_level = settings.LOG_LEVEL.upper()
    log_file = settings.LOG_FILE

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Удаляем все существующие хендлеры
    while root_logger.handlers:
        root_logger.removeHandler(root_logger.handlers[0])

    formatter = StructuredFormatter()
    handlers = []

    # ===== КОНСОЛЬНЫЙ ХЕНДЛЕР =====
    if settings.CONSOLE_LOGGING:
        console_handler = logging.StreamHandler()
        handlers.append(console_handler)

    # ===== ФАЙЛОВЫЙ ХЕНДЛЕР С РОТАЦИЕЙ =====
    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = RotatingFileHandler(
            filename=log_file,
            maxBytes=settings.LOG_MAX_BYTES,
            backupCount=settings.LOG_BACKUP_COUNT,
            encoding="utf-8"
        )
        handlers.append(file_handler)

    for handler in handlers:
        handler.setFormatter(formatter)
        handler.setLevel(log_level)
        root_logger.addHandler(handler)

    # ===== НАСТРОЙКА UVICORN ЛОГГЕРА =====
    uvicorn_logger = logging.getLogger("uvicorn")
    uvicorn_logger.handlers = list(handlers)
    uvicorn_logger.setLevel(log_level)
    uvicorn_logger.propagate = False

    init_logger = get_structured_logger("system.init")
    init_logger.info(
        section=LogSection.SYSTEM,
        subsection="startup",
        message="Система структурированного логирования успешно инициализирована",
        extra_data={
            "log_level": log_level,
            "log_file": log_file or None,
            "console_logging": settings.CONSOLE_LOGGING,
            "rabbitmq_enabled": settings.RABBITMQ_LOGGING
        }
    )


def get_structured_logger(name: str) -> StructuredLogger:
    """
    Получить структурированный логгер для модуля

    Args:
        name: Имя модуля/компонента (например: "quizhub.services.quizzes")
    """
    return StructuredLogger(name)


async def close_all_rabbitmq_connections():
    """Закрывает все RabbitMQ соединения"""
    from .rabbitmq_handler import close_rabbitmq_publisher
    await close_rabbitmq_publisher()
