import os
from datetime import datetime, timedelta

# Настройки читаются при импорте quizhub, поэтому окружение задаём до него
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-quizhub")
os.environ["STORE_BACKEND"] = "memory"
os.environ["LOG_FILE"] = ""
os.environ["CONSOLE_LOGGING"] = "false"
os.environ["RABBITMQ_LOGGING"] = "false"
os.environ["COOKIE_SECURE"] = "false"
os.environ["PUBLIC_ORIGIN"] = "https://quiz.example"
os.environ["SUPER_ADMIN_IDS"] = "root-admin"
os.environ["EMAILJS_SERVICE_ID"] = "service_test"
os.environ["EMAILJS_TEMPLATE_ID"] = "template_test"
os.environ["EMAILJS_PUBLIC_KEY"] = "public_test"

import pytest
import pytz
from fastapi.testclient import TestClient

from quizhub.core.errors import StoreReadError, StoreWriteError
from quizhub.db.memory_store import MemoryDocumentStore
from quizhub.db.store import DocumentStore


class FailingStore(DocumentStore):
    """Обёртка над хранилищем в памяти, которая умеет отказывать по флагу"""

    def __init__(self, inner: DocumentStore = None):
        self.inner = inner or MemoryDocumentStore()
        self.fail_reads = False
        self.fail_writes = False
        # отказ чтения только для путей с этим префиксом, например "quizzes/"
        self.fail_read_prefix = None

    async def get(self, path):
        if self.fail_reads or (self.fail_read_prefix and path.startswith(self.fail_read_prefix)):
            raise StoreReadError("хранилище недоступно", path)
        return await self.inner.get(path)

    async def set(self, path, document):
        if self.fail_writes:
            raise StoreWriteError("хранилище недоступно", path)
        await self.inner.set(path, document)

    async def set_if_absent(self, path, document):
        if self.fail_writes:
            raise StoreWriteError("хранилище недоступно", path)
        return await self.inner.set_if_absent(path, document)

    async def remove(self, path):
        if self.fail_writes:
            raise StoreWriteError("хранилище недоступно", path)
        await self.inner.remove(path)


class FixedClock:
    """Часы для тестов: стоят на месте, пока их не подвинуть"""

    def __init__(self, start: datetime = None):
        self.now = start or datetime(2024, 5, 1, 10, 0, tzinfo=pytz.UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


class SequentialIds:
    def __init__(self, prefix: str = "id"):
        self.prefix = prefix
        self.counter = 0

    def __call__(self) -> str:
        self.counter += 1
        return f"{self.prefix}{self.counter}"


class RecordingDispatcher:
    """Подменяет EmailJS: запоминает отправленные коды"""

    def __init__(self):
        self.sent = []

    async def send_verification(self, name, email, code):
        self.sent.append({"name": name, "email": email, "code": code})
        return {"success": True, "message": "ok"}


@pytest.fixture
def memory_store():
    return MemoryDocumentStore()


@pytest.fixture
def failing_store():
    return FailingStore()


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def app_store():
    return FailingStore()


@pytest.fixture
def client(app_store, dispatcher):
    from main import app
    from quizhub.core.dependencies import get_dispatcher
    from quizhub.db.database import get_store

    async def override_store():
        return app_store

    app.dependency_overrides[get_store] = override_store
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
