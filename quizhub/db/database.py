from motor.motor_asyncio import AsyncIOMotorClient

from quizhub.core.config import settings
from .memory_store import MemoryDocumentStore
from .mongo_store import MongoDocumentStore
from .store import DocumentStore


def create_store() -> DocumentStore:
    if settings.STORE_BACKEND == "memory":
        return MemoryDocumentStore()

    # клиент подключается лениво, при первом запросе
    client = AsyncIOMotorClient(settings.MONGO_URI)
    return MongoDocumentStore(client[settings.MONGO_DB_NAME], client=client)


store = create_store()


# dependency для FastAPI
async def get_store() -> DocumentStore:
    return store


from .indexes import create_database_indexes  # noqa: E402
