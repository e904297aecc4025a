# quizhub/db/mongo_store.py

from typing import Any, Dict, Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from quizhub.core.errors import StoreReadError, StoreWriteError
from quizhub.logging import get_logger, LogSection, LogSubsection
from .store import DocumentStore, split_path

logger = get_logger(__name__)


def _strip_mongo_id(document: Dict[str, Any]) -> Dict[str, Any]:
    document = dict(document)
    document.pop("_id", None)
    return document


class MongoDocumentStore(DocumentStore):
    """
    Хранилище документов поверх MongoDB (motor).
    Путь "quizzes/{id}" соответствует документу с _id = id в коллекции quizzes.
    """

    def __init__(self, db: AsyncIOMotorDatabase, client: Optional[AsyncIOMotorClient] = None):
        self.db = db
        self.client = client

    async def get(self, path: str) -> Optional[Any]:
        collection, doc_id = split_path(path)
        try:
            if doc_id is None:
                documents = {}
                # natural order ~ порядок вставки
                async for document in self.db[collection].find({}):
                    documents[str(document["_id"])] = _strip_mongo_id(document)
                return documents or None

            document = await self.db[collection].find_one({"_id": doc_id})
        except PyMongoError as e:
            logger.error(
                section=LogSection.DATABASE,
                subsection=LogSubsection.DATABASE.READ,
                message=f"Ошибка чтения {path}: {e}"
            )
            raise StoreReadError(f"Не удалось прочитать {path}", path=path) from e

        return _strip_mongo_id(document) if document is not None else None

    async def set(self, path: str, document: Dict[str, Any]) -> None:
        collection, doc_id = split_path(path)
        if doc_id is None:
            raise ValueError("Нельзя перезаписать коллекцию целиком")
        try:
            await self.db[collection].replace_one(
                {"_id": doc_id},
                {**document, "_id": doc_id},
                upsert=True
            )
        except PyMongoError as e:
            logger.error(
                section=LogSection.DATABASE,
                subsection=LogSubsection.DATABASE.WRITE,
                message=f"Ошибка записи {path}: {e}"
            )
            raise StoreWriteError(f"Не удалось записать {path}", path=path) from e

    async def set_if_absent(self, path: str, document: Dict[str, Any]) -> Dict[str, Any]:
        collection, doc_id = split_path(path)
        if doc_id is None:
            raise ValueError("Условная запись возможна только для документа")
        try:
            try:
                stored = await self.db[collection].find_one_and_update(
                    {"_id": doc_id},
                    {"$setOnInsert": document},
                    upsert=True,
                    return_document=ReturnDocument.AFTER
                )
            except DuplicateKeyError:
                # Параллельный upsert успел вставить документ первым
                stored = await self.db[collection].find_one({"_id": doc_id})
        except PyMongoError as e:
            logger.error(
                section=LogSection.DATABASE,
                subsection=LogSubsection.DATABASE.WRITE,
                message=f"Ошибка условной записи {path}: {e}"
            )
            raise StoreWriteError(f"Не удалось записать {path}", path=path) from e

        return _strip_mongo_id(stored)

    async def remove(self, path: str) -> None:
        collection, doc_id = split_path(path)
        try:
            if doc_id is None:
                await self.db[collection].delete_many({})
            else:
                await self.db[collection].delete_one({"_id": doc_id})
        except PyMongoError as e:
            logger.error(
                section=LogSection.DATABASE,
                subsection=LogSubsection.DATABASE.WRITE,
                message=f"Ошибка удаления {path}: {e}"
            )
            raise StoreWriteError(f"Не удалось удалить {path}", path=path) from e

    async def close(self) -> None:
        if self.client is not None:
            self.client.close()
