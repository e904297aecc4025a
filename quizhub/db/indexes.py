"""
Инициализация индексов MongoDB
"""
from pymongo import IndexModel
from pymongo.errors import PyMongoError

from quizhub.logging import get_logger, LogSection, LogSubsection
from .mongo_store import MongoDocumentStore
from .store import DocumentStore

logger = get_logger("database_indexes")


async def create_database_indexes(store: DocumentStore) -> bool:
    if not isinstance(store, MongoDocumentStore):
        return False

    db = store.db
    logger.info(
        section=LogSection.DATABASE,
        subsection=LogSubsection.DATABASE.INDEXES_CREATE,
        message="Начинаем создание индексов базы данных"
    )

    try:
        # attempts: фильтр таблицы лидеров по квизу и сортировка по времени
        await db.attempts.create_indexes([
            IndexModel([("quiz_id", 1)], name="quiz_id"),
            IndexModel([("completed_at", 1)], name="completed_at"),
        ])
        await db.quizzes.create_indexes([
            IndexModel([("created_by", 1)], name="created_by"),
        ])
        await db.users.create_indexes([
            IndexModel([("email", 1)], name="email"),
        ])
    except PyMongoError as e:
        logger.error(
            section=LogSection.DATABASE,
            subsection=LogSubsection.DATABASE.INDEXES_ERROR,
            message=f"Ошибка создания индексов: {e}"
        )
        raise

    logger.info(
        section=LogSection.DATABASE,
        subsection=LogSubsection.DATABASE.INDEXES_SUCCESS,
        message="Индексы для коллекций attempts, quizzes, users созданы"
    )
    return True
