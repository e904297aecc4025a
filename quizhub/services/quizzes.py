# quizhub/services/quizzes.py

from typing import Callable, List, Optional
from urllib.parse import urlparse

from pydantic import ValidationError as SchemaValidationError

from quizhub.core.errors import StoreReadError, StoreWriteError, ValidationError
from quizhub.db.store import DocumentStore, document_path
from quizhub.logging import get_logger, LogSection, LogSubsection
from quizhub.schemas.quiz_schemas import Quiz, QuizDraft
from quizhub.utils.id_generator import generate_document_id
from quizhub.utils.timestamps import to_iso, utc_now

logger = get_logger(__name__)

QUIZZES_COLLECTION = "quizzes"
SHARE_PATH_SEGMENT = "quiz"


def build_share_link(origin: str, quiz_id: str) -> str:
    return f"{origin.rstrip('/')}/{SHARE_PATH_SEGMENT}/{quiz_id}"


def extract_quiz_id(locator: str) -> Optional[str]:
    """
    Достаёт id квиза из ссылки вида {origin}/quiz/{id}.
    Возвращает None, если ссылка не похожа на ссылку на квиз.
    """
    if not locator:
        return None
    segments = [s for s in urlparse(locator.strip()).path.split("/") if s]
    for index, segment in enumerate(segments[:-1]):
        if segment == SHARE_PATH_SEGMENT:
            return segments[index + 1]
    return None


class QuizRepository:
    """CRUD для документов quizzes/{id}"""

    def __init__(
        self,
        store: DocumentStore,
        origin: str,
        id_factory: Callable[[], str] = generate_document_id,
        clock: Callable = utc_now
    ):
        self.store = store
        self.origin = origin
        self.id_factory = id_factory
        self.clock = clock

    async def create(self, draft: QuizDraft) -> Quiz:
        quiz_id = self.id_factory()
        quiz = Quiz(
            **draft.model_dump(),
            id=quiz_id,
            created_at=to_iso(self.clock()),
            share_link=build_share_link(self.origin, quiz_id)
        )

        try:
            await self.store.set(document_path(QUIZZES_COLLECTION, quiz_id), quiz.to_document())
        except StoreWriteError:
            logger.error(
                section=LogSection.QUIZ,
                subsection=LogSubsection.QUIZ.CREATE,
                message=f"Не удалось сохранить квиз «{draft.title}»",
                user_id=draft.created_by
            )
            raise

        logger.info(
            section=LogSection.QUIZ,
            subsection=LogSubsection.QUIZ.CREATE,
            message=f"Создан квиз {quiz_id} «{quiz.title}» ({len(quiz.questions)} вопросов)",
            user_id=draft.created_by
        )
        return quiz

    async def get_by_id(self, quiz_id: str) -> Optional[Quiz]:
        """None и для неизвестного id, и при недоступном хранилище"""
        try:
            document = await self.store.get(document_path(QUIZZES_COLLECTION, quiz_id))
        except ValidationError:
            return None
        except StoreReadError as e:
            logger.warning(
                section=LogSection.QUIZ,
                subsection=LogSubsection.QUIZ.FETCH,
                message=f"Ошибка чтения квиза {quiz_id}: {e.message}"
            )
            return None

        if not isinstance(document, dict):
            return None

        try:
            return Quiz.model_validate(document)
        except SchemaValidationError as e:
            logger.warning(
                section=LogSection.QUIZ,
                subsection=LogSubsection.QUIZ.FETCH,
                message=f"Документ квиза {quiz_id} повреждён: {e.error_count()} ошибок"
            )
            return None

    async def get_by_share_link(self, locator: str) -> Optional[Quiz]:
        quiz_id = extract_quiz_id(locator)
        if quiz_id is None:
            logger.debug(
                section=LogSection.QUIZ,
                subsection=LogSubsection.QUIZ.SHARE_LINK,
                message=f"Ссылка не указывает на квиз: {locator!r}"
            )
            return None
        return await self.get_by_id(quiz_id)

    async def fetch_document(self, quiz_id: str) -> Optional[dict]:
        """
        Сырой документ квиза для проверки прав перед удалением.
        StoreReadError пробрасывается: отсутствие и недоступность здесь различаются.
        """
        try:
            path = document_path(QUIZZES_COLLECTION, quiz_id)
        except ValidationError:
            return None
        document = await self.store.get(path)
        return document if isinstance(document, dict) else None

    async def list_all(self) -> List[Quiz]:
        """Порядок не гарантирован; пустой список и при ошибке чтения"""
        try:
            documents = await self.store.get(QUIZZES_COLLECTION)
        except StoreReadError as e:
            logger.warning(
                section=LogSection.QUIZ,
                subsection=LogSubsection.QUIZ.LIST,
                message=f"Ошибка чтения списка квизов: {e.message}"
            )
            return []

        quizzes = []
        for quiz_id, document in (documents or {}).items():
            try:
                quizzes.append(Quiz.model_validate(document))
            except SchemaValidationError:
                logger.warning(
                    section=LogSection.QUIZ,
                    subsection=LogSubsection.QUIZ.LIST,
                    message=f"Пропущен повреждённый документ квиза {quiz_id}"
                )
        return quizzes

    async def remove(self, quiz_id: str) -> bool:
        """Идемпотентно: удаление отсутствующего квиза считается успехом"""
        try:
            await self.store.remove(document_path(QUIZZES_COLLECTION, quiz_id))
        except ValidationError:
            # такого документа не может существовать
            return True
        except StoreWriteError as e:
            logger.error(
                section=LogSection.QUIZ,
                subsection=LogSubsection.QUIZ.DELETE,
                message=f"Не удалось удалить квиз {quiz_id}: {e.message}"
            )
            return False

        logger.info(
            section=LogSection.QUIZ,
            subsection=LogSubsection.QUIZ.DELETE,
            message=f"Квиз {quiz_id} удалён"
        )
        return True
