# quizhub/services/attempts.py

from typing import Callable, List

from pydantic import ValidationError as SchemaValidationError

from quizhub.core.errors import StoreReadError, StoreWriteError
from quizhub.db.store import DocumentStore, document_path
from quizhub.logging import get_logger, LogSection, LogSubsection
from quizhub.schemas.attempt_schemas import Attempt, AttemptDraft
from quizhub.utils.id_generator import generate_document_id
from quizhub.utils.timestamps import to_iso, utc_now

logger = get_logger(__name__)

ATTEMPTS_COLLECTION = "attempts"


class AttemptRecorder:
    """
    Сохраняет завершённые попытки в attempts/{id}.
    Время завершения назначается здесь, в момент записи, а не клиентом.
    Ссылка на квиз не проверяется: попытки удалённых квизов допустимы.
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

    async def record(self, draft: AttemptDraft) -> Attempt:
        attempt_id = self.id_factory()
        attempt = Attempt(
            **draft.model_dump(),
            id=attempt_id,
            completed_at=to_iso(self.clock())
        )

        try:
            await self.store.set(document_path(ATTEMPTS_COLLECTION, attempt_id), attempt.to_document())
        except StoreWriteError:
            logger.error(
                section=LogSection.ATTEMPT,
                subsection=LogSubsection.ATTEMPT.RECORD,
                message=f"Не удалось сохранить попытку по квизу {draft.quiz_id}",
                user_id=draft.user_id
            )
            raise

        logger.info(
            section=LogSection.ATTEMPT,
            subsection=LogSubsection.ATTEMPT.RECORD,
            message=f"Попытка {attempt_id} по квизу {attempt.quiz_id}: {attempt.score} баллов",
            user_id=attempt.user_id
        )
        return attempt

    async def list_all(self) -> List[Attempt]:
        try:
            documents = await self.store.get(ATTEMPTS_COLLECTION)
        except StoreReadError as e:
            logger.warning(
                section=LogSection.ATTEMPT,
                subsection=LogSubsection.ATTEMPT.LIST,
                message=f"Ошибка чтения попыток: {e.message}"
            )
            return []

        attempts = []
        for attempt_id, document in (documents or {}).items():
            try:
                attempts.append(Attempt.model_validate(document))
            except SchemaValidationError:
                logger.warning(
                    section=LogSection.ATTEMPT,
                    subsection=LogSubsection.ATTEMPT.LIST,
                    message=f"Пропущен повреждённый документ попытки {attempt_id}"
                )
        return attempts
