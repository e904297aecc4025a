# quizhub/services/leaderboard.py

from typing import Iterable, List, Optional

from quizhub.logging import get_logger, LogSection, LogSubsection
from quizhub.schemas.attempt_schemas import Attempt, LeaderboardEntry
from quizhub.services.attempts import AttemptRecorder
from quizhub.utils.timestamps import parse_timestamp

logger = get_logger(__name__)


def _ranking_key(attempt: Attempt):
    # Больше баллов выше; при равенстве выше тот, кто закончил раньше
    return (-attempt.score, parse_timestamp(attempt.completed_at))


def rank_attempts(
    attempts: Iterable[Attempt],
    quiz_id: Optional[str] = None,
    limit: Optional[int] = None
) -> List[LeaderboardEntry]:
    """
    Чистая функция: фильтр по квизу и стабильная сортировка.
    Одинаковые баллы и время сохраняют исходный порядок, ранги не делятся.
    """
    if quiz_id:
        attempts = [a for a in attempts if a.quiz_id == quiz_id]

    ordered = sorted(attempts, key=_ranking_key)
    if limit is not None:
        ordered = ordered[:limit]

    return [
        LeaderboardEntry(rank=position, attempt=attempt)
        for position, attempt in enumerate(ordered, start=1)
    ]


class LeaderboardRanker:
    """Таблица лидеров пересчитывается на каждый запрос, своего хранения нет"""

    def __init__(self, recorder: AttemptRecorder):
        self.recorder = recorder

    async def rank(self, quiz_id: Optional[str] = None, limit: Optional[int] = None) -> List[LeaderboardEntry]:
        attempts = await self.recorder.list_all()
        entries = rank_attempts(attempts, quiz_id=quiz_id, limit=limit)

        logger.debug(
            section=LogSection.LEADERBOARD,
            subsection=LogSubsection.LEADERBOARD.RANK,
            message=f"Таблица лидеров{' квиза ' + quiz_id if quiz_id else ''}: {len(entries)} из {len(attempts)} попыток"
        )
        return entries
