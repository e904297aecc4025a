# quizhub/routers/leaderboard.py

from typing import Optional

from fastapi import APIRouter, Depends, Query

from quizhub.core.dependencies import get_leaderboard_ranker
from quizhub.core.response import success
from quizhub.services.leaderboard import LeaderboardRanker

router = APIRouter()


@router.get("/")
async def get_leaderboard(
    quiz_id: Optional[str] = Query(None, description="Ограничить таблицу одним квизом"),
    limit: Optional[int] = Query(None, ge=1, le=1000),
    ranker: LeaderboardRanker = Depends(get_leaderboard_ranker)
):
    entries = await ranker.rank(quiz_id=quiz_id, limit=limit)
    return success(
        data=[entry.model_dump(mode="json") for entry in entries],
        message="Таблица лидеров"
    )
