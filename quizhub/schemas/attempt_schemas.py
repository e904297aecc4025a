import math
from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from quizhub.utils.timestamps import parse_timestamp


class AttemptDraft(BaseModel):
    """
    Завершённая попытка прохождения квиза от клиента.
    id и completed_at, присланные клиентом, игнорируются: их назначает сервер.
    """
    model_config = ConfigDict(extra="ignore")

    quiz_id: str = Field(..., min_length=1)
    user_id: Optional[str] = None
    user_name: Optional[str] = None
    score: Union[int, float]
    total_questions: Optional[int] = Field(None, ge=0)
    answers: List[Any] = []
    time_taken: Optional[float] = Field(None, ge=0)

    @field_validator("score", mode="before")
    @classmethod
    def validate_score(cls, v):
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise ValueError("Балл должен быть числом")
        if not math.isfinite(v) or v < 0:
            raise ValueError("Балл должен быть конечным неотрицательным числом")
        return v


class Attempt(AttemptDraft):
    id: str
    completed_at: str

    @field_validator("completed_at")
    @classmethod
    def validate_completed_at(cls, v):
        parse_timestamp(v)
        return v

    def to_document(self) -> dict:
        return self.model_dump(mode="json", exclude_none=True)


class LeaderboardEntry(BaseModel):
    """Проекция для таблицы лидеров, не хранится"""
    rank: int = Field(..., ge=1)
    attempt: Attempt
