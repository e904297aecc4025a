from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from quizhub.utils.timestamps import parse_timestamp

KNOWN_DIFFICULTIES = ("easy", "medium", "hard")
MIN_OPTIONS = 2
MAX_OPTIONS = 8


class Question(BaseModel):
    question: str = Field(..., min_length=1)
    options: List[str]
    # Индекс правильного варианта либо список индексов (несколько верных ответов)
    correct_answer: Union[int, List[int]]
    explanation: Optional[str] = None

    @field_validator("options")
    @classmethod
    def validate_options(cls, value):
        if len(value) < MIN_OPTIONS:
            raise ValueError("Должно быть минимум два варианта ответа")
        if len(value) > MAX_OPTIONS:
            raise ValueError("Максимум 8 вариантов ответа")
        return value

    @field_validator("correct_answer")
    @classmethod
    def validate_correct_answer(cls, value, info):
        options = info.data.get("options")
        indices = value if isinstance(value, list) else [value]
        if not indices:
            raise ValueError("Нужен хотя бы один правильный ответ")
        if options is not None and not all(0 <= index < len(options) for index in indices):
            raise ValueError("Некорректный индекс правильного ответа")
        return value


class QuizDraft(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: str
    description: Optional[str] = None
    # Свободная строка, ожидается одно из KNOWN_DIFFICULTIES
    difficulty: str = "medium"
    topic: Optional[str] = None
    questions: List[Question] = Field(..., min_length=1)
    created_by: Optional[str] = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v):
        if not v.strip():
            raise ValueError("Название квиза не может быть пустым")
        return v

    @field_validator("difficulty")
    @classmethod
    def validate_difficulty(cls, v):
        if not v.strip():
            raise ValueError("Сложность не может быть пустой")
        return v


class Quiz(QuizDraft):
    id: str
    created_at: str
    share_link: str

    @field_validator("created_at")
    @classmethod
    def validate_created_at(cls, v):
        parse_timestamp(v)
        return v

    def to_document(self) -> dict:
        return self.model_dump(mode="json", exclude_none=True)
