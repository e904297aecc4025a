from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from quizhub.utils.timestamps import parse_timestamp

DEFAULT_DISPLAY_NAME = "User"


class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"


class IdentityEvent(BaseModel):
    """Вход пользователя, о котором сообщил провайдер идентификации"""
    subject_id: str = Field(..., min_length=1, description="Стабильный id субъекта у провайдера")
    email: Optional[str] = None
    display_name: Optional[str] = None
    photo_url: Optional[str] = None


class Profile(BaseModel):
    """
    Долговременный профиль пользователя, лежит в users/{id}.
    role и created_at задаются один раз при создании и больше не пересчитываются.
    """
    model_config = ConfigDict(extra="ignore")

    id: str
    email: Optional[str] = None
    name: str = DEFAULT_DISPLAY_NAME
    role: Role = Role.USER
    photo_url: Optional[str] = None
    created_at: str

    @field_validator("name", mode="before")
    @classmethod
    def default_name(cls, v):
        return v or DEFAULT_DISPLAY_NAME

    @field_validator("role", mode="before")
    @classmethod
    def coerce_role(cls, v):
        # Неизвестные и пустые значения из хранилища приводим к обычному пользователю
        if isinstance(v, Role):
            return v
        if isinstance(v, str) and v in Role._value2member_map_:
            return v
        return Role.USER

    @field_validator("created_at")
    @classmethod
    def validate_created_at(cls, v):
        parse_timestamp(v)
        return v

    def to_document(self) -> dict:
        return self.model_dump(mode="json")
