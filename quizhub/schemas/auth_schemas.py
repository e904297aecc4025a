from typing import Optional

from pydantic import BaseModel, Field, field_validator

from quizhub.schemas.profile_schemas import Profile


class SignupRequest(BaseModel):
    email: str
    password: str
    name: Optional[str] = Field(None, max_length=120)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        if len(v) < 6:
            raise ValueError("Пароль должен содержать минимум 6 символов")
        return v


class LoginRequest(BaseModel):
    email: str
    password: str


class SessionResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    profile: Profile
