from typing import Optional

from pydantic import BaseModel


class VerificationSendRequest(BaseModel):
    email: str
    name: Optional[str] = None


class VerificationConfirmRequest(BaseModel):
    email: str
    code: str


class ConfigCheckRequest(BaseModel):
    test_email: str = "test@example.com"
