from pydantic import BaseModel, Field

from ..models.user import UserRole
from .base import CamelModel, Envelope


class LoginRequest(BaseModel):
    email: str = Field(min_length=3)
    password: str = Field(min_length=1)


class UserResponse(CamelModel):
    id: int
    email: str
    name: str
    phone: str | None = None
    role: UserRole


class PersonSummary(CamelModel):
    id: int | None = None
    name: str
    email: str | None = None
    phone: str | None = None


class TokenResponse(Envelope):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse
