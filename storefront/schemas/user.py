# storefront/schemas/user.py
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class UserCreate(BaseModel):
    username: str = Field(min_length=3, max_length=64, pattern=r"^[A-Za-z0-9_.\-@]+$")
    password: str = Field(min_length=6, max_length=128)


class LoginRequest(BaseModel):
    username: str = Field(min_length=1, max_length=64)
    password: str = Field(min_length=1, max_length=128)


class SignupResponse(BaseModel):
    message: str = "User created successfully"
    user_id: int
    username: str


class UserRead(BaseModel):
    """Public view of a user; the password hash never leaves the service."""

    id: int
    username: str
    last_login_at: datetime | None = None
    created_at: datetime
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class Token(BaseModel):
    token: str
    token_type: str = "bearer"
    user_id: int
    expires_in: int
