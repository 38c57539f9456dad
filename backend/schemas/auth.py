"""Authentication request/response schemas."""

from __future__ import annotations

from pydantic import BaseModel, Field

from backend.schemas.common import Envelope


class LoginRequest(BaseModel):
    """Login credentials."""

    username: str = Field(min_length=1, max_length=50)
    password: str = Field(min_length=1, max_length=200)


class RegisterRequest(BaseModel):
    """Self-registration request."""

    username: str = Field(min_length=3, max_length=50, pattern=r"^[a-zA-Z0-9_-]+$")
    password: str = Field(min_length=8, max_length=200)
    display_name: str | None = Field(default=None, max_length=100)


class TokenResponse(Envelope):
    """Access token issued on login or registration."""

    access_token: str
    token_type: str = "bearer"


class UserInfo(BaseModel):
    """Public user information."""

    id: int
    username: str
    display_name: str | None = None
    drive_connected: bool = False


class UserResponse(Envelope):
    """Current user."""

    user: UserInfo


class DriveCredentialsRequest(BaseModel):
    """Tokens handed over by the external OAuth flow."""

    access_token: str = Field(min_length=1)
    refresh_token: str | None = None
    expires_at: str | None = None
