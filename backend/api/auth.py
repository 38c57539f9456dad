"""Authentication API endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from backend.api.deps import get_session, get_settings, require_auth
from backend.config import Settings
from backend.models.user import User
from backend.schemas.auth import (
    DriveCredentialsRequest,
    LoginRequest,
    RegisterRequest,
    TokenResponse,
    UserInfo,
    UserResponse,
)
from backend.services.auth_service import authenticate_user, create_access_token, create_user
from backend.services.credential_service import has_drive_tokens, store_drive_tokens

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


def _user_info(user: User) -> UserInfo:
    return UserInfo(
        id=user.id,
        username=user.username,
        display_name=user.display_name,
        drive_connected=has_drive_tokens(user),
    )


def _issue_token(user: User, settings: Settings) -> str:
    return create_access_token(
        {"sub": str(user.id)}, settings.secret_key, settings.access_token_expire_minutes
    )


@router.post("/register", response_model=TokenResponse, status_code=201)
async def register(
    body: RegisterRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> TokenResponse:
    """Register a new user account and log it in."""
    if not settings.auth_self_registration:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Registration is disabled",
        )
    user = await create_user(session, body.username, body.password, body.display_name)
    return TokenResponse(message="Registered", access_token=_issue_token(user, settings))


@router.post("/login", response_model=TokenResponse)
async def login(
    body: LoginRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> TokenResponse:
    """Login with username and password."""
    user = await authenticate_user(session, body.username, body.password)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password",
        )
    return TokenResponse(access_token=_issue_token(user, settings))


@router.get("/me", response_model=UserResponse)
async def me(
    user: Annotated[User, Depends(require_auth)],
) -> UserResponse:
    """Get current user info."""
    return UserResponse(user=_user_info(user))


@router.put("/drive-credentials", response_model=UserResponse)
async def put_drive_credentials(
    body: DriveCredentialsRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
    settings: Annotated[Settings, Depends(get_settings)],
    user: Annotated[User, Depends(require_auth)],
) -> UserResponse:
    """Store Google Drive tokens obtained by the OAuth consent flow."""
    await store_drive_tokens(
        session,
        user,
        settings,
        access_token=body.access_token,
        refresh_token=body.refresh_token,
        expires_at=body.expires_at,
    )
    return UserResponse(message="Google Drive connected", user=_user_info(user))
