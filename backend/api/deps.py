"""Shared API dependencies: DB session, auth, remote store."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from backend.config import Settings
from backend.exceptions import AuthExpiredError, AuthRequiredError
from backend.models.user import User
from backend.remote.base import RemoteStore, RemoteStoreFactory
from backend.services.auth_service import decode_access_token
from backend.services.credential_service import resolve_drive_credentials

security = HTTPBearer(auto_error=False)


def get_settings(request: Request) -> Settings:
    """Get application settings from app state."""
    settings: Settings = request.app.state.settings
    return settings


def get_remote_factory(request: Request) -> RemoteStoreFactory:
    """Get the remote store factory from app state."""
    factory: RemoteStoreFactory = request.app.state.remote_store_factory
    return factory


async def get_session(request: Request) -> AsyncGenerator[AsyncSession]:
    """Get a database session."""
    session_factory = request.app.state.session_factory
    async with session_factory() as session:
        yield session


async def get_current_user(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)] = None,
    session: AsyncSession = Depends(get_session),
) -> User | None:
    """Get current authenticated user, or None if not authenticated."""
    if credentials is None:
        return None

    settings: Settings = request.app.state.settings
    payload = decode_access_token(credentials.credentials, settings.secret_key)
    if payload is None:
        return None
    user_id = payload.get("sub")
    if not isinstance(user_id, str) or not user_id.isdigit():
        return None
    return await session.get(User, int(user_id))


async def require_auth(
    user: Annotated[User | None, Depends(get_current_user)],
) -> User:
    """Require authentication. Raises 401 if not authenticated."""
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def require_remote(
    user: Annotated[User, Depends(require_auth)],
    session: Annotated[AsyncSession, Depends(get_session)],
    settings: Annotated[Settings, Depends(get_settings)],
    factory: Annotated[RemoteStoreFactory, Depends(get_remote_factory)],
) -> RemoteStore:
    """Remote store bound to the caller's credential.

    Raises AuthRequiredError / AuthExpiredError when no usable credential exists.
    """
    credentials = await resolve_drive_credentials(session, user, settings)
    return factory(credentials)


async def optional_remote(
    user: Annotated[User, Depends(require_auth)],
    session: Annotated[AsyncSession, Depends(get_session)],
    settings: Annotated[Settings, Depends(get_settings)],
    factory: Annotated[RemoteStoreFactory, Depends(get_remote_factory)],
) -> RemoteStore | None:
    """Remote store for the caller, or None when no usable credential exists."""
    try:
        credentials = await resolve_drive_credentials(session, user, settings)
    except (AuthRequiredError, AuthExpiredError):
        return None
    return factory(credentials)
