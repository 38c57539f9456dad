"""Remote-store credential resolution and refresh.

The OAuth consent flow itself lives outside this service; it hands over
tokens through ``store_drive_tokens``. Everything else only needs
``resolve_drive_credentials``, which either yields a usable bearer
credential or raises ``AuthRequiredError`` / ``AuthExpiredError``.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING

import httpx

from backend.exceptions import AuthExpiredError, AuthRequiredError
from backend.remote.base import DriveCredentials
from backend.services.crypto_service import decrypt_token, encrypt_token
from backend.services.datetime_service import format_iso, is_expired, now_utc, parse_datetime

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from backend.config import Settings
    from backend.models.user import User

logger = logging.getLogger(__name__)


async def store_drive_tokens(
    session: AsyncSession,
    user: User,
    settings: Settings,
    *,
    access_token: str,
    refresh_token: str | None = None,
    expires_at: str | None = None,
) -> None:
    """Encrypt and persist tokens for ``user``.

    A missing ``refresh_token`` keeps the previously stored one.
    """
    user.drive_access_token = encrypt_token(access_token, settings.secret_key)
    if refresh_token:
        user.drive_refresh_token = encrypt_token(refresh_token, settings.secret_key)
    user.drive_token_expires_at = (
        format_iso(parse_datetime(expires_at)) if expires_at is not None else None
    )
    user.updated_at = format_iso(now_utc())
    await session.commit()
    logger.info("Stored Drive tokens for user %s", user.id)


def has_drive_tokens(user: User) -> bool:
    return user.drive_access_token is not None


async def _refresh_access_token(
    refresh_token: str,
    settings: Settings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> tuple[str, str | None]:
    """Exchange a refresh token for a new access token and its expiry."""
    try:
        async with httpx.AsyncClient(
            timeout=settings.drive_timeout_seconds, transport=transport
        ) as http_client:
            resp = await http_client.post(
                settings.drive_token_url,
                data={
                    "grant_type": "refresh_token",
                    "refresh_token": refresh_token,
                    "client_id": settings.drive_client_id,
                    "client_secret": settings.drive_client_secret,
                },
            )
    except httpx.HTTPError as exc:
        logger.error("Drive token refresh request failed: %s", exc)
        raise AuthExpiredError(
            "Failed to refresh expired Drive token. Please re-authenticate."
        ) from exc

    if resp.status_code != 200:
        logger.error("Drive token refresh rejected: HTTP %d", resp.status_code)
        raise AuthExpiredError("Failed to refresh expired Drive token. Please re-authenticate.")
    data = resp.json()
    access_token = data.get("access_token")
    if not access_token:
        raise AuthExpiredError("Token response missing access_token. Please re-authenticate.")
    expires_in = data.get("expires_in")
    expires_at = (
        format_iso(now_utc() + timedelta(seconds=int(expires_in))) if expires_in else None
    )
    return str(access_token), expires_at


async def resolve_drive_credentials(
    session: AsyncSession,
    user: User,
    settings: Settings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> DriveCredentials:
    """Return a valid Drive credential for ``user``, refreshing it when expired."""
    if user.drive_access_token is None:
        raise AuthRequiredError("Google Drive access token not found. Please re-authenticate.")

    try:
        access_token = decrypt_token(user.drive_access_token, settings.secret_key)
    except ValueError as exc:
        logger.error("Stored Drive token for user %s cannot be decrypted", user.id)
        raise AuthRequiredError(
            "Stored Google Drive token is unreadable. Please re-authenticate."
        ) from exc

    if user.drive_token_expires_at is None or not is_expired(user.drive_token_expires_at):
        return DriveCredentials(access_token=access_token)

    if user.drive_refresh_token is None:
        raise AuthExpiredError(
            "Drive access token expired and no refresh token available. Please re-authenticate."
        )

    logger.info("Drive access token expired for user %s, refreshing", user.id)
    try:
        refresh_token = decrypt_token(user.drive_refresh_token, settings.secret_key)
    except ValueError as exc:
        msg = "Stored refresh token is unreadable. Please re-authenticate."
        raise AuthExpiredError(msg) from exc
    new_token, expires_at = await _refresh_access_token(refresh_token, settings, transport)
    await store_drive_tokens(
        session, user, settings, access_token=new_token, expires_at=expires_at
    )
    return DriveCredentials(access_token=new_token)
