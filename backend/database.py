"""Local record store engine.

The SQLite file is the source of truth for the file tree and sync state;
Google Drive only mirrors content.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

    from backend.config import Settings


def _enable_sqlite_foreign_keys(dbapi_connection: object, _record: object) -> None:
    # Folder deletes rely on ON DELETE CASCADE for stragglers.
    cursor = dbapi_connection.cursor()  # type: ignore[attr-defined]
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_engine(settings: Settings) -> tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    """Return ``(engine, session_factory)`` for ``settings.database_url``."""
    engine = create_async_engine(settings.database_url, echo=settings.debug)
    if engine.dialect.name == "sqlite":
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    sessions = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    return engine, sessions
