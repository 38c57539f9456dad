"""Shared test fixtures for the AI-IDE backend."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import pytest
from httpx import ASGITransport, AsyncClient

from backend.config import Settings
from backend.database import create_engine as create_db_engine
from backend.main import create_app
from backend.models.base import Base
from backend.models.project import Project
from backend.models.user import User
from backend.services.auth_service import hash_password
from backend.services.datetime_service import format_iso, now_utc
from tests._remote_fakes import InMemoryRemoteStore

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator
    from pathlib import Path

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

TEST_SECRET_KEY = "test-secret-key-with-at-least-32-characters"


@asynccontextmanager
async def create_test_client(
    settings: Settings, remote: InMemoryRemoteStore | None = None
) -> AsyncGenerator[AsyncClient]:
    """Create an HTTP test client with a fully initialized app.

    Manually performs the work of the application lifespan because
    ASGITransport does not trigger it. ``remote`` replaces Google Drive.
    """
    app = create_app(settings)
    settings.validate_runtime_security()

    engine, session_factory = create_db_engine(settings)
    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.remote_store_factory = remote if remote is not None else InMemoryRemoteStore()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    await engine.dispose()


async def register(client: AsyncClient, username: str = "alice") -> dict[str, str]:
    """Register a user and return its Authorization header."""
    resp = await client.post(
        "/api/v1/auth/register",
        json={"username": username, "password": "correct-horse-battery"},
    )
    assert resp.status_code == 201, resp.text
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


async def connect_drive(client: AsyncClient, headers: dict[str, str]) -> None:
    """Store a non-expiring Drive credential for the user."""
    resp = await client.put(
        "/api/v1/auth/drive-credentials",
        json={"access_token": "drive-access-token"},
        headers=headers,
    )
    assert resp.status_code == 200, resp.text


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Create test settings with a temporary database."""
    db_path = tmp_path / "test.db"
    return Settings(
        secret_key=TEST_SECRET_KEY,
        debug=True,
        database_url=f"sqlite+aiosqlite:///{db_path}",
    )


@pytest.fixture
def remote() -> InMemoryRemoteStore:
    return InMemoryRemoteStore()


@pytest.fixture
async def session_factory(
    test_settings: Settings,
) -> AsyncGenerator[async_sessionmaker[AsyncSession]]:
    """Session factory over a fresh test database."""
    engine, factory = create_db_engine(test_settings)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield factory
    await engine.dispose()


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def user(db_session: AsyncSession) -> User:
    now = format_iso(now_utc())
    user = User(
        username="alice",
        password_hash=hash_password("correct-horse-battery"),
        display_name="Alice",
        created_at=now,
        updated_at=now,
    )
    db_session.add(user)
    await db_session.commit()
    return user


@pytest.fixture
async def project(
    db_session: AsyncSession, user: User, remote: InMemoryRemoteStore
) -> Project:
    """An empty project whose folder exists in the in-memory remote store."""
    folder = await remote.create_folder("demo", None)
    now = format_iso(now_utc())
    project = Project(
        owner_id=user.id,
        name="demo",
        description="",
        language="python",
        remote_folder_id=folder.id,
        file_count=0,
        sync_status="synced",
        last_accessed_at=now,
        created_at=now,
        updated_at=now,
    )
    db_session.add(project)
    await db_session.commit()
    return project
