"""Unit tests for the authentication service."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from jose import jwt

from backend.exceptions import ConflictError
from backend.services.auth_service import (
    ALGORITHM,
    authenticate_user,
    create_access_token,
    create_user,
    decode_access_token,
    hash_password,
    verify_password,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from backend.models.user import User

SECRET = "test-secret-key-with-at-least-32-characters"


class TestPasswordHashing:
    def test_hash_password_returns_bcrypt_hash(self) -> None:
        hashed = hash_password("mypassword")
        assert hashed.startswith("$2b$")

    def test_verify_password_correct(self) -> None:
        hashed = hash_password("secret")
        assert verify_password("secret", hashed) is True

    def test_verify_password_incorrect(self) -> None:
        hashed = hash_password("secret")
        assert verify_password("wrong", hashed) is False


class TestAccessTokens:
    def test_roundtrip(self) -> None:
        token = create_access_token({"sub": "42"}, SECRET)
        payload = decode_access_token(token, SECRET)
        assert payload is not None
        assert payload["sub"] == "42"
        assert payload["type"] == "access"

    def test_wrong_secret_is_rejected(self) -> None:
        token = create_access_token({"sub": "42"}, SECRET)
        assert decode_access_token(token, "another-secret-key-of-sufficient-length") is None

    def test_expired_token_is_rejected(self) -> None:
        token = create_access_token({"sub": "42"}, SECRET, expires_minutes=-1)
        assert decode_access_token(token, SECRET) is None

    def test_non_access_token_is_rejected(self) -> None:
        token = jwt.encode({"sub": "42", "type": "refresh"}, SECRET, algorithm=ALGORITHM)
        assert decode_access_token(token, SECRET) is None


class TestUsers:
    async def test_authenticate_user(self, db_session: AsyncSession, user: User) -> None:
        found = await authenticate_user(db_session, "alice", "correct-horse-battery")
        assert found is not None
        assert found.id == user.id

    async def test_authenticate_wrong_password(
        self, db_session: AsyncSession, user: User
    ) -> None:
        assert await authenticate_user(db_session, "alice", "nope") is None

    async def test_authenticate_unknown_user(self, db_session: AsyncSession) -> None:
        assert await authenticate_user(db_session, "nobody", "whatever") is None

    async def test_create_user_rejects_taken_username(
        self, db_session: AsyncSession, user: User
    ) -> None:
        with pytest.raises(ConflictError, match="Username already taken"):
            await create_user(db_session, user.username, "another-password")

    async def test_create_user_hashes_password(self, db_session: AsyncSession) -> None:
        created = await create_user(db_session, "bob", "plain-password", "Bob")
        assert created.password_hash != "plain-password"
        assert verify_password("plain-password", created.password_hash)
        assert created.display_name == "Bob"
