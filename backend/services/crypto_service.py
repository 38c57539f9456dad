"""Symmetric encryption for remote-store tokens stored at rest."""

from __future__ import annotations

import base64
import hashlib

from cryptography.fernet import Fernet, InvalidToken


def _derive_key(secret_key: str) -> bytes:
    """Derive a Fernet key from the application secret using SHA-256."""
    digest = hashlib.sha256(secret_key.encode()).digest()
    return base64.urlsafe_b64encode(digest)


def encrypt_token(token: str, secret_key: str) -> str:
    """Encrypt a bearer/refresh token for storage on the user row."""
    return Fernet(_derive_key(secret_key)).encrypt(token.encode()).decode()


def decrypt_token(ciphertext: str, secret_key: str) -> str:
    """Decrypt a stored token. Raises ValueError when the secret does not match."""
    try:
        return Fernet(_derive_key(secret_key)).decrypt(ciphertext.encode()).decode()
    except InvalidToken as exc:
        raise ValueError("Failed to decrypt stored Drive token") from exc
