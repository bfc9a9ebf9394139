"""Password hashing and access-token helpers."""
from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

import bcrypt
from jose import JWTError, jwt

from aura_talk.core.settings import settings

# bcrypt only reads the first 72 bytes of a password.
BCRYPT_MAX_BYTES = 72


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    """Return a salted bcrypt hash of ``password``."""
    return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt()).decode("ascii")


def verify_password(password: str, stored: str) -> bool:
    """Check ``password`` against a value produced by :func:`hash_password`."""
    try:
        return bcrypt.checkpw(_password_bytes(password), stored.encode("ascii"))
    except ValueError:
        # Malformed or non-bcrypt stored value.
        return False


def create_access_token(uid: str, token_version: int, *, issued_at: datetime | None = None) -> str:
    """Create a JWT access token bound to the identity's current token version."""
    now = issued_at or datetime.now(UTC)
    expire = now + timedelta(minutes=settings.access_token_expire_minutes)
    to_encode: dict[str, Any] = {
        "sub": uid,
        "ver": token_version,
        "iat": int(now.timestamp()),
        "exp": expire,
    }
    encoded_jwt: str = jwt.encode(
        to_encode,
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )
    return encoded_jwt


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode and validate an access token.

    Raises:
        JWTError: If the signature, expiry or required claims are invalid.
    """
    payload: dict[str, Any] = jwt.decode(
        token,
        settings.secret_key,
        algorithms=[settings.jwt_algorithm],
    )
    if not payload.get("sub") or "ver" not in payload:
        raise JWTError("Token is missing required claims")
    return payload
