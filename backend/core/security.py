"""Password hashing and bearer token helpers."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import bcrypt
import jwt

from .config import settings

ACCESS_TOKEN_TYPE = "access"
BCRYPT_ROUNDS = 12
# bcrypt only looks at the first 72 bytes; newer releases raise instead of truncating.
BCRYPT_MAX_PASSWORD_BYTES = 72


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_PASSWORD_BYTES]


def hash_password(password: str) -> str:
    """Return a salted bcrypt hash for ``password``."""
    hashed = bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt(rounds=BCRYPT_ROUNDS))
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(_password_bytes(password), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash.
        return False


def needs_rehash(password_hash: str) -> bool:
    """Return True when the stored hash uses fewer rounds than configured."""
    try:
        rounds = int(password_hash.split("$")[2])
    except (IndexError, ValueError):
        return True
    return rounds < BCRYPT_ROUNDS


# Compared against on unknown logins so both failure paths cost one bcrypt check.
DUMMY_PASSWORD_HASH = hash_password("dummy-password-for-timing")


def create_token(
    claims: dict[str, Any],
    *,
    token_type: str,
    expires_delta: timedelta,
) -> str:
    """Sign ``claims`` with the configured secret and an expiry."""
    issued_at = datetime.now(timezone.utc)
    payload = {
        **claims,
        "type": token_type,
        "iat": issued_at,
        "exp": issued_at + expires_delta,
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def create_access_token(user_id: str) -> str:
    return create_token(
        {"id": user_id},
        token_type=ACCESS_TOKEN_TYPE,
        expires_delta=timedelta(minutes=settings.access_token_expire_minutes),
    )


def decode_token(token: str, *, expected_type: str | None = None) -> dict[str, Any]:
    """Decode and verify a signed token.

    Every failure (bad signature, expiry, malformed input, wrong token type)
    surfaces as the same ``ValueError`` so callers cannot tell them apart.
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["exp", "iat", "type"]},
        )
    except jwt.PyJWTError as exc:
        raise ValueError("Invalid token") from exc

    if expected_type is not None and payload.get("type") != expected_type:
        raise ValueError("Invalid token")
    return payload


def resolve_access_token(token: str) -> str:
    """Return the user id carried by a valid access token."""
    payload = decode_token(token, expected_type=ACCESS_TOKEN_TYPE)
    user_id = payload.get("id")
    if isinstance(user_id, int):
        return str(user_id)
    if isinstance(user_id, str) and user_id.strip():
        return user_id.strip()
    raise ValueError("Invalid token")


__all__ = [
    "ACCESS_TOKEN_TYPE",
    "DUMMY_PASSWORD_HASH",
    "create_access_token",
    "create_token",
    "decode_token",
    "hash_password",
    "needs_rehash",
    "resolve_access_token",
    "verify_password",
]
