"""Tests for password hashing and token helpers."""

from datetime import timedelta

import jwt
import pytest

from core import security
from core.config import settings


def test_hash_password_is_salted_and_verifiable():
    first = security.hash_password("correct horse")
    second = security.hash_password("correct horse")

    assert first != second
    assert security.verify_password("correct horse", first)
    assert not security.verify_password("wrong horse", first)


def test_verify_password_rejects_malformed_hash():
    assert security.verify_password("anything", "not-a-bcrypt-hash") is False


def test_needs_rehash_flags_weaker_hashes():
    strong = security.hash_password("secret")
    weak = "$2b$04$" + strong.split("$", 3)[3]

    assert security.needs_rehash(strong) is False
    assert security.needs_rehash(weak) is True
    assert security.needs_rehash("garbage") is True


def test_access_token_carries_user_id_and_seven_day_expiry():
    token = security.create_access_token("user-123")
    payload = jwt.decode(
        token,
        settings.jwt_secret_key,
        algorithms=[settings.jwt_algorithm],
    )

    assert payload["id"] == "user-123"
    assert payload["type"] == security.ACCESS_TOKEN_TYPE
    assert payload["exp"] - payload["iat"] == 7 * 24 * 60 * 60
    assert security.resolve_access_token(token) == "user-123"


def test_decode_token_rejects_other_token_types():
    token = security.create_token(
        {"sub": "user-123"},
        token_type="avatar_preview",
        expires_delta=timedelta(minutes=5),
    )

    with pytest.raises(ValueError):
        security.resolve_access_token(token)


def test_decode_token_failures_share_one_message():
    expired = security.create_token(
        {"id": "user-123"},
        token_type=security.ACCESS_TOKEN_TYPE,
        expires_delta=timedelta(seconds=-1),
    )
    tampered = security.create_access_token("user-123")[:-2] + "xx"

    messages = []
    for token in (expired, tampered, "", "a.b.c"):
        with pytest.raises(ValueError) as exc_info:
            security.resolve_access_token(token)
        messages.append(str(exc_info.value))

    assert set(messages) == {"Invalid token"}


def test_resolve_access_token_requires_id_claim():
    token = security.create_token(
        {},
        token_type=security.ACCESS_TOKEN_TYPE,
        expires_delta=timedelta(minutes=5),
    )

    with pytest.raises(ValueError):
        security.resolve_access_token(token)
