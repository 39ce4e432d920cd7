"""Identity lookups used by registration and login."""

from __future__ import annotations

from typing import Any, cast

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from core import DUMMY_PASSWORD_HASH, verify_password
from models import User


def _eq(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column == value)


def normalize_identifier(value: str) -> str:
    return value.strip()


async def registration_conflict_exists(
    session: AsyncSession,
    *,
    email: str,
    nickname: str,
) -> bool:
    """Return True when either unique field is already taken (exact match)."""
    existing = await session.execute(
        select(User.id)
        .where(
            or_(
                _eq(User.email, email),
                _eq(User.nickname, nickname),
            )
        )
        .limit(1)
    )
    return existing.scalar_one_or_none() is not None


async def find_user_by_email(session: AsyncSession, email: str) -> User | None:
    result = await session.execute(select(User).where(_eq(User.email, email)).limit(1))
    return result.scalar_one_or_none()


async def resolve_login_user(
    session: AsyncSession,
    *,
    email: str,
    password: str,
) -> User | None:
    """Return the user only when the email exists and the password matches."""
    user = await find_user_by_email(session, normalize_identifier(email))
    if user is None:
        # Keep unknown-email and wrong-password paths equally expensive.
        verify_password(password, DUMMY_PASSWORD_HASH)
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user
