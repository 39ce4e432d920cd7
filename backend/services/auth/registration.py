"""Account creation."""

from __future__ import annotations

from datetime import date

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core import ConflictError, ValidationError, hash_password
from db.errors import is_unique_violation
from models import User

from .identity_resolution import normalize_identifier, registration_conflict_exists

DUPLICATE_IDENTITY_MESSAGE = "Email or Nickname already exists"


def calculate_age(birthday: date, today: date | None = None) -> int:
    """Whole years elapsed since ``birthday`` as of ``today``."""
    today = today or date.today()
    age = today.year - birthday.year
    if (today.month, today.day) < (birthday.month, birthday.day):
        age -= 1
    return age


async def register_user(
    session: AsyncSession,
    *,
    first_name: str,
    last_name: str,
    email: str,
    password: str,
    birthday: date,
    gender: str,
    nickname: str,
    today: date | None = None,
) -> User:
    """Create a user, rejecting duplicate email/nickname with ``ConflictError``."""
    email = normalize_identifier(email)
    nickname = normalize_identifier(nickname)
    fields = {
        "first_name": first_name.strip(),
        "last_name": last_name.strip(),
        "email": email,
        "password": password,
        "gender": gender.strip(),
        "nickname": nickname,
    }
    if not all(fields.values()):
        raise ValidationError("All fields are required")

    age = calculate_age(birthday, today)
    if age < 0:
        raise ValidationError("Birthday cannot be in the future")

    if await registration_conflict_exists(session, email=email, nickname=nickname):
        raise ConflictError(DUPLICATE_IDENTITY_MESSAGE)

    user = User(
        first_name=fields["first_name"],
        last_name=fields["last_name"],
        email=email,
        nickname=nickname,
        password_hash=hash_password(password),
        birthday=birthday,
        age=age,
        gender=fields["gender"],
    )
    session.add(user)
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        if is_unique_violation(exc):
            raise ConflictError(DUPLICATE_IDENTITY_MESSAGE) from exc
        raise
    await session.refresh(user)
    return user
