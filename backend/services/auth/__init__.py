"""Authentication domain services."""

from .identity_resolution import (
    find_user_by_email,
    normalize_identifier,
    registration_conflict_exists,
    resolve_login_user,
)
from .registration import DUPLICATE_IDENTITY_MESSAGE, calculate_age, register_user

__all__ = [
    "DUPLICATE_IDENTITY_MESSAGE",
    "calculate_age",
    "find_user_by_email",
    "normalize_identifier",
    "register_user",
    "registration_conflict_exists",
    "resolve_login_user",
]
