"""Core configuration, security and error primitives."""

from .config import settings
from .errors import (
    AppError,
    ConflictError,
    ImageGenerationError,
    NotFoundError,
    PayloadTooLargeError,
    UnauthorizedError,
    UnexpectedError,
    UpstreamFailure,
    UpstreamFetchError,
    ValidationError,
    register_exception_handlers,
)
from .logging_config import configure_logging
from .security import (
    DUMMY_PASSWORD_HASH,
    create_access_token,
    create_token,
    decode_token,
    hash_password,
    needs_rehash,
    resolve_access_token,
    verify_password,
)

__all__ = [
    "settings",
    "configure_logging",
    "register_exception_handlers",
    "AppError",
    "ValidationError",
    "UnauthorizedError",
    "NotFoundError",
    "ConflictError",
    "PayloadTooLargeError",
    "UpstreamFailure",
    "UpstreamFetchError",
    "ImageGenerationError",
    "UnexpectedError",
    "DUMMY_PASSWORD_HASH",
    "create_access_token",
    "create_token",
    "decode_token",
    "hash_password",
    "needs_rehash",
    "resolve_access_token",
    "verify_password",
]
