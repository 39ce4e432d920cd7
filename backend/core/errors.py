"""Application error taxonomy and its translation to HTTP responses."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

logger = logging.getLogger(__name__)

UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred."


class AppError(Exception):
    """Base class for errors that map onto a client-facing response."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = UNEXPECTED_ERROR_MESSAGE

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.message}


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class UnauthorizedError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid token"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class ConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Conflict"


class PayloadTooLargeError(AppError):
    status_code = status.HTTP_413_CONTENT_TOO_LARGE
    default_message = "Payload too large"


class UpstreamFailure(AppError):
    """An object store, database or provider call failed."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Upstream service failure"


class UpstreamFetchError(UpstreamFailure):
    default_message = "Failed to fetch image from URL"


class ImageGenerationError(UpstreamFailure):
    default_message = "Failed to generate AI avatar."


class UnexpectedError(AppError):
    default_message = UNEXPECTED_ERROR_MESSAGE


def _format_location(location: Sequence[Any]) -> str:
    parts = [str(part) for part in location if part not in ("body", "query", "path")]
    return ".".join(parts) or "request"


def format_validation_errors(errors: Sequence[dict[str, Any]]) -> str:
    """Collapse pydantic error entries into one readable sentence."""
    missing = [
        _format_location(error.get("loc", ()))
        for error in errors
        if error.get("type") == "missing"
    ]
    if missing:
        return f"Missing required field(s): {', '.join(missing)}"
    messages = [
        f"{_format_location(error.get('loc', ()))}: {error.get('msg', 'invalid value')}"
        for error in errors
    ]
    return "; ".join(messages) or "Invalid request"


async def _handle_app_error(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error(
            "Request failed",
            extra={"path": request.url.path, "error": exc.message},
            exc_info=exc.__cause__,
        )
    return JSONResponse(exc.to_dict(), status_code=exc.status_code)


async def _handle_request_validation_error(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    return JSONResponse(
        {"error": format_validation_errors(exc.errors())},
        status_code=status.HTTP_400_BAD_REQUEST,
    )


async def _handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        {"error": str(exc.detail)},
        status_code=exc.status_code,
        headers=exc.headers,
    )


async def _handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error", extra={"path": request.url.path})
    return JSONResponse(
        UnexpectedError().to_dict(),
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, _handle_app_error)
    app.add_exception_handler(RequestValidationError, _handle_request_validation_error)
    app.add_exception_handler(HTTPException, _handle_http_exception)
    app.add_exception_handler(Exception, _handle_unexpected_error)


__all__ = [
    "AppError",
    "ConflictError",
    "ImageGenerationError",
    "NotFoundError",
    "PayloadTooLargeError",
    "UnauthorizedError",
    "UnexpectedError",
    "UpstreamFailure",
    "UpstreamFetchError",
    "ValidationError",
    "format_validation_errors",
    "register_exception_handlers",
]
