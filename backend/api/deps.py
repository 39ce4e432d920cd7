"""Shared FastAPI dependencies."""

from __future__ import annotations

from collections.abc import AsyncIterator

import httpx
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from core import NotFoundError, UnauthorizedError, resolve_access_token, settings
from db.session import get_session
from models import User
from services import (
    AvatarService,
    ImageGenerator,
    ObjectStore,
    build_image_generator,
    get_object_store,
)
from services.preview_tickets import PreviewTicketVerifier, get_redis_client

bearer_scheme = HTTPBearer(auto_error=False)


async def get_db() -> AsyncIterator[AsyncSession]:
    async for session in get_session():
        yield session


def get_current_user_id(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> str:
    """Gate a route behind a valid bearer token and expose the caller's id.

    Missing, malformed, forged and expired tokens all produce the same 401.
    The users table is not consulted here.
    """
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError()
    try:
        user_id = resolve_access_token(credentials.credentials)
    except ValueError as exc:
        raise UnauthorizedError() from exc
    request.state.user_id = user_id
    return user_id


async def get_current_user(
    user_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db),
) -> User:
    user = await session.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def get_http_client(request: Request) -> httpx.AsyncClient:
    """Return the process-wide HTTP client created during app startup."""
    return request.app.state.http_client


def get_store() -> ObjectStore:
    return get_object_store()


def get_image_generator(
    http_client: httpx.AsyncClient = Depends(get_http_client),
) -> ImageGenerator:
    return build_image_generator(http_client)


def get_preview_ticket_verifier() -> PreviewTicketVerifier:
    return PreviewTicketVerifier(
        get_redis_client(),
        ttl_seconds=settings.preview_ticket_ttl_seconds,
    )


def get_avatar_service(
    session: AsyncSession = Depends(get_db),
    store: ObjectStore = Depends(get_store),
    generator: ImageGenerator = Depends(get_image_generator),
    http_client: httpx.AsyncClient = Depends(get_http_client),
    ticket_verifier: PreviewTicketVerifier = Depends(get_preview_ticket_verifier),
) -> AvatarService:
    return AvatarService(
        session,
        store,
        generator,
        http_client,
        ticket_verifier=ticket_verifier,
        require_preview_ticket=settings.require_preview_ticket,
        delete_replaced_avatars=settings.delete_replaced_avatars,
        max_image_bytes=settings.upload_max_bytes,
        fetch_timeout=settings.preview_fetch_timeout_seconds,
        preview_ticket_ttl_seconds=settings.preview_ticket_ttl_seconds,
    )
