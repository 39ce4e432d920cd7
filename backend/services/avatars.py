"""Avatar lifecycle: local upload, AI preview generation and preview confirmation."""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from pathlib import PurePosixPath
from urllib.parse import urlsplit
from uuid import uuid4

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from core import NotFoundError, UpstreamFailure, UpstreamFetchError, ValidationError, settings
from models import User

from .image_generation import ImageGenerator
from .images import (
    JPEG_EXTENSION,
    RemoteImageError,
    fetch_image_bytes,
    process_image_bytes,
)
from .preview_tickets import PreviewTicket, PreviewTicketVerifier, issue_preview_ticket
from .prompts import compose_prompt
from .storage import ObjectStore

logger = logging.getLogger(__name__)

AVATAR_KEY_PREFIX = "avatars/"
DEFAULT_UPLOAD_CONTENT_TYPE = "application/octet-stream"
ALLOWED_URL_SCHEMES = frozenset({"http", "https"})
_EXTENSION_PATTERN = re.compile(r"^\.[a-z0-9]{1,10}$")


@dataclass(frozen=True)
class AvatarUpdate:
    avatar_url: str
    user: User


@dataclass(frozen=True)
class AvatarPreview:
    image_url: str
    preview_ticket: str | None = None


def file_extension(filename: str | None) -> str:
    """Return the lower-cased extension of ``filename`` or "" when unusable."""
    if not filename:
        return ""
    suffix = PurePosixPath(filename.replace("\\", "/")).suffix.lower()
    return suffix if _EXTENSION_PATTERN.fullmatch(suffix) else ""


def build_avatar_key(user_id: str, extension: str) -> str:
    return f"{AVATAR_KEY_PREFIX}avatar-{user_id}-{uuid4().hex}{extension}"


class AvatarService:
    """Orchestrates the object store, the synthesis provider and the users table.

    Every write goes to a fresh object key, so concurrent updates for the same
    user never clobber each other's objects; the last committed row wins.
    """

    def __init__(
        self,
        session: AsyncSession,
        store: ObjectStore,
        generator: ImageGenerator,
        http_client: httpx.AsyncClient,
        *,
        ticket_verifier: PreviewTicketVerifier | None = None,
        require_preview_ticket: bool = False,
        delete_replaced_avatars: bool = False,
        max_image_bytes: int | None = None,
        fetch_timeout: float | None = None,
        preview_ticket_ttl_seconds: int | None = None,
    ) -> None:
        self.session = session
        self.store = store
        self.generator = generator
        self.http_client = http_client
        self.ticket_verifier = ticket_verifier
        self.require_preview_ticket = require_preview_ticket
        self.delete_replaced_avatars = delete_replaced_avatars
        self.max_image_bytes = max_image_bytes or settings.upload_max_bytes
        self.fetch_timeout = fetch_timeout or settings.preview_fetch_timeout_seconds
        self.preview_ticket_ttl_seconds = (
            preview_ticket_ttl_seconds or settings.preview_ticket_ttl_seconds
        )

    async def upload(
        self,
        user_id: str,
        data: bytes,
        *,
        filename: str | None,
        content_type: str | None,
    ) -> AvatarUpdate:
        if not user_id:
            raise ValidationError("Authenticated user is required.")
        if not data:
            raise ValidationError("No file uploaded.")

        object_key = build_avatar_key(user_id, file_extension(filename))
        return await self._store_and_assign(
            user_id,
            object_key,
            data,
            content_type or DEFAULT_UPLOAD_CONTENT_TYPE,
            storage_error="Failed to upload avatar to storage.",
        )

    async def generate(
        self,
        prompt: str | None,
        art_style: str | None = None,
        artistic_filters: list[str] | None = None,
        *,
        user_id: str | None = None,
    ) -> AvatarPreview:
        """Produce a preview URL; nothing is stored and no row changes."""
        if not prompt or not prompt.strip():
            raise ValidationError("Prompt is required.")

        full_prompt = compose_prompt(prompt, art_style, artistic_filters)
        logger.debug("Composed avatar prompt", extra={"prompt": full_prompt})
        image_url = await self.generator.generate(full_prompt)

        ticket = None
        if user_id:
            ticket = issue_preview_ticket(
                user_id,
                image_url,
                ttl_seconds=self.preview_ticket_ttl_seconds,
            )
        return AvatarPreview(image_url=image_url, preview_ticket=ticket)

    async def save_generated(
        self,
        user_id: str,
        image_url: str | None,
        *,
        preview_ticket: str | None = None,
    ) -> AvatarUpdate:
        if not user_id:
            raise ValidationError("Authenticated user is required.")
        if not image_url or not image_url.strip():
            raise ValidationError("Image URL is required to save.")
        image_url = image_url.strip()
        if urlsplit(image_url).scheme.lower() not in ALLOWED_URL_SCHEMES:
            raise ValidationError("Image URL must use http or https.")

        claimed = await self._check_preview_ticket(
            preview_ticket,
            user_id=user_id,
            image_url=image_url,
        )
        try:
            return await self._fetch_and_assign(user_id, image_url)
        except Exception:
            if claimed is not None:
                await self._release_ticket(claimed)
            raise

    async def _fetch_and_assign(self, user_id: str, image_url: str) -> AvatarUpdate:
        try:
            raw_bytes = await fetch_image_bytes(
                self.http_client,
                image_url,
                max_bytes=self.max_image_bytes,
                timeout=self.fetch_timeout,
            )
        except RemoteImageError as exc:
            logger.error(
                "Failed to fetch generated avatar",
                extra={"user_id": user_id, "reason": str(exc)},
            )
            raise UpstreamFetchError("Failed to fetch image from URL.") from exc

        try:
            jpeg_bytes, content_type = await asyncio.to_thread(process_image_bytes, raw_bytes)
        except ValueError as exc:
            raise UpstreamFetchError("Fetched content is not a valid image.") from exc

        object_key = build_avatar_key(user_id, JPEG_EXTENSION)
        return await self._store_and_assign(
            user_id,
            object_key,
            jpeg_bytes,
            content_type,
            storage_error="Failed to upload generated avatar.",
        )

    async def _check_preview_ticket(
        self,
        preview_ticket: str | None,
        *,
        user_id: str,
        image_url: str,
    ) -> PreviewTicket | None:
        if not preview_ticket:
            if self.require_preview_ticket:
                raise ValidationError("Preview ticket is required to save.")
            return None
        if self.ticket_verifier is None:
            raise ValidationError("Preview tickets are not accepted.")
        return await self.ticket_verifier.redeem(
            preview_ticket,
            user_id=user_id,
            image_url=image_url,
        )

    async def _release_ticket(self, ticket: PreviewTicket) -> None:
        if self.ticket_verifier is None:
            return
        try:
            await self.ticket_verifier.release(ticket)
        except Exception as release_error:
            logger.warning(
                "Failed to release preview ticket after unsuccessful save",
                extra={"user_id": ticket.user_id},
                exc_info=release_error,
            )

    async def _store_and_assign(
        self,
        user_id: str,
        object_key: str,
        data: bytes,
        content_type: str,
        *,
        storage_error: str,
    ) -> AvatarUpdate:
        user = await self.session.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")
        previous_key = user.avatar_key

        try:
            await self.store.put(object_key, data, content_type)
        except Exception as exc:
            logger.error(
                "Failed to upload avatar to storage",
                extra={"avatar_key": object_key},
                exc_info=exc,
            )
            raise UpstreamFailure(storage_error) from exc

        avatar_url = self.store.public_url(object_key)
        user.avatar_url = avatar_url
        user.avatar_key = object_key
        self.session.add(user)
        try:
            await self.session.commit()
        except Exception as exc:
            await self.session.rollback()
            await self._discard_object(
                object_key,
                reason="Failed to cleanup uploaded avatar after database update failure",
            )
            raise UpstreamFailure("Failed to update user avatar in the database.") from exc
        await self.session.refresh(user)

        if (
            self.delete_replaced_avatars
            and previous_key is not None
            and previous_key != object_key
        ):
            await self._discard_object(
                previous_key,
                reason="Failed to cleanup replaced avatar object",
            )
        return AvatarUpdate(avatar_url=avatar_url, user=user)

    async def _discard_object(self, object_key: str, *, reason: str) -> None:
        """Best-effort delete; a failure is logged and never re-raised."""
        try:
            await self.store.delete(object_key)
        except Exception as cleanup_error:
            logger.warning(
                reason,
                extra={"avatar_key": object_key},
                exc_info=cleanup_error,
            )


__all__ = [
    "AVATAR_KEY_PREFIX",
    "AvatarPreview",
    "AvatarService",
    "AvatarUpdate",
    "build_avatar_key",
    "file_extension",
]
