"""Signed, single-use tickets binding a generated preview to its requester."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from datetime import timedelta
from functools import lru_cache
from typing import Protocol, runtime_checkable
from uuid import uuid4

from redis.asyncio import Redis

from core import ValidationError, create_token, decode_token, settings

PREVIEW_TICKET_TYPE = "avatar_preview"
LEDGER_PREFIX = "preview-ticket"
INVALID_TICKET_MESSAGE = "Invalid or expired preview ticket."


@runtime_checkable
class SupportsTicketLedger(Protocol):
    async def set(
        self,
        name: str,
        value: bytes,
        *,
        ex: int | None = None,
        nx: bool = False,
    ) -> bool | None: ...

    async def delete(self, *names: str) -> int: ...


@dataclass(frozen=True)
class PreviewTicket:
    user_id: str
    url_digest: str
    ticket_id: str
    expires_at: int


@lru_cache
def get_redis_client() -> Redis:
    """Return a cached async Redis client for the ticket ledger."""
    return Redis.from_url(settings.redis_url, decode_responses=False)


def _ledger_key(ticket_id: str) -> str:
    return f"{LEDGER_PREFIX}:{ticket_id}"


def digest_url(image_url: str) -> str:
    return hashlib.sha256(image_url.strip().encode("utf-8")).hexdigest()


def issue_preview_ticket(user_id: str, image_url: str, *, ttl_seconds: int) -> str:
    return create_token(
        {"sub": user_id, "url": digest_url(image_url), "jti": uuid4().hex},
        token_type=PREVIEW_TICKET_TYPE,
        expires_delta=timedelta(seconds=ttl_seconds),
    )


def read_preview_ticket(ticket: str) -> PreviewTicket:
    """Decode a ticket; raises ``ValueError`` for anything unusable."""
    payload = decode_token(ticket, expected_type=PREVIEW_TICKET_TYPE)
    user_id = payload.get("sub")
    url_digest = payload.get("url")
    ticket_id = payload.get("jti")
    if not all(isinstance(value, str) and value for value in (user_id, url_digest, ticket_id)):
        raise ValueError("Invalid preview ticket")
    return PreviewTicket(
        user_id=str(user_id),
        url_digest=str(url_digest),
        ticket_id=str(ticket_id),
        expires_at=int(payload["exp"]),
    )


class PreviewTicketVerifier:
    """Checks tickets against the caller and URL, and burns them on use.

    A claimed ticket can be handed back with ``release`` when the save it
    guarded did not complete, so the preview can be confirmed again.
    """

    def __init__(self, ledger: SupportsTicketLedger, *, ttl_seconds: int) -> None:
        self.ledger = ledger
        self.ttl_seconds = max(ttl_seconds, 1)

    async def redeem(self, ticket: str, *, user_id: str, image_url: str) -> PreviewTicket:
        try:
            parsed = read_preview_ticket(ticket)
        except ValueError as exc:
            raise ValidationError(INVALID_TICKET_MESSAGE) from exc

        if parsed.user_id != user_id or parsed.url_digest != digest_url(image_url):
            raise ValidationError(INVALID_TICKET_MESSAGE)

        # The ledger entry only needs to outlive the ticket itself.
        claimed = await self.ledger.set(
            _ledger_key(parsed.ticket_id),
            b"1",
            ex=self.ttl_seconds,
            nx=True,
        )
        if not claimed:
            raise ValidationError(INVALID_TICKET_MESSAGE)
        return parsed

    async def release(self, ticket: PreviewTicket) -> None:
        await self.ledger.delete(_ledger_key(ticket.ticket_id))


__all__ = [
    "PREVIEW_TICKET_TYPE",
    "PreviewTicket",
    "PreviewTicketVerifier",
    "SupportsTicketLedger",
    "digest_url",
    "get_redis_client",
    "issue_preview_ticket",
    "read_preview_ticket",
]
