"""Tests for preview ticket issuance and redemption."""

import pytest

from core import ValidationError, create_access_token
from services.preview_tickets import (
    PreviewTicketVerifier,
    issue_preview_ticket,
    read_preview_ticket,
)

URL = "https://images.test/generated.png"


class Ledger:
    def __init__(self) -> None:
        self.keys: dict[str, int | None] = {}

    async def set(self, name, value, *, ex=None, nx=False):
        if nx and name in self.keys:
            return None
        self.keys[name] = ex
        return True

    async def delete(self, *names):
        removed = [name for name in names if name in self.keys]
        for name in removed:
            del self.keys[name]
        return len(removed)


def test_read_preview_ticket_round_trips_claims():
    ticket = read_preview_ticket(issue_preview_ticket("user-1", URL, ttl_seconds=60))

    assert ticket.user_id == "user-1"
    assert ticket.ticket_id


def test_read_preview_ticket_rejects_access_tokens():
    with pytest.raises(ValueError):
        read_preview_ticket(create_access_token("user-1"))


@pytest.mark.asyncio
async def test_redeem_burns_ticket():
    ledger = Ledger()
    verifier = PreviewTicketVerifier(ledger, ttl_seconds=60)
    ticket = issue_preview_ticket("user-1", URL, ttl_seconds=60)

    parsed = await verifier.redeem(ticket, user_id="user-1", image_url=URL)

    assert ledger.keys == {f"preview-ticket:{parsed.ticket_id}": 60}
    with pytest.raises(ValidationError):
        await verifier.redeem(ticket, user_id="user-1", image_url=URL)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("user_id", "image_url"),
    [("user-2", URL), ("user-1", "https://images.test/other.png")],
)
async def test_redeem_rejects_other_user_or_url(user_id, image_url):
    ledger = Ledger()
    verifier = PreviewTicketVerifier(ledger, ttl_seconds=60)
    ticket = issue_preview_ticket("user-1", URL, ttl_seconds=60)

    with pytest.raises(ValidationError):
        await verifier.redeem(ticket, user_id=user_id, image_url=image_url)
    assert ledger.keys == {}


@pytest.mark.asyncio
async def test_redeem_rejects_garbage():
    verifier = PreviewTicketVerifier(Ledger(), ttl_seconds=60)

    with pytest.raises(ValidationError) as exc_info:
        await verifier.redeem("not-a-ticket", user_id="user-1", image_url=URL)

    assert exc_info.value.message == "Invalid or expired preview ticket."


@pytest.mark.asyncio
async def test_released_ticket_can_be_redeemed_again():
    ledger = Ledger()
    verifier = PreviewTicketVerifier(ledger, ttl_seconds=60)
    ticket = issue_preview_ticket("user-1", URL, ttl_seconds=60)

    parsed = await verifier.redeem(ticket, user_id="user-1", image_url=URL)
    await verifier.release(parsed)

    assert ledger.keys == {}
    again = await verifier.redeem(ticket, user_id="user-1", image_url=URL)
    assert again.ticket_id == parsed.ticket_id
