"""Tests for error translation and the health route."""

import pytest
from httpx import ASGITransport, AsyncClient

from core.errors import format_validation_errors


def test_format_validation_errors_lists_missing_fields():
    errors = [
        {"type": "missing", "loc": ("body", "email"), "msg": "Field required"},
        {"type": "missing", "loc": ("body", "password"), "msg": "Field required"},
    ]

    assert format_validation_errors(errors) == "Missing required field(s): email, password"


def test_format_validation_errors_joins_other_messages():
    errors = [
        {"type": "date_from_datetime_parsing", "loc": ("body", "birthday"), "msg": "Input should be a valid date"},
        {"type": "string_type", "loc": ("body",), "msg": "Input should be a valid string"},
    ]

    assert format_validation_errors(errors) == (
        "birthday: Input should be a valid date; request: Input should be a valid string"
    )


@pytest.mark.asyncio
async def test_hello_route(async_client):
    response = await async_client.get("/api/hello")

    assert response.status_code == 200
    assert response.json() == {"message": "Hello World"}


@pytest.mark.asyncio
async def test_unexpected_errors_use_generic_body(app):
    @app.get("/api/boom")
    async def boom() -> None:
        raise RuntimeError("kaboom")

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        response = await client.get("/api/boom")

    assert response.status_code == 500
    assert response.json() == {"error": "An unexpected error occurred."}


@pytest.mark.asyncio
async def test_malformed_json_is_a_bad_request(async_client, auth_headers):
    response = await async_client.post(
        "/api/users/avatar/generate",
        content=b"{not json",
        headers={**auth_headers, "Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert "error" in response.json()


@pytest.mark.asyncio
async def test_unknown_route_uses_error_body(async_client):
    response = await async_client.get("/api/does-not-exist")

    assert response.status_code == 404
    assert response.json() == {"error": "Not Found"}


@pytest.mark.asyncio
async def test_app_errors_keep_their_status_and_message(async_client):
    response = await async_client.get("/api/auth/me")

    assert response.status_code == 401
    assert response.json() == {"error": "Invalid token"}
