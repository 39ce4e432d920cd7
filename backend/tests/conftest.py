"""Pytest fixtures for the avatar service backend."""

from collections.abc import AsyncIterator, Iterator
from datetime import date
from io import BytesIO
from pathlib import Path

from alembic import command
from alembic.config import Config
import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI
from PIL import Image
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from api.deps import (
    get_db,
    get_http_client,
    get_image_generator,
    get_preview_ticket_verifier,
    get_store,
)
from app import create_app
from core import create_access_token, hash_password
from core.config import settings
from models import User
from services.preview_tickets import PreviewTicketVerifier

PASSWORD = "Sup3rSecret!"
PUBLIC_BASE_URL = "https://cdn.test"


def make_png_bytes(size: tuple[int, int] = (8, 8)) -> bytes:
    image = Image.new("RGB", size, color=(255, 0, 0))
    buffer = BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def _run_alembic_migrations(database_url: str) -> None:
    """Apply Alembic migrations to the given database URL."""
    backend_dir = Path(__file__).resolve().parents[1]
    alembic_cfg = Config(str(backend_dir / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(backend_dir / "alembic"))
    alembic_cfg.attributes["configure_logger"] = False

    original_database_url = settings.database_url
    try:
        settings.database_url = database_url
        command.upgrade(alembic_cfg, "head")
    finally:
        settings.database_url = original_database_url


class FakeObjectStore:
    """In-memory stand-in for the MinIO store."""

    def __init__(self) -> None:
        self.objects: dict[str, tuple[bytes, str]] = {}
        self.deleted: list[str] = []
        self.fail_put = False
        self.fail_delete = False

    async def put(self, object_key: str, data: bytes, content_type: str) -> None:
        if self.fail_put:
            raise RuntimeError("storage unavailable")
        self.objects[object_key] = (data, content_type)

    async def delete(self, object_key: str) -> None:
        if self.fail_delete:
            raise RuntimeError("storage unavailable")
        self.deleted.append(object_key)
        self.objects.pop(object_key, None)

    def public_url(self, object_key: str) -> str:
        return f"{PUBLIC_BASE_URL}/avatars/{object_key}"


class FakeImageGenerator:
    def __init__(self, image_url: str = "https://images.test/generated.png") -> None:
        self.image_url = image_url
        self.prompts: list[str] = []
        self.error: Exception | None = None

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.image_url


class InMemoryRedis:
    """Just enough of redis.asyncio.Redis for the preview-ticket ledger."""

    def __init__(self) -> None:
        self.values: dict[str, bytes] = {}
        self.fail = False

    async def set(self, name, value, *, ex=None, nx=False):
        if nx and name in self.values:
            return None
        self.values[name] = value
        return True

    async def delete(self, *names: str) -> int:
        if self.fail:
            raise ConnectionError("redis unavailable")
        return sum(1 for name in names if self.values.pop(name, None) is not None)


class RemoteImages:
    """Routes preview URLs to canned responses for httpx.MockTransport."""

    def __init__(self) -> None:
        self.responses: dict[str, httpx.Response] = {}
        self.requested: list[str] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requested.append(url)
        response = self.responses.get(url)
        if response is None:
            return httpx.Response(404)
        return response


@pytest.fixture(scope="session")
def test_database_url(tmp_path_factory) -> str:
    """Create and migrate a file-backed SQLite database for tests."""
    db_dir = tmp_path_factory.mktemp("sqlite")
    db_path = db_dir / "backend-test.db"
    database_url = f"sqlite+aiosqlite:///{db_path}"
    _run_alembic_migrations(database_url)
    return database_url


@pytest_asyncio.fixture()
async def test_engine(test_database_url: str) -> AsyncIterator:
    """Create an async engine bound to the migrated SQLite test database."""
    engine = create_async_engine(
        test_database_url,
        connect_args={"check_same_thread": False},
    )
    yield engine
    await engine.dispose()


@pytest.fixture()
def session_maker(test_engine) -> async_sessionmaker[AsyncSession]:
    """Return a session factory bound to the test engine."""
    return async_sessionmaker(test_engine, expire_on_commit=False)


@pytest.fixture()
def object_store() -> FakeObjectStore:
    return FakeObjectStore()


@pytest.fixture()
def image_generator() -> FakeImageGenerator:
    return FakeImageGenerator()


@pytest.fixture()
def redis_stub() -> InMemoryRedis:
    return InMemoryRedis()


@pytest.fixture()
def remote_images() -> RemoteImages:
    return RemoteImages()


@pytest_asyncio.fixture()
async def http_client(remote_images: RemoteImages) -> AsyncIterator[httpx.AsyncClient]:
    async with httpx.AsyncClient(transport=httpx.MockTransport(remote_images.handler)) as client:
        yield client


@pytest.fixture()
def app(
    session_maker,
    object_store: FakeObjectStore,
    image_generator: FakeImageGenerator,
    redis_stub: InMemoryRedis,
    http_client: httpx.AsyncClient,
) -> Iterator[FastAPI]:
    """Create the FastAPI app with external collaborators replaced by fakes."""
    application = create_app()

    async def override_get_db() -> AsyncIterator[AsyncSession]:
        async with session_maker() as session:
            yield session

    application.dependency_overrides[get_db] = override_get_db
    application.dependency_overrides[get_store] = lambda: object_store
    application.dependency_overrides[get_image_generator] = lambda: image_generator
    application.dependency_overrides[get_http_client] = lambda: http_client
    application.dependency_overrides[get_preview_ticket_verifier] = lambda: PreviewTicketVerifier(
        redis_stub,
        ttl_seconds=settings.preview_ticket_ttl_seconds,
    )
    yield application


@pytest_asyncio.fixture()
async def async_client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    """Return an HTTPX async client bound to the FastAPI app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


@pytest_asyncio.fixture(autouse=True)
async def clean_database(session_maker) -> AsyncIterator[None]:
    """Clear tables before each test to guarantee isolation."""
    async with session_maker() as session:
        for table in reversed(SQLModel.metadata.sorted_tables):
            await session.execute(table.delete())
        await session.commit()
    yield


@pytest_asyncio.fixture()
async def db_session(session_maker) -> AsyncIterator[AsyncSession]:
    """Provide a raw database session to tests."""
    async with session_maker() as session:
        yield session


@pytest_asyncio.fixture()
async def user(db_session: AsyncSession) -> User:
    """A persisted user to act as the authenticated caller."""
    account = User(
        first_name="Ada",
        last_name="Lovelace",
        email="ada@example.com",
        nickname="ada",
        password_hash=hash_password(PASSWORD),
        birthday=date(1990, 12, 10),
        age=35,
        gender="female",
    )
    db_session.add(account)
    await db_session.commit()
    await db_session.refresh(account)
    return account


@pytest.fixture()
def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture()
def png_bytes() -> bytes:
    return make_png_bytes()
