"""FastAPI application factory."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from fastapi import APIRouter, FastAPI

from api.routes import auth_router, avatars_router
from core import configure_logging, register_exception_handlers, settings

API_PREFIX = "/api"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    async with httpx.AsyncClient() as http_client:
        app.state.http_client = http_client
        yield


def create_app() -> FastAPI:
    configure_logging(settings.log_level)

    application = FastAPI(title=settings.app_name, lifespan=lifespan)
    register_exception_handlers(application)

    api_router = APIRouter(prefix=API_PREFIX)
    api_router.include_router(auth_router)
    api_router.include_router(avatars_router)

    @api_router.get("/hello", tags=["health"])
    async def hello() -> dict[str, str]:
        return {"message": "Hello World"}

    application.include_router(api_router)
    return application


app = create_app()


if __name__ == "__main__":  # pragma: no cover - manual entry point
    import uvicorn

    uvicorn.run("app:app", host="0.0.0.0", port=settings.port)
