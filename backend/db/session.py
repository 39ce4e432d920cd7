"""Async engine and session factory for the identity store."""

from __future__ import annotations

from collections.abc import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from core import settings

async_engine = create_async_engine(settings.database_url, pool_pre_ping=True)
AsyncSessionMaker = async_sessionmaker(async_engine, expire_on_commit=False)


async def get_session() -> AsyncIterator[AsyncSession]:
    """Yield a session that is closed once the request finishes."""
    async with AsyncSessionMaker() as session:
        yield session


__all__ = ["AsyncSessionMaker", "async_engine", "get_session"]
