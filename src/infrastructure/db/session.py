from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from src.core.config import get_settings

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_engine() -> AsyncEngine:
    """Process-wide engine for DATABASE_URL, created on first use."""
    global _engine

    if _engine is None:
        url = get_settings().async_database_url
        # SQLite has no server-side connection to probe
        pre_ping = not url.startswith("sqlite")
        _engine = create_async_engine(url, echo=False, pool_pre_ping=pre_ping)
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _session_factory

    if _session_factory is None:
        # services hand rows back after commit, so attributes must stay loaded
        _session_factory = async_sessionmaker(get_engine(), expire_on_commit=False)
    return _session_factory


async def get_session() -> AsyncIterator[AsyncSession]:
    """Request-scoped session; anything uncommitted is rolled back on error."""
    async with get_session_factory()() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def script_session() -> AsyncIterator[AsyncSession]:
    """Session for maintenance scripts; disposes the engine on exit."""
    try:
        async with get_session_factory()() as session:
            yield session
    finally:
        await dispose_engine()


async def dispose_engine() -> None:
    """Close pooled connections and forget the engine."""
    global _engine, _session_factory

    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None
