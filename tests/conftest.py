from __future__ import annotations

from collections.abc import AsyncIterator
from datetime import UTC, datetime
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from src.api.deps import get_blob_store, get_db_session, get_gpt_client, get_rating_events
from src.api.main import app
from src.domain.services.rating_events import InMemoryRatingEventBus
from src.infrastructure.db.base import Base
from src.infrastructure.db.seed import add_rating_history, seed_demo_data
from src.libs.blob_store import LocalBlobStore

from tests.utils import MockGPTClient


@pytest.fixture()
async def session_factory() -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    """In-memory database with the demo organization, accounts and competencies."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", future=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, expire_on_commit=False)
    async with factory() as session:
        await seed_demo_data(session, include_ratings=False)

    yield factory
    await engine.dispose()


@pytest.fixture()
async def seeded_history(session_factory: async_sessionmaker[AsyncSession]) -> None:
    """Add the demo learner's rating history on top of the base fixture data."""
    async with session_factory() as session:
        add_rating_history(session, now=datetime.now(UTC))
        await session.commit()


@pytest.fixture()
async def db(session_factory: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncSession]:
    """Provide a database session for tests that need direct DB access."""
    async with session_factory() as session:
        yield session


@pytest.fixture()
def event_bus() -> InMemoryRatingEventBus:
    return InMemoryRatingEventBus()


@pytest.fixture()
def blob_store(tmp_path: Path) -> LocalBlobStore:
    return LocalBlobStore(root=tmp_path / "blobs", base_url="http://test/files")


@pytest.fixture()
def gpt_client() -> MockGPTClient:
    return MockGPTClient()


@pytest.fixture()
async def async_client(
    session_factory: async_sessionmaker[AsyncSession],
    event_bus: InMemoryRatingEventBus,
    blob_store: LocalBlobStore,
    gpt_client: MockGPTClient,
) -> AsyncIterator[AsyncClient]:
    """Async HTTP client bound to the in-memory database and test doubles."""

    async def override_db_session() -> AsyncIterator[AsyncSession]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_db_session
    app.dependency_overrides[get_rating_events] = lambda: event_bus
    app.dependency_overrides[get_blob_store] = lambda: blob_store
    app.dependency_overrides[get_gpt_client] = lambda: gpt_client

    transport = ASGITransport(app=app)  # type: ignore
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
