"""Test fixtures and configuration."""

from collections.abc import AsyncGenerator

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from vibecheck.config import Settings
from vibecheck.dependencies import get_aggregator, get_app_settings, get_tree_store
from vibecheck.main import create_app
from vibecheck.models import Base
from vibecheck.services.aggregation import SnapshotAggregator
from vibecheck.services.tree_store import TreeStore


@pytest_asyncio.fixture
async def db_engine():
    """Create an in-memory SQLite engine for tests."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def store(db_engine) -> TreeStore:
    """A tree store bound to the test engine."""
    factory = async_sessionmaker(
        bind=db_engine, class_=AsyncSession, expire_on_commit=False
    )
    return TreeStore(factory)


@pytest_asyncio.fixture
async def aggregator(store: TreeStore) -> AsyncGenerator[SnapshotAggregator, None]:
    agg = SnapshotAggregator(store)
    yield agg
    agg.close()


@pytest_asyncio.fixture
async def test_settings() -> Settings:
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        cloudinary_cloud_name="vibecheck-test",
        stream_keepalive_seconds=0.05,
    )


@pytest_asyncio.fixture
async def client(
    store: TreeStore,
    aggregator: SnapshotAggregator,
    test_settings: Settings,
) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client with the realtime tree overridden."""
    app = create_app()
    app.dependency_overrides[get_tree_store] = lambda: store
    app.dependency_overrides[get_aggregator] = lambda: aggregator
    app.dependency_overrides[get_app_settings] = lambda: test_settings

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def place_in_campinas(store: TreeStore) -> str:
    """Seed one place and return its id."""
    await store.set(
        "places/bar-do-ze",
        {
            "name": "Bar do Zé",
            "address": "Rua A, 10",
            "type": "Bar",
            "city": "Campinas",
            "state": "SP",
        },
    )
    return "bar-do-ze"
