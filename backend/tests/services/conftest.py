"""Service test fixtures — async DB, fake clock, recording dispatcher, test client.

Invariants:
    - Every test gets a fresh in-memory SQLite database with foreign keys on
    - get_db, get_clock and get_dispatcher overridden for route tests
    - Seeded users/groups are committed, so services see them from any session

Design Decisions:
    - SQLite in-memory: fast, no external dependency; PostgreSQL-only layers
      (advisory lock, SKIP LOCKED) degrade to no-ops there
    - FakeClock instead of sleeping: expiry scenarios advance time explicitly
"""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from httpx import ASGITransport, AsyncClient

from app.api.dependencies import get_clock, get_dispatcher
from app.db.base import Base
from app.infrastructure.database import build_engine, get_db
from app.main import app
from app.services.notification_emitter import NotificationEmitter

from tests.services.fakes import (
    FakeClock, RecordingDispatcher, SeededGroup, seed_users_and_group,
)


@pytest.fixture
async def test_engine():
    engine = build_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def emitter(test_db, dispatcher):
    return NotificationEmitter(test_db, dispatcher)


@pytest.fixture
async def seeded(test_db, clock) -> SeededGroup:
    return await seed_users_and_group(test_db, clock)


@pytest.fixture
async def client(test_session_factory, clock, dispatcher):
    """FastAPI test client with DB, clock and dispatcher overridden."""
    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
