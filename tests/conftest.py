import os
from datetime import datetime, timezone

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Settings are read at import time, so the test environment goes first
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SLOT_LOCK_BACKEND", "local")
os.environ.setdefault("EVENTS_ENABLED", "false")
os.environ.setdefault("ENVIRONMENT", "test")

from app.api.deps.booking import get_clock, get_event_publisher, get_slot_locker  # noqa: E402
from app.core.clock import FixedClock  # noqa: E402
from app.core.database import Base, get_db  # noqa: E402
from app.core.locks import LocalSlotLocker  # noqa: E402
from app.main import app  # noqa: E402
from app.services.events import RecordingEventPublisher  # noqa: E402

# Use an in-memory SQLite database; StaticPool keeps one shared connection
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:")

# Sunday 2030-01-06 12:00 UTC; the following Monday is 2030-01-07
NOW = datetime(2030, 1, 6, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
async def db():
    """Create a fresh database session for each test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)  # Clean slate
        await conn.run_sync(Base.metadata.create_all)

    async_session = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )

    async with async_session() as session:
        yield session

    await engine.dispose()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture
def publisher() -> RecordingEventPublisher:
    return RecordingEventPublisher()


@pytest.fixture
def locker() -> LocalSlotLocker:
    return LocalSlotLocker(wait_seconds=1)


@pytest.fixture
def override_dependencies(db: AsyncSession, clock, publisher, locker):
    """Point the app at the test database, the fixed clock and in-memory collaborators."""

    async def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_event_publisher] = lambda: publisher
    app.dependency_overrides[get_slot_locker] = lambda: locker
    yield
    app.dependency_overrides.clear()


@pytest.fixture
async def client(override_dependencies):
    """Async HTTP test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# Import all booking fixtures to make them available
pytest_plugins = ["tests.fixtures.booking_fixtures"]
