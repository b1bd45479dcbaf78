"""Pytest configuration and fixtures."""

import os

# Settings are read at import time, so these must be set before any seatalert import
os.environ["AVAILABILITY_API_URL"] = "http://availability.test/api/search"
os.environ["DISPLAY_TIMEZONE"] = "Europe/Istanbul"
os.environ.setdefault("OTEL_ENABLED", "false")

from collections.abc import AsyncGenerator, Callable
from datetime import datetime
from unittest.mock import AsyncMock
from zoneinfo import ZoneInfo

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from seatalert.models import Base
from seatalert.services.alert_store import SqlAlchemyAlertStore
from seatalert.services.station_directory import StationDirectory

from tests.helpers.factories import NOW, STATION_NAMES

pytest_plugins = ["tests.fixtures.otel"]

@pytest.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    """
    In-memory SQLite engine with the full schema.

    StaticPool keeps the single connection alive so every session sees the
    same database.
    """
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory configured like the worker's."""
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db_session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    """Database session for one test."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def alert_store(db_session: AsyncSession) -> SqlAlchemyAlertStore:
    """Alert store bound to the test session."""
    return SqlAlchemyAlertStore(db_session)


@pytest.fixture
def stations() -> StationDirectory:
    """Small station directory covering the ids used in tests."""
    return StationDirectory(STATION_NAMES)


@pytest.fixture
def istanbul() -> ZoneInfo:
    """Display timezone used across tests."""
    return ZoneInfo("Europe/Istanbul")


@pytest.fixture
def clock() -> Callable[[], datetime]:
    """Clock frozen at NOW."""
    return lambda: NOW


@pytest.fixture
def notifier() -> AsyncMock:
    """Notification port double recording every send."""
    mock = AsyncMock()
    mock.send = AsyncMock(return_value=None)
    return mock


@pytest.fixture
def availability() -> AsyncMock:
    """Availability port double; tests set query.return_value or side_effect."""
    mock = AsyncMock()
    mock.query = AsyncMock()
    return mock
