from datetime import datetime, timezone
from typing import Dict

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from flagle.crud import CreateData
from flagle.domain.pool import FlagPool, PoolEntry
from flagle.domain.reveal import PixelBuffer
from flagle.services.clock import FixedClock
from tests.helpers import BLUE, GREEN, RED, WHITE, FakeLoader, solid_buffer, split_buffer


@pytest.fixture
def pool() -> FlagPool:
    return FlagPool(
        [
            PoolEntry(identifier="AA", display_name="Alpha"),
            PoolEntry(identifier="BB", display_name="Beta"),
            PoolEntry(identifier="CC", display_name="Gamma"),
        ]
    )


@pytest.fixture
def buffers() -> Dict[str, PixelBuffer]:
    return {
        "AA": solid_buffer(RED),
        "BB": split_buffer(RED, BLUE),
        "CC": split_buffer(WHITE, GREEN),
    }


@pytest.fixture
def loader(buffers) -> FakeLoader:
    return FakeLoader(buffers)


@pytest.fixture
def day0_clock() -> FixedClock:
    """2025-01-01 in UTC; with seed "test-seed" the target is AA."""
    return FixedClock(datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc), tz=timezone.utc)


@pytest.fixture
def day1_clock() -> FixedClock:
    """2025-01-02 in UTC; with seed "test-seed" the target is BB."""
    return FixedClock(datetime(2025, 1, 2, 8, 30, tzinfo=timezone.utc), tz=timezone.utc)


@pytest.fixture
async def session_factory():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await CreateData.create_table(engine)
    yield async_sessionmaker(autocommit=False, class_=AsyncSession, bind=engine)
    await engine.dispose()


@pytest.fixture
def lock_database(monkeypatch):
    """Return a function that makes every statement fail as if SQLite reported
    the database locked, until monkeypatch.undo() is called."""

    async def execute(self, statement, *args, **kwargs):
        raise OperationalError(str(statement), {}, Exception("database is locked"))

    def lock():
        monkeypatch.setattr(AsyncSession, "execute", execute)

    return lock
