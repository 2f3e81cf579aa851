# Ensure backend is at sys.path[0] when pytest runs (from repo root or from backend dir)
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

_tests_dir = Path(__file__).resolve().parent
_backend = _tests_dir.parent
_str_backend = str(_backend)
if sys.path[0:1] != [_str_backend]:
    sys.path.insert(0, _str_backend)

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402

from core.database import dispose_database, init_database  # noqa: E402
from ingestion.cache_service import StalenessCache  # noqa: E402
from ingestion.connectors.mock import MockCricketProvider  # noqa: E402


class FakeClock:
    """Controllable UTC clock shared by the provider and the cache."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 4, 10, 14, 0, tzinfo=timezone.utc))


@pytest_asyncio.fixture
async def db():
    """In-memory SQLite with every table created."""
    manager = await init_database("sqlite+aiosqlite:///:memory:")
    yield manager
    await dispose_database()


@pytest.fixture
def provider(clock):
    return MockCricketProvider(clock=clock)


@pytest_asyncio.fixture
async def cache(db, provider, clock):
    c = StalenessCache(db, provider, clock=clock)
    yield c
    await c.worker.drain()
    await c.shutdown()
