"""Shared fixtures for the data layer tests."""

from datetime import datetime, timedelta, timezone

import pytest

from pota_planner.database.connection import ConnectionManager


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    """Provide a clock fixed at 2024-06-01 12:00:00 UTC."""
    return FakeClock(datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def db_path(tmp_path):
    """Provide a temporary database path."""
    return str(tmp_path / "test_pota.db")


@pytest.fixture
def manager(db_path):
    """Provide a connection manager over a temporary database."""
    manager = ConnectionManager(db_path)
    yield manager
    manager.close()
