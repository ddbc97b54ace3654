"""Tests for the weather cache repository."""

from datetime import timedelta

import pytest

from pota_planner.database.models import WeatherCacheInput
from pota_planner.database.weather_cache_repository import WeatherCacheRepository, round_coordinate
from pota_planner.errors import ErrorCode


@pytest.fixture
def repo(manager, clock):
    """Provide a weather cache repository on a fixed clock."""
    return WeatherCacheRepository(manager, clock=clock)


def _entry(forecast_date='2024-06-02', data='{"high_temp": 72}', **overrides):
    fields = {
        'latitude': 44.428,
        'longitude': -110.5885,
        'forecast_date': forecast_date,
        'data': data,
    }
    fields.update(overrides)
    return WeatherCacheInput(**fields)


def test_put_and_get_fresh_entry(repo, clock):
    """Test a stored entry reads back fresh with a default TTL."""
    result = repo.put(_entry())

    assert result.success
    entry = repo.get(44.428, -110.5885, '2024-06-02').data
    assert entry is not None
    assert entry.data == '{"high_temp": 72}'
    assert entry.fetched_at == clock()
    assert entry.expires_at == clock() + timedelta(hours=1)
    assert entry.is_stale is False


def test_expired_entry_is_returned_stale(repo, clock):
    """Test an expired entry is a stale hit, not a miss."""
    repo.put(_entry(
        fetched_at=clock() - timedelta(hours=2),
        expires_at=clock() - timedelta(hours=1),
    ))

    result = repo.get(44.428, -110.5885, '2024-06-02')

    assert result.success
    assert result.data is not None
    assert result.data.is_stale is True


def test_staleness_boundary_is_strict(repo, clock):
    """Test an entry is still fresh at exactly its expiry time."""
    repo.put(_entry(fetched_at=clock() - timedelta(hours=1), expires_at=clock()))

    assert repo.get(44.428, -110.5885, '2024-06-02').data.is_stale is False

    clock.advance(seconds=1)

    assert repo.get(44.428, -110.5885, '2024-06-02').data.is_stale is True


def test_get_miss(repo):
    """Test a missing key is a successful None."""
    result = repo.get(0.0, 0.0, '2024-06-02')

    assert result.success
    assert result.data is None


def test_put_replaces_same_key(repo, manager, clock):
    """Test a second put for the same triple keeps one row with the new data."""
    repo.put(_entry(data='old'))
    clock.advance(minutes=30)

    repo.put(_entry(data='new'))

    conn = manager.acquire().data
    rows = conn.execute("SELECT data FROM weather_cache").fetchall()
    assert [row[0] for row in rows] == ['new']
    assert repo.get(44.428, -110.5885, '2024-06-02').data.fetched_at == clock()


def test_coordinates_rounded_to_shared_key(repo):
    """Test nearby coordinates resolve to the same cached row."""
    repo.put(_entry(latitude=44.42801, longitude=-110.58849))

    entry = repo.get(44.428, -110.5885, '2024-06-02').data

    assert entry is not None
    assert entry.latitude == 44.428
    assert entry.longitude == -110.5885
    assert round_coordinate(12.345678) == 12.3457


def test_expiry_must_follow_fetch(repo, clock):
    """Test an expiry at or before the fetch time is refused."""
    result = repo.put(_entry(fetched_at=clock(), expires_at=clock()))

    assert not result.success
    assert result.error.code == ErrorCode.CONSTRAINT_VIOLATION
    assert repo.count().data == 0


def test_get_range(repo):
    """Test range lookup is inclusive and ordered by date."""
    for day in ('2024-06-04', '2024-06-02', '2024-06-03', '2024-06-06'):
        repo.put(_entry(forecast_date=day))
    repo.put(_entry(forecast_date='2024-06-03', latitude=10.0, longitude=10.0))

    entries = repo.get_range(44.428, -110.5885, '2024-06-02', '2024-06-04').data

    assert [entry.forecast_date for entry in entries] == ['2024-06-02', '2024-06-03', '2024-06-04']


def test_purge_expired(repo, clock):
    """Test purge removes only entries past their expiry."""
    repo.put(_entry(forecast_date='2024-06-02', ttl_hours=1))
    repo.put(_entry(forecast_date='2024-06-03', ttl_hours=6))
    clock.advance(hours=2)

    result = repo.purge_expired()

    assert result.success
    assert result.data == 1
    assert repo.get(44.428, -110.5885, '2024-06-02').data is None
    assert repo.get(44.428, -110.5885, '2024-06-03').data is not None


def test_sub_second_expiry_is_stored_after_fetch(repo, manager, clock):
    """Test an expiry half a second after the fetch is kept and rounded up."""
    fetched_at = clock() + timedelta(milliseconds=200)

    result = repo.put(_entry(fetched_at=fetched_at, expires_at=fetched_at + timedelta(milliseconds=500)))

    assert result.success
    conn = manager.acquire().data
    row = conn.execute("SELECT fetchedAt, expiresAt FROM weather_cache").fetchone()
    assert tuple(row) == ('2024-06-01 12:00:00', '2024-06-01 12:00:01')
    assert result.data.expires_at > result.data.fetched_at


def test_entry_stale_within_second_after_expiry(repo, clock):
    """Test is_stale turns on before the next whole second after expiry."""
    repo.put(_entry(fetched_at=clock() - timedelta(hours=1), expires_at=clock()))

    clock.advance(milliseconds=900)

    entry = repo.get(44.428, -110.5885, '2024-06-02').data
    assert entry.is_stale is True
    assert repo.purge_expired().data == 1
