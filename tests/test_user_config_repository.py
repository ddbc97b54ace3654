"""Tests for the user config repository."""

import pytest

from pota_planner.database.models import Units, UserConfig
from pota_planner.database.user_config_repository import UserConfigRepository
from pota_planner.errors import ErrorCode


@pytest.fixture
def repo(manager):
    """Provide a user config repository."""
    return UserConfigRepository(manager)


def test_get_before_save(repo):
    """Test an unsaved config reads as None."""
    result = repo.get()

    assert result.success
    assert result.data is None


def test_save_and_get(repo):
    """Test saving and reading back preferences."""
    config = UserConfig(
        callsign='W1AW',
        grid_square='FN31pr',
        home_latitude=41.714775,
        home_longitude=-72.727260,
        timezone='America/New_York',
        units=Units.METRIC,
    )

    assert repo.save(config).success

    assert repo.get().data == config


def test_save_replaces_single_row(repo, manager):
    """Test repeated saves keep exactly one row."""
    repo.save(UserConfig(callsign='W1AW'))
    repo.save(UserConfig(callsign='K2ABC'))

    conn = manager.acquire().data
    assert conn.execute("SELECT COUNT(*) FROM user_config").fetchone()[0] == 1
    saved = repo.get().data
    assert saved.callsign == 'K2ABC'
    assert saved.timezone == 'UTC'
    assert saved.units == Units.IMPERIAL


def test_invalid_units_rejected(repo):
    """Test units outside the allowed set are refused by the store."""
    result = repo.save(UserConfig(callsign='W1AW', units='furlongs'))

    assert not result.success
    assert result.error.code == ErrorCode.CONSTRAINT_VIOLATION
    assert repo.get().data is None
