"""Tests for the maintenance command line."""

import argparse
import os
import sqlite3
from unittest.mock import patch

import pytest

from pota_planner.config import Settings
from pota_planner.errors import AppError, ErrorCode, Result
from pota_planner.main import run


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Keep POTA_* variables and any .env file out of CLI runs."""
    for name in [key for key in os.environ if key.startswith('POTA_')]:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


def _settings(**overrides):
    return Settings(_env_file=None, **overrides)


def _args(**overrides):
    values = {
        'db': None,
        'migrate': False,
        'sync': False,
        'region': None,
        'force': False,
        'import_file': None,
        'batch_size': 1000,
        'strict': False,
        'show_warnings': False,
        'purge_weather': False,
        'verbose': False,
    }
    values.update(overrides)
    return argparse.Namespace(**values)


def test_migrate_creates_database(tmp_path):
    """Test --migrate initializes the schema and exits cleanly."""
    db_path = tmp_path / "cli" / "pota.db"

    exit_code = run(_args(db=str(db_path), migrate=True), _settings())

    assert exit_code == 0
    conn = sqlite3.connect(str(db_path))
    assert conn.execute("SELECT id FROM _migrations").fetchone()[0] == '001'
    conn.close()


def test_init_failure_exit_code(tmp_path):
    """Test an unusable database path exits with 1."""
    blocker = tmp_path / "blocker"
    blocker.write_text("x")

    assert run(_args(db=str(blocker / "pota.db")), _settings()) == 1


def test_settings_database_path_used(tmp_path):
    """Test the configured path is used when --db is omitted."""
    db_path = tmp_path / "configured.db"

    assert run(_args(purge_weather=True), _settings(database_path=str(db_path))) == 0
    assert db_path.exists()


def test_settings_ignore_env_file(tmp_path):
    """Test CLI runs do not pick up a .env file from the working directory."""
    (tmp_path / ".env").write_text("POTA_PARK_STALE_DAYS=0\n")

    assert _settings().park_stale_days == 30


@patch('pota_planner.main.PotaClient')
def test_sync_reports_api_failure(mock_client_class, tmp_path):
    """Test a failed sync exits with 1."""
    mock_client_class.return_value.fetch_all_parks.return_value = Result.fail(
        AppError('Request timed out', ErrorCode.TIMEOUT)
    )

    exit_code = run(_args(db=str(tmp_path / "pota.db"), sync=True), _settings())

    assert exit_code == 1


@patch('pota_planner.main.PotaClient')
def test_sync_success(mock_client_class, tmp_path):
    """Test a successful sync stores parks and exits with 0."""
    mock_client_class.return_value.fetch_all_parks.return_value = Result.ok([
        {'reference': 'K-0039', 'name': 'Yellowstone', 'latitude': 44.428, 'longitude': -110.5885},
    ])
    db_path = tmp_path / "pota.db"

    exit_code = run(_args(db=str(db_path), sync=True, force=True), _settings())

    assert exit_code == 0
    conn = sqlite3.connect(str(db_path))
    assert conn.execute("SELECT reference FROM parks").fetchone()[0] == 'K-0039'
    conn.close()


def test_import_csv(tmp_path):
    """Test --import loads parks from a CSV export."""
    csv_path = tmp_path / "parks.csv"
    csv_path.write_text(
        "reference,name,active,entityId,locationDesc,latitude,longitude,grid\n"
        "K-0039,Yellowstone National Park,1,291,US-WY,44.428,-110.5885,DN44xk\n"
        ",Nameless,1,291,US-WY,44.0,-110.0,\n"
    )
    db_path = tmp_path / "pota.db"

    exit_code = run(_args(db=str(db_path), import_file=str(csv_path)), _settings())

    assert exit_code == 0
    conn = sqlite3.connect(str(db_path))
    assert conn.execute("SELECT reference, state FROM parks").fetchall() == [('K-0039', 'WY')]
    conn.close()


def test_import_strict_failure_exit_code(tmp_path):
    """Test --strict turns an invalid row into exit code 1."""
    csv_path = tmp_path / "parks.csv"
    csv_path.write_text(
        "reference,name,latitude,longitude\n"
        "K-0039,Yellowstone,not-a-number,-110.5885\n"
    )

    exit_code = run(
        _args(db=str(tmp_path / "pota.db"), import_file=str(csv_path), strict=True),
        _settings(),
    )

    assert exit_code == 1
