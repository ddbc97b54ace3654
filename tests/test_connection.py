"""Tests for the connection manager."""

import threading

import pytest

from pota_planner.database.connection import MEMORY_PATH, ConnectionManager
from pota_planner.database.migrations import Migration
from pota_planner.errors import AppError, ErrorCode


def test_lazy_initialization_creates_directory(tmp_path):
    """Test nothing touches the filesystem until the first acquire."""
    db_path = tmp_path / "nested" / "dir" / "pota.db"
    manager = ConnectionManager(str(db_path))

    assert not (tmp_path / "nested").exists()
    assert not manager.is_open

    result = manager.acquire()

    assert result.success
    assert manager.is_open
    assert db_path.exists()
    manager.close()


def test_acquire_returns_same_handle(manager):
    """Test repeated acquires share one connection."""
    first = manager.acquire().data
    second = manager.acquire().data

    assert first is second


def test_pragmas_enabled(manager):
    """Test WAL mode and foreign key enforcement are switched on."""
    conn = manager.acquire().data

    assert conn.execute("PRAGMA foreign_keys").fetchone()[0] == 1
    assert conn.execute("PRAGMA journal_mode").fetchone()[0].lower() == 'wal'


def test_schema_migrated_on_first_acquire(manager):
    """Test the initial schema exists once the handle is acquired."""
    conn = manager.acquire().data

    row = conn.execute("SELECT id FROM _migrations").fetchone()
    assert row[0] == '001'


def test_close_is_idempotent(manager):
    """Test close can be called repeatedly."""
    manager.acquire()
    manager.close()
    manager.close()

    assert not manager.is_open


def test_reacquire_after_close(manager):
    """Test data survives close and a fresh acquire reopens the store."""
    conn = manager.acquire().data
    conn.execute("INSERT INTO user_config (id, callsign) VALUES (1, 'W1AW')")
    manager.close()

    reopened = manager.acquire()

    assert reopened.success
    assert reopened.data is not conn
    assert reopened.data.execute("SELECT callsign FROM user_config").fetchone()[0] == 'W1AW'


def test_init_failure_then_retry(tmp_path):
    """Test an unwritable path fails with STORE_INIT_ERROR and can be retried."""
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    manager = ConnectionManager(str(blocker / "pota.db"))

    result = manager.acquire()

    assert not result.success
    assert result.error.code == ErrorCode.STORE_INIT_ERROR
    assert 'Check that the database path is writable' in result.error.suggestions
    assert not manager.is_open

    blocker.unlink()
    retry = manager.acquire()

    assert retry.success
    assert manager.is_open
    manager.close()


def test_failed_migration_leaves_manager_closed(db_path):
    """Test a migration failure surfaces MIGRATION_ERROR and no handle."""
    manager = ConnectionManager(db_path, migrations=[
        Migration('001', 'broken', lambda conn: conn.execute("NOT SQL")),
    ])

    result = manager.acquire()

    assert not result.success
    assert result.error.code == ErrorCode.MIGRATION_ERROR
    assert not manager.is_open
    assert 'Ensure sufficient disk space' in result.error.suggestions


def test_connection_context_raises_on_failure(tmp_path):
    """Test the scoped helper raises the init error."""
    blocker = tmp_path / "blocker"
    blocker.write_text("x")
    manager = ConnectionManager(str(blocker / "pota.db"))

    with pytest.raises(AppError) as exc_info:
        with manager.connection():
            pass

    assert exc_info.value.code == ErrorCode.STORE_INIT_ERROR


def test_context_manager_closes(db_path):
    """Test leaving the with block closes the handle."""
    with ConnectionManager(db_path) as manager:
        assert manager.acquire().success
        assert manager.is_open

    assert not manager.is_open


def test_in_memory_database():
    """Test the in-memory path skips directory creation."""
    manager = ConnectionManager(MEMORY_PATH)

    assert manager.acquire().success
    manager.close()


def test_concurrent_first_acquire_initializes_once(manager):
    """Test racing threads all receive the same handle."""
    handles = []
    lock = threading.Lock()

    def worker():
        conn = manager.acquire().data
        with lock:
            handles.append(conn)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(handles) == 8
    assert all(handle is handles[0] for handle in handles)
