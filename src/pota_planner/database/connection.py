"""Connection manager owning the SQLite handle."""

import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Sequence

from ..errors import AppError, ErrorCode, Result
from .migrations import MIGRATIONS, STORAGE_SUGGESTIONS, Migration, run_migrations


logger = logging.getLogger(__name__)

MEMORY_PATH = ':memory:'


class ConnectionManager:
    """Owns the single database handle shared by all repositories.

    The handle is opened lazily on the first acquire(): the parent
    directory is created, WAL and foreign keys are enabled and pending
    migrations are run. A failed setup leaves the manager uninitialized
    so the next acquire() retries from scratch.
    """

    def __init__(self, db_path: str, migrations: Sequence[Migration] = MIGRATIONS):
        """Initialize the manager without touching the filesystem.

        Args:
            db_path: Path to SQLite database file; "~" is expanded
            migrations: Migrations to bring the schema up to date
        """
        self.db_path = db_path
        self.migrations = list(migrations)
        self.conn: Optional[sqlite3.Connection] = None
        self._lock = threading.Lock()

    @property
    def is_open(self) -> bool:
        return self.conn is not None

    def _resolve_path(self) -> str:
        if self.db_path == MEMORY_PATH:
            return self.db_path
        path = Path(self.db_path).expanduser()
        path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
        return str(path)

    def _open(self) -> Result[sqlite3.Connection]:
        conn = None
        try:
            path = self._resolve_path()
            conn = sqlite3.connect(path, isolation_level=None, check_same_thread=False)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA journal_mode = WAL")
            conn.execute("PRAGMA foreign_keys = ON")
            logger.info(f"Connected to database: {path}")
        except (OSError, sqlite3.Error) as e:
            logger.error(f"Database initialization error: {e}")
            if conn is not None:
                conn.close()
            return Result.fail(AppError(
                f"Failed to initialize database at {self.db_path}: {e}",
                ErrorCode.STORE_INIT_ERROR,
                list(STORAGE_SUGGESTIONS),
            ))

        migration_result = run_migrations(conn, self.migrations)
        if not migration_result.success:
            conn.close()
            return Result.fail(migration_result.error)

        return Result.ok(conn)

    def acquire(self) -> Result[sqlite3.Connection]:
        """Return the shared handle, opening and migrating it on first use."""
        if self.conn is not None:
            return Result.ok(self.conn)

        with self._lock:
            # Another thread may have finished setup while we waited
            if self.conn is not None:
                return Result.ok(self.conn)

            result = self._open()
            if result.success:
                self.conn = result.data
            return result

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        """Scoped acquisition of the shared handle.

        Raises:
            AppError: If the store cannot be initialized
        """
        yield self.acquire().unwrap()

    def close(self):
        """Close the handle; safe to call when already closed."""
        with self._lock:
            if self.conn is None:
                return
            self.conn.close()
            self.conn = None
            logger.info("Database connection closed")

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
