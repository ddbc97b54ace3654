"""Schema definitions and the migration runner."""

import logging
import sqlite3
from dataclasses import dataclass
from typing import Callable, List, Sequence

from ..errors import AppError, ErrorCode, Result
from .transaction import transaction


logger = logging.getLogger(__name__)

# Remediation for failures of the database file itself (full disk, read-only path)
STORAGE_SUGGESTIONS = ['Check that the database path is writable', 'Ensure sufficient disk space']


MIGRATIONS_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS _migrations (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    applied_at TEXT NOT NULL DEFAULT (datetime('now'))
)
"""

PARKS_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS parks (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    reference TEXT NOT NULL UNIQUE,
    name TEXT NOT NULL,
    latitude REAL NOT NULL CHECK (latitude BETWEEN -90 AND 90),
    longitude REAL NOT NULL CHECK (longitude BETWEEN -180 AND 180),
    gridSquare TEXT,
    state TEXT,
    country TEXT,
    region TEXT,
    parkType TEXT,
    isActive INTEGER NOT NULL DEFAULT 1,
    potaUrl TEXT,
    syncedAt TEXT NOT NULL DEFAULT (datetime('now')),
    metadata TEXT
)
"""

PLANS_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS plans (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    parkId INTEGER NOT NULL,
    status TEXT NOT NULL DEFAULT 'draft'
        CHECK (status IN ('draft', 'finalized', 'completed', 'cancelled')),
    plannedDate TEXT NOT NULL,
    plannedTime TEXT,
    durationHours REAL,
    presetId TEXT,
    notes TEXT,
    weatherSnapshot TEXT,
    bandsSnapshot TEXT,
    createdAt TEXT NOT NULL DEFAULT (datetime('now')),
    updatedAt TEXT NOT NULL DEFAULT (datetime('now')),
    FOREIGN KEY (parkId) REFERENCES parks (id) ON DELETE CASCADE
)
"""

WEATHER_CACHE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS weather_cache (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    latitude REAL NOT NULL,
    longitude REAL NOT NULL,
    forecastDate TEXT NOT NULL,
    data TEXT NOT NULL,
    fetchedAt TEXT NOT NULL DEFAULT (datetime('now')),
    expiresAt TEXT NOT NULL,
    UNIQUE (latitude, longitude, forecastDate),
    CHECK (expiresAt > fetchedAt)
)
"""

USER_CONFIG_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS user_config (
    id INTEGER PRIMARY KEY CHECK (id = 1),
    callsign TEXT,
    gridSquare TEXT,
    homeLat REAL,
    homeLon REAL,
    timezone TEXT NOT NULL DEFAULT 'UTC',
    units TEXT NOT NULL DEFAULT 'imperial'
        CHECK (units IN ('imperial', 'metric'))
)
"""

INITIAL_INDEXES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_parks_reference ON parks(reference)",
    "CREATE INDEX IF NOT EXISTS idx_parks_state ON parks(state)",
    "CREATE INDEX IF NOT EXISTS idx_plans_plannedDate ON plans(plannedDate)",
    "CREATE INDEX IF NOT EXISTS idx_plans_parkId ON plans(parkId)",
    """CREATE INDEX IF NOT EXISTS idx_weather_cache_lookup
        ON weather_cache(latitude, longitude, forecastDate)""",
]


@dataclass(frozen=True)
class Migration:
    """A forward-only schema change.

    Attributes:
        id: Sortable unique identifier, e.g. "001"
        name: Human-readable description
        apply: Procedure executing the schema statements on a connection
    """

    id: str
    name: str
    apply: Callable[[sqlite3.Connection], None]


def _initial_schema(conn: sqlite3.Connection):
    """Create the parks, plans, weather_cache and user_config tables."""
    for sql in (PARKS_TABLE_SQL, PLANS_TABLE_SQL, WEATHER_CACHE_TABLE_SQL, USER_CONFIG_TABLE_SQL):
        conn.execute(sql)
    for sql in INITIAL_INDEXES_SQL:
        conn.execute(sql)


MIGRATIONS: List[Migration] = [
    Migration(id='001', name='initial-schema', apply=_initial_schema),
]


def applied_migrations(conn: sqlite3.Connection) -> List[str]:
    """Return ids recorded in the migrations table, in ascending order."""
    conn.execute(MIGRATIONS_TABLE_SQL)
    rows = conn.execute("SELECT id FROM _migrations ORDER BY id").fetchall()
    return [row[0] for row in rows]


def run_migrations(conn: sqlite3.Connection, migrations: Sequence[Migration] = MIGRATIONS) -> Result[List[str]]:
    """Apply every migration that has not been recorded yet.

    Each migration runs together with its bookkeeping row inside one
    transaction, so a failure rolls back only that migration and leaves
    earlier ones applied.

    Args:
        conn: Connection opened with isolation_level=None
        migrations: Known migrations, in any order

    Returns:
        Result with the ids applied by this run (empty when already current)
    """
    ids = [migration.id for migration in migrations]
    duplicates = sorted({mid for mid in ids if ids.count(mid) > 1})
    if duplicates:
        return Result.fail(AppError(
            f"Duplicate migration ids: {', '.join(duplicates)}",
            ErrorCode.MIGRATION_ERROR,
            ['Give every migration a unique id'],
        ))

    try:
        applied = set(applied_migrations(conn))
    except sqlite3.Error as e:
        logger.error(f"Cannot read migration table: {e}")
        return Result.fail(AppError(
            f"Migration failed: {e}",
            ErrorCode.MIGRATION_ERROR,
            STORAGE_SUGGESTIONS + ['Check that the database file is not corrupted', 'Restore from backup if necessary'],
        ))

    newly_applied = []
    for migration in sorted(migrations, key=lambda m: m.id):
        if migration.id in applied:
            logger.debug(f"Migration {migration.id} already applied")
            continue

        logger.info(f"Applying migration {migration.id} ({migration.name})...")
        try:
            with transaction(conn):
                migration.apply(conn)
                conn.execute(
                    "INSERT INTO _migrations (id, name) VALUES (?, ?)",
                    (migration.id, migration.name)
                )
        except Exception as e:
            logger.error(f"Migration {migration.id} failed: {e}")
            return Result.fail(AppError(
                f"Migration {migration.id} ({migration.name}) failed: {e}",
                ErrorCode.MIGRATION_ERROR,
                STORAGE_SUGGESTIONS + ['Check migration definitions for errors', 'Restore from backup if necessary'],
            ))
        newly_applied.append(migration.id)

    if newly_applied:
        logger.info(f"Applied {len(newly_applied)} migration(s): {', '.join(newly_applied)}")
    return Result.ok(newly_applied)
