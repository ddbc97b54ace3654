"""Park catalog repository."""

import json
import sqlite3
from datetime import datetime, timedelta
from typing import Any, List, Optional

from ..errors import Result
from ..utils.timestamps import format_timestamp, parse_timestamp
from .base_repository import BaseRepository, RowDecodeError
from .models import Park, ParkInput, ParkSearchOptions, ParkSearchResult
from .transaction import transaction


PARK_DATA_STALE_DAYS = 30

PARK_COLUMNS = [
    'id', 'reference', 'name', 'latitude', 'longitude', 'gridSquare',
    'state', 'country', 'region', 'parkType', 'isActive', 'potaUrl',
    'syncedAt', 'metadata',
]

UPSERT_PARK_SQL = """
    INSERT INTO parks (
        reference, name, latitude, longitude, gridSquare,
        state, country, region, parkType, isActive, potaUrl, metadata, syncedAt
    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
    ON CONFLICT(reference) DO UPDATE SET
        name = excluded.name,
        latitude = excluded.latitude,
        longitude = excluded.longitude,
        gridSquare = excluded.gridSquare,
        state = excluded.state,
        country = excluded.country,
        region = excluded.region,
        parkType = excluded.parkType,
        isActive = excluded.isActive,
        potaUrl = excluded.potaUrl,
        metadata = excluded.metadata,
        syncedAt = MAX(parks.syncedAt, excluded.syncedAt)
"""


def park_from_row(row: sqlite3.Row, prefix: str = '') -> Park:
    """Convert a database row into a Park.

    Args:
        row: Row containing the park columns
        prefix: Column alias prefix used by joined queries

    Raises:
        RowDecodeError: If metadata or syncedAt cannot be parsed
    """
    def col(name: str) -> Any:
        return row[prefix + name]

    raw_metadata = col('metadata')
    try:
        metadata = json.loads(raw_metadata) if raw_metadata is not None else None
        synced_at = parse_timestamp(col('syncedAt'))
    except (TypeError, ValueError) as e:
        raise RowDecodeError(f"park {col('reference')}: {e}") from e

    if metadata is not None and not isinstance(metadata, dict):
        raise RowDecodeError(f"park {col('reference')}: metadata is not an object")

    return Park(
        id=col('id'),
        reference=col('reference'),
        name=col('name'),
        latitude=col('latitude'),
        longitude=col('longitude'),
        grid_square=col('gridSquare'),
        state=col('state'),
        country=col('country'),
        region=col('region'),
        park_type=col('parkType'),
        is_active=bool(col('isActive')),
        pota_url=col('potaUrl'),
        synced_at=synced_at,
        metadata=metadata,
    )


def _escape_like(value: str) -> str:
    return value.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')


class ParkRepository(BaseRepository):
    """CRUD, upsert and search over the park catalog."""

    def __init__(self, manager, clock=None, stale_days: int = PARK_DATA_STALE_DAYS):
        """Initialize repository.

        Args:
            manager: Connection manager owning the database handle
            clock: Callable returning the current aware UTC datetime
            stale_days: Age in days after which synced data is flagged stale
        """
        super().__init__(manager, clock)
        self.stale_days = stale_days

    def _params(self, park: ParkInput, synced_at: str) -> tuple:
        return (
            park.reference.strip().upper(), park.name,
            park.latitude, park.longitude, park.grid_square,
            park.state, park.country, park.region, park.park_type,
            1 if park.is_active else 0, park.pota_url,
            json.dumps(park.metadata) if park.metadata is not None else None,
            synced_at,
        )

    def _select_by_reference(self, conn: sqlite3.Connection, reference: str) -> Optional[Park]:
        row = conn.execute(
            "SELECT * FROM parks WHERE reference = ?", (reference.strip().upper(),)
        ).fetchone()
        return park_from_row(row) if row else None

    def upsert(self, park: ParkInput) -> Result[Park]:
        """Insert a park or overwrite every field of the existing one.

        The identity is kept on update and syncedAt never moves backwards.
        Input is trusted to be validated already.

        Args:
            park: Park fields keyed by reference

        Returns:
            Result with the stored park
        """
        def operation(conn):
            with transaction(conn):
                conn.execute(UPSERT_PARK_SQL, self._params(park, format_timestamp(self.clock())))
                stored = self._select_by_reference(conn, park.reference)
            self.logger.debug(f"Upserted park {stored.reference} (id={stored.id})")
            return Result.ok(stored)

        return self._run(f"upsert park {park.reference}", operation)

    def upsert_many(self, parks: List[ParkInput]) -> Result[int]:
        """Upsert a batch of parks in one transaction.

        Returns:
            Result with the number of parks written
        """
        if not parks:
            return Result.ok(0)

        def operation(conn):
            synced_at = format_timestamp(self.clock())
            with transaction(conn):
                conn.executemany(UPSERT_PARK_SQL, [self._params(park, synced_at) for park in parks])
            self.logger.info(f"Upserted {len(parks)} parks")
            return Result.ok(len(parks))

        return self._run("batch upsert parks", operation)

    def find_by_reference(self, reference: str) -> Result[Optional[Park]]:
        """Exact lookup by reference; a missing park is Result.ok(None)."""
        return self._run(
            f"find park {reference}",
            lambda conn: Result.ok(self._select_by_reference(conn, reference)),
        )

    def find_by_id(self, park_id: int) -> Result[Optional[Park]]:
        def operation(conn):
            row = conn.execute("SELECT * FROM parks WHERE id = ?", (park_id,)).fetchone()
            return Result.ok(park_from_row(row) if row else None)

        return self._run(f"find park {park_id}", operation)

    def find_all(self, limit: int = 50, offset: int = 0) -> Result[List[Park]]:
        def operation(conn):
            rows = conn.execute(
                "SELECT * FROM parks ORDER BY reference ASC LIMIT ? OFFSET ?",
                (limit, offset)
            ).fetchall()
            return Result.ok([park_from_row(row) for row in rows])

        return self._run("fetch parks", operation)

    def search(self, query: str, options: Optional[ParkSearchOptions] = None) -> Result[ParkSearchResult]:
        """Case-insensitive substring search over reference and name.

        Args:
            query: Text to look for; empty matches everything
            options: Optional state/region filters and result limit

        Returns:
            Result with matching parks in insertion order, the total number
            of matches and a staleness warning when the data is old
        """
        options = options or ParkSearchOptions()
        pattern = f"%{_escape_like(query.strip())}%"
        where = "(reference LIKE ? ESCAPE '\\' OR name LIKE ? ESCAPE '\\')"
        params: List[Any] = [pattern, pattern]

        if options.state:
            where += " AND state = ?"
            params.append(options.state.upper())
        if options.region:
            where += " AND UPPER(region) = UPPER(?)"
            params.append(options.region)

        def operation(conn):
            rows = conn.execute(
                f"SELECT * FROM parks WHERE {where} ORDER BY id ASC LIMIT ?",
                params + [options.limit]
            ).fetchall()
            parks = [park_from_row(row) for row in rows]
            total = conn.execute(f"SELECT COUNT(*) FROM parks WHERE {where}", params).fetchone()[0]

            if parks:
                oldest_sync = min(park.synced_at for park in parks)
            else:
                last_sync = conn.execute("SELECT MAX(syncedAt) FROM parks").fetchone()[0]
                oldest_sync = self._decode_sync_time(last_sync)

            return Result.ok(ParkSearchResult(
                parks=parks,
                total=total,
                stale_warning=self._stale_warning(oldest_sync),
            ))

        return self._run(f"search parks for '{query}'", operation)

    def list_by_entity(self, entity_code: str) -> Result[List[Park]]:
        """List parks of one entity.

        The code matches the reference prefix ("K" for K-0039) or the
        park's country or region, ignoring case.
        """
        code = entity_code.strip().upper()

        def operation(conn):
            rows = conn.execute(
                """
                SELECT * FROM parks
                WHERE reference LIKE ? ESCAPE '\\'
                   OR UPPER(country) = ?
                   OR UPPER(region) = ?
                ORDER BY reference ASC
                """,
                (f"{_escape_like(code)}-%", code, code)
            ).fetchall()
            return Result.ok([park_from_row(row) for row in rows])

        return self._run(f"list parks for entity {entity_code}", operation)

    def count(self) -> Result[int]:
        return self._run(
            "count parks",
            lambda conn: Result.ok(conn.execute("SELECT COUNT(*) FROM parks").fetchone()[0]),
        )

    def last_sync_time(self) -> Result[Optional[datetime]]:
        """Most recent syncedAt across the catalog, or None when empty."""
        def operation(conn):
            value = conn.execute("SELECT MAX(syncedAt) FROM parks").fetchone()[0]
            return Result.ok(self._decode_sync_time(value))

        return self._run("get last sync time", operation)

    def delete(self, park_id: int) -> Result[bool]:
        """Maintenance delete; the park's plans are removed by cascade."""
        def operation(conn):
            cursor = conn.execute("DELETE FROM parks WHERE id = ?", (park_id,))
            if cursor.rowcount == 0:
                return self._not_found(f"Park not found: {park_id}")
            self.logger.info(f"Deleted park {park_id}")
            return Result.ok(True)

        return self._run(f"delete park {park_id}", operation)

    def stale_warning(self) -> Result[Optional[str]]:
        """Warning text when the catalog as a whole is empty or out of date."""
        result = self.last_sync_time()
        if not result.success:
            return Result.fail(result.error)
        return Result.ok(self._stale_warning(result.data))

    def _decode_sync_time(self, value: Optional[str]) -> Optional[datetime]:
        if value is None:
            return None
        try:
            return parse_timestamp(value)
        except ValueError as e:
            raise RowDecodeError(f"syncedAt: {e}") from e

    def _stale_warning(self, synced_at: Optional[datetime]) -> Optional[str]:
        if synced_at is None:
            return 'No park data found. Run a park sync to download park information.'
        age = self.clock() - synced_at
        if age > timedelta(days=self.stale_days):
            return f"Park data is {age.days} days old. Run a park sync to refresh."
        return None
