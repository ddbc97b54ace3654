"""Weather forecast cache repository."""

import sqlite3
from datetime import datetime, timedelta
from typing import List, Optional

from ..errors import AppError, ErrorCode, Result
from ..utils.timestamps import as_utc, ceil_to_second, format_timestamp, parse_timestamp
from .base_repository import BaseRepository, RowDecodeError
from .models import WeatherCacheEntry, WeatherCacheInput
from .transaction import transaction


# Coordinates are rounded so nearby lookups share a cache row (~11 m)
COORDINATE_PRECISION = 4

PUT_ENTRY_SQL = """
    INSERT INTO weather_cache (latitude, longitude, forecastDate, data, fetchedAt, expiresAt)
    VALUES (?, ?, ?, ?, ?, ?)
    ON CONFLICT(latitude, longitude, forecastDate) DO UPDATE SET
        data = excluded.data,
        fetchedAt = excluded.fetchedAt,
        expiresAt = excluded.expiresAt
"""

SELECT_ENTRY_SQL = """
    SELECT * FROM weather_cache
    WHERE latitude = ? AND longitude = ? AND forecastDate = ?
"""


def round_coordinate(value: float) -> float:
    return round(value, COORDINATE_PRECISION)


class WeatherCacheRepository(BaseRepository):
    """Keyed put/get over cached forecasts.

    Stale entries are returned with is_stale set rather than hidden;
    only a missing row is reported as a miss. Nothing is evicted
    automatically, see purge_expired().
    """

    def _entry_from_row(self, row: sqlite3.Row, now: datetime) -> WeatherCacheEntry:
        try:
            fetched_at = parse_timestamp(row['fetchedAt'])
            expires_at = parse_timestamp(row['expiresAt'])
        except ValueError as e:
            raise RowDecodeError(f"weather cache {row['id']}: {e}") from e

        return WeatherCacheEntry(
            id=row['id'],
            latitude=row['latitude'],
            longitude=row['longitude'],
            forecast_date=row['forecastDate'],
            data=row['data'],
            fetched_at=fetched_at,
            expires_at=expires_at,
            is_stale=now > expires_at,
        )

    def put(self, entry: WeatherCacheInput) -> Result[WeatherCacheEntry]:
        """Store a forecast, replacing any entry for the same coordinate and date.

        Args:
            entry: Forecast payload; expires_at defaults to fetched_at + ttl_hours

        Returns:
            Result with the stored entry, or CONSTRAINT_VIOLATION when
            expires_at is not after fetched_at
        """
        fetched_at = as_utc(entry.fetched_at or self.clock())
        expires_at = as_utc(entry.expires_at or fetched_at + timedelta(hours=entry.ttl_hours))
        if expires_at <= fetched_at:
            return Result.fail(AppError(
                f"Cache entry for {entry.forecast_date} expires before it was fetched",
                ErrorCode.CONSTRAINT_VIOLATION,
                ['Use an expiry time later than the fetch time'],
            ))

        key = (round_coordinate(entry.latitude), round_coordinate(entry.longitude), entry.forecast_date)

        def operation(conn):
            with transaction(conn):
                conn.execute(PUT_ENTRY_SQL, key + (
                    # Fetch time rounds down and expiry up, so a valid pair stays ordered
                    entry.data, format_timestamp(fetched_at), format_timestamp(ceil_to_second(expires_at)),
                ))
                row = conn.execute(SELECT_ENTRY_SQL, key).fetchone()
            self.logger.debug(f"Cached forecast for {key}")
            return Result.ok(self._entry_from_row(row, self.clock()))

        return self._run(f"cache forecast for {entry.forecast_date}", operation)

    def get(self, latitude: float, longitude: float, forecast_date: str) -> Result[Optional[WeatherCacheEntry]]:
        """Exact-key lookup; Result.ok(None) only when no row exists."""
        key = (round_coordinate(latitude), round_coordinate(longitude), forecast_date)

        def operation(conn):
            row = conn.execute(SELECT_ENTRY_SQL, key).fetchone()
            return Result.ok(self._entry_from_row(row, self.clock()) if row else None)

        return self._run(f"get cached forecast for {forecast_date}", operation)

    def get_range(self, latitude: float, longitude: float,
                  start_date: str, end_date: str) -> Result[List[WeatherCacheEntry]]:
        """All cached days for a coordinate between two dates, inclusive."""
        def operation(conn):
            now = self.clock()
            rows = conn.execute(
                """
                SELECT * FROM weather_cache
                WHERE latitude = ? AND longitude = ?
                  AND forecastDate >= ? AND forecastDate <= ?
                ORDER BY forecastDate ASC
                """,
                (round_coordinate(latitude), round_coordinate(longitude), start_date, end_date)
            ).fetchall()
            return Result.ok([self._entry_from_row(row, now) for row in rows])

        return self._run(f"get cached forecasts {start_date}..{end_date}", operation)

    def purge_expired(self) -> Result[int]:
        """Delete every entry whose expiry is in the past.

        Returns:
            Result with the number of rows removed
        """
        def operation(conn):
            cursor = conn.execute(
                "DELETE FROM weather_cache WHERE expiresAt < ?",
                (format_timestamp(ceil_to_second(self.clock())),)
            )
            self.logger.info(f"Purged {cursor.rowcount} expired weather cache entries")
            return Result.ok(cursor.rowcount)

        return self._run("purge expired weather cache", operation)

    def count(self) -> Result[int]:
        return self._run(
            "count weather cache entries",
            lambda conn: Result.ok(conn.execute("SELECT COUNT(*) FROM weather_cache").fetchone()[0]),
        )
