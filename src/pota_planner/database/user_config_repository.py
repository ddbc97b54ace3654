"""Single-row user preferences repository."""

from typing import Optional

from ..errors import Result
from .base_repository import BaseRepository, RowDecodeError
from .models import Units, UserConfig


# The table's CHECK constraint pins the primary key to this value
USER_CONFIG_ID = 1


class UserConfigRepository(BaseRepository):
    """Reads and replaces the singleton user_config row."""

    def get(self) -> Result[Optional[UserConfig]]:
        """Return saved preferences, or Result.ok(None) before the first save."""
        def operation(conn):
            row = conn.execute(
                "SELECT * FROM user_config WHERE id = ?", (USER_CONFIG_ID,)
            ).fetchone()
            if row is None:
                return Result.ok(None)
            try:
                units = Units(row['units'])
            except ValueError as e:
                raise RowDecodeError(f"user_config: {e}") from e
            return Result.ok(UserConfig(
                callsign=row['callsign'],
                grid_square=row['gridSquare'],
                home_latitude=row['homeLat'],
                home_longitude=row['homeLon'],
                timezone=row['timezone'],
                units=units,
            ))

        return self._run("load user config", operation)

    def save(self, config: UserConfig) -> Result[UserConfig]:
        """Insert the row on first save and replace it in place afterwards."""
        def operation(conn):
            conn.execute(
                """
                INSERT INTO user_config (id, callsign, gridSquare, homeLat, homeLon, timezone, units)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    callsign = excluded.callsign,
                    gridSquare = excluded.gridSquare,
                    homeLat = excluded.homeLat,
                    homeLon = excluded.homeLon,
                    timezone = excluded.timezone,
                    units = excluded.units
                """,
                (
                    USER_CONFIG_ID, config.callsign, config.grid_square,
                    config.home_latitude, config.home_longitude,
                    config.timezone, getattr(config.units, 'value', config.units),
                )
            )
            self.logger.debug("Saved user config")
            return Result.ok(config)

        return self._run("save user config", operation)
