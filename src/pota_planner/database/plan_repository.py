"""Activation plan repository."""

import sqlite3
from datetime import date
from typing import Any, List, Optional

from ..errors import AppError, ErrorCode, Result
from ..utils.timestamps import format_timestamp, parse_timestamp
from .base_repository import BaseRepository, RowDecodeError
from .models import Plan, PlanFindOptions, PlanInput, PlanStatus, PlanUpdate
from .park_repository import PARK_COLUMNS, park_from_row
from .transaction import transaction


PARK_PREFIX = 'park_'

SELECT_PLAN_WITH_PARK_SQL = "SELECT p.*, {park_columns} FROM plans p JOIN parks pk ON p.parkId = pk.id".format(
    park_columns=', '.join(f"pk.{column} AS {PARK_PREFIX}{column}" for column in PARK_COLUMNS)
)

# PlanUpdate field -> column
UPDATABLE_COLUMNS = {
    'planned_date': 'plannedDate',
    'planned_time': 'plannedTime',
    'duration_hours': 'durationHours',
    'preset_id': 'presetId',
    'notes': 'notes',
    'status': 'status',
    'weather_snapshot': 'weatherSnapshot',
    'bands_snapshot': 'bandsSnapshot',
}


def _to_db_value(value: Any) -> Any:
    if isinstance(value, PlanStatus):
        return value.value
    if isinstance(value, date):
        return value.isoformat()
    return value


def plan_from_row(row: sqlite3.Row) -> Plan:
    """Convert a joined plan/park row into a Plan carrying its park.

    Raises:
        RowDecodeError: If status, dates or timestamps cannot be parsed
    """
    try:
        status = PlanStatus(row['status'])
        planned_date = date.fromisoformat(row['plannedDate'])
        created_at = parse_timestamp(row['createdAt'])
        updated_at = parse_timestamp(row['updatedAt'])
    except (TypeError, ValueError) as e:
        raise RowDecodeError(f"plan {row['id']}: {e}") from e

    return Plan(
        id=row['id'],
        park_id=row['parkId'],
        status=status,
        planned_date=planned_date,
        planned_time=row['plannedTime'],
        duration_hours=row['durationHours'],
        preset_id=row['presetId'],
        notes=row['notes'],
        weather_snapshot=row['weatherSnapshot'],
        bands_snapshot=row['bandsSnapshot'],
        created_at=created_at,
        updated_at=updated_at,
        park=park_from_row(row, prefix=PARK_PREFIX),
    )


class PlanRepository(BaseRepository):
    """Stores activation plans.

    Status is stored as given; the allowed transitions are enforced by
    the plan service, not here.
    """

    def _select_by_id(self, conn: sqlite3.Connection, plan_id: int) -> Optional[Plan]:
        row = conn.execute(f"{SELECT_PLAN_WITH_PARK_SQL} WHERE p.id = ?", (plan_id,)).fetchone()
        return plan_from_row(row) if row else None

    def create(self, plan: PlanInput) -> Result[Plan]:
        """Create a draft plan for an existing park.

        Args:
            plan: Plan fields; park_id must reference an existing park

        Returns:
            Result with the stored plan, or CONSTRAINT_VIOLATION when the
            park does not exist
        """
        def operation(conn):
            now = format_timestamp(self.clock())
            with transaction(conn):
                park_row = conn.execute("SELECT id FROM parks WHERE id = ?", (plan.park_id,)).fetchone()
                if park_row is None:
                    return Result.fail(AppError(
                        f"Park not found: {plan.park_id}",
                        ErrorCode.CONSTRAINT_VIOLATION,
                        ['Verify the park exists', 'Try syncing park data first'],
                    ))

                cursor = conn.execute(
                    """
                    INSERT INTO plans (
                        parkId, status, plannedDate, plannedTime, durationHours,
                        presetId, notes, weatherSnapshot, bandsSnapshot, createdAt, updatedAt
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        plan.park_id, PlanStatus.DRAFT.value, _to_db_value(plan.planned_date),
                        plan.planned_time, plan.duration_hours, plan.preset_id, plan.notes,
                        plan.weather_snapshot, plan.bands_snapshot, now, now,
                    )
                )
                stored = self._select_by_id(conn, cursor.lastrowid)

            self.logger.info(f"Created plan {stored.id} for park {stored.park.reference}")
            return Result.ok(stored)

        return self._run(f"create plan for park {plan.park_id}", operation)

    def update(self, plan_id: int, changes: PlanUpdate) -> Result[Plan]:
        """Apply a partial update; updatedAt is always refreshed.

        Args:
            plan_id: Plan to update
            changes: Fields to change; UNSET fields are left alone

        Returns:
            Result with the updated plan, or NOT_FOUND
        """
        supplied = changes.supplied()
        assignments = ['updatedAt = ?']
        values: List[Any] = [format_timestamp(self.clock())]
        for field_name, value in supplied.items():
            assignments.append(f"{UPDATABLE_COLUMNS[field_name]} = ?")
            values.append(_to_db_value(value))
        values.append(plan_id)

        def operation(conn):
            with transaction(conn):
                cursor = conn.execute(
                    f"UPDATE plans SET {', '.join(assignments)} WHERE id = ?", values
                )
                if cursor.rowcount == 0:
                    return self._not_found(f"Plan not found: {plan_id}")
                stored = self._select_by_id(conn, plan_id)

            self.logger.debug(f"Updated plan {plan_id}: {', '.join(supplied) or 'no fields'}")
            return Result.ok(stored)

        return self._run(f"update plan {plan_id}", operation)

    def find_by_id(self, plan_id: int) -> Result[Optional[Plan]]:
        """Look up a plan with its park; a missing plan is Result.ok(None)."""
        return self._run(
            f"find plan {plan_id}",
            lambda conn: Result.ok(self._select_by_id(conn, plan_id)),
        )

    def find(self, options: Optional[PlanFindOptions] = None) -> Result[List[Plan]]:
        """List plans with their parks, ordered by planned date.

        Args:
            options: Status, upcoming, park and limit filters
        """
        options = options or PlanFindOptions()
        sql = f"{SELECT_PLAN_WITH_PARK_SQL} WHERE 1=1"
        params: List[Any] = []

        if options.status is not None:
            sql += " AND p.status = ?"
            params.append(_to_db_value(options.status))
        if options.upcoming:
            sql += " AND p.plannedDate >= ?"
            params.append(self.clock().date().isoformat())
        if options.park_id is not None:
            sql += " AND p.parkId = ?"
            params.append(options.park_id)

        sql += " ORDER BY p.plannedDate ASC, p.plannedTime ASC, p.id ASC LIMIT ?"
        params.append(options.limit)

        def operation(conn):
            rows = conn.execute(sql, params).fetchall()
            return Result.ok([plan_from_row(row) for row in rows])

        return self._run("fetch plans", operation)

    def delete(self, plan_id: int) -> Result[bool]:
        def operation(conn):
            cursor = conn.execute("DELETE FROM plans WHERE id = ?", (plan_id,))
            if cursor.rowcount == 0:
                return self._not_found(f"Plan not found: {plan_id}")
            self.logger.info(f"Deleted plan {plan_id}")
            return Result.ok(True)

        return self._run(f"delete plan {plan_id}", operation)

    def count(self) -> Result[int]:
        return self._run(
            "count plans",
            lambda conn: Result.ok(conn.execute("SELECT COUNT(*) FROM plans").fetchone()[0]),
        )
