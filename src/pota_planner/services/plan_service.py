"""Plan service enforcing the plan lifecycle on top of the repository."""

import logging
from dataclasses import replace
from datetime import date
from typing import Dict, FrozenSet, List, Optional, Union

from ..database.models import Plan, PlanFindOptions, PlanInput, PlanStatus, PlanUpdate, UNSET
from ..database.park_repository import ParkRepository
from ..database.plan_repository import PlanRepository
from ..errors import AppError, ErrorCode, Result
from ..utils.validators import parse_date, validate_time


logger = logging.getLogger(__name__)

# draft -> finalized -> completed; any plan may be cancelled
ALLOWED_TRANSITIONS: Dict[PlanStatus, FrozenSet[PlanStatus]] = {
    PlanStatus.DRAFT: frozenset({PlanStatus.FINALIZED, PlanStatus.CANCELLED}),
    PlanStatus.FINALIZED: frozenset({PlanStatus.COMPLETED, PlanStatus.CANCELLED}),
    PlanStatus.COMPLETED: frozenset({PlanStatus.CANCELLED}),
    PlanStatus.CANCELLED: frozenset(),
}


def can_transition(current: PlanStatus, new: PlanStatus) -> bool:
    return current == new or new in ALLOWED_TRANSITIONS[current]


def _invalid(message: str, suggestions: Optional[List[str]] = None) -> Result:
    return Result.fail(AppError(message, ErrorCode.INVALID_INPUT, suggestions))


class PlanService:
    """Creates and edits plans, keeping status changes legal."""

    def __init__(self, plans: PlanRepository, parks: ParkRepository):
        self.plans = plans
        self.parks = parks

    def create_plan(self, park_reference: str, planned_date: Union[str, date],
                    planned_time: Optional[str] = None,
                    duration_hours: Optional[float] = None,
                    preset_id: Optional[str] = None,
                    notes: Optional[str] = None) -> Result[Plan]:
        """Create a draft plan for the park with the given reference."""
        if isinstance(planned_date, str):
            parsed = parse_date(planned_date)
            if parsed is None:
                return _invalid(
                    f"Invalid date format: {planned_date}. Expected YYYY-MM-DD.",
                    ['Use the format YYYY-MM-DD'],
                )
            planned_date = parsed
        if not validate_time(planned_time):
            return _invalid(f"Invalid time: {planned_time}. Expected HH:MM.")
        if duration_hours is not None and duration_hours <= 0:
            return _invalid(f"Duration must be positive, got {duration_hours}")

        park = self.parks.find_by_reference(park_reference)
        if not park.success:
            return Result.fail(park.error)
        if park.data is None:
            return Result.fail(AppError(
                f"Park not found: {park_reference}",
                ErrorCode.NOT_FOUND,
                ['Verify the park reference is correct', 'Try syncing park data first'],
            ))

        return self.plans.create(PlanInput(
            park_id=park.data.id,
            planned_date=planned_date,
            planned_time=planned_time,
            duration_hours=duration_hours,
            preset_id=preset_id,
            notes=notes,
        ))

    def update_plan(self, plan_id: int, changes: PlanUpdate) -> Result[Plan]:
        """Apply a partial update, checking any status change first."""
        if changes.planned_time is not UNSET and not validate_time(changes.planned_time):
            return _invalid(f"Invalid time: {changes.planned_time}. Expected HH:MM.")

        if changes.status is not UNSET:
            try:
                new_status = PlanStatus(changes.status)
            except ValueError:
                return _invalid(f"Unknown plan status: {changes.status}")

            current = self.plans.find_by_id(plan_id)
            if not current.success:
                return Result.fail(current.error)
            if current.data is None:
                return Result.fail(AppError(f"Plan not found: {plan_id}", ErrorCode.NOT_FOUND))
            if not can_transition(current.data.status, new_status):
                return Result.fail(AppError(
                    f"Cannot change plan {plan_id} from {current.data.status.value} to {new_status.value}",
                    ErrorCode.INVALID_TRANSITION,
                    ['Plans move draft -> finalized -> completed, or to cancelled'],
                ))
            changes = replace(changes, status=new_status)

        return self.plans.update(plan_id, changes)

    def change_status(self, plan_id: int, new_status: PlanStatus) -> Result[Plan]:
        result = self.update_plan(plan_id, PlanUpdate(status=new_status))
        if result.success:
            logger.info(f"Plan {plan_id} is now {result.data.status.value}")
        return result

    def delete_plan(self, plan_id: int) -> Result[bool]:
        return self.plans.delete(plan_id)

    def upcoming_plans(self, limit: int = 50) -> Result[List[Plan]]:
        return self.plans.find(PlanFindOptions(upcoming=True, limit=limit))
