"""Entity types stored by the repositories."""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class PlanStatus(str, Enum):
    """Lifecycle state of an activation plan."""

    DRAFT = 'draft'
    FINALIZED = 'finalized'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'


class Units(str, Enum):
    IMPERIAL = 'imperial'
    METRIC = 'metric'


@dataclass
class Park:
    """A POTA park synced from the park directory."""

    id: int
    reference: str
    name: str
    latitude: float
    longitude: float
    synced_at: datetime
    grid_square: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    region: Optional[str] = None
    park_type: Optional[str] = None
    is_active: bool = True
    pota_url: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


@dataclass
class ParkInput:
    """Fields written by a park upsert."""

    reference: str
    name: str
    latitude: float
    longitude: float
    grid_square: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    region: Optional[str] = None
    park_type: Optional[str] = None
    is_active: bool = True
    pota_url: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


@dataclass
class ParkSearchOptions:
    state: Optional[str] = None
    region: Optional[str] = None
    limit: int = 50


@dataclass
class ParkSearchResult:
    parks: List[Park]
    total: int
    stale_warning: Optional[str] = None


@dataclass
class Plan:
    """An activation plan, carrying its park as read at query time."""

    id: int
    park_id: int
    status: PlanStatus
    planned_date: date
    created_at: datetime
    updated_at: datetime
    planned_time: Optional[str] = None
    duration_hours: Optional[float] = None
    preset_id: Optional[str] = None
    notes: Optional[str] = None
    weather_snapshot: Optional[str] = None
    bands_snapshot: Optional[str] = None
    park: Optional[Park] = None


@dataclass
class PlanInput:
    park_id: int
    planned_date: date
    planned_time: Optional[str] = None
    duration_hours: Optional[float] = None
    preset_id: Optional[str] = None
    notes: Optional[str] = None
    weather_snapshot: Optional[str] = None
    bands_snapshot: Optional[str] = None


class _Unset:
    """Marker for a field left out of a partial update."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return 'UNSET'

    def __bool__(self):
        return False


UNSET: Any = _Unset()


@dataclass
class PlanUpdate:
    """Partial plan update; fields left as UNSET are not touched.

    Passing None explicitly clears an optional column.
    """

    planned_date: Any = UNSET
    planned_time: Any = UNSET
    duration_hours: Any = UNSET
    preset_id: Any = UNSET
    notes: Any = UNSET
    status: Any = UNSET
    weather_snapshot: Any = UNSET
    bands_snapshot: Any = UNSET

    def supplied(self) -> Dict[str, Any]:
        """Return only the fields that were explicitly set."""
        return {
            name: value for name, value in self.__dict__.items()
            if value is not UNSET
        }


@dataclass
class PlanFindOptions:
    status: Optional[PlanStatus] = None
    upcoming: bool = False
    park_id: Optional[int] = None
    limit: int = 50


@dataclass
class WeatherCacheEntry:
    """Cached forecast for one coordinate and date.

    Times are stored to the whole second: fetched_at rounded down,
    expires_at rounded up. is_stale is computed against the full-precision
    clock when the row is read and never stored.
    """

    id: int
    latitude: float
    longitude: float
    forecast_date: str
    data: str
    fetched_at: datetime
    expires_at: datetime
    is_stale: bool = False


@dataclass
class WeatherCacheInput:
    latitude: float
    longitude: float
    forecast_date: str
    data: str
    fetched_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    ttl_hours: float = 1.0


@dataclass
class UserConfig:
    """Single-row user preferences."""

    callsign: Optional[str] = None
    grid_square: Optional[str] = None
    home_latitude: Optional[float] = None
    home_longitude: Optional[float] = None
    timezone: str = 'UTC'
    units: Units = field(default=Units.IMPERIAL)
