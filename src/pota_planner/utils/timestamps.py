"""Timestamp helpers for values stored in the database."""

from datetime import datetime, timedelta, timezone


# Same layout as SQLite's datetime('now') so stored values compare as text
TIMESTAMP_FORMAT = '%Y-%m-%d %H:%M:%S'


def utc_now() -> datetime:
    """Current time in UTC, at full clock precision.

    Stored values are whole seconds; format_timestamp() drops the fraction
    and ceil_to_second() rounds it up where an expiry must not move earlier.
    """
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Return an aware UTC datetime, taking naive values to be UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def ceil_to_second(value: datetime) -> datetime:
    """Round up to the next whole second, unchanged if already whole."""
    value = as_utc(value)
    if value.microsecond:
        value = value.replace(microsecond=0) + timedelta(seconds=1)
    return value


def format_timestamp(value: datetime) -> str:
    """Serialize a datetime for storage.

    Naive datetimes are taken to be UTC. Sub-second precision is dropped.

    Args:
        value: Datetime to serialize

    Returns:
        UTC timestamp string
    """
    return as_utc(value).strftime(TIMESTAMP_FORMAT)


def parse_timestamp(value: str) -> datetime:
    """Parse a stored timestamp back into an aware UTC datetime.

    Raises:
        ValueError: If the value is not a valid timestamp
    """
    if not isinstance(value, str):
        raise ValueError(f"Expected timestamp string, got {type(value).__name__}")
    return as_utc(datetime.fromisoformat(value))
