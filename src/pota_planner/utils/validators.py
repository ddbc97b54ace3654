"""Data validation utilities."""

import logging
import re
from datetime import date
from typing import Any, Dict, Optional


logger = logging.getLogger(__name__)

PARK_REFERENCE_PATTERN = re.compile(r'^[A-Z0-9]{1,4}-\d{4,5}$')
TIME_PATTERN = re.compile(r'^([01]\d|2[0-3]):[0-5]\d$')


def validate_park_data(park: Dict[str, Any]) -> bool:
    """Validate park data has required fields and sane coordinates.

    Args:
        park: Park data dictionary from the park directory

    Returns:
        True if valid, False otherwise
    """
    required_fields = ['reference', 'name', 'latitude', 'longitude']

    for field in required_fields:
        if field not in park or park[field] is None:
            logger.warning(f"Park missing required field: {field}")
            return False

    if not PARK_REFERENCE_PATTERN.match(str(park['reference']).strip().upper()):
        logger.warning(f"Invalid park reference: {park.get('reference')}")
        return False

    lat, lon = clean_coordinates(park['latitude'], park['longitude'])
    if lat is None:
        logger.warning(f"Invalid coordinates for park {park['reference']}")
        return False

    return True


def clean_coordinates(lat: Optional[float], lon: Optional[float]) -> tuple:
    """Clean and validate coordinates.

    Args:
        lat: Latitude
        lon: Longitude

    Returns:
        Tuple of (latitude, longitude) or (None, None) if invalid
    """
    try:
        if lat is not None and lon is not None:
            lat_f = float(lat)
            lon_f = float(lon)
            if -90 <= lat_f <= 90 and -180 <= lon_f <= 180:
                return lat_f, lon_f
    except (ValueError, TypeError):
        pass

    return None, None


def parse_date(value: str) -> Optional[date]:
    """Parse a YYYY-MM-DD string, returning None if it is malformed."""
    try:
        return date.fromisoformat(value)
    except (ValueError, TypeError):
        return None


def validate_time(value: Optional[str]) -> bool:
    """Check an optional HH:MM (24h) time."""
    return value is None or bool(TIME_PATTERN.match(value))
