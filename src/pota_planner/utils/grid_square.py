"""Maidenhead grid square helpers."""

import math
from typing import Optional, Tuple


def calculate_grid_square(lat: float, lon: float) -> str:
    """Compute the 6-character Maidenhead locator for a coordinate.

    Args:
        lat: Latitude in decimal degrees
        lon: Longitude in decimal degrees

    Returns:
        Locator such as "DN44qk"
    """
    # Shift to positive ranges; clamp the poles/antimeridian into the last cell
    adj_lon = min(lon + 180, 359.999999)
    adj_lat = min(lat + 90, 179.999999)

    field = chr(ord('A') + int(adj_lon // 20)) + chr(ord('A') + int(adj_lat // 10))

    adj_lon %= 20
    adj_lat %= 10
    square = f"{int(adj_lon // 2)}{int(adj_lat // 1)}"

    adj_lon %= 2
    adj_lat %= 1
    subsquare = chr(ord('a') + int(adj_lon / 2 * 24)) + chr(ord('a') + int(adj_lat * 24))

    return field + square + subsquare


def grid_to_coordinates(grid: str) -> Optional[Tuple[float, float]]:
    """Return the centre of a 4- or 6-character locator, or None if invalid."""
    normalized = grid.strip().upper()
    if len(normalized) < 4:
        return None

    field_lon = ord(normalized[0]) - ord('A')
    field_lat = ord(normalized[1]) - ord('A')
    if not (0 <= field_lon < 18 and 0 <= field_lat < 18):
        return None
    if not (normalized[2].isdigit() and normalized[3].isdigit()):
        return None

    lon = field_lon * 20 + int(normalized[2]) * 2 - 180
    lat = field_lat * 10 + int(normalized[3]) - 90

    if len(normalized) >= 6:
        sub_lon = ord(normalized[4]) - ord('A')
        sub_lat = ord(normalized[5]) - ord('A')
        if not (0 <= sub_lon < 24 and 0 <= sub_lat < 24):
            return None
        lon += (sub_lon + 0.5) * (2 / 24)
        lat += (sub_lat + 0.5) * (1 / 24)
    else:
        lon += 1
        lat += 0.5

    return lat, lon


def haversine_miles(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points in statute miles."""
    # Earth radius in miles
    R = 3959

    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    a = (math.sin(delta_lat / 2) ** 2 +
         math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(delta_lon / 2) ** 2)
    c = 2 * math.asin(math.sqrt(a))

    return R * c
