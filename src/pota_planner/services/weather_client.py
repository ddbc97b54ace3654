"""Open-Meteo forecast API client."""

import logging
from typing import Any, Dict, Optional

import requests
from requests.exceptions import RequestException, Timeout

from ..errors import AppError, ErrorCode, Result


logger = logging.getLogger(__name__)

DAILY_PARAMS = ','.join([
    'temperature_2m_max',
    'temperature_2m_min',
    'precipitation_probability_max',
    'windspeed_10m_max',
    'winddirection_10m_dominant',
    'weathercode',
    'sunrise',
    'sunset',
])


class OpenMeteoClient:
    """Client for the Open-Meteo daily forecast API (no key required)."""

    BASE_URL = "https://api.open-meteo.com/v1/forecast"

    def __init__(self, base_url: Optional[str] = None, timeout: float = 30):
        """Initialize the forecast client.

        Args:
            base_url: Forecast endpoint, defaults to BASE_URL
            timeout: Request timeout in seconds
        """
        self.base_url = base_url or self.BASE_URL
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({'Accept': 'application/json'})

    def fetch_forecast(self, lat: float, lon: float) -> Result[Dict[str, Any]]:
        """Fetch the daily forecast for a coordinate.

        The response is only returned when its daily series is non-empty.

        Args:
            lat: Latitude in decimal degrees
            lon: Longitude in decimal degrees

        Returns:
            Result with the raw Open-Meteo response
        """
        if not -90 <= lat <= 90:
            return Result.fail(AppError(
                f"Invalid latitude: {lat}. Must be between -90 and 90.",
                ErrorCode.INVALID_INPUT,
                ['Provide a valid latitude coordinate'],
            ))
        if not -180 <= lon <= 180:
            return Result.fail(AppError(
                f"Invalid longitude: {lon}. Must be between -180 and 180.",
                ErrorCode.INVALID_INPUT,
                ['Provide a valid longitude coordinate'],
            ))

        params = {
            'latitude': lat,
            'longitude': lon,
            'daily': DAILY_PARAMS,
            'timezone': 'auto',
            'temperature_unit': 'fahrenheit',
            'windspeed_unit': 'mph',
            'precipitation_unit': 'inch',
        }

        try:
            logger.debug(f"Fetching forecast for {lat}, {lon}")
            response = self.session.get(self.base_url, params=params, timeout=self.timeout)
        except Timeout:
            logger.warning(f"Open-Meteo request timed out after {self.timeout}s")
            return Result.fail(AppError(
                f"Open-Meteo API request timed out after {self.timeout} seconds",
                ErrorCode.TIMEOUT,
                ['Check your network connection', 'Try again later'],
            ))
        except RequestException as e:
            logger.warning(f"Request error to Open-Meteo: {e}")
            return Result.fail(AppError(
                f"Network error: Unable to reach Open-Meteo API. {e}",
                ErrorCode.NETWORK_ERROR,
                ['Check your network connection', 'Verify you have internet access'],
            ))

        if response.status_code != 200:
            logger.warning(f"Open-Meteo API returned status {response.status_code}")
            return Result.fail(AppError(
                f"Open-Meteo API returned status {response.status_code}",
                ErrorCode.NETWORK_ERROR,
                ['The Open-Meteo API may be experiencing issues', 'Try again later'],
            ))

        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"Error parsing Open-Meteo response: {e}")
            data = None

        daily = data.get('daily') if isinstance(data, dict) else None
        if not isinstance(daily, dict) or not daily.get('time'):
            return Result.fail(AppError(
                'Open-Meteo API returned invalid response structure',
                ErrorCode.INVALID_RESPONSE,
                ['Try again later'],
            ))

        return Result.ok(data)
