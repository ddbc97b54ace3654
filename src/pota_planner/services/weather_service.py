"""Weather service combining the forecast client and the cache."""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..database.models import WeatherCacheEntry, WeatherCacheInput
from ..database.weather_cache_repository import WeatherCacheRepository
from ..errors import AppError, ErrorCode, Result
from ..utils.timestamps import format_timestamp
from ..utils.validators import parse_date
from .weather_client import OpenMeteoClient


logger = logging.getLogger(__name__)

WMO_CODE_DESCRIPTIONS = {
    0: 'Clear sky',
    1: 'Mainly clear',
    2: 'Partly cloudy',
    3: 'Overcast',
    45: 'Fog',
    48: 'Depositing rime fog',
    51: 'Light drizzle',
    53: 'Moderate drizzle',
    55: 'Dense drizzle',
    56: 'Freezing drizzle',
    57: 'Freezing drizzle',
    61: 'Slight rain',
    63: 'Moderate rain',
    65: 'Heavy rain',
    66: 'Freezing rain',
    67: 'Freezing rain',
    71: 'Slight snow',
    73: 'Moderate snow',
    75: 'Heavy snow',
    77: 'Snow grains',
    80: 'Slight rain showers',
    81: 'Moderate rain showers',
    82: 'Violent rain showers',
    85: 'Slight snow showers',
    86: 'Heavy snow showers',
    95: 'Thunderstorm',
    96: 'Thunderstorm with hail',
    99: 'Thunderstorm with heavy hail',
}

CARDINAL_DIRECTIONS = ['N', 'NNE', 'NE', 'ENE', 'E', 'ESE', 'SE', 'SSE',
                       'S', 'SSW', 'SW', 'WSW', 'W', 'WNW', 'NW', 'NNW']


@dataclass
class WeatherForecast:
    latitude: float
    longitude: float
    fetched_at: str
    forecasts: List[Dict[str, Any]] = field(default_factory=list)
    stale_warning: Optional[str] = None


def describe_weather_code(code: Optional[int]) -> str:
    if code is None:
        return 'Unknown'
    return WMO_CODE_DESCRIPTIONS.get(code, f"Unknown weather code: {code}")


def degrees_to_cardinal(degrees: Optional[float]) -> str:
    if degrees is None:
        return 'N/A'
    return CARDINAL_DIRECTIONS[round(degrees / 22.5) % 16]


def normalize_daily(raw: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Flatten Open-Meteo's parallel daily arrays into one dict per day."""
    daily = raw['daily']

    def value(key: str, i: int) -> Any:
        series = daily.get(key) or []
        return series[i] if i < len(series) else None

    forecasts = []
    for i, day in enumerate(daily['time']):
        forecasts.append({
            'date': day,
            'high_temp': value('temperature_2m_max', i),
            'low_temp': value('temperature_2m_min', i),
            'precipitation_chance': value('precipitation_probability_max', i),
            'wind_speed': value('windspeed_10m_max', i),
            'wind_direction': degrees_to_cardinal(value('winddirection_10m_dominant', i)),
            'conditions': describe_weather_code(value('weathercode', i)),
            'sunrise': value('sunrise', i),
            'sunset': value('sunset', i),
        })
    return forecasts


class WeatherService:
    """Serves forecasts from the cache, refreshing from Open-Meteo when stale.

    When the API is unreachable a stale cached forecast is returned with
    a warning instead of an error.
    """

    def __init__(self, cache: WeatherCacheRepository, client: Optional[OpenMeteoClient] = None,
                 ttl_hours: float = 1):
        self.cache = cache
        self.client = client or OpenMeteoClient()
        self.ttl_hours = ttl_hours

    def _from_cache(self, entry: WeatherCacheEntry, warning: Optional[str] = None) -> Optional[WeatherForecast]:
        try:
            day = json.loads(entry.data)
        except ValueError:
            logger.warning(f"Discarding unreadable cached forecast {entry.id}")
            return None
        return WeatherForecast(
            latitude=entry.latitude,
            longitude=entry.longitude,
            fetched_at=format_timestamp(entry.fetched_at),
            forecasts=[day],
            stale_warning=warning,
        )

    def get_forecast(self, lat: float, lon: float, forecast_date: str) -> Result[WeatherForecast]:
        """Forecast for one day at a coordinate.

        Args:
            lat: Latitude in decimal degrees
            lon: Longitude in decimal degrees
            forecast_date: Day in YYYY-MM-DD format

        Returns:
            Result with the forecast; stale_warning is set when the data
            came from an expired cache entry or the date is out of range
        """
        if parse_date(forecast_date) is None:
            return Result.fail(AppError(
                f"Invalid date format: {forecast_date}. Expected YYYY-MM-DD.",
                ErrorCode.INVALID_INPUT,
                ['Use the format YYYY-MM-DD for the date parameter'],
            ))

        cached = self.cache.get(lat, lon, forecast_date)
        if not cached.success:
            return Result.fail(cached.error)
        entry = cached.data

        if entry is not None and not entry.is_stale:
            forecast = self._from_cache(entry)
            if forecast is not None:
                logger.debug(f"Cache hit for {lat}, {lon} on {forecast_date}")
                return Result.ok(forecast)

        api_result = self.client.fetch_forecast(lat, lon)
        if api_result.success:
            days = normalize_daily(api_result.data)
            fetched_at = self.cache.clock()
            for day in days:
                put_result = self.cache.put(WeatherCacheInput(
                    latitude=lat,
                    longitude=lon,
                    forecast_date=day['date'],
                    data=json.dumps(day),
                    fetched_at=fetched_at,
                    ttl_hours=self.ttl_hours,
                ))
                if not put_result.success:
                    logger.warning(f"Failed to cache forecast for {day['date']}: {put_result.error.message}")

            wanted = [day for day in days if day['date'] == forecast_date]
            forecast = WeatherForecast(
                latitude=api_result.data.get('latitude', lat),
                longitude=api_result.data.get('longitude', lon),
                fetched_at=format_timestamp(fetched_at),
                forecasts=wanted or days,
            )
            if not wanted:
                forecast.stale_warning = (
                    f"Requested date {forecast_date} not available in forecast. Showing available dates."
                )
            return Result.ok(forecast)

        if entry is not None:
            logger.warning(f"Forecast API unavailable, using stale cache for {forecast_date}")
            forecast = self._from_cache(
                entry,
                warning=(
                    f"Using cached data from {format_timestamp(entry.fetched_at)} UTC. "
                    f"API unavailable: {api_result.error.message}"
                ),
            )
            if forecast is not None:
                return Result.ok(forecast)

        return Result.fail(AppError(
            f"Failed to get weather forecast: {api_result.error.message}",
            api_result.error.code,
            api_result.error.suggestions,
        ))
