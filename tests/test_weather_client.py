"""Tests for the Open-Meteo client."""

import responses
from requests.exceptions import ConnectionError, Timeout

from pota_planner.errors import ErrorCode
from pota_planner.services.weather_client import OpenMeteoClient


FORECAST_URL = 'https://api.open-meteo.com/v1/forecast'


def _forecast_body():
    return {
        'latitude': 44.43,
        'longitude': -110.59,
        'daily': {
            'time': ['2024-06-01', '2024-06-02'],
            'temperature_2m_max': [68.0, 71.2],
            'temperature_2m_min': [38.1, 40.5],
            'precipitation_probability_max': [10, 40],
            'windspeed_10m_max': [12.3, 8.0],
            'winddirection_10m_dominant': [270, 45],
            'weathercode': [1, 61],
            'sunrise': ['2024-06-01T05:32', '2024-06-02T05:31'],
            'sunset': ['2024-06-01T21:05', '2024-06-02T21:06'],
        },
    }


@responses.activate
def test_fetch_forecast_success():
    """Test a forecast is fetched with imperial units."""
    responses.add(responses.GET, FORECAST_URL, json=_forecast_body(), status=200)

    result = OpenMeteoClient().fetch_forecast(44.428, -110.5885)

    assert result.success
    assert result.data['daily']['time'] == ['2024-06-01', '2024-06-02']
    request_url = responses.calls[0].request.url
    assert 'temperature_unit=fahrenheit' in request_url
    assert 'latitude=44.428' in request_url


def test_invalid_coordinates():
    """Test out-of-range coordinates fail before any request."""
    client = OpenMeteoClient()

    bad_lat = client.fetch_forecast(91, 0)
    assert not bad_lat.success
    assert bad_lat.error.code == ErrorCode.INVALID_INPUT

    bad_lon = client.fetch_forecast(0, -181)
    assert not bad_lon.success
    assert bad_lon.error.code == ErrorCode.INVALID_INPUT


@responses.activate
def test_empty_daily_series():
    """Test a response without daily dates is invalid."""
    body = _forecast_body()
    body['daily']['time'] = []
    responses.add(responses.GET, FORECAST_URL, json=body, status=200)

    result = OpenMeteoClient().fetch_forecast(44.428, -110.5885)

    assert not result.success
    assert result.error.code == ErrorCode.INVALID_RESPONSE


@responses.activate
def test_timeout():
    """Test a timeout maps to TIMEOUT."""
    responses.add(responses.GET, FORECAST_URL, body=Timeout())

    result = OpenMeteoClient().fetch_forecast(44.428, -110.5885)

    assert not result.success
    assert result.error.code == ErrorCode.TIMEOUT


@responses.activate
def test_network_error():
    """Test connection failures and HTTP errors map to NETWORK_ERROR."""
    responses.add(responses.GET, FORECAST_URL, body=ConnectionError('Network unreachable'))

    result = OpenMeteoClient().fetch_forecast(44.428, -110.5885)

    assert not result.success
    assert result.error.code == ErrorCode.NETWORK_ERROR


@responses.activate
def test_server_error():
    """Test a 500 maps to NETWORK_ERROR."""
    responses.add(responses.GET, FORECAST_URL, status=500)

    result = OpenMeteoClient().fetch_forecast(44.428, -110.5885)

    assert not result.success
    assert result.error.code == ErrorCode.NETWORK_ERROR
