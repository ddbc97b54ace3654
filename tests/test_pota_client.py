"""Tests for the POTA API client."""

import responses
from requests.exceptions import ConnectionError, Timeout

from pota_planner.errors import ErrorCode
from pota_planner.services.pota_client import PotaClient


PARKS_URL = 'https://api.pota.app/parks'


@responses.activate
def test_fetch_all_parks_success():
    """Test a park list is returned as-is."""
    responses.add(
        responses.GET,
        PARKS_URL,
        json=[{'reference': 'K-0039', 'name': 'Yellowstone', 'latitude': 44.428, 'longitude': -110.5885}],
        status=200
    )

    client = PotaClient()
    result = client.fetch_all_parks()

    assert result.success
    assert result.data[0]['reference'] == 'K-0039'
    assert responses.calls[0].request.headers['User-Agent'] == PotaClient.USER_AGENT


@responses.activate
def test_fetch_all_parks_rejects_non_list():
    """Test an object body is flagged as an invalid response."""
    responses.add(responses.GET, PARKS_URL, json={'parks': []}, status=200)

    result = PotaClient().fetch_all_parks()

    assert not result.success
    assert result.error.code == ErrorCode.INVALID_RESPONSE


@responses.activate
def test_fetch_all_parks_invalid_json():
    """Test a non-JSON body is flagged as an invalid response."""
    responses.add(responses.GET, PARKS_URL, body='<html>oops</html>', status=200)

    result = PotaClient().fetch_all_parks()

    assert not result.success
    assert result.error.code == ErrorCode.INVALID_RESPONSE


@responses.activate
def test_timeout():
    """Test a timeout maps to TIMEOUT."""
    responses.add(responses.GET, PARKS_URL, body=Timeout())

    result = PotaClient(timeout=5).fetch_all_parks()

    assert not result.success
    assert result.error.code == ErrorCode.TIMEOUT
    assert '5 seconds' in result.error.message


@responses.activate
def test_connection_error():
    """Test a connection failure maps to NETWORK_ERROR."""
    responses.add(responses.GET, PARKS_URL, body=ConnectionError('Connection refused'))

    result = PotaClient().fetch_all_parks()

    assert not result.success
    assert result.error.code == ErrorCode.NETWORK_ERROR


@responses.activate
def test_http_error_status():
    """Test a server error maps to NETWORK_ERROR with the status."""
    responses.add(responses.GET, PARKS_URL, status=503)

    result = PotaClient().fetch_all_parks()

    assert not result.success
    assert result.error.code == ErrorCode.NETWORK_ERROR
    assert result.error.status_code == 503


@responses.activate
def test_fetch_park_found():
    """Test a single park lookup upper-cases the reference."""
    responses.add(
        responses.GET,
        'https://api.pota.app/park/K-0039',
        json={'reference': 'K-0039', 'name': 'Yellowstone'},
        status=200
    )

    result = PotaClient().fetch_park('k-0039')

    assert result.success
    assert result.data['name'] == 'Yellowstone'


@responses.activate
def test_fetch_park_not_found():
    """Test a 404 or empty body is a successful None."""
    responses.add(responses.GET, 'https://api.pota.app/park/K-9998', status=404)
    responses.add(responses.GET, 'https://api.pota.app/park/K-9999', body='null', status=200)

    client = PotaClient()

    missing = client.fetch_park('K-9998')
    assert missing.success
    assert missing.data is None

    empty = client.fetch_park('K-9999')
    assert empty.success
    assert empty.data is None


@responses.activate
def test_custom_base_url():
    """Test the client honours a configured API root."""
    responses.add(responses.GET, 'http://localhost:8080/parks/entity/291', json=[], status=200)

    result = PotaClient(base_url='http://localhost:8080/').fetch_parks_by_entity(291)

    assert result.success
    assert result.data == []
