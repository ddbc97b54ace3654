"""POTA park directory API client."""

import logging
from typing import Any, Dict, List, Optional

import requests
from requests.exceptions import RequestException, Timeout

from ..errors import AppError, ErrorCode, Result


logger = logging.getLogger(__name__)


class PotaClient:
    """Client for the public api.pota.app park directory.

    Failures come back as a failed Result, never as an exception.
    """

    BASE_URL = "https://api.pota.app"
    USER_AGENT = "POTA Activation Planner/1.0"

    def __init__(self, base_url: Optional[str] = None, timeout: float = 30):
        """Initialize the POTA client.

        Args:
            base_url: API root, defaults to BASE_URL
            timeout: Request timeout in seconds
        """
        self.base_url = (base_url or self.BASE_URL).rstrip('/')
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({
            'User-Agent': self.USER_AGENT,
            'Accept': 'application/json',
        })

    def _get(self, path: str) -> Result[Any]:
        url = f"{self.base_url}{path}"
        try:
            logger.debug(f"GET {url}")
            response = self.session.get(url, timeout=self.timeout)
        except Timeout:
            logger.warning(f"POTA API request timed out after {self.timeout}s: {url}")
            return Result.fail(AppError(
                f"Request timed out after {self.timeout} seconds",
                ErrorCode.TIMEOUT,
                ['Check your internet connection', 'Try again later'],
            ))
        except RequestException as e:
            logger.warning(f"Request error to POTA API: {e}")
            return Result.fail(AppError(
                f"Network error: {e}",
                ErrorCode.NETWORK_ERROR,
                ['Check your internet connection'],
            ))

        if response.status_code != 200:
            logger.warning(f"POTA API returned status {response.status_code} for {url}")
            return Result.fail(AppError(
                f"API request failed with status {response.status_code}",
                ErrorCode.NETWORK_ERROR,
                ['The POTA API may be experiencing issues', 'Try again later'],
                status_code=response.status_code,
            ))

        try:
            return Result.ok(response.json())
        except ValueError as e:
            logger.error(f"Error parsing POTA API response from {url}: {e}")
            return Result.fail(AppError(
                f"POTA API returned invalid JSON: {e}",
                ErrorCode.INVALID_RESPONSE,
            ))

    def fetch_all_parks(self) -> Result[List[Dict[str, Any]]]:
        """Fetch the full park directory."""
        result = self._get("/parks")
        if result.success and not isinstance(result.data, list):
            return Result.fail(AppError(
                "POTA API returned an unexpected park list structure",
                ErrorCode.INVALID_RESPONSE,
            ))
        return result

    def fetch_park(self, reference: str) -> Result[Optional[Dict[str, Any]]]:
        """Fetch one park; an unknown reference is Result.ok(None)."""
        result = self._get(f"/park/{reference.strip().upper()}")
        if not result.success:
            if result.error.status_code == 404:
                return Result.ok(None)
            return result
        # The API answers unknown references with an empty body
        return Result.ok(result.data or None)

    def fetch_parks_by_entity(self, entity_id: int) -> Result[List[Dict[str, Any]]]:
        return self._get(f"/parks/entity/{entity_id}")
