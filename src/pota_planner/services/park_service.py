"""Park synchronization service."""

import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional

from ..database.models import Park, ParkInput
from ..database.park_repository import ParkRepository
from ..errors import AppError, ErrorCode, Result
from ..utils.grid_square import calculate_grid_square
from ..utils.validators import clean_coordinates, validate_park_data
from .pota_client import PotaClient


logger = logging.getLogger(__name__)

POTA_PARK_URL = "https://pota.app/#/park/{reference}"


def park_input_from_api(data: Dict[str, Any]) -> ParkInput:
    """Transform a park directory row into upsert input.

    Args:
        data: Raw park row from the POTA API

    Returns:
        ParkInput with a computed grid square when the API gives none
    """
    reference = str(data['reference']).strip().upper()
    lat, lon = clean_coordinates(data.get('latitude'), data.get('longitude'))

    metadata = {}
    if data.get('locationDesc'):
        metadata['locationDesc'] = data['locationDesc']
    if data.get('entityId') is not None:
        metadata['entityId'] = data['entityId']

    return ParkInput(
        reference=reference,
        name=data['name'],
        latitude=lat,
        longitude=lon,
        grid_square=data.get('grid') or calculate_grid_square(lat, lon),
        state=data.get('state') or None,
        country=data.get('entityName') or None,
        region=data.get('stateName') or None,
        park_type=data.get('type') or None,
        is_active=bool(data.get('isActive', True)),
        pota_url=POTA_PARK_URL.format(reference=reference),
        metadata=metadata or None,
    )


def _matches_region(data: Dict[str, Any], region: str) -> bool:
    region_lower = region.lower()
    return (
        region_lower in (data.get('entityName') or '').lower()
        or region_lower in (data.get('stateName') or '').lower()
        or (data.get('state') or '').lower() == region_lower
    )


class ParkSyncService:
    """Keeps the local park catalog in step with the POTA directory."""

    def __init__(self, parks: ParkRepository, client: Optional[PotaClient] = None,
                 sync_interval_hours: float = 1):
        """Initialize sync service.

        Args:
            parks: Park repository to write to
            client: POTA API client
            sync_interval_hours: Minimum age of the catalog before an
                unforced sync hits the network again
        """
        self.parks = parks
        self.client = client or PotaClient()
        self.sync_interval = timedelta(hours=sync_interval_hours)

    def sync_parks(self, region: Optional[str] = None, force: bool = False) -> Result[Dict[str, Any]]:
        """Download the park directory and upsert it.

        Args:
            region: Keep only parks whose entity, state name or state code matches
            force: Sync even if the catalog was refreshed recently

        Returns:
            Result with statistics (fetched, synced, skipped, stale_warning)
        """
        if not force:
            last_sync = self.parks.last_sync_time()
            if last_sync.success and last_sync.data is not None:
                if self.parks.clock() - last_sync.data < self.sync_interval:
                    count = self.parks.count()
                    logger.info("Park data was synced recently, skipping")
                    return Result.ok({
                        'fetched': 0,
                        'synced': 0,
                        'skipped': 0,
                        'total': count.data if count.success else 0,
                        'stale_warning': 'Park data was synced recently. Use force to sync again.',
                    })

        logger.info("Fetching park directory...")
        api_result = self.client.fetch_all_parks()
        if not api_result.success:
            return Result.fail(AppError(
                f"Failed to fetch parks from POTA API: {api_result.error.message}",
                api_result.error.code,
                ['Check your internet connection', 'Try again later'],
            ))

        rows = api_result.data
        if region:
            rows = [row for row in rows if _matches_region(row, region)]

        inputs: List[ParkInput] = []
        skipped = 0
        for row in rows:
            if validate_park_data(row):
                inputs.append(park_input_from_api(row))
            else:
                skipped += 1

        upsert_result = self.parks.upsert_many(inputs)
        if not upsert_result.success:
            return Result.fail(upsert_result.error)

        count = self.parks.count()
        stats = {
            'fetched': len(api_result.data),
            'synced': upsert_result.data,
            'skipped': skipped,
            'total': count.data if count.success else 0,
            'stale_warning': self.stale_warning(),
        }
        logger.info(
            f"Park sync complete: {stats['synced']} synced, "
            f"{stats['skipped']} skipped out of {stats['fetched']} fetched"
        )
        return Result.ok(stats)

    def get_park(self, reference: str) -> Result[Optional[Park]]:
        """Look up a park locally, falling back to the API and caching it."""
        local = self.parks.find_by_reference(reference)
        if not local.success or local.data is not None:
            return local

        logger.info(f"Park {reference} not in local catalog, asking POTA API")
        api_result = self.client.fetch_park(reference)
        if not api_result.success:
            return Result.fail(AppError(
                f"Failed to fetch park {reference}: {api_result.error.message}",
                api_result.error.code,
                ['Check your internet connection', 'Verify the park reference is correct'],
            ))
        if api_result.data is None:
            return Result.ok(None)
        if not validate_park_data(api_result.data):
            return Result.fail(AppError(
                f"POTA API returned invalid data for park {reference}",
                ErrorCode.INVALID_RESPONSE,
            ))

        return self.parks.upsert(park_input_from_api(api_result.data))

    def stale_warning(self) -> Optional[str]:
        result = self.parks.stale_warning()
        if not result.success:
            return 'Unable to determine last sync time. Run a park sync to update park data.'
        return result.data
