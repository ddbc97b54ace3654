"""Offline park import from the POTA all_parks_ext.csv export."""

import csv
import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from ..database.migrations import STORAGE_SUGGESTIONS
from ..database.models import ParkInput
from ..database.park_repository import ParkRepository
from ..errors import AppError, ErrorCode, Result
from ..utils.grid_square import calculate_grid_square
from .park_service import POTA_PARK_URL


logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 1000

REQUIRED_COLUMNS = ['reference', 'name', 'latitude', 'longitude']

US_STATE_PATTERN = re.compile(r'US-([A-Z]{2})')

# Shown only when show_warnings is set
PLACEHOLDER_WARNING = 'may be a placeholder'

RowWarning = Tuple[int, str]


@dataclass
class CsvImportResult:
    """Outcome of an import run.

    Attributes:
        imported: Parks written to the catalog
        skipped: Rows rejected by validation
        warnings: (line_number, message) pairs, line numbers 1-based
    """

    imported: int = 0
    skipped: int = 0
    warnings: List[RowWarning] = field(default_factory=list)


def extract_state_from_location(location_desc: Optional[str]) -> Optional[str]:
    """First US state code in a location description ("US-CA,US-NV" -> "CA")."""
    if not location_desc:
        return None
    match = US_STATE_PATTERN.search(location_desc)
    return match.group(1) if match else None


def validate_csv_row(row: Dict[str, str], line_number: int) -> Tuple[bool, List[RowWarning]]:
    """Check a CSV row for required fields and usable coordinates.

    Args:
        row: Row from csv.DictReader
        line_number: Line the row came from

    Returns:
        Tuple of (valid, warnings); a valid row may still carry warnings
    """
    reference = (row.get('reference') or '').strip()
    if not reference:
        return False, [(line_number, 'Missing required field: reference')]

    if not (row.get('name') or '').strip():
        return False, [(line_number, f"Missing required field: name for park {reference}")]

    try:
        lat = float(row.get('latitude') or '')
        lon = float(row.get('longitude') or '')
    except ValueError:
        return False, [(
            line_number,
            f"Invalid coordinates for park {reference}: "
            f"lat={row.get('latitude')}, lon={row.get('longitude')}",
        )]

    if not -90 <= lat <= 90:
        return False, [(line_number, f"Invalid latitude for park {reference}: {lat}")]
    if not -180 <= lon <= 180:
        return False, [(line_number, f"Invalid longitude for park {reference}: {lon}")]

    warnings = []
    if lat == 0 and lon == 0:
        warnings.append((line_number, f"Park {reference} has coordinates at (0,0) - {PLACEHOLDER_WARNING}"))
    return True, warnings


def park_input_from_csv(row: Dict[str, str], line_number: int) -> ParkInput:
    """Transform a validated CSV row into upsert input.

    The export carries no country, region or park type; the state is
    taken from the first US code in locationDesc.
    """
    reference = row['reference'].strip().upper()
    lat = float(row['latitude'])
    lon = float(row['longitude'])
    location_desc = (row.get('locationDesc') or '').strip()

    return ParkInput(
        reference=reference,
        name=row['name'].strip(),
        latitude=lat,
        longitude=lon,
        grid_square=(row.get('grid') or '').strip() or calculate_grid_square(lat, lon),
        state=extract_state_from_location(location_desc),
        is_active=(row.get('active') or '1').strip() == '1',
        pota_url=POTA_PARK_URL.format(reference=reference),
        metadata={
            'entityId': (row.get('entityId') or '').strip() or None,
            'locationDesc': location_desc or None,
            'source': 'csv-import',
            'importLineNumber': line_number,
        },
    )


class CsvImportService:
    """Streams a park CSV into the catalog in batches."""

    def __init__(self, parks: ParkRepository, batch_size: int = DEFAULT_BATCH_SIZE):
        """Initialize import service.

        Args:
            parks: Park repository to write to
            batch_size: Rows per upsert_many transaction
        """
        if batch_size < 1:
            raise ValueError(f"Batch size must be a positive integer, got {batch_size}")
        self.parks = parks
        self.batch_size = batch_size

    def _flush(self, batch: List[ParkInput], line_number: int) -> Result[int]:
        result = self.parks.upsert_many(batch)
        if not result.success:
            return Result.fail(AppError(
                f"Failed to import batch ending at line {line_number}: {result.error.message}",
                result.error.code,
                list(STORAGE_SUGGESTIONS),
            ))
        logger.info(f"Imported batch of {len(batch)} parks (through line {line_number})")
        return result

    def import_parks(self, file_path: str, strict: bool = False,
                     show_warnings: bool = False) -> Result[CsvImportResult]:
        """Import parks from a CSV file.

        Args:
            file_path: Path to a CSV with a header row
            strict: Fail on the first invalid row instead of skipping it
            show_warnings: Keep (0,0) placeholder warnings in the result

        Returns:
            Result with counts and warnings; rows written before a strict
            failure or a failed batch stay in the catalog
        """
        stats = CsvImportResult()
        batch: List[ParkInput] = []
        line_number = 1

        try:
            with open(file_path, newline='', encoding='utf-8') as f:
                reader = csv.DictReader(f)
                missing = [column for column in REQUIRED_COLUMNS if column not in (reader.fieldnames or [])]
                if missing:
                    return Result.fail(AppError(
                        f"CSV file is missing columns: {', '.join(missing)}",
                        ErrorCode.IMPORT_ERROR,
                        ['Ensure the file is a POTA park export with a header row'],
                    ))

                for row in reader:
                    line_number = reader.line_num
                    valid, warnings = validate_csv_row(row, line_number)
                    stats.warnings.extend(warnings)

                    if not valid:
                        stats.skipped += 1
                        if strict:
                            return Result.fail(AppError(
                                f"Import failed at line {line_number}: {warnings[0][1]}",
                                ErrorCode.INVALID_INPUT,
                                ['Fix the CSV data', 'Run without --strict to skip invalid rows'],
                            ))
                        logger.debug(f"Skipping line {line_number}: {warnings[0][1]}")
                        continue

                    batch.append(park_input_from_csv(row, line_number))
                    if len(batch) >= self.batch_size:
                        flushed = self._flush(batch, line_number)
                        if not flushed.success:
                            return Result.fail(flushed.error)
                        stats.imported += flushed.data
                        batch = []
        except (OSError, UnicodeDecodeError, csv.Error) as e:
            logger.error(f"Error reading {file_path}: {e}")
            return Result.fail(AppError(
                f"Failed to import CSV file: {e}",
                ErrorCode.IMPORT_ERROR,
                ['Verify the file path is correct', 'Check file permissions',
                 'Ensure the file is valid CSV format'],
            ))

        if batch:
            flushed = self._flush(batch, line_number)
            if not flushed.success:
                return Result.fail(flushed.error)
            stats.imported += flushed.data

        if not show_warnings:
            stats.warnings = [w for w in stats.warnings if PLACEHOLDER_WARNING not in w[1]]

        logger.info(f"CSV import complete: {stats.imported} imported, {stats.skipped} skipped")
        return Result.ok(stats)
