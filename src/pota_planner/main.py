"""Operator entry point: migrate, sync or import parks, purge the weather cache."""

import argparse
import logging
import sys
from typing import Optional

from .config import Settings
from .database.connection import ConnectionManager
from .database.park_repository import ParkRepository
from .database.weather_cache_repository import WeatherCacheRepository
from .errors import AppError
from .services.csv_import_service import DEFAULT_BATCH_SIZE, CsvImportService
from .services.park_service import ParkSyncService
from .services.pota_client import PotaClient


def setup_logging(verbose: bool = False, level: str = 'INFO'):
    """Configure logging.

    Args:
        verbose: Enable debug logging regardless of level
        level: Log level name from settings
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, level, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def _report_error(logger: logging.Logger, error: AppError):
    logger.error(f"{error.code.value}: {error.message}")
    for suggestion in error.suggestions:
        logger.info(f"  - {suggestion}")


def run(args: argparse.Namespace, settings: Optional[Settings] = None) -> int:
    """Run the requested maintenance actions.

    Args:
        args: Parsed command line arguments
        settings: Settings, loaded from the environment when omitted

    Returns:
        Exit code (0 for success, 1 for error)
    """
    settings = settings or Settings()
    setup_logging(args.verbose, settings.log_level)
    logger = logging.getLogger(__name__)

    db_path = args.db or settings.resolved_database_path()

    with ConnectionManager(db_path) as manager:
        init = manager.acquire()
        if not init.success:
            _report_error(logger, init.error)
            return 1
        logger.info(f"Database ready: {db_path}")
        if args.migrate:
            logger.info("✓ Schema is up to date")
            return 0

        parks = ParkRepository(manager, stale_days=settings.park_stale_days)

        if args.sync:
            service = ParkSyncService(
                parks,
                PotaClient(settings.pota_api_url, timeout=settings.request_timeout),
                sync_interval_hours=settings.sync_interval_hours,
            )
            result = service.sync_parks(region=args.region, force=args.force)
            if not result.success:
                _report_error(logger, result.error)
                return 1
            stats = result.data
            logger.info(f"✓ Synced {stats['synced']} parks")
            logger.info(f"  - Skipped invalid rows: {stats['skipped']}")
            logger.info(f"  - Total parks in database: {stats['total']}")
            if stats['stale_warning']:
                logger.warning(stats['stale_warning'])

        if args.import_file:
            result = CsvImportService(parks, batch_size=args.batch_size).import_parks(
                args.import_file, strict=args.strict, show_warnings=args.show_warnings
            )
            if not result.success:
                _report_error(logger, result.error)
                return 1
            stats = result.data
            logger.info(f"✓ Imported {stats.imported} parks from {args.import_file}")
            logger.info(f"  - Skipped invalid rows: {stats.skipped}")
            for line_number, message in stats.warnings:
                logger.warning(f"Line {line_number}: {message}")

        if args.purge_weather:
            result = WeatherCacheRepository(manager).purge_expired()
            if not result.success:
                _report_error(logger, result.error)
                return 1
            logger.info(f"✓ Removed {result.data} expired weather cache entries")

    return 0


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="POTA activation planner - local data maintenance"
    )
    parser.add_argument(
        '--db',
        default=None,
        help="Database file path (default: $POTA_DATABASE_PATH or ~/.pota/pota.db)"
    )
    parser.add_argument(
        '--migrate',
        action='store_true',
        help="Only create or upgrade the database schema"
    )
    parser.add_argument(
        '--sync',
        action='store_true',
        help="Download the POTA park directory"
    )
    parser.add_argument(
        '--region',
        default=None,
        help="Limit sync to parks of an entity, state name or state code"
    )
    parser.add_argument(
        '--force',
        action='store_true',
        help="Sync even if park data was refreshed recently"
    )
    parser.add_argument(
        '--import',
        dest='import_file',
        metavar='FILE',
        default=None,
        help="Import parks from a POTA all_parks_ext.csv export"
    )
    parser.add_argument(
        '--batch-size',
        type=int,
        default=DEFAULT_BATCH_SIZE,
        help=f"Parks written per transaction during import (default: {DEFAULT_BATCH_SIZE})"
    )
    parser.add_argument(
        '--strict',
        action='store_true',
        help="Stop the import at the first invalid row"
    )
    parser.add_argument(
        '--show-warnings',
        action='store_true',
        help="Report placeholder (0,0) coordinates during import"
    )
    parser.add_argument(
        '--purge-weather',
        action='store_true',
        help="Delete expired weather forecasts from the cache"
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help="Enable verbose output"
    )

    args = parser.parse_args()
    if args.batch_size < 1:
        parser.error("--batch-size must be a positive integer")

    exit_code = run(args)
    sys.exit(exit_code)


if __name__ == '__main__':
    main()
