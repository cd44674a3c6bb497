"""
Wiring of config, record store and service.
"""

import logging
from pathlib import Path
from typing import Optional

import pendulum

from .adapters.mock_record_store import MockRecordStore
from .adapters.rate_limiter import RateLimiter
from .adapters.record_store import RecordStoreProtocol, RestRecordStore
from .config import AppConfig
from .services.availability_service import AvailabilityService

logger = logging.getLogger(__name__)


def build_store(config: AppConfig, mock_data_file: Optional[Path] = None) -> RecordStoreProtocol:
    """
    REST store from config, or the mock store when a data file is given.

    Raises:
        ValueError: If neither a base URL nor a mock data file is configured
    """
    default_hours = config.defaults.get_working_hours()
    data_file = mock_data_file or config.store.mock_data_file

    if data_file is not None:
        return MockRecordStore.from_json_file(Path(data_file), default_hours=default_hours)

    if not config.store.base_url:
        raise ValueError("store.base_url is not configured (or pass a mock data file)")

    logger.info("Using record store at %s", config.store.base_url)
    return RestRecordStore(
        base_url=config.store.base_url,
        api_key=config.store.api_key,
        timeout_seconds=config.store.timeout_seconds,
        default_hours=default_hours,
    )


def build_service(config: AppConfig, store: Optional[RecordStoreProtocol] = None) -> AvailabilityService:
    """Availability service reading the clock in the salon's timezone."""
    tz = config.timezone
    return AvailabilityService(
        store=store or build_store(config),
        clock=lambda: pendulum.now(tz),
        default_slot_interval=config.defaults.slot_interval_minutes,
        default_duration=config.defaults.duration_minutes,
    )


def build_rate_limiter(config: AppConfig) -> RateLimiter:
    return RateLimiter(limit=config.rate_limit.limit, window_seconds=config.rate_limit.window_seconds)
