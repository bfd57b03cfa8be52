"""
Data update coordination package.

This package orchestrates fetching, caching and publishing of hourly prices:
- Refresh cycle scheduled by RetryPolicy (no fixed polling interval)
- Hourly tick republishing current values from the cache
- Download only what subscribers consume and the cache does not cover

Main components:
- core.py: EnergiDataServiceDataUpdateCoordinator (main coordinator class)
- cache.py: Per-component hourly time series
- price_list.py: Datahub price list records → hourly series
- retry.py: Retry policies and their factory
- data_fetching.py: Per-component download decisions
- listeners.py: Subscriber registry and timer handles
- time_service.py: Injectable clock and zone-aware boundaries
"""

from .cache import EnergiDataServiceTimeSeriesCache
from .core import (
    DATA_CURRENT,
    DATA_FUTURE_PRICES,
    DATA_NEXT_CALL,
    DATA_RETRY_POLICY,
    EnergiDataServiceDataUpdateCoordinator,
)
from .price_list import EnergiDataServicePriceListNormalizer
from .time_service import EnergiDataServiceTimeService

__all__ = [
    "DATA_CURRENT",
    "DATA_FUTURE_PRICES",
    "DATA_NEXT_CALL",
    "DATA_RETRY_POLICY",
    "EnergiDataServiceDataUpdateCoordinator",
    "EnergiDataServicePriceListNormalizer",
    "EnergiDataServiceTimeSeriesCache",
    "EnergiDataServiceTimeService",
]
