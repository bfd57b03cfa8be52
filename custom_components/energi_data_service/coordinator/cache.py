"""
Time series cache for hourly price components.

Each component (spot price, net tariff, ...) maps UTC hour starts to Decimal
prices. A series is only ever replaced as a whole: a re-fetch supersedes the
previous record set completely, so corrected upstream sub-ranges cannot linger.

Writers swap in a new dict per component and readers always receive a copy,
so a reader never observes a half-written series.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING

from custom_components.energi_data_service.const import DATAHUB_TIMEZONE

from .time_service import EnergiDataServiceTimeService

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime
    from decimal import Decimal
    from zoneinfo import ZoneInfo

_LOGGER = logging.getLogger(__name__)

DEFAULT_RETENTION_HOURS = 24

_ONE_HOUR = timedelta(hours=1)


class EnergiDataServiceTimeSeriesCache:
    """Per-component mapping from hour start to price, with coverage queries and eviction."""

    def __init__(
        self,
        time: EnergiDataServiceTimeService | None = None,
        timezones: Mapping[str, ZoneInfo] | None = None,
        retention_hours: int = DEFAULT_RETENTION_HOURS,
    ) -> None:
        """
        Initialize the cache.

        Args:
            time: Time service; replaced by the coordinator on every cycle
            timezones: Governing time zone per component (defaults to the Datahub zone)
            retention_hours: Depth in hours that counts as historic coverage

        """
        self.time = time or EnergiDataServiceTimeService()
        self._timezones = dict(timezones or {})
        self._retention = timedelta(hours=retention_hours)
        self._series: dict[str, dict[datetime, Decimal]] = {}

    def put(self, component: str, values: Mapping[datetime, Decimal]) -> None:
        """Replace the entire series for a component. Empty input clears it."""
        if not values:
            self._series.pop(component, None)
            return
        self._series[component] = dict(sorted(values.items()))

    def get(self, component: str) -> dict[datetime, Decimal]:
        """Return a copy of the series for a component (empty if absent)."""
        return dict(self._series.get(component, {}))

    def get_value(self, component: str, hour: datetime) -> Decimal | None:
        """Return the price for one hour start, or None if absent."""
        return self._series.get(component, {}).get(hour)

    def get_current_value(self, component: str) -> Decimal | None:
        """Return the price for the current clock hour, or None if absent."""
        return self.get_value(component, self.time.current_hour_start())

    def has_current_hour(self, component: str) -> bool:
        """Return True if the current clock hour has a price."""
        return self.get_current_value(component) is not None

    def is_empty(self, component: str) -> bool:
        """Return True if the component has no prices."""
        return not self._series.get(component)

    def future_hours_count(self, component: str) -> int:
        """Return the number of stored hours at or after the current clock hour."""
        current_hour = self.time.current_hour_start()
        return sum(1 for hour in self._series.get(component, {}) if hour >= current_hour)

    def is_covered_through_tomorrow(self, component: str) -> bool:
        """
        Check that every hour from now until the end of tomorrow has a price.

        Tomorrow is the next calendar day in the component's governing time zone.
        """
        series = self._series.get(component)
        if not series:
            return False

        tz = self._timezones.get(component, DATAHUB_TIMEZONE)
        hour = self.time.current_hour_start()
        end = self.time.end_of_tomorrow(tz)
        while hour < end:
            if hour not in series:
                return False
            hour += _ONE_HOUR
        return True

    def has_historic_coverage(self, component: str, hours: int | None = None) -> bool:
        """
        Check that the earliest stored hour reaches back at least the retention window.

        Args:
            component: Component to check
            hours: Override of the retention window in hours

        """
        series = self._series.get(component)
        if not series:
            return False
        window = timedelta(hours=hours) if hours is not None else self._retention
        earliest = next(iter(series))
        return earliest <= self.time.now() - window

    def cleanup(self) -> int:
        """
        Remove every entry whose hour precedes the current clock hour.

        Returns:
            Number of removed entries across all components.

        """
        current_hour = self.time.current_hour_start()
        removed = 0
        for component, series in list(self._series.items()):
            kept = {hour: price for hour, price in series.items() if hour >= current_hour}
            removed += len(series) - len(kept)
            if kept:
                self._series[component] = kept
            else:
                del self._series[component]

        if removed:
            _LOGGER.debug("Removed %d historic prices before %s", removed, current_hour.isoformat())
        return removed

    def clear(self) -> None:
        """Remove all components."""
        self._series = {}

    @property
    def components(self) -> list[str]:
        """Return the components that currently hold prices."""
        return list(self._series)
