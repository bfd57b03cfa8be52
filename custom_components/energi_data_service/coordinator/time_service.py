"""
TimeService - Centralized time handling for Energi Data Service integration.

This service provides:
1. Single source of truth for "now" within one refresh cycle or tick
2. Clock-hour boundaries in UTC (cache keys are UTC hour starts)
3. Day boundaries and wall-clock anchors in a given time zone
   (Datahub and Nord Pool publish in CET, the user may live elsewhere)
4. Time-travel capability (inject a reference time for testing)
"""

from __future__ import annotations

from datetime import UTC, datetime, time, timedelta
from typing import TYPE_CHECKING

from homeassistant.util import dt as dt_util

if TYPE_CHECKING:
    from zoneinfo import ZoneInfo

_ONE_HOUR = timedelta(hours=1)


class EnergiDataServiceTimeService:
    """
    Time service with a fixed reference time.

    Create a new instance per refresh cycle or tick. All methods answer
    relative to the same instant, so one cycle never straddles an hour boundary
    halfway through its calculations.
    """

    def __init__(self, reference_time: datetime | None = None) -> None:
        """
        Initialize with reference time.

        Args:
            reference_time: Optional fixed time (timezone-aware).
                          If None, uses actual current time.

        """
        self._reference_time = reference_time or dt_util.utcnow()

    def now(self) -> datetime:
        """Get the reference time (timezone-aware)."""
        return self._reference_time

    def utc_now(self) -> datetime:
        """Get the reference time in UTC."""
        return self._reference_time.astimezone(UTC)

    def current_hour_start(self) -> datetime:
        """Get the start of the current clock hour in UTC."""
        return self.utc_now().replace(minute=0, second=0, microsecond=0)

    def next_hour_start(self) -> datetime:
        """Get the start of the next clock hour in UTC."""
        return self.current_hour_start() + _ONE_HOUR

    def as_zone(self, tz: ZoneInfo) -> datetime:
        """Get the reference time converted to a time zone."""
        return self._reference_time.astimezone(tz)

    def local_hour_start(self, tz: ZoneInfo) -> datetime:
        """
        Get the current hour start as a naive wall-clock datetime in a time zone.

        Used for comparisons with naive Datahub validity timestamps.
        """
        return self.as_zone(tz).replace(minute=0, second=0, microsecond=0, tzinfo=None)

    def local_midnight(self, tz: ZoneInfo, offset_days: int = 0) -> datetime:
        """
        Get a local midnight as a naive wall-clock datetime in a time zone.

        Args:
            tz: Time zone of the calendar day
            offset_days: 0 for today, 1 for tomorrow, ...

        """
        today = self.as_zone(tz).date()
        return datetime.combine(today + timedelta(days=offset_days), time.min)

    def end_of_tomorrow(self, tz: ZoneInfo) -> datetime:
        """Get the end of the next local calendar day (aware, in UTC)."""
        return self.local_midnight(tz, offset_days=2).replace(tzinfo=tz).astimezone(UTC)

    def next_occurrence(self, local_time: time, tz: ZoneInfo) -> datetime:
        """
        Get the next occurrence of a wall-clock time in a time zone.

        An occurrence exactly at the reference time counts as passed.

        Returns:
            Aware datetime in UTC, strictly after the reference time.

        """
        local_now = self.as_zone(tz)
        candidate = datetime.combine(local_now.date(), local_time, tzinfo=tz)
        if candidate <= local_now:
            candidate = datetime.combine(local_now.date() + timedelta(days=1), local_time, tzinfo=tz)
        return candidate.astimezone(UTC)

    def today_occurrence(self, local_time: time, tz: ZoneInfo) -> datetime:
        """Get today's occurrence of a wall-clock time in a time zone (aware, in UTC)."""
        local_now = self.as_zone(tz)
        return datetime.combine(local_now.date(), local_time, tzinfo=tz).astimezone(UTC)
