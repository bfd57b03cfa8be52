"""
Normalization of Datahub price list records into hourly series.

A price list record has a local validity interval (often months long, sometimes
open-ended) and up to 24 per-hour prices that apply to every day inside it.
The normalizer walks each record day by day, and within a day hour by hour in
absolute time, so daylight-saving days naturally produce 23 or 25 hours.

Rules:
- Hour index i counts absolute hours since the start of the validity day.
- Only min(hours in the day, available prices) hours are emitted; nothing is extrapolated.
- A missing sub-period price falls back to the first price of the record.
- Overlapping records: the later record in iteration order wins.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from custom_components.energi_data_service.const import DATAHUB_TIMEZONE

if TYPE_CHECKING:
    from collections.abc import Iterable
    from decimal import Decimal
    from zoneinfo import ZoneInfo

    from custom_components.energi_data_service.api import TariffRecord

_LOGGER = logging.getLogger(__name__)

_ONE_HOUR = timedelta(hours=1)
_ONE_DAY = timedelta(days=1)


class EnergiDataServicePriceListNormalizer:
    """Convert TariffRecord sequences into UTC-keyed hourly prices."""

    def __init__(self, tz: ZoneInfo = DATAHUB_TIMEZONE) -> None:
        """Initialize with the governing time zone of the records."""
        self._tz = tz

    def _to_utc(self, local: datetime) -> datetime:
        return local.replace(tzinfo=self._tz).astimezone(UTC)

    def to_hourly(
        self,
        records: Iterable[TariffRecord],
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> dict[datetime, Decimal]:
        """
        Convert records into hourly prices.

        Args:
            records: Price list records in chronological order
            start: Optional naive local lower bound of the emitted hours
            end: Optional naive local upper bound of the emitted hours;
                 required to expand open-ended records beyond their first day

        Returns:
            Price by UTC hour start.

        """
        hourly: dict[datetime, Decimal] = {}

        for record in records:
            valid_to = record.valid_to
            if valid_to is None:
                valid_to = end if end is not None else record.valid_from + _ONE_DAY

            span_start = max(record.valid_from, start) if start is not None else record.valid_from
            span_end = min(valid_to, end) if end is not None else valid_to
            if span_start >= span_end:
                continue

            day = datetime.combine(span_start.date(), datetime.min.time())
            while day < span_end:
                next_day = day + _ONE_DAY
                self._emit_day(
                    hourly,
                    record,
                    day_start=self._to_utc(day),
                    segment_start=self._to_utc(max(span_start, day)),
                    segment_end=self._to_utc(min(span_end, next_day)),
                )
                day = next_day

        return hourly

    def _emit_day(
        self,
        hourly: dict[datetime, Decimal],
        record: TariffRecord,
        *,
        day_start: datetime,
        segment_start: datetime,
        segment_end: datetime,
    ) -> None:
        """Emit the hours of one validity day segment."""
        hour = segment_start
        while hour < segment_end:
            index = int((hour - day_start) / _ONE_HOUR)
            price = record.price_for_hour(index)
            if price is None:
                # No more published sub-periods for this day
                break
            hourly[hour] = price
            hour += _ONE_HOUR
