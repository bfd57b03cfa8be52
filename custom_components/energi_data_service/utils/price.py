"""
Price calculations on hourly price maps.

A price map is a mapping from UTC hour start to a Decimal price per kWh.
All arithmetic stays in Decimal; rounding is left to the caller's formatting.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

from custom_components.energi_data_service.const import VAT_FACTORS

if TYPE_CHECKING:
    from collections.abc import Mapping

_LOGGER = logging.getLogger(__name__)

_ONE_HOUR = timedelta(hours=1)
# Seconds per hour times watts per kilowatt
_WATT_SECONDS_PER_KWH = Decimal(3_600_000)
_ENERGY_FACTOR_QUANTUM = Decimal("1E-9")


def hour_start(dt: datetime) -> datetime:
    """Truncate an aware datetime to the start of its UTC clock hour."""
    return dt.astimezone(UTC).replace(minute=0, second=0, microsecond=0)


def calculate_cost(
    start: datetime,
    end: datetime,
    power: Decimal | float,
    price_map: Mapping[datetime, Decimal],
) -> Decimal:
    """
    Calculate the cost of a constant power draw between start and end.

    The window is split into clock-hour buckets. Each bucket contributes
    price * watts * (seconds / 3600000), where the energy factor is rounded
    to 9 decimals. A window with end <= start costs zero.

    If any touched hour has no price, the whole result is zero; a partial sum
    would silently underestimate the cost.

    Args:
        start: Start of consumption (timezone-aware)
        end: End of consumption (timezone-aware)
        power: Constant power in watts (fractional watts are truncated)
        price_map: Price per kWh by UTC hour start

    Returns:
        Total cost in the currency of the price map.

    """
    watt = Decimal(int(power))
    amount = Decimal(0)
    current = start.astimezone(UTC)
    end = end.astimezone(UTC)

    while current < end:
        bucket_start = hour_start(current)
        bucket_end = bucket_start + _ONE_HOUR

        price = price_map.get(bucket_start)
        if price is None:
            _LOGGER.debug("No price for hour %s, unable to calculate cost", bucket_start.isoformat())
            return Decimal(0)

        seconds = int((min(bucket_end, end) - current).total_seconds())
        energy_factor = (Decimal(seconds) / _WATT_SECONDS_PER_KWH).quantize(_ENERGY_FACTOR_QUANTUM, ROUND_HALF_UP)
        amount += price * watt * energy_factor

        current = bucket_end

    return amount


def merge_price_maps(destination: dict[datetime, Decimal], source: Mapping[datetime, Decimal]) -> None:
    """Add source prices to destination, summing prices for the same hour."""
    for hour, price in source.items():
        existing = destination.get(hour)
        destination[hour] = price if existing is None else existing + price


def get_vat_factor(country: str | None) -> Decimal:
    """
    Get the VAT multiplier for a country.

    Args:
        country: ISO country code from the Home Assistant configuration

    Returns:
        1.25 for DK/NO/SE, 1.19 for DE, otherwise 1.

    """
    if country and country.upper() in VAT_FACTORS:
        return VAT_FACTORS[country.upper()]
    _LOGGER.debug("No VAT rate for country %s", country)
    return Decimal(1)


def apply_vat(price: Decimal | None, factor: Decimal) -> Decimal | None:
    """Apply a VAT factor to a price, passing None through."""
    if price is None:
        return None
    return price * factor
