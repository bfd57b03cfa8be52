"""
Shared utilities for service handlers.

Functions:
    get_entry_and_coordinator: Validate config entry and return its coordinator
    ensure_aware: Interpret naive service datetimes in the Home Assistant time zone
    format_price_map: Serialize an hourly price map for a service response

"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from custom_components.energi_data_service.const import DOMAIN
from homeassistant.exceptions import ServiceValidationError
from homeassistant.util import dt as dt_utils

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime
    from decimal import Decimal

    from custom_components.energi_data_service.coordinator import EnergiDataServiceDataUpdateCoordinator
    from homeassistant.core import HomeAssistant


def get_entry_and_coordinator(hass: HomeAssistant, entry_id: str) -> tuple[Any, EnergiDataServiceDataUpdateCoordinator]:
    """
    Validate entry and return it with its coordinator.

    Raises:
        ServiceValidationError: If entry_id is missing or not a loaded entry of this integration

    """
    if not entry_id:
        raise ServiceValidationError(translation_domain=DOMAIN, translation_key="missing_entry_id")
    entry = next(
        (e for e in hass.config_entries.async_entries(DOMAIN) if e.entry_id == entry_id),
        None,
    )
    if not entry or not getattr(entry, "runtime_data", None):
        raise ServiceValidationError(
            translation_domain=DOMAIN,
            translation_key="invalid_entry_id",
            translation_placeholders={"entry_id": entry_id},
        )
    return entry, entry.runtime_data.coordinator


def ensure_aware(value: datetime | None) -> datetime | None:
    """Attach the Home Assistant time zone to naive datetimes."""
    if value is None or value.tzinfo is not None:
        return value
    return dt_utils.as_local(value)


def format_price_map(prices: Mapping[datetime, Decimal]) -> dict[str, str]:
    """Return ISO-8601 UTC hour starts mapped to exact decimal strings, in hour order."""
    return {
        dt_utils.as_utc(hour).strftime("%Y-%m-%dT%H:%M:%SZ"): str(price)
        for hour, price in sorted(prices.items())
    }
