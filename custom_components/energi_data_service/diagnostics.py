"""
Diagnostics support for energi_data_service.

Learn more about diagnostics:
https://developers.home-assistant.io/docs/core/integration_diagnostics
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .const import ALL_COMPONENTS, PROPERTY_DATETIME_FORMAT

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant

    from .data import EnergiDataServiceConfigEntry


async def async_get_config_entry_diagnostics(
    hass: HomeAssistant,  # noqa: ARG001
    entry: EnergiDataServiceConfigEntry,
) -> dict[str, Any]:
    """Return diagnostics for a config entry."""
    coordinator = entry.runtime_data.coordinator
    api = coordinator.api
    cache = coordinator.cache

    return {
        "entry": {
            "entry_id": entry.entry_id,
            "version": entry.version,
            "minor_version": entry.minor_version,
            "domain": entry.domain,
            "title": entry.title,
            "state": str(entry.state),
            "price_area": coordinator.settings.price_area,
            "currency": coordinator.settings.currency,
        },
        "coordinator": {
            "last_update_success": coordinator.last_update_success,
            "retry_policy": coordinator.retry_policy.describe(),
            "next_call": coordinator.next_call.isoformat() if coordinator.next_call else None,
            "consumed_components": sorted(coordinator._listener_manager.consumed_components),  # noqa: SLF001
        },
        "cache_status": {
            "hours": {component: len(cache.get(component)) for component in ALL_COMPONENTS},
            "future_hours": {component: cache.future_hours_count(component) for component in ALL_COMPONENTS},
            "tariff_records": coordinator._data_fetcher.tariff_record_counts(),  # noqa: SLF001
        },
        "api": {
            "remaining_calls": api.remaining_calls,
            "total_calls": api.total_calls,
            "last_call": api.last_call.strftime(PROPERTY_DATETIME_FORMAT) if api.last_call else None,
        },
        "config": {
            "options": dict(entry.options),
        },
        "error": {
            "last_exception": str(coordinator.last_error) if coordinator.last_error else None,
        },
    }
