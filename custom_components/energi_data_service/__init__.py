"""
Custom integration to provide Energi Data Service electricity prices in Home Assistant.

Spot prices come from the Elspotprices dataset, tariffs and taxes from the
DatahubPricelist dataset of https://www.energidataservice.dk/.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from homeassistant.const import Platform
from homeassistant.helpers.aiohttp_client import async_get_clientsession
from homeassistant.loader import async_get_loaded_integration

from .api import EnergiDataServiceApiClient, EnergiDataServiceConfigurationError
from .const import DOMAIN, LOGGER
from .coordinator import EnergiDataServiceDataUpdateCoordinator
from .data import EnergiDataServiceData
from .services import SERVICE_NAMES, async_setup_services

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant

    from .data import EnergiDataServiceConfigEntry

PLATFORMS: list[Platform] = [
    Platform.SENSOR,
]


# https://developers.home-assistant.io/docs/config_entries_index/#setting-up-an-entry
async def async_setup_entry(
    hass: HomeAssistant,
    entry: EnergiDataServiceConfigEntry,
) -> bool:
    """Set up this integration using UI."""
    LOGGER.debug("[%s] async_setup_entry called for entry_id=%s", entry.title, entry.entry_id)

    # Register services when a config entry is loaded
    async_setup_services(hass)

    integration = async_get_loaded_integration(hass, entry.domain)

    api_client = EnergiDataServiceApiClient(
        session=async_get_clientsession(hass),
        version=str(integration.version) if integration.version else "unknown",
    )

    coordinator = EnergiDataServiceDataUpdateCoordinator(
        hass=hass,
        config_entry=entry,
        api_client=api_client,
    )

    # A broken stored configuration is not fatal: the refresh cycle keeps retrying
    # on a long cadence so a later reconfiguration is picked up
    try:
        coordinator.settings.validate()
    except EnergiDataServiceConfigurationError as err:
        LOGGER.error("[%s] Invalid configuration: %s", entry.title, err)

    entry.runtime_data = EnergiDataServiceData(
        client=api_client,
        integration=integration,
        coordinator=coordinator,
    )

    # Entities subscribe to the components they show while the platforms are set
    # up, so the first refresh runs afterwards and only downloads what is consumed
    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)
    await coordinator.async_refresh()

    entry.async_on_unload(entry.add_update_listener(async_reload_entry))

    return True


async def async_unload_entry(
    hass: HomeAssistant,
    entry: EnergiDataServiceConfigEntry,
) -> bool:
    """Unload a config entry."""
    unload_ok = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)

    if unload_ok and entry.runtime_data is not None:
        await entry.runtime_data.coordinator.async_shutdown()

    # Unregister services if this was the last loaded config entry
    if not _other_loaded_entries(hass, entry):
        for service in SERVICE_NAMES:
            if hass.services.has_service(DOMAIN, service):
                hass.services.async_remove(DOMAIN, service)

    return unload_ok


def _other_loaded_entries(hass: HomeAssistant, entry: ConfigEntry) -> list[ConfigEntry]:
    """Return loaded entries of this domain other than the given one."""
    return [
        other
        for other in hass.config_entries.async_loaded_entries(DOMAIN)
        if other.entry_id != entry.entry_id
    ]


async def async_reload_entry(
    hass: HomeAssistant,
    entry: EnergiDataServiceConfigEntry,
) -> None:
    """Reload config entry."""
    await hass.config_entries.async_reload(entry.entry_id)
