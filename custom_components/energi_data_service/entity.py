"""EnergiDataServiceEntity class."""

from __future__ import annotations

from homeassistant.helpers.device_registry import DeviceEntryType, DeviceInfo
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .const import ATTRIBUTION, CONF_PRICE_AREA, DEFAULT_NAME, DOMAIN
from .coordinator import EnergiDataServiceDataUpdateCoordinator


class EnergiDataServiceEntity(CoordinatorEntity[EnergiDataServiceDataUpdateCoordinator]):
    """EnergiDataServiceEntity class."""

    _attr_attribution = ATTRIBUTION
    _attr_has_entity_name = True

    def __init__(self, coordinator: EnergiDataServiceDataUpdateCoordinator) -> None:
        """Initialize."""
        super().__init__(coordinator)

        config_entry = coordinator.config_entry
        price_area = config_entry.data.get(CONF_PRICE_AREA, "")

        self._attr_device_info = DeviceInfo(
            entry_type=DeviceEntryType.SERVICE,
            identifiers={(DOMAIN, config_entry.unique_id or config_entry.entry_id)},
            name=config_entry.title or f"{DEFAULT_NAME} {price_area}",
            manufacturer="Energinet",
            model=f"Price area {price_area}" if price_area else None,
            configuration_url="https://www.energidataservice.dk/",
        )

    @property
    def available(self) -> bool:
        """
        Return if entity is available.

        Refresh failures do not make entities unavailable: the cache keeps
        serving last-known-good values until they age out.
        """
        return self.coordinator.data is not None
