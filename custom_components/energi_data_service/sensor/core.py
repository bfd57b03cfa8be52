"""Core sensor class for Energi Data Service integration."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from custom_components.energi_data_service.const import (
    COMPONENT_SPOT_PRICE,
    PRIMARY_CURRENCY,
    TARIFF_COMPONENTS,
)
from custom_components.energi_data_service.coordinator import (
    DATA_FUTURE_PRICES,
    DATA_NEXT_CALL,
    DATA_RETRY_POLICY,
)
from custom_components.energi_data_service.entity import EnergiDataServiceEntity
from homeassistant.components.sensor import SensorEntity, SensorEntityDescription
from homeassistant.const import UnitOfEnergy

from .definitions import (
    CONSUMED_COMPONENTS,
    KEY_HOURLY_PRICES,
    KEY_LAST_CALL,
    KEY_NEXT_CALL,
    KEY_REMAINING_CALLS,
    KEY_TOTAL_CALLS,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from custom_components.energi_data_service.coordinator import (
        EnergiDataServiceDataUpdateCoordinator,
    )

ATTR_PRICES = "prices"
ATTR_CURRENCY = "currency"
ATTR_INCLUDE_VAT = "include_vat"
ATTR_RETRY_POLICY = "retry_policy"


class EnergiDataServiceSensor(EnergiDataServiceEntity, SensorEntity):
    """energi_data_service Sensor class."""

    # Attributes excluded from recorder history
    # See: https://developers.home-assistant.io/docs/core/entity/#excluding-state-attributes-from-recorder-history
    _unrecorded_attributes = frozenset(
        {
            ATTR_PRICES,
            ATTR_RETRY_POLICY,
        }
    )

    def __init__(
        self,
        coordinator: EnergiDataServiceDataUpdateCoordinator,
        entity_description: SensorEntityDescription,
    ) -> None:
        """Initialize the sensor class."""
        super().__init__(coordinator)
        self.entity_description = entity_description
        self._attr_unique_id = f"{coordinator.config_entry.entry_id}_{entity_description.key}"
        self._value_getter: Callable[[], Any] = self._get_value_getter()
        self._component_remove_listener: Callable[[], None] | None = None

    async def async_added_to_hass(self) -> None:
        """When entity is added to hass."""
        await super().async_added_to_hass()

        # Mark the components this sensor shows as consumed
        components = CONSUMED_COMPONENTS.get(self.entity_description.key)
        if components:
            self._component_remove_listener = self.coordinator.async_add_component_listener(components)

    async def async_will_remove_from_hass(self) -> None:
        """When entity will be removed from hass."""
        await super().async_will_remove_from_hass()

        if self._component_remove_listener:
            self._component_remove_listener()
            self._component_remove_listener = None

    def _get_value_getter(self) -> Callable[[], Any]:
        """Return the value getter for this sensor's key."""
        key = self.entity_description.key
        handlers: dict[str, Callable[[], Any]] = {
            KEY_HOURLY_PRICES: self._get_future_hours_count,
            KEY_REMAINING_CALLS: lambda: self.coordinator.api.remaining_calls,
            KEY_TOTAL_CALLS: lambda: self.coordinator.api.total_calls,
            KEY_LAST_CALL: lambda: self.coordinator.api.last_call,
            KEY_NEXT_CALL: lambda: self._coordinator_data().get(DATA_NEXT_CALL),
        }
        return handlers.get(key, lambda: self.coordinator.get_current_value(key))

    def _coordinator_data(self) -> dict[str, Any]:
        return self.coordinator.data or {}

    def _get_future_hours_count(self) -> int | None:
        future_prices = self._coordinator_data().get(DATA_FUTURE_PRICES)
        if future_prices is None:
            return None
        return len(future_prices)

    @property
    def native_value(self) -> Any:
        """Return the native value of the sensor."""
        return self._value_getter()

    @property
    def native_unit_of_measurement(self) -> str | None:
        """Return price per kWh for current value sensors."""
        key = self.entity_description.key
        if key == COMPONENT_SPOT_PRICE:
            return f"{self.coordinator.currency}/{UnitOfEnergy.KILO_WATT_HOUR}"
        if key in TARIFF_COMPONENTS:
            # Datahub publishes tariffs in DKK only
            return f"{PRIMARY_CURRENCY}/{UnitOfEnergy.KILO_WATT_HOUR}"
        return None

    @property
    def extra_state_attributes(self) -> dict[str, Any] | None:
        """Return additional state attributes."""
        key = self.entity_description.key
        if key == KEY_HOURLY_PRICES:
            return {
                ATTR_PRICES: self._coordinator_data().get(DATA_FUTURE_PRICES, []),
                ATTR_CURRENCY: self.coordinator.currency,
            }
        if key == COMPONENT_SPOT_PRICE or key in TARIFF_COMPONENTS:
            return {ATTR_INCLUDE_VAT: self.coordinator.include_vat}
        if key == KEY_NEXT_CALL:
            return {ATTR_RETRY_POLICY: self._coordinator_data().get(DATA_RETRY_POLICY)}
        return None
