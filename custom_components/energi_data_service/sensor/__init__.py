"""
Sensor platform for Energi Data Service integration.

Provides electricity price sensors:
- Current value: spot price and each tariff component for the current hour
- Future prices: hourly price curve with all components
- Diagnostic: API call metadata and next scheduled refresh

See definitions.py for complete sensor catalog.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .core import EnergiDataServiceSensor
from .definitions import ENTITY_DESCRIPTIONS

if TYPE_CHECKING:
    from custom_components.energi_data_service.data import EnergiDataServiceConfigEntry
    from homeassistant.core import HomeAssistant
    from homeassistant.helpers.entity_platform import AddEntitiesCallback


async def async_setup_entry(
    _hass: HomeAssistant,
    entry: EnergiDataServiceConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up Energi Data Service sensors based on a config entry."""
    coordinator = entry.runtime_data.coordinator

    async_add_entities(
        EnergiDataServiceSensor(
            coordinator=coordinator,
            entity_description=entity_description,
        )
        for entity_description in ENTITY_DESCRIPTIONS
    )
