"""Custom types for energi_data_service."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.loader import Integration

    from .api import EnergiDataServiceApiClient
    from .coordinator import EnergiDataServiceDataUpdateCoordinator


@dataclass
class EnergiDataServiceData:
    """Data for the energi_data_service integration."""

    client: EnergiDataServiceApiClient
    coordinator: EnergiDataServiceDataUpdateCoordinator
    integration: Integration


if TYPE_CHECKING:
    type EnergiDataServiceConfigEntry = ConfigEntry[EnergiDataServiceData]
