"""
Service handlers for Energi Data Service integration.

This package provides action-style queries on the cached prices:
- Summed hourly prices for selected price elements (get_prices)
- Cost of a constant power draw over a time window (calculate_price)

Architecture:
- helpers.py: Common utilities (get_entry_and_coordinator, response formatting)
- get_prices.py: Price sum service handler
- calculate_price.py: Cost integration service handler

"""

from __future__ import annotations

from typing import TYPE_CHECKING

from custom_components.energi_data_service.const import DOMAIN
from homeassistant.core import SupportsResponse, callback

from .calculate_price import (
    CALCULATE_PRICE_SERVICE_NAME,
    CALCULATE_PRICE_SERVICE_SCHEMA,
    handle_calculate_price,
)
from .get_prices import GET_PRICES_SERVICE_NAME, GET_PRICES_SERVICE_SCHEMA, handle_get_prices

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant

__all__ = [
    "SERVICE_NAMES",
    "async_setup_services",
]

SERVICE_NAMES = (
    GET_PRICES_SERVICE_NAME,
    CALCULATE_PRICE_SERVICE_NAME,
)


@callback
def async_setup_services(hass: HomeAssistant) -> None:
    """Set up services for Energi Data Service integration."""
    hass.services.async_register(
        DOMAIN,
        GET_PRICES_SERVICE_NAME,
        handle_get_prices,
        schema=GET_PRICES_SERVICE_SCHEMA,
        supports_response=SupportsResponse.ONLY,
    )
    hass.services.async_register(
        DOMAIN,
        CALCULATE_PRICE_SERVICE_NAME,
        handle_calculate_price,
        schema=CALCULATE_PRICE_SERVICE_SCHEMA,
        supports_response=SupportsResponse.ONLY,
    )
