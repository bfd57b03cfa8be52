"""
Service handler for get_prices service.

Returns the hourly sum of the selected price elements. The selection is a
comma-separated, case-insensitive list of element names; omitting it selects
all elements.

The service fails closed: an unknown element name, or combining the spot price
with tariffs while the spot price currency is not DKK, yields an empty mapping
and a warning instead of a partial result.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import voluptuous as vol

from custom_components.energi_data_service.price_element import PriceElement, UnknownPriceElementError
from homeassistant.helpers import config_validation as cv

from .helpers import format_price_map, get_entry_and_coordinator

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant, ServiceCall, ServiceResponse

_LOGGER = logging.getLogger(__name__)

GET_PRICES_SERVICE_NAME = "get_prices"
ATTR_ENTRY_ID = "entry_id"
ATTR_PRICE_ELEMENTS = "price_elements"

GET_PRICES_SERVICE_SCHEMA = vol.Schema(
    {
        vol.Required(ATTR_ENTRY_ID): cv.string,
        vol.Optional(ATTR_PRICE_ELEMENTS): cv.string,
    }
)


async def handle_get_prices(call: ServiceCall) -> ServiceResponse:
    """
    Handle get_prices service call.

    Args:
        call: Service call with entry_id and optional price_elements

    Returns:
        Dict with the summed prices by hour, the selected elements and the currency

    Raises:
        ServiceValidationError: If entry_id is invalid

    """
    hass: HomeAssistant = call.hass
    entry_id: str = call.data.get(ATTR_ENTRY_ID, "")
    price_elements: str | None = call.data.get(ATTR_PRICE_ELEMENTS)

    _entry, coordinator = get_entry_and_coordinator(hass, entry_id)

    elements: frozenset[PriceElement] = frozenset(PriceElement)
    if price_elements and price_elements.strip():
        try:
            elements = PriceElement.parse_list(price_elements)
        except UnknownPriceElementError as err:
            _LOGGER.warning("%s", err)
            return {
                "prices": {},
                "price_elements": [],
                "currency": coordinator.currency,
            }

    prices = await coordinator.async_get_prices(elements)

    _LOGGER.debug("get_prices service completed: %d hours for %s", len(prices), sorted(map(str, elements)))

    return {
        "prices": format_price_map(prices),
        "price_elements": [str(element) for element in PriceElement if element in elements],
        "currency": coordinator.currency,
    }
