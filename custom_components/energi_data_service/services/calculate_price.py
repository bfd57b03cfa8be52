"""Service handler for calculate_price service."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import voluptuous as vol

from homeassistant.helpers import config_validation as cv

from .helpers import ensure_aware, get_entry_and_coordinator

if TYPE_CHECKING:
    from datetime import datetime

    from homeassistant.core import HomeAssistant, ServiceCall, ServiceResponse

_LOGGER = logging.getLogger(__name__)

CALCULATE_PRICE_SERVICE_NAME = "calculate_price"
ATTR_ENTRY_ID = "entry_id"
ATTR_START = "start"
ATTR_END = "end"
ATTR_POWER = "power"

CALCULATE_PRICE_SERVICE_SCHEMA = vol.Schema(
    {
        vol.Required(ATTR_ENTRY_ID): cv.string,
        vol.Optional(ATTR_START): cv.datetime,
        vol.Optional(ATTR_END): cv.datetime,
        vol.Optional(ATTR_POWER): vol.All(vol.Coerce(float), vol.Range(min=0)),
    }
)


async def handle_calculate_price(call: ServiceCall) -> ServiceResponse:
    """
    Handle calculate_price service call.

    Integrates a constant power draw (watts) over all price elements between
    start and end. Missing start, end or power, or any hour without a price,
    yields zero.
    """
    hass: HomeAssistant = call.hass
    entry_id: str = call.data.get(ATTR_ENTRY_ID, "")
    start: datetime | None = ensure_aware(call.data.get(ATTR_START))
    end: datetime | None = ensure_aware(call.data.get(ATTR_END))
    power: float | None = call.data.get(ATTR_POWER)

    _entry, coordinator = get_entry_and_coordinator(hass, entry_id)

    price = await coordinator.async_calculate_price(start, end, power)

    _LOGGER.debug("calculate_price service completed: %s %s", price, coordinator.currency)

    return {
        "price": str(price),
        "currency": coordinator.currency,
    }
