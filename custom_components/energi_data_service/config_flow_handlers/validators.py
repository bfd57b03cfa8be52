"""Validation functions for Energi Data Service config flow."""

from __future__ import annotations

from typing import TYPE_CHECKING

from custom_components.energi_data_service.api import (
    DateQueryParameter,
    EnergiDataServiceApiClient,
    EnergiDataServiceApiClientEmptyDataError,
    EnergiDataServiceApiClientError,
)
from custom_components.energi_data_service.const import DOMAIN
from custom_components.energi_data_service.utils.gln import is_empty_or_valid_gln
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers.aiohttp_client import async_create_clientsession
from homeassistant.loader import async_get_integration

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant


class EnergiDataServiceCannotConnectError(HomeAssistantError):
    """Error to indicate we cannot connect."""


class EnergiDataServiceNoSpotPricesError(HomeAssistantError):
    """Error to indicate the price area returned no spot prices."""


async def validate_connection(hass: HomeAssistant, price_area: str, currency: str) -> int:
    """
    Check that spot prices can be fetched for a price area.

    Args:
        hass: Home Assistant instance
        price_area: Nord Pool price area, e.g. DK1
        currency: DKK or EUR

    Returns:
        Number of spot price records returned

    Raises:
        EnergiDataServiceNoSpotPricesError: API answered without records
        EnergiDataServiceCannotConnectError: API connection failed

    """
    try:
        integration = await async_get_integration(hass, DOMAIN)
        client = EnergiDataServiceApiClient(
            session=async_create_clientsession(hass),
            version=str(integration.version) if integration.version else "unknown",
        )
        records = await client.async_get_spot_prices(price_area, currency)
    except EnergiDataServiceApiClientEmptyDataError as exception:
        raise EnergiDataServiceNoSpotPricesError from exception
    except EnergiDataServiceApiClientError as exception:
        raise EnergiDataServiceCannotConnectError from exception
    return len(records)


def validate_gln(gln: str | None) -> bool:
    """
    Validate a GLN field.

    Empty is accepted and disables the components owned by that GLN.

    Args:
        gln: 13-digit GLN or empty

    Returns:
        True if empty or a valid GS1 number

    """
    return is_empty_or_valid_gln((gln or "").strip())


def validate_net_tariff_start(start: str | None) -> bool:
    """
    Validate the net tariff start override.

    Args:
        start: YYYY-MM-DD, StartOfDay, StartOfMonth, StartOfYear or empty

    Returns:
        True if the value can be sent as start parameter

    """
    return DateQueryParameter.parse(start) is not None
