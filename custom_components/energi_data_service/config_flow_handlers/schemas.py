"""Schema definitions for energi_data_service config flow."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Mapping

import voluptuous as vol

from custom_components.energi_data_service.const import (
    CONF_CURRENCY,
    CONF_ENERGINET_GLN,
    CONF_GRID_COMPANY_GLN,
    CONF_INCLUDE_VAT,
    CONF_NET_TARIFF_CHARGE_TYPE_CODES,
    CONF_NET_TARIFF_NOTES,
    CONF_NET_TARIFF_START,
    CONF_PRICE_AREA,
    DEFAULT_CURRENCY,
    DEFAULT_ENERGINET_GLN,
    DEFAULT_GRID_COMPANY_GLN,
    DEFAULT_INCLUDE_VAT,
    DEFAULT_PRICE_AREA,
    PRICE_AREAS,
    SUPPORTED_CURRENCIES,
)
from homeassistant.helpers.selector import (
    BooleanSelector,
    SelectSelector,
    SelectSelectorConfig,
    SelectSelectorMode,
    TextSelector,
    TextSelectorConfig,
    TextSelectorType,
)


def _text_selector() -> TextSelector:
    return TextSelector(
        TextSelectorConfig(
            type=TextSelectorType.TEXT,
        ),
    )


def get_user_schema(user_input: Mapping[str, Any] | None = None) -> vol.Schema:
    """Return schema for user step (price area, currency and charge owners)."""
    defaults = user_input or {}
    return vol.Schema(
        {
            vol.Required(
                CONF_PRICE_AREA,
                default=defaults.get(CONF_PRICE_AREA, DEFAULT_PRICE_AREA),
            ): SelectSelector(
                SelectSelectorConfig(
                    options=list(PRICE_AREAS),
                    mode=SelectSelectorMode.DROPDOWN,
                    translation_key="price_area",
                ),
            ),
            vol.Required(
                CONF_CURRENCY,
                default=defaults.get(CONF_CURRENCY, DEFAULT_CURRENCY),
            ): SelectSelector(
                SelectSelectorConfig(
                    options=list(SUPPORTED_CURRENCIES),
                    mode=SelectSelectorMode.DROPDOWN,
                ),
            ),
            vol.Optional(
                CONF_GRID_COMPANY_GLN,
                default=defaults.get(CONF_GRID_COMPANY_GLN, DEFAULT_GRID_COMPANY_GLN),
            ): _text_selector(),
            vol.Optional(
                CONF_ENERGINET_GLN,
                default=defaults.get(CONF_ENERGINET_GLN, DEFAULT_ENERGINET_GLN),
            ): _text_selector(),
        }
    )


def get_options_init_schema(options: Mapping[str, Any]) -> vol.Schema:
    """Return schema for options init step (VAT and net tariff filter overrides)."""
    return vol.Schema(
        {
            vol.Optional(
                CONF_INCLUDE_VAT,
                default=options.get(CONF_INCLUDE_VAT, DEFAULT_INCLUDE_VAT),
            ): BooleanSelector(),
            vol.Optional(
                CONF_NET_TARIFF_CHARGE_TYPE_CODES,
                default=options.get(CONF_NET_TARIFF_CHARGE_TYPE_CODES, ""),
            ): _text_selector(),
            vol.Optional(
                CONF_NET_TARIFF_NOTES,
                default=options.get(CONF_NET_TARIFF_NOTES, ""),
            ): _text_selector(),
            vol.Optional(
                CONF_NET_TARIFF_START,
                default=options.get(CONF_NET_TARIFF_START, ""),
            ): _text_selector(),
        }
    )
