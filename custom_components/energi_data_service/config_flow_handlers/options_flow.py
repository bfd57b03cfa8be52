"""Options flow for energi_data_service integration."""

from __future__ import annotations

import logging
from typing import Any

from custom_components.energi_data_service.config_flow_handlers.schemas import (
    get_options_init_schema,
)
from custom_components.energi_data_service.config_flow_handlers.validators import (
    validate_net_tariff_start,
)
from custom_components.energi_data_service.const import CONF_NET_TARIFF_START
from homeassistant.config_entries import ConfigFlowResult, OptionsFlow

_LOGGER = logging.getLogger(__name__)


class EnergiDataServiceOptionsFlowHandler(OptionsFlow):
    """Handle options for Energi Data Service entries."""

    def __init__(self) -> None:
        """Initialize options flow."""
        self._options: dict[str, Any] = {}

    async def async_step_init(self, user_input: dict[str, Any] | None = None) -> ConfigFlowResult:
        """Manage the options - VAT and net tariff filter."""
        errors: dict[str, str] = {}

        if not self._options:
            self._options = dict(self.config_entry.options)

        if user_input is not None:
            if not validate_net_tariff_start(user_input.get(CONF_NET_TARIFF_START)):
                errors[CONF_NET_TARIFF_START] = "invalid_start"

            if not errors:
                self._options.update(user_input)
                _LOGGER.debug("Saving options for %s", self.config_entry.title)
                return self.async_create_entry(title="", data=self._options)

        return self.async_show_form(
            step_id="init",
            data_schema=get_options_init_schema(user_input or self.config_entry.options),
            errors=errors,
        )
