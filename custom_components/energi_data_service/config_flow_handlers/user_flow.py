"""Main config flow for energi_data_service integration."""

from __future__ import annotations

from typing import Any

from custom_components.energi_data_service.config_flow_handlers.options_flow import (
    EnergiDataServiceOptionsFlowHandler,
)
from custom_components.energi_data_service.config_flow_handlers.schemas import get_user_schema
from custom_components.energi_data_service.config_flow_handlers.validators import (
    EnergiDataServiceCannotConnectError,
    EnergiDataServiceNoSpotPricesError,
    validate_connection,
    validate_gln,
)
from custom_components.energi_data_service.const import (
    CONF_CURRENCY,
    CONF_ENERGINET_GLN,
    CONF_GRID_COMPANY_GLN,
    CONF_PRICE_AREA,
    DEFAULT_NAME,
    DOMAIN,
    LOGGER,
)
from homeassistant.config_entries import (
    ConfigEntry,
    ConfigFlow,
    ConfigFlowResult,
    OptionsFlow,
)
from homeassistant.core import callback


class EnergiDataServiceConfigFlowHandler(ConfigFlow, domain=DOMAIN):
    """Config flow for energi_data_service."""

    VERSION = 1
    MINOR_VERSION = 0

    @staticmethod
    @callback
    def async_get_options_flow(_config_entry: ConfigEntry) -> OptionsFlow:
        """Create an options flow for this configentry."""
        return EnergiDataServiceOptionsFlowHandler()

    async def async_step_user(
        self,
        user_input: dict[str, Any] | None = None,
    ) -> ConfigFlowResult:
        """Handle a flow initialized by the user."""
        _errors: dict[str, str] = {}

        if user_input is not None:
            user_input = {
                **user_input,
                CONF_GRID_COMPANY_GLN: (user_input.get(CONF_GRID_COMPANY_GLN) or "").strip(),
                CONF_ENERGINET_GLN: (user_input.get(CONF_ENERGINET_GLN) or "").strip(),
            }

            if not validate_gln(user_input[CONF_GRID_COMPANY_GLN]):
                _errors[CONF_GRID_COMPANY_GLN] = "invalid_gln"
            if not validate_gln(user_input[CONF_ENERGINET_GLN]):
                _errors[CONF_ENERGINET_GLN] = "invalid_gln"

            if not _errors:
                try:
                    await validate_connection(
                        self.hass,
                        user_input[CONF_PRICE_AREA],
                        user_input[CONF_CURRENCY],
                    )
                except EnergiDataServiceNoSpotPricesError as exception:
                    LOGGER.warning(exception)
                    _errors["base"] = "no_spot_prices"
                except EnergiDataServiceCannotConnectError as exception:
                    LOGGER.error(exception)
                    _errors["base"] = "connection"

            if not _errors:
                unique_id = "_".join(
                    (
                        user_input[CONF_PRICE_AREA],
                        user_input[CONF_CURRENCY],
                        user_input[CONF_GRID_COMPANY_GLN] or "none",
                    )
                )
                await self.async_set_unique_id(unique_id)
                self._abort_if_unique_id_configured()

                LOGGER.debug("Creating entry for %s", unique_id)
                return self.async_create_entry(
                    title=f"{DEFAULT_NAME} {user_input[CONF_PRICE_AREA]}",
                    data=user_input,
                )

        return self.async_show_form(
            step_id="user",
            data_schema=get_user_schema(user_input),
            errors=_errors,
        )
