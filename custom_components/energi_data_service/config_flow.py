"""
Config flow for Energi Data Service integration.

This module serves as the entry point for Home Assistant's config flow discovery.
The actual implementation is in the config_flow_handlers package.
"""

from __future__ import annotations

from .config_flow_handlers.options_flow import (
    EnergiDataServiceOptionsFlowHandler as OptionsFlowHandler,
)
from .config_flow_handlers.schemas import (
    get_options_init_schema,
    get_user_schema,
)
from .config_flow_handlers.user_flow import EnergiDataServiceConfigFlowHandler as ConfigFlow
from .config_flow_handlers.validators import (
    EnergiDataServiceCannotConnectError,
    EnergiDataServiceNoSpotPricesError,
    validate_connection,
)

__all__ = [
    "ConfigFlow",
    "EnergiDataServiceCannotConnectError",
    "EnergiDataServiceNoSpotPricesError",
    "OptionsFlowHandler",
    "get_options_init_schema",
    "get_user_schema",
    "validate_connection",
]
