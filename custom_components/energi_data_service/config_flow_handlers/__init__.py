"""
Configuration flow package for UI-based setup.

This package handles all user interaction for integration configuration:
- Initial setup: price area, currency and charge owner GLNs
- Options flow: VAT and net tariff filter overrides

Flow handlers:
- user_flow.py: Initial setup with GLN and connection checks
- options_flow.py: Single-step options form

Supporting modules:
- schemas.py: Form schema definitions (vol.Schema)
- validators.py: Input validation and API testing
"""

from __future__ import annotations

from custom_components.energi_data_service.config_flow_handlers.options_flow import (
    EnergiDataServiceOptionsFlowHandler,
)
from custom_components.energi_data_service.config_flow_handlers.schemas import (
    get_options_init_schema,
    get_user_schema,
)
from custom_components.energi_data_service.config_flow_handlers.user_flow import (
    EnergiDataServiceConfigFlowHandler,
)
from custom_components.energi_data_service.config_flow_handlers.validators import (
    EnergiDataServiceCannotConnectError,
    EnergiDataServiceNoSpotPricesError,
    validate_connection,
    validate_gln,
    validate_net_tariff_start,
)

__all__ = [
    "EnergiDataServiceCannotConnectError",
    "EnergiDataServiceConfigFlowHandler",
    "EnergiDataServiceNoSpotPricesError",
    "EnergiDataServiceOptionsFlowHandler",
    "get_options_init_schema",
    "get_user_schema",
    "validate_connection",
    "validate_gln",
    "validate_net_tariff_start",
]
