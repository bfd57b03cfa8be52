"""
Energi Data Service API client package.

This package handles all communication with the Energi Data Service REST API:
- Spot prices (Elspotprices dataset)
- Tariff price lists (DatahubPricelist dataset)
- Call quota metadata from response headers
- Error mapping to communication, parse and empty-data errors

Architecture:
- client.py: EnergiDataServiceApiClient (aiohttp requests)
- helpers.py: Query building, response verification and record parsing
- models.py: SpotPriceRecord and TariffRecord
- tariff_filter.py: Datahub tariff filters and their defaults
- exceptions.py: Exception hierarchy
"""

from .client import EnergiDataServiceApiClient
from .exceptions import (
    EnergiDataServiceApiClientCommunicationError,
    EnergiDataServiceApiClientEmptyDataError,
    EnergiDataServiceApiClientError,
    EnergiDataServiceApiClientParseError,
    EnergiDataServiceConfigurationError,
    EnergiDataServiceDataIncompleteError,
)
from .models import SpotPriceRecord, TariffRecord
from .tariff_filter import DatahubTariffFilter, DateQueryParameter, DateQueryParameterType

__all__ = [
    "DatahubTariffFilter",
    "DateQueryParameter",
    "DateQueryParameterType",
    "EnergiDataServiceApiClient",
    "EnergiDataServiceApiClientCommunicationError",
    "EnergiDataServiceApiClientEmptyDataError",
    "EnergiDataServiceApiClientError",
    "EnergiDataServiceApiClientParseError",
    "EnergiDataServiceConfigurationError",
    "EnergiDataServiceDataIncompleteError",
    "SpotPriceRecord",
    "TariffRecord",
]
