"""Energi Data Service API Client."""

from __future__ import annotations

import asyncio
import logging
import socket
from typing import TYPE_CHECKING, Any

import aiohttp

from homeassistant.util import dt as dt_utils

from .exceptions import (
    EnergiDataServiceApiClientCommunicationError,
    EnergiDataServiceApiClientEmptyDataError,
)
from .helpers import (
    build_price_list_params,
    build_spot_price_params,
    decode_records_payload,
    parse_price_list_records,
    parse_spot_price_records,
    prepare_headers,
    verify_response_or_raise,
)
from .tariff_filter import DateQueryParameterType

if TYPE_CHECKING:
    from datetime import datetime

    from .models import SpotPriceRecord, TariffRecord
    from .tariff_filter import DatahubTariffFilter

_LOGGER = logging.getLogger(__name__)
_LOGGER_API_DETAILS = logging.getLogger(__name__ + ".details")

ENDPOINT = "https://api.energidataservice.dk/"
DATASET_PATH = "dataset/"
DATASET_NAME_SPOT_PRICES = "Elspotprices"
DATASET_NAME_DATAHUB_PRICELIST = "DatahubPricelist"

HEADER_REMAINING_CALLS = "RemainingCalls"
HEADER_TOTAL_CALLS = "TotalCalls"


class EnergiDataServiceApiClient:
    """
    Energi Data Service API Client.

    Fetches spot prices and Datahub price lists. The client performs exactly one
    request per call and never retries; retry timing belongs to the caller.
    Call metadata from response headers is kept on the instance.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        version: str,
    ) -> None:
        """Energi Data Service API Client."""
        self._session = session
        self._version = version
        self._request_semaphore = asyncio.Semaphore(2)  # Max 2 concurrent requests

        # Timeout configuration
        self._connect_timeout = 10  # Connection timeout in seconds
        self._request_timeout = 30  # Total request timeout in seconds
        self._socket_connect_timeout = 5  # Socket connection timeout

        # Call metadata from response headers
        self.remaining_calls: int | None = None
        self.total_calls: int | None = None
        self.last_call: datetime | None = None

    async def async_get_spot_prices(
        self,
        price_area: str,
        currency: str,
        start: DateQueryParameterType = DateQueryParameterType.UTC_NOW,
    ) -> list[SpotPriceRecord]:
        """
        Get spot prices for a price area.

        Args:
            price_area: Bidding zone, usually DK1 or DK2
            currency: DKK or EUR
            start: utcnow for forward data only, StartOfDay to include today's earlier hours

        Returns:
            Records with hour start and price per MWh in the requested currency.

        Raises:
            EnergiDataServiceApiClientCommunicationError: Non-2xx status or transport failure
            EnergiDataServiceApiClientParseError: Malformed payload
            EnergiDataServiceApiClientEmptyDataError: Empty body or no records

        """
        params = build_spot_price_params(price_area, currency, str(start))
        payload = await self._api_wrapper(DATASET_NAME_SPOT_PRICES, params)

        if payload.get("total") == 0 or not payload["records"]:
            raise EnergiDataServiceApiClientEmptyDataError(EnergiDataServiceApiClientEmptyDataError.NO_RECORDS)

        return parse_spot_price_records(payload, currency)

    async def async_get_datahub_price_lists(
        self,
        gln: str,
        tariff_filter: DatahubTariffFilter,
    ) -> list[TariffRecord]:
        """
        Get tariff price lists for a charge owner.

        Args:
            gln: Global Location Number of the charge owner
            tariff_filter: Charge type codes, notes and start parameter

        Returns:
            Price list records, possibly empty.

        """
        params = build_price_list_params(gln, tariff_filter)
        payload = await self._api_wrapper(DATASET_NAME_DATAHUB_PRICELIST, params)
        return parse_price_list_records(payload)

    def _update_metadata_from_response(self, response: aiohttp.ClientResponse) -> None:
        """Record call quota headers and the time of the call."""
        remaining_calls = response.headers.get(HEADER_REMAINING_CALLS)
        if remaining_calls is not None and remaining_calls.isdigit():
            self.remaining_calls = int(remaining_calls)
        total_calls = response.headers.get(HEADER_TOTAL_CALLS)
        if total_calls is not None and total_calls.isdigit():
            self.total_calls = int(total_calls)
        self.last_call = dt_utils.now()

    async def _make_request(self, dataset: str, params: dict[str, str]) -> dict[str, Any]:
        """Make an API request with comprehensive error handling for network issues."""
        url = f"{ENDPOINT}{DATASET_PATH}{dataset}"
        _LOGGER_API_DETAILS.debug("GET request for %s with params: %s", url, params)

        try:
            timeout = aiohttp.ClientTimeout(
                total=self._request_timeout,
                connect=self._connect_timeout,
                sock_connect=self._socket_connect_timeout,
            )

            async with self._session.get(
                url,
                params=params,
                headers=prepare_headers(self._version),
                timeout=timeout,
            ) as response:
                self._update_metadata_from_response(response)
                verify_response_or_raise(response)
                content = await response.text()

            _LOGGER_API_DETAILS.debug("Response content: '%s'", content)
            return decode_records_payload(content)

        except aiohttp.ClientResponseError as error:
            _LOGGER.debug("HTTP error during API request: %s", error)
            raise EnergiDataServiceApiClientCommunicationError(
                EnergiDataServiceApiClientCommunicationError.CONNECTION_ERROR.format(exception=str(error)),
                http_status=error.status,
            ) from error

        except (aiohttp.ClientConnectorError, aiohttp.ServerDisconnectedError) as error:
            _LOGGER.debug("Connection error - server unreachable or network down: %s", error)
            raise EnergiDataServiceApiClientCommunicationError(
                EnergiDataServiceApiClientCommunicationError.CONNECTION_ERROR.format(exception=str(error))
            ) from error

        except TimeoutError as error:
            _LOGGER.debug("Request timeout after %d seconds", self._request_timeout)
            raise EnergiDataServiceApiClientCommunicationError(
                EnergiDataServiceApiClientCommunicationError.TIMEOUT_ERROR.format(exception=str(error))
            ) from error

        except aiohttp.ClientError as error:
            _LOGGER.debug("Client error during API request: %s", error)
            raise EnergiDataServiceApiClientCommunicationError(
                EnergiDataServiceApiClientCommunicationError.CONNECTION_ERROR.format(exception=str(error))
            ) from error

        except socket.gaierror as error:
            _LOGGER.debug("DNS resolution failed - check internet connection: %s", error)
            raise EnergiDataServiceApiClientCommunicationError(
                EnergiDataServiceApiClientCommunicationError.CONNECTION_ERROR.format(exception=str(error))
            ) from error

        except OSError as error:
            _LOGGER.debug("Network error - internet may be down: %s", error)
            raise EnergiDataServiceApiClientCommunicationError(
                EnergiDataServiceApiClientCommunicationError.CONNECTION_ERROR.format(exception=str(error))
            ) from error

    async def _api_wrapper(self, dataset: str, params: dict[str, str]) -> dict[str, Any]:
        """Get information from the API, limiting concurrent requests."""
        async with self._request_semaphore:
            return await self._make_request(dataset, params)
