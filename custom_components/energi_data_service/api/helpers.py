"""Helper functions for API request building and response processing."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any

from homeassistant.const import __version__ as ha_version

from .exceptions import (
    EnergiDataServiceApiClientCommunicationError,
    EnergiDataServiceApiClientEmptyDataError,
    EnergiDataServiceApiClientParseError,
)
from .models import SpotPriceRecord, TariffRecord

if TYPE_CHECKING:
    import aiohttp

    from .tariff_filter import DatahubTariffFilter

_LOGGER = logging.getLogger(__name__)
_LOGGER_DETAILS = logging.getLogger(__name__ + ".details")

HTTP_OK = 200
HTTP_MULTIPLE_CHOICES = 300

FILTER_KEY_PRICE_AREA = "PriceArea"
FILTER_KEY_GLN_NUMBER = "GLN_Number"
FILTER_KEY_CHARGE_TYPE = "ChargeType"
FILTER_KEY_CHARGE_TYPE_CODE = "ChargeTypeCode"
FILTER_KEY_NOTE = "Note"

# Datahub charge type for tariffs (D01 subscription, D02 fee, D03 tariff)
CHARGE_TYPE_TARIFF = "D03"

PRICE_LIST_PRICE_COLUMNS = 24


def prepare_headers(version: str) -> dict[str, str]:
    """Prepare headers for API request."""
    return {
        "Accept": "application/json",
        "User-Agent": f"HomeAssistant/{ha_version} energi_data_service/{version}",
    }


def verify_response_or_raise(response: aiohttp.ClientResponse) -> None:
    """
    Verify HTTP response status.

    Any status outside 2xx is a CommunicationError carrying the status code.
    Retry decisions are left to the caller's retry policy.
    """
    if HTTP_OK <= response.status < HTTP_MULTIPLE_CHOICES:
        return
    _LOGGER.warning("Energi Data Service request failed with HTTP status %d", response.status)
    raise EnergiDataServiceApiClientCommunicationError(
        EnergiDataServiceApiClientCommunicationError.HTTP_ERROR.format(status=response.status),
        http_status=response.status,
    )


def decode_records_payload(content: str) -> dict[str, Any]:
    """
    Decode a dataset response body.

    Numbers are decoded as Decimal so prices keep their published precision.

    Raises:
        EnergiDataServiceApiClientEmptyDataError: Body is empty
        EnergiDataServiceApiClientParseError: Body is not a JSON object with a records list

    """
    if not content:
        raise EnergiDataServiceApiClientEmptyDataError(EnergiDataServiceApiClientEmptyDataError.EMPTY_RESPONSE)

    try:
        payload = json.loads(content, parse_float=Decimal)
    except ValueError as error:
        raise EnergiDataServiceApiClientParseError(EnergiDataServiceApiClientParseError.PARSE_ERROR) from error

    if not isinstance(payload, dict) or not isinstance(payload.get("records"), list):
        raise EnergiDataServiceApiClientParseError(EnergiDataServiceApiClientParseError.PARSE_ERROR)

    return payload


def build_spot_price_params(price_area: str, currency: str, start: str) -> dict[str, str]:
    """Build query parameters for the Elspotprices dataset."""
    return {
        "start": start,
        "filter": json.dumps({FILTER_KEY_PRICE_AREA: price_area}, separators=(",", ":")),
        "columns": f"HourUTC,SpotPrice{currency}",
    }


def build_price_list_params(gln: str, tariff_filter: DatahubTariffFilter) -> dict[str, str]:
    """Build query parameters for the DatahubPricelist dataset."""
    filter_map: dict[str, list[str]] = {
        FILTER_KEY_GLN_NUMBER: [gln],
        FILTER_KEY_CHARGE_TYPE: [CHARGE_TYPE_TARIFF],
    }
    if tariff_filter.charge_type_codes:
        filter_map[FILTER_KEY_CHARGE_TYPE_CODE] = sorted(tariff_filter.charge_type_codes)
    if tariff_filter.notes:
        filter_map[FILTER_KEY_NOTE] = sorted(tariff_filter.notes)

    columns = ["ValidFrom", "ValidTo", "ChargeTypeCode"]
    columns.extend(f"Price{i}" for i in range(1, PRICE_LIST_PRICE_COLUMNS + 1))

    params = {
        "filter": json.dumps(filter_map, separators=(",", ":"), ensure_ascii=False),
        "columns": ",".join(columns),
    }
    if not tariff_filter.start.is_empty:
        params["start"] = str(tariff_filter.start)
    return params


def _to_decimal(value: Any) -> Decimal | None:
    if value is None:
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation as error:
        raise EnergiDataServiceApiClientParseError(EnergiDataServiceApiClientParseError.PARSE_ERROR) from error


def _parse_local_datetime(value: Any) -> datetime:
    if not isinstance(value, str):
        raise EnergiDataServiceApiClientParseError(EnergiDataServiceApiClientParseError.PARSE_ERROR)
    try:
        return datetime.fromisoformat(value).replace(tzinfo=None)
    except ValueError as error:
        raise EnergiDataServiceApiClientParseError(EnergiDataServiceApiClientParseError.PARSE_ERROR) from error


def parse_spot_price_records(payload: dict[str, Any], currency: str) -> list[SpotPriceRecord]:
    """
    Parse Elspotprices records into SpotPriceRecord.

    Records without a price in the requested currency are skipped.
    """
    price_key = f"SpotPrice{currency}"
    records: list[SpotPriceRecord] = []
    for raw in payload["records"]:
        if not isinstance(raw, dict):
            continue
        price = _to_decimal(raw.get(price_key))
        if price is None:
            _LOGGER_DETAILS.debug("Skipping spot price record without %s: %s", price_key, raw)
            continue
        hour = _parse_local_datetime(raw.get("HourUTC")).replace(tzinfo=UTC)
        records.append(SpotPriceRecord(hour=hour, price=price))
    return records


def parse_price_list_records(payload: dict[str, Any]) -> list[TariffRecord]:
    """Parse DatahubPricelist records into TariffRecord."""
    total = payload.get("total", 0)
    limit = payload.get("limit", 0)
    if isinstance(limit, (int, Decimal)) and isinstance(total, (int, Decimal)) and 0 < limit < total:
        _LOGGER.warning("%s price list records available, but only %s returned.", total, limit)

    records: list[TariffRecord] = []
    for raw in payload["records"]:
        if not isinstance(raw, dict):
            continue
        valid_to_raw = raw.get("ValidTo")
        records.append(
            TariffRecord(
                valid_from=_parse_local_datetime(raw.get("ValidFrom")),
                valid_to=_parse_local_datetime(valid_to_raw) if valid_to_raw is not None else None,
                charge_type_code=str(raw.get("ChargeTypeCode", "")),
                prices=tuple(_to_decimal(raw.get(f"Price{i}")) for i in range(1, PRICE_LIST_PRICE_COLUMNS + 1)),
            )
        )
    return records
