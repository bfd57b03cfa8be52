"""Tests for the Energi Data Service API client and its helpers."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest

from custom_components.energi_data_service.api import (
    EnergiDataServiceApiClient,
    EnergiDataServiceApiClientCommunicationError,
    EnergiDataServiceApiClientEmptyDataError,
    EnergiDataServiceApiClientParseError,
)
from custom_components.energi_data_service.api.helpers import (
    build_price_list_params,
    build_spot_price_params,
    decode_records_payload,
    parse_price_list_records,
)
from custom_components.energi_data_service.api.tariff_filter import (
    DateQueryParameterType,
    get_system_tariff,
    resolve_net_tariff_filter,
)

SPOT_PAYLOAD = {
    "total": 2,
    "records": [
        {"HourUTC": "2023-02-04T12:00:00", "SpotPriceDKK": 992.840027},
        {"HourUTC": "2023-02-04T16:00:00", "SpotPriceDKK": 1267.680054},
    ],
}

PRICE_LIST_RECORD = {
    "ValidFrom": "2023-01-01T00:00:00",
    "ValidTo": None,
    "ChargeTypeCode": "41000",
    "Price1": 0.054,
    **{f"Price{i}": None for i in range(2, 25)},
}


def _mock_session(
    content: str = "",
    status: int = 200,
    headers: dict[str, str] | None = None,
) -> MagicMock:
    """Create a session whose get() yields one canned response."""
    response = MagicMock()
    response.status = status
    response.headers = headers or {}
    response.text = AsyncMock(return_value=content)

    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=response)
    context.__aexit__ = AsyncMock(return_value=False)

    session = MagicMock()
    session.get = MagicMock(return_value=context)
    return session


def _client(session: MagicMock) -> EnergiDataServiceApiClient:
    return EnergiDataServiceApiClient(session=session, version="test")


def _query(session: MagicMock) -> dict[str, Any]:
    return session.get.call_args.kwargs["params"]


# =============================================================================
# Query building
# =============================================================================


@pytest.mark.unit
def test_spot_price_params() -> None:
    """Spot price queries filter on the price area and request one currency column."""
    params = build_spot_price_params("DK1", "EUR", "utcnow")
    assert params == {
        "start": "utcnow",
        "filter": '{"PriceArea":"DK1"}',
        "columns": "HourUTC,SpotPriceEUR",
    }


@pytest.mark.unit
def test_price_list_params_include_codes_and_notes() -> None:
    """Energinet filters add codes, notes and the start date."""
    params = build_price_list_params("5790000432752", get_system_tariff())

    assert json.loads(params["filter"]) == {
        "GLN_Number": ["5790000432752"],
        "ChargeType": ["D03"],
        "ChargeTypeCode": ["41000"],
        "Note": ["Systemtarif"],
    }
    assert params["start"] == "2023-01-01"
    assert params["columns"].startswith("ValidFrom,ValidTo,ChargeTypeCode,Price1,")
    assert params["columns"].endswith(",Price24")


@pytest.mark.unit
def test_price_list_params_omit_empty_parts() -> None:
    """Empty codes, notes and start are left out of the query."""
    params = build_price_list_params("5790000610099", resolve_net_tariff_filter("x", notes="Nettarif C"))

    assert json.loads(params["filter"]) == {
        "GLN_Number": ["5790000610099"],
        "ChargeType": ["D03"],
        "Note": ["Nettarif C"],
    }
    assert "start" not in params


# =============================================================================
# Response decoding
# =============================================================================


@pytest.mark.unit
def test_decode_keeps_decimal_precision() -> None:
    """Prices decode as Decimal, not float."""
    payload = decode_records_payload(json.dumps(SPOT_PAYLOAD))
    assert payload["records"][0]["SpotPriceDKK"] == Decimal("992.840027")


@pytest.mark.unit
def test_decode_empty_body() -> None:
    """An empty body is an empty-data error."""
    with pytest.raises(EnergiDataServiceApiClientEmptyDataError, match="Empty response"):
        decode_records_payload("")


@pytest.mark.unit
@pytest.mark.parametrize("content", ["not json", "[]", '{"total": 0}'])
def test_decode_malformed_body(content: str) -> None:
    """Undecodable JSON or a missing records list is a parse error."""
    with pytest.raises(EnergiDataServiceApiClientParseError, match="Error parsing response"):
        decode_records_payload(content)


@pytest.mark.unit
def test_truncated_price_list_warns(caplog: pytest.LogCaptureFixture) -> None:
    """A limit below the total logs a warning."""
    records = parse_price_list_records({"total": 150, "limit": 100, "records": [PRICE_LIST_RECORD]})

    assert len(records) == 1
    assert records[0].valid_to is None
    assert records[0].price_for_hour(5) == Decimal("0.054")
    assert "only 100 returned" in caplog.text


# =============================================================================
# Client
# =============================================================================


@pytest.mark.unit
@pytest.mark.asyncio
async def test_get_spot_prices() -> None:
    """Spot prices parse into UTC hours and record call metadata."""
    session = _mock_session(
        json.dumps(SPOT_PAYLOAD),
        headers={"RemainingCalls": "397", "TotalCalls": "400"},
    )
    client = _client(session)

    records = await client.async_get_spot_prices("DK1", "DKK", DateQueryParameterType.START_OF_DAY)

    assert [record.hour for record in records] == [
        datetime(2023, 2, 4, 12, 0, tzinfo=UTC),
        datetime(2023, 2, 4, 16, 0, tzinfo=UTC),
    ]
    assert records[0].price == Decimal("992.840027")
    assert _query(session)["start"] == "StartOfDay"
    assert client.remaining_calls == 397
    assert client.total_calls == 400
    assert client.last_call is not None


@pytest.mark.unit
@pytest.mark.asyncio
async def test_get_spot_prices_without_records() -> None:
    """Zero spot price records is an error."""
    client = _client(_mock_session(json.dumps({"total": 0, "records": []})))

    with pytest.raises(EnergiDataServiceApiClientEmptyDataError, match="No records"):
        await client.async_get_spot_prices("DK1", "DKK")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_get_price_lists_without_records() -> None:
    """Zero price list records is simply an empty list."""
    client = _client(_mock_session(json.dumps({"total": 0, "records": []})))

    assert await client.async_get_datahub_price_lists("5790000432752", get_system_tariff()) == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_http_error_carries_status() -> None:
    """Non-2xx responses map to a communication error with the status."""
    client = _client(_mock_session("busy", status=429))

    with pytest.raises(EnergiDataServiceApiClientCommunicationError) as exc_info:
        await client.async_get_spot_prices("DK1", "DKK")

    assert exc_info.value.http_status == 429


@pytest.mark.unit
@pytest.mark.asyncio
@pytest.mark.parametrize("error", [aiohttp.ClientError("boom"), TimeoutError(), OSError("down")])
async def test_transport_errors_have_status_zero(error: Exception) -> None:
    """Transport failures map to a communication error without status."""
    session = MagicMock()
    session.get = MagicMock(side_effect=error)
    client = _client(session)

    with pytest.raises(EnergiDataServiceApiClientCommunicationError) as exc_info:
        await client.async_get_spot_prices("DK1", "DKK")

    assert exc_info.value.http_status == 0
