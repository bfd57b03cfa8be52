"""Tests for the refresh cycle, hourly tick, queries and shutdown of the coordinator."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, time, timedelta
from decimal import Decimal
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from custom_components.energi_data_service.api import (
    EnergiDataServiceApiClientCommunicationError,
    EnergiDataServiceApiClientParseError,
)
from custom_components.energi_data_service.const import (
    ALL_COMPONENTS,
    COMPONENT_ELECTRICITY_TAX,
    COMPONENT_NET_TARIFF,
    COMPONENT_SPOT_PRICE,
    COMPONENT_SYSTEM_TARIFF,
    COMPONENT_TRANSMISSION_NET_TARIFF,
    DATAHUB_TIMEZONE,
    NORD_POOL_TIMEZONE,
    TARIFF_COMPONENTS,
)
from custom_components.energi_data_service.coordinator import retry
from custom_components.energi_data_service.coordinator.cache import (
    EnergiDataServiceTimeSeriesCache,
)
from custom_components.energi_data_service.coordinator.core import (
    DATA_CURRENT,
    DATA_FUTURE_PRICES,
    DATA_NEXT_CALL,
    DATA_RETRY_POLICY,
    EnergiDataServiceDataUpdateCoordinator,
)
from custom_components.energi_data_service.coordinator.data_fetching import (
    EnergiDataServiceFetchSettings,
)
from custom_components.energi_data_service.coordinator.time_service import (
    EnergiDataServiceTimeService,
)
from custom_components.energi_data_service.price_element import PriceElement
from homeassistant.helpers.update_coordinator import DataUpdateCoordinator
from homeassistant.util import dt as dt_util

EXAMPLE_NOW = datetime(2023, 2, 4, 11, 30, tzinfo=UTC)
SPOT_AT_12 = Decimal("0.992840027")
SPOT_AT_16 = Decimal("1.267680054")


def _settings(currency: str = "DKK", price_area: str = "DK1") -> EnergiDataServiceFetchSettings:
    entry = MagicMock()
    entry.data = {
        "price_area": price_area,
        "currency": currency,
        "grid_company_gln": "5790000610099",
        "energinet_gln": "5790000432752",
    }
    entry.options = {}
    return EnergiDataServiceFetchSettings.from_config_entry(entry)


def _coordinator(
    now: datetime | None = None,
    currency: str = "DKK",
    options: dict[str, Any] | None = None,
) -> EnergiDataServiceDataUpdateCoordinator:
    """Create a coordinator bypassing __init__, with a real cache and mocked collaborators."""
    coordinator = object.__new__(EnergiDataServiceDataUpdateCoordinator)
    time_service = EnergiDataServiceTimeService(now)

    coordinator.hass = MagicMock()
    coordinator.hass.config.country = "DK"
    coordinator.config_entry = MagicMock()
    coordinator.config_entry.options = options or {}
    coordinator.data = None
    coordinator.api = MagicMock()
    coordinator._log_prefix = "[test]"  # noqa: SLF001
    coordinator.time = time_service
    coordinator.settings = _settings(currency)
    coordinator.cache = EnergiDataServiceTimeSeriesCache(
        time=time_service,
        timezones={
            COMPONENT_SPOT_PRICE: NORD_POOL_TIMEZONE,
            **dict.fromkeys(TARIFF_COMPONENTS, DATAHUB_TIMEZONE),
        },
    )
    coordinator._listener_manager = MagicMock()  # noqa: SLF001
    coordinator._data_fetcher = MagicMock()  # noqa: SLF001
    coordinator._data_fetcher.async_update_spot_prices_if_consumed = AsyncMock(return_value=True)  # noqa: SLF001
    coordinator._data_fetcher.async_update_tariffs_if_consumed = AsyncMock()  # noqa: SLF001
    coordinator._data_fetcher.async_fetch_spot_prices = AsyncMock(return_value=0)  # noqa: SLF001
    coordinator._data_fetcher.async_download_price_lists = AsyncMock(return_value=True)  # noqa: SLF001
    coordinator.retry_policy = retry.initial()
    coordinator.next_call = None
    coordinator.last_error = None
    coordinator._cycle_lock = asyncio.Lock()  # noqa: SLF001
    coordinator._cycle_task = None  # noqa: SLF001
    coordinator._is_shutting_down = False  # noqa: SLF001
    coordinator._hourly_tick_deferred = False  # noqa: SLF001
    return coordinator


def _hours(start: datetime, count: int, value: str = "1") -> dict[datetime, Decimal]:
    return {start + timedelta(hours=index): Decimal(value) for index in range(count)}


def _live_current_hour() -> datetime:
    """Current UTC hour of the wall clock; refresh cycles always use the real clock."""
    return dt_util.utcnow().replace(minute=0, second=0, microsecond=0)


def _pin_clock(coordinator: EnergiDataServiceDataUpdateCoordinator) -> None:
    """Stop refresh cycles from swapping in a live time service."""
    coordinator._update_time = MagicMock()  # noqa: SLF001


# =============================================================================
# Refresh cycle classification
# =============================================================================


@pytest.mark.unit
@pytest.mark.asyncio
async def test_cycle_with_full_lookahead_waits_for_daily_anchor() -> None:
    """Enough spot price hours schedule the next cycle at the 13:00 CET anchor."""
    coordinator = _coordinator()
    coordinator.cache.put(COMPONENT_SPOT_PRICE, _hours(_live_current_hour(), 30))

    data = await coordinator._async_update_data()  # noqa: SLF001

    assert coordinator.retry_policy == retry.at_fixed_time(time(13, 0), NORD_POOL_TIMEZONE)
    assert data[DATA_RETRY_POLICY]["kind"] == "fixed_daily_anchor"
    assert data[DATA_NEXT_CALL] == coordinator.next_call
    assert len(data[DATA_FUTURE_PRICES]) == 30
    coordinator._listener_manager.schedule_refresh.assert_called_once()  # noqa: SLF001
    coordinator._listener_manager.schedule_hourly_tick.assert_called_once()  # noqa: SLF001


@pytest.mark.unit
@pytest.mark.asyncio
async def test_cycle_with_short_lookahead_expects_missing_data() -> None:
    """Fewer than 13 future spot hours is expected-data-missing, not a failure."""
    coordinator = _coordinator()
    coordinator.cache.put(COMPONENT_SPOT_PRICE, _hours(_live_current_hour(), 5))

    await coordinator._async_update_data()  # noqa: SLF001

    assert isinstance(coordinator.retry_policy, retry.ExpectedDataMissingRetryPolicy)
    assert coordinator.last_error is None


@pytest.mark.unit
@pytest.mark.asyncio
async def test_cycle_without_spot_consumers_waits_for_midnight() -> None:
    """Tariff-only installations refresh after local midnight."""
    coordinator = _coordinator()
    coordinator._data_fetcher.async_update_spot_prices_if_consumed.return_value = False  # noqa: SLF001

    await coordinator._async_update_data()  # noqa: SLF001

    assert coordinator.retry_policy == retry.at_fixed_time(time.min, dt_util.get_default_time_zone())


@pytest.mark.unit
@pytest.mark.asyncio
async def test_cycle_failure_keeps_cached_data_and_backs_off() -> None:
    """A communication error is classified, logged and never escapes."""
    coordinator = _coordinator()
    coordinator.cache.put(COMPONENT_SPOT_PRICE, _hours(_live_current_hour(), 30))
    error = EnergiDataServiceApiClientCommunicationError("boom", http_status=503)
    coordinator._data_fetcher.async_update_spot_prices_if_consumed.side_effect = error  # noqa: SLF001

    data = await coordinator._async_update_data()  # noqa: SLF001

    assert isinstance(coordinator.retry_policy, retry.FromFailureRetryPolicy)
    assert coordinator.retry_policy.error_kind == "transient"
    assert coordinator.last_error is error
    assert data[DATA_CURRENT][COMPONENT_SPOT_PRICE] == Decimal(1)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_cycle_invalid_configuration_retries_slowly() -> None:
    """A missing price area is retried on the long configuration cadence."""
    coordinator = _coordinator()
    coordinator.settings = _settings(price_area="")

    await coordinator._async_update_data()  # noqa: SLF001

    assert coordinator.retry_policy.error_kind == "configuration"
    coordinator._data_fetcher.async_update_spot_prices_if_consumed.assert_not_called()  # noqa: SLF001
    coordinator._listener_manager.schedule_refresh.assert_called_once()  # noqa: SLF001


@pytest.mark.unit
@pytest.mark.asyncio
async def test_unexpected_error_is_classified() -> None:
    """Even unexpected errors end in a retry policy."""
    coordinator = _coordinator()
    coordinator._data_fetcher.async_update_tariffs_if_consumed.side_effect = KeyError("x")  # noqa: SLF001

    await coordinator._async_update_data()  # noqa: SLF001

    assert isinstance(coordinator.retry_policy, retry.FromFailureRetryPolicy)
    assert isinstance(coordinator.last_error, KeyError)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_equal_policy_keeps_backoff_state() -> None:
    """Repeated equal failures keep growing the running back-off."""
    coordinator = _coordinator()
    coordinator._data_fetcher.async_update_spot_prices_if_consumed.side_effect = (  # noqa: SLF001
        EnergiDataServiceApiClientParseError("Error parsing response")
    )

    await coordinator._async_update_data()  # noqa: SLF001
    running = coordinator.retry_policy
    await coordinator._async_update_data()  # noqa: SLF001

    assert coordinator.retry_policy is running
    assert running.backoff.attempts == 2


@pytest.mark.unit
@pytest.mark.asyncio
async def test_cancelled_cycle_does_not_reschedule() -> None:
    """Cancellation propagates without touching the timers."""
    coordinator = _coordinator()
    coordinator._data_fetcher.async_update_spot_prices_if_consumed.side_effect = asyncio.CancelledError  # noqa: SLF001

    with pytest.raises(asyncio.CancelledError):
        await coordinator._async_update_data()  # noqa: SLF001

    coordinator._listener_manager.schedule_refresh.assert_not_called()  # noqa: SLF001
    assert coordinator._cycle_task is None  # noqa: SLF001


# =============================================================================
# Publishing and hourly tick
# =============================================================================


@pytest.mark.unit
def test_build_data_applies_vat_to_current_values_only() -> None:
    """Current values include VAT when enabled; the future curve never does."""
    now = datetime(2023, 2, 4, 12, 10, tzinfo=UTC)
    coordinator = _coordinator(now, options={"include_vat": True})
    hour = datetime(2023, 2, 4, 12, 0, tzinfo=UTC)
    coordinator.cache.put(COMPONENT_SPOT_PRICE, {hour: Decimal("0.8")})
    coordinator.cache.put(COMPONENT_NET_TARIFF, {hour: Decimal("0.2")})

    data = coordinator._build_data()  # noqa: SLF001

    assert data[DATA_CURRENT][COMPONENT_SPOT_PRICE] == Decimal("1.000")
    assert data[DATA_CURRENT][COMPONENT_NET_TARIFF] == Decimal("0.250")
    assert data[DATA_CURRENT][COMPONENT_SYSTEM_TARIFF] is None
    assert data[DATA_FUTURE_PRICES] == [
        {
            "hourStart": "2023-02-04T12:00:00Z",
            "spotPrice": 0.8,
            "spotPriceCurrency": "DKK",
            "netTariff": 0.2,
            "systemTariff": None,
            "electricityTax": None,
            "transmissionNetTariff": None,
        }
    ]


@pytest.mark.unit
def test_hourly_tick_republishes_without_fetching() -> None:
    """Timer #2 evicts the past hour, publishes and re-arms itself."""
    coordinator = _coordinator(datetime(2023, 2, 4, 13, 0, 0, 1000, tzinfo=UTC))
    _pin_clock(coordinator)
    coordinator.cache.put(COMPONENT_SPOT_PRICE, _hours(datetime(2023, 2, 4, 12, 0, tzinfo=UTC), 2))
    coordinator.async_update_listeners = MagicMock()
    coordinator.next_call = datetime(2023, 2, 4, 12, 0, tzinfo=UTC)

    coordinator._handle_hourly_tick()  # noqa: SLF001

    assert list(coordinator.cache.get(COMPONENT_SPOT_PRICE)) == [datetime(2023, 2, 4, 13, 0, tzinfo=UTC)]
    assert coordinator.data[DATA_CURRENT][COMPONENT_SPOT_PRICE] == Decimal(1)
    assert coordinator.data[DATA_NEXT_CALL] == coordinator.next_call
    coordinator.async_update_listeners.assert_called_once()
    coordinator._data_fetcher.async_update_spot_prices_if_consumed.assert_not_called()  # noqa: SLF001
    coordinator._listener_manager.schedule_hourly_tick.assert_called_once()  # noqa: SLF001
    coordinator._listener_manager.schedule_refresh.assert_not_called()  # noqa: SLF001


@pytest.mark.unit
def test_hourly_tick_deferred_while_cycle_runs() -> None:
    """A tick during a refresh cycle leaves the cycle's time and data alone and retries shortly."""
    coordinator = _coordinator(EXAMPLE_NOW)
    pinned_time = coordinator.time
    coordinator._cycle_task = MagicMock()  # noqa: SLF001
    coordinator.async_update_listeners = MagicMock()

    before = dt_util.utcnow()
    coordinator._handle_hourly_tick()  # noqa: SLF001

    assert coordinator.time is pinned_time
    assert coordinator.cache.time is pinned_time
    assert coordinator.data is None
    assert coordinator._hourly_tick_deferred  # noqa: SLF001
    coordinator.async_update_listeners.assert_not_called()
    point_in_time = coordinator._listener_manager.schedule_hourly_tick.call_args.args[1]  # noqa: SLF001
    assert point_in_time > before


@pytest.mark.unit
def test_deferred_tick_fires_right_after_cycle() -> None:
    """The cycle re-arms a deferred tick for now instead of the next hour."""
    coordinator = _coordinator()
    coordinator._hourly_tick_deferred = True  # noqa: SLF001

    coordinator._schedule_hourly_tick()  # noqa: SLF001

    point_in_time = coordinator._listener_manager.schedule_hourly_tick.call_args.args[1]  # noqa: SLF001
    assert point_in_time <= dt_util.utcnow()
    assert not coordinator._hourly_tick_deferred  # noqa: SLF001

    coordinator._schedule_hourly_tick()  # noqa: SLF001

    point_in_time = coordinator._listener_manager.schedule_hourly_tick.call_args.args[1]  # noqa: SLF001
    assert point_in_time.minute == 0
    assert point_in_time > dt_util.utcnow()


@pytest.mark.unit
def test_hourly_tick_ignored_after_shutdown() -> None:
    """A tick firing during shutdown does nothing."""
    coordinator = _coordinator()
    coordinator._is_shutting_down = True  # noqa: SLF001
    coordinator.async_update_listeners = MagicMock()

    coordinator._handle_hourly_tick()  # noqa: SLF001

    coordinator.async_update_listeners.assert_not_called()


@pytest.mark.unit
def test_late_subscriber_requests_refresh() -> None:
    """A component consumed after the first publish triggers a refresh."""
    coordinator = _coordinator()
    coordinator._listener_manager.is_consumed.return_value = False  # noqa: SLF001
    coordinator.async_request_refresh = MagicMock()
    coordinator.data = {}

    coordinator.async_add_component_listener(COMPONENT_NET_TARIFF)

    coordinator._listener_manager.async_add_component_listener.assert_called_once_with(  # noqa: SLF001
        (COMPONENT_NET_TARIFF,)
    )
    coordinator.hass.async_create_task.assert_called_once()


@pytest.mark.unit
def test_subscriber_before_first_refresh_does_not_request() -> None:
    """Subscriptions during platform setup wait for the first refresh."""
    coordinator = _coordinator()
    coordinator._listener_manager.is_consumed.return_value = False  # noqa: SLF001

    coordinator.async_add_component_listener(ALL_COMPONENTS)

    coordinator.hass.async_create_task.assert_not_called()


# =============================================================================
# Queries
# =============================================================================


@pytest.mark.unit
@pytest.mark.asyncio
async def test_get_spot_prices_example_values() -> None:
    """Spot price queries return cached per-kWh values by UTC hour."""
    coordinator = _coordinator(EXAMPLE_NOW)
    hour_12 = datetime(2023, 2, 4, 12, 0, tzinfo=UTC)
    hour_16 = datetime(2023, 2, 4, 16, 0, tzinfo=UTC)
    coordinator.cache.put(COMPONENT_SPOT_PRICE, {hour_12: SPOT_AT_12, hour_16: SPOT_AT_16})

    prices = await coordinator.async_get_prices({PriceElement.SPOT_PRICE})

    assert prices == {hour_12: SPOT_AT_12, hour_16: SPOT_AT_16}
    coordinator._data_fetcher.async_fetch_spot_prices.assert_not_called()  # noqa: SLF001


@pytest.mark.unit
@pytest.mark.asyncio
async def test_get_prices_sums_all_elements() -> None:
    """Omitting elements sums every component hour by hour."""
    coordinator = _coordinator(EXAMPLE_NOW)
    hour = datetime(2023, 2, 4, 12, 0, tzinfo=UTC)
    later = datetime(2023, 2, 4, 13, 0, tzinfo=UTC)
    coordinator.cache.put(COMPONENT_SPOT_PRICE, {hour: Decimal("1.0"), later: Decimal("2.0")})
    coordinator.cache.put(COMPONENT_NET_TARIFF, {hour: Decimal("0.1")})
    coordinator.cache.put(COMPONENT_SYSTEM_TARIFF, {hour: Decimal("0.01")})
    coordinator.cache.put(COMPONENT_ELECTRICITY_TAX, {hour: Decimal("0.001")})
    coordinator.cache.put(COMPONENT_TRANSMISSION_NET_TARIFF, {later: Decimal("0.5")})

    prices = await coordinator.async_get_prices()

    assert prices == {hour: Decimal("1.111"), later: Decimal("2.5")}
    assert list(prices) == [hour, later]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_get_prices_refuses_mixed_currency() -> None:
    """Spot prices in EUR cannot be added to DKK tariffs."""
    coordinator = _coordinator(EXAMPLE_NOW, currency="EUR")
    coordinator.cache.put(COMPONENT_SPOT_PRICE, _hours(datetime(2023, 2, 4, 12, 0, tzinfo=UTC), 2))

    assert await coordinator.async_get_prices({PriceElement.SPOT_PRICE, PriceElement.NET_TARIFF}) == {}
    assert await coordinator.async_get_prices() == {}
    assert len(await coordinator.async_get_prices({PriceElement.SPOT_PRICE})) == 2


@pytest.mark.unit
@pytest.mark.asyncio
async def test_empty_component_fetches_once_without_touching_retry_state() -> None:
    """Reading an empty series downloads directly and leaves the retry policy alone."""
    coordinator = _coordinator()
    hour = _live_current_hour()

    async def fake_fetch() -> int:
        coordinator.cache.put(COMPONENT_SPOT_PRICE, {hour: Decimal("0.5")})
        return 1

    coordinator._data_fetcher.async_fetch_spot_prices.side_effect = fake_fetch  # noqa: SLF001
    policy = coordinator.retry_policy

    prices = await coordinator.async_get_spot_prices()

    assert prices == {hour: Decimal("0.5")}
    assert coordinator.retry_policy is policy
    coordinator._listener_manager.schedule_refresh.assert_not_called()  # noqa: SLF001


@pytest.mark.unit
@pytest.mark.asyncio
async def test_read_failure_returns_cached(caplog: pytest.LogCaptureFixture) -> None:
    """Download failures on read are logged and yield what is cached."""
    coordinator = _coordinator()
    coordinator._data_fetcher.async_download_price_lists.side_effect = (  # noqa: SLF001
        EnergiDataServiceApiClientCommunicationError("down")
    )

    assert await coordinator.async_get_net_tariffs() == {}
    assert "Error retrieving net_tariff" in caplog.text


@pytest.mark.unit
@pytest.mark.asyncio
async def test_calculate_price_missing_arguments_is_zero() -> None:
    """Missing start, end or power yields zero without reading prices."""
    coordinator = _coordinator(EXAMPLE_NOW)
    coordinator.async_get_prices = AsyncMock()

    assert await coordinator.async_calculate_price(None, EXAMPLE_NOW, 100) == Decimal(0)
    assert await coordinator.async_calculate_price(EXAMPLE_NOW, None, 100) == Decimal(0)
    assert await coordinator.async_calculate_price(EXAMPLE_NOW, EXAMPLE_NOW, None) == Decimal(0)
    coordinator.async_get_prices.assert_not_called()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_calculate_price_integrates_all_elements() -> None:
    """The cost integrates the summed price of all elements."""
    coordinator = _coordinator(EXAMPLE_NOW)
    coordinator.async_get_prices = AsyncMock(
        return_value={
            datetime(2023, 2, 4, 15, 0, tzinfo=UTC): Decimal("1.708765039"),
            datetime(2023, 2, 4, 16, 0, tzinfo=UTC): Decimal("2.443870054"),
        }
    )

    cost = await coordinator.async_calculate_price(
        datetime(2023, 2, 4, 15, 30, tzinfo=UTC),
        datetime(2023, 2, 4, 16, 30, tzinfo=UTC),
        150,
    )

    assert cost == Decimal("0.311447631975000000")


# =============================================================================
# Shutdown
# =============================================================================


@pytest.mark.unit
@pytest.mark.asyncio
async def test_shutdown_cancels_timers_and_clears_cache() -> None:
    """Shutdown releases both timers and drops cached prices."""
    coordinator = _coordinator(EXAMPLE_NOW)
    coordinator.cache.put(COMPONENT_SPOT_PRICE, _hours(datetime(2023, 2, 4, 12, 0, tzinfo=UTC), 3))

    with patch.object(DataUpdateCoordinator, "async_shutdown", AsyncMock()) as base_shutdown:
        await coordinator.async_shutdown()

    coordinator._listener_manager.cancel_timers.assert_called_once()  # noqa: SLF001
    coordinator._data_fetcher.clear.assert_called_once()  # noqa: SLF001
    assert coordinator.cache.components == []
    assert coordinator._is_shutting_down  # noqa: SLF001
    base_shutdown.assert_awaited_once()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_shutdown_cancels_in_flight_cycle() -> None:
    """A running refresh cycle is cancelled and does not reschedule."""
    coordinator = _coordinator()
    started = asyncio.Event()

    async def slow_fetch() -> bool:
        started.set()
        await asyncio.sleep(3600)
        return True

    coordinator._data_fetcher.async_update_spot_prices_if_consumed.side_effect = slow_fetch  # noqa: SLF001
    cycle = asyncio.create_task(coordinator._async_update_data())  # noqa: SLF001
    await started.wait()

    with patch.object(DataUpdateCoordinator, "async_shutdown", AsyncMock()):
        await coordinator.async_shutdown()

    with pytest.raises(asyncio.CancelledError):
        await cycle
    coordinator._listener_manager.schedule_refresh.assert_not_called()  # noqa: SLF001


@pytest.mark.unit
def test_refresh_timer_ignored_after_shutdown() -> None:
    """Timer #1 firing during shutdown starts no cycle."""
    coordinator = _coordinator()
    coordinator._is_shutting_down = True  # noqa: SLF001

    coordinator._handle_refresh_timer()  # noqa: SLF001

    coordinator.hass.async_create_task.assert_not_called()
