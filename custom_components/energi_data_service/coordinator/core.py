"""Refresh coordinator for Energi Data Service prices."""

from __future__ import annotations

import asyncio
import logging
from datetime import time
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from homeassistant.core import CALLBACK_TYPE, HomeAssistant, callback
from homeassistant.helpers.update_coordinator import DataUpdateCoordinator
from homeassistant.util import dt as dt_util

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime

    from homeassistant.config_entries import ConfigEntry

    from custom_components.energi_data_service.api import EnergiDataServiceApiClient

from custom_components.energi_data_service.api import (
    EnergiDataServiceApiClientError,
    EnergiDataServiceConfigurationError,
    EnergiDataServiceDataIncompleteError,
)
from custom_components.energi_data_service.const import (
    ALL_COMPONENTS,
    COMPONENT_ELECTRICITY_TAX,
    COMPONENT_NET_TARIFF,
    COMPONENT_SPOT_PRICE,
    COMPONENT_SYSTEM_TARIFF,
    COMPONENT_TRANSMISSION_NET_TARIFF,
    CONF_INCLUDE_VAT,
    DAILY_REFRESH_TIME_CET,
    DATAHUB_TIMEZONE,
    DEFAULT_INCLUDE_VAT,
    DOMAIN,
    MINIMUM_SPOT_PRICE_RECORDS,
    NORD_POOL_TIMEZONE,
    PRIMARY_CURRENCY,
    TARIFF_COMPONENTS,
)
from custom_components.energi_data_service.price_element import PriceElement
from custom_components.energi_data_service.utils.price import (
    apply_vat,
    calculate_cost,
    get_vat_factor,
    merge_price_maps,
)

from . import retry
from .cache import EnergiDataServiceTimeSeriesCache
from .constants import HOURLY_TICK_DEFER_DELAY, HOURLY_TICK_EPSILON
from .data_fetching import EnergiDataServiceDataFetcher, EnergiDataServiceFetchSettings
from .listeners import EnergiDataServiceListenerManager
from .time_service import EnergiDataServiceTimeService

_LOGGER = logging.getLogger(__name__)

# Keys of coordinator.data
DATA_CURRENT = "current"
DATA_FUTURE_PRICES = "future_prices"
DATA_RETRY_POLICY = "retry_policy"
DATA_NEXT_CALL = "next_call"

# Record keys of the future price curve
FUTURE_HOUR_START = "hourStart"
FUTURE_SPOT_PRICE = "spotPrice"
FUTURE_SPOT_PRICE_CURRENCY = "spotPriceCurrency"
FUTURE_COMPONENT_KEYS = {
    COMPONENT_NET_TARIFF: "netTariff",
    COMPONENT_SYSTEM_TARIFF: "systemTariff",
    COMPONENT_ELECTRICITY_TAX: "electricityTax",
    COMPONENT_TRANSMISSION_NET_TARIFF: "transmissionNetTariff",
}


# =============================================================================
# TIMER SYSTEM - Two independent timers:
# =============================================================================
#
# Timer #1: Refresh cycle (one-shot, re-armed by every cycle)
#   - Trigger: _handle_refresh_timer() -> async_refresh() -> _async_update_data()
#   - Downloads consumed components that are not covered, normalizes tariffs,
#     publishes, classifies the outcome into a RetryPolicy and re-arms itself
#     at the policy's delay.
#   - No update_interval: DataUpdateCoordinator never polls on its own.
#
# Timer #2: Hourly tick (one-shot at next UTC hour + 1 ms, re-armed on every tick)
#   - Trigger: _handle_hourly_tick()
#   - Evicts past hours and republishes current values from the cache.
#   - Never fetches and never touches the RetryPolicy.
#
# Only one refresh cycle runs at a time (_cycle_lock). Shutdown cancels both
# timers and the running cycle; a cancelled cycle does not re-arm Timer #1.
# =============================================================================


class EnergiDataServiceDataUpdateCoordinator(DataUpdateCoordinator[dict[str, Any]]):
    """Coordinator owning the price cache, the retry state and both timers."""

    def __init__(
        self,
        hass: HomeAssistant,
        config_entry: ConfigEntry,
        api_client: EnergiDataServiceApiClient,
    ) -> None:
        """Initialize the coordinator."""
        super().__init__(
            hass,
            _LOGGER,
            config_entry=config_entry,
            name=DOMAIN,
            update_interval=None,
        )

        self.api = api_client

        # Log prefix for identifying this coordinator instance
        self._log_prefix = f"[{config_entry.title}]"

        # Single source of truth for "now" within one cycle or tick
        self.time = EnergiDataServiceTimeService()

        self.settings = EnergiDataServiceFetchSettings.from_config_entry(config_entry)

        self.cache = EnergiDataServiceTimeSeriesCache(
            time=self.time,
            timezones={
                COMPONENT_SPOT_PRICE: NORD_POOL_TIMEZONE,
                **dict.fromkeys(TARIFF_COMPONENTS, DATAHUB_TIMEZONE),
            },
        )
        self._listener_manager = EnergiDataServiceListenerManager(hass, self._log_prefix)
        self._data_fetcher = EnergiDataServiceDataFetcher(
            api=self.api,
            cache=self.cache,
            listeners=self._listener_manager,
            settings=self.settings,
            log_prefix=self._log_prefix,
            time=self.time,
        )

        # Retry state, only written at the end of a refresh cycle
        self.retry_policy: retry.RetryPolicy = retry.initial()
        self.next_call: datetime | None = None
        self.last_error: Exception | None = None

        self._cycle_lock = asyncio.Lock()
        self._cycle_task: asyncio.Task[Any] | None = None
        self._is_shutting_down = False
        # Set when Timer #2 fired during a refresh cycle; the cycle re-arms it immediately
        self._hourly_tick_deferred = False

    def _log(self, level: str, message: str, *args: Any, **kwargs: Any) -> None:
        """Log with coordinator-specific prefix."""
        prefixed_message = f"{self._log_prefix} {message}"
        getattr(_LOGGER, level)(prefixed_message, *args, **kwargs)

    def _update_time(self, time_service: EnergiDataServiceTimeService) -> None:
        """Hand a fresh time service to the coordinator and its helpers."""
        self.time = time_service
        self.cache.time = time_service
        self._data_fetcher.time = time_service

    @property
    def currency(self) -> str:
        """Return the configured spot price currency."""
        return self.settings.currency

    @property
    def include_vat(self) -> bool:
        """Return True if current values are published including VAT."""
        return bool(self.config_entry.options.get(CONF_INCLUDE_VAT, DEFAULT_INCLUDE_VAT))

    @property
    def vat_factor(self) -> Decimal:
        """Return the VAT factor for the configured country."""
        return get_vat_factor(self.hass.config.country)

    @callback
    def async_add_component_listener(self, components: str | Iterable[str]) -> CALLBACK_TYPE:
        """
        Mark one or more components as consumed.

        Entities call this when they are added to Home Assistant. Only consumed
        components are downloaded by the refresh cycle. A component that becomes
        consumed after the first refresh (e.g. an entity enabled later) triggers
        a refresh request.

        Returns:
            Callback that removes the subscription

        """
        components = (components,) if isinstance(components, str) else tuple(components)
        newly_consumed = [component for component in components if not self.is_consumed(component)]
        remove_listener = self._listener_manager.async_add_component_listener(components)

        if newly_consumed and self.data is not None and not self._is_shutting_down:
            self._log("debug", "Newly consumed components %s, requesting refresh", newly_consumed)
            self.hass.async_create_task(self.async_request_refresh())

        return remove_listener

    def is_consumed(self, component: str) -> bool:
        """Return True if the component has at least one subscriber."""
        return self._listener_manager.is_consumed(component)

    # --- Refresh cycle (Timer #1) ---

    async def _async_update_data(self) -> dict[str, Any]:
        """Run one refresh cycle (first refresh, scheduled refresh or requested refresh)."""
        async with self._cycle_lock:
            self._cycle_task = asyncio.current_task()
            try:
                return await self._async_refresh_cycle()
            finally:
                self._cycle_task = None

    async def _async_refresh_cycle(self) -> dict[str, Any]:
        """
        Download, normalize, publish and reschedule.

        Every failure is classified into a RetryPolicy; nothing but cancellation
        escapes. Cached data from earlier cycles stays in place on failure.
        """
        self._update_time(EnergiDataServiceTimeService())
        self._log("debug", "[Timer #1] Refresh cycle started")

        try:
            self.settings.validate()
            spot_consumed = await self._data_fetcher.async_update_spot_prices_if_consumed()
            await self._data_fetcher.async_update_tariffs_if_consumed()
            if spot_consumed:
                self._verify_spot_price_lookahead()
                policy = retry.at_fixed_time(DAILY_REFRESH_TIME_CET, NORD_POOL_TIMEZONE)
            else:
                policy = retry.at_fixed_time(time.min, dt_util.get_default_time_zone())
            self.last_error = None
        except asyncio.CancelledError:
            self._log("debug", "Refresh cycle cancelled")
            raise
        except EnergiDataServiceDataIncompleteError as err:
            self._log("debug", "%s", err)
            policy = retry.when_expected_spot_price_data_missing(DAILY_REFRESH_TIME_CET, NORD_POOL_TIMEZONE)
            self.last_error = None
        except EnergiDataServiceConfigurationError as err:
            self._log("error", "Configuration error: %s", err)
            policy = retry.from_error(err)
            self.last_error = err
        except EnergiDataServiceApiClientError as err:
            self._log("warning", "Error retrieving prices: %s", err)
            policy = retry.from_error(err)
            self.last_error = err
        except Exception as err:  # noqa: BLE001
            self._log("exception", "Unexpected error during refresh cycle")
            policy = retry.from_error(err)
            self.last_error = err

        # Publish from whatever the cache holds now, then reschedule
        self._data_fetcher.normalize_tariffs()
        data = self._build_data()
        self._reschedule_refresh(policy)
        self._schedule_hourly_tick()

        data[DATA_RETRY_POLICY] = self.retry_policy.describe()
        data[DATA_NEXT_CALL] = self.next_call
        return data

    def _verify_spot_price_lookahead(self) -> None:
        """
        Check that enough future spot price hours are cached.

        Raises:
            EnergiDataServiceDataIncompleteError: Fewer hours than expected after the daily publication

        """
        count = self.cache.future_hours_count(COMPONENT_SPOT_PRICE)
        if count < MINIMUM_SPOT_PRICE_RECORDS:
            raise EnergiDataServiceDataIncompleteError(count, MINIMUM_SPOT_PRICE_RECORDS)

    def _reschedule_refresh(self, policy: retry.RetryPolicy) -> None:
        """Arm Timer #1 from the classified policy, keeping an equal running policy."""
        if policy != self.retry_policy:
            self.retry_policy = policy

        schedule_time = EnergiDataServiceTimeService()
        delay = self.retry_policy.get_duration(schedule_time)
        self.next_call = schedule_time.now() + delay
        self._listener_manager.schedule_refresh(self._handle_refresh_timer, self.next_call)
        self._log(
            "debug",
            "Next refresh in %s at %s (%s)",
            delay,
            self.next_call.isoformat(),
            self.retry_policy.kind,
        )

    @callback
    def _handle_refresh_timer(self, _now: datetime | None = None) -> None:
        """Start a scheduled refresh cycle."""
        if self._is_shutting_down:
            return
        self.hass.async_create_task(self.async_refresh(), f"{DOMAIN} refresh cycle")

    # --- Hourly tick (Timer #2) ---

    def _schedule_hourly_tick(self) -> None:
        """
        Arm Timer #2 at the next clock hour plus a small epsilon.

        A tick deferred by a running refresh cycle is re-armed to fire right away.
        """
        time_service = EnergiDataServiceTimeService()
        if self._hourly_tick_deferred:
            self._hourly_tick_deferred = False
            point_in_time = time_service.now()
        else:
            point_in_time = time_service.next_hour_start() + HOURLY_TICK_EPSILON
        self._listener_manager.schedule_hourly_tick(self._handle_hourly_tick, point_in_time)

    @callback
    def _handle_hourly_tick(self, _now: datetime | None = None) -> None:
        """
        Republish current values without fetching (Timer #2).

        Runs in the event loop without I/O; the cache already holds the data.
        While a refresh cycle is running the tick is deferred, so the cycle
        keeps its reference time. The cycle re-arms it on completion.
        """
        if self._is_shutting_down:
            return
        if self._cycle_task is not None:
            self._log("debug", "[Timer #2] Refresh cycle running, deferring hourly price update")
            self._hourly_tick_deferred = True
            self._listener_manager.schedule_hourly_tick(
                self._handle_hourly_tick,
                EnergiDataServiceTimeService().now() + HOURLY_TICK_DEFER_DELAY,
            )
            return
        self._update_time(EnergiDataServiceTimeService())
        self._log("debug", "[Timer #2] Hourly price update")

        data = self._build_data()
        data[DATA_RETRY_POLICY] = self.retry_policy.describe()
        data[DATA_NEXT_CALL] = self.next_call
        self.data = data
        self.async_update_listeners()

        self._schedule_hourly_tick()

    # --- Publish ---

    def _build_data(self) -> dict[str, Any]:
        """Evict past hours and build current values and the future price curve."""
        self.cache.cleanup()

        factor = self.vat_factor if self.include_vat else None
        current: dict[str, Decimal | None] = {}
        for component in ALL_COMPONENTS:
            value = self.cache.get_current_value(component)
            current[component] = apply_vat(value, factor) if factor is not None else value

        return {
            DATA_CURRENT: current,
            DATA_FUTURE_PRICES: self._build_future_prices(),
        }

    def _build_future_prices(self) -> list[dict[str, Any]]:
        """
        Build the future price curve, one record per cached spot price hour.

        Tariff fields are None when the component has no price for the hour.
        VAT is never applied here.
        """
        tariffs = {component: self.cache.get(component) for component in TARIFF_COMPONENTS}
        records: list[dict[str, Any]] = []
        for hour, spot_price in self.cache.get(COMPONENT_SPOT_PRICE).items():
            record: dict[str, Any] = {
                FUTURE_HOUR_START: _format_instant(hour),
                FUTURE_SPOT_PRICE: float(spot_price),
                FUTURE_SPOT_PRICE_CURRENCY: self.currency,
            }
            for component, key in FUTURE_COMPONENT_KEYS.items():
                value = tariffs[component].get(hour)
                record[key] = float(value) if value is not None else None
            records.append(record)
        return records

    def get_current_value(self, component: str) -> Decimal | None:
        """Return the published value of a component for the current hour."""
        if not self.data:
            return None
        return self.data.get(DATA_CURRENT, {}).get(component)

    # --- Read accessors ---

    async def async_get_component_prices(self, component: str) -> dict[datetime, Decimal]:
        """
        Return a copy of a component's hourly prices.

        An empty series triggers one direct download, regardless of whether the
        component is consumed. That download never changes the retry state.
        Failures are logged and the cached (possibly empty) series is returned.
        """
        if self.cache.is_empty(component):
            # Waits for a running refresh cycle, which keeps its reference time
            async with self._cycle_lock:
                if self.cache.is_empty(component):
                    await self._async_fetch_component(component)

        return self.cache.get(component)

    async def _async_fetch_component(self, component: str) -> None:
        """Download one component directly, logging failures."""
        self._update_time(EnergiDataServiceTimeService())
        try:
            if component == COMPONENT_SPOT_PRICE:
                await self._data_fetcher.async_fetch_spot_prices()
            else:
                await self._data_fetcher.async_download_price_lists(component)
                self._data_fetcher.normalize_tariff(component)
            self.cache.cleanup()
        except EnergiDataServiceApiClientError as err:
            self._log("warning", "Error retrieving %s: %s", component, err)

        return self.cache.get(component)

    async def async_get_spot_prices(self) -> dict[datetime, Decimal]:
        """Return cached spot prices, downloading once if none are cached."""
        return await self.async_get_component_prices(COMPONENT_SPOT_PRICE)

    async def async_get_net_tariffs(self) -> dict[datetime, Decimal]:
        """Return cached net tariffs, downloading once if none are cached."""
        return await self.async_get_component_prices(COMPONENT_NET_TARIFF)

    async def async_get_system_tariffs(self) -> dict[datetime, Decimal]:
        """Return cached system tariffs, downloading once if none are cached."""
        return await self.async_get_component_prices(COMPONENT_SYSTEM_TARIFF)

    async def async_get_electricity_taxes(self) -> dict[datetime, Decimal]:
        """Return cached electricity taxes, downloading once if none are cached."""
        return await self.async_get_component_prices(COMPONENT_ELECTRICITY_TAX)

    async def async_get_transmission_net_tariffs(self) -> dict[datetime, Decimal]:
        """Return cached transmission net tariffs, downloading once if none are cached."""
        return await self.async_get_component_prices(COMPONENT_TRANSMISSION_NET_TARIFF)

    # --- Queries ---

    async def async_get_prices(self, elements: Iterable[PriceElement] | None = None) -> dict[datetime, Decimal]:
        """
        Sum the selected price elements hour by hour.

        Tariffs are published in DKK only, so combining the spot price with any
        other element is refused when the spot price currency is not DKK.

        Args:
            elements: Selected elements; None or empty selects all

        Returns:
            Summed price by UTC hour start, empty when the selection is refused.

        """
        selected = frozenset(elements) if elements else frozenset(PriceElement)

        if (
            PriceElement.SPOT_PRICE in selected
            and len(selected) > 1
            and self.currency != PRIMARY_CURRENCY
        ):
            self._log("warning", "Cannot calculate sum when spot price currency is %s", self.currency)
            return {}

        prices: dict[datetime, Decimal] = {}
        for element in PriceElement:
            if element in selected:
                merge_price_maps(prices, await self.async_get_component_prices(element.component))
        return dict(sorted(prices.items()))

    async def async_calculate_price(
        self,
        start: datetime | None,
        end: datetime | None,
        power: Decimal | float | None,
    ) -> Decimal:
        """
        Calculate the cost of a constant power draw over all price elements.

        Returns zero when start, end or power is missing.
        """
        if start is None or end is None or power is None:
            return Decimal(0)
        prices = await self.async_get_prices()
        return calculate_cost(start, end, power, prices)

    # --- Shutdown ---

    async def async_shutdown(self) -> None:
        """
        Shut down the coordinator.

        Cancels both timers and a running refresh cycle, then drops all cached
        prices. A cancelled cycle does not reschedule.
        """
        self._is_shutting_down = True
        self._listener_manager.cancel_timers()

        task = self._cycle_task
        if task is not None and not task.done() and task is not asyncio.current_task():
            self._log("debug", "Cancelling in-flight refresh cycle")
            task.cancel()

        self.cache.clear()
        self._data_fetcher.clear()
        await super().async_shutdown()


def _format_instant(hour: datetime) -> str:
    """Format a UTC hour start as an ISO-8601 instant (Z suffix)."""
    return hour.astimezone(dt_util.UTC).strftime("%Y-%m-%dT%H:%M:%SZ")
