"""Data fetching logic for the coordinator."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING

from custom_components.energi_data_service.api import (
    DatahubTariffFilter,
    DateQueryParameterType,
    EnergiDataServiceConfigurationError,
)
from custom_components.energi_data_service.api.tariff_filter import (
    get_electricity_tax,
    get_system_tariff,
    get_transmission_net_tariff,
    resolve_net_tariff_filter,
)
from custom_components.energi_data_service.const import (
    COMPONENT_ELECTRICITY_TAX,
    COMPONENT_NET_TARIFF,
    COMPONENT_SPOT_PRICE,
    COMPONENT_SYSTEM_TARIFF,
    COMPONENT_TRANSMISSION_NET_TARIFF,
    CONF_CURRENCY,
    CONF_ENERGINET_GLN,
    CONF_GRID_COMPANY_GLN,
    CONF_NET_TARIFF_CHARGE_TYPE_CODES,
    CONF_NET_TARIFF_NOTES,
    CONF_NET_TARIFF_START,
    CONF_PRICE_AREA,
    DATAHUB_TIMEZONE,
    DEFAULT_CURRENCY,
    DEFAULT_ENERGINET_GLN,
    SUPPORTED_CURRENCIES,
    TARIFF_COMPONENTS,
)
from custom_components.energi_data_service.utils.gln import is_empty_or_valid_gln

from .price_list import EnergiDataServicePriceListNormalizer

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry

    from custom_components.energi_data_service.api import EnergiDataServiceApiClient, TariffRecord

    from .cache import EnergiDataServiceTimeSeriesCache
    from .listeners import EnergiDataServiceListenerManager
    from .time_service import EnergiDataServiceTimeService

_LOGGER = logging.getLogger(__name__)

# Elspotprices publishes per MWh, the cache holds per kWh
_MWH_TO_KWH = Decimal(1000)


@dataclass(frozen=True)
class EnergiDataServiceFetchSettings:
    """Identifiers and filters a refresh cycle fetches with."""

    price_area: str
    currency: str
    grid_company_gln: str
    energinet_gln: str
    net_tariff_filter: DatahubTariffFilter

    @classmethod
    def from_config_entry(cls, config_entry: ConfigEntry) -> EnergiDataServiceFetchSettings:
        """Build settings from entry data and options."""
        data = config_entry.data
        options = config_entry.options
        grid_company_gln = (data.get(CONF_GRID_COMPANY_GLN) or "").strip()
        return cls(
            price_area=(data.get(CONF_PRICE_AREA) or "").strip(),
            currency=data.get(CONF_CURRENCY, DEFAULT_CURRENCY),
            grid_company_gln=grid_company_gln,
            energinet_gln=(data.get(CONF_ENERGINET_GLN, DEFAULT_ENERGINET_GLN) or "").strip(),
            net_tariff_filter=resolve_net_tariff_filter(
                grid_company_gln,
                charge_type_codes=options.get(CONF_NET_TARIFF_CHARGE_TYPE_CODES),
                notes=options.get(CONF_NET_TARIFF_NOTES),
                start=options.get(CONF_NET_TARIFF_START),
            ),
        )

    def validate(self) -> None:
        """
        Check the required identifiers.

        Raises:
            EnergiDataServiceConfigurationError: Missing price area, unsupported currency or invalid GLN

        """
        if not self.price_area:
            raise EnergiDataServiceConfigurationError(EnergiDataServiceConfigurationError.NO_PRICE_AREA)
        if self.currency not in SUPPORTED_CURRENCIES:
            raise EnergiDataServiceConfigurationError(
                EnergiDataServiceConfigurationError.INVALID_CURRENCY.format(currency=self.currency)
            )
        if not is_empty_or_valid_gln(self.grid_company_gln):
            raise EnergiDataServiceConfigurationError(
                EnergiDataServiceConfigurationError.INVALID_GRID_COMPANY_GLN.format(gln=self.grid_company_gln)
            )
        if not is_empty_or_valid_gln(self.energinet_gln):
            raise EnergiDataServiceConfigurationError(
                EnergiDataServiceConfigurationError.INVALID_ENERGINET_GLN.format(gln=self.energinet_gln)
            )

    def gln_for(self, component: str) -> str:
        """Return the charge owner GLN of a tariff component."""
        if component == COMPONENT_NET_TARIFF:
            return self.grid_company_gln
        return self.energinet_gln

    def filter_for(self, component: str) -> DatahubTariffFilter:
        """Return the Datahub filter of a tariff component."""
        if component == COMPONENT_NET_TARIFF:
            return self.net_tariff_filter
        if component == COMPONENT_SYSTEM_TARIFF:
            return get_system_tariff()
        if component == COMPONENT_ELECTRICITY_TAX:
            return get_electricity_tax()
        if component == COMPONENT_TRANSMISSION_NET_TARIFF:
            return get_transmission_net_tariff()
        msg = f"Not a tariff component: {component}"
        raise ValueError(msg)


class EnergiDataServiceDataFetcher:
    """
    Downloads components that are consumed and not covered, and feeds the cache.

    Spot prices are fetched on every cycle while consumed. Tariff price lists are
    kept as raw records per component and only downloaded again once no record
    reaches past the next Datahub-zone midnight. Records are re-normalized on
    every cycle, so the hourly window follows the clock.
    """

    def __init__(  # noqa: PLR0913
        self,
        api: EnergiDataServiceApiClient,
        cache: EnergiDataServiceTimeSeriesCache,
        listeners: EnergiDataServiceListenerManager,
        settings: EnergiDataServiceFetchSettings,
        log_prefix: str,
        time: EnergiDataServiceTimeService,
    ) -> None:
        """Initialize the data fetcher."""
        self.api = api
        self._cache = cache
        self._listeners = listeners
        self.settings = settings
        self._log_prefix = log_prefix
        self.time: EnergiDataServiceTimeService = time

        self._normalizer = EnergiDataServicePriceListNormalizer(DATAHUB_TIMEZONE)
        self._tariff_records: dict[str, list[TariffRecord]] = {}

    def _log(self, level: str, message: str, *args: object, **kwargs: object) -> None:
        """Log with coordinator-specific prefix."""
        prefixed_message = f"{self._log_prefix} {message}"
        getattr(_LOGGER, level)(prefixed_message, *args, **kwargs)

    async def async_update_spot_prices_if_consumed(self) -> bool:
        """
        Fetch spot prices when at least one subscriber consumes them.

        Spot prices already cached through the end of tomorrow are not
        downloaded again.

        Returns:
            True if spot prices are consumed, False otherwise

        """
        if not self._listeners.is_consumed(COMPONENT_SPOT_PRICE):
            self._log("debug", "Spot prices not consumed, skipping download")
            return False
        if self._cache.is_covered_through_tomorrow(COMPONENT_SPOT_PRICE):
            self._log("debug", "Spot prices cached through tomorrow, skipping download")
            return True
        await self.async_fetch_spot_prices()
        return True

    async def async_fetch_spot_prices(self) -> int:
        """
        Fetch spot prices and replace the cached series.

        With the current hour (or a day of history) already cached only forward
        data is requested and merged into the cached series. Otherwise the
        request starts at the beginning of the day and replaces the series.

        Returns:
            Number of received records

        """
        forward_only = self._cache.has_current_hour(COMPONENT_SPOT_PRICE) or self._cache.has_historic_coverage(
            COMPONENT_SPOT_PRICE
        )
        start = DateQueryParameterType.UTC_NOW if forward_only else DateQueryParameterType.START_OF_DAY
        records = await self.api.async_get_spot_prices(
            self.settings.price_area,
            self.settings.currency,
            start,
        )
        prices = {record.hour: record.price / _MWH_TO_KWH for record in records}
        if forward_only:
            # A utcnow response may begin after the current hour starts
            prices = {**self._cache.get(COMPONENT_SPOT_PRICE), **prices}
        self._cache.put(COMPONENT_SPOT_PRICE, prices)
        self._log("debug", "Received %d spot prices (start=%s)", len(records), start)
        return len(records)

    async def async_update_tariffs_if_consumed(self) -> None:
        """Download every consumed tariff component whose records are no longer valid through tomorrow."""
        for component in TARIFF_COMPONENTS:
            if not self._listeners.is_consumed(component):
                continue
            if not await self.async_download_price_lists(component):
                self._log("debug", "Cached %s records still valid, skipping download", component)

    async def async_download_price_lists(self, component: str) -> bool:
        """
        Download price list records for a tariff component.

        Returns:
            False if the cached records are still valid and nothing was requested,
            True otherwise (including an empty GLN, which skips the request)

        """
        if self.is_tariff_covered_through_tomorrow(component):
            return False

        gln = self.settings.gln_for(component)
        if not gln:
            self._log("debug", "No GLN configured for %s, skipping download", component)
            return True

        local_hour_start = self.time.local_hour_start(DATAHUB_TIMEZONE)
        records = await self.api.async_get_datahub_price_lists(gln, self.settings.filter_for(component))
        self._tariff_records[component] = [
            record for record in records if record.valid_to is None or record.valid_to >= local_hour_start
        ]
        self._log(
            "debug",
            "Received %d %s records, kept %d",
            len(records),
            component,
            len(self._tariff_records[component]),
        )
        return True

    def is_tariff_covered_through_tomorrow(self, component: str) -> bool:
        """Return True if any cached record is valid past the next Datahub-zone midnight."""
        local_midnight = self.time.local_midnight(DATAHUB_TIMEZONE, offset_days=1)
        return any(
            record.valid_to is None or record.valid_to > local_midnight
            for record in self._tariff_records.get(component, ())
        )

    def normalize_tariff(self, component: str) -> None:
        """Replace the cached hourly series of a tariff component from its records."""
        start = self.time.local_hour_start(DATAHUB_TIMEZONE)
        end = self.time.local_midnight(DATAHUB_TIMEZONE, offset_days=2)
        self._cache.put(
            component,
            self._normalizer.to_hourly(self._tariff_records.get(component, ()), start=start, end=end),
        )

    def normalize_tariffs(self) -> None:
        """Normalize all tariff components."""
        for component in TARIFF_COMPONENTS:
            self.normalize_tariff(component)

    def tariff_record_counts(self) -> dict[str, int]:
        """Return the number of cached records per tariff component."""
        return {component: len(self._tariff_records.get(component, ())) for component in TARIFF_COMPONENTS}

    def clear(self) -> None:
        """Drop all cached tariff records."""
        self._tariff_records = {}
