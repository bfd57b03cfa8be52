"""Constants for the Energi Data Service integration."""

import logging
from datetime import date, time
from decimal import Decimal
from zoneinfo import ZoneInfo

from homeassistant.const import CURRENCY_EURO

DOMAIN = "energi_data_service"
LOGGER = logging.getLogger(__package__)

CONF_PRICE_AREA = "price_area"
CONF_CURRENCY = "currency"
CONF_GRID_COMPANY_GLN = "grid_company_gln"
CONF_ENERGINET_GLN = "energinet_gln"
CONF_INCLUDE_VAT = "include_vat"
CONF_NET_TARIFF_CHARGE_TYPE_CODES = "net_tariff_charge_type_codes"
CONF_NET_TARIFF_NOTES = "net_tariff_notes"
CONF_NET_TARIFF_START = "net_tariff_start"

ATTRIBUTION = "Data provided by Energi Data Service"

# Integration name should match manifest.json
DEFAULT_NAME = "Energi Data Service"

CURRENCY_DKK = "DKK"
CURRENCY_EUR = CURRENCY_EURO
SUPPORTED_CURRENCIES = (CURRENCY_DKK, CURRENCY_EUR)
# Tariffs are only published in DKK, so sums involving spot prices require DKK
PRIMARY_CURRENCY = CURRENCY_DKK

PRICE_AREAS = ("DK1", "DK2", "DE", "NO2", "SE3", "SE4", "SYSTEM")

DEFAULT_PRICE_AREA = "DK1"
DEFAULT_CURRENCY = CURRENCY_DKK
DEFAULT_GRID_COMPANY_GLN = ""
DEFAULT_ENERGINET_GLN = "5790000432752"
DEFAULT_INCLUDE_VAT = False

# Time zones used by Datahub and Nord Pool for publishing
DATAHUB_TIMEZONE = ZoneInfo("CET")
NORD_POOL_TIMEZONE = ZoneInfo("CET")

# Spot prices for tomorrow are published around this time (Nord Pool zone)
DAILY_REFRESH_TIME_CET = time(13, 0)

# Energinet tariffs before this date are irrelevant for current pricing
ENERGINET_CUTOFF_DATE = date(2023, 1, 1)

# Fewer spot price records than this means tomorrow's prices are not published yet
MINIMUM_SPOT_PRICE_RECORDS = 13

PROPERTY_DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"

# VAT multipliers keyed by Home Assistant country code
VAT_FACTORS: dict[str, Decimal] = {
    "DK": Decimal("1.25"),
    "NO": Decimal("1.25"),
    "SE": Decimal("1.25"),
    "DE": Decimal("1.19"),
}

# Component identifiers, shared by cache, sensors and services
COMPONENT_SPOT_PRICE = "spot_price"
COMPONENT_NET_TARIFF = "net_tariff"
COMPONENT_SYSTEM_TARIFF = "system_tariff"
COMPONENT_ELECTRICITY_TAX = "electricity_tax"
COMPONENT_TRANSMISSION_NET_TARIFF = "transmission_net_tariff"

TARIFF_COMPONENTS = (
    COMPONENT_NET_TARIFF,
    COMPONENT_SYSTEM_TARIFF,
    COMPONENT_ELECTRICITY_TAX,
    COMPONENT_TRANSMISSION_NET_TARIFF,
)
ALL_COMPONENTS = (COMPONENT_SPOT_PRICE, *TARIFF_COMPONENTS)
