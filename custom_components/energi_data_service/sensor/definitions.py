"""
Sensor entity definitions for Energi Data Service.

Sensor definitions are declarative and independent of the implementation
logic. Organization:
    1. Current value: one sensor per price component for the current hour
    2. Future prices: the hourly price curve as attribute
    3. Diagnostic: API call metadata and refresh schedule
"""

from __future__ import annotations

from homeassistant.components.sensor import (
    SensorDeviceClass,
    SensorEntityDescription,
    SensorStateClass,
)
from homeassistant.const import EntityCategory

from custom_components.energi_data_service.const import (
    ALL_COMPONENTS,
    COMPONENT_ELECTRICITY_TAX,
    COMPONENT_NET_TARIFF,
    COMPONENT_SPOT_PRICE,
    COMPONENT_SYSTEM_TARIFF,
    COMPONENT_TRANSMISSION_NET_TARIFF,
)

KEY_HOURLY_PRICES = "hourly_prices"
KEY_REMAINING_CALLS = "remaining_calls"
KEY_TOTAL_CALLS = "total_calls"
KEY_LAST_CALL = "last_call"
KEY_NEXT_CALL = "next_call"

# ----------------------------------------------------------------------------
# 1. CURRENT VALUE SENSORS (key == cache component)
# ----------------------------------------------------------------------------
# Value: coordinator.data["current"][component], VAT-adjusted when enabled

CURRENT_VALUE_SENSORS = (
    SensorEntityDescription(
        key=COMPONENT_SPOT_PRICE,
        translation_key=COMPONENT_SPOT_PRICE,
        name="Spot Price",
        icon="mdi:flash",
        device_class=SensorDeviceClass.MONETARY,
        state_class=None,  # MONETARY requires TOTAL or None
        suggested_display_precision=4,
    ),
    SensorEntityDescription(
        key=COMPONENT_NET_TARIFF,
        translation_key=COMPONENT_NET_TARIFF,
        name="Net Tariff",
        icon="mdi:transmission-tower",
        device_class=SensorDeviceClass.MONETARY,
        state_class=None,
        suggested_display_precision=4,
    ),
    SensorEntityDescription(
        key=COMPONENT_SYSTEM_TARIFF,
        translation_key=COMPONENT_SYSTEM_TARIFF,
        name="System Tariff",
        icon="mdi:transmission-tower",
        device_class=SensorDeviceClass.MONETARY,
        state_class=None,
        suggested_display_precision=4,
    ),
    SensorEntityDescription(
        key=COMPONENT_ELECTRICITY_TAX,
        translation_key=COMPONENT_ELECTRICITY_TAX,
        name="Electricity Tax",
        icon="mdi:bank",
        device_class=SensorDeviceClass.MONETARY,
        state_class=None,
        suggested_display_precision=4,
    ),
    SensorEntityDescription(
        key=COMPONENT_TRANSMISSION_NET_TARIFF,
        translation_key=COMPONENT_TRANSMISSION_NET_TARIFF,
        name="Transmission Net Tariff",
        icon="mdi:transmission-tower",
        device_class=SensorDeviceClass.MONETARY,
        state_class=None,
        suggested_display_precision=4,
    ),
)

# ----------------------------------------------------------------------------
# 2. FUTURE PRICES SENSOR
# ----------------------------------------------------------------------------
# State: number of future hours; attribute "prices" holds the curve

FUTURE_PRICE_SENSORS = (
    SensorEntityDescription(
        key=KEY_HOURLY_PRICES,
        translation_key=KEY_HOURLY_PRICES,
        name="Hourly Prices",
        icon="mdi:chart-timeline-variant",
        state_class=SensorStateClass.MEASUREMENT,
    ),
)

# ----------------------------------------------------------------------------
# 3. DIAGNOSTIC SENSORS
# ----------------------------------------------------------------------------

DIAGNOSTIC_SENSORS = (
    SensorEntityDescription(
        key=KEY_REMAINING_CALLS,
        translation_key=KEY_REMAINING_CALLS,
        name="Remaining Calls",
        icon="mdi:counter",
        state_class=SensorStateClass.MEASUREMENT,
        entity_category=EntityCategory.DIAGNOSTIC,
    ),
    SensorEntityDescription(
        key=KEY_TOTAL_CALLS,
        translation_key=KEY_TOTAL_CALLS,
        name="Total Calls",
        icon="mdi:counter",
        state_class=SensorStateClass.MEASUREMENT,
        entity_category=EntityCategory.DIAGNOSTIC,
    ),
    SensorEntityDescription(
        key=KEY_LAST_CALL,
        translation_key=KEY_LAST_CALL,
        name="Last Call",
        icon="mdi:clock-check",
        device_class=SensorDeviceClass.TIMESTAMP,
        state_class=None,  # Timestamps: no statistics
        entity_category=EntityCategory.DIAGNOSTIC,
    ),
    SensorEntityDescription(
        key=KEY_NEXT_CALL,
        translation_key=KEY_NEXT_CALL,
        name="Next Call",
        icon="mdi:clock-outline",
        device_class=SensorDeviceClass.TIMESTAMP,
        state_class=None,
        entity_category=EntityCategory.DIAGNOSTIC,
    ),
)

# ----------------------------------------------------------------------------
# COMBINED SENSOR DEFINITIONS
# ----------------------------------------------------------------------------

ENTITY_DESCRIPTIONS = (
    *CURRENT_VALUE_SENSORS,
    *FUTURE_PRICE_SENSORS,
    *DIAGNOSTIC_SENSORS,
)

# Components each sensor consumes while it is added to Home Assistant
CONSUMED_COMPONENTS: dict[str, tuple[str, ...]] = {
    **{description.key: (description.key,) for description in CURRENT_VALUE_SENSORS},
    KEY_HOURLY_PRICES: ALL_COMPONENTS,
}
