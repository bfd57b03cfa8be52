"""Price elements selectable in price queries."""

from __future__ import annotations

from enum import Enum

from .const import (
    COMPONENT_ELECTRICITY_TAX,
    COMPONENT_NET_TARIFF,
    COMPONENT_SPOT_PRICE,
    COMPONENT_SYSTEM_TARIFF,
    COMPONENT_TRANSMISSION_NET_TARIFF,
)


class UnknownPriceElementError(ValueError):
    """Raised when a price element name has no corresponding element."""

    UNKNOWN_ELEMENT = "'{name}' has no corresponding value. Accepted values: {accepted}"


class PriceElement(Enum):
    """Price element, identified by its query name and backed by a cache component."""

    SPOT_PRICE = ("spotprice", COMPONENT_SPOT_PRICE)
    NET_TARIFF = ("nettariff", COMPONENT_NET_TARIFF)
    SYSTEM_TARIFF = ("systemtariff", COMPONENT_SYSTEM_TARIFF)
    ELECTRICITY_TAX = ("electricitytax", COMPONENT_ELECTRICITY_TAX)
    TRANSMISSION_NET_TARIFF = ("transmissionnettariff", COMPONENT_TRANSMISSION_NET_TARIFF)

    def __init__(self, element_name: str, component: str) -> None:
        """Store query name and cache component."""
        self.element_name = element_name
        self.component = component

    def __str__(self) -> str:
        """Return the query name."""
        return self.element_name

    @classmethod
    def parse(cls, name: str) -> PriceElement:
        """
        Parse a price element name (case-insensitive).

        Raises:
            UnknownPriceElementError: Name does not match any element

        """
        normalized = name.strip().lower()
        for element in cls:
            if element.element_name == normalized:
                return element
        raise UnknownPriceElementError(
            UnknownPriceElementError.UNKNOWN_ELEMENT.format(
                name=name,
                accepted=", ".join(str(element) for element in cls),
            )
        )

    @classmethod
    def parse_list(cls, names: str) -> frozenset[PriceElement]:
        """
        Parse a comma-separated list of price element names.

        Raises:
            UnknownPriceElementError: Any name does not match an element

        """
        return frozenset(cls.parse(name) for name in names.split(","))
