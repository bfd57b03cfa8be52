"""Record types returned by the Energi Data Service API client."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime
    from decimal import Decimal


@dataclass(frozen=True)
class SpotPriceRecord:
    """One hourly spot price from the Elspotprices dataset (price per MWh)."""

    hour: datetime
    price: Decimal


@dataclass(frozen=True)
class TariffRecord:
    """
    One Datahub price list record.

    valid_from and valid_to are naive local date-times in the Datahub time zone.
    valid_to is None for open-ended records. prices holds Price1..PriceN in order,
    where sub-period i nominally covers local hour i of the validity day. Entries
    may be None; Price1 then applies.
    """

    valid_from: datetime
    valid_to: datetime | None
    charge_type_code: str
    prices: tuple[Decimal | None, ...] = field(default_factory=tuple)

    def price_for_hour(self, index: int) -> Decimal | None:
        """Return the price for the hour index of a validity day, or None when not published."""
        if index >= len(self.prices):
            return None
        price = self.prices[index]
        if price is None and self.prices:
            return self.prices[0]
        return price
