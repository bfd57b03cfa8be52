"""
Datahub tariff filters.

A filter narrows a DatahubPricelist query to the charges that make up one tariff
component: a set of charge type codes, a set of notes and an optional start
parameter. Empty codes and notes mean "use the pre-configured default filter for
this grid operator"; a non-empty override replaces the default entirely.

Default filters:
- System tariff, electricity tax and transmission net tariff are owned by
  Energinet and share one GLN, distinguished by charge type code and note.
- Net tariffs are owned by the grid company; the filter is looked up by the
  grid company GLN, falling back to the generic "Nettarif C" notes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import date
from enum import StrEnum

from custom_components.energi_data_service.const import ENERGINET_CUTOFF_DATE

_LOGGER = logging.getLogger(__name__)

NOTE_NET_TARIFF_C = "Nettarif C"
NOTE_NET_TARIFF_C_HOUR = "Nettarif C time"
NOTE_SYSTEM_TARIFF = "Systemtarif"
NOTE_ELECTRICITY_TAX = "Elafgift"
NOTE_TRANSMISSION_NET_TARIFF = "Transmissions nettarif"


class DateQueryParameterType(StrEnum):
    """Dynamic start values understood by the API."""

    UTC_NOW = "utcnow"
    START_OF_DAY = "StartOfDay"
    START_OF_MONTH = "StartOfMonth"
    START_OF_YEAR = "StartOfYear"


@dataclass(frozen=True)
class DateQueryParameter:
    """A literal date, a dynamic start value, or nothing."""

    date: date | None = None
    date_type: DateQueryParameterType | None = None

    def __str__(self) -> str:
        """Return the query string representation."""
        if self.date is not None:
            return self.date.isoformat()
        if self.date_type is not None:
            return str(self.date_type)
        return "null"

    @property
    def is_empty(self) -> bool:
        """Return True if no start parameter should be sent."""
        return self.date is None and self.date_type is None

    @classmethod
    def of(cls, value: date | DateQueryParameterType) -> DateQueryParameter:
        """Create a parameter from a date or a dynamic start value."""
        if isinstance(value, DateQueryParameterType):
            return cls(date_type=value)
        return cls(date=value)

    @classmethod
    def parse(cls, value: str | None) -> DateQueryParameter | None:
        """
        Parse a configured start value.

        Accepts an ISO date (YYYY-MM-DD) or one of StartOfDay, StartOfMonth,
        StartOfYear (case-insensitive). Blank input yields EMPTY.

        Returns:
            Parsed parameter, or None if the value is not understood.

        """
        if value is None or not value.strip():
            return EMPTY_DATE_QUERY_PARAMETER
        value = value.strip()
        for date_type in DateQueryParameterType:
            if date_type is not DateQueryParameterType.UTC_NOW and date_type.value.lower() == value.lower():
                return cls(date_type=date_type)
        try:
            return cls(date=date.fromisoformat(value))
        except ValueError:
            return None


EMPTY_DATE_QUERY_PARAMETER = DateQueryParameter()


@dataclass(frozen=True)
class DatahubTariffFilter:
    """Charge type codes, notes and start parameter for a DatahubPricelist query."""

    charge_type_codes: frozenset[str] = field(default_factory=frozenset)
    notes: frozenset[str] = field(default_factory=frozenset)
    start: DateQueryParameter = EMPTY_DATE_QUERY_PARAMETER

    @property
    def has_overrides(self) -> bool:
        """Return True if codes or notes are set."""
        return bool(self.charge_type_codes or self.notes)

    def with_start(self, start: DateQueryParameter) -> DatahubTariffFilter:
        """Return a copy with a different start parameter."""
        return replace(self, start=start)


def _energinet_filter(charge_type_code: str, note: str) -> DatahubTariffFilter:
    return DatahubTariffFilter(
        charge_type_codes=frozenset({charge_type_code}),
        notes=frozenset({note}),
        start=DateQueryParameter.of(ENERGINET_CUTOFF_DATE),
    )


def get_system_tariff() -> DatahubTariffFilter:
    """Return the Energinet system tariff filter."""
    return _energinet_filter("41000", NOTE_SYSTEM_TARIFF)


def get_electricity_tax() -> DatahubTariffFilter:
    """Return the Energinet electricity tax filter."""
    return _energinet_filter("EA-001", NOTE_ELECTRICITY_TAX)


def get_transmission_net_tariff() -> DatahubTariffFilter:
    """Return the Energinet transmission net tariff filter."""
    return _energinet_filter("40000", NOTE_TRANSMISSION_NET_TARIFF)


# Grid company GLN -> (charge type codes, notes)
_NET_TARIFF_FILTERS: dict[str, tuple[frozenset[str], frozenset[str]]] = {
    # Radius Elnet
    "5790000610099": (frozenset({"DT_C_01"}), frozenset({NOTE_NET_TARIFF_C_HOUR})),
    # N1
    "5790001089030": (frozenset({"CD", "CD R"}), frozenset()),
    # Cerius
    "5790000705184": (frozenset({"30TR_C_ET"}), frozenset({NOTE_NET_TARIFF_C_HOUR})),
    # Konstant
    "5790000704842": (frozenset({"151-NT01T", "151-NRA04T"}), frozenset()),
    # Trefor El-net
    "5790000392261": (frozenset({"C"}), frozenset({NOTE_NET_TARIFF_C_HOUR})),
}


def get_net_tariff_by_gln(gln: str) -> DatahubTariffFilter:
    """
    Return the default net tariff filter for a grid company.

    Unknown grid companies get a filter on the generic C-customer notes only.
    """
    start = DateQueryParameter.of(DateQueryParameterType.START_OF_DAY)
    if gln in _NET_TARIFF_FILTERS:
        charge_type_codes, notes = _NET_TARIFF_FILTERS[gln]
        return DatahubTariffFilter(charge_type_codes=charge_type_codes, notes=notes, start=start)

    _LOGGER.debug("No default net tariff filter for GLN %s, using generic notes", gln)
    return DatahubTariffFilter(
        notes=frozenset({NOTE_NET_TARIFF_C, NOTE_NET_TARIFF_C_HOUR}),
        start=start,
    )


def _split_list(value: str | None) -> frozenset[str]:
    if not value:
        return frozenset()
    return frozenset(item.strip() for item in value.split(",") if item.strip())


def resolve_net_tariff_filter(
    gln: str,
    charge_type_codes: str | None = None,
    notes: str | None = None,
    start: str | None = None,
) -> DatahubTariffFilter:
    """
    Resolve the net tariff filter from configured overrides.

    Args:
        gln: Grid company GLN used for the default filter
        charge_type_codes: Comma-separated override of charge type codes
        notes: Comma-separated override of notes
        start: Override of the start parameter

    Returns:
        The default filter when nothing is overridden or the start value is invalid,
        a complete replacement when codes or notes are set, otherwise the default
        filter with only the start replaced.

    """
    default_filter = get_net_tariff_by_gln(gln)
    override_codes = _split_list(charge_type_codes)
    override_notes = _split_list(notes)
    has_start = bool(start and start.strip())

    if not override_codes and not override_notes and not has_start:
        return default_filter

    parsed_start = DateQueryParameter.parse(start)
    if parsed_start is None:
        _LOGGER.warning("Invalid net tariff start parameter: %s", start)
        return default_filter

    if override_codes or override_notes:
        return DatahubTariffFilter(
            charge_type_codes=override_codes,
            notes=override_notes,
            start=parsed_start,
        )

    return default_filter.with_start(parsed_start)
