"""Custom exceptions for API client and refresh cycle."""

from __future__ import annotations


class EnergiDataServiceApiClientError(Exception):
    """Exception to indicate a general API error."""

    UNKNOWN_ERROR = "Unknown Energi Data Service error"
    GENERIC_ERROR = "Something went wrong! {exception}"


class EnergiDataServiceApiClientCommunicationError(EnergiDataServiceApiClientError):
    """Exception to indicate a communication error (non-2xx status or transport failure)."""

    HTTP_ERROR = "The request failed with HTTP error {status}"
    TIMEOUT_ERROR = "Timeout error fetching information - {exception}"
    CONNECTION_ERROR = "Error fetching information - {exception}"

    def __init__(self, message: str, http_status: int = 0) -> None:
        """Initialize with optional HTTP status (0 for transport failures)."""
        super().__init__(message)
        self.http_status = http_status


class EnergiDataServiceApiClientParseError(EnergiDataServiceApiClientError):
    """Exception to indicate a malformed or unexpected payload."""

    PARSE_ERROR = "Error parsing response"


class EnergiDataServiceApiClientEmptyDataError(EnergiDataServiceApiClientError):
    """Exception to indicate that the service returned no usable data."""

    EMPTY_RESPONSE = "Empty response"
    NO_RECORDS = "No records"


class EnergiDataServiceConfigurationError(Exception):
    """Exception to indicate invalid or missing required identifiers."""

    NO_PRICE_AREA = "No price area configured"
    INVALID_CURRENCY = "Invalid currency {currency}"
    INVALID_GRID_COMPANY_GLN = "Invalid grid company GLN {gln}"
    INVALID_ENERGINET_GLN = "Invalid Energinet GLN {gln}"


class EnergiDataServiceDataIncompleteError(Exception):
    """Fewer records returned than the expected lookahead."""

    INCOMPLETE = "Only {count} spot price records available, expected at least {expected}"

    def __init__(self, count: int, expected: int) -> None:
        """Initialize with received and expected record counts."""
        super().__init__(self.INCOMPLETE.format(count=count, expected=expected))
        self.count = count
        self.expected = expected
