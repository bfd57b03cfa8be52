"""Global Location Number (GLN) validation."""

from __future__ import annotations

GLN_LENGTH = 13


def is_valid_gln(gln: str) -> bool:
    """
    Validate a GS1 Global Location Number.

    A GLN has 13 digits. The last digit is a check digit: digits 1-12 are
    weighted 1, 3, 1, 3, ... from the left, and the check digit brings the
    weighted sum to a multiple of 10.
    """
    if len(gln) != GLN_LENGTH or not gln.isdigit():
        return False

    weighted_sum = sum(int(digit) * (3 if index % 2 else 1) for index, digit in enumerate(gln[:-1]))
    check_digit = (10 - weighted_sum % 10) % 10
    return check_digit == int(gln[-1])


def is_empty_or_valid_gln(gln: str | None) -> bool:
    """Return True if the GLN is blank (component disabled) or valid."""
    if gln is None or not gln.strip():
        return True
    return is_valid_gln(gln.strip())
