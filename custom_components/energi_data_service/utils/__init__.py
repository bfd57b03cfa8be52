"""
Pure calculation utilities for Energi Data Service integration.

This package contains stateless functions for price processing:
- Cost integration of constant power over hourly price maps
- Summing price maps per hour
- VAT factors by country
- GLN validation

These functions operate on plain mappings and do NOT depend on:
- Home Assistant entities or state management
- Configuration entries or coordinators
"""

from __future__ import annotations

from .gln import is_empty_or_valid_gln, is_valid_gln
from .price import apply_vat, calculate_cost, get_vat_factor, hour_start, merge_price_maps

__all__ = [
    "apply_vat",
    "calculate_cost",
    "get_vat_factor",
    "hour_start",
    "is_empty_or_valid_gln",
    "is_valid_gln",
    "merge_price_maps",
]
