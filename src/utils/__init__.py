"""
Utility modules for the staked game client
"""

from .decimal_utils import (
    ZERO,
    format_amount,
    format_multiplier,
    is_valid_amount,
    to_base_units,
    to_decimal,
)

__all__ = [
    'to_decimal',
    'to_base_units',
    'format_amount',
    'format_multiplier',
    'is_valid_amount',
    'ZERO',
]
