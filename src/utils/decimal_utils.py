"""
Decimal Utilities Module - Consistent handling of token amounts
Ensures precision and prevents float/Decimal mixing issues
"""

import logging
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Union

logger = logging.getLogger(__name__)

# Type alias for numeric types
Numeric = Union[Decimal, float, str, int]

__all__ = [
    "ZERO",
    "format_amount",
    "format_multiplier",
    "is_valid_amount",
    "to_base_units",
    "to_decimal",
]

_QUANTIZER_CACHE = {
    4: Decimal("0.0001"),
    6: Decimal("0.000001"),
    9: Decimal("0.000000001"),
}


def _get_quantizer(precision: int) -> Decimal:
    """Return cached quantizer for given precision."""
    if precision not in _QUANTIZER_CACHE:
        _QUANTIZER_CACHE[precision] = Decimal(10) ** -precision
    return _QUANTIZER_CACHE[precision]


def _validate_precision(precision: int) -> int:
    if precision < 0:
        raise ValueError(f"Precision must be non-negative, got {precision}")
    return precision


# ========================================================================
# CONVERSION UTILITIES
# ========================================================================


def to_decimal(
    value: Numeric, default: Decimal | None = None, round_places: int | None = None
) -> Decimal:
    """
    Safely convert value to Decimal

    Args:
        value: Value to convert
        default: Default value if conversion fails
        round_places: Optional rounding precision after conversion

    Returns:
        Decimal value

    Raises:
        ValueError if conversion fails and no default provided
    """
    if isinstance(value, Decimal):
        return value

    try:
        result = Decimal(str(value))
        if round_places is not None:
            precision = _validate_precision(round_places)
            quantizer = _get_quantizer(precision)
            result = result.quantize(quantizer, rounding=ROUND_HALF_UP)
        return result
    except (InvalidOperation, ValueError, TypeError) as e:
        if default is not None:
            logger.warning(f"Failed to convert {value} to Decimal: {e}, using default {default}")
            return default
        raise ValueError(f"Cannot convert {value} to Decimal: {e}")


def to_base_units(amount: Numeric, decimals: int) -> int:
    """
    Convert a token amount to integer base units, flooring any excess precision

    Args:
        amount: Amount in whole tokens
        decimals: Token decimal places

    Returns:
        floor(amount * 10**decimals)
    """
    _validate_precision(decimals)
    scaled = to_decimal(amount) * (Decimal(10) ** decimals)
    return int(scaled.to_integral_value(rounding=ROUND_DOWN))


# ========================================================================
# VALIDATION UTILITIES
# ========================================================================


def is_valid_amount(value: Any, allow_zero: bool = False) -> bool:
    """
    Check if value is a valid amount

    Args:
        value: Value to check
        allow_zero: Whether zero is valid

    Returns:
        True if valid amount
    """
    try:
        decimal_value = to_decimal(value)

        if decimal_value.is_nan() or decimal_value.is_infinite():
            return False

        if allow_zero:
            return decimal_value >= 0
        else:
            return decimal_value > 0

    except (ValueError, TypeError):
        return False


# ========================================================================
# FORMATTING UTILITIES
# ========================================================================


def format_amount(value: Numeric, symbol: str = "CASH", precision: int = 4) -> str:
    """
    Format token amount for display

    Args:
        value: Amount in whole tokens
        symbol: Token symbol
        precision: Decimal places

    Returns:
        Formatted string (e.g., "1.2345 CASH")
    """
    _validate_precision(precision)
    decimal_value = to_decimal(value)
    rounded = decimal_value.quantize(_get_quantizer(precision), rounding=ROUND_HALF_UP)
    return f"{rounded:.{precision}f} {symbol}"


def format_multiplier(value: Numeric, precision: int = 2) -> str:
    """
    Format payout multiplier for display

    Returns:
        Formatted string (e.g., "2.50x")
    """
    decimal_value = to_decimal(value)

    if decimal_value >= 100:
        return f"{decimal_value:.0f}x"
    elif decimal_value >= 10:
        return f"{decimal_value:.1f}x"
    else:
        return f"{decimal_value:.{precision}f}x"


# ========================================================================
# CONSTANTS
# ========================================================================

ZERO = Decimal("0")
