"""
Decimal Utilities
app/scoring/utils.py

Provides precision-safe decimal math for scoring calculations.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Union

Number = Union[int, float, Decimal]


def to_decimal(value: Number, places: int = 4) -> Decimal:
    """Convert a number to Decimal with explicit precision."""
    return Decimal(str(value)).quantize(
        Decimal(10) ** -places, rounding=ROUND_HALF_UP
    )


def percentage(numerator: Number, denominator: Number, places: int = 2) -> Decimal:
    """
    Calculate 100 × numerator / denominator, rounded half-up.

    Returns Decimal("0") when the denominator is zero.
    """
    denom = Decimal(str(denominator))
    if denom == 0:
        return Decimal("0").quantize(Decimal(10) ** -places)
    ratio = Decimal(str(numerator)) * Decimal("100") / denom
    return ratio.quantize(Decimal(10) ** -places, rounding=ROUND_HALF_UP)


def round_half_up(value: Number) -> int:
    """Round to the nearest integer, halves away from zero."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
