"""
Money precision and rounding.

Every monetary column is ``Numeric(38, 4)`` and every monetary value is
passed through normalize_money() before it is stored or compared, so the
services and the database agree on the same four decimal places.

Inputs are converted through their string form before quantizing: a float
such as 8986.999999999999 becomes 8987.0000, never 8986.9999.  Rounding is
ROUND_HALF_UP, half away from zero for both signs.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Union

MONEY_DECIMAL_PLACES = 4
DEFAULT_ROUNDING = ROUND_HALF_UP

ZERO = Decimal("0")

MoneyLike = Union[Decimal, int, float, str]


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a Decimal to the given number of places.

    ROUND_HALF_UP on Decimal rounds half away from zero for both signs
    (-0.00005 -> -0.0001).
    """
    quantize_str = "0." + "0" * decimal_places if decimal_places > 0 else "1"
    return value.quantize(Decimal(quantize_str), rounding=rounding)


def normalize_money(value: MoneyLike) -> Decimal:
    """
    Normalize a monetary value to MONEY_DECIMAL_PLACES.

    This is the one rounding entry point for values coming from callers.
    Floats are converted through ``str()`` so the shortest round-tripping
    representation is what gets rounded, never the raw binary expansion.

    Args:
        value: Decimal, int, float, or numeric string.

    Returns:
        Decimal quantized to 4 places.
    """
    if isinstance(value, Decimal):
        return round_money(value)
    return round_money(Decimal(str(value)))


def normalize_optional_money(value: MoneyLike | None) -> Decimal | None:
    """normalize_money() that passes None through."""
    if value is None:
        return None
    return normalize_money(value)


def positive_or_none(value: Decimal) -> Decimal | None:
    """Return the normalized value when strictly positive, else None.

    Derived valuation fields (inventory value, weighted averages) are stored
    as NULL rather than zero or negative.
    """
    rounded = normalize_money(value)
    return rounded if rounded > ZERO else None
