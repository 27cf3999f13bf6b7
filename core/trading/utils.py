from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import Union

Number = Union[Decimal, int, float, str]

MONEY_DECIMALS = 2
SHARE_DECIMALS = 4


def to_decimal(value: Number) -> Decimal:
    """Convert a boundary value to Decimal without picking up binary float noise."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise TypeError("bool is not a numeric amount")
    return Decimal(str(value))


def round_financial(value: Number, decimals: int = MONEY_DECIMALS) -> Decimal:
    """Round to a fixed number of decimal places using a scaled integer.

    The value is scaled by 10**decimals, rounded half away from zero to an
    integer and scaled back, so repeated trades never accumulate drift.
    """
    multiplier = Decimal(10) ** decimals
    scaled = (to_decimal(value) * multiplier).to_integral_value(rounding=ROUND_HALF_UP)
    return (scaled / multiplier).quantize(Decimal(1).scaleb(-decimals))


def round_money(value: Number) -> Decimal:
    return round_financial(value, MONEY_DECIMALS)


def round_shares(value: Number) -> Decimal:
    return round_financial(value, SHARE_DECIMALS)
