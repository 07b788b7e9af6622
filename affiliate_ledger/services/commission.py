"""
Commission calculation. Pure functions, no I/O.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Union

CENT = Decimal("0.01")

Number = Union[Decimal, int, float, str]


def _to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() first so floats like 0.1 don't carry binary noise
    return Decimal(str(value))


def compute_commission(order_amount: Number, commission_rate_percent: Number) -> Decimal:
    """
    commission = order_amount * rate / 100, rounded half-up to cents.

    Examples:
        compute_commission(1000, 15) -> Decimal("150.00")
        compute_commission("99.99", "12.5") -> Decimal("12.50")

    The caller decides what a result <= 0 means (zero-commission settlement).
    """
    amount = _to_decimal(order_amount)
    rate = _to_decimal(commission_rate_percent)
    return (amount * rate / Decimal("100")).quantize(CENT, rounding=ROUND_HALF_UP)
