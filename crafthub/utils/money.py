# crafthub/utils/money.py
"""Decimal money in cents, rounded half-up. Floats never enter a total."""
from decimal import Decimal, ROUND_HALF_UP

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def D(x) -> Decimal:
    return x if isinstance(x, Decimal) else Decimal(str(x or "0"))

def round_money(x) -> Decimal:
    return D(x).quantize(CENT, rounding=ROUND_HALF_UP)

def sum_money(values) -> Decimal:
    return round_money(sum((D(v) for v in values), ZERO))

def percent_of(amount, percent) -> Decimal:
    return round_money(D(amount) * Decimal(int(percent)) / Decimal(100))

def to_string_money(x) -> str:
    """'12.5' -> '12.50', the form PayPal expects."""
    return str(round_money(x))
