"""
Money helpers shared by pricing, commission and settlement code.

All amounts are handled as Decimal internally and rounded half-up to the
paisa; floats only appear at the API boundary.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Union

Number = Union[Decimal, float, int, str]

PAISA = Decimal("0.01")
ZERO = Decimal("0.00")

# Largest values the Numeric(10, 2) order columns and Numeric(12, 2) ledger columns hold
MAX_ORDER_AMOUNT = Decimal("99999999.99")
MAX_LEDGER_AMOUNT = Decimal("9999999999.99")


def to_decimal(x: Number | None) -> Decimal:
    """Convert via str() so that 13.4 becomes Decimal('13.4'), not its binary expansion."""
    if x is None:
        return ZERO
    if isinstance(x, Decimal):
        return x
    return Decimal(str(x))


def money(x: Number | None) -> Decimal:
    """Round to 2 decimal places using ROUND_HALF_UP."""
    return to_decimal(x).quantize(PAISA, rounding=ROUND_HALF_UP)


def percent_of(amount: Number, pct: Number) -> Decimal:
    """pct% of amount, rounded to the paisa."""
    return money(to_decimal(amount) * to_decimal(pct) / Decimal(100))


def as_float(x: Number | None) -> float:
    return float(money(x))
