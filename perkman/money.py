"""Money helpers. Amounts are Decimal with two places, rounded half-up."""

from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value) -> Decimal:
    """Coerce int/str/float/Decimal to a 2-place Decimal."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def clamp(amount: Decimal, ceiling: Decimal) -> Decimal:
    """min(amount, ceiling), never below zero."""
    return max(ZERO, min(amount, ceiling))
