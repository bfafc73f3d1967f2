"""
Rounding rules — isolated, testable, reusable.

Money is kept to 2 decimal places and quantities to 3, rounding half up.
Every value written to a lot, a stock row or a balance row passes through
one of these helpers so the boundaries agree with each other.

Examples:
    round_money(Decimal('10.005'))    -> Decimal('10.01')
    round_quantity(Decimal('1.0004')) -> Decimal('1.000')
"""

from decimal import ROUND_HALF_UP, Decimal

MONEY_PLACES = Decimal('0.01')
QUANTITY_PLACES = Decimal('0.001')

ZERO = Decimal('0')


def to_decimal(value) -> Decimal:
    """Coerce ints, floats and strings to Decimal without float artifacts."""
    if isinstance(value, Decimal):
        return value
    if value is None:
        return ZERO
    return Decimal(str(value))


def round_money(value) -> Decimal:
    """Round a monetary amount (unit price or total) to 2 decimals."""
    return to_decimal(value).quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)


def round_quantity(value) -> Decimal:
    """Round a quantity to 3 decimals."""
    return to_decimal(value).quantize(QUANTITY_PLACES, rounding=ROUND_HALF_UP)


def line_value(quantity, unit_price) -> Decimal:
    """Monetary value of ``quantity`` units at ``unit_price``."""
    return round_money(to_decimal(quantity) * to_decimal(unit_price))
