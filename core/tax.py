"""GST arithmetic.

Pure functions, no rounding: callers round with round_minor() at the point
they persist or display a value.
"""

from decimal import Decimal, ROUND_HALF_UP

_HUNDRED = Decimal(100)


def add_exclusive_tax(base: int | Decimal, rate: Decimal) -> Decimal:
    """Tax on a GST-exclusive amount: base * rate / 100."""
    return Decimal(base) * Decimal(rate) / _HUNDRED


def extract_inclusive_tax(total: int | Decimal, rate: Decimal) -> Decimal:
    """
    Tax contained in a GST-inclusive amount: total * rate / (100 + rate).

    extract_inclusive_tax(118000, 18) == 18000
    """
    rate = Decimal(rate)
    return Decimal(total) * rate / (_HUNDRED + rate)


def round_minor(value: Decimal) -> int:
    """Round half-up to a whole minor unit."""
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
