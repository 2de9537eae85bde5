"""Integer minor-unit money helpers.

All amounts inside the invoicing core are integer paise (1/100 rupee) to avoid
floating point issues. Rs. 1,180.00 = 118000. The order store hands us numeric
major-unit values; convert them once at the boundary.
"""

from decimal import Decimal, ROUND_HALF_UP

MINOR_UNITS_PER_MAJOR = 100


def to_minor_units(value: Decimal | int | float | str | None) -> int:
    """
    Convert a major-unit amount to integer minor units.

    None converts to 0. Floats go through str() so 0.1 stays 0.1.
    Half-up rounding on the sub-paisa remainder.
    """
    if value is None:
        return 0
    if isinstance(value, float):
        value = str(value)
    amount = Decimal(value) * MINOR_UNITS_PER_MAJOR
    return int(amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def to_major_units(amount: int) -> Decimal:
    """Minor units to a two-place Decimal in major units."""
    return (Decimal(amount) / MINOR_UNITS_PER_MAJOR).quantize(Decimal("0.01"))


def format_money(amount: int, label: str = "Rs.") -> str:
    """
    Format minor units for display: 118000 -> 'Rs. 1,180.00'.

    Negative amounts render with a leading minus: '-Rs. 50.00'.
    """
    sign = "-" if amount < 0 else ""
    return f"{sign}{label} {to_major_units(abs(amount)):,.2f}"


def format_rate(rate: Decimal) -> str:
    """Percentage without trailing zeros: Decimal('18.00') -> '18', '12.50' -> '12.5'."""
    normalized = rate.normalize()
    # normalize() turns 100 into 1E+2
    if normalized == normalized.to_integral_value():
        return str(normalized.quantize(Decimal("1")))
    return format(normalized, "f")
