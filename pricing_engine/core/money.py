"""Integer money helpers.

All amounts are integers in minor currency units (cents, sen). Percentages
are applied through Decimal so no float ever touches a price.
"""

from decimal import ROUND_HALF_UP, Decimal

Money = int

_HUNDRED = Decimal(100)


def round_half_up(value: Decimal) -> Money:
    """Round a Decimal amount to the nearest minor unit, halves away from zero."""
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def percent_of(amount: Money, percent: Decimal | int | float | str) -> Money:
    """Return `percent` % of `amount`, rounded half-up to a whole minor unit."""
    return round_half_up(Decimal(amount) * Decimal(str(percent)) / _HUNDRED)


def format_money(amount: Money, currency: str) -> str:
    """Format minor units for display, e.g. 12345 -> 'MYR 123.45'."""
    sign = "-" if amount < 0 else ""
    major, minor = divmod(abs(amount), 100)
    return f"{sign}{currency.upper()} {major:,}.{minor:02d}"
