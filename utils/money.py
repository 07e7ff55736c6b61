"""Currency helpers. Amounts are integer cents; 100 cents = 1 currency unit."""

from decimal import Decimal, ROUND_HALF_UP

CENTS_PER_UNIT = 100


def round_cents(value: Decimal) -> int:
    """Round a fractional cent amount half-up to whole cents."""
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def format_cents(cents: int) -> str:
    """Render cents as a plain two-decimal amount, e.g. 15750 -> '157.50'."""
    sign = "-" if cents < 0 else ""
    whole, frac = divmod(abs(cents), CENTS_PER_UNIT)
    return f"{sign}{whole}.{frac:02d}"
