"""Display helpers: address shortening, number localization, tax rates."""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, localcontext
from typing import Any, Optional

# Rendered for any field that did not arrive
PLACEHOLDER = "-"

# Taxes above this percentage are flagged as high
HIGH_TAX_THRESHOLD = 10.0


def shorten_address(address: Optional[str], chars: int = 4) -> str:
    """
    Shorten an address to its prefix and suffix.

    shorten_address("0x6982508145454Ce325dDbE47a25d4ec3d2311933") -> "0x6982...1933"
    """
    if not address:
        return PLACEHOLDER
    if len(address) <= 2 * chars + 2:
        return address
    return f"{address[:chars + 2]}...{address[-chars:]}"


def to_decimal(value: Any) -> Optional[Decimal]:
    """Parse a numeric value from the upstreams; None when absent or not a number."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not result.is_finite():
        return None
    return result


def format_number(value: Any, max_fraction_digits: int = 3) -> str:
    """
    Localize a number the en-US way: comma grouping, at most
    `max_fraction_digits` decimals, trailing zeros dropped.
    """
    number = to_decimal(value)
    if number is None:
        return PLACEHOLDER

    # Token supplies routinely exceed the default 28 digits of precision
    with localcontext() as ctx:
        ctx.prec = 100
        quantum = Decimal(1).scaleb(-max_fraction_digits)
        rounded = number.quantize(quantum, rounding=ROUND_HALF_UP).normalize()
        if rounded == 0:
            rounded = Decimal(0)
        return format(rounded, ",f")


def format_usd(value: Any) -> str:
    """Dollar amount rounded to cents, e.g. "$ 1,234,567.89"."""
    number = to_decimal(value)
    if number is None:
        return PLACEHOLDER
    return f"$ {format_number(number, max_fraction_digits=2)}"


def to_percent(value: Any) -> Optional[float]:
    """Convert a fraction (0.12) to a percentage (12.0)."""
    number = to_decimal(value)
    if number is None:
        return None
    return float(number * 100)


def format_percent(percent: Optional[float]) -> str:
    if percent is None:
        return PLACEHOLDER
    return f"{percent:.1f}%"


def is_high_tax(percent: Optional[float]) -> bool:
    return percent is not None and percent > HIGH_TAX_THRESHOLD


def format_flag(value: Any) -> str:
    """Render a "0"/"1" flag from the security scan as no/yes."""
    number = to_decimal(value)
    if number is None:
        return PLACEHOLDER
    return "no" if number == 0 else "yes"
