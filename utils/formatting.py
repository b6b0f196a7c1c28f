"""
Formatting and rounding utilities.

The engine works in raw floats; these helpers are for display strings
and report cells only.
"""

from decimal import Decimal, ROUND_HALF_UP


def round_money(amount: float) -> float:
    """Round a money amount to whole cents, halves away from zero."""
    return float(Decimal(repr(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def round_percentage(value: float, decimals: int = 2) -> float:
    """Round a percentage for display, halves away from zero."""
    quantum = Decimal(1).scaleb(-decimals)
    return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def format_currency(amount: float, currency: str = "AUD", signed: bool = False) -> str:
    """
    Format an amount as whole-unit currency.

    Args:
        amount: The amount in dollars.
        currency: Currency code (default AUD).
        signed: Prefix positive amounts with '+'.

    Returns:
        Formatted currency string, e.g. '$2,500,000' or '-$8,500'.
    """
    symbols = {
        "AUD": "$",
        "NZD": "$",
        "USD": "$",
        "GBP": "£",
        "EUR": "€",
    }
    symbol = symbols.get(currency, currency + " ")
    whole = int(Decimal(repr(amount)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    if whole < 0:
        return f"-{symbol}{-whole:,}"
    prefix = "+" if signed and whole > 0 else ""
    return f"{prefix}{symbol}{whole:,}"


def format_percent(value: float, decimals: int = 2, signed: bool = False) -> str:
    """
    Format a number as a percentage.

    Args:
        value: The percentage value.
        decimals: Number of decimal places.
        signed: Prefix positive values with '+'.

    Returns:
        Formatted percentage string.
    """
    rounded = round_percentage(value, decimals) + 0.0
    prefix = "+" if signed and rounded > 0 else ""
    return f"{prefix}{rounded:.{decimals}f}%"


def format_number(value: float) -> str:
    """Format a measurement without trailing zeros, e.g. 850 or 2.5."""
    if float(value).is_integer():
        return f"{int(value):,}"
    return f"{value:,.2f}".rstrip("0").rstrip(".")
