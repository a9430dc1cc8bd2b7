"""
Formatting utilities.
"""

from datetime import date, datetime
from typing import Union


def _group(value: float) -> str:
    # Moroccan convention: space as thousands separator
    return f"{value:,.0f}".replace(",", " ")


def format_price(amount: float, compact: bool = False) -> str:
    """
    Format an amount in MAD (Moroccan Dirham).

    Args:
        amount: The amount in whole dirhams.
        compact: Use M / K shorthand for large amounts.

    Returns:
        Formatted price string, e.g. "2 500 000 MAD" or "2.5M MAD".
    """
    if compact and abs(amount) >= 1_000_000:
        return f"{amount / 1_000_000:.1f}M MAD"
    if compact and abs(amount) >= 1_000:
        return f"{amount / 1_000:.0f}K MAD"
    return f"{_group(amount)} MAD"


def format_area(m2: float) -> str:
    """Format an area in square metres."""
    return f"{_group(m2)} m²"


def format_percent(value: float, decimals: int = 1) -> str:
    """
    Format a number as a percentage.

    Args:
        value: The percentage value.
        decimals: Number of decimal places.

    Returns:
        Formatted percentage string.
    """
    return f"{value:.{decimals}f}%"


def format_distance(km: float) -> str:
    """Format a distance, in metres below 1 km."""
    if km < 1:
        return f"{round(km * 1000)}m"
    return f"{km:.1f}km"


def format_date(value: Union[date, datetime, str]) -> str:
    """Format a date as e.g. "01 Jun 2024"."""
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    return value.strftime("%d %b %Y")
