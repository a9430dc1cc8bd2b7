"""
Utility modules for the forensic valuation engine.
"""

from .formatting import format_price, format_area, format_percent, format_distance, format_date
from .config import Config

__all__ = [
    "format_price",
    "format_area",
    "format_percent",
    "format_distance",
    "format_date",
    "Config",
]
