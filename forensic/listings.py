"""
Listing normalisation helpers for portal data (Agenz, Mubawab, Sarouty).

Turns the free-text fields of a scraped listing into typed values. Every
parser returns None on input it cannot read.
"""

import re
import unicodedata
from typing import Optional

from .models import AssetType
from .reference import MARRAKECH_NEIGHBORHOODS


# =============================================================================
# Patterns
# =============================================================================

_CURRENCY_PATTERN = re.compile(r"(?:mad|dhs?|dirhams?)\b", re.IGNORECASE)
_PRICE_PATTERN = re.compile(r"(\d[\d\s.,]*)\s*(millions?|[mk])?(?![a-z])", re.IGNORECASE)
_AREA_PATTERN = re.compile(r"\d+(?:[.,\s]\d+)*")
_THOUSANDS_PATTERN = re.compile(r"^\d{1,3}(?:[.,\s]\d{3})+$")

# Checked in order: apartment, villa, land
_ASSET_TYPE_PATTERNS = (
    (AssetType.APARTMENT, re.compile(
        r"\b(?:appartement|apartment|appart|studio|duplex|triplex|flat)", re.IGNORECASE
    )),
    (AssetType.VILLA, re.compile(
        r"\b(?:villa|maison|house|riad|dar|palais|mansion)", re.IGNORECASE
    )),
    (AssetType.LAND, re.compile(
        r"\b(?:terrain|land|lot|parcelle|foncier|plot)", re.IGNORECASE
    )),
)

_MULTIPLIERS = {"m": 1_000_000, "k": 1_000}


def _strip_accents(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(c for c in decomposed if not unicodedata.combining(c))


def parse_price(text: Optional[str]) -> Optional[float]:
    """
    Parse a Moroccan price string to MAD.

    Handles "2,500,000 DH", "2.5M MAD", "2,5 millions", "850K", "2 500 000"
    and "2.500.000".
    """
    if not text:
        return None

    cleaned = _CURRENCY_PATTERN.sub(" ", str(text))
    match = _PRICE_PATTERN.search(cleaned)
    if not match:
        return None

    number = re.sub(r"\s", "", match.group(1)).strip(".,")
    suffix = (match.group(2) or "").lower()

    try:
        if suffix:
            return float(number.replace(",", ".")) * _MULTIPLIERS[suffix[0]]

        number = number.replace(",", "")
        # Period as thousands separator
        parts = number.split(".")
        if len(parts) > 1 and len(parts[1]) == 3:
            number = number.replace(".", "")
        return float(number)
    except ValueError:
        return None


def parse_area(text: Optional[str]) -> Optional[float]:
    """Parse an area string ("250 m2", "1 200m²", "85,5 m2") to square metres."""
    if not text:
        return None

    match = _AREA_PATTERN.search(str(text))
    if not match:
        return None

    number = match.group(0).strip()
    if _THOUSANDS_PATTERN.match(number):
        number = re.sub(r"[.,\s]", "", number)
    else:
        number = re.sub(r"\s", "", number).replace(",", ".")

    try:
        return float(number)
    except ValueError:
        return None


def detect_asset_type(text: Optional[str]) -> Optional[AssetType]:
    """Detect asset type from a listing title or description (French or English)."""
    if not text:
        return None
    for asset_type, pattern in _ASSET_TYPE_PATTERNS:
        if pattern.search(text):
            return asset_type
    return None


def extract_neighborhood(text: Optional[str]) -> Optional[str]:
    """
    Find a known Marrakech neighbourhood in a location string.

    Returns the neighbourhood name with its first letter capitalised.
    """
    if not text:
        return None

    normalised = _strip_accents(text).lower()
    for neighborhood in MARRAKECH_NEIGHBORHOODS:
        if neighborhood in normalised:
            return neighborhood[:1].upper() + neighborhood[1:]
    return None
