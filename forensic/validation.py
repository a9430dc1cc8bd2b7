"""
Property Validation - Input Rules for Audit Submissions

The engine assumes pre-validated, semantically valid numbers. This layer
rejects records the engine must never see (negative sizes, out-of-range
scores, coordinates off the globe) and reports every problem at once.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Optional

from .models import AssetType, ZoningCode


# =============================================================================
# Validation Constants
# =============================================================================

REQUIRED_PROPERTY_FIELDS = ("id", "asset_type", "latitude", "longitude")

NON_NEGATIVE_FIELDS = (
    "terrain_size_m2",
    "built_size_m2",
    "market_price",
    "forensic_price",
    "distance_tgv_station_km",
    "distance_stadium_km",
    "distance_highway_km",
    "distance_airport_km",
)

NON_NEGATIVE_INT_FIELDS = ("floors", "rooms", "bathrooms")

# Earliest plausible construction year (Medina riads)
MIN_YEAR_BUILT = 1000


@dataclass
class PropertyValidationResult:
    """Outcome of validating a raw property record."""
    is_valid: bool
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"is_valid": self.is_valid, "errors": list(self.errors)}


def _number(value: Any) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _check_range(
    errors: list[str],
    name: str,
    value: Any,
    low: float,
    high: float,
) -> None:
    if value is None:
        return
    number = _number(value)
    if number is None:
        errors.append(f"{name} must be a number: {value}")
    elif not low <= number <= high:
        errors.append(f"{name} must be between {low:g} and {high:g}")


def validate_property(data: dict[str, Any], today: Optional[date] = None) -> PropertyValidationResult:
    """
    Validate raw property data before building a Property.

    Args:
        data: Raw property dictionary (web submission or stored record)
        today: Reference date for the year_built upper bound (default: today)

    Returns:
        PropertyValidationResult listing every error found
    """
    errors: list[str] = []

    # === Required fields ===
    for name in REQUIRED_PROPERTY_FIELDS:
        value = data.get(name)
        if value is None or (isinstance(value, str) and not value.strip()):
            errors.append(f"{name} is required")

    # === Taxonomies ===
    asset_type = data.get("asset_type")
    if asset_type is not None and AssetType.from_string(asset_type) is None:
        errors.append(f"Invalid asset_type: {asset_type}")

    zoning_code = data.get("zoning_code")
    if zoning_code not in (None, "") and ZoningCode.from_string(zoning_code) is None:
        errors.append(f"Invalid zoning_code: {zoning_code}")

    # === Coordinates ===
    _check_range(errors, "latitude", data.get("latitude"), -90, 90)
    _check_range(errors, "longitude", data.get("longitude"), -180, 180)

    # === Sizes, prices, distances ===
    for name in NON_NEGATIVE_FIELDS:
        value = data.get(name)
        if value is None:
            continue
        number = _number(value)
        if number is None:
            errors.append(f"{name} must be a number: {value}")
        elif number < 0:
            errors.append(f"{name} cannot be negative")

    for name in NON_NEGATIVE_INT_FIELDS:
        value = data.get(name)
        if value is None:
            continue
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            errors.append(f"{name} must be a non-negative integer")

    # === Year built ===
    year_built = data.get("year_built")
    if year_built is not None:
        current_year = (today or date.today()).year
        _check_range(errors, "year_built", year_built, MIN_YEAR_BUILT, current_year)

    # === Structural health ===
    structural = data.get("structural_health") or {}
    if not isinstance(structural, dict):
        errors.append("structural_health must be an object")
    else:
        _check_range(errors, "humidity_score", structural.get("humidity_score"), 0, 10)
        _check_range(errors, "overall_score", structural.get("overall_score"), 0, 100)
        _check_range(errors, "foundation_depth_m", structural.get("foundation_depth_m"), 0, 100)
        _check_range(errors, "roof_life_years", structural.get("roof_life_years"), 0, 200)

    return PropertyValidationResult(is_valid=not errors, errors=errors)
