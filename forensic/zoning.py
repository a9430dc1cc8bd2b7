"""
Zoning Potential Calculator

Computes what a parcel COULD be worth if built out to its zoning code's
legal limits, and validates proposed schemes against those limits.
"""

import math
from dataclasses import dataclass, field
from typing import List, Optional

from .models import Property, ZoningCode, ZoningCodeInfo
from .reference import (
    ZONING_COEFFICIENTS,
    ZONING_LIMITS,
    price_per_m2_for,
)


# =============================================================================
# Configuration Constants
# =============================================================================

# Average unit size used to derive unit counts (m2)
AVERAGE_UNIT_SIZE_M2 = 80

# Share of gross value left after development costs (30% discount)
DEVELOPMENT_DISCOUNT = 0.70

SQUARE_METRES_PER_HECTARE = 10_000


@dataclass
class ZoningPotential:
    """Full breakdown of a zoning potential calculation."""
    zoning_code: ZoningCode
    buildable_area_m2: float
    max_units: int
    price_per_m2: float
    potential_value: float

    def to_dict(self) -> dict:
        return {
            "zoning_code": self.zoning_code.value,
            "buildable_area_m2": round(self.buildable_area_m2, 2),
            "max_units": self.max_units,
            "price_per_m2": self.price_per_m2,
            "potential_value": self.potential_value,
        }


def assess_zoning_potential(
    property: Property,
    zoning_info: Optional[ZoningCodeInfo] = None,
) -> Optional[ZoningPotential]:
    """
    Compute the zoning potential breakdown for a parcel.

    Args:
        property: Parcel with terrain size, zoning code and neighbourhood
        zoning_info: Optional reference record; when it matches the parcel's
            code, its cos and density cap replace the built-in table's

    Returns:
        ZoningPotential, or None when terrain size or zoning code is missing
        or the code has no coefficients
    """
    code = property.zoning_code
    terrain = property.terrain_size_m2
    if not terrain or code is None:
        return None

    coefficients = ZONING_COEFFICIENTS.get(code)
    if coefficients is None:
        return None

    cos = coefficients.cos
    unit_cap = coefficients.max_units
    if zoning_info is not None and zoning_info.code is code:
        cos = zoning_info.cos
        if zoning_info.max_units_per_hectare is not None:
            unit_cap = math.floor(
                zoning_info.max_units_per_hectare * terrain / SQUARE_METRES_PER_HECTARE
            )

    buildable_area = terrain * cos
    max_units = min(unit_cap, math.floor(buildable_area / AVERAGE_UNIT_SIZE_M2))
    price_per_m2 = price_per_m2_for(property.neighborhood)
    potential_value = float(round(buildable_area * price_per_m2 * DEVELOPMENT_DISCOUNT))

    return ZoningPotential(
        zoning_code=code,
        buildable_area_m2=buildable_area,
        max_units=max_units,
        price_per_m2=price_per_m2,
        potential_value=potential_value,
    )


def calculate_zoning_potential(
    property: Property,
    zoning_info: Optional[ZoningCodeInfo] = None,
) -> float:
    """
    Maximum legally buildable value of a parcel, in whole MAD.

    Falls back to the market price (or 0) when no uplift can be computed.
    """
    potential = assess_zoning_potential(property, zoning_info)
    if potential is None:
        return property.market_price or 0.0
    return potential.potential_value


# =============================================================================
# Zoning Validation
# =============================================================================


@dataclass
class ZoningValidationResult:
    """Outcome of checking a parcel (and optional scheme) against its zoning."""
    is_compliant: bool = True
    violations: List[str] = field(default_factory=list)
    max_buildable_m2: float = 0.0
    max_footprint_m2: float = 0.0
    max_units: int = 0
    estimated_value: float = 0.0

    def to_dict(self) -> dict:
        return {
            "is_compliant": self.is_compliant,
            "violations": list(self.violations),
            "max_buildable_m2": round(self.max_buildable_m2, 2),
            "max_footprint_m2": round(self.max_footprint_m2, 2),
            "max_units": self.max_units,
            "estimated_value": self.estimated_value,
        }


def validate_zoning(
    property: Property,
    proposed_floors: Optional[int] = None,
    proposed_built_area: Optional[float] = None,
) -> ZoningValidationResult:
    """
    Check terrain size and a proposed scheme against per-code limits.

    Without a zoning code or terrain size there is nothing to check and an
    empty compliant result is returned.
    """
    result = ZoningValidationResult()

    code = property.zoning_code
    terrain = property.terrain_size_m2
    if code is None or not terrain:
        return result

    limits = ZONING_LIMITS.get(code)
    if limits is None:
        return result

    if terrain < limits.min_terrain_m2:
        result.is_compliant = False
        result.violations.append(
            f"Terrain size ({terrain:g}m2) below minimum "
            f"({limits.min_terrain_m2:g}m2) for {code.value}"
        )

    result.max_buildable_m2 = terrain * limits.cos
    result.max_footprint_m2 = terrain * limits.ces

    if proposed_floors and proposed_floors > limits.max_floors:
        result.is_compliant = False
        result.violations.append(
            f"Proposed floors ({proposed_floors}) exceed maximum "
            f"({limits.max_floors}) for {code.value}"
        )

    if proposed_built_area and proposed_built_area > result.max_buildable_m2:
        result.is_compliant = False
        result.violations.append(
            f"Proposed built area ({proposed_built_area:g}m2) exceeds maximum "
            f"({result.max_buildable_m2:.0f}m2) for {code.value}"
        )

    result.max_units = math.floor(result.max_buildable_m2 / AVERAGE_UNIT_SIZE_M2)
    result.estimated_value = float(round(
        result.max_buildable_m2 * price_per_m2_for(property.neighborhood) * DEVELOPMENT_DISCOUNT
    ))

    return result
