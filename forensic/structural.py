"""
Structural / seismic value adjustments.

Rules (each produces a named adjustment, stacking additively):
- Seismic gap: pre-2023 building with seismic chaining confirmed absent (-15%)
- RPS 2026 compliance bonus when there is no seismic gap (+3%)
- High humidity > 7/10 (-8%)
- Roof replacement within 5 years (-5%)
- Shallow foundation < 1.5 m (-6%)

Land carries no structural adjustments.
"""

from typing import List, Optional

from .models import Property, ValuationAdjustment
from .reference import SEISMIC_CODE_YEAR


# =============================================================================
# Configuration Constants
# =============================================================================

SEISMIC_GAP_PENALTY = -0.15
RPS_2026_BONUS = 0.03
HUMIDITY_PENALTY = -0.08
ROOF_PENALTY = -0.05
FOUNDATION_PENALTY = -0.06

HUMIDITY_THRESHOLD = 7
ROOF_LIFE_THRESHOLD_YEARS = 5
FOUNDATION_MIN_DEPTH_M = 1.5


def _adjustment(factor: str, description: str, rate: float, base_value: float) -> ValuationAdjustment:
    return ValuationAdjustment(
        factor=factor,
        description=description,
        impact_percent=round(rate * 100, 2),
        impact_value=round(base_value * rate, 2),
    )


def calculate_seismic_adjustment(
    property: Property,
    base_value: Optional[float] = None,
) -> Optional[ValuationAdjustment]:
    """
    Evaluate the seismic_compliance factor.

    The gap rule is evaluated first; the RPS 2026 bonus only applies when
    the gap rule does not fire. Unknown chaining status does not trigger
    the gap penalty here (the compliance audit handles the partial case).

    Returns:
        The adjustment, or None when neither rule fires.
    """
    if property.is_land:
        return None

    base = (property.market_price or 0.0) if base_value is None else base_value
    shs = property.structural_health

    if (
        property.year_built is not None
        and property.year_built < SEISMIC_CODE_YEAR
        and shs.seismic_chaining is False
    ):
        return _adjustment(
            "seismic_compliance",
            "Pre-2023 building without RPS 2011/2026 seismic chaining (-15%)",
            SEISMIC_GAP_PENALTY,
            base,
        )

    if shs.rps_2026_compliant:
        return _adjustment(
            "seismic_compliance",
            "RPS 2026 compliant (+3%)",
            RPS_2026_BONUS,
            base,
        )

    return None


def calculate_structural_adjustments(
    property: Property,
    base_value: Optional[float] = None,
) -> List[ValuationAdjustment]:
    """
    Calculate all structural health adjustments for a building.

    Args:
        property: The property being valued
        base_value: Value the percentages apply to (default: market price, or 0)

    Returns:
        Ordered list of adjustments (seismic first). Empty for Land.
    """
    if property.is_land:
        return []

    base = (property.market_price or 0.0) if base_value is None else base_value
    shs = property.structural_health
    adjustments: List[ValuationAdjustment] = []

    seismic = calculate_seismic_adjustment(property, base)
    if seismic is not None:
        adjustments.append(seismic)

    if shs.humidity_score is not None and shs.humidity_score > HUMIDITY_THRESHOLD:
        adjustments.append(_adjustment(
            "humidity",
            f"High humidity score ({shs.humidity_score:g}/10) - moisture damage risk",
            HUMIDITY_PENALTY,
            base,
        ))

    if shs.roof_life_years is not None and shs.roof_life_years < ROOF_LIFE_THRESHOLD_YEARS:
        adjustments.append(_adjustment(
            "roof_condition",
            f"Roof replacement needed within {shs.roof_life_years:g} years",
            ROOF_PENALTY,
            base,
        ))

    if shs.foundation_depth_m is not None and shs.foundation_depth_m < FOUNDATION_MIN_DEPTH_M:
        adjustments.append(_adjustment(
            "foundation",
            f"Shallow foundation ({shs.foundation_depth_m:g}m) - seismic risk",
            FOUNDATION_PENALTY,
            base,
        ))

    return adjustments
