"""
Forensic Valuation Orchestrator

Implements:
- Base value (market price, or neighbourhood-tier estimate)
- Structural / seismic adjustments
- Compliance value penalties (land deadline, tax gate, foreign authorisation)
- Infrastructure proximity bonus
- Zoning potential and alpha for land
- Resilience score for apartments
- Risk grade and confidence score
"""

from typing import List, Optional, Sequence

from .infrastructure import calculate_infrastructure_bonus, calculate_resilience_score
from .models import (
    AssetType,
    InfrastructurePoint,
    Property,
    RiskGrade,
    ValuationAdjustment,
    ValuationResult,
    ZoningCodeInfo,
)
from .reference import FOREIGN_AUTH_COST_MAD, price_per_m2_for
from .structural import calculate_structural_adjustments
from .zoning import calculate_zoning_potential


# =============================================================================
# Configuration Constants
# =============================================================================

# Size assumed when a property has neither built nor terrain area (m2)
DEFAULT_ESTIMATE_SIZE_M2 = 100

LAND_DEADLINE_PENALTY = -0.20
TAX_GATE_PENALTY = -0.10

# Foreign authorisation: displayed as -5%, deducted as cost + 2% time value
FOREIGN_AUTH_LABEL_PERCENT = -5
FOREIGN_AUTH_TIME_VALUE_RATE = 0.02

# Risk score contributions
RISK_DEADLINE_POINTS = 30
RISK_TAX_GATE_POINTS = 20
RISK_FOREIGN_AUTH_POINTS = 10
RISK_VERIFIED_CREDIT = 15

# Upper bound (inclusive) of the risk score for each grade
RISK_GRADE_THRESHOLDS = (
    (10, RiskGrade.A),
    (20, RiskGrade.B),
    (35, RiskGrade.C),
    (50, RiskGrade.D),
    (70, RiskGrade.E),
)

CONFIDENCE_BASE = 40


def estimate_base_value(property: Property) -> float:
    """Neighbourhood tier price x size, for properties without a market price."""
    size = property.built_size_m2 or property.terrain_size_m2 or DEFAULT_ESTIMATE_SIZE_M2
    return size * price_per_m2_for(property.neighborhood)


def calculate_compliance_adjustments(
    property: Property,
    base_value: Optional[float] = None,
) -> List[ValuationAdjustment]:
    """
    Value penalties from the property's recorded compliance flags.

    The foreign authorisation penalty keeps a -5% label but deducts the
    fixed authorisation cost plus 2% of base value.
    """
    base = (property.market_price or 0.0) if base_value is None else base_value
    adjustments: List[ValuationAdjustment] = []

    if property.deadline_flagged:
        adjustments.append(ValuationAdjustment(
            factor="land_deadline",
            description="5-year development deadline exceeded - legal risk",
            impact_percent=round(LAND_DEADLINE_PENALTY * 100, 2),
            impact_value=round(base * LAND_DEADLINE_PENALTY, 2),
        ))

    if not property.tax_gate_passed:
        adjustments.append(ValuationAdjustment(
            factor="tax_gate",
            description="Missing digital QR-verified Quitus Fiscal - high transaction risk",
            impact_percent=round(TAX_GATE_PENALTY * 100, 2),
            impact_value=round(base * TAX_GATE_PENALTY, 2),
        ))

    if property.foreign_authorization_required:
        adjustments.append(ValuationAdjustment(
            factor="foreign_authorization",
            description=(
                f"Foreign authorisation required: 12-month delay + "
                f"{FOREIGN_AUTH_COST_MAD:,} MAD budget"
            ),
            impact_percent=FOREIGN_AUTH_LABEL_PERCENT,
            impact_value=round(-(FOREIGN_AUTH_COST_MAD + base * FOREIGN_AUTH_TIME_VALUE_RATE), 2),
        ))

    return adjustments


def calculate_risk_grade(
    property: Property,
    adjustments: Sequence[ValuationAdjustment],
) -> RiskGrade:
    """
    Map compliance flags and negative adjustments to a letter grade.

    Score = 30 (deadline) + 20 (tax gate failed) + 10 (authorisation)
    + sum of |negative adjustment percents| - 15 (verified).
    """
    risk_score = 0.0

    if property.deadline_flagged:
        risk_score += RISK_DEADLINE_POINTS
    if not property.tax_gate_passed:
        risk_score += RISK_TAX_GATE_POINTS
    if property.foreign_authorization_required:
        risk_score += RISK_FOREIGN_AUTH_POINTS

    risk_score += sum(abs(a.impact_percent) for a in adjustments if a.impact_percent < 0)

    if property.is_verified:
        risk_score -= RISK_VERIFIED_CREDIT

    for threshold, grade in RISK_GRADE_THRESHOLDS:
        if risk_score <= threshold:
            return grade
    return RiskGrade.F


def calculate_confidence_score(property: Property) -> int:
    """How much the valuation can be trusted, 0-100."""
    score = CONFIDENCE_BASE

    if property.market_price:
        score += 15
    if property.structural_health.overall_score is not None:
        score += 15
    if property.is_verified:
        score += 20
    if property.distance_tgv_station_km is not None:
        score += 5
    if property.distance_stadium_km is not None:
        score += 5

    return min(100, score)


def calculate_fair_market_value(
    property: Property,
    zoning_info: Optional[ZoningCodeInfo] = None,
    infrastructure_points: Optional[Sequence[InfrastructurePoint]] = None,
) -> ValuationResult:
    """
    Perform the complete forensic valuation of one property.

    Args:
        property: The property being valued
        zoning_info: Optional zoning reference record (land only)
        infrastructure_points: Points for the proximity bonus and resilience

    Returns:
        ValuationResult with adjustments, alpha, risk grade and confidence
    """
    adjustments: List[ValuationAdjustment] = []

    # Step 1: Base value
    base_value = property.market_price or estimate_base_value(property)
    forensic_value = base_value

    # Step 2: Structural / seismic
    for adjustment in calculate_structural_adjustments(property, base_value):
        adjustments.append(adjustment)
        forensic_value += adjustment.impact_value

    # Step 3: Compliance penalties
    for adjustment in calculate_compliance_adjustments(property, base_value):
        adjustments.append(adjustment)
        forensic_value += adjustment.impact_value

    # Step 4: Infrastructure proximity
    if infrastructure_points:
        infrastructure = calculate_infrastructure_bonus(
            property, infrastructure_points, base_value
        )
        if infrastructure.impact_percent != 0:
            adjustments.append(infrastructure)
            forensic_value += infrastructure.impact_value

    # Step 5: Zoning potential and alpha (land only)
    zoning_potential_value = None
    alpha_value = 0.0
    alpha_percent = 0.0

    if property.is_land and property.zoning_code is not None and property.terrain_size_m2:
        zoning_potential_value = calculate_zoning_potential(property, zoning_info)
        denominator = property.market_price or forensic_value
        alpha_value = zoning_potential_value - denominator
        if denominator > 0:
            alpha_percent = alpha_value / denominator * 100

    # Step 6: Resilience (apartments only)
    resilience_score = None
    if property.asset_type is AssetType.APARTMENT:
        resilience_score = calculate_resilience_score(property, infrastructure_points)

    # Step 7: Risk grade
    risk_grade = calculate_risk_grade(property, adjustments)

    # Step 8: Confidence
    confidence_score = calculate_confidence_score(property)

    return ValuationResult(
        base_value=round(base_value, 2),
        forensic_value=round(max(forensic_value, 0.0), 2),
        adjustments=adjustments,
        risk_grade=risk_grade,
        confidence_score=confidence_score,
        alpha_value=round(alpha_value, 2),
        alpha_percent=round(alpha_percent, 2),
        zoning_potential_value=zoning_potential_value,
        resilience_score=resilience_score,
    )
