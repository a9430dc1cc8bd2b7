"""
Tests for the forensic valuation pipeline.

Verifies:
- Base value from market price or neighbourhood tier
- Structural, compliance and infrastructure adjustments applied in order
- Land zoning potential and alpha
- Risk grade thresholds and confidence score
- Forensic value never negative
"""

import itertools

import pytest
from pathlib import Path
import sys

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from forensic.models import (
    AssetType,
    InfrastructureCategory,
    Property,
    RiskGrade,
    StructuralHealthScore,
    ValuationAdjustment,
    ZoningCode,
)
from forensic.reference import DEFAULT_INFRASTRUCTURE
from forensic.valuation import (
    calculate_compliance_adjustments,
    calculate_confidence_score,
    calculate_fair_market_value,
    calculate_risk_grade,
    estimate_base_value,
)


TGV = next(p for p in DEFAULT_INFRASTRUCTURE if p.category is InfrastructureCategory.TGV_STATION)


# =============================================================================
# Test Fixtures
# =============================================================================

@pytest.fixture
def make_property():
    """Factory fixture; defaults to a clean 1,000,000 MAD villa off-grid."""
    def _create(**overrides) -> Property:
        fields = dict(
            id="prop-1",
            asset_type=AssetType.VILLA,
            latitude=31.90,
            longitude=-7.70,
            market_price=1_000_000,
            tax_gate_passed=True,
        )
        fields.update(overrides)
        return Property(**fields)
    return _create


def _adjustment(percent: float) -> ValuationAdjustment:
    return ValuationAdjustment(factor="test", description="", impact_percent=percent, impact_value=0)


# =============================================================================
# Test: Base Value
# =============================================================================

class TestBaseValue:

    def test_tier_price_times_built_area(self, make_property):
        property = make_property(market_price=None, built_size_m2=100, neighborhood="Gueliz")
        assert estimate_base_value(property) == 2_200_000

    def test_terrain_used_when_no_built_area(self, make_property):
        property = make_property(market_price=None, terrain_size_m2=300, neighborhood="Targa")
        assert estimate_base_value(property) == 3_600_000

    def test_default_size_and_tier(self, make_property):
        assert estimate_base_value(make_property(market_price=None)) == 1_000_000


# =============================================================================
# Test: Compliance Adjustments
# =============================================================================

class TestComplianceAdjustments:

    def test_clean_property_has_none(self, make_property):
        assert calculate_compliance_adjustments(make_property()) == []

    def test_tax_gate_failure(self, make_property):
        adjustments = calculate_compliance_adjustments(make_property(tax_gate_passed=False))

        assert [a.factor for a in adjustments] == ["tax_gate"]
        assert adjustments[0].impact_percent == -10
        assert adjustments[0].impact_value == -100_000

    def test_land_deadline(self, make_property):
        adjustments = calculate_compliance_adjustments(make_property(deadline_flagged=True))

        assert adjustments[0].factor == "land_deadline"
        assert adjustments[0].impact_value == -200_000

    def test_foreign_authorization_cost(self, make_property):
        """Labelled -5%, deducted as 200,000 MAD + 2% of base."""
        adjustments = calculate_compliance_adjustments(
            make_property(foreign_authorization_required=True)
        )

        assert adjustments[0].factor == "foreign_authorization"
        assert adjustments[0].impact_percent == -5
        assert adjustments[0].impact_value == -220_000


# =============================================================================
# Test: Risk Grade
# =============================================================================

class TestRiskGrade:

    def test_tax_gate_only_is_grade_b(self, make_property):
        assert calculate_risk_grade(make_property(tax_gate_passed=False), []) == RiskGrade.B

    def test_clean_property_is_grade_a(self, make_property):
        assert calculate_risk_grade(make_property(), []) == RiskGrade.A

    def test_thresholds_are_inclusive(self, make_property):
        property = make_property()

        assert calculate_risk_grade(property, [_adjustment(-10)]) == RiskGrade.A
        assert calculate_risk_grade(property, [_adjustment(-11)]) == RiskGrade.B
        assert calculate_risk_grade(property, [_adjustment(-35)]) == RiskGrade.C
        assert calculate_risk_grade(property, [_adjustment(-50)]) == RiskGrade.D
        assert calculate_risk_grade(property, [_adjustment(-70)]) == RiskGrade.E
        assert calculate_risk_grade(property, [_adjustment(-71)]) == RiskGrade.F

    def test_positive_adjustments_do_not_reduce_risk(self, make_property):
        property = make_property(tax_gate_passed=False)
        assert calculate_risk_grade(property, [_adjustment(7.5)]) == RiskGrade.B

    def test_verified_credit(self, make_property):
        property = make_property(tax_gate_passed=False, is_verified=True)
        assert calculate_risk_grade(property, []) == RiskGrade.A

    def test_everything_wrong_is_grade_f(self, make_property):
        property = make_property(
            tax_gate_passed=False,
            deadline_flagged=True,
            foreign_authorization_required=True,
        )
        assert calculate_risk_grade(property, []) == RiskGrade.E
        assert calculate_risk_grade(property, [_adjustment(-15)]) == RiskGrade.F


class TestRiskGradeMonotonicity:
    """A compliance defect never improves the grade, whatever else is true."""

    GRADE_ORDER = [RiskGrade.A, RiskGrade.B, RiskGrade.C, RiskGrade.D, RiskGrade.E, RiskGrade.F]

    STATES = list(itertools.product(
        [False, True],   # foreign authorisation required
        [False, True],   # verified
        [False, True],   # tax gate passed (deadline case) / deadline flagged (tax case)
        [0, -5, -15, -40],  # extra negative adjustment
    ))

    def _rank(self, grade):
        return self.GRADE_ORDER.index(grade)

    @pytest.mark.parametrize("foreign,verified,other_flag,extra", STATES)
    def test_deadline_flag_never_improves_grade(
        self, make_property, foreign, verified, other_flag, extra
    ):
        def grade(deadline):
            property = make_property(
                deadline_flagged=deadline,
                tax_gate_passed=other_flag,
                foreign_authorization_required=foreign,
                is_verified=verified,
            )
            adjustments = [_adjustment(extra)] if extra else []
            return self._rank(calculate_risk_grade(property, adjustments))

        assert grade(True) >= grade(False)

    @pytest.mark.parametrize("foreign,verified,other_flag,extra", STATES)
    def test_tax_gate_failure_never_improves_grade(
        self, make_property, foreign, verified, other_flag, extra
    ):
        def grade(passed):
            property = make_property(
                tax_gate_passed=passed,
                deadline_flagged=other_flag,
                foreign_authorization_required=foreign,
                is_verified=verified,
            )
            adjustments = [_adjustment(extra)] if extra else []
            return self._rank(calculate_risk_grade(property, adjustments))

        assert grade(False) >= grade(True)

    @pytest.mark.parametrize("foreign,verified,market_price", itertools.product(
        [False, True], [False, True], [100_000, 1_000_000],
    ))
    def test_full_pipeline_monotonic(self, make_property, foreign, verified, market_price):
        def grade(**flags):
            property = make_property(
                market_price=market_price,
                foreign_authorization_required=foreign,
                is_verified=verified,
                **flags,
            )
            return self._rank(calculate_fair_market_value(property).risk_grade)

        clean = grade(tax_gate_passed=True, deadline_flagged=False)
        assert grade(tax_gate_passed=True, deadline_flagged=True) >= clean
        assert grade(tax_gate_passed=False, deadline_flagged=False) >= clean
        assert grade(tax_gate_passed=False, deadline_flagged=True) >= clean


# =============================================================================
# Test: Confidence
# =============================================================================

class TestConfidenceScore:

    def test_bare_record(self, make_property):
        assert calculate_confidence_score(make_property(market_price=None)) == 40

    def test_fully_documented_record(self, make_property):
        property = make_property(
            is_verified=True,
            structural_health=StructuralHealthScore(overall_score=70),
            distance_tgv_station_km=2,
            distance_stadium_km=6,
        )
        assert calculate_confidence_score(property) == 100


# =============================================================================
# Test: Full Pipeline
# =============================================================================

class TestFairMarketValue:

    def test_seismic_gap_villa(self, make_property):
        property = make_property(
            year_built=2010,
            structural_health=StructuralHealthScore(seismic_chaining=False),
        )

        result = calculate_fair_market_value(property)

        assert result.base_value == 1_000_000
        assert [a.factor for a in result.adjustments] == ["seismic_compliance"]
        assert result.forensic_value == 850_000
        assert result.negative_adjustments == result.adjustments

    def test_tax_gate_counts_twice_in_pipeline(self, make_property):
        """Flag points (20) plus the -10% adjustment = 30, grade C."""
        result = calculate_fair_market_value(make_property(tax_gate_passed=False))

        assert result.forensic_value == 900_000
        assert result.risk_grade == RiskGrade.C

    def test_estimated_base_without_market_price(self, make_property):
        result = calculate_fair_market_value(
            make_property(market_price=None, built_size_m2=200, neighborhood="Hivernage")
        )

        assert result.base_value == 5_000_000
        assert result.forensic_value == 5_000_000

    def test_infrastructure_premium(self, make_property):
        property = make_property(
            asset_type=AssetType.APARTMENT,
            latitude=TGV.latitude,
            longitude=TGV.longitude,
        )

        result = calculate_fair_market_value(property, infrastructure_points=[TGV])

        assert result.adjustments[-1].factor == "infrastructure_proximity"
        assert result.forensic_value == pytest.approx(1_075_000)
        # Nearest TGV point is on site
        assert result.resilience_score == 65

    def test_zero_infrastructure_bonus_not_listed(self, make_property):
        result = calculate_fair_market_value(make_property(), infrastructure_points=DEFAULT_INFRASTRUCTURE)
        assert result.adjustments == []

    def test_land_alpha(self, make_property):
        land = make_property(
            asset_type=AssetType.LAND,
            terrain_size_m2=5000,
            zoning_code=ZoningCode.GH2,
            market_price=10_000_000,
        )

        result = calculate_fair_market_value(land)

        assert result.zoning_potential_value == 14_000_000
        assert result.alpha_value == 4_000_000
        assert result.alpha_percent == 40.0
        assert result.resilience_score is None

    def test_land_alpha_against_forensic_value(self, make_property):
        land = make_property(
            asset_type=AssetType.LAND,
            terrain_size_m2=5000,
            zoning_code=ZoningCode.GH2,
            market_price=None,
        )

        result = calculate_fair_market_value(land)

        assert result.forensic_value == 50_000_000
        assert result.alpha_value == -36_000_000
        assert result.alpha_percent == -72.0

    def test_buildings_have_no_zoning_potential(self, make_property):
        result = calculate_fair_market_value(make_property(zoning_code=ZoningCode.GH2, terrain_size_m2=800))

        assert result.zoning_potential_value is None
        assert result.alpha_value == 0.0

    def test_forensic_value_floored_at_zero(self, make_property):
        property = make_property(
            market_price=100_000,
            tax_gate_passed=False,
            deadline_flagged=True,
            foreign_authorization_required=True,
        )

        result = calculate_fair_market_value(property)

        assert result.forensic_value == 0.0
        assert result.risk_grade == RiskGrade.F

    def test_result_serialises(self, make_property):
        data = calculate_fair_market_value(make_property()).to_dict()

        assert data["risk_grade"] == "A"
        assert data["adjustments"] == []
        assert set(data) >= {"base_value", "forensic_value", "confidence_score", "alpha_percent"}
