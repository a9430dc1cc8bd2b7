"""
Tests for zoning potential and zoning validation.
"""

import pytest
from pathlib import Path
import sys

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from forensic.models import AssetType, Property, ZoningCode
from forensic.reference import ZONING_CODE_INFO
from forensic.zoning import (
    assess_zoning_potential,
    calculate_zoning_potential,
    validate_zoning,
)


@pytest.fixture
def make_land():
    """Factory fixture for land parcels."""
    def _create(
        terrain_size_m2: float = 5000,
        zoning_code: ZoningCode = ZoningCode.GH2,
        neighborhood: str = None,
        market_price: float = None,
    ) -> Property:
        return Property(
            id="land-1",
            asset_type=AssetType.LAND,
            latitude=31.60,
            longitude=-8.05,
            terrain_size_m2=terrain_size_m2,
            zoning_code=zoning_code,
            neighborhood=neighborhood,
            market_price=market_price,
        )
    return _create


# =============================================================================
# Test: Zoning Potential
# =============================================================================

class TestZoningPotential:
    """Buildable value under the zoning code."""

    def test_collective_housing_default_tier(self, make_land):
        """5000m2 of GH2 in an unlisted area: 2000m2 x 10,000 x 0.7."""
        potential = assess_zoning_potential(make_land())

        assert potential.buildable_area_m2 == pytest.approx(2000)
        assert potential.price_per_m2 == 10_000
        assert potential.max_units == 15
        assert potential.potential_value == 14_000_000

    def test_neighbourhood_tier_applies(self, make_land):
        land = make_land(terrain_size_m2=10_000, zoning_code=ZoningCode.SD1, neighborhood="Palmeraie")

        assert calculate_zoning_potential(land) == 14_700_000

    def test_reference_record_sets_unit_cap(self, make_land):
        potential = assess_zoning_potential(make_land(), ZONING_CODE_INFO[ZoningCode.GH2])

        # 150 units/ha on 0.5ha = 75, area cap floor(2000 / 80) = 25
        assert potential.max_units == 25
        assert potential.potential_value == 14_000_000

    def test_mismatched_reference_record_ignored(self, make_land):
        potential = assess_zoning_potential(make_land(), ZONING_CODE_INFO[ZoningCode.SA1])

        assert potential.buildable_area_m2 == pytest.approx(2000)
        assert potential.max_units == 15

    def test_missing_zoning_falls_back_to_market_price(self, make_land):
        land = make_land(zoning_code=None, market_price=3_000_000)

        assert assess_zoning_potential(land) is None
        assert calculate_zoning_potential(land) == 3_000_000

    def test_missing_terrain_and_price_gives_zero(self, make_land):
        assert calculate_zoning_potential(make_land(terrain_size_m2=None)) == 0.0


# =============================================================================
# Test: Zoning Validation
# =============================================================================

class TestZoningValidation:
    """Per-code dimensional limits."""

    def test_compliant_scheme(self, make_land):
        result = validate_zoning(make_land(), proposed_floors=4, proposed_built_area=1500)

        assert result.is_compliant is True
        assert result.violations == []
        assert result.max_buildable_m2 == pytest.approx(2000)
        assert result.max_footprint_m2 == pytest.approx(1750)
        assert result.max_units == 25
        assert result.estimated_value == 14_000_000

    def test_terrain_below_minimum(self, make_land):
        result = validate_zoning(make_land(terrain_size_m2=200))

        assert result.is_compliant is False
        assert "below minimum" in result.violations[0]

    def test_too_many_floors_and_too_much_area(self, make_land):
        result = validate_zoning(make_land(), proposed_floors=6, proposed_built_area=3000)

        assert result.is_compliant is False
        assert len(result.violations) == 2
        assert "floors" in result.violations[0]
        assert "built area" in result.violations[1]

    def test_nothing_to_check_without_zoning(self, make_land):
        result = validate_zoning(make_land(zoning_code=None))

        assert result.is_compliant is True
        assert result.max_buildable_m2 == 0.0
