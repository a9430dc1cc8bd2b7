"""
Tests for the property repository and the read-through cache.
"""

import json
import pytest
from datetime import date
from pathlib import Path
import sys

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from forensic.compliance import perform_compliance_audit
from forensic.models import (
    AssetType,
    ComplianceStatus,
    DocumentType,
    ForensicDocument,
    InfrastructureCategory,
    InfrastructurePoint,
    Property,
    RiskGrade,
    ZoningCode,
)
from forensic.store import CachedPropertyReader, PropertyFilter, PropertyRepository, TTLCache
from forensic.valuation import calculate_fair_market_value


# =============================================================================
# Test Fixtures
# =============================================================================

class FakeClock:
    """Manually advanced clock for TTL tests."""

    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def repository():
    return PropertyRepository()


@pytest.fixture
def land():
    return Property(
        id="land-1",
        asset_type=AssetType.LAND,
        latitude=31.60,
        longitude=-8.05,
        terrain_size_m2=5000,
        zoning_code=ZoningCode.GH2,
        market_price=10_000_000,
        tax_gate_passed=True,
    )


@pytest.fixture
def quitus(land):
    return ForensicDocument(
        id="doc-1",
        property_id=land.id,
        document_type=DocumentType.QUITUS_FISCAL,
        is_verified=True,
        qr_code_verified=True,
        document_date=date(2024, 1, 15),
    )


# =============================================================================
# Test: Repository
# =============================================================================

class TestPropertyRepository:

    def test_create_and_get(self, repository, land):
        repository.create(land)

        assert repository.get("land-1") is land
        assert repository.count() == 1
        assert repository.get("missing") is None

    def test_duplicate_id_rejected(self, repository, land):
        repository.create(land)

        with pytest.raises(ValueError, match="already exists"):
            repository.create(land)

    def test_update_unknown_returns_none(self, repository, land):
        assert repository.update(land) is None

    def test_list_by_type(self, repository, land):
        repository.create(land)
        repository.create(Property(id="villa-1", asset_type=AssetType.VILLA, latitude=31.6, longitude=-8.0))

        assert [p.id for p in repository.list_by_type(AssetType.VILLA)] == ["villa-1"]
        assert len(repository.list_all()) == 2

    def test_documents(self, repository, land, quitus):
        repository.create(land)
        repository.add_document(quitus)

        documents = repository.get_documents(land.id)
        documents.clear()

        assert repository.get_documents(land.id) == [quitus]

    def test_document_for_unknown_property_rejected(self, repository, quitus):
        with pytest.raises(ValueError, match="not found"):
            repository.add_document(quitus)

    def test_duplicate_document_rejected(self, repository, land, quitus):
        repository.create(land)
        repository.add_document(quitus)

        with pytest.raises(ValueError, match="already exists"):
            repository.add_document(quitus)

    def test_apply_valuation(self, repository, land):
        repository.create(land)
        result = calculate_fair_market_value(land)

        property = repository.apply_valuation(land.id, result)

        assert property.forensic_price == 10_000_000
        assert property.zoning_potential_value == 14_000_000
        assert property.alpha_score == 40.0
        assert property.risk_grade == RiskGrade.A

    def test_apply_compliance(self, repository, land, quitus):
        repository.create(land)
        result = perform_compliance_audit(
            land, [quitus], purchase_date=date(2015, 1, 1), now=date(2024, 6, 1)
        )

        property = repository.apply_compliance(land.id, result)

        assert property.compliance_status == ComplianceStatus.NON_COMPLIANT
        assert property.deadline_flagged is True
        assert property.tax_gate_passed is True

    def test_clear_resets_computed_fields_only(self, repository, land, quitus):
        repository.create(land)
        repository.add_document(quitus)
        repository.apply_valuation(land.id, calculate_fair_market_value(land))

        assert repository.clear(land.id) is True

        property = repository.get(land.id)
        assert property.forensic_price is None
        assert property.alpha_score is None
        assert property.risk_grade == RiskGrade.C
        assert property.compliance_status == ComplianceStatus.PENDING_REVIEW
        assert property.market_price == 10_000_000
        assert repository.get_documents(land.id) == [quitus]
        assert repository.clear("missing") is False


class TestPropertySearch:

    @pytest.fixture
    def populated(self, repository, land):
        repository.create(land)
        repository.create(Property(
            id="villa-1",
            asset_type=AssetType.VILLA,
            latitude=31.6,
            longitude=-8.0,
            neighborhood="Palmeraie",
            market_price=3_000_000,
            risk_grade=RiskGrade.B,
            is_verified=True,
        ))
        repository.create(Property(
            id="land-rural",
            asset_type=AssetType.LAND,
            latitude=31.7,
            longitude=-8.1,
            city="Tahannaout",
            zoning_code=ZoningCode.ZA,
        ))
        return repository

    def _ids(self, repository, **criteria):
        return sorted(p.id for p in repository.search(PropertyFilter(**criteria)))

    def test_empty_filter_matches_everything(self, populated):
        assert len(populated.search(PropertyFilter())) == 3

    def test_asset_types_and_grades(self, populated):
        assert self._ids(populated, asset_types=[AssetType.LAND]) == ["land-1", "land-rural"]
        assert self._ids(populated, risk_grades=[RiskGrade.B]) == ["villa-1"]

    def test_zoning_filter_keeps_unzoned(self, populated):
        assert self._ids(populated, zoning_codes=[ZoningCode.GH2]) == ["land-1", "villa-1"]

    def test_price_bounds_treat_missing_price_as_zero(self, populated):
        assert self._ids(populated, min_price=1) == ["land-1", "villa-1"]
        assert self._ids(populated, max_price=3_000_000) == ["land-rural", "villa-1"]

    def test_only_alpha_needs_stored_potential(self, populated, land):
        assert self._ids(populated, only_alpha=True) == []

        populated.apply_valuation(land.id, calculate_fair_market_value(land))
        assert self._ids(populated, only_alpha=True) == ["land-1"]

    def test_location_is_case_insensitive(self, populated):
        assert self._ids(populated, city="tahannaout") == ["land-rural"]
        assert self._ids(populated, neighborhood="PALMERAIE", only_verified=True) == ["villa-1"]


class TestInfrastructureCollection:

    @pytest.fixture
    def stadium(self):
        return InfrastructurePoint(
            id="stade",
            name="Grand Stade",
            category=InfrastructureCategory.STADIUM,
            latitude=31.5847,
            longitude=-8.0756,
            impact_radius_km=8,
            value_multiplier=1.4,
        )

    def test_add_and_filter(self, repository, stadium):
        assert repository.list_infrastructure() == []

        repository.add_infrastructure_point(stadium)

        assert repository.list_infrastructure() == [stadium]
        assert repository.list_infrastructure_by_category(InfrastructureCategory.STADIUM) == [stadium]
        assert repository.list_infrastructure_by_category(InfrastructureCategory.AIRPORT) == []

    def test_duplicate_rejected(self, repository, stadium):
        repository.add_infrastructure_point(stadium)

        with pytest.raises(ValueError, match="already exists"):
            repository.add_infrastructure_point(stadium)

    def test_persisted(self, tmp_path, stadium):
        path = tmp_path / "properties.json"
        PropertyRepository(str(path)).add_infrastructure_point(stadium)

        assert PropertyRepository(str(path)).list_infrastructure() == [stadium]


class TestRepositoryPersistence:

    def test_round_trip_through_json(self, tmp_path, land, quitus):
        path = tmp_path / "data" / "properties.json"
        repository = PropertyRepository(str(path))
        repository.create(land)
        repository.add_document(quitus)

        reloaded = PropertyRepository(str(path))

        assert reloaded.get(land.id).zoning_code == ZoningCode.GH2
        assert reloaded.get_documents(land.id)[0].document_date == date(2024, 1, 15)

    def test_corrupt_file_starts_empty(self, tmp_path, caplog):
        path = tmp_path / "properties.json"
        path.write_text("{not json")

        repository = PropertyRepository(str(path))

        assert repository.count() == 0
        assert "Could not load repository data" in caplog.text

    def test_saved_file_is_json(self, tmp_path, land):
        path = tmp_path / "properties.json"
        PropertyRepository(str(path)).create(land)

        data = json.loads(path.read_text())

        assert data["properties"]["land-1"]["asset_type"] == "Land"


# =============================================================================
# Test: Cache
# =============================================================================

class TestTTLCache:

    def test_entry_expires_at_ttl(self):
        clock = FakeClock()
        cache = TTLCache(ttl_seconds=60, clock=clock)
        cache.set("k", "v")

        clock.now = 59.9
        assert cache.get("k") == "v"

        clock.now = 60.0
        assert cache.get("k", "expired") == "expired"
        assert len(cache) == 0

    def test_invalidate(self):
        cache = TTLCache()
        cache.set("a", 1)
        cache.set("b", 2)

        cache.invalidate("a")
        assert cache.get("a") is None
        assert len(cache) == 1

        cache.invalidate()
        assert len(cache) == 0


class TestCachedPropertyReader:

    def test_empty_injected_cache_is_kept(self, repository):
        cache = TTLCache(ttl_seconds=1, clock=lambda: 0.0)

        reader = CachedPropertyReader(repository, cache)

        assert reader.cache is cache
        assert reader.cache.ttl_seconds == 1

    def test_default_cache(self, repository):
        assert CachedPropertyReader(repository).cache.ttl_seconds == 60

    def test_reads_are_cached_until_invalidated(self, repository, land):
        repository.create(land)
        reader = CachedPropertyReader(repository)
        assert reader.get(land.id) is land

        replacement = Property(id=land.id, asset_type=AssetType.LAND, latitude=0, longitude=0)
        repository.update(replacement)

        assert reader.get(land.id) is land
        reader.invalidate(land.id)
        assert reader.get(land.id) is replacement

    def test_listing_refreshes_after_invalidate(self, repository, land):
        reader = CachedPropertyReader(repository)
        assert reader.list_all() == []

        repository.create(land)
        assert reader.list_all() == []

        reader.invalidate(land.id)
        assert reader.list_all() == [land]

    def test_misses_are_not_cached(self, repository, land):
        reader = CachedPropertyReader(repository)
        assert reader.get(land.id) is None

        repository.create(land)
        assert reader.get(land.id) is land

    def test_entries_expire(self, repository, land):
        clock = FakeClock()
        repository.create(land)
        reader = CachedPropertyReader(repository, TTLCache(ttl_seconds=5, clock=clock))
        reader.get(land.id)

        replacement = Property(id=land.id, asset_type=AssetType.LAND, latitude=0, longitude=0)
        repository.update(replacement)
        clock.now = 5

        assert reader.get(land.id) is replacement
