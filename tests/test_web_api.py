"""
Tests for the JSON API.

Each test runs against a fresh in-memory repository.
"""

import pytest
from pathlib import Path
import sys

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from fastapi.testclient import TestClient

from forensic.store import PropertyRepository
from utils.config import Config
from web.app import create_app


# =============================================================================
# Test Fixtures
# =============================================================================

@pytest.fixture
def repository():
    return PropertyRepository()


@pytest.fixture
def client(repository):
    config = Config()
    config.min_alpha_percent = 20.0
    config.default_buyer_nationality = "UNKNOWN"
    return TestClient(create_app(config, repository))


@pytest.fixture
def villa_payload():
    """Pre-code villa without seismic chaining."""
    return {
        "id": "villa-1",
        "asset_type": "Villa",
        "latitude": 31.90,
        "longitude": -7.70,
        "title": "Villa Route de Fes",
        "neighborhood": "Route de Fes",
        "built_size_m2": 300,
        "year_built": 2010,
        "market_price": 1_000_000,
        "tax_gate_passed": True,
        "structural_health": {"seismic_chaining": False},
    }


@pytest.fixture
def land_payload():
    return {
        "id": "land-1",
        "asset_type": "Land",
        "latitude": 31.60,
        "longitude": -8.05,
        "terrain_size_m2": 5000,
        "zoning_code": "GH2",
        "market_price": 10_000_000,
        "tax_gate_passed": True,
    }


# =============================================================================
# Test: Health
# =============================================================================

class TestHealth:

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


# =============================================================================
# Test: Properties
# =============================================================================

class TestProperties:

    def test_create_and_fetch(self, client, villa_payload):
        response = client.post("/api/properties", json=villa_payload)

        assert response.status_code == 200
        assert response.json()["property"]["id"] == "villa-1"

        fetched = client.get("/api/properties/villa-1").json()
        assert fetched["property"]["structural_health"]["seismic_chaining"] is False
        assert fetched["documents"] == []

    def test_id_generated_when_missing(self, client, villa_payload):
        del villa_payload["id"]

        response = client.post("/api/properties", json=villa_payload)

        assert response.status_code == 200
        assert response.json()["property"]["id"]

    def test_invalid_ranges_rejected(self, client, villa_payload):
        villa_payload["built_size_m2"] = -10

        response = client.post("/api/properties", json=villa_payload)

        assert response.status_code == 422
        assert "built_size_m2 cannot be negative" in response.json()["detail"]

    def test_duplicate_id_rejected(self, client, villa_payload):
        client.post("/api/properties", json=villa_payload)

        response = client.post("/api/properties", json=villa_payload)

        assert response.status_code == 400

    def test_unknown_property(self, client):
        assert client.get("/api/properties/nope").status_code == 404
        assert client.get("/api/properties/nope/valuation").status_code == 404

    def test_list_with_filter(self, client, villa_payload, land_payload):
        client.post("/api/properties", json=villa_payload)
        client.post("/api/properties", json=land_payload)

        everything = client.get("/api/properties").json()
        land_only = client.get("/api/properties", params={"asset_type": "land"}).json()

        assert everything["count"] == 2
        assert [p["id"] for p in land_only["properties"]] == ["land-1"]
        assert client.get("/api/properties", params={"asset_type": "castle"}).status_code == 400


# =============================================================================
# Test: Valuation & Compliance
# =============================================================================

class TestValuation:

    def test_seismic_penalty(self, client, villa_payload):
        client.post("/api/properties", json=villa_payload)

        response = client.get("/api/properties/villa-1/valuation", params={"infrastructure": "false"})

        valuation = response.json()["valuation"]
        assert valuation["forensic_value"] == 850_000
        assert valuation["adjustments"][0]["factor"] == "seismic_compliance"

    def test_persist_writes_back(self, client, repository, villa_payload):
        client.post("/api/properties", json=villa_payload)

        client.get("/api/properties/villa-1/valuation", params={"persist": "true"})

        assert repository.get("villa-1").forensic_price == 850_000
        assert client.get("/api/properties/villa-1").json()["property"]["forensic_price"] == 850_000


class TestCompliance:

    def test_documents_and_audit(self, client, villa_payload):
        villa_payload["structural_health"] = {"seismic_chaining": True}
        client.post("/api/properties", json=villa_payload)

        added = client.post(
            "/api/properties/villa-1/documents",
            json={"document_type": "quitus_fiscal", "is_verified": True, "qr_code_verified": True},
        )
        assert added.status_code == 200

        response = client.post(
            "/api/properties/villa-1/compliance",
            json={"buyer_nationality": "MA", "persist": True},
        )

        body = response.json()
        assert body["compliance"]["overall_status"] == "compliant"
        assert body["documents"]["present"] == ["quitus_fiscal"]
        assert client.get("/api/properties/villa-1").json()["property"]["tax_gate_passed"] is True

    def test_land_deadline(self, client, land_payload):
        client.post("/api/properties", json=land_payload)

        response = client.post(
            "/api/properties/land-1/compliance",
            json={"purchase_date": "2015-01-01"},
        )

        compliance = response.json()["compliance"]
        assert compliance["overall_status"] == "non_compliant"
        assert compliance["land_deadline"]["is_flagged"] is True

    def test_unknown_document_type(self, client, villa_payload):
        client.post("/api/properties", json=villa_payload)

        response = client.post("/api/properties/villa-1/documents", json={"document_type": "passport"})

        assert response.status_code == 400

    def test_pdf_report(self, client, villa_payload):
        client.post("/api/properties", json=villa_payload)

        response = client.get("/api/properties/villa-1/report")

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert response.content.startswith(b"%PDF")


# =============================================================================
# Test: Market Analysis
# =============================================================================

class TestMarketAnalysis:

    def test_market_gap(self, client):
        response = client.post(
            "/api/market-gap", json={"forensic_price": 1_000_000, "market_price": 1_150_000}
        )

        assert response.json() == {"gap_value": 150_000, "gap_percent": 15.0, "verdict": "overpriced"}

    def test_gap_analysis(self, client):
        response = client.post("/api/gap-analysis", json={
            "listing": {
                "source_portal": "agenz",
                "source_url": "https://agenz.ma/l/1",
                "asking_price": 700_000,
            },
            "forensic_price": 1_000_000,
        })

        assert response.json()["verdict"] == "severely_underpriced"
        assert response.json()["opportunity_score"] == 95

    def test_gap_analysis_unknown_portal(self, client):
        response = client.post("/api/gap-analysis", json={
            "listing": {"source_portal": "craigslist", "source_url": "x"},
            "forensic_price": 1_000_000,
        })

        assert response.status_code == 400

    def test_alpha_opportunities_and_stats(self, client, land_payload, villa_payload):
        client.post("/api/properties", json=land_payload)
        client.post("/api/properties", json=villa_payload)

        alpha = client.get("/api/opportunities/alpha").json()
        stats = client.get("/api/stats").json()

        assert alpha["count"] == 1
        assert alpha["opportunities"][0]["alpha_percent"] == 40.0
        assert stats["stats"]["total_properties"] == 2
        assert len(stats["alpha_opportunities"]) == 1

    def test_infrastructure_points(self, client):
        points = client.get("/api/infrastructure").json()["points"]

        assert len(points) == 5
        assert {p["category"] for p in points} >= {"tgv_station", "stadium"}

    def test_infrastructure_by_category(self, client):
        response = client.get("/api/infrastructure", params={"category": "stadium"})

        assert [p["category"] for p in response.json()["points"]] == ["stadium"]
        assert client.get("/api/infrastructure", params={"category": "port"}).status_code == 400


# =============================================================================
# Test: Configuration
# =============================================================================

class TestAppConfig:

    def test_cache_ttl_from_config(self, repository):
        config = Config()
        config.cache_ttl_seconds = 5

        app = create_app(config, repository)

        assert app.state.reader.cache.ttl_seconds == 5


# =============================================================================
# Test: Property Search
# =============================================================================

class TestPropertySearch:

    @pytest.fixture
    def populated(self, client, villa_payload, land_payload):
        villa_payload["is_verified"] = True
        client.post("/api/properties", json=villa_payload)
        client.post("/api/properties", json=land_payload)
        client.get("/api/properties/land-1/valuation", params={"persist": "true"})
        return client

    def _ids(self, client, **params):
        return sorted(p["id"] for p in client.get("/api/properties", params=params).json()["properties"])

    def test_multiple_asset_types(self, populated):
        assert self._ids(populated, asset_types="Villa,Land") == ["land-1", "villa-1"]

    def test_price_bounds(self, populated):
        assert self._ids(populated, min_price=5_000_000) == ["land-1"]
        assert self._ids(populated, max_price=5_000_000) == ["villa-1"]

    def test_flags(self, populated):
        assert self._ids(populated, only_verified="true") == ["villa-1"]
        assert self._ids(populated, only_alpha="true") == ["land-1"]

    def test_risk_grades_and_location(self, populated):
        assert self._ids(populated, risk_grades="A") == ["land-1"]
        assert self._ids(populated, neighborhood="route de fes") == ["villa-1"]
        assert self._ids(populated, city="Casablanca") == []

    def test_zoning_filter_keeps_unzoned(self, populated):
        assert self._ids(populated, zoning_codes="SD1") == ["villa-1"]

    def test_invalid_risk_grade(self, populated):
        assert populated.get("/api/properties", params={"risk_grades": "Z"}).status_code == 400


# =============================================================================
# Test: Infrastructure Registry
# =============================================================================

class TestInfrastructureRegistry:

    @pytest.fixture
    def station(self):
        return {
            "id": "tgv-test",
            "name": "Test Station",
            "category": "tgv_station",
            "latitude": 31.90,
            "longitude": -7.70,
            "impact_radius_km": 5,
            "value_multiplier": 1.25,
        }

    def test_registered_points_replace_defaults(self, client, station):
        response = client.post("/api/infrastructure", json=station)

        assert response.status_code == 201
        assert [p["id"] for p in client.get("/api/infrastructure").json()["points"]] == ["tgv-test"]
        assert client.get("/api/infrastructure", params={"default": "true"}).json()["count"] == 5

    def test_duplicate_and_invalid(self, client, station):
        client.post("/api/infrastructure", json=station)

        assert client.post("/api/infrastructure", json=station).status_code == 400
        station["id"] = "other"
        station["category"] = "port"
        assert client.post("/api/infrastructure", json=station).status_code == 400

    def test_valuation_uses_registered_points(self, client, station, villa_payload):
        villa_payload["structural_health"] = {"seismic_chaining": True}
        client.post("/api/properties", json=villa_payload)
        client.post("/api/infrastructure", json=station)

        valuation = client.get("/api/properties/villa-1/valuation").json()["valuation"]

        assert valuation["adjustments"][-1]["factor"] == "infrastructure_proximity"
        assert valuation["forensic_value"] > 1_000_000


# =============================================================================
# Test: Corporate Travel
# =============================================================================

class TestTravel:

    @pytest.fixture
    def riad(self):
        return {
            "id": "riad-1",
            "asset_name": "Riad Mouassine",
            "public_rate_booking": 1_200,
            "public_rate_airbnb": 1_000,
            "forensic_negotiated_rate": 700,
            "wifi_speed_mbps": 120,
            "safety_grade": "A",
            "accessibility_score": 100,
            "rooms": 5,
            "bathrooms": 5,
            "average_monthly_occupancy": 60,
            "gap_days": 12,
            "owner_reliability": 5,
            "safety_checklist": {"smoke_detector": True, "fire_extinguisher": True},
            "last_audit_date": "2099-01-01",
        }

    def test_alpha_and_readiness(self, client, riad):
        body = client.post("/api/travel/alpha", json=riad).json()

        assert body["alpha"]["yield_opportunity"] == "HIGH"
        assert body["alpha"]["recommended_action"].startswith("PRIORITY")
        assert body["readiness"]["tier"] == "PLATINUM"

    def test_portfolio(self, client, riad):
        body = client.post("/api/travel/portfolio", json={"assets": [riad]}).json()

        assert body["summary"]["total_assets"] == 1
        assert body["high_priority_targets"] == ["riad-1"]
        assert body["tier_distribution"]["PLATINUM"] == 1

    def test_management_fee(self, client, riad):
        body = client.post(
            "/api/travel/management-fee", json={"assets": [riad], "booking_nights": 2}
        ).json()

        assert body["total_public_cost"] == 11_000
        assert body["total_forensic_cost"] == 7_000
        assert body["management_fee"] == 1_050
        assert body["client_savings"] == 2_950
