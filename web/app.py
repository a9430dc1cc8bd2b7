"""
FastAPI application for the forensic valuation engine.

Thin JSON surface over the engine: the routes load records from the
property store, call the engine, and serialise the results. All business
rules live in the forensic package.

Production deployment configuration via environment variables.
"""

import logging
import os
import uuid
from datetime import date, datetime
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from pydantic import BaseModel

from forensic import (
    AssetType,
    ForensicDocument,
    InfrastructureCategory,
    InfrastructurePoint,
    ListingPortal,
    Property,
    RiskGrade,
    ScrapedListing,
    ZoningCode,
    analyze_gap,
    calculate_fair_market_value,
    calculate_market_gap,
    check_document_completeness,
    find_alpha_opportunities,
    perform_compliance_audit,
    summarize_portfolio,
    validate_property,
)
from forensic.reference import DEFAULT_INFRASTRUCTURE, ZONING_CODE_INFO
from forensic.store import CachedPropertyReader, PropertyFilter, PropertyRepository, TTLCache
from forensic.travel_alpha import (
    TravelAsset,
    analyze_travel_portfolio,
    calculate_corporate_readiness,
    calculate_management_fee,
    calculate_travel_alpha,
)
from utils.config import Config


logger = logging.getLogger(__name__)


# =============================================================================
# Environment Configuration
# =============================================================================

IS_PRODUCTION = os.getenv("PRODUCTION", "").lower() == "true"

ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "").split(",") if os.getenv("ALLOWED_ORIGINS") else []
if not ALLOWED_ORIGINS and not IS_PRODUCTION:
    # Development fallback only
    ALLOWED_ORIGINS = ["http://localhost:3000", "http://localhost:8000", "http://127.0.0.1:8000"]

APP_VERSION = "0.1.0"


# =============================================================================
# Request Models
# =============================================================================

class StructuralHealthInput(BaseModel):
    """Structural health as captured by the field auditor."""
    seismic_chaining: Optional[bool] = None
    rps_2011_compliant: bool = False
    rps_2026_compliant: bool = False
    humidity_score: Optional[float] = None
    foundation_depth_m: Optional[float] = None
    roof_life_years: Optional[float] = None
    overall_score: Optional[float] = None


class PropertyInput(BaseModel):
    """Audit submission for a new property."""
    id: Optional[str] = None
    asset_type: str
    latitude: float
    longitude: float
    title: str = ""
    address: str = ""
    city: str = "Marrakech"
    neighborhood: Optional[str] = None
    terrain_size_m2: Optional[float] = None
    built_size_m2: Optional[float] = None
    floors: Optional[int] = None
    rooms: Optional[int] = None
    bathrooms: Optional[int] = None
    year_built: Optional[int] = None
    market_price: Optional[float] = None
    zoning_code: Optional[str] = None
    structural_health: StructuralHealthInput = StructuralHealthInput()
    distance_tgv_station_km: Optional[float] = None
    distance_stadium_km: Optional[float] = None
    distance_highway_km: Optional[float] = None
    distance_airport_km: Optional[float] = None
    deadline_flagged: bool = False
    foreign_authorization_required: bool = False
    tax_gate_passed: bool = False
    is_verified: bool = False
    verified_by: str = ""
    source_url: str = ""
    source_portal: str = ""
    audit_notes: List[str] = []


class DocumentInput(BaseModel):
    """A verification document attached to a property."""
    id: Optional[str] = None
    document_type: str
    is_verified: bool = False
    qr_code_verified: bool = False
    document_date: Optional[date] = None
    expiry_date: Optional[date] = None
    reference_number: str = ""
    issuing_authority: str = ""


class ComplianceRequest(BaseModel):
    """Transaction context for a compliance audit."""
    purchase_date: Optional[date] = None
    buyer_nationality: Optional[str] = None
    persist: bool = False


class MarketGapRequest(BaseModel):
    forensic_price: float
    market_price: float


class ListingInput(BaseModel):
    """A scraped portal listing."""
    source_portal: str
    source_url: str
    scraped_at: Optional[datetime] = None
    source_listing_id: str = ""
    title: str = ""
    asset_type: Optional[str] = None
    city: str = ""
    neighborhood: Optional[str] = None
    asking_price: Optional[float] = None
    terrain_size_m2: Optional[float] = None
    built_size_m2: Optional[float] = None
    rooms: Optional[int] = None
    bathrooms: Optional[int] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class GapAnalysisRequest(BaseModel):
    listing: ListingInput
    forensic_price: float


class InfrastructureInput(BaseModel):
    """A new infrastructure project."""
    id: Optional[str] = None
    name: str
    category: str = "industrial_zone"
    latitude: float
    longitude: float
    is_operational: bool = False
    completion_year: Optional[int] = None
    impact_radius_km: Optional[float] = None
    value_multiplier: Optional[float] = None
    description: str = ""


class TravelAssetInput(BaseModel):
    """A short-stay asset from a corporate travel audit."""
    id: str
    asset_name: str = ""
    district: str = ""
    city: str = "Marrakech"
    currency: str = "MAD"
    public_rate_booking: float
    public_rate_airbnb: float
    forensic_negotiated_rate: float
    wifi_speed_mbps: float = 0.0
    safety_grade: str = "C"
    accessibility_score: float = 0.0
    rooms: int = 1
    max_guests: int = 2
    bathrooms: int = 1
    current_occupancy_rate: float = 0.0
    average_monthly_occupancy: float = 0.0
    gap_days: int = 0
    owner_reliability: int = 3
    safety_checklist: dict = {}
    last_audit_date: Optional[date] = None


class TravelPortfolioRequest(BaseModel):
    assets: List[TravelAssetInput]


class ManagementFeeRequest(BaseModel):
    assets: List[TravelAssetInput]
    booking_nights: int
    fee_percent: float = 15


def _parse_enum_list(raw: Optional[str], enum_cls, name: str) -> list:
    """Comma-separated query value to enum members; 400 on an unknown value."""
    if not raw:
        return []
    members = []
    for value in raw.split(","):
        member = enum_cls.from_string(value)
        if member is None:
            raise HTTPException(status_code=400, detail=f"Invalid {name}: {value}")
        members.append(member)
    return members


def _to_travel_asset(data: TravelAssetInput) -> TravelAsset:
    return TravelAsset.from_dict(data.model_dump())


def _to_listing(data: ListingInput) -> ScrapedListing:
    portal = ListingPortal.from_string(data.source_portal)
    if portal is None:
        raise HTTPException(status_code=400, detail=f"Invalid source_portal: {data.source_portal}")

    return ScrapedListing(
        source_portal=portal,
        source_url=data.source_url,
        scraped_at=data.scraped_at or datetime.now(),
        source_listing_id=data.source_listing_id,
        title=data.title,
        asset_type=AssetType.from_string(data.asset_type),
        city=data.city,
        neighborhood=data.neighborhood,
        asking_price=data.asking_price,
        terrain_size_m2=data.terrain_size_m2,
        built_size_m2=data.built_size_m2,
        rooms=data.rooms,
        bathrooms=data.bathrooms,
        latitude=data.latitude,
        longitude=data.longitude,
    )


def create_app(
    config: Optional[Config] = None,
    repository: Optional[PropertyRepository] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        config: Application configuration (default: from environment)
        repository: Property store (default: JSON-backed store under DATA_DIR)
    """
    config = config or Config.load()
    repository = repository or PropertyRepository(config.properties_path)
    reader = CachedPropertyReader(repository, TTLCache(ttl_seconds=config.cache_ttl_seconds))

    app = FastAPI(
        title="Forensic Valuation Engine",
        description="Valuation and compliance engine for Marrakech real estate",
        version=APP_VERSION,
        docs_url=None if IS_PRODUCTION else "/docs",
        redoc_url=None if IS_PRODUCTION else "/redoc",
        openapi_url=None if IS_PRODUCTION else "/openapi.json",
        debug=config.debug,
    )
    app.state.config = config
    app.state.repository = repository
    app.state.reader = reader

    # Healthcheck first: no dependencies, no IO
    @app.get("/health", include_in_schema=False)
    def health():
        return {"status": "healthy", "version": APP_VERSION}

    if ALLOWED_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=ALLOWED_ORIGINS,
            allow_credentials=True,
            allow_methods=["GET", "POST"],
            allow_headers=["*"],
        )

    def load_property(property_id: str) -> Property:
        property = reader.get(property_id)
        if property is None:
            raise HTTPException(status_code=404, detail="Property not found")
        return property

    def infrastructure_points() -> List[InfrastructurePoint]:
        """Registered projects, or the built-in 2030 set while none are registered."""
        return repository.list_infrastructure() or list(DEFAULT_INFRASTRUCTURE)

    # =========================================================================
    # Properties
    # =========================================================================

    @app.get("/api/properties")
    def list_properties(
        asset_type: Optional[str] = None,
        asset_types: Optional[str] = None,
        risk_grades: Optional[str] = None,
        zoning_codes: Optional[str] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        only_verified: bool = False,
        only_alpha: bool = False,
        city: Optional[str] = None,
        neighborhood: Optional[str] = None,
    ):
        """
        List properties.

        List filters take comma-separated values, e.g.
        ?asset_types=Villa,Land&risk_grades=A,B. asset_type is a single-value
        alias for asset_types.
        """
        filters = PropertyFilter(
            asset_types=_parse_enum_list(
                ",".join(v for v in (asset_type, asset_types) if v), AssetType, "asset_type"
            ),
            risk_grades=_parse_enum_list(risk_grades, RiskGrade, "risk_grade"),
            zoning_codes=_parse_enum_list(zoning_codes, ZoningCode, "zoning_code"),
            min_price=min_price,
            max_price=max_price,
            only_verified=only_verified,
            only_alpha=only_alpha,
            city=city,
            neighborhood=neighborhood,
        )
        properties = [p for p in reader.list_all() if filters.matches(p)]
        return {
            "count": len(properties),
            "properties": [p.to_dict() for p in properties],
        }

    @app.post("/api/properties")
    def create_property(payload: PropertyInput):
        """Store an audit submission after range validation."""
        data = payload.model_dump()
        data["id"] = data.get("id") or uuid.uuid4().hex

        validation = validate_property(data)
        if not validation.is_valid:
            raise HTTPException(status_code=422, detail=validation.errors)

        property = Property.from_dict(data)
        if data["is_verified"]:
            property.verified_at = datetime.now()

        try:
            repository.create(property)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

        reader.invalidate(property.id)
        logger.info("Created property %s (%s)", property.id, property.asset_type.value)
        return {"success": True, "property": property.to_dict()}

    @app.get("/api/properties/{property_id}")
    def get_property(property_id: str):
        property = load_property(property_id)
        return {
            "property": property.to_dict(),
            "documents": [d.to_dict() for d in repository.get_documents(property_id)],
        }

    @app.get("/api/properties/{property_id}/valuation")
    def get_valuation(
        property_id: str,
        infrastructure: bool = True,
        persist: bool = False,
    ):
        """
        Run the forensic valuation for one property.

        With persist=true the forensic price, zoning potential, risk grade,
        alpha score and resilience score are written back to the store.
        """
        property = load_property(property_id)
        zoning_info = ZONING_CODE_INFO.get(property.zoning_code) if property.zoning_code else None

        result = calculate_fair_market_value(
            property,
            zoning_info=zoning_info,
            infrastructure_points=infrastructure_points() if infrastructure else None,
        )

        if persist:
            repository.apply_valuation(property_id, result)
            reader.invalidate(property_id)

        return {"property_id": property_id, "valuation": result.to_dict()}

    @app.post("/api/properties/{property_id}/compliance")
    def run_compliance(property_id: str, payload: ComplianceRequest):
        """Run the compliance audit against the documents on file."""
        property = load_property(property_id)
        documents = repository.get_documents(property_id)

        result = perform_compliance_audit(
            property,
            documents,
            purchase_date=payload.purchase_date,
            buyer_nationality=payload.buyer_nationality or config.default_buyer_nationality,
        )
        completeness = check_document_completeness(property, documents)

        if payload.persist:
            repository.apply_compliance(property_id, result)
            reader.invalidate(property_id)

        return {
            "property_id": property_id,
            "compliance": result.to_dict(),
            "documents": completeness.to_dict(),
        }

    @app.post("/api/properties/{property_id}/documents")
    def add_document(property_id: str, payload: DocumentInput):
        load_property(property_id)

        data = payload.model_dump()
        data["id"] = data.get("id") or uuid.uuid4().hex
        data["property_id"] = property_id

        try:
            document = ForensicDocument.from_dict(data)
            repository.add_document(document)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

        return {"success": True, "document": document.to_dict()}

    @app.get("/api/properties/{property_id}/report")
    def get_report(property_id: str, buyer_nationality: Optional[str] = None):
        """Forensic audit PDF for one property."""
        from reporting import AuditReportGenerator

        property = load_property(property_id)
        documents = repository.get_documents(property_id)
        zoning_info = ZONING_CODE_INFO.get(property.zoning_code) if property.zoning_code else None

        valuation = calculate_fair_market_value(property, zoning_info, infrastructure_points())
        compliance = perform_compliance_audit(
            property,
            documents,
            buyer_nationality=buyer_nationality or config.default_buyer_nationality,
        )

        pdf = AuditReportGenerator().generate_to_buffer(property, valuation, compliance)
        return Response(
            content=pdf,
            media_type="application/pdf",
            headers={"Content-Disposition": f'inline; filename="audit-{property_id}.pdf"'},
        )

    # =========================================================================
    # Market analysis
    # =========================================================================

    @app.get("/api/opportunities/alpha")
    def alpha_opportunities(
        min_alpha_percent: Optional[float] = Query(default=None),
        limit: int = Query(default=20, ge=1, le=100),
    ):
        threshold = config.min_alpha_percent if min_alpha_percent is None else min_alpha_percent
        opportunities = find_alpha_opportunities(reader.list_all(), threshold)
        return {
            "min_alpha_percent": threshold,
            "count": len(opportunities),
            "opportunities": [o.to_dict() for o in opportunities[:limit]],
        }

    @app.post("/api/market-gap")
    def market_gap(payload: MarketGapRequest):
        return calculate_market_gap(payload.forensic_price, payload.market_price).to_dict()

    @app.post("/api/gap-analysis")
    def gap_analysis(payload: GapAnalysisRequest):
        listing = _to_listing(payload.listing)
        return analyze_gap(listing, payload.forensic_price).to_dict()

    # =========================================================================
    # Infrastructure
    # =========================================================================

    @app.get("/api/infrastructure")
    def list_infrastructure(category: Optional[str] = None, default: bool = False):
        """
        Infrastructure projects used for proximity scoring.

        Falls back to the built-in 2030 set while none are registered, or
        when default=true.
        """
        points = list(DEFAULT_INFRASTRUCTURE) if default else infrastructure_points()
        if category:
            wanted = InfrastructureCategory.from_string(category)
            if wanted is None:
                raise HTTPException(status_code=400, detail=f"Invalid category: {category}")
            points = [p for p in points if p.category is wanted]
        return {"count": len(points), "points": [p.to_dict() for p in points]}

    @app.post("/api/infrastructure", status_code=201)
    def add_infrastructure(payload: InfrastructureInput):
        data = payload.model_dump()
        data["id"] = data.get("id") or uuid.uuid4().hex

        try:
            point = repository.add_infrastructure_point(InfrastructurePoint.from_dict(data))
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

        return {"success": True, "point": point.to_dict()}

    # =========================================================================
    # Corporate travel
    # =========================================================================

    @app.post("/api/travel/alpha")
    def travel_alpha(payload: TravelAssetInput):
        """Yield gap and corporate readiness of one short-stay asset."""
        asset = _to_travel_asset(payload)
        return {
            "asset_id": asset.id,
            "alpha": calculate_travel_alpha(asset).to_dict(),
            "readiness": calculate_corporate_readiness(asset).to_dict(),
        }

    @app.post("/api/travel/portfolio")
    def travel_portfolio(payload: TravelPortfolioRequest):
        assets = [_to_travel_asset(a) for a in payload.assets]
        return analyze_travel_portfolio(assets).to_dict()

    @app.post("/api/travel/management-fee")
    def travel_management_fee(payload: ManagementFeeRequest):
        assets = [_to_travel_asset(a) for a in payload.assets]
        fee = calculate_management_fee(assets, payload.booking_nights, payload.fee_percent)
        return fee.to_dict()

    @app.get("/api/stats")
    def stats():
        properties = reader.list_all()
        opportunities = find_alpha_opportunities(properties, config.min_alpha_percent)
        return {
            "stats": summarize_portfolio(properties).to_dict(),
            "alpha_opportunities": [o.to_dict() for o in opportunities[:10]],
        }

    logger.info("Forensic Valuation Engine app created (%d properties)", repository.count())
    return app


# Create app instance for uvicorn
app = create_app()
