"""
Forensic Valuation Engine - Core Business Logic

Deterministic pipeline for Marrakech real estate:
1. Structural / seismic scoring (RPS 2011/2026)
2. Compliance validation (land deadline, foreign authorisation, tax gate, seismic)
3. Zoning potential (CES/COS coefficients)
4. Infrastructure proximity and resilience (2030 build-out)
5. Forensic valuation, risk grade and confidence
6. Opportunity ranking (alpha finder, market gaps, listing gap analysis)
7. Corporate travel alpha (short-stay yield gaps and readiness)

All money amounts are MAD.
"""

from .models import (
    AssetType,
    ZoningCode,
    DocumentType,
    InfrastructureCategory,
    RiskGrade,
    ComplianceStatus,
    FlagSeverity,
    MarketVerdict,
    GapVerdict,
    ListingPortal,
    StructuralHealthScore,
    Property,
    ZoningCodeInfo,
    InfrastructurePoint,
    ForensicDocument,
    ValuationAdjustment,
    ValuationResult,
    ScrapedListing,
)
from .geo import distance_km
from .structural import calculate_structural_adjustments, calculate_seismic_adjustment
from .compliance import (
    ComplianceFlag,
    ComplianceResult,
    DocumentCompletenessResult,
    validate_land_deadline,
    validate_foreign_authorization,
    validate_tax_gate,
    validate_seismic,
    perform_compliance_audit,
    check_document_completeness,
)
from .zoning import (
    ZoningPotential,
    ZoningValidationResult,
    assess_zoning_potential,
    calculate_zoning_potential,
    validate_zoning,
)
from .infrastructure import (
    calculate_infrastructure_bonus,
    calculate_resilience_score,
    nearest_distances,
)
from .valuation import (
    calculate_fair_market_value,
    calculate_risk_grade,
    calculate_confidence_score,
)
from .opportunities import (
    AlphaOpportunity,
    MarketGap,
    GapAnalysis,
    BatchResult,
    PortfolioSummary,
    find_alpha_opportunities,
    calculate_market_gap,
    analyze_gap,
    calculate_market_baseline,
    process_batch,
    deduplicate_listings,
    summarize_portfolio,
)
from .listings import parse_price, parse_area, detect_asset_type, extract_neighborhood
from .validation import PropertyValidationResult, validate_property
from .travel_alpha import (
    TravelAsset,
    TravelAlphaResult,
    CorporateReadiness,
    calculate_travel_alpha,
    calculate_corporate_readiness,
    analyze_travel_portfolio,
    calculate_management_fee,
)

__all__ = [
    # Taxonomies
    "AssetType",
    "ZoningCode",
    "DocumentType",
    "InfrastructureCategory",
    "RiskGrade",
    "ComplianceStatus",
    "FlagSeverity",
    "MarketVerdict",
    "GapVerdict",
    "ListingPortal",
    # Records
    "StructuralHealthScore",
    "Property",
    "ZoningCodeInfo",
    "InfrastructurePoint",
    "ForensicDocument",
    "ValuationAdjustment",
    "ValuationResult",
    "ScrapedListing",
    # Geospatial
    "distance_km",
    # Structural
    "calculate_structural_adjustments",
    "calculate_seismic_adjustment",
    # Compliance
    "ComplianceFlag",
    "ComplianceResult",
    "DocumentCompletenessResult",
    "validate_land_deadline",
    "validate_foreign_authorization",
    "validate_tax_gate",
    "validate_seismic",
    "perform_compliance_audit",
    "check_document_completeness",
    # Zoning
    "ZoningPotential",
    "ZoningValidationResult",
    "assess_zoning_potential",
    "calculate_zoning_potential",
    "validate_zoning",
    # Infrastructure
    "calculate_infrastructure_bonus",
    "calculate_resilience_score",
    "nearest_distances",
    # Valuation
    "calculate_fair_market_value",
    "calculate_risk_grade",
    "calculate_confidence_score",
    # Opportunities
    "AlphaOpportunity",
    "MarketGap",
    "GapAnalysis",
    "BatchResult",
    "PortfolioSummary",
    "find_alpha_opportunities",
    "calculate_market_gap",
    "analyze_gap",
    "calculate_market_baseline",
    "process_batch",
    "deduplicate_listings",
    "summarize_portfolio",
    # Listings
    "parse_price",
    "parse_area",
    "detect_asset_type",
    "extract_neighborhood",
    # Validation
    "PropertyValidationResult",
    "validate_property",
    # Corporate travel
    "TravelAsset",
    "TravelAlphaResult",
    "CorporateReadiness",
    "calculate_travel_alpha",
    "calculate_corporate_readiness",
    "analyze_travel_portfolio",
    "calculate_management_fee",
]
