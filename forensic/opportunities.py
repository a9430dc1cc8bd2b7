"""
Opportunity Ranker

Implements:
- Alpha finder (land trading below its zoning potential)
- Market gap verdict (forensic vs market price)
- Gap analysis of scraped portal listings with opportunity scores
- Market baselines, batch processing and deduplication of listings
- Portfolio summary for the dashboard
"""

import logging
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from .models import (
    AssetType,
    GapVerdict,
    MarketVerdict,
    Property,
    RiskGrade,
    ScrapedListing,
)
from .zoning import calculate_zoning_potential


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Constants
# =============================================================================

DEFAULT_MIN_ALPHA_PERCENT = 20

# Market gap verdict band (percent)
MARKET_GAP_BAND = 10

# Gap analysis tier breakpoints (percent)
SEVERELY_OVERPRICED_ABOVE = 30
OVERPRICED_ABOVE = 10
FAIR_FROM = -10
UNDERPRICED_FROM = -25

OPPORTUNITY_SCORES = {
    GapVerdict.SEVERELY_OVERPRICED: 10,
    GapVerdict.OVERPRICED: 30,
    GapVerdict.FAIR: 50,
    GapVerdict.UNDERPRICED: 75,
    GapVerdict.SEVERELY_UNDERPRICED: 95,
}

# Batch reporting
TOP_OPPORTUNITY_MIN_SCORE = 70
TOP_OPPORTUNITY_LIMIT = 20


def _gap_percent(gap_value: float, forensic_price: float) -> float:
    if forensic_price <= 0:
        return 0.0
    return gap_value * 100 / forensic_price


# =============================================================================
# Alpha Finder
# =============================================================================


@dataclass
class AlphaOpportunity:
    """A land parcel priced below its zoning potential."""
    property: Property
    zoning_potential: float
    alpha_value: float
    alpha_percent: float

    def to_dict(self) -> dict:
        return {
            "property": self.property.to_dict(),
            "zoning_potential": self.zoning_potential,
            "alpha_value": round(self.alpha_value, 2),
            "alpha_percent": round(self.alpha_percent, 2),
        }


def find_alpha_opportunities(
    properties: Iterable[Property],
    min_alpha_percent: float = DEFAULT_MIN_ALPHA_PERCENT,
) -> List[AlphaOpportunity]:
    """
    Find land whose zoning potential exceeds its market price.

    Only Land with a zoning code and a market price is considered.

    Returns:
        Opportunities with alpha_percent >= min_alpha_percent, best first
    """
    opportunities = []

    for property in properties:
        if not property.is_land or property.zoning_code is None or not property.market_price:
            continue

        potential = calculate_zoning_potential(property)
        alpha_value = potential - property.market_price
        alpha_percent = alpha_value / property.market_price * 100

        if alpha_percent >= min_alpha_percent:
            opportunities.append(AlphaOpportunity(
                property=property,
                zoning_potential=potential,
                alpha_value=alpha_value,
                alpha_percent=alpha_percent,
            ))

    opportunities.sort(key=lambda o: o.alpha_percent, reverse=True)
    return opportunities


# =============================================================================
# Market Gap
# =============================================================================


@dataclass
class MarketGap:
    """Market price versus forensic price."""
    gap_value: float
    gap_percent: float
    verdict: MarketVerdict

    def to_dict(self) -> dict:
        return {
            "gap_value": self.gap_value,
            "gap_percent": self.gap_percent,
            "verdict": self.verdict.value,
        }


def calculate_market_gap(forensic_price: float, market_price: float) -> MarketGap:
    """
    Compare a market price against the forensic price.

    gap = market - forensic; > +10% overpriced, < -10% underpriced,
    otherwise fair. A non-positive forensic price yields a 0% gap.
    """
    gap_value = market_price - forensic_price
    raw_percent = _gap_percent(gap_value, forensic_price)

    if raw_percent > MARKET_GAP_BAND:
        verdict = MarketVerdict.OVERPRICED
    elif raw_percent < -MARKET_GAP_BAND:
        verdict = MarketVerdict.UNDERPRICED
    else:
        verdict = MarketVerdict.FAIR

    return MarketGap(
        gap_value=float(round(gap_value)),
        gap_percent=round(raw_percent, 2),
        verdict=verdict,
    )


# =============================================================================
# Listing Gap Analysis
# =============================================================================


@dataclass
class GapAnalysis:
    """Gap between a scraped asking price and its forensic valuation."""
    listing: ScrapedListing
    forensic_price: float
    gap_value: float
    gap_percent: float
    verdict: GapVerdict
    opportunity_score: int

    def to_dict(self) -> dict:
        return {
            "listing": self.listing.to_dict(),
            "forensic_price": self.forensic_price,
            "gap_value": self.gap_value,
            "gap_percent": self.gap_percent,
            "verdict": self.verdict.value,
            "opportunity_score": self.opportunity_score,
        }


def classify_gap(gap_percent: float) -> GapVerdict:
    """Five-tier verdict for an asking-price gap."""
    if gap_percent > SEVERELY_OVERPRICED_ABOVE:
        return GapVerdict.SEVERELY_OVERPRICED
    if gap_percent > OVERPRICED_ABOVE:
        return GapVerdict.OVERPRICED
    if gap_percent >= FAIR_FROM:
        return GapVerdict.FAIR
    if gap_percent >= UNDERPRICED_FROM:
        return GapVerdict.UNDERPRICED
    return GapVerdict.SEVERELY_UNDERPRICED


def analyze_gap(listing: ScrapedListing, forensic_price: float) -> GapAnalysis:
    """Score one scraped listing against its forensic price."""
    asking_price = listing.asking_price or 0.0
    gap_value = asking_price - forensic_price
    raw_percent = _gap_percent(gap_value, forensic_price)
    verdict = classify_gap(raw_percent)

    return GapAnalysis(
        listing=listing,
        forensic_price=forensic_price,
        gap_value=round(gap_value, 2),
        gap_percent=round(raw_percent, 2),
        verdict=verdict,
        opportunity_score=OPPORTUNITY_SCORES[verdict],
    )


# =============================================================================
# Market Baseline
# =============================================================================


@dataclass
class MarketBaseline:
    """Average asking prices over a filtered set of listings."""
    asset_type: Optional[AssetType]
    neighborhood: Optional[str]
    avg_price: float
    avg_price_per_m2: float
    min_price: float
    max_price: float
    sample_size: int
    calculated_at: datetime

    def to_dict(self) -> dict:
        return {
            "asset_type": self.asset_type.value if self.asset_type else None,
            "neighborhood": self.neighborhood,
            "avg_price": round(self.avg_price, 2),
            "avg_price_per_m2": round(self.avg_price_per_m2, 2),
            "min_price": self.min_price,
            "max_price": self.max_price,
            "sample_size": self.sample_size,
            "calculated_at": self.calculated_at.isoformat(),
        }


def calculate_market_baseline(
    listings: Iterable[ScrapedListing],
    asset_type: Optional[AssetType] = None,
    neighborhood: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Optional[MarketBaseline]:
    """
    Baseline prices from listings with a positive asking price.

    Returns:
        MarketBaseline, or None when no listing matches the filters
    """
    filtered = [l for l in listings if l.asking_price and l.asking_price > 0]

    if asset_type is not None:
        filtered = [l for l in filtered if l.asset_type is asset_type]

    if neighborhood:
        wanted = neighborhood.strip().lower()
        filtered = [l for l in filtered if (l.neighborhood or "").strip().lower() == wanted]

    if not filtered:
        return None

    prices = [l.asking_price for l in filtered]
    prices_per_m2 = [l.asking_price / l.size_m2 for l in filtered if l.size_m2]

    return MarketBaseline(
        asset_type=asset_type,
        neighborhood=neighborhood,
        avg_price=sum(prices) / len(prices),
        avg_price_per_m2=sum(prices_per_m2) / len(prices_per_m2) if prices_per_m2 else 0.0,
        min_price=min(prices),
        max_price=max(prices),
        sample_size=len(filtered),
        calculated_at=now or datetime.now(),
    )


# =============================================================================
# Batch Processing
# =============================================================================


@dataclass
class ItemOutcome:
    """Result-or-error for one listing in a batch."""
    listing: ScrapedListing
    gap: Optional[GapAnalysis] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.gap is not None


@dataclass
class BatchResult:
    """Aggregate of one batch run over scraped listings."""
    total_scraped: int
    total_processed: int
    total_errors: int
    opportunities_found: int
    baselines: List[MarketBaseline] = field(default_factory=list)
    top_opportunities: List[GapAnalysis] = field(default_factory=list)
    processed_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "total_scraped": self.total_scraped,
            "total_processed": self.total_processed,
            "total_errors": self.total_errors,
            "opportunities_found": self.opportunities_found,
            "baselines": [b.to_dict() for b in self.baselines],
            "top_opportunities": [g.to_dict() for g in self.top_opportunities],
            "processed_at": self.processed_at.isoformat() if self.processed_at else None,
        }


def evaluate_listing(
    listing: ScrapedListing,
    get_forensic_price: Callable[[ScrapedListing], float],
) -> ItemOutcome:
    """Value one listing; a failing valuation lookup becomes an error outcome."""
    try:
        forensic_price = get_forensic_price(listing)
        return ItemOutcome(listing=listing, gap=analyze_gap(listing, forensic_price))
    except Exception as e:
        logger.warning("Forensic price lookup failed for %s: %s", listing.source_url, e)
        return ItemOutcome(listing=listing, error=str(e))


def process_batch(
    listings: Sequence[ScrapedListing],
    get_forensic_price: Callable[[ScrapedListing], float],
    max_workers: int = 1,
    now: Optional[datetime] = None,
) -> BatchResult:
    """
    Gap-analyse a batch of listings.

    Each listing is evaluated independently (on a thread pool when
    max_workers > 1); failures are counted and excluded, never abort the
    batch. Outcomes keep input order, so results are deterministic.

    Args:
        listings: Scraped listings
        get_forensic_price: Per-listing forensic price lookup
        max_workers: Worker threads for the lookups
        now: Timestamp for the run (default: now)

    Returns:
        BatchResult with per-type baselines and the top 20 opportunities
    """
    if max_workers > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            outcomes = list(executor.map(
                lambda listing: evaluate_listing(listing, get_forensic_price),
                listings,
            ))
    else:
        outcomes = [evaluate_listing(listing, get_forensic_price) for listing in listings]

    gaps = [o.gap for o in outcomes if o.ok]
    errors = sum(1 for o in outcomes if not o.ok)

    processed_at = now or datetime.now()

    baselines = []
    for asset_type in AssetType:
        baseline = calculate_market_baseline(listings, asset_type=asset_type, now=processed_at)
        if baseline is not None:
            baselines.append(baseline)

    top = sorted(
        (g for g in gaps if g.opportunity_score >= TOP_OPPORTUNITY_MIN_SCORE),
        key=lambda g: g.opportunity_score,
        reverse=True,
    )[:TOP_OPPORTUNITY_LIMIT]

    if errors:
        logger.info("Batch processed %d/%d listings (%d errors)", len(gaps), len(listings), errors)

    return BatchResult(
        total_scraped=len(listings),
        total_processed=len(gaps),
        total_errors=errors,
        opportunities_found=len(top),
        baselines=baselines,
        top_opportunities=top,
        processed_at=processed_at,
    )


def deduplicate_listings(listings: Iterable[ScrapedListing]) -> List[ScrapedListing]:
    """
    Remove duplicate listings.

    Exact URL duplicates keep the first occurrence. Listings with the same
    asking price, size and neighbourhood (cross-posted on several portals)
    keep the most recent scrape, in the position of the first one seen.
    """
    seen_urls = set()
    by_key: Dict[object, ScrapedListing] = {}

    for listing in listings:
        if listing.source_url in seen_urls:
            continue
        seen_urls.add(listing.source_url)

        if listing.asking_price:
            key = (
                listing.asking_price,
                listing.size_m2,
                (listing.neighborhood or "").strip().lower(),
            )
        else:
            key = ("url", listing.source_url)

        existing = by_key.get(key)
        if existing is None or listing.scraped_at > existing.scraped_at:
            by_key[key] = listing

    return list(by_key.values())


# =============================================================================
# Portfolio Summary
# =============================================================================


@dataclass
class PortfolioSummary:
    """Dashboard statistics over a property collection."""
    total_properties: int
    verified_properties: int
    total_alpha_value: float
    properties_by_risk: Dict[str, int]
    properties_by_type: Dict[str, int]
    market_vs_forensic_gap: float

    def to_dict(self) -> dict:
        return {
            "total_properties": self.total_properties,
            "verified_properties": self.verified_properties,
            "total_alpha_value": round(self.total_alpha_value, 2),
            "properties_by_risk": dict(self.properties_by_risk),
            "properties_by_type": dict(self.properties_by_type),
            "market_vs_forensic_gap": self.market_vs_forensic_gap,
        }


def summarize_portfolio(properties: Sequence[Property]) -> PortfolioSummary:
    """
    Summarise a portfolio.

    total_alpha_value sums positive (zoning potential - market price) over
    properties carrying both. market_vs_forensic_gap is the mean market gap
    percent over properties with both prices.
    """
    total_alpha = 0.0
    gaps = []

    for property in properties:
        if property.zoning_potential_value and property.market_price:
            total_alpha += max(0.0, property.zoning_potential_value - property.market_price)
        if property.forensic_price and property.market_price:
            gaps.append(calculate_market_gap(property.forensic_price, property.market_price).gap_percent)

    by_risk = Counter(p.risk_grade.value for p in properties)
    by_type = Counter(p.asset_type.value for p in properties)

    return PortfolioSummary(
        total_properties=len(properties),
        verified_properties=sum(1 for p in properties if p.is_verified),
        total_alpha_value=total_alpha,
        properties_by_risk={grade.value: by_risk.get(grade.value, 0) for grade in RiskGrade},
        properties_by_type=dict(by_type),
        market_vs_forensic_gap=round(sum(gaps) / len(gaps), 2) if gaps else 0.0,
    )
