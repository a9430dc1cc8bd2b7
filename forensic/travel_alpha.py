"""
Travel Alpha Calculator

Short-stay assets audited for corporate travel ahead of the 2030 World Cup.

Implements:
- Travel alpha (yield gap between public OTA rates and the negotiated rate)
- Corporate readiness score and tier
- Portfolio roll-up
- Management fee on consolidated corporate bookings
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional, Sequence

from .models import _parse_bool, _parse_date


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Constants
# =============================================================================

# (minimum gap days, occupancy multiplier), checked in order
OCCUPANCY_MULTIPLIERS = ((15, 1.4), (10, 1.25), (5, 1.1))

# Yield score = gap% * 0.6 + gap days * 0.4
YIELD_GAP_WEIGHT = 0.6
YIELD_DAYS_WEIGHT = 0.4
HIGH_YIELD_FROM = 25
MEDIUM_YIELD_FROM = 15

# (minimum Mbps, points), checked in order; anything slower scores 5
CONNECTIVITY_POINTS = ((100, 25), (50, 20), (25, 15), (10, 10))
CONNECTIVITY_FLOOR = 5

SAFETY_GRADE_POINTS = {"A": 20, "B": 15, "C": 10, "D": 5, "F": 0}
SAFETY_CHECKLIST_POINTS = 10
ACCESSIBILITY_WEIGHT = 0.2
ACCESSIBILITY_MAX = 20
RELIABILITY_MAX = 15

DEFAULT_MANAGEMENT_FEE_PERCENT = 15

READINESS_TIERS = ("PLATINUM", "GOLD", "SILVER", "BRONZE", "UNQUALIFIED")


# =============================================================================
# Data Models
# =============================================================================


@dataclass
class TravelAsset:
    """
    A short-stay asset (riad, villa, serviced apartment) after a field audit.

    Rates are per night. owner_reliability is 1 (poor) to 5 (excellent).
    safety_checklist maps checklist item id to whether it passed.
    """
    id: str
    asset_name: str
    public_rate_booking: float
    public_rate_airbnb: float
    forensic_negotiated_rate: float
    district: str = ""
    city: str = "Marrakech"
    currency: str = "MAD"
    wifi_speed_mbps: float = 0.0
    safety_grade: str = "C"
    accessibility_score: float = 0.0  # 0-100
    rooms: int = 1
    max_guests: int = 2
    bathrooms: int = 1
    current_occupancy_rate: float = 0.0  # percent
    average_monthly_occupancy: float = 0.0  # percent
    gap_days: int = 0
    owner_reliability: int = 3
    safety_checklist: Dict[str, bool] = field(default_factory=dict)
    last_audit_date: Optional[date] = None

    @property
    def public_rate_avg(self) -> float:
        return (self.public_rate_booking + self.public_rate_airbnb) / 2

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "asset_name": self.asset_name,
            "district": self.district,
            "city": self.city,
            "currency": self.currency,
            "public_rate_booking": self.public_rate_booking,
            "public_rate_airbnb": self.public_rate_airbnb,
            "forensic_negotiated_rate": self.forensic_negotiated_rate,
            "wifi_speed_mbps": self.wifi_speed_mbps,
            "safety_grade": self.safety_grade,
            "accessibility_score": self.accessibility_score,
            "rooms": self.rooms,
            "max_guests": self.max_guests,
            "bathrooms": self.bathrooms,
            "current_occupancy_rate": self.current_occupancy_rate,
            "average_monthly_occupancy": self.average_monthly_occupancy,
            "gap_days": self.gap_days,
            "owner_reliability": self.owner_reliability,
            "safety_checklist": dict(self.safety_checklist),
            "last_audit_date": self.last_audit_date.isoformat() if self.last_audit_date else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TravelAsset":
        checklist = data.get("safety_checklist") or {}
        if isinstance(checklist, list):
            checklist = {item["id"]: item.get("checked") for item in checklist}
        return cls(
            id=str(data["id"]),
            asset_name=data.get("asset_name") or "",
            public_rate_booking=float(data["public_rate_booking"]),
            public_rate_airbnb=float(data["public_rate_airbnb"]),
            forensic_negotiated_rate=float(data["forensic_negotiated_rate"]),
            district=data.get("district") or "",
            city=data.get("city") or "Marrakech",
            currency=data.get("currency") or "MAD",
            wifi_speed_mbps=float(data.get("wifi_speed_mbps") or 0),
            safety_grade=str(data.get("safety_grade") or "C").upper(),
            accessibility_score=float(data.get("accessibility_score") or 0),
            rooms=int(data.get("rooms") or 1),
            max_guests=int(data.get("max_guests") or 2),
            bathrooms=int(data.get("bathrooms") or 1),
            current_occupancy_rate=float(data.get("current_occupancy_rate") or 0),
            average_monthly_occupancy=float(data.get("average_monthly_occupancy") or 0),
            gap_days=int(data.get("gap_days") or 0),
            owner_reliability=int(data.get("owner_reliability") or 3),
            safety_checklist={str(k): _parse_bool(v) for k, v in checklist.items()},
            last_audit_date=_parse_date(data.get("last_audit_date")),
        )


@dataclass
class TravelAlphaResult:
    """Yield gap of one asset."""
    asset_id: str
    public_rate_avg: float
    forensic_rate: float
    absolute_gap: float
    percentage_gap: float
    annualized_alpha: float
    yield_opportunity: str  # HIGH, MEDIUM or LOW
    recommended_action: str

    def to_dict(self) -> dict:
        return {
            "asset_id": self.asset_id,
            "public_rate_avg": self.public_rate_avg,
            "forensic_rate": self.forensic_rate,
            "absolute_gap": self.absolute_gap,
            "percentage_gap": self.percentage_gap,
            "annualized_alpha": self.annualized_alpha,
            "yield_opportunity": self.yield_opportunity,
            "recommended_action": self.recommended_action,
        }


@dataclass
class CorporateReadiness:
    """Corporate readiness score (0-100) and its breakdown."""
    total: float
    connectivity: float
    safety: float
    accessibility: float
    reliability: float
    standardization: float
    tier: str

    @property
    def fortune500_ready(self) -> bool:
        return self.tier in ("PLATINUM", "GOLD")

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "breakdown": {
                "connectivity": self.connectivity,
                "safety": self.safety,
                "accessibility": self.accessibility,
                "reliability": self.reliability,
                "standardization": self.standardization,
            },
            "tier": self.tier,
            "fortune500_ready": self.fortune500_ready,
        }


@dataclass
class ManagementFee:
    """Cost comparison for a consolidated corporate booking."""
    total_public_cost: float
    total_forensic_cost: float
    management_fee: float
    client_savings: float
    net_client_cost: float

    def to_dict(self) -> dict:
        return {
            "total_public_cost": self.total_public_cost,
            "total_forensic_cost": self.total_forensic_cost,
            "management_fee": self.management_fee,
            "client_savings": self.client_savings,
            "net_client_cost": self.net_client_cost,
        }


@dataclass
class TravelPortfolioAnalysis:
    """Consolidated alpha and readiness over a set of travel assets."""
    total_assets: int
    total_annual_alpha: float
    avg_percentage_gap: float
    fortune500_ready_count: int
    fortune500_ready_percent: float
    avg_readiness_score: float
    tier_distribution: Dict[str, int]
    alphas: List[TravelAlphaResult]
    readiness: List[CorporateReadiness]
    high_priority_targets: List[str]

    def to_dict(self) -> dict:
        return {
            "summary": {
                "total_assets": self.total_assets,
                "total_annual_alpha": self.total_annual_alpha,
                "avg_percentage_gap": self.avg_percentage_gap,
                "fortune500_ready_count": self.fortune500_ready_count,
                "fortune500_ready_percent": self.fortune500_ready_percent,
                "avg_readiness_score": self.avg_readiness_score,
            },
            "tier_distribution": dict(self.tier_distribution),
            "assets": [
                {"alpha": a.to_dict(), "readiness": r.to_dict()}
                for a, r in zip(self.alphas, self.readiness)
            ],
            "high_priority_targets": list(self.high_priority_targets),
        }


# =============================================================================
# Travel Alpha
# =============================================================================


def occupancy_multiplier(gap_days: int) -> float:
    """More empty nights in the month means more negotiating leverage."""
    for min_days, multiplier in OCCUPANCY_MULTIPLIERS:
        if gap_days >= min_days:
            return multiplier
    return 1.0


def recommend_action(percentage_gap: float, gap_days: int, owner_reliability: int) -> str:
    """Negotiation stance for an asset, first matching rule wins."""
    if percentage_gap >= 30 and gap_days >= 10 and owner_reliability >= 4:
        return "PRIORITY: Lock in 12-month exclusive. High alpha, reliable partner."
    if percentage_gap >= 20 and owner_reliability >= 3:
        return "NEGOTIATE: Strong margin potential. Propose 6-month trial."
    if gap_days >= 15:
        return "LEVERAGE: High vacancy. Push for 25%+ discount on guaranteed bookings."
    if owner_reliability <= 2:
        return "CAUTION: Owner reliability concern. Short-term agreements only."
    return "MONITOR: Standard opportunity. Re-audit in 90 days."


def calculate_travel_alpha(asset: TravelAsset) -> TravelAlphaResult:
    """
    Yield gap between the average public rate and the negotiated rate.

    annualized alpha = gap * 365 * occupancy multiplier * average occupancy.
    A zero public rate yields a 0% gap.
    """
    public_rate_avg = asset.public_rate_avg
    absolute_gap = public_rate_avg - asset.forensic_negotiated_rate
    percentage_gap = absolute_gap / public_rate_avg * 100 if public_rate_avg > 0 else 0.0

    annualized_alpha = (
        absolute_gap * 365
        * occupancy_multiplier(asset.gap_days)
        * (asset.average_monthly_occupancy / 100)
    )

    score = percentage_gap * YIELD_GAP_WEIGHT + asset.gap_days * YIELD_DAYS_WEIGHT
    if score >= HIGH_YIELD_FROM:
        yield_opportunity = "HIGH"
    elif score >= MEDIUM_YIELD_FROM:
        yield_opportunity = "MEDIUM"
    else:
        yield_opportunity = "LOW"

    return TravelAlphaResult(
        asset_id=asset.id,
        public_rate_avg=round(public_rate_avg, 2),
        forensic_rate=round(asset.forensic_negotiated_rate, 2),
        absolute_gap=round(absolute_gap, 2),
        percentage_gap=round(percentage_gap, 1),
        annualized_alpha=float(round(annualized_alpha)),
        yield_opportunity=yield_opportunity,
        recommended_action=recommend_action(percentage_gap, asset.gap_days, asset.owner_reliability),
    )


# =============================================================================
# Corporate Readiness
# =============================================================================


def _connectivity_points(wifi_speed_mbps: float) -> int:
    for min_speed, points in CONNECTIVITY_POINTS:
        if wifi_speed_mbps >= min_speed:
            return points
    return CONNECTIVITY_FLOOR


def _standardization_points(asset: TravelAsset, today: date) -> int:
    points = 0

    if asset.last_audit_date is not None:
        days_since_audit = (today - asset.last_audit_date).days
        if days_since_audit <= 90:
            points += 4
        elif days_since_audit <= 180:
            points += 2

    if asset.rooms >= 5:
        points += 3
    elif asset.rooms >= 3:
        points += 2

    if asset.bathrooms >= asset.rooms:
        points += 3

    return points


def calculate_corporate_readiness(
    asset: TravelAsset,
    today: Optional[date] = None,
) -> CorporateReadiness:
    """
    Score an asset against corporate travel standards.

    Connectivity 25, safety 30, accessibility 20, reliability 15 and
    standardisation 10 points. Tiers above BRONZE also need a minimum wifi
    speed and safety grade.

    Args:
        asset: Audited travel asset
        today: Reference date for audit freshness (default: today)
    """
    today = today or date.today()

    connectivity = _connectivity_points(asset.wifi_speed_mbps)

    checklist = asset.safety_checklist
    checked = sum(1 for passed in checklist.values() if passed)
    safety = (
        SAFETY_GRADE_POINTS.get(asset.safety_grade, 0)
        + checked / (len(checklist) or 1) * SAFETY_CHECKLIST_POINTS
    )

    accessibility = min(asset.accessibility_score * ACCESSIBILITY_WEIGHT, ACCESSIBILITY_MAX)
    reliability = asset.owner_reliability / 5 * RELIABILITY_MAX
    standardization = _standardization_points(asset, today)

    total = float(round(connectivity + safety + accessibility + reliability + standardization))

    wifi, grade = asset.wifi_speed_mbps, asset.safety_grade
    if total >= 90 and wifi >= 100 and grade == "A":
        tier = "PLATINUM"
    elif total >= 80 and wifi >= 50 and grade == "A":
        tier = "GOLD"
    elif total >= 70 and wifi >= 25 and grade in ("A", "B"):
        tier = "SILVER"
    elif total >= 60:
        tier = "BRONZE"
    else:
        tier = "UNQUALIFIED"

    return CorporateReadiness(
        total=total,
        connectivity=round(connectivity, 1),
        safety=round(safety, 1),
        accessibility=round(accessibility, 1),
        reliability=round(reliability, 1),
        standardization=round(standardization, 1),
        tier=tier,
    )


# =============================================================================
# Portfolio
# =============================================================================


def analyze_travel_portfolio(
    assets: Sequence[TravelAsset],
    today: Optional[date] = None,
) -> TravelPortfolioAnalysis:
    """Roll up alpha and readiness. An empty portfolio averages to zero."""
    alphas = [calculate_travel_alpha(a) for a in assets]
    readiness = [calculate_corporate_readiness(a, today) for a in assets]
    count = len(assets)

    ready_count = sum(1 for r in readiness if r.fortune500_ready)
    tier_distribution = {tier: 0 for tier in READINESS_TIERS}
    for r in readiness:
        tier_distribution[r.tier] += 1

    analysis = TravelPortfolioAnalysis(
        total_assets=count,
        total_annual_alpha=float(round(sum(a.annualized_alpha for a in alphas))),
        avg_percentage_gap=round(sum(a.percentage_gap for a in alphas) / count, 1) if count else 0.0,
        fortune500_ready_count=ready_count,
        fortune500_ready_percent=round(ready_count / count * 100, 1) if count else 0.0,
        avg_readiness_score=float(round(sum(r.total for r in readiness) / count)) if count else 0.0,
        tier_distribution=tier_distribution,
        alphas=alphas,
        readiness=readiness,
        high_priority_targets=[a.asset_id for a in alphas if a.yield_opportunity == "HIGH"],
    )

    logger.info(
        "Travel portfolio: %d assets, %d corporate-ready, %d high-priority",
        count, ready_count, len(analysis.high_priority_targets),
    )
    return analysis


def calculate_management_fee(
    assets: Sequence[TravelAsset],
    booking_nights: int,
    fee_percent: float = DEFAULT_MANAGEMENT_FEE_PERCENT,
) -> ManagementFee:
    """
    Price a consolidated booking of every room in every asset.

    The fee is charged on the negotiated cost; client savings are measured
    against booking the same nights at public rates.
    """
    total_public = sum(a.public_rate_avg * booking_nights * a.rooms for a in assets)
    total_forensic = sum(a.forensic_negotiated_rate * booking_nights * a.rooms for a in assets)

    fee = total_forensic * fee_percent / 100
    net_client_cost = total_forensic + fee

    return ManagementFee(
        total_public_cost=round(total_public, 2),
        total_forensic_cost=round(total_forensic, 2),
        management_fee=round(fee, 2),
        client_savings=round(total_public - net_client_cost, 2),
        net_client_cost=round(net_client_cost, 2),
    )
