"""
Infrastructure Proximity Scorer

Values the 2030 infrastructure build-out (TGV, Grand Stade, highway,
airport) around a property:
- a proximity bonus summed over points within their impact radius
- a 0-100 resilience score for apartments (event-driven rental demand)
"""

from typing import Dict, Iterable, Optional, Sequence

from .geo import distance_km
from .models import (
    InfrastructureCategory,
    InfrastructurePoint,
    Property,
    ValuationAdjustment,
)
from .reference import (
    DEFAULT_INFRASTRUCTURE_WEIGHT,
    DEFAULT_VALUE_MULTIPLIER,
    HISTORIC_DISTRICT,
    INFRASTRUCTURE_WEIGHTS,
    MULTI_UNIT_ZONING,
)


# =============================================================================
# Configuration Constants
# =============================================================================

RESILIENCE_BASE = 50

STADIUM_NEAR_KM = 5
STADIUM_NEAR_BONUS = 25
STADIUM_FAR_KM = 10
STADIUM_FAR_BONUS = 15

TRANSIT_NEAR_KM = 3
TRANSIT_BONUS = 15

AIRPORT_NEAR_KM = 8
AIRPORT_BONUS = 10

HISTORIC_DISTRICT_PENALTY = -10
MULTI_UNIT_ZONING_BONUS = 10


def category_weight(category: Optional[InfrastructureCategory]) -> float:
    """Impact weight for a category, 0.10 when unknown."""
    if category is None:
        return DEFAULT_INFRASTRUCTURE_WEIGHT
    return INFRASTRUCTURE_WEIGHTS.get(category, DEFAULT_INFRASTRUCTURE_WEIGHT)


def point_bonus(distance: float, point: InfrastructurePoint) -> float:
    """
    Bonus fraction contributed by one point at the given distance.

    Zero for points without a radius or outside it. Closer is better:
    the bonus decays linearly to zero at the radius edge.
    """
    radius = point.impact_radius_km
    if not radius or distance > radius:
        return 0.0

    multiplier = point.value_multiplier or DEFAULT_VALUE_MULTIPLIER
    distance_factor = 1 - (distance / radius)
    return (multiplier - 1) * distance_factor * category_weight(point.category)


def calculate_infrastructure_bonus(
    property: Property,
    points: Sequence[InfrastructurePoint],
    base_value: Optional[float] = None,
) -> ValuationAdjustment:
    """
    Sum proximity bonuses over every infrastructure point.

    Args:
        property: Property with coordinates
        points: Infrastructure points to score against
        base_value: Value the bonus applies to (default: market price, or 0)

    Returns:
        The infrastructure_proximity adjustment (impact 0 when nothing is in range)
    """
    base = (property.market_price or 0.0) if base_value is None else base_value
    total = 0.0
    details = []

    for point in points:
        distance = distance_km(
            property.latitude, property.longitude,
            point.latitude, point.longitude,
        )
        bonus = point_bonus(distance, point)
        if bonus:
            total += bonus
            details.append(f"{point.name}: {bonus * 100:.1f}%")

    if details:
        description = "2030 Infrastructure Premium: " + ", ".join(details)
    else:
        description = "No significant infrastructure proximity"

    return ValuationAdjustment(
        factor="infrastructure_proximity",
        description=description,
        impact_percent=round(total * 100, 2),
        impact_value=round(base * total, 2),
    )


def nearest_distances(
    latitude: float,
    longitude: float,
    points: Iterable[InfrastructurePoint],
) -> Dict[InfrastructureCategory, float]:
    """Distance (km, 2 dp) to the nearest point of each category present."""
    nearest: Dict[InfrastructureCategory, float] = {}
    for point in points:
        if point.category is None:
            continue
        distance = distance_km(latitude, longitude, point.latitude, point.longitude)
        if point.category not in nearest or distance < nearest[point.category]:
            nearest[point.category] = distance
    return {category: round(km, 2) for category, km in nearest.items()}


def calculate_resilience_score(
    property: Property,
    points: Optional[Sequence[InfrastructurePoint]] = None,
) -> int:
    """
    Resilience score (0-100) for short-term rental demand around 2030 events.

    Uses the property's recorded distances; when a distance is missing and
    points are supplied, the nearest point of that category is used.
    """
    nearest = nearest_distances(property.latitude, property.longitude, points) if points else {}

    def distance_to(recorded: Optional[float], category: InfrastructureCategory) -> Optional[float]:
        if recorded is not None:
            return recorded
        return nearest.get(category)

    stadium = distance_to(property.distance_stadium_km, InfrastructureCategory.STADIUM)
    transit = distance_to(property.distance_tgv_station_km, InfrastructureCategory.TGV_STATION)
    airport = distance_to(property.distance_airport_km, InfrastructureCategory.AIRPORT)

    score = RESILIENCE_BASE

    # Group bookings around the stadium
    if stadium is not None and stadium < STADIUM_NEAR_KM:
        score += STADIUM_NEAR_BONUS
    elif stadium is not None and stadium < STADIUM_FAR_KM:
        score += STADIUM_FAR_BONUS

    if transit is not None and transit < TRANSIT_NEAR_KM:
        score += TRANSIT_BONUS

    if airport is not None and airport < AIRPORT_NEAR_KM:
        score += AIRPORT_BONUS

    # Riad competition
    if (property.neighborhood or "").strip().lower() == HISTORIC_DISTRICT:
        score += HISTORIC_DISTRICT_PENALTY

    if property.zoning_code in MULTI_UNIT_ZONING:
        score += MULTI_UNIT_ZONING_BONUS

    return min(100, max(0, score))
