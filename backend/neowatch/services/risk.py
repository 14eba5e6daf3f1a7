"""
Asteroid Risk Scoring

Heuristic 0-100 score built from three fixed-weight factors:
  - hazardous flag           40 points
  - max estimated diameter   up to 30 points, saturating at 1 km
  - nearest Earth approach   up to 30 points, decaying to 0 at 10 million km

The weights are part of the public contract (scores are shown to users and
compared across fetches), so they must not drift.
"""
import enum
import math
from typing import NamedTuple, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from neowatch.schemas.raw import RawNeo

HAZARDOUS_POINTS = 40.0
DIAMETER_POINTS = 30.0
DIAMETER_SATURATION_KM = 1.0
DISTANCE_POINTS = 30.0
DISTANCE_HORIZON_KM = 10_000_000.0


class RiskLevel(str, enum.Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class RiskAssessment(NamedTuple):
    risk_score: int
    risk_level: RiskLevel


def get_risk_level(risk_score: float) -> RiskLevel:
    """Classify a score into the four dashboard tiers."""
    if risk_score >= 70:
        return RiskLevel.CRITICAL
    elif risk_score >= 40:
        return RiskLevel.HIGH
    elif risk_score >= 20:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def score_components(
    is_hazardous: bool,
    diameter_max_km: float,
    nearest_miss_km: Optional[float],
) -> RiskAssessment:
    """
    Combine the three factors into a score.

    `nearest_miss_km` is None when the object has no Earth approach on record;
    the distance factor then contributes nothing.
    """
    hazardous = HAZARDOUS_POINTS if is_hazardous else 0.0
    diameter = min(diameter_max_km / DIAMETER_SATURATION_KM * DIAMETER_POINTS, DIAMETER_POINTS)

    miss_km = math.inf if nearest_miss_km is None else nearest_miss_km
    distance = max(0.0, DISTANCE_POINTS * (1 - miss_km / DISTANCE_HORIZON_KM))

    # Half-up rounding; the inner round() strips float noise such as 83.49999999999999
    total = round(hazardous + diameter + distance, 6)
    score = int(math.floor(total + 0.5))
    score = max(0, min(score, 100))
    return RiskAssessment(score, get_risk_level(score))


def calculate_risk_score(raw: "RawNeo") -> RiskAssessment:
    """Score a validated NeoWs record using its nearest Earth approach."""
    earth_misses = [
        a.miss_distance.kilometers
        for a in raw.close_approach_data
        if a.orbiting_body == "Earth"
    ]
    nearest = min(earth_misses) if earth_misses else None
    return score_components(
        raw.is_potentially_hazardous_asteroid,
        raw.estimated_diameter.kilometers.estimated_diameter_max,
        nearest,
    )
