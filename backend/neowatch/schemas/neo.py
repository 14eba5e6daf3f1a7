from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from neowatch.services.risk import RiskLevel


class CloseApproachData(BaseModel):
    approach_date: date
    approach_datetime: Optional[str] = None
    epoch_ms: int
    velocity_kmh: float = 0.0
    velocity_kms: float = 0.0
    miss_distance_km: float = 0.0
    miss_distance_au: float = 0.0
    miss_distance_lunar: float = 0.0
    orbiting_body: str = "Earth"


class CelestialObject(BaseModel):
    id: str
    neo_reference_id: Optional[str] = None
    name: str
    nasa_jpl_url: Optional[str] = None
    absolute_magnitude: float = 0.0
    diameter_min_km: float = 0.0
    diameter_max_km: float = 0.0
    diameter_min_m: float = 0.0
    diameter_max_m: float = 0.0
    is_hazardous: bool = False
    is_sentry: bool = False
    sentry_data: Optional[Any] = None
    close_approaches: List[CloseApproachData] = Field(default_factory=list)
    risk_score: int = 0
    risk_level: RiskLevel = RiskLevel.LOW
    orbital_data: Optional[Dict[str, Any]] = None
    last_fetched: datetime

    @property
    def nearest_approach(self) -> Optional[CloseApproachData]:
        if not self.close_approaches:
            return None
        return min(self.close_approaches, key=lambda a: a.miss_distance_km)

    def approach_on(self, day: date) -> Optional[CloseApproachData]:
        """The approach on `day`, else the first one on record."""
        for approach in self.close_approaches:
            if approach.approach_date == day:
                return approach
        return self.close_approaches[0] if self.close_approaches else None


class Pagination(BaseModel):
    total: int = 0
    total_pages: int = 0
    size: int = 0
    current_page: int = 0


class BrowsePage(BaseModel):
    objects: List[CelestialObject] = Field(default_factory=list)
    pagination: Pagination = Field(default_factory=Pagination)
