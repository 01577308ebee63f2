"""Data models for the branch recommender."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple


DENSITY_LOW = "low"
DENSITY_MEDIUM = "medium"
DENSITY_HIGH = "high"
DENSITY_LEVELS = (DENSITY_LOW, DENSITY_MEDIUM, DENSITY_HIGH)


@dataclass(frozen=True)
class Location:
    name: str
    region: str
    sub_region: str
    lat: float
    lon: float
    serves_adjacent_regions: bool = False
    atm_count: int = 0
    density: str = DENSITY_MEDIUM
    accessibility: bool = False
    parking: bool = False
    extended_hours: bool = False
    easy_access: bool = False
    service_types: Tuple[str, ...] = ()
    branch_type: Optional[str] = None
    id: Optional[int] = None

    def offers(self, service_type: str) -> bool:
        wanted = service_type.strip().lower()
        return any(s.strip().lower() == wanted for s in self.service_types)


@dataclass
class DistancedLocation:
    location: Location
    distance_km: float

    @property
    def name(self) -> str:
        return self.location.name


@dataclass
class ScoreBreakdown:
    distance_score: float = 0.0
    criteria_score: float = 0.0
    priority_bonus: float = 0.0

    @property
    def total(self) -> float:
        return self.distance_score + self.criteria_score + self.priority_bonus


@dataclass
class ScoredLocation:
    location: Location
    distance_km: float
    score: float
    breakdown: ScoreBreakdown = field(default_factory=ScoreBreakdown)
    matched_criteria: list[str] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.location.name


@dataclass
class FunnelResult:
    candidates: list[Location]
    rationale: str
    stage: str


@dataclass
class RecommendationResult:
    pick: str
    rationale: str
    nearest: Optional[str]
    degraded: bool = False
