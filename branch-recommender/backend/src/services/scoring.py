from __future__ import annotations

from functools import cmp_to_key
from typing import Iterable, List, Optional, Sequence

from loguru import logger

from config import PRIORITY_BONUS_SLOTS, Configuration
from models import DistancedLocation, Location, ScoreBreakdown, ScoredLocation
from services.criteria import count_matches, matched_criteria


DISTANCE_WEIGHT = 30.0
CRITERIA_WEIGHT = 40.0
PRIORITY_WEIGHT = 30.0
MAX_DISTANCE_KM = 50.0
PRIORITY_BONUSES: tuple[float, ...] = (20.0, 15.0, 10.0, 7.0)
SCORE_TOLERANCE = 0.5
TOP_CANDIDATES_COUNT = 5


def distance_score(
    distance_km: float,
    *,
    weight: float = DISTANCE_WEIGHT,
    max_distance_km: float = MAX_DISTANCE_KM,
) -> float:
    """Full weight at 0 km, falling linearly to 0 at ``max_distance_km``."""
    if distance_km <= 0:
        return weight
    if distance_km >= max_distance_km:
        return 0.0
    return weight * (1.0 - distance_km / max_distance_km)


def criteria_score(
    location: Location,
    priorities: Optional[Sequence[str]],
    *,
    weight: float = CRITERIA_WEIGHT,
) -> float:
    if not priorities:
        # no preference expressed: neutral half weight
        return weight / 2.0
    return count_matches(location, priorities) / len(priorities) * weight


def priority_bonus(
    location: Location,
    priorities: Optional[Sequence[str]],
    *,
    bonuses: Sequence[float] = PRIORITY_BONUSES,
) -> float:
    if not priorities:
        return 0.0
    ranked = list(priorities)[:PRIORITY_BONUS_SLOTS]
    slots = list(bonuses)[:PRIORITY_BONUS_SLOTS]
    matched = set(matched_criteria(location, ranked))
    return float(sum(bonus for criterion, bonus in zip(ranked, slots) if criterion in matched))


def score_location(
    item: DistancedLocation,
    priorities: Optional[Sequence[str]],
    cfg: Optional[Configuration] = None,
) -> ScoredLocation:
    cfg = cfg or Configuration()
    breakdown = ScoreBreakdown(
        distance_score=distance_score(
            item.distance_km, weight=cfg.distance_weight, max_distance_km=cfg.max_distance_km
        ),
        criteria_score=criteria_score(item.location, priorities, weight=cfg.criteria_weight),
        priority_bonus=priority_bonus(item.location, priorities, bonuses=cfg.priority_bonuses),
    )
    return ScoredLocation(
        location=item.location,
        distance_km=item.distance_km,
        score=breakdown.total,
        breakdown=breakdown,
        matched_criteria=matched_criteria(item.location, priorities),
    )


def compare_scored(a: ScoredLocation, b: ScoredLocation, tolerance: float = SCORE_TOLERANCE) -> int:
    """Higher score first; near-equal scores fall back to the shorter distance."""
    diff = b.score - a.score
    if abs(diff) < tolerance:
        if a.distance_km < b.distance_km:
            return -1
        if a.distance_km > b.distance_km:
            return 1
        return 0
    return 1 if diff > 0 else -1


def sort_scored(scored: Iterable[ScoredLocation], tolerance: float = SCORE_TOLERANCE) -> List[ScoredLocation]:
    return sorted(scored, key=cmp_to_key(lambda a, b: compare_scored(a, b, tolerance)))


def score_and_sort(
    cfg: Configuration,
    candidates: Iterable[DistancedLocation],
    priorities: Optional[Sequence[str]],
) -> List[ScoredLocation]:
    scored = [score_location(item, priorities, cfg) for item in candidates]
    return sort_scored(scored, cfg.score_tolerance)


def select_top(scored: Sequence[ScoredLocation], count: int = TOP_CANDIDATES_COUNT) -> List[ScoredLocation]:
    return list(scored[: max(count, 0)])


def log_score_distribution(scored: Sequence[ScoredLocation]) -> None:
    logger.info("score distribution (distance + criteria + priority) for {} candidates", len(scored))
    for s in scored:
        logger.debug(
            "  {}: {:.1f} pts (distance {:.1f}, criteria {:.1f}, priority {:.1f}) - {:.1f} km",
            s.name,
            s.score,
            s.breakdown.distance_score,
            s.breakdown.criteria_score,
            s.breakdown.priority_bonus,
            s.distance_km,
        )
