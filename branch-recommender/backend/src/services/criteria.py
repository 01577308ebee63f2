from __future__ import annotations

from typing import Callable, Dict, List, Optional, Sequence

from models import DENSITY_LOW, Location


ATM_THRESHOLD = 3

LOW_ATM_DENSITY = "low ATM density"
ACCESSIBILITY = "accessibility"
LOW_BRANCH_DENSITY = "low branch density"
PARKING = "parking"
EXTENDED_HOURS = "extended hours"
EASY_ACCESS = "easy access"
INDIVIDUAL_BANKING = "individual banking"
CORPORATE_BANKING = "corporate banking"
SME_BANKING = "SME banking"

CRITERIA_PREDICATES: Dict[str, Callable[[Location], bool]] = {
    LOW_ATM_DENSITY: lambda loc: loc.atm_count <= ATM_THRESHOLD,
    ACCESSIBILITY: lambda loc: loc.accessibility is True,
    LOW_BRANCH_DENSITY: lambda loc: loc.density == DENSITY_LOW,
    PARKING: lambda loc: loc.parking is True,
    EXTENDED_HOURS: lambda loc: loc.extended_hours is True,
    EASY_ACCESS: lambda loc: loc.easy_access is True,
    INDIVIDUAL_BANKING: lambda loc: loc.offers("Individual"),
    CORPORATE_BANKING: lambda loc: loc.offers("Corporate"),
    SME_BANKING: lambda loc: loc.offers("SME"),
}

KNOWN_CRITERIA: tuple[str, ...] = tuple(CRITERIA_PREDICATES)


def is_known_criterion(name: str) -> bool:
    return name in CRITERIA_PREDICATES


def _evaluate(location: Location, criterion: str) -> Optional[bool]:
    """Predicate result, or None when the criterion name is not recognised."""
    predicate = CRITERIA_PREDICATES.get(criterion)
    if predicate is None:
        return None
    return bool(predicate(location))


def matches_all(location: Location, criteria: Optional[Sequence[str]]) -> bool:
    # Unknown criteria are treated as satisfied here (fail open).
    if not criteria:
        return True
    return all(_evaluate(location, c) is not False for c in criteria)


def matches_any(location: Location, criteria: Optional[Sequence[str]]) -> bool:
    # Unknown criteria never count as a hit (fail closed).
    if not criteria:
        return True
    return any(_evaluate(location, c) is True for c in criteria)


def count_matches(location: Location, criteria: Optional[Sequence[str]]) -> int:
    if not criteria:
        return 0
    return sum(1 for c in criteria if _evaluate(location, c) is True)


def matched_criteria(location: Location, criteria: Optional[Sequence[str]]) -> List[str]:
    if not criteria:
        return []
    return [c for c in criteria if _evaluate(location, c) is True]


def unmatched_criteria(location: Location, criteria: Optional[Sequence[str]]) -> List[str]:
    if not criteria:
        return []
    return [c for c in criteria if _evaluate(location, c) is not True]
