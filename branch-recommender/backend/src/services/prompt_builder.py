from __future__ import annotations

from typing import List, Optional, Sequence

from models import Location, ScoredLocation
from services.distance import DEFAULT_VERY_FAR_KM, format_distance


PRIORITY_LABELS = ["1st PRIORITY", "2nd PRIORITY", "3rd PRIORITY", "4th PRIORITY"]
EXPLANATION_MARKER = "EXPLANATION:"


def _yes_no(flag: bool) -> str:
    return "Yes" if flag else "No"


def _ordinal_label(index: int) -> str:
    if index < len(PRIORITY_LABELS):
        return PRIORITY_LABELS[index]
    return f"{index + 1}th PRIORITY"


def _customer_profile(current: Location, region: str) -> List[str]:
    return [
        f"- Current branch: {current.name}",
        f"- Location: {region} / {current.sub_region}",
        f"- Coordinates: {current.lat}, {current.lon}",
    ]


def _priority_list(priorities: Sequence[str]) -> List[str]:
    if not priorities:
        return ["The customer stated no specific preference (all branches are weighed equally on preferences)."]
    return [f"{_ordinal_label(idx)}: {criterion}" for idx, criterion in enumerate(priorities)]


def _candidate_block(idx: int, c: ScoredLocation) -> List[str]:
    loc = c.location
    b = c.breakdown
    services = ", ".join(loc.service_types) if loc.service_types else "Not specified"
    return [
        f"{idx}. {loc.name}",
        f"   - Location: {loc.region} / {loc.sub_region}",
        f"   - Distance: {format_distance(c.distance_km)}",
        f"   - Type: {loc.branch_type or 'Not specified'}",
        f"   - Service types: {services}",
        "   - Features:",
        f"     * ATM count: {loc.atm_count}",
        f"     * Density: {loc.density}",
        f"     * Accessibility: {_yes_no(loc.accessibility)}",
        f"     * Parking: {_yes_no(loc.parking)}",
        f"     * Extended hours: {_yes_no(loc.extended_hours)}",
        f"     * Easy access: {_yes_no(loc.easy_access)}",
        (
            f"   - Suitability score: {c.score:.1f}/100 "
            f"(distance: {b.distance_score:.1f}, preferences: {b.criteria_score:.1f}, "
            f"priority bonus: {b.priority_bonus:.1f})"
        ),
    ]


def _nearest_note(count: int, nearest: Optional[ScoredLocation]) -> str:
    note = (
        f"IMPORTANT NOTE: The {count} branches above were pre-selected from all branches by filtering on the "
        "customer's preferences. More branches exist, but they fit the preferences less well."
    )
    if nearest is not None:
        note += f" Nearest among these {count} candidates: {nearest.name} ({format_distance(nearest.distance_km)})."
    return note


def _rules(very_far_km: float) -> List[str]:
    return [
        "1. The 1st PRIORITY is the most important: the customer's first preference must come first.",
        "2. Priority order matters: weigh the 2nd, 3rd and 4th preferences in that order.",
        (
            f"3. Distance is a factor but not the only factor: very distant branches (>{very_far_km:g} km) "
            "are at a disadvantage, but being close is not enough on its own."
        ),
        "4. Scores are guidance, not absolute: use the suitability scores as a starting point and do your own analysis.",
        "5. Balanced evaluation: find the best balance of priorities, distance and service types.",
    ]


def _response_format() -> List[str]:
    return [
        "BRANCH_NAME",
        f"{EXPLANATION_MARKER} [ONE short sentence only, at most 15-20 words, saying which priorities it meets]",
        "",
        "EXAMPLE:",
        "Harbour Branch",
        f"{EXPLANATION_MARKER} Your top priorities, parking and low branch density, are met and it is among the closest.",
    ]


def build_recommendation_prompt(
    current: Location,
    region: str,
    priorities: Sequence[str],
    candidates: Sequence[ScoredLocation],
    nearest: Optional[ScoredLocation],
    *,
    very_far_km: float = DEFAULT_VERY_FAR_KM,
) -> str:
    count = len(candidates)
    lines: List[str] = ["## CUSTOMER PROFILE"]
    lines.extend(_customer_profile(current, region))
    lines += ["", "## PREFERENCE PRIORITY ORDER (most important first)"]
    lines.extend(_priority_list(priorities))
    lines += ["", f"## TOP {count} CANDIDATE BRANCHES (selected by preference filtering and scoring)"]
    for idx, c in enumerate(candidates, start=1):
        lines.extend(_candidate_block(idx, c))
        lines.append("")
    lines += [
        _nearest_note(count, nearest),
        "",
        "## TASK",
        (
            f"From the {count} CANDIDATES above only (not from all branches), choose EXACTLY ONE branch that "
            "best fits the customer's PREFERENCE PRIORITY ORDER."
        ),
        "",
        "### CRITICAL RULES:",
    ]
    lines.extend(_rules(very_far_km))
    lines += ["", "### RESPONSE FORMAT (follow strictly, exactly two lines):"]
    lines.extend(_response_format())
    return "\n".join(lines).strip()
