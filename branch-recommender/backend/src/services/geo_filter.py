from __future__ import annotations

from typing import Iterable, List

from models import Location


def eligible_locations(all_locations: Iterable[Location], target_region: str, current_name: str) -> List[Location]:
    """Branches in the target region or serving adjacent regions, minus the current one."""
    return [
        loc
        for loc in all_locations
        if (loc.region == target_region or loc.serves_adjacent_regions) and loc.name != current_name
    ]


def in_region(all_locations: Iterable[Location], region: str) -> List[Location]:
    return [loc for loc in all_locations if loc.region == region]


def adjacent_providers(all_locations: Iterable[Location]) -> List[Location]:
    return [loc for loc in all_locations if loc.serves_adjacent_regions]
