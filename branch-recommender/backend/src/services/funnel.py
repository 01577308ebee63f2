from __future__ import annotations

from typing import Callable, List, NamedTuple, Sequence

from loguru import logger

from models import FunnelResult, Location
from services.criteria import matches_all, matches_any


STAGE_FULL_MATCH = "full_match"
STAGE_PARTIAL_MATCH = "partial_match"
STAGE_UNFILTERED = "unfiltered"

FULL_MATCH_RATIONALE = "All of your preferences are fully satisfied by the branches considered."
PARTIAL_MATCH_RATIONALE = (
    "No branch matches every preference; branches matching at least one preference were considered."
)
UNFILTERED_RATIONALE = (
    "No branch matches your specific preferences; all eligible branches in your region "
    "and neighbouring regions were considered."
)


class FunnelStage(NamedTuple):
    name: str
    accepts: Callable[[Location, Sequence[str]], bool]
    rationale: str


FUNNEL_STAGES: tuple[FunnelStage, ...] = (
    FunnelStage(STAGE_FULL_MATCH, matches_all, FULL_MATCH_RATIONALE),
    FunnelStage(STAGE_PARTIAL_MATCH, matches_any, PARTIAL_MATCH_RATIONALE),
    FunnelStage(STAGE_UNFILTERED, lambda _loc, _criteria: True, UNFILTERED_RATIONALE),
)


def select_candidates(eligible: Sequence[Location], priorities: Sequence[str]) -> FunnelResult:
    """Run the relaxation funnel; the first stage with survivors wins.

    The last stage accepts everything, so the result is only empty when
    ``eligible`` is.
    """
    priorities = list(priorities or [])
    for stage in FUNNEL_STAGES:
        survivors: List[Location] = [loc for loc in eligible if stage.accepts(loc, priorities)]
        if survivors:
            logger.info("funnel stage={} candidates={}/{}", stage.name, len(survivors), len(eligible))
            return FunnelResult(candidates=survivors, rationale=stage.rationale, stage=stage.name)
        logger.debug("funnel stage={} produced no candidates", stage.name)

    last = FUNNEL_STAGES[-1]
    return FunnelResult(candidates=[], rationale=last.rationale, stage=last.name)
