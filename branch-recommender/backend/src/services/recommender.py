from __future__ import annotations

import asyncio
import re
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from loguru import logger

from config import Configuration
from models import Location, RecommendationResult
from services.ai_provider import AIProviderError, TextGenerator
from services.branch_store import BranchRepository, DataSourceError, LocationNotFoundError, find_named
from services.distance import annotate_distances, find_nearest
from services.funnel import select_candidates
from services.geo_filter import eligible_locations
from services.prompt_builder import build_recommendation_prompt
from services.scoring import log_score_distribution, score_and_sort, select_top
from utils import strip_emphasis, strip_thinking_tokens


FALLBACK_RATIONALE = (
    "WARNING - degraded mode: this is a distance-based automatic recommendation. "
    "The AI service is temporarily unavailable, so the nearest eligible branch was chosen."
)

_EXPLANATION_SPLIT = re.compile(r"\s*EXPLANATION\s*:\s*", re.IGNORECASE)


class RecommendationStage(str, Enum):
    RECEIVED = "received"
    GEO_FILTERED = "geo_filtered"
    FUNNELED = "funneled"
    SCORED = "scored"
    PROMPT_SENT = "prompt_sent"
    RESPONSE_PARSED = "response_parsed"
    FALLBACK = "fallback"
    COMPLETED = "completed"


class RecommendationServiceError(RuntimeError):
    """Neither the AI path nor the distance fallback could produce a pick."""


def parse_ai_response(text: str) -> Tuple[str, str]:
    """Split a two-line generator answer into ``(pick, explanation)``.

    Emphasis markers are removed first. Without an ``EXPLANATION:`` line the
    explanation is empty.
    """
    cleaned = strip_emphasis(strip_thinking_tokens(text or "")).strip()
    head, *rest = _EXPLANATION_SPLIT.split(cleaned)
    pick = next((line.strip() for line in head.splitlines() if line.strip()), "")
    explanation = " ".join(part.strip() for part in rest).strip()
    return pick, explanation


def _resolve_current(locations: Sequence[Location], name: str) -> Location:
    current = find_named(locations, name)
    if current is not None:
        return current
    raise LocationNotFoundError(f"Current branch not found: {name}")


class BranchRecommender:
    def __init__(self, cfg: Configuration, store: BranchRepository, generator: TextGenerator) -> None:
        self.cfg = cfg
        self.store = store
        self.generator = generator

    def _advance(self, stage: RecommendationStage) -> RecommendationStage:
        logger.debug("recommendation stage -> {}", stage.value)
        return stage

    async def recommend(
        self,
        region: str,
        current_name: str,
        priorities: Optional[Sequence[str]] = None,
    ) -> RecommendationResult:
        priorities = list(priorities or [])
        stage = self._advance(RecommendationStage.RECEIVED)
        logger.info(
            "recommendation request region={} current={} priorities={}", region, current_name, len(priorities)
        )

        # Store and lookup failures are terminal: there is no reference point to fall back on.
        all_locations = self.store.find_all()
        current = _resolve_current(all_locations, current_name)
        eligible = eligible_locations(all_locations, region, current.name)
        stage = self._advance(RecommendationStage.GEO_FILTERED)
        logger.info("{} branches loaded, {} geographically eligible", len(all_locations), len(eligible))

        funnel = select_candidates(eligible, priorities)
        stage = self._advance(RecommendationStage.FUNNELED)

        scored = score_and_sort(self.cfg, annotate_distances(current, funnel.candidates), priorities)
        top = select_top(scored, self.cfg.top_k)
        nearest = find_nearest(top)
        stage = self._advance(RecommendationStage.SCORED)
        log_score_distribution(top)

        try:
            if not top:
                raise AIProviderError("no candidate branches to rank")
            prompt = build_recommendation_prompt(
                current, region, priorities, top, nearest, very_far_km=self.cfg.very_far_km
            )
            stage = self._advance(RecommendationStage.PROMPT_SENT)
            raw = await asyncio.wait_for(
                asyncio.to_thread(self.generator.generate, prompt),
                timeout=self.cfg.ai_timeout_sec,
            )
            pick, explanation = parse_ai_response(raw)
            if not pick:
                raise AIProviderError("AI response did not name a branch")
            stage = self._advance(RecommendationStage.RESPONSE_PARSED)
        except asyncio.TimeoutError:
            logger.warning(
                "AI provider {} timed out after {}s at stage={}; using fallback",
                self.generator.name,
                self.cfg.ai_timeout_sec,
                stage.value,
            )
            return self.fallback(region, current_name)
        except Exception as exc:
            logger.warning("AI recommendation failed at stage={}: {}; using fallback", stage.value, exc)
            return self.fallback(region, current_name)

        candidate_names: List[str] = [c.name for c in top]
        if pick not in candidate_names:
            logger.warning("AI picked {!r}, which is not among the candidates {}", pick, candidate_names)

        self._advance(RecommendationStage.COMPLETED)
        logger.info("recommendation pick={} nearest={}", pick, nearest.name if nearest else None)
        return RecommendationResult(
            pick=pick,
            rationale=explanation or funnel.rationale,
            nearest=nearest.name if nearest else None,
        )

    def fallback(self, region: str, current_name: str) -> RecommendationResult:
        """Distance-only pick computed from scratch, without the AI provider."""
        self._advance(RecommendationStage.FALLBACK)
        logger.warning("switching to distance-based fallback")
        try:
            all_locations = self.store.find_all()
            current = _resolve_current(all_locations, current_name)
        except (DataSourceError, LocationNotFoundError) as exc:
            logger.error("fallback failed: {}", exc)
            raise RecommendationServiceError("Server error and no fallback branch could be determined") from exc

        eligible = eligible_locations(all_locations, region, current.name)
        nearest = find_nearest(annotate_distances(current, eligible))
        name = nearest.name if nearest else self.cfg.fallback_branch_name
        self._advance(RecommendationStage.COMPLETED)
        logger.info("fallback pick={}", name)
        return RecommendationResult(pick=name, rationale=FALLBACK_RATIONALE, nearest=name, degraded=True)
