from __future__ import annotations

import pytest

from config import Configuration
from models import DistancedLocation, ScoreBreakdown, ScoredLocation
from services.criteria import EASY_ACCESS, LOW_ATM_DENSITY, PARKING, SME_BANKING
from services.scoring import (
    criteria_score,
    distance_score,
    priority_bonus,
    score_and_sort,
    score_location,
    select_top,
    sort_scored,
)


def _scored(make_location, name: str, score: float, distance_km: float) -> ScoredLocation:
    return ScoredLocation(location=make_location(name), distance_km=distance_km, score=score)


def test_distance_score_endpoints_and_monotonic() -> None:
    assert distance_score(0.0) == 30.0
    assert distance_score(-1.0) == 30.0
    assert distance_score(50.0) == 0.0
    assert distance_score(80.0) == 0.0
    assert distance_score(25.0) == pytest.approx(15.0)

    values = [distance_score(d / 2) for d in range(0, 120)]
    assert all(a >= b for a, b in zip(values, values[1:]))


def test_distance_score_respects_custom_weight() -> None:
    assert distance_score(0.0, weight=50.0, max_distance_km=10.0) == 50.0
    assert distance_score(5.0, weight=50.0, max_distance_km=10.0) == pytest.approx(25.0)


def test_criteria_score(make_location) -> None:
    loc = make_location("x", parking=True, atm_count=9)
    assert criteria_score(loc, []) == 20.0
    assert criteria_score(loc, [PARKING]) == 40.0
    assert criteria_score(loc, [PARKING, LOW_ATM_DENSITY]) == pytest.approx(20.0)
    assert criteria_score(loc, [LOW_ATM_DENSITY]) == 0.0


def test_priority_bonus_by_position(make_location) -> None:
    loc = make_location("x", atm_count=9, parking=True, easy_access=True)
    assert priority_bonus(loc, [PARKING, EASY_ACCESS]) == 35.0
    assert priority_bonus(loc, [LOW_ATM_DENSITY, PARKING]) == 15.0
    assert priority_bonus(loc, [SME_BANKING, LOW_ATM_DENSITY, SME_BANKING, EASY_ACCESS]) == 7.0
    assert priority_bonus(loc, []) == 0.0


def test_priority_bonus_only_first_four_positions(make_location) -> None:
    loc = make_location("x", parking=True)
    prefs = ["a", "b", "c", "d", PARKING]
    assert priority_bonus(loc, prefs) == 0.0
    # a longer bonus table still only rewards the first four positions
    assert priority_bonus(loc, prefs, bonuses=(20.0, 15.0, 10.0, 7.0, 5.0)) == 0.0
    assert priority_bonus(loc, ["a", "b", "c", PARKING, "e"], bonuses=(20.0, 15.0, 10.0, 7.0, 5.0)) == 7.0


def test_total_score_is_bounded(make_location) -> None:
    cfg = Configuration()
    loc = make_location(
        "everything",
        atm_count=0,
        density="low",
        accessibility=True,
        parking=True,
        extended_hours=True,
        easy_access=True,
        service_types=("Individual", "Corporate", "SME"),
    )
    prefs = [PARKING, EASY_ACCESS, LOW_ATM_DENSITY, SME_BANKING]
    scored = score_location(DistancedLocation(loc, 0.0), prefs, cfg)
    bound = cfg.distance_weight + cfg.criteria_weight + sum(cfg.priority_bonuses[:4])
    assert scored.score == pytest.approx(bound)
    assert scored.breakdown == ScoreBreakdown(30.0, 40.0, 52.0)
    assert scored.matched_criteria == prefs


def test_tie_break_prefers_shorter_distance_within_tolerance(make_location) -> None:
    higher_but_far = _scored(make_location, "far", 70.4, 30.0)
    lower_but_near = _scored(make_location, "near", 70.0, 10.0)
    ordered = sort_scored([higher_but_far, lower_but_near], tolerance=0.5)
    assert [s.name for s in ordered] == ["near", "far"]


def test_scores_outside_tolerance_sort_by_score(make_location) -> None:
    far_high = _scored(make_location, "far", 71.0, 30.0)
    near_low = _scored(make_location, "near", 70.0, 10.0)
    ordered = sort_scored([near_low, far_high], tolerance=0.5)
    assert [s.name for s in ordered] == ["far", "near"]


def test_select_top(make_location) -> None:
    scored = [_scored(make_location, str(i), 100 - i * 10, i) for i in range(8)]
    assert [s.name for s in select_top(scored)] == ["0", "1", "2", "3", "4"]
    assert [s.name for s in select_top(scored, 2)] == ["0", "1"]
    assert select_top([], 5) == []


def test_matching_candidate_outranks_unmatching_one(make_location) -> None:
    cfg = Configuration()
    near_match = make_location("Near Match", atm_count=2)
    mid_plain = make_location("Mid Plain", atm_count=8)
    far_match = make_location("Far Match", atm_count=1)
    items = [
        DistancedLocation(mid_plain, 20.0),
        DistancedLocation(far_match, 45.0),
        DistancedLocation(near_match, 5.0),
    ]

    ranked = score_and_sort(cfg, items, [LOW_ATM_DENSITY])

    assert [s.name for s in ranked] == ["Near Match", "Far Match", "Mid Plain"]
    assert ranked[0].score == pytest.approx(27.0 + 40.0 + 20.0)
    assert ranked[1].score == pytest.approx(3.0 + 40.0 + 20.0)
    assert ranked[2].score == pytest.approx(18.0)
