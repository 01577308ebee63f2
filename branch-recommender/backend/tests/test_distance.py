from __future__ import annotations

import pytest

from models import DistancedLocation
from services.distance import (
    annotate_distances,
    average_distance,
    filter_by_radius,
    find_nearest,
    format_distance,
    is_very_far,
    sort_by_distance,
)
from utils import haversine_km


def test_haversine_zero_for_same_point() -> None:
    assert haversine_km(41.0, 29.0, 41.0, 29.0) == 0.0


def test_haversine_istanbul_to_ankara() -> None:
    # Kadikoy -> Kizilay, roughly 350 km as the crow flies
    d = haversine_km(40.9903, 29.0290, 39.9208, 32.8541)
    assert 330 < d < 365


def test_haversine_is_symmetric_and_non_negative() -> None:
    a = haversine_km(10.0, 20.0, -5.0, 170.0)
    b = haversine_km(-5.0, 170.0, 10.0, 20.0)
    assert a == pytest.approx(b)
    assert a > 0


def test_annotate_distances_uses_reference(make_location) -> None:
    ref = make_location("ref", 0.0)
    items = annotate_distances(ref, [make_location("a", 5.0), make_location("b", 20.0)])
    assert [i.name for i in items] == ["a", "b"]
    assert items[0].distance_km == pytest.approx(5.0)
    assert items[1].distance_km == pytest.approx(20.0)

    moved = annotate_distances(make_location("ref2", 20.0), [make_location("b", 20.0)])
    assert moved[0].distance_km == pytest.approx(0.0, abs=1e-9)


def test_find_nearest_and_ties(make_location) -> None:
    a = DistancedLocation(make_location("a"), 3.0)
    b = DistancedLocation(make_location("b"), 1.0)
    c = DistancedLocation(make_location("c"), 1.0)
    assert find_nearest([a, b, c]) is b
    assert find_nearest([]) is None


def test_sort_filter_average(make_location) -> None:
    items = [DistancedLocation(make_location(n), d) for n, d in (("x", 12.0), ("y", 2.0), ("z", 40.0))]
    assert [i.name for i in sort_by_distance(items)] == ["y", "x", "z"]
    assert [i.name for i in filter_by_radius(items, 12.0)] == ["x", "y"]
    assert average_distance(items) == pytest.approx(18.0)
    assert average_distance([]) == 0.0


def test_format_and_very_far() -> None:
    assert format_distance(5.234) == "5.2 km"
    assert format_distance(5.0, 2) == "5.00 km"
    assert is_very_far(30.5)
    assert not is_very_far(30.0)
    assert is_very_far(11.0, threshold_km=10.0)
