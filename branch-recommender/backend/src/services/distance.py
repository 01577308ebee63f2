from __future__ import annotations

from typing import Iterable, List, Optional, Protocol, Sequence, TypeVar

from models import DistancedLocation, Location
from utils import haversine_km


DEFAULT_VERY_FAR_KM = 30.0


class _HasDistance(Protocol):
    distance_km: float


T = TypeVar("T", bound=_HasDistance)


def distance_between(a: Location, b: Location) -> float:
    return haversine_km(a.lat, a.lon, b.lat, b.lon)


def annotate_distances(reference: Location, locations: Iterable[Location]) -> List[DistancedLocation]:
    """Attach the distance from ``reference`` to every location.

    Always recomputed; the reference point changes from request to request.
    """
    return [DistancedLocation(location=loc, distance_km=distance_between(reference, loc)) for loc in locations]


def find_nearest(items: Sequence[T]) -> Optional[T]:
    nearest: Optional[T] = None
    for item in items:
        if nearest is None or item.distance_km < nearest.distance_km:
            nearest = item
    return nearest


def sort_by_distance(items: Iterable[T]) -> List[T]:
    return sorted(items, key=lambda it: it.distance_km)


def filter_by_radius(items: Iterable[T], radius_km: float) -> List[T]:
    return [it for it in items if it.distance_km <= radius_km]


def average_distance(items: Sequence[T]) -> float:
    if not items:
        return 0.0
    return sum(it.distance_km for it in items) / len(items)


def format_distance(distance_km: float, decimal_places: int = 1) -> str:
    return f"{distance_km:.{decimal_places}f} km"


def is_very_far(distance_km: float, threshold_km: float = DEFAULT_VERY_FAR_KM) -> bool:
    return distance_km > threshold_km
