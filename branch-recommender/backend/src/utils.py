"""Utility helpers for the branch recommender."""

from __future__ import annotations

import math
import re
from typing import Optional


EARTH_RADIUS_KM = 6371.0

_STAR_RE = re.compile(r"\*+")
# underscores only count as emphasis at word edges, so snake_case names survive
_UNDERSCORE_RE = re.compile(r"(?<![^\W_])_+|_+(?![^\W_])")


def mask_secret(value: Optional[str], visible: int = 4) -> str:
    if not value:
        return "unset"
    if len(value) <= visible * 2:
        return "*" * len(value)
    return f"{value[:visible]}...{value[-visible:]}"


def strip_thinking_tokens(text: str) -> str:
    """Remove <think>...</think> blocks if present."""
    if not text:
        return text
    while True:
        start = text.find("<think>")
        if start == -1:
            break
        end = text.find("</think>", start)
        if end == -1:
            break
        text = text[:start] + text[end + len("</think>") :]
    return text


def strip_emphasis(text: str) -> str:
    """Drop markdown bold/italic markers (``**``, ``*``, ``__``, ``_``)."""
    if not text:
        return text
    return _UNDERSCORE_RE.sub("", _STAR_RE.sub("", text))


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in kilometers."""
    R = EARTH_RADIUS_KM
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return R * c
