from __future__ import annotations

import json
import math
import sys
import time
from pathlib import Path

import pytest


# Ensure backend/src is on sys.path for tests so that imports like `services.*` and `models` work.
ROOT = Path(__file__).resolve().parent
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from models import Location  # noqa: E402
from services.ai_provider import TextGenerator  # noqa: E402
from utils import EARTH_RADIUS_KM  # noqa: E402


KM_PER_DEGREE = EARTH_RADIUS_KM * math.pi / 180.0


@pytest.fixture
def make_location():
    """Factory for branches placed ``km`` kilometres due north of (0, 0)."""

    def _make(name: str, km: float = 0.0, **attrs) -> Location:
        attrs.setdefault("region", "Testland")
        attrs.setdefault("sub_region", "Centre")
        return Location(name=name, lat=km / KM_PER_DEGREE, lon=0.0, **attrs)

    return _make


@pytest.fixture
def write_branches(tmp_path):
    """Write raw branch records to a JSON file and return its path."""

    def _write(records, name: str = "branches.json") -> Path:
        path = tmp_path / name
        path.write_text(json.dumps({"branches": records}), encoding="utf-8")
        return path

    return _write


def branch_record(name: str, km: float = 0.0, **attrs) -> dict:
    record = {
        "name": name,
        "region": "Testland",
        "sub_region": "Centre",
        "coordinate": {"lat": km / KM_PER_DEGREE, "lon": 0.0},
    }
    record.update(attrs)
    return record


@pytest.fixture
def make_record():
    return branch_record


class ScriptedGenerator(TextGenerator):
    """Generator returning a canned reply, or raising / stalling on demand."""

    name = "scripted"

    def __init__(self, reply: str = "", error: Exception | None = None, delay: float = 0.0) -> None:
        self.reply = reply
        self.error = error
        self.delay = delay
        self.prompts: list[str] = []

    def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def scripted_generator():
    return ScriptedGenerator


@pytest.fixture
def branch_file(write_branches):
    """Small network: one origin branch in Oldtown and candidates around Testland."""
    return write_branches(
        [
            branch_record("Home", 0.0, region="Oldtown", id=1),
            branch_record("Near Match", 5.0, atm_count=2, id=2),
            branch_record("Mid Plain", 20.0, atm_count=8, parking=True, id=3),
            branch_record("Far Match", 45.0, atm_count=1, id=4),
            branch_record("Elsewhere", 1.0, region="Farland", atm_count=0, id=5),
            branch_record("Neighbour", 3.0, region="Farland", atm_count=9, serves_adjacent_regions=True, id=6),
        ]
    )
