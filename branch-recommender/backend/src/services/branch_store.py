from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Iterable, List, Optional, Union

from loguru import logger

from models import DENSITY_LEVELS, Location
from services.geo_filter import adjacent_providers, in_region


class DataSourceError(RuntimeError):
    """The branch data file could not be read or parsed."""


class LocationNotFoundError(LookupError):
    """No branch exists with the requested name."""


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def _parse_location(raw: Any) -> Location:
    if not isinstance(raw, dict):
        raise DataSourceError(f"branch record must be an object, got {type(raw).__name__}")
    coord = raw.get("coordinate")
    if not isinstance(coord, dict):
        coord = {}
    lat = coord.get("lat", raw.get("lat"))
    lon = coord.get("lon", raw.get("lon"))
    name = raw.get("name")
    region = raw.get("region")
    if not name or not region or lat is None or lon is None:
        raise DataSourceError(f"branch record is missing name/region/coordinate: {raw!r}"[:300])

    density = str(raw.get("density") or "medium").strip().lower()
    if density not in DENSITY_LEVELS:
        raise DataSourceError(f"branch {name!r} has unknown density {density!r}")

    services = raw.get("service_types") or []
    if isinstance(services, str):
        services = [services]

    try:
        atm_count = int(raw.get("atm_count") or 0)
        return Location(
            name=str(name),
            region=str(region),
            sub_region=str(raw.get("sub_region") or ""),
            lat=float(lat),
            lon=float(lon),
            serves_adjacent_regions=_as_bool(raw.get("serves_adjacent_regions", False)),
            atm_count=max(atm_count, 0),
            density=density,
            accessibility=_as_bool(raw.get("accessibility", False)),
            parking=_as_bool(raw.get("parking", False)),
            extended_hours=_as_bool(raw.get("extended_hours", False)),
            easy_access=_as_bool(raw.get("easy_access", False)),
            service_types=tuple(str(s) for s in services),
            branch_type=(str(raw["type"]) if raw.get("type") else None),
            id=(int(raw["id"]) if raw.get("id") is not None else None),
        )
    except (TypeError, ValueError) as exc:
        raise DataSourceError(f"branch {name!r} has malformed fields: {exc}") from exc


def find_named(locations: Iterable[Location], name: str) -> Optional[Location]:
    return next((b for b in locations if b.name == name), None)


class BranchRepository:
    """Read-only access to the JSON branch file.

    The file is re-read on every call so edits are picked up without a
    restart and no state is shared between requests.
    """

    def __init__(self, path: Union[str, Path], encoding: str = "utf-8") -> None:
        self.path = Path(path)
        self.encoding = encoding

    def find_all(self) -> List[Location]:
        try:
            with self.path.open("r", encoding=self.encoding) as fh:
                data = json.load(fh)
        except (OSError, ValueError) as exc:
            logger.error("error reading branches file {}: {}", self.path, exc)
            raise DataSourceError("Failed to load branches data") from exc

        records = data.get("branches") if isinstance(data, dict) else data
        if records is None:
            return []
        if not isinstance(records, list):
            raise DataSourceError("branches data must be a list")
        return [_parse_location(r) for r in records]

    def find_by_name(self, name: str) -> Optional[Location]:
        return find_named(self.find_all(), name)

    def find_by_id(self, branch_id: int) -> Optional[Location]:
        return next((b for b in self.find_all() if b.id == branch_id), None)

    def find_by_region(self, region: str) -> List[Location]:
        return in_region(self.find_all(), region)

    def find_by_sub_region(self, sub_region: str) -> List[Location]:
        return [b for b in self.find_all() if b.sub_region == sub_region]

    def find_adjacent_providers(self) -> List[Location]:
        return adjacent_providers(self.find_all())

    def find_by_filter(self, fn: Callable[[Location], bool]) -> List[Location]:
        return [b for b in self.find_all() if fn(b)]

    def count(self) -> int:
        return len(self.find_all())
