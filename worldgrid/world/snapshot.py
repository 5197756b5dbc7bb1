"""Immutable read view of every location, taken once per request."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from worldgrid.models.location import DEFAULT_AREA_ID, Coordinate, Exit, Location
from worldgrid.persistence.repository import BaseLocationRepository


@dataclass(frozen=True)
class WorldSnapshot:
    locations: Tuple[Location, ...]
    by_id: Dict[str, Location] = field(init=False, repr=False, compare=False)
    _incoming: Dict[str, List[Tuple[Location, Exit]]] = field(init=False, repr=False, compare=False)
    _by_coord: Dict[Tuple[int, int, str], List[Location]] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        by_id: Dict[str, Location] = {}
        incoming: Dict[str, List[Tuple[Location, Exit]]] = {}
        by_coord: Dict[Tuple[int, int, str], List[Location]] = {}
        for loc in self.locations:
            by_id[loc.id] = loc
            seen_targets = set()
            for ex in loc.exits:
                # only the first exit from loc to a given target counts as its incoming edge
                if ex.location_id in seen_targets:
                    continue
                seen_targets.add(ex.location_id)
                incoming.setdefault(ex.location_id, []).append((loc, ex))
            coord = loc.coordinate
            if coord is not None:
                by_coord.setdefault(coord.as_key(), []).append(loc)
        object.__setattr__(self, "by_id", by_id)
        object.__setattr__(self, "_incoming", incoming)
        object.__setattr__(self, "_by_coord", by_coord)

    @classmethod
    def of(cls, locations: List[Location]) -> "WorldSnapshot":
        return cls(locations=tuple(locations))

    @classmethod
    def from_repository(cls, repo: BaseLocationRepository) -> "WorldSnapshot":
        return cls.of(repo.find_all())

    def __len__(self) -> int:
        return len(self.locations)

    def get(self, location_id: str) -> Optional[Location]:
        return self.by_id.get(location_id)

    def incoming(self, location_id: str) -> List[Tuple[Location, Exit]]:
        """(source, exit) pairs for every location with an exit to location_id."""
        return list(self._incoming.get(location_id, []))

    def find_by_coordinates(self, x: int, y: int, area_id: str = DEFAULT_AREA_ID) -> Optional[Location]:
        found = self._by_coord.get((x, y, area_id or DEFAULT_AREA_ID))
        return found[0] if found else None

    def occupants_at(self, coordinate: Coordinate) -> List[Location]:
        return list(self._by_coord.get(coordinate.as_key(), []))

    def coordinated(self) -> List[Location]:
        return [loc for loc in self.locations if loc.has_coordinates]
