"""Location and feature repositories consumed by the grid engine."""
from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional, Tuple
import logging
import threading

from worldgrid.models.location import DEFAULT_AREA_ID, Feature, Location
from worldgrid.persistence.store import load_world, save_world

logger = logging.getLogger(__name__)

CoordKey = Tuple[int, int, str]


class BaseLocationRepository(ABC):
    @abstractmethod
    def find_all(self) -> List[Location]:
        raise NotImplementedError

    @abstractmethod
    def find_by_id(self, location_id: str) -> Optional[Location]:
        raise NotImplementedError

    @abstractmethod
    def find_by_coordinates(self, x: int, y: int, area_id: str = DEFAULT_AREA_ID) -> Optional[Location]:
        raise NotImplementedError

    @abstractmethod
    def create(self, location: Location) -> Location:
        raise NotImplementedError

    @abstractmethod
    def update(self, location: Location, expected_version: int | None = None) -> bool:
        """Replace the stored record. False if missing or the version moved on."""
        raise NotImplementedError

    @abstractmethod
    def delete(self, location_id: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    def remove_exits_to(self, location_id: str) -> int:
        """Drop every exit pointing at location_id; return how many locations changed."""
        raise NotImplementedError


class BaseFeatureRepository(ABC):
    @abstractmethod
    def find_by_id(self, feature_id: str) -> Optional[Feature]:
        raise NotImplementedError


def _coord_key(location: Location) -> Optional[CoordKey]:
    coord = location.coordinate
    return coord.as_key() if coord else None


class InMemoryLocationRepository(BaseLocationRepository):
    """Id-indexed store with a coordinate index and per-record versions."""

    def __init__(self, locations: List[Location] | None = None) -> None:
        self._lock = threading.RLock()
        self._locations: Dict[str, Location] = {}
        self._by_coord: Dict[CoordKey, List[str]] = {}
        for loc in locations or []:
            self._put(loc.model_copy(deep=True))

    def _put(self, location: Location) -> None:
        previous = self._locations.get(location.id)
        if previous is not None:
            self._unindex(previous)
        self._locations[location.id] = location
        key = _coord_key(location)
        if key is not None:
            self._by_coord.setdefault(key, []).append(location.id)

    def _unindex(self, location: Location) -> None:
        key = _coord_key(location)
        if key is None:
            return
        ids = self._by_coord.get(key, [])
        if location.id in ids:
            ids.remove(location.id)
        if not ids:
            self._by_coord.pop(key, None)

    def _changed(self) -> None:
        """Hook for subclasses that persist after each write."""

    def find_all(self) -> List[Location]:
        with self._lock:
            return [loc.model_copy(deep=True) for loc in self._locations.values()]

    def find_by_id(self, location_id: str) -> Optional[Location]:
        with self._lock:
            loc = self._locations.get(location_id)
            return loc.model_copy(deep=True) if loc else None

    def find_by_coordinates(self, x: int, y: int, area_id: str = DEFAULT_AREA_ID) -> Optional[Location]:
        with self._lock:
            ids = self._by_coord.get((x, y, area_id or DEFAULT_AREA_ID))
            if not ids:
                return None
            return self._locations[ids[0]].model_copy(deep=True)

    def create(self, location: Location) -> Location:
        with self._lock:
            if location.id in self._locations:
                raise ValueError(f"location id already exists: {location.id}")
            stored = location.model_copy(deep=True, update={"version": 0})
            self._put(stored)
            self._changed()
            return stored.model_copy(deep=True)

    def update(self, location: Location, expected_version: int | None = None) -> bool:
        with self._lock:
            current = self._locations.get(location.id)
            if current is None:
                return False
            if expected_version is not None and current.version != expected_version:
                logger.warning(
                    "stale write rejected location_id=%s expected_version=%s current_version=%s",
                    location.id,
                    expected_version,
                    current.version,
                )
                return False
            stored = location.model_copy(deep=True, update={"version": current.version + 1})
            self._put(stored)
            self._changed()
            return True

    def delete(self, location_id: str) -> bool:
        with self._lock:
            current = self._locations.pop(location_id, None)
            if current is None:
                return False
            self._unindex(current)
            self._changed()
            return True

    def remove_exits_to(self, location_id: str) -> int:
        with self._lock:
            changed = 0
            for loc in list(self._locations.values()):
                kept = [ex for ex in loc.exits if ex.location_id != location_id]
                if len(kept) == len(loc.exits):
                    continue
                self._put(loc.model_copy(update={"exits": kept, "version": loc.version + 1}))
                changed += 1
            if changed:
                self._changed()
            return changed


class JsonFileLocationRepository(InMemoryLocationRepository):
    """In-memory repository persisted atomically to a world.json after each write."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._features: List[Feature] = []
        locations: List[Location] = []
        if self.path.exists():
            locations, self._features = load_world(self.path)
        super().__init__(locations)

    @property
    def features(self) -> List[Feature]:
        return list(self._features)

    def add_feature(self, feature: Feature) -> None:
        with self._lock:
            self._features = [f for f in self._features if f.id != feature.id] + [feature]
            self._changed()

    def _changed(self) -> None:
        save_world(self.path, list(self._locations.values()), self._features)


class InMemoryFeatureRepository(BaseFeatureRepository):
    def __init__(self, features: List[Feature] | None = None) -> None:
        self._features: Dict[str, Feature] = {f.id: f for f in features or []}

    def add(self, feature: Feature) -> None:
        self._features[feature.id] = feature

    def find_by_id(self, feature_id: str) -> Optional[Feature]:
        return self._features.get(feature_id)
