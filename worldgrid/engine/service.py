"""Request-level entry points for editing the location grid."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional
import logging
import random

from worldgrid.config import AppConfig, default_config
from worldgrid.models.location import (
    Actor,
    AuditAction,
    Coordinate,
    Direction,
    Location,
    LocationDraft,
    LocationType,
)
from worldgrid.models.results import ExitValidationResult, IntegrityReport
from worldgrid.persistence.audit import BaseAuditLog
from worldgrid.persistence.repository import BaseFeatureRepository, BaseLocationRepository
from worldgrid.world.cascade import process_exit_changes
from worldgrid.world.directions import has_grid_offset, offset, opposite
from worldgrid.world.integrity import check_data_integrity
from worldgrid.world.placement import find_random_unused_coordinate, validate_exit_directions
from worldgrid.world.snapshot import WorldSnapshot
from worldgrid.world.wilderness import WildernessGenerator

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class LocationService:
    repo: BaseLocationRepository
    features: BaseFeatureRepository
    audit: BaseAuditLog
    cfg: AppConfig = field(default_factory=default_config)
    rng: random.Random = field(default_factory=random.Random)

    def __post_init__(self) -> None:
        self.wilderness = WildernessGenerator(self.repo, self.features, self.audit, self.cfg.grid)

    def _snapshot(self) -> WorldSnapshot:
        return WorldSnapshot.from_repository(self.repo)

    def _random_coordinate(self, snapshot: WorldSnapshot) -> Coordinate:
        area_id = self.cfg.grid.default_area
        x, y = find_random_unused_coordinate(
            snapshot,
            area_id,
            rng=self.rng,
            max_radius=self.cfg.grid.random_search_radius,
        )
        return Coordinate(x=x, y=y, area_id=area_id)

    def _choose_coordinate(self, location: Location, snapshot: WorldSnapshot, actor: Actor) -> Coordinate:
        if len(snapshot) == 0:
            return Coordinate(x=0, y=0, area_id=self.cfg.grid.default_area)
        if not location.exits:
            return self._random_coordinate(snapshot)

        first = location.exits[0]
        target = snapshot.get(first.location_id)
        if target is None or target.coordinate is None or not has_grid_offset(first.direction):
            return self._random_coordinate(snapshot)

        # the new location sits on the opposite side of its first exit's target
        dx, dy = offset(opposite(first.direction))
        cell = target.coordinate.shifted(dx, dy)
        occupant = self.repo.find_by_coordinates(cell.x, cell.y, cell.area_id)
        if occupant is None or self.wilderness.reclaim(cell, location.id, actor):
            return cell
        logger.warning(
            "derived cell occupied, falling back to random cell location_id=%s cell=%s occupant_id=%s",
            location.id,
            cell.as_key(),
            occupant.id,
        )
        return self._random_coordinate(self._snapshot())

    def create_location(self, draft: LocationDraft, actor: Actor) -> Location:
        snapshot = self._snapshot()
        location = Location(
            **draft.model_dump(),
            last_edited_by=actor.actor_id,
            last_edited_at=_now(),
            location_type=LocationType.OUTDOOR_GROUND,
        )
        location = location.placed_at(self._choose_coordinate(location, snapshot, actor))
        created = self.repo.create(location)
        self.audit.record(created.id, created.name, AuditAction.CREATE, actor)
        logger.info(
            "location created location_id=%s name=%s cell=%s",
            created.id,
            created.name,
            created.coordinate.as_key(),
        )

        if self.cfg.grid.generate_wilderness_on_create:
            self.wilderness.generate(created, actor)
        return self.repo.find_by_id(created.id) or created

    def update_location(self, location_id: str, draft: LocationDraft, actor: Actor) -> Optional[Location]:
        """Replace the editable fields of a location and place newly linked targets.

        Coordinates, area, lock owner and image are kept from the stored record.
        Returns the re-read location, or None if it does not exist.
        """
        existing = self.repo.find_by_id(location_id)
        if existing is None:
            return None

        data = existing.model_dump()
        data.update(draft.model_dump())
        data.update(
            last_edited_by=actor.actor_id,
            last_edited_at=_now(),
            location_type=existing.location_type or LocationType.OUTDOOR_GROUND,
        )
        updated = Location.model_validate(data)
        if not self.repo.update(updated):
            return None
        self.audit.record(updated.id, updated.name, AuditAction.UPDATE, actor)

        snapshot = self._snapshot()
        source = snapshot.get(location_id) or updated
        wilderness = self.wilderness if self.cfg.grid.cascade_wilderness else None
        assigned = process_exit_changes(
            source, source.exits, existing.exits, snapshot, self.repo, wilderness, actor
        )
        if assigned:
            logger.info("exit changes placed location_id=%s count=%d", location_id, len(assigned))
        return self.repo.find_by_id(location_id)

    def validate_exit(self, source_id: str, target_id: str) -> Optional[ExitValidationResult]:
        snapshot = self._snapshot()
        source = snapshot.get(source_id)
        target = snapshot.get(target_id)
        if source is None or target is None:
            return None
        return validate_exit_directions(source, target, snapshot)

    def delete_location(self, location_id: str, actor: Actor) -> bool:
        existing = self.repo.find_by_id(location_id)
        if existing is None:
            return False
        cleaned = self.repo.remove_exits_to(location_id)
        if not self.repo.delete(location_id):
            return False
        self.audit.record(existing.id, existing.name, AuditAction.DELETE, actor)
        logger.info("location deleted location_id=%s exits_removed=%d", location_id, cleaned)
        return True

    def toggle_lock(self, location_id: str, user_id: str) -> Optional[Location]:
        existing = self.repo.find_by_id(location_id)
        if existing is None:
            return None
        locked_by = None if existing.locked_by == user_id else user_id
        self.repo.update(existing.model_copy(update={"locked_by": locked_by}))
        return self.repo.find_by_id(location_id)

    def generate_wilderness(self, location_id: str, actor: Actor) -> Optional[Dict[Direction, Location]]:
        """Fill empty neighbours of one location; None if it is missing or unplaced."""
        location = self.repo.find_by_id(location_id)
        if location is None or not location.has_coordinates:
            return None
        return self.wilderness.generate(location, actor)

    def generate_all_wilderness(self, actor: Actor) -> int:
        total = self.wilderness.generate_all(actor)
        logger.info("wilderness generated for world count=%d", total)
        return total

    def backfill_wilderness_features(self, actor: Actor) -> int:
        return self.wilderness.backfill_features(actor)

    def data_integrity(self) -> IntegrityReport:
        return check_data_integrity(self._snapshot())
