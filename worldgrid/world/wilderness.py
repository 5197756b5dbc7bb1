"""Wilderness filler generation around placed locations."""
from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Set
import logging

from worldgrid.config import GridSection
from worldgrid.models.location import Actor, AuditAction, Coordinate, Direction, Exit, Location
from worldgrid.persistence.audit import BaseAuditLog
from worldgrid.persistence.repository import BaseFeatureRepository, BaseLocationRepository
from worldgrid.world.directions import ALL_DIRECTIONS, offset, opposite

logger = logging.getLogger(__name__)

WILDERNESS_NAME = "Wilderness"

# (keywords, sentence); a rule fires when any keyword is a substring of a feature name
DESCRIPTION_RULES = [
    (("forest", "tree"), "sparse trees dot the landscape"),
    (("river", "stream", "water"), "the sound of water can be heard in the distance"),
    (("road", "path", "trail"), "a faint path leads onward"),
    (("mountain", "hill"), "rocky terrain rises in the distance"),
    (("grass", "meadow", "plain"), "tall grasses sway in the breeze"),
    (("desert", "sand"), "sand stretches toward the horizon"),
    (("swamp", "marsh", "bog"), "murky ground squelches underfoot"),
    (("lake", "pond"), "still waters glimmer nearby"),
]

GENERIC_DESCRIPTION = "An untamed stretch of wilderness stretches before you."


def describe_wilderness(feature_names: Iterable[str]) -> str:
    names = [name.lower() for name in feature_names]
    elements = [
        sentence
        for keywords, sentence in DESCRIPTION_RULES
        if any(key in name for name in names for key in keywords)
    ]
    if not elements:
        return GENERIC_DESCRIPTION
    return "An untamed stretch of wilderness. " + ". ".join(elements) + "."


class WildernessGenerator:
    def __init__(
        self,
        repo: BaseLocationRepository,
        features: BaseFeatureRepository,
        audit: BaseAuditLog,
        grid: Optional[GridSection] = None,
    ) -> None:
        self.repo = repo
        self.features = features
        self.audit = audit
        self.wilderness_name = grid.wilderness_name if grid else WILDERNESS_NAME

    def is_wilderness(self, location: Location) -> bool:
        return location.name == self.wilderness_name

    def describe(self, feature_ids: Iterable[str]) -> str:
        names = []
        for feature_id in feature_ids:
            feature = self.features.find_by_id(feature_id)
            if feature is not None:
                names.append(feature.name)
        return describe_wilderness(names)

    def create_for_parent(self, parent: Location, actor: Actor) -> Dict[Direction, Location]:
        """Create a filler in every empty neighbouring cell of parent."""
        origin = parent.coordinate
        if origin is None:
            return {}
        description = self.describe(parent.feature_ids)
        created: Dict[Direction, Location] = {}
        for direction in ALL_DIRECTIONS:
            dx, dy = offset(direction)
            cell = origin.shifted(dx, dy)
            if self.repo.find_by_coordinates(cell.x, cell.y, cell.area_id) is not None:
                continue
            filler = Location(
                name=self.wilderness_name,
                desc=description,
                exits=[Exit(location_id=parent.id, direction=opposite(direction))],
                feature_ids=list(parent.feature_ids),
            ).placed_at(cell)
            stored = self.repo.create(filler)
            created[direction] = stored
            self.audit.record(stored.id, f"{self.wilderness_name} (auto-created)", AuditAction.CREATE, actor)
            logger.debug(
                "wilderness created parent_id=%s direction=%s cell=%s",
                parent.id,
                direction.value,
                cell.as_key(),
            )
        return created

    def add_exits_to_parent(self, parent: Location, created: Dict[Direction, Location]) -> Location:
        """Point parent at its new fillers without replacing any existing exit direction."""
        current = self.repo.find_by_id(parent.id) or parent
        exits = list(current.exits)
        for direction, filler in created.items():
            if any(ex.direction == direction for ex in exits):
                continue
            exits.append(Exit(location_id=filler.id, direction=direction))
        updated = current.model_copy(update={"exits": exits})
        self.repo.update(updated)
        return self.repo.find_by_id(parent.id) or updated

    def generate(self, parent: Location, actor: Actor) -> Dict[Direction, Location]:
        created = self.create_for_parent(parent, actor)
        if created:
            self.add_exits_to_parent(parent, created)
            logger.info("wilderness generated parent_id=%s count=%d", parent.id, len(created))
        return created

    def reclaim(self, cell: Coordinate, new_owner_id: str, actor: Actor) -> bool:
        """Free a cell held by a filler so a real location can take it.

        Exits that pointed at the filler are re-pointed at new_owner_id, except
        new_owner_id's own exits to it, which are dropped. The filler is
        deleted. Returns False if the cell is empty or held by anything other
        than a filler.
        """
        occupant = self.repo.find_by_coordinates(cell.x, cell.y, cell.area_id)
        if occupant is None or not self.is_wilderness(occupant):
            return False
        for loc in self.repo.find_all():
            if loc.id == occupant.id or loc.exit_to(occupant.id) is None:
                continue
            exits: List[Exit] = []
            for ex in loc.exits:
                if ex.location_id == occupant.id:
                    if loc.id == new_owner_id:
                        continue
                    ex = Exit(location_id=new_owner_id, direction=ex.direction)
                if ex not in exits:
                    exits.append(ex)
            self.repo.update(loc.model_copy(update={"exits": exits}))
        self.repo.delete(occupant.id)
        self.audit.record(occupant.id, f"{self.wilderness_name} (reclaimed)", AuditAction.DELETE, actor)
        logger.info("wilderness reclaimed cell=%s new_owner_id=%s", cell.as_key(), new_owner_id)
        return True

    def generate_all(self, actor: Actor) -> int:
        """Fill around every placed, non-wilderness location."""
        total = 0
        for loc in self.repo.find_all():
            if not loc.has_coordinates or self.is_wilderness(loc):
                continue
            # re-read so exits added by an earlier iteration are kept
            current = self.repo.find_by_id(loc.id) or loc
            total += len(self.generate(current, actor))
        return total

    def backfill_features(self, actor: Actor) -> int:
        """Give each filler the union of its non-wilderness neighbours' features."""
        updated_count = 0
        for wild in self.repo.find_all():
            if not self.is_wilderness(wild):
                continue
            origin = wild.coordinate
            if origin is None:
                continue
            adjacent: List[str] = []
            seen: Set[str] = set()
            for direction in ALL_DIRECTIONS:
                dx, dy = offset(direction)
                cell = origin.shifted(dx, dy)
                neighbor = self.repo.find_by_coordinates(cell.x, cell.y, cell.area_id)
                if neighbor is None or self.is_wilderness(neighbor):
                    continue
                for feature_id in neighbor.feature_ids:
                    if feature_id not in seen:
                        seen.add(feature_id)
                        adjacent.append(feature_id)
            if not adjacent or seen == set(wild.feature_ids):
                continue
            refreshed = wild.model_copy(update={"feature_ids": adjacent, "desc": self.describe(adjacent)})
            if self.repo.update(refreshed):
                updated_count += 1
                self.audit.record(
                    wild.id, f"{self.wilderness_name} (backfill features)", AuditAction.UPDATE, actor
                )
        return updated_count
