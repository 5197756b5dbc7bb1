"""Commit coordinates to whole subgraphs when they join the grid."""
from __future__ import annotations

from typing import Dict, List, Optional
import logging

from worldgrid.models.location import Actor, Coordinate, Exit, Location
from worldgrid.persistence.repository import BaseLocationRepository
from worldgrid.world.directions import offset
from worldgrid.world.snapshot import WorldSnapshot
from worldgrid.world.subgraph import calculate_relative_positions, find_connected_subgraph
from worldgrid.world.wilderness import WildernessGenerator

logger = logging.getLogger(__name__)


def assign_coordinates_to_subgraph(
    anchor: Location,
    coordinate: Coordinate,
    snapshot: WorldSnapshot,
    repo: BaseLocationRepository,
    wilderness: Optional[WildernessGenerator],
    actor: Actor,
) -> List[str]:
    """Place anchor at coordinate and every unplaced member relative to it.

    Members that already have coordinates are never moved. A member whose
    cell is held by a wilderness filler takes the cell over; a member whose
    cell is held by anything else is skipped. Each write is a
    compare-and-set against the member's snapshot version (plus the exit
    rewrites this cascade's own reclaims made), so a member changed since
    the snapshot was taken is skipped rather than clobbered, and before any
    filler is removed for it.
    Wilderness is generated only after all member cells are committed.
    Returns the ids that received coordinates.
    """
    subgraph_ids = find_connected_subgraph(anchor, snapshot)
    positions = calculate_relative_positions(anchor, subgraph_ids, snapshot)

    # versions each member should still have; reclaims rewrite exits and bump them
    expected: Dict[str, int] = {
        location_id: snapshot.get(location_id).version
        for location_id in positions
        if snapshot.get(location_id) is not None
    }

    def _stale(location_id: str) -> bool:
        current = repo.find_by_id(location_id)
        if current is None or current.has_coordinates or current.version != expected[location_id]:
            logger.warning(
                "cascade skipped member location_id=%s anchor_id=%s reason=stale_or_missing",
                location_id,
                anchor.id,
            )
            return True
        return False

    committed: List[Location] = []
    for location_id, (dx, dy) in positions.items():
        member = snapshot.get(location_id)
        if member is None or member.has_coordinates:
            continue
        # checked before reclaiming so a stale member never empties a cell
        if _stale(location_id):
            continue
        cell = coordinate.shifted(dx, dy)
        occupant = repo.find_by_coordinates(cell.x, cell.y, cell.area_id)
        if occupant is not None and occupant.id != location_id:
            if wilderness is None or not wilderness.reclaim(cell, location_id, actor):
                logger.warning(
                    "cascade skipped member location_id=%s anchor_id=%s reason=occupied occupant_id=%s",
                    location_id,
                    anchor.id,
                    occupant.id,
                )
                continue
            for other_id in expected:
                other = snapshot.get(other_id)
                if other is not None and other.exit_to(occupant.id) is not None:
                    expected[other_id] += 1
            if _stale(location_id):
                continue
        current = repo.find_by_id(location_id)
        placed = current.placed_at(cell)
        if not repo.update(placed, expected_version=current.version):
            logger.warning(
                "cascade skipped member location_id=%s anchor_id=%s reason=stale_or_missing",
                location_id,
                anchor.id,
            )
            continue
        committed.append(placed)

    if committed:
        logger.info(
            "cascade committed anchor_id=%s anchor=%s count=%d",
            anchor.id,
            coordinate.as_key(),
            len(committed),
        )

    if wilderness is not None:
        for placed in committed:
            current = repo.find_by_id(placed.id) or placed
            wilderness.generate(current, actor)

    return [loc.id for loc in committed]


def process_exit_changes(
    source: Location,
    new_exits: List[Exit],
    old_exits: List[Exit],
    snapshot: WorldSnapshot,
    repo: BaseLocationRepository,
    wilderness: Optional[WildernessGenerator],
    actor: Actor,
) -> List[str]:
    """Cascade coordinates into targets of newly added exits from a placed source."""
    source_coord = source.coordinate
    if source_coord is None:
        return []
    old_targets = {ex.location_id for ex in old_exits}
    added = [ex for ex in new_exits if ex.location_id not in old_targets]

    assigned: List[str] = []
    for ex in added:
        target = snapshot.get(ex.location_id)
        if target is None or target.has_coordinates:
            continue
        dx, dy = offset(ex.direction)
        # later cascades must see what earlier ones committed
        current = WorldSnapshot.from_repository(repo) if assigned else snapshot
        target = current.get(ex.location_id)
        if target is None or target.has_coordinates:
            continue
        assigned.extend(
            assign_coordinates_to_subgraph(
                target, source_coord.shifted(dx, dy), current, repo, wilderness, actor
            )
        )
    return assigned
