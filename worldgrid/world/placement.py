"""Placement checks and the exit direction validator.

Nothing in this module writes. The validator only reports where a target
could go; coordinates are committed later by the cascade once an exit is
actually created.
"""
from __future__ import annotations

from typing import List, Optional, Set, Tuple
import random

from worldgrid.models.location import DEFAULT_AREA_ID, Coordinate, Direction, Location
from worldgrid.models.results import ExitValidationResult, ValidDirection
from worldgrid.world.directions import ALL_DIRECTIONS, direction_from_offset, offset
from worldgrid.world.snapshot import WorldSnapshot
from worldgrid.world.subgraph import RelativePositions, calculate_relative_positions, find_connected_subgraph

NO_SOURCE_COORDINATES = "Source location has no coordinates"
NOT_ADJACENT = "Target location is not adjacent (must be exactly 1 cell away in same area)"
NO_VALID_DIRECTIONS = "No valid directions available (subgraph conflicts)"


def can_place_subgraph_at(
    anchor: Coordinate,
    positions: RelativePositions,
    subgraph_ids: Set[str],
    snapshot: WorldSnapshot,
) -> bool:
    """True if no projected cell is held by a location outside the subgraph."""
    for _location_id, (dx, dy) in positions.items():
        cell = anchor.shifted(dx, dy)
        for occupant in snapshot.occupants_at(cell):
            if occupant.id not in subgraph_ids:
                return False
    return True


def direction_between(source: Coordinate, target: Coordinate) -> Optional[Direction]:
    """Direction of a one-step move from source to target, else None."""
    if source.area_id != target.area_id:
        return None
    dx = target.x - source.x
    dy = target.y - source.y
    if abs(dx) > 1 or abs(dy) > 1 or (dx == 0 and dy == 0):
        return None
    direction = direction_from_offset(dx, dy)
    return None if direction == Direction.UNKNOWN else direction


def is_location_connected(location: Location, snapshot: WorldSnapshot) -> bool:
    """Whether the location touches the coordinate system directly."""
    if location.has_coordinates:
        return True
    for ex in location.exits:
        target = snapshot.get(ex.location_id)
        if target is not None and target.has_coordinates:
            return True
    for source, _ex in snapshot.incoming(location.id):
        if source.has_coordinates:
            return True
    return False


def validate_exit_directions(
    source: Location,
    target: Location,
    snapshot: WorldSnapshot,
) -> ExitValidationResult:
    source_coord = source.coordinate
    if source_coord is None:
        return ExitValidationResult(
            can_create_exit=False,
            error_message=NO_SOURCE_COORDINATES,
            target_has_coordinates=target.has_coordinates,
            target_is_connected=is_location_connected(target, snapshot),
        )

    target_coord = target.coordinate
    if target_coord is not None:
        direction = direction_between(source_coord, target_coord)
        if direction is None:
            return ExitValidationResult(
                can_create_exit=False,
                error_message=NOT_ADJACENT,
                target_has_coordinates=True,
                target_is_connected=True,
            )
        return ExitValidationResult(
            can_create_exit=True,
            valid_directions=[
                ValidDirection(direction=direction, is_fixed=True, target_coordinates=target_coord)
            ],
            target_has_coordinates=True,
            target_is_connected=True,
        )

    subgraph_ids = find_connected_subgraph(target, snapshot)
    positions = calculate_relative_positions(target, subgraph_ids, snapshot)

    valid: List[ValidDirection] = []
    for direction in ALL_DIRECTIONS:
        dx, dy = offset(direction)
        candidate = source_coord.shifted(dx, dy)
        if not can_place_subgraph_at(candidate, positions, subgraph_ids, snapshot):
            continue
        valid.append(ValidDirection(direction=direction, is_fixed=False, target_coordinates=candidate))

    return ExitValidationResult(
        can_create_exit=bool(valid),
        valid_directions=valid,
        error_message=None if valid else NO_VALID_DIRECTIONS,
        target_has_coordinates=False,
        target_is_connected=is_location_connected(target, snapshot),
    )


def find_random_unused_coordinate(
    snapshot: WorldSnapshot,
    area_id: str = DEFAULT_AREA_ID,
    *,
    rng: random.Random | None = None,
    max_radius: int = 100,
) -> Tuple[int, int]:
    """Pick a free cell on the smallest square ring around the origin that has one."""
    rng = rng or random.Random()
    used = {
        (loc.grid_x, loc.grid_y)
        for loc in snapshot.coordinated()
        if (loc.area_id or DEFAULT_AREA_ID) == area_id
    }
    if not used:
        return 0, 0
    for radius in range(1, max_radius + 1):
        candidates = [
            (x, y)
            for x in range(-radius, radius + 1)
            for y in range(-radius, radius + 1)
            if (abs(x) == radius or abs(y) == radius) and (x, y) not in used
        ]
        if candidates:
            return rng.choice(candidates)
    return rng.randrange(1000) + 100, rng.randrange(1000) + 100
