"""Compass direction arithmetic as lookup tables.

North is -y (up on a rendered map) and south is +y. ENTER and UNKNOWN
have no grid offset and are excluded from ALL_DIRECTIONS, the set used
for placement and wilderness fill.
"""
from __future__ import annotations

from typing import Dict, List, Tuple

from worldgrid.models.location import Direction

DIRECTION_OFFSETS: Dict[Direction, Tuple[int, int]] = {
    Direction.NORTH: (0, -1),
    Direction.NORTHEAST: (1, -1),
    Direction.EAST: (1, 0),
    Direction.SOUTHEAST: (1, 1),
    Direction.SOUTH: (0, 1),
    Direction.SOUTHWEST: (-1, 1),
    Direction.WEST: (-1, 0),
    Direction.NORTHWEST: (-1, -1),
    Direction.ENTER: (0, 0),
    Direction.UNKNOWN: (0, 0),
}

OPPOSITE_DIRECTIONS: Dict[Direction, Direction] = {
    Direction.NORTH: Direction.SOUTH,
    Direction.SOUTH: Direction.NORTH,
    Direction.EAST: Direction.WEST,
    Direction.WEST: Direction.EAST,
    Direction.NORTHEAST: Direction.SOUTHWEST,
    Direction.SOUTHWEST: Direction.NORTHEAST,
    Direction.NORTHWEST: Direction.SOUTHEAST,
    Direction.SOUTHEAST: Direction.NORTHWEST,
    Direction.ENTER: Direction.ENTER,
    Direction.UNKNOWN: Direction.UNKNOWN,
}

ALL_DIRECTIONS: List[Direction] = [
    Direction.NORTH,
    Direction.NORTHEAST,
    Direction.EAST,
    Direction.SOUTHEAST,
    Direction.SOUTH,
    Direction.SOUTHWEST,
    Direction.WEST,
    Direction.NORTHWEST,
]

_DIRECTION_BY_OFFSET: Dict[Tuple[int, int], Direction] = {
    DIRECTION_OFFSETS[d]: d for d in ALL_DIRECTIONS
}


def offset(direction: Direction) -> Tuple[int, int]:
    return DIRECTION_OFFSETS[direction]


def opposite(direction: Direction) -> Direction:
    return OPPOSITE_DIRECTIONS[direction]


def direction_from_offset(dx: int, dy: int) -> Direction:
    """Map a unit grid step back to its direction; UNKNOWN otherwise."""
    return _DIRECTION_BY_OFFSET.get((dx, dy), Direction.UNKNOWN)


def has_grid_offset(direction: Direction) -> bool:
    return DIRECTION_OFFSETS[direction] != (0, 0)
