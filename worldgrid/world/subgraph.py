"""Connected subgraphs and relative layouts over the exit graph."""
from __future__ import annotations

from collections import deque
from typing import Dict, List, Set, Tuple

from worldgrid.models.location import Location
from worldgrid.models.results import PositionConflict
from worldgrid.world.directions import has_grid_offset, offset, opposite
from worldgrid.world.snapshot import WorldSnapshot

RelativePositions = Dict[str, Tuple[int, int]]


def find_connected_subgraph(seed: Location, snapshot: WorldSnapshot) -> Set[str]:
    """Ids reachable from seed when exits are followed in both directions."""
    visited: Set[str] = {seed.id}
    queue = deque([seed.id])
    while queue:
        current_id = queue.popleft()
        current = snapshot.get(current_id)
        if current is None:
            # dangling exit target, nothing to expand
            continue
        for ex in current.exits:
            if ex.location_id not in visited:
                visited.add(ex.location_id)
                queue.append(ex.location_id)
        for source, _ex in snapshot.incoming(current_id):
            if source.id not in visited:
                visited.add(source.id)
                queue.append(source.id)
    return visited


def calculate_relative_positions(
    anchor: Location,
    subgraph_ids: Set[str],
    snapshot: WorldSnapshot,
) -> RelativePositions:
    """Offsets of every reachable member from the anchor, which sits at (0, 0).

    Outgoing exits place the neighbour at current + offset(direction);
    incoming exits place it at current + offset(opposite(direction)).
    The first position found in BFS order wins and later, disagreeing
    paths are ignored. Use find_position_conflicts to surface them.
    """
    positions: RelativePositions = {anchor.id: (0, 0)}
    queue = deque([anchor.id])
    while queue:
        current_id = queue.popleft()
        current = snapshot.get(current_id)
        if current is None:
            continue
        cx, cy = positions[current_id]

        for ex in current.exits:
            neighbor_id = ex.location_id
            if neighbor_id not in subgraph_ids or neighbor_id in positions:
                continue
            if snapshot.get(neighbor_id) is None:
                continue
            dx, dy = offset(ex.direction)
            positions[neighbor_id] = (cx + dx, cy + dy)
            queue.append(neighbor_id)

        for source, ex in snapshot.incoming(current_id):
            if source.id not in subgraph_ids or source.id in positions:
                continue
            dx, dy = offset(opposite(ex.direction))
            positions[source.id] = (cx + dx, cy + dy)
            queue.append(source.id)
    return positions


def find_position_conflicts(
    positions: RelativePositions,
    snapshot: WorldSnapshot,
) -> List[PositionConflict]:
    """Exits between positioned members whose label disagrees with the layout."""
    conflicts: List[PositionConflict] = []
    for location_id, (x, y) in positions.items():
        loc = snapshot.get(location_id)
        if loc is None:
            continue
        for ex in loc.exits:
            target = positions.get(ex.location_id)
            if target is None or not has_grid_offset(ex.direction):
                continue
            actual = (target[0] - x, target[1] - y)
            expected = offset(ex.direction)
            if actual != expected:
                conflicts.append(
                    PositionConflict(
                        from_location_id=location_id,
                        to_location_id=ex.location_id,
                        direction=ex.direction,
                        expected_offset=expected,
                        actual_offset=actual,
                    )
                )
    return conflicts
