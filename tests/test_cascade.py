from __future__ import annotations

from worldgrid.models.location import Actor, Coordinate, Direction, Exit, Location
from worldgrid.persistence.audit import InMemoryAuditLog
from worldgrid.persistence.repository import InMemoryFeatureRepository, InMemoryLocationRepository
from worldgrid.world.cascade import assign_coordinates_to_subgraph, process_exit_changes
from worldgrid.world.snapshot import WorldSnapshot
from worldgrid.world.wilderness import WildernessGenerator

ACTOR = Actor(actor_id="u1", actor_name="Tester")


def make_location(location_id: str, exits=(), x=None, y=None, name=None) -> Location:
    return Location(
        id=location_id,
        name=name or location_id.upper(),
        exits=[Exit(location_id=target, direction=direction) for target, direction in exits],
        grid_x=x,
        grid_y=y,
    )


def make_wilderness(repo: InMemoryLocationRepository) -> WildernessGenerator:
    return WildernessGenerator(repo, InMemoryFeatureRepository(), InMemoryAuditLog())


def test_assign_places_whole_subgraph_relative_to_anchor():
    t = make_location("t", exits=[("u", Direction.EAST)])
    u = make_location("u", exits=[("v", Direction.SOUTH)])
    v = make_location("v")
    repo = InMemoryLocationRepository([t, u, v])
    snapshot = WorldSnapshot.from_repository(repo)

    assigned = assign_coordinates_to_subgraph(
        snapshot.get("t"), Coordinate(x=10, y=10), snapshot, repo, None, ACTOR
    )

    assert set(assigned) == {"t", "u", "v"}
    assert repo.find_by_id("t").coordinate == Coordinate(x=10, y=10)
    assert repo.find_by_id("u").coordinate == Coordinate(x=11, y=10)
    assert repo.find_by_id("v").coordinate == Coordinate(x=11, y=11)


def test_assign_never_moves_placed_members():
    t = make_location("t", exits=[("p", Direction.EAST)])
    p = make_location("p", x=50, y=50)
    repo = InMemoryLocationRepository([t, p])
    snapshot = WorldSnapshot.from_repository(repo)

    assigned = assign_coordinates_to_subgraph(
        snapshot.get("t"), Coordinate(x=0, y=0), snapshot, repo, None, ACTOR
    )

    assert assigned == ["t"]
    assert repo.find_by_id("p").coordinate == Coordinate(x=50, y=50)


def test_assign_skips_member_on_occupied_cell():
    blocker = make_location("blocker", x=1, y=0)
    t = make_location("t", exits=[("u", Direction.EAST)])
    u = make_location("u")
    repo = InMemoryLocationRepository([blocker, t, u])
    snapshot = WorldSnapshot.from_repository(repo)

    assigned = assign_coordinates_to_subgraph(
        snapshot.get("t"), Coordinate(x=0, y=0), snapshot, repo, None, ACTOR
    )

    assert assigned == ["t"]
    assert not repo.find_by_id("u").has_coordinates


def test_assign_rejects_stale_snapshot_member():
    t = make_location("t")
    repo = InMemoryLocationRepository([t])
    snapshot = WorldSnapshot.from_repository(repo)
    # someone else placed t after the snapshot was taken
    repo.update(repo.find_by_id("t").placed_at(Coordinate(x=7, y=7)))

    assigned = assign_coordinates_to_subgraph(
        snapshot.get("t"), Coordinate(x=0, y=0), snapshot, repo, None, ACTOR
    )

    assert assigned == []
    assert repo.find_by_id("t").coordinate == Coordinate(x=7, y=7)


def test_assign_generates_wilderness_after_all_members_are_placed():
    t = make_location("t", exits=[("u", Direction.EAST)])
    u = make_location("u")
    repo = InMemoryLocationRepository([t, u])
    snapshot = WorldSnapshot.from_repository(repo)

    assign_coordinates_to_subgraph(
        snapshot.get("t"), Coordinate(x=0, y=0), snapshot, repo, make_wilderness(repo), ACTOR
    )

    assert repo.find_by_id("t").coordinate == Coordinate(x=0, y=0)
    assert repo.find_by_id("u").coordinate == Coordinate(x=1, y=0)
    cells = {}
    for loc in repo.find_all():
        key = loc.coordinate.as_key()
        assert key not in cells
        cells[key] = loc.id
    # the pair plus fillers cover exactly the 4x3 block around them
    assert len(cells) == 12


def test_process_exit_changes_places_new_target():
    a = make_location("a", x=0, y=0, exits=[("b", Direction.NORTH)])
    b = make_location("b")
    repo = InMemoryLocationRepository([a, b])
    snapshot = WorldSnapshot.from_repository(repo)

    assigned = process_exit_changes(
        snapshot.get("a"), snapshot.get("a").exits, [], snapshot, repo, None, ACTOR
    )

    assert assigned == ["b"]
    assert repo.find_by_id("b").coordinate == Coordinate(x=0, y=-1)


def test_process_exit_changes_ignores_existing_and_unplaced_sources():
    a = make_location("a", x=0, y=0, exits=[("b", Direction.NORTH)])
    b = make_location("b")
    repo = InMemoryLocationRepository([a, b])
    snapshot = WorldSnapshot.from_repository(repo)
    source = snapshot.get("a")

    assert process_exit_changes(source, source.exits, source.exits, snapshot, repo, None, ACTOR) == []

    unplaced = make_location("c", exits=[("b", Direction.NORTH)])
    assert process_exit_changes(unplaced, unplaced.exits, [], snapshot, repo, None, ACTOR) == []
    assert not repo.find_by_id("b").has_coordinates


def test_process_exit_changes_skips_target_placed_by_earlier_cascade():
    # b and c are linked, so placing b already places c
    a = make_location("a", x=0, y=0, exits=[("b", Direction.NORTH), ("c", Direction.EAST)])
    b = make_location("b", exits=[("c", Direction.EAST)])
    c = make_location("c")
    repo = InMemoryLocationRepository([a, b, c])
    snapshot = WorldSnapshot.from_repository(repo)
    source = snapshot.get("a")

    assigned = process_exit_changes(source, source.exits, [], snapshot, repo, None, ACTOR)

    assert sorted(assigned) == ["b", "c"]
    assert repo.find_by_id("b").coordinate == Coordinate(x=0, y=-1)
    assert repo.find_by_id("c").coordinate == Coordinate(x=1, y=-1)


def test_cascade_reclaims_wilderness_cells():
    a = make_location("a", x=0, y=0)
    b = make_location("b")
    repo = InMemoryLocationRepository([a, b])
    wilderness = make_wilderness(repo)
    wilderness.generate(repo.find_by_id("a"), ACTOR)
    filler_north = repo.find_by_coordinates(0, -1)
    assert wilderness.is_wilderness(filler_north)

    linked = repo.find_by_id("a")
    linked = linked.model_copy(
        update={"exits": [ex for ex in linked.exits if ex.direction != Direction.NORTH]
                + [Exit(location_id="b", direction=Direction.NORTH)]}
    )
    old_exits = repo.find_by_id("a").exits
    repo.update(linked)
    snapshot = WorldSnapshot.from_repository(repo)

    assigned = process_exit_changes(
        snapshot.get("a"), snapshot.get("a").exits, old_exits, snapshot, repo, wilderness, ACTOR
    )

    assert assigned == ["b"]
    assert repo.find_by_id(filler_north.id) is None
    assert repo.find_by_coordinates(0, -1).id == "b"


def test_reclaim_drops_members_own_exit_to_filler_and_still_commits():
    s = make_location("s", x=0, y=0)
    repo = InMemoryLocationRepository([s])
    wilderness = make_wilderness(repo)
    created = wilderness.generate(repo.find_by_id("s"), ACTOR)
    east = created[Direction.EAST]
    # t already points north at s's east filler
    repo.create(make_location("t", exits=[(east.id, Direction.NORTH)]))

    old_exits = repo.find_by_id("s").exits
    relinked = [ex for ex in old_exits if ex.direction != Direction.EAST]
    relinked.append(Exit(location_id="t", direction=Direction.EAST))
    repo.update(repo.find_by_id("s").model_copy(update={"exits": relinked}))
    snapshot = WorldSnapshot.from_repository(repo)

    assigned = process_exit_changes(
        snapshot.get("s"), snapshot.get("s").exits, old_exits, snapshot, repo, wilderness, ACTOR
    )

    assert assigned == ["t"]
    t = repo.find_by_id("t")
    assert t.coordinate == Coordinate(x=1, y=0)
    assert t.exit_to("t") is None
    assert t.exit_to(east.id) is None
    assert repo.find_by_id(east.id) is None
    assert repo.find_by_coordinates(1, 0).id == "t"


def test_reclaim_bumps_other_members_without_skipping_them():
    s = make_location("s", x=0, y=0)
    repo = InMemoryLocationRepository([s])
    wilderness = make_wilderness(repo)
    created = wilderness.generate(repo.find_by_id("s"), ACTOR)
    east = created[Direction.EAST]
    # u hangs off t and also points at the filler that t will replace
    repo.create(make_location("t", exits=[("u", Direction.EAST)]))
    repo.create(make_location("u", exits=[(east.id, Direction.WEST)]))

    old_exits = repo.find_by_id("s").exits
    relinked = [ex for ex in old_exits if ex.direction != Direction.EAST]
    relinked.append(Exit(location_id="t", direction=Direction.EAST))
    repo.update(repo.find_by_id("s").model_copy(update={"exits": relinked}))
    snapshot = WorldSnapshot.from_repository(repo)

    assigned = process_exit_changes(
        snapshot.get("s"), snapshot.get("s").exits, old_exits, snapshot, repo, wilderness, ACTOR
    )

    assert sorted(assigned) == ["t", "u"]
    assert repo.find_by_id("u").coordinate == Coordinate(x=2, y=0)
    assert repo.find_by_id("u").exit_in(Direction.WEST).location_id == "t"
