from __future__ import annotations

from worldgrid.models.location import Actor, AuditAction, Direction, Exit, Feature, Location
from worldgrid.persistence.audit import InMemoryAuditLog
from worldgrid.persistence.repository import InMemoryFeatureRepository, InMemoryLocationRepository
from worldgrid.world.directions import ALL_DIRECTIONS, offset, opposite
from worldgrid.world.wilderness import GENERIC_DESCRIPTION, WildernessGenerator, describe_wilderness

ACTOR = Actor(actor_id="u1", actor_name="Tester")


def make_generator(locations, features=()):
    repo = InMemoryLocationRepository(list(locations))
    audit = InMemoryAuditLog()
    generator = WildernessGenerator(repo, InMemoryFeatureRepository(list(features)), audit)
    return repo, audit, generator


def test_describe_wilderness_matches_keywords_in_rule_order():
    assert describe_wilderness([]) == GENERIC_DESCRIPTION
    assert describe_wilderness(["Ancient Castle"]) == GENERIC_DESCRIPTION
    assert describe_wilderness(["Pine Forest", "Babbling Stream"]) == (
        "An untamed stretch of wilderness. sparse trees dot the landscape. "
        "the sound of water can be heard in the distance."
    )


def test_generate_fills_all_eight_neighbours_with_reciprocal_exits():
    parent = Location(id="p", name="Keep", grid_x=0, grid_y=0, feature_ids=["f1"])
    repo, audit, generator = make_generator([parent], [Feature(id="f1", name="Meadow")])

    created = generator.generate(repo.find_by_id("p"), ACTOR)

    assert set(created) == set(ALL_DIRECTIONS)
    for direction, filler in created.items():
        dx, dy = offset(direction)
        assert (filler.grid_x, filler.grid_y) == (dx, dy)
        assert filler.name == "Wilderness"
        assert filler.feature_ids == ["f1"]
        assert "tall grasses sway" in filler.desc
        assert filler.exits == [Exit(location_id="p", direction=opposite(direction))]

    updated = repo.find_by_id("p")
    for direction, filler in created.items():
        assert updated.exit_in(direction).location_id == filler.id
    assert len(audit.entries) == 8
    assert all(entry.action == AuditAction.CREATE for entry in audit.entries)
    assert audit.entries[0].record_name == "Wilderness (auto-created)"


def test_generate_skips_occupied_cells_and_keeps_existing_exits():
    parent = Location(
        id="p",
        name="Keep",
        grid_x=0,
        grid_y=0,
        exits=[Exit(location_id="t", direction=Direction.EAST), Exit(location_id="x", direction=Direction.SOUTH)],
    )
    tower = Location(id="t", name="Tower", grid_x=1, grid_y=0)
    repo, _audit, generator = make_generator([parent, tower])

    created = generator.generate(repo.find_by_id("p"), ACTOR)

    assert Direction.EAST not in created
    assert len(created) == 7
    updated = repo.find_by_id("p")
    # the existing SOUTH exit is never overwritten by a filler exit
    assert updated.exit_in(Direction.SOUTH).location_id == "x"
    assert updated.exit_in(Direction.EAST).location_id == "t"


def test_generate_is_idempotent():
    parent = Location(id="p", name="Keep", grid_x=0, grid_y=0)
    repo, _audit, generator = make_generator([parent])

    generator.generate(repo.find_by_id("p"), ACTOR)
    exits_before = repo.find_by_id("p").exits
    again = generator.generate(repo.find_by_id("p"), ACTOR)

    assert again == {}
    assert len(repo.find_all()) == 9
    assert repo.find_by_id("p").exits == exits_before


def test_generate_without_coordinates_does_nothing():
    parent = Location(id="p", name="Keep")
    repo, audit, generator = make_generator([parent])

    assert generator.generate(repo.find_by_id("p"), ACTOR) == {}
    assert len(repo.find_all()) == 1
    assert audit.entries == []


def test_generate_all_skips_wilderness_and_unplaced():
    a = Location(id="a", name="A", grid_x=0, grid_y=0)
    b = Location(id="b", name="B", grid_x=5, grid_y=5)
    c = Location(id="c", name="C")
    repo, _audit, generator = make_generator([a, b, c])

    total = generator.generate_all(ACTOR)

    assert total == 16
    assert generator.generate_all(ACTOR) == 0
    assert not repo.find_by_id("c").has_coordinates


def test_reclaim_repoints_exits_and_deletes_filler():
    parent = Location(id="p", name="Keep", grid_x=0, grid_y=0)
    repo, audit, generator = make_generator([parent])
    created = generator.generate(repo.find_by_id("p"), ACTOR)
    north = created[Direction.NORTH]

    assert generator.reclaim(north.coordinate, "newcomer", ACTOR)

    assert repo.find_by_id(north.id) is None
    assert repo.find_by_id("p").exit_in(Direction.NORTH).location_id == "newcomer"
    assert audit.entries[-1].action == AuditAction.DELETE


def test_reclaim_refuses_real_locations():
    parent = Location(id="p", name="Keep", grid_x=0, grid_y=0)
    repo, _audit, generator = make_generator([parent])

    assert not generator.reclaim(parent.coordinate, "newcomer", ACTOR)
    assert repo.find_by_id("p") is not None


def test_backfill_features_merges_adjacent_real_features():
    a = Location(id="a", name="Grove", grid_x=0, grid_y=0, feature_ids=["forest"])
    b = Location(id="b", name="Ford", grid_x=2, grid_y=0, feature_ids=["river"])
    wild = Location(id="w", name="Wilderness", grid_x=1, grid_y=0)
    features = [Feature(id="forest", name="Old Forest"), Feature(id="river", name="River")]
    repo, audit, generator = make_generator([a, b, wild], features)

    updated = generator.backfill_features(ACTOR)

    assert updated == 1
    refreshed = repo.find_by_id("w")
    assert set(refreshed.feature_ids) == {"forest", "river"}
    assert "sparse trees" in refreshed.desc
    assert "sound of water" in refreshed.desc
    assert audit.entries[-1].action == AuditAction.UPDATE
    assert generator.backfill_features(ACTOR) == 0


def test_reclaim_drops_new_owners_own_exits_to_filler():
    parent = Location(id="p", name="Keep", grid_x=0, grid_y=0)
    repo, _audit, generator = make_generator([parent])
    north = generator.generate(repo.find_by_id("p"), ACTOR)[Direction.NORTH]
    repo.create(Location(id="newcomer", name="Newcomer", exits=[Exit(location_id=north.id, direction=Direction.SOUTH)]))

    assert generator.reclaim(north.coordinate, "newcomer", ACTOR)

    assert repo.find_by_id("newcomer").exits == []
    assert repo.find_by_id("p").exit_in(Direction.NORTH).location_id == "newcomer"
