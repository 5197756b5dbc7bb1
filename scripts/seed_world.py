"""Seed a small demo world: a village, a linked-but-unplaced hamlet pair, and wilderness."""
from __future__ import annotations

import argparse
from pathlib import Path

from worldgrid.cli import build_service
from worldgrid.config import load_config
from worldgrid.logging_utils import configure_logging
from worldgrid.models.location import Actor, Direction, Exit, Feature, Location, LocationDraft
from worldgrid.persistence.store import default_worlds_root, world_file_path


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--config", default="configs/config.yaml")
    parser.add_argument("--world-id", default="demo")
    args = parser.parse_args()

    cfg = load_config(args.config)
    configure_logging(cfg.logging)
    path = world_file_path(args.world_id, default_worlds_root(cfg))
    if path.exists():
        raise SystemExit(f"world already exists: {path}")

    service = build_service(cfg, Path(path))
    for feature in (Feature(id="forest", name="Pine Forest"), Feature(id="river", name="River")):
        service.repo.add_feature(feature)
        service.features.add(feature)
    actor = Actor(actor_id="seed", actor_name="seed script")

    square = service.create_location(
        LocationDraft(name="Village Square", desc="Cobbles and a well.", feature_ids=["forest"]),
        actor,
    )
    service.create_location(
        LocationDraft(
            name="Mill",
            desc="A waterwheel turns slowly.",
            exits=[Exit(location_id=square.id, direction=Direction.WEST)],
            feature_ids=["river"],
        ),
        actor,
    )

    # an unplaced pair; linking it from the square cascades coordinates into both
    hamlet = service.repo.create(Location(name="Hamlet", exits=[Exit(location_id="orchard", direction=Direction.EAST)]))
    service.repo.create(Location(id="orchard", name="Orchard"))
    linked = [ex for ex in service.repo.find_by_id(square.id).exits if ex.direction != Direction.SOUTH]
    linked.append(Exit(location_id=hamlet.id, direction=Direction.SOUTH))
    current = service.repo.find_by_id(square.id)
    service.update_location(
        square.id,
        LocationDraft(name=current.name, desc=current.desc, exits=linked, feature_ids=current.feature_ids),
        actor,
    )

    report = service.data_integrity()
    print(f"world: {path}")
    print(f"locations: {report.total_locations}")
    print(f"integrity issues: {report.issues_found}")


if __name__ == "__main__":
    main()
