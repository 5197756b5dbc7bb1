"""Command-line access to a world file: list, edit and diagnose the grid."""
from __future__ import annotations

import argparse
from pathlib import Path
from typing import Any, Sequence
import json
import sys

from worldgrid.config import AppConfig, load_config
from worldgrid.engine.errors import LocationNotFoundError, WorldGridError
from worldgrid.engine.service import LocationService
from worldgrid.logging_utils import configure_logging
from worldgrid.models.location import Actor, Direction, Exit, LocationDraft
from worldgrid.persistence.audit import BaseAuditLog, InMemoryAuditLog, JsonlAuditLog
from worldgrid.persistence.repository import InMemoryFeatureRepository, JsonFileLocationRepository
from worldgrid.persistence.store import default_worlds_root, world_file_path


def _parse_exit(value: str) -> Exit:
    location_id, sep, direction = value.partition(":")
    if not sep:
        return Exit(location_id=location_id)
    try:
        return Exit(location_id=location_id, direction=Direction(direction.upper()))
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"unknown direction: {direction}") from exc


def _parse_direction(value: str) -> Direction:
    try:
        return Direction(value.upper())
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"unknown direction: {value}") from exc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="worldgrid")
    parser.add_argument("--config", default="configs/config.yaml")
    parser.add_argument("--world", default=None, help="path to world.json")
    parser.add_argument("--world-id", default="default")
    parser.add_argument("--user-id", default="cli")
    parser.add_argument("--user-name", default="cli")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("list")

    create = sub.add_parser("create")
    create.add_argument("--name", required=True)
    create.add_argument("--desc", default="")
    create.add_argument("--exit", dest="exits", action="append", type=_parse_exit, default=[])
    create.add_argument("--feature", dest="features", action="append", default=[])

    link = sub.add_parser("link")
    link.add_argument("source")
    link.add_argument("target")
    link.add_argument("direction", type=_parse_direction)

    validate = sub.add_parser("validate-exit")
    validate.add_argument("source")
    validate.add_argument("target")

    wild = sub.add_parser("wilderness")
    wild.add_argument("location_id")

    sub.add_parser("wilderness-all")
    sub.add_parser("backfill")
    sub.add_parser("integrity")
    return parser


def build_service(cfg: AppConfig, world_path: Path) -> LocationService:
    repo = JsonFileLocationRepository(world_path)
    features = InMemoryFeatureRepository(repo.features)
    audit: BaseAuditLog = JsonlAuditLog(cfg.audit_log_path) if cfg.logging.audit_log else InMemoryAuditLog()
    return LocationService(repo=repo, features=features, audit=audit, cfg=cfg)


def _emit(payload: Any) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def _link(service: LocationService, args: argparse.Namespace, actor: Actor) -> Any:
    source = service.repo.find_by_id(args.source)
    if source is None:
        raise LocationNotFoundError(args.source)
    if service.repo.find_by_id(args.target) is None:
        raise LocationNotFoundError(args.target)
    exits = [ex for ex in source.exits if ex.location_id != args.target]
    exits.append(Exit(location_id=args.target, direction=args.direction))
    draft = LocationDraft(
        name=source.name,
        desc=source.desc,
        item_ids=source.item_ids,
        creature_ids=source.creature_ids,
        exits=exits,
        feature_ids=source.feature_ids,
    )
    updated = service.update_location(source.id, draft, actor)
    if updated is None:
        raise LocationNotFoundError(args.source)
    return updated.model_dump(mode="json")


def run(args: argparse.Namespace, service: LocationService) -> Any:
    actor = Actor(actor_id=args.user_id, actor_name=args.user_name)
    if args.command == "list":
        return [loc.model_dump(mode="json") for loc in service.repo.find_all()]
    if args.command == "create":
        draft = LocationDraft(name=args.name, desc=args.desc, exits=args.exits, feature_ids=args.features)
        return service.create_location(draft, actor).model_dump(mode="json")
    if args.command == "link":
        return _link(service, args, actor)
    if args.command == "validate-exit":
        result = service.validate_exit(args.source, args.target)
        if result is None:
            raise WorldGridError(f"source or target not found: {args.source}, {args.target}")
        return result.model_dump(mode="json")
    if args.command == "wilderness":
        created = service.generate_wilderness(args.location_id, actor)
        if created is None:
            raise WorldGridError(f"location missing or has no coordinates: {args.location_id}")
        return {direction.value: loc.id for direction, loc in created.items()}
    if args.command == "wilderness-all":
        return {"created": service.generate_all_wilderness(actor)}
    if args.command == "backfill":
        return {"updated": service.backfill_wilderness_features(actor)}
    if args.command == "integrity":
        return service.data_integrity().model_dump(mode="json")
    raise WorldGridError(f"unknown command: {args.command}")


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    cfg = load_config(args.config)
    configure_logging(cfg.logging)
    world_path = Path(args.world) if args.world else world_file_path(args.world_id, default_worlds_root(cfg))
    service = build_service(cfg, world_path)

    try:
        payload = run(args, service)
    except WorldGridError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    _emit(payload)
    return 0


if __name__ == "__main__":
    sys.exit(main())
