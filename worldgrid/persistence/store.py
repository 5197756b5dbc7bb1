"""File helpers for world snapshots and the audit trail."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional
import json
import os
import re

from worldgrid.config import AppConfig
from worldgrid.models.location import Feature, Location

_SAFE_WORLD_RE = re.compile(r"^[A-Za-z0-9_-]+$")


def validate_world_id(world_id: str) -> None:
    """Validate world_id to prevent path traversal."""
    if not world_id:
        raise ValueError("world_id must not be empty")
    if "/" in world_id or "\\" in world_id:
        raise ValueError("world_id must not contain path separators")
    if ".." in world_id:
        raise ValueError("world_id must not contain '..'")
    if not _SAFE_WORLD_RE.match(world_id):
        raise ValueError("world_id contains invalid characters")


def default_worlds_root(config: Optional[AppConfig]) -> Path:
    """Resolve worlds root from config or return data/worlds."""
    if config is None:
        return Path("data/worlds")
    return config.app.worlds_dir


def world_file_path(world_id: str, worlds_root: Path) -> Path:
    validate_world_id(world_id)
    return Path(worlds_root) / world_id / "world.json"


def save_world(path: Path, locations: List[Location], features: List[Feature] | None = None) -> Path:
    """Atomically write locations (and optional features) to a world.json file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + ".tmp")
    data = {
        "locations": [loc.model_dump(mode="json") for loc in locations],
        "features": [feature.model_dump(mode="json") for feature in (features or [])],
    }
    tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
    os.replace(tmp, path)
    return path


def load_world(path: Path) -> tuple[List[Location], List[Feature]]:
    """Load a world.json file. Raise FileNotFoundError if missing."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"world file not found: {path}")
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"world file is invalid JSON: {path}") from exc
    if isinstance(raw, list):
        # bare list of locations
        raw = {"locations": raw}
    if not isinstance(raw, dict):
        raise ValueError("world file root must be an object or a list of locations")
    locations = [Location.model_validate(item) for item in raw.get("locations", [])]
    features = [Feature.model_validate(item) for item in raw.get("features", [])]
    return locations, features


def append_audit_record(path: Path, record: Dict[str, Any]) -> Path:
    """Append one JSON record to an audit .jsonl file and return its path."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a", encoding="utf-8") as f:
        f.write(json.dumps(record, ensure_ascii=False) + "\n")
    return path


def read_audit_records(path: Path, limit: int | None = None) -> List[Dict[str, Any]]:
    """Read an audit .jsonl file into a list of dicts, skipping corrupt lines."""
    path = Path(path)
    if not path.exists():
        return []
    results: List[Dict[str, Any]] = []
    with path.open("r", encoding="utf-8") as f:
        for line in f:
            if limit is not None and len(results) >= limit:
                break
            line = line.strip()
            if not line:
                continue
            try:
                results.append(json.loads(line))
            except json.JSONDecodeError:
                continue
    return results
