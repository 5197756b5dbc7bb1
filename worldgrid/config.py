"""Configuration loader and typed config objects."""
from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict
import os

from dotenv import load_dotenv
import yaml


@dataclass(frozen=True)
class AppSection:
    name: str
    env: str
    data_dir: Path
    worlds_dir: Path


@dataclass(frozen=True)
class GridSection:
    default_area: str
    wilderness_name: str
    generate_wilderness_on_create: bool
    cascade_wilderness: bool
    random_search_radius: int


@dataclass(frozen=True)
class LoggingSection:
    level: str
    log_jsonl: bool
    audit_log: bool


@dataclass(frozen=True)
class AppConfig:
    app: AppSection
    grid: GridSection
    logging: LoggingSection

    def resolve_paths(self, project_root: Path) -> "AppConfig":
        """Return a copy with app paths resolved to absolute paths."""
        app = self.app
        resolved = replace(
            app,
            data_dir=(project_root / app.data_dir).resolve() if not app.data_dir.is_absolute() else app.data_dir,
            worlds_dir=(project_root / app.worlds_dir).resolve() if not app.worlds_dir.is_absolute() else app.worlds_dir,
        )
        return replace(self, app=resolved)

    @property
    def audit_log_path(self) -> Path:
        return self.app.data_dir / "audit.jsonl"


def _load_env() -> None:
    if Path(".env").exists():
        load_dotenv(dotenv_path=Path(".env"), override=False)


def _require_section(cfg: Dict[str, Any], key: str) -> Dict[str, Any]:
    if key not in cfg or not isinstance(cfg[key], dict):
        raise ValueError(f"Missing or invalid config section: {key}")
    return cfg[key]


def _as_bool(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def default_config() -> AppConfig:
    """Built-in defaults, identical to an empty-but-complete config file."""
    return build_config({"app": {}, "grid": {}, "logging": {}})


def build_config(data: Dict[str, Any]) -> AppConfig:
    if not isinstance(data, dict):
        raise ValueError("Config root must be a mapping")

    app_cfg = _require_section(data, "app")
    grid_cfg = _require_section(data, "grid")
    logging_cfg = _require_section(data, "logging")

    # Environment overrides
    env_data_dir = os.getenv("WORLDGRID_DATA_DIR", "")
    env_log_level = os.getenv("WORLDGRID_LOG_LEVEL", "")

    data_dir = Path(env_data_dir or str(app_cfg.get("data_dir", "data")))
    app = AppSection(
        name=str(app_cfg.get("name", "worldgrid")),
        env=str(app_cfg.get("env", "dev")),
        data_dir=data_dir,
        worlds_dir=Path(str(app_cfg.get("worlds_dir", data_dir / "worlds"))),
    )

    radius = int(grid_cfg.get("random_search_radius", 100))
    if radius < 1:
        raise ValueError("grid.random_search_radius must be >= 1")
    grid = GridSection(
        default_area=str(grid_cfg.get("default_area", "overworld")),
        wilderness_name=str(grid_cfg.get("wilderness_name", "Wilderness")),
        generate_wilderness_on_create=_as_bool(grid_cfg.get("generate_wilderness_on_create"), True),
        cascade_wilderness=_as_bool(grid_cfg.get("cascade_wilderness"), True),
        random_search_radius=radius,
    )

    logging = LoggingSection(
        level=(env_log_level or str(logging_cfg.get("level", "INFO"))).upper(),
        log_jsonl=_as_bool(logging_cfg.get("log_jsonl"), False),
        audit_log=_as_bool(logging_cfg.get("audit_log"), True),
    )

    return AppConfig(app=app, grid=grid, logging=logging)


def load_config(config_path: str = "configs/config.yaml") -> AppConfig:
    """Load YAML config, apply env overrides, return typed AppConfig."""
    _load_env()

    path = Path(config_path)
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    return build_config(data)
