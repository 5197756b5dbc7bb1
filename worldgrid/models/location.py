"""Canonical data contracts for locations, exits and grid coordinates."""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Tuple
import uuid

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_AREA_ID = "overworld"


class Direction(str, Enum):
    NORTH = "NORTH"
    NORTHEAST = "NORTHEAST"
    EAST = "EAST"
    SOUTHEAST = "SOUTHEAST"
    SOUTH = "SOUTH"
    SOUTHWEST = "SOUTHWEST"
    WEST = "WEST"
    NORTHWEST = "NORTHWEST"
    ENTER = "ENTER"
    UNKNOWN = "UNKNOWN"


class LocationType(str, Enum):
    OUTDOOR_GROUND = "OUTDOOR_GROUND"
    INDOOR = "INDOOR"
    UNDERGROUND = "UNDERGROUND"
    UNDERWATER = "UNDERWATER"
    AERIAL = "AERIAL"


class AuditAction(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class Coordinate(BaseModel):
    """Absolute grid cell. Different areas may reuse the same x/y."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    x: int
    y: int
    area_id: str = DEFAULT_AREA_ID

    def shifted(self, dx: int, dy: int) -> "Coordinate":
        return Coordinate(x=self.x + dx, y=self.y + dy, area_id=self.area_id)

    def as_key(self) -> Tuple[int, int, str]:
        return self.x, self.y, self.area_id


class Exit(BaseModel):
    """Directed edge from the owning location to location_id."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    location_id: str
    direction: Direction = Direction.UNKNOWN


def _normalize_exit_list(value):
    # Older worlds stored exits as a plain list of location ids.
    if value is None:
        return []
    if not isinstance(value, list):
        return value
    normalized = []
    for item in value:
        if isinstance(item, str):
            normalized.append({"location_id": item, "direction": Direction.UNKNOWN})
        else:
            normalized.append(item)
    return normalized


class Location(BaseModel):
    """A place in the world. Grid coordinates stay unset until placed."""

    model_config = ConfigDict(extra="forbid")

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    desc: str = ""
    item_ids: List[str] = Field(default_factory=list)
    creature_ids: List[str] = Field(default_factory=list)
    exits: List[Exit] = Field(default_factory=list)
    feature_ids: List[str] = Field(default_factory=list)
    image_url: Optional[str] = None
    locked_by: Optional[str] = None
    grid_x: Optional[int] = None
    grid_y: Optional[int] = None
    area_id: Optional[str] = None
    last_edited_by: Optional[str] = None
    last_edited_at: Optional[str] = None
    location_type: Optional[LocationType] = None
    version: int = Field(0, ge=0, description="Managed by the repository")

    @field_validator("exits", mode="before")
    @classmethod
    def _accept_legacy_exit_ids(cls, value):
        return _normalize_exit_list(value)

    @property
    def has_coordinates(self) -> bool:
        return self.grid_x is not None and self.grid_y is not None

    @property
    def coordinate(self) -> Optional[Coordinate]:
        if not self.has_coordinates:
            return None
        return Coordinate(x=self.grid_x, y=self.grid_y, area_id=self.area_id or DEFAULT_AREA_ID)

    def exit_to(self, location_id: str) -> Optional[Exit]:
        for ex in self.exits:
            if ex.location_id == location_id:
                return ex
        return None

    def exit_in(self, direction: Direction) -> Optional[Exit]:
        for ex in self.exits:
            if ex.direction == direction:
                return ex
        return None

    def placed_at(self, coordinate: Coordinate) -> "Location":
        return self.model_copy(
            update={"grid_x": coordinate.x, "grid_y": coordinate.y, "area_id": coordinate.area_id}
        )


class Feature(BaseModel):
    """Terrain feature referenced by locations; only the name matters here."""

    model_config = ConfigDict(extra="forbid")

    id: str
    name: str
    description: str = ""


class Actor(BaseModel):
    """Identity recorded against audit entries."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    actor_id: str = "unknown"
    actor_name: str = "unknown"


class AuditEntry(BaseModel):
    model_config = ConfigDict(extra="forbid")

    record_id: str
    record_type: str = "Location"
    record_name: str
    action: AuditAction
    actor_id: str
    actor_name: str
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


class LocationDraft(BaseModel):
    """User-supplied fields for creating or editing a location."""

    model_config = ConfigDict(extra="forbid")

    name: str
    desc: str = ""
    item_ids: List[str] = Field(default_factory=list)
    creature_ids: List[str] = Field(default_factory=list)
    exits: List[Exit] = Field(default_factory=list)
    feature_ids: List[str] = Field(default_factory=list)

    @field_validator("exits", mode="before")
    @classmethod
    def _accept_legacy_exit_ids(cls, value):
        return _normalize_exit_list(value)
