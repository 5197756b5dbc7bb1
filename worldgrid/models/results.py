"""Result contracts returned by the grid engine (never raised)."""
from __future__ import annotations

from typing import List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from worldgrid.models.location import Coordinate, Direction


class ValidDirection(BaseModel):
    model_config = ConfigDict(extra="forbid")

    direction: Direction
    is_fixed: bool
    target_coordinates: Coordinate


class ExitValidationResult(BaseModel):
    """Outcome of asking whether source may get an exit to target."""

    model_config = ConfigDict(extra="forbid")

    can_create_exit: bool
    valid_directions: List[ValidDirection] = Field(default_factory=list)
    error_message: Optional[str] = None
    target_has_coordinates: bool
    target_is_connected: bool

    def directions(self) -> List[Direction]:
        return [item.direction for item in self.valid_directions]


class PositionConflict(BaseModel):
    """An exit whose label disagrees with the BFS-assigned relative offsets."""

    model_config = ConfigDict(extra="forbid")

    from_location_id: str
    to_location_id: str
    direction: Direction
    expected_offset: Tuple[int, int]
    actual_offset: Tuple[int, int]


IssueType = Literal[
    "DUPLICATE_COORDS",
    "MISSING_TARGET",
    "EXIT_TOO_FAR",
    "DIRECTION_MISMATCH",
    "BIDIRECTIONAL_MISMATCH",
]


class IntegrityIssue(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: IssueType
    severity: Literal["ERROR", "WARNING"]
    location_id: str
    location_name: str
    message: str
    related_location_id: Optional[str] = None
    related_location_name: Optional[str] = None


class IntegrityReport(BaseModel):
    model_config = ConfigDict(extra="forbid")

    total_locations: int
    issues_found: int
    issues: List[IntegrityIssue] = Field(default_factory=list)

    def of_type(self, issue_type: str) -> List[IntegrityIssue]:
        return [issue for issue in self.issues if issue.type == issue_type]
