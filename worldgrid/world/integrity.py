"""World-wide data integrity diagnostic. Reports, never repairs."""
from __future__ import annotations

from typing import Dict, List, Tuple

from worldgrid.models.location import Direction, Location
from worldgrid.models.results import IntegrityIssue, IntegrityReport
from worldgrid.world.directions import offset, opposite
from worldgrid.world.snapshot import WorldSnapshot


def _duplicate_coordinate_issues(snapshot: WorldSnapshot) -> List[IntegrityIssue]:
    issues: List[IntegrityIssue] = []
    cells: Dict[Tuple[int, int, str], List[Location]] = {}
    for loc in snapshot.coordinated():
        cells.setdefault(loc.coordinate.as_key(), []).append(loc)
    for (x, y, area_id), locs in cells.items():
        if len(locs) < 2:
            continue
        for loc in locs:
            others = ", ".join(other.name for other in locs if other.id != loc.id)
            issues.append(
                IntegrityIssue(
                    type="DUPLICATE_COORDS",
                    severity="ERROR",
                    location_id=loc.id,
                    location_name=loc.name,
                    message=f"Shares coordinates ({x}, {y}) in area '{area_id}' with: {others}",
                )
            )
    return issues


def _exit_issues(location: Location, snapshot: WorldSnapshot) -> List[IntegrityIssue]:
    issues: List[IntegrityIssue] = []
    for ex in location.exits:
        target = snapshot.get(ex.location_id)
        if target is None:
            issues.append(
                IntegrityIssue(
                    type="MISSING_TARGET",
                    severity="ERROR",
                    location_id=location.id,
                    location_name=location.name,
                    message=f"Exit {ex.direction.value} points to non-existent location ID: {ex.location_id[:8]}...",
                )
            )
            continue
        if not (location.has_coordinates and target.has_coordinates):
            continue

        dx = target.grid_x - location.grid_x
        dy = target.grid_y - location.grid_y
        if (dx, dy) != offset(ex.direction):
            distance = max(abs(dx), abs(dy))
            if distance > 1:
                issues.append(
                    IntegrityIssue(
                        type="EXIT_TOO_FAR",
                        severity="ERROR",
                        location_id=location.id,
                        location_name=location.name,
                        message=f"Exit {ex.direction.value} to '{target.name}' is {distance} tiles away (should be 1)",
                        related_location_id=target.id,
                        related_location_name=target.name,
                    )
                )
            elif ex.direction != Direction.UNKNOWN:
                issues.append(
                    IntegrityIssue(
                        type="DIRECTION_MISMATCH",
                        severity="WARNING",
                        location_id=location.id,
                        location_name=location.name,
                        message=f"Exit marked {ex.direction.value} but target '{target.name}' is at offset ({dx}, {dy})",
                        related_location_id=target.id,
                        related_location_name=target.name,
                    )
                )

        reverse = target.exit_to(location.id)
        if reverse is None or Direction.UNKNOWN in (ex.direction, reverse.direction):
            continue
        expected = opposite(ex.direction)
        # report each mismatched pair once, from the alphabetically first name
        if reverse.direction != expected and location.name < target.name:
            issues.append(
                IntegrityIssue(
                    type="BIDIRECTIONAL_MISMATCH",
                    severity="WARNING",
                    location_id=location.id,
                    location_name=location.name,
                    message=(
                        f"Exit {ex.direction.value} to '{target.name}', but return is "
                        f"{reverse.direction.value} (expected {expected.value})"
                    ),
                    related_location_id=target.id,
                    related_location_name=target.name,
                )
            )
    return issues


def check_data_integrity(snapshot: WorldSnapshot) -> IntegrityReport:
    issues = _duplicate_coordinate_issues(snapshot)
    for loc in snapshot.locations:
        issues.extend(_exit_issues(loc, snapshot))
    issues.sort(key=lambda issue: (issue.severity, issue.type, issue.location_name))
    return IntegrityReport(total_locations=len(snapshot), issues_found=len(issues), issues=issues)
