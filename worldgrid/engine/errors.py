"""Exceptions raised at the service boundary."""
from __future__ import annotations


class WorldGridError(Exception):
    pass


class LocationNotFoundError(WorldGridError):
    def __init__(self, location_id: str) -> None:
        super().__init__(f"location not found: {location_id}")
        self.location_id = location_id
