"""Audit log sinks. One entry per created/updated/deleted record."""
from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import List

from worldgrid.models.location import Actor, AuditAction, AuditEntry
from worldgrid.persistence.store import append_audit_record, read_audit_records


class BaseAuditLog(ABC):
    @abstractmethod
    def log(self, entry: AuditEntry) -> None:
        raise NotImplementedError

    def record(
        self,
        record_id: str,
        record_name: str,
        action: AuditAction,
        actor: Actor,
        record_type: str = "Location",
    ) -> AuditEntry:
        entry = AuditEntry(
            record_id=record_id,
            record_type=record_type,
            record_name=record_name,
            action=action,
            actor_id=actor.actor_id,
            actor_name=actor.actor_name,
        )
        self.log(entry)
        return entry


class InMemoryAuditLog(BaseAuditLog):
    def __init__(self) -> None:
        self.entries: List[AuditEntry] = []

    def log(self, entry: AuditEntry) -> None:
        self.entries.append(entry)


class JsonlAuditLog(BaseAuditLog):
    """Append-only audit.jsonl."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def log(self, entry: AuditEntry) -> None:
        append_audit_record(self.path, entry.model_dump(mode="json"))

    def read(self, limit: int | None = None) -> List[AuditEntry]:
        return [AuditEntry.model_validate(rec) for rec in read_audit_records(self.path, limit=limit)]
