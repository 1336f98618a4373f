from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class AuditTarget:
    collection: str
    document_id: int


@dataclass(frozen=True)
class AuditEntry:
    """Immutable record of who did what to which entity, and when.

    Entries are only ever appended; nothing updates or deletes them.
    """

    entry_id: int
    actor_id: int
    action: str
    target: AuditTarget
    timestamp: datetime
    details: Optional[str] = None

    def as_dict(self) -> dict:
        return {
            "entry_id": self.entry_id,
            "actor_id": self.actor_id,
            "action": self.action,
            "target": {"collection": self.target.collection, "document_id": self.target.document_id},
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
        }
