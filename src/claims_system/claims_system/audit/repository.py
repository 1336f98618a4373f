from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from .model import AuditEntry, AuditTarget


class AuditRepository(Protocol):
    """Append-only store of audit entries."""

    def append(
        self,
        *,
        actor_id: int,
        action: str,
        target: AuditTarget,
        details: Optional[str],
        timestamp: datetime,
    ) -> AuditEntry:
        raise NotImplementedError

    def list_entries(
        self,
        *,
        actor_id: Optional[int] = None,
        action: Optional[str] = None,
        collection: Optional[str] = None,
        limit: int = 200,
    ) -> Sequence[AuditEntry]:
        """Newest first."""

        raise NotImplementedError
