from __future__ import annotations

from typing import Optional, Sequence

from ..core.constants import DEFAULT_AUDIT_LIMIT, MAX_AUDIT_LIMIT
from ..rbac.evaluator import Principal, require
from ..rbac.permissions import Permission
from .model import AuditEntry
from .repository import AuditRepository


class AuditLogService:
    """Use case: browse the audit trail (admin)."""

    def __init__(self, entries: AuditRepository):
        self._entries = entries

    def list_entries(
        self,
        principal: Optional[Principal],
        *,
        actor_id: Optional[int] = None,
        action: Optional[str] = None,
        collection: Optional[str] = None,
        limit: int = DEFAULT_AUDIT_LIMIT,
    ) -> Sequence[AuditEntry]:
        require(principal, Permission.AUDIT_LOGS_READ)
        limit = max(1, min(int(limit), MAX_AUDIT_LIMIT))
        return self._entries.list_entries(
            actor_id=actor_id,
            action=(action or "").strip() or None,
            collection=(collection or "").strip() or None,
            limit=limit,
        )
