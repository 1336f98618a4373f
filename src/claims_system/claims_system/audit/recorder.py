from __future__ import annotations

from datetime import datetime
from typing import Callable, Optional

from ..common.datetime_utils import now_local
from ..core.exceptions import AuditWriteError
from ..core.logging_config import get_logger
from .model import AuditEntry, AuditTarget
from .repository import AuditRepository

logger = get_logger("audit.recorder")


class AuditRecorder:
    """Append-only audit writer with two explicit call variants.

    ``must_record`` is for compliance-relevant actions (approvals, payouts, role
    and rate changes): a failed write raises ``AuditWriteError`` and the caller
    reports its operation as failed. ``record_best_effort`` is for informational
    events: a failed write is logged and the caller carries on.
    """

    def __init__(self, entries: AuditRepository, *, clock: Callable[[], datetime] = now_local):
        self._entries = entries
        self._clock = clock

    def must_record(
        self,
        actor_id: int,
        action: str,
        target: AuditTarget,
        details: Optional[str] = None,
    ) -> AuditEntry:
        try:
            entry = self._entries.append(
                actor_id=int(actor_id),
                action=action,
                target=target,
                details=details,
                timestamp=self._clock(),
            )
        except Exception as exc:
            logger.error(
                "audit_write_failed",
                extra={"action": action, "collection": target.collection, "document_id": target.document_id},
                exc_info=True,
            )
            raise AuditWriteError(f"Could not record audit entry for {action}") from exc
        logger.debug("audit_recorded", extra={"action": action, "entry_id": entry.entry_id})
        return entry

    record = must_record

    def record_best_effort(
        self,
        actor_id: int,
        action: str,
        target: AuditTarget,
        details: Optional[str] = None,
    ) -> Optional[AuditEntry]:
        try:
            return self._entries.append(
                actor_id=int(actor_id),
                action=action,
                target=target,
                details=details,
                timestamp=self._clock(),
            )
        except Exception:
            logger.warning(
                "audit_write_skipped",
                extra={"action": action, "collection": target.collection, "document_id": target.document_id},
                exc_info=True,
            )
            return None
