from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall
from .model import AuditEntry, AuditTarget
from .repository import AuditRepository


class MySQLAuditRepository(AuditRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def append(
        self,
        *,
        actor_id: int,
        action: str,
        target: AuditTarget,
        details: Optional[str],
        timestamp: datetime,
    ) -> AuditEntry:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO audit_logs(actor_id, action, target_collection, target_document_id, details, created_at)
                VALUES(%s,%s,%s,%s,%s,%s)
                """,
                (int(actor_id), action, target.collection, int(target.document_id), details, timestamp),
            )
            entry_id = int(cur.lastrowid)
        return AuditEntry(
            entry_id=entry_id,
            actor_id=int(actor_id),
            action=action,
            target=target,
            details=details,
            timestamp=timestamp,
        )

    def list_entries(
        self,
        *,
        actor_id: Optional[int] = None,
        action: Optional[str] = None,
        collection: Optional[str] = None,
        limit: int = 200,
    ) -> Sequence[AuditEntry]:
        clauses = ["1=1"]
        params: list[object] = []

        if actor_id is not None:
            clauses.append("actor_id=%s")
            params.append(int(actor_id))
        if action:
            clauses.append("action=%s")
            params.append(action)
        if collection:
            clauses.append("target_collection=%s")
            params.append(collection)

        where = " AND ".join(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT entry_id, actor_id, action, target_collection, target_document_id, details, created_at
                FROM audit_logs
                WHERE {where}
                ORDER BY created_at DESC, entry_id DESC
                LIMIT %s
                """,
                tuple(params + [int(limit)]),
            )
            return [
                AuditEntry(
                    entry_id=int(r["entry_id"]),
                    actor_id=int(r["actor_id"]),
                    action=r["action"],
                    target=AuditTarget(collection=r["target_collection"], document_id=int(r["target_document_id"])),
                    details=r.get("details"),
                    timestamp=r["created_at"],
                )
                for r in fetchall(cur)
            ]
