from __future__ import annotations

from flask import Flask, request

from ..common.web import current_principal, ok, query_int
from ..container import Container
from ..core.constants import DEFAULT_AUDIT_LIMIT


def register(app: Flask, container: Container) -> None:
    @app.route("/audit-logs", methods=["GET"], endpoint="audit_logs")
    def audit_logs():
        entries = container.audit_log_service.list_entries(
            current_principal(container.auth_service.principal_for),
            actor_id=query_int("actor_id"),
            action=request.args.get("action"),
            collection=request.args.get("collection"),
            limit=query_int("limit", DEFAULT_AUDIT_LIMIT),
        )
        return ok([e.as_dict() for e in entries])
