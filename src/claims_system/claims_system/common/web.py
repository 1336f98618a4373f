from __future__ import annotations

from typing import Any, Callable, Optional

from flask import jsonify, request, session

from ..core.exceptions import ValidationError
from ..rbac.evaluator import Principal


def current_principal(resolve: Callable[[Optional[int]], Principal]) -> Principal:
    """Principal for the signed-in session user; roles are re-read every request."""
    return resolve(session.get("user_id"))


def json_body() -> dict[str, Any]:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def query_int(name: str, default: Optional[int] = None) -> Optional[int]:
    raw = request.args.get(name)
    if raw in (None, ""):
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer")


def ok(payload: Any = None, status: int = 200):
    return jsonify(payload if payload is not None else {"ok": True}), status
