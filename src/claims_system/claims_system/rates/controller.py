from __future__ import annotations

from flask import Flask, request

from ..common.web import current_principal, json_body, ok
from ..container import Container


def register(app: Flask, container: Container) -> None:
    service = container.rate_service

    def principal():
        return current_principal(container.auth_service.principal_for)

    @app.route("/config/rates", methods=["GET"], endpoint="list_rates")
    def list_rates():
        return ok([r.as_dict() for r in service.list_rates(principal())])

    @app.route("/config/rates", methods=["POST"], endpoint="create_rate")
    def create_rate():
        data = json_body()
        entry = service.create_rate(
            principal(),
            kind=data.get("type") or data.get("kind") or "",
            effective_date=data.get("effective_date"),
            value=data.get("value"),
            multiplier=data.get("multiplier"),
            condition=data.get("condition"),
        )
        return ok(entry.as_dict(), 201)

    @app.route("/config/rates/<int:config_id>", methods=["PATCH"], endpoint="update_rate")
    def update_rate(config_id: int):
        data = json_body()
        entry = service.update_rate(
            principal(),
            config_id,
            effective_date=data.get("effective_date"),
            value=data.get("value"),
            multiplier=data.get("multiplier"),
        )
        return ok(entry.as_dict())

    @app.route("/config/rates/<int:config_id>", methods=["DELETE"], endpoint="delete_rate")
    def delete_rate(config_id: int):
        service.delete_rate(principal(), config_id)
        return ok()

    @app.route("/config/rates/resolve", methods=["GET"], endpoint="resolve_rate")
    def resolve_rate():
        # ?type=overtime_multiplier&date=2024-06-01&day_type=weekend&designation=standard
        args = request.args
        kind = args.get("type") or args.get("kind") or ""
        context = {k: args[k] for k in ("day_type", "designation") if args.get(k)}
        value = service.resolve_rate(principal(), kind, args.get("date"), context)
        return ok({"type": kind, "date": args.get("date"), "value": str(value)})
