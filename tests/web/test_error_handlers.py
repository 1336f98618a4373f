from __future__ import annotations

from flask import Flask

from src.claims_system.claims_system.core.exceptions import ConflictError, ForbiddenError, NotConfiguredError
from src.claims_system.claims_system.main import register_error_handlers


def _client():
    app = Flask(__name__)
    register_error_handlers(app)

    @app.route("/conflict")
    def conflict():
        raise ConflictError("Claim is already approved", current_status="approved")

    @app.route("/forbidden")
    def forbidden():
        raise ForbiddenError()

    @app.route("/rates")
    def rates():
        raise NotConfiguredError("No mileage rate is configured for 2023-01-01")

    @app.route("/boom")
    def boom():
        raise RuntimeError("db password leaked here")

    return app.test_client()


def test_domain_errors_map_to_status_and_code():
    client = _client()

    res = client.get("/conflict")
    assert res.status_code == 409
    assert res.get_json() == {"error": "conflict", "message": "Claim is already approved"}

    assert client.get("/forbidden").status_code == 403
    assert client.get("/rates").get_json()["error"] == "not_configured"


def test_unexpected_errors_hide_details():
    res = _client().get("/boom")
    assert res.status_code == 500
    assert res.get_json() == {"error": "internal_error", "message": "Internal server error"}


def test_unknown_route_is_json_404():
    res = _client().get("/nope")
    assert res.status_code == 404
    assert res.get_json()["error"] == "not_found"
