from __future__ import annotations

import importlib
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from config import get_settings_module

from .audit.controller import register as register_audit
from .container import build_container
from .core.exceptions import DomainError
from .core.logging_config import configure_logging, get_logger
from .database.bootstrap import apply_schema, apply_seed_sql, ensure_demo_users, list_tables
from .rates.controller import register as register_rates
from .submissions.controller import register as register_submissions
from .users.controller import register as register_users

logger = get_logger("main")

_DATABASE_DIR = Path(__file__).resolve().parents[3] / "database"


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(e: DomainError):
        return jsonify({"error": e.code, "message": e.message}), e.http_status

    @app.errorhandler(HTTPException)
    def handle_http_error(e: HTTPException):
        return jsonify({"error": (e.name or "error").lower().replace(" ", "_"), "message": e.description}), e.code

    @app.errorhandler(Exception)
    def handle_unexpected(e: Exception):
        logger.error("unhandled_error", exc_info=e)
        return jsonify({"error": "internal_error", "message": "Internal server error"}), 500


def create_app() -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    db_config = getattr(settings, "DB_CONFIG")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    configure_logging(
        level=getattr(settings, "LOG_LEVEL", "INFO"),
        json_lines=bool(getattr(settings, "LOG_JSON", True)),
    )
    logger.info(
        "app_starting",
        extra={
            "settings": settings_module,
            "db": f"{db_config.get('user')}@{db_config.get('host')}:{db_config.get('port', 3306)}/{db_config.get('database')}",
        },
    )

    if bool(getattr(settings, "AUTO_INIT_DB", False)):
        apply_schema(db_config, schema_path=_DATABASE_DIR / "schema.sql")
        logger.info("schema_ready", extra={"tables": len(list_tables(db_config))})
    if bool(getattr(settings, "AUTO_SEED_DB", False)):
        apply_seed_sql(db_config, seed_path=_DATABASE_DIR / "seed.sql")
        ensure_demo_users(db_config)

    container = build_container(
        db_config=db_config,
        holidays=getattr(settings, "HOLIDAYS", ""),
        default_designation=getattr(settings, "DEFAULT_DESIGNATION", "standard"),
    )
    app.extensions["claims_container"] = container

    register_error_handlers(app)
    register_users(app, container)
    register_submissions(app, container)
    register_rates(app, container)
    register_audit(app, container)

    return app
