from __future__ import annotations

import importlib
import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, jsonify, send_from_directory

from config import get_settings_module

from .container import Container, container_from_settings
from .core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    DomainError,
    InvalidState,
    InvariantViolation,
    NotFound,
    StorageFailure,
    ValidationError,
)
from .database.bootstrap import apply_schema, list_tables
from .identity.controller import register as register_identity
from .identity.session_provider import current_worker_context
from .reports.controller import register as register_reports
from .shifts.controller import register as register_shifts

logger = logging.getLogger(__name__)

# Most specific first; the first isinstance match wins.
ERROR_STATUS: tuple[tuple[type[DomainError], int], ...] = (
    (ValidationError, 400),
    (AuthenticationError, 401),
    (AuthorizationError, 403),
    (NotFound, 404),
    (InvalidState, 409),
    (StorageFailure, 503),
    (InvariantViolation, 500),
)


def status_for(error: DomainError) -> int:
    for error_type, status in ERROR_STATUS:
        if isinstance(error, error_type):
            return status
    return 500


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(error: DomainError):
        status = status_for(error)
        if status >= 500:
            logger.error("%s: %s", type(error).__name__, error)
        return jsonify({"success": False, "error": type(error).__name__, "message": str(error)}), status


def create_app(container: Optional[Container] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    logging.basicConfig(
        level=getattr(settings, "LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    store_backend = getattr(settings, "STORE_BACKEND", "memory")
    db_config = getattr(settings, "DB_CONFIG")
    logger.info(
        "settings=%s store=%s db=%s@%s:%s/%s",
        settings_module,
        store_backend,
        db_config.get("user"),
        db_config.get("host"),
        db_config.get("port", 3306),
        db_config.get("database"),
    )

    if container is None:
        if store_backend == "mysql" and bool(getattr(settings, "AUTO_INIT_DB", False)):
            schema_path = Path(__file__).resolve().parents[3] / "database" / "schema.sql"
            apply_schema(db_config, schema_path=schema_path)
            logger.info("schema ready (tables=%d)", len(list_tables(db_config)))
        container = container_from_settings(settings)

    app.extensions["shift_tracker"] = container

    @app.route("/evidence/<path:filename>", methods=["GET"], endpoint="evidence_file")
    def evidence_file(filename: str):
        return send_from_directory(container.evidence_dir.resolve(), filename)

    @app.before_request
    def remember_worker_name():
        worker = current_worker_context().current
        if worker is not None:
            container.directory.add(worker)

    register_error_handlers(app)
    register_identity(app, container)
    register_shifts(app, container)
    register_reports(app, container)

    return app
