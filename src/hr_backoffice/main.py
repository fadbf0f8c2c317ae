from __future__ import annotations

import importlib
from typing import Optional

import structlog
from dotenv import load_dotenv
from flask import Flask, jsonify, send_from_directory

from .attendance.controller import register as register_attendance
from .common.logging import setup_logging
from .config import get_settings_module
from .container import Container, build_container
from .core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    DependencyError,
    DomainError,
    NotFoundError,
    StateConflictError,
    ValidationError,
)
from .database.bootstrap import apply_schema, list_tables
from .database.connection import DBConfig
from .dossier.controller import register as register_dossier
from .leave.controller import register as register_leave
from .permissions.catalog import PERMISSION_CATALOG
from .permissions.controller import register as register_permissions
from .timesheets.controller import register as register_timesheets
from .users.controller import register as register_users

log = structlog.get_logger(__name__)

ERROR_STATUS = (
    (AuthenticationError, 401),
    (AuthorizationError, 403),
    (ValidationError, 400),
    (StateConflictError, 409),
    (NotFoundError, 404),
    (DependencyError, 502),
)


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(e: DomainError):
        status = next((code for cls, code in ERROR_STATUS if isinstance(e, cls)), 400)
        body = {"message": str(e)}
        if isinstance(e, AuthorizationError) and e.permission:
            body["permission"] = e.permission
        if status >= 500:
            log.error("dependency_failed", error=str(e))
        return jsonify(body), status


def register_request_context(app: Flask) -> None:
    @app.before_request
    def reset_log_context():
        # Worker threads are reused; drop the previous request's bindings.
        structlog.contextvars.clear_contextvars()


def register_routes(app: Flask, container: Container) -> None:
    register_users(app, container)
    register_permissions(app, container)
    register_attendance(app, container)
    register_timesheets(app, container)
    register_leave(app, container)
    register_dossier(app, container)


def create_app(settings_module: Optional[str] = None, *, container: Optional[Container] = None) -> Flask:
    """App factory. Pass ``container`` to run over pre-built repositories."""
    load_dotenv(override=False)
    settings_module = settings_module or get_settings_module()
    settings = importlib.import_module(settings_module)
    setup_logging(getattr(settings, "LOG_LEVEL", None))

    app = Flask(__name__)
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    db_config = getattr(settings, "DB_CONFIG")
    upload_dir = getattr(settings, "UPLOAD_DIR", "uploads")
    file_base_url = getattr(settings, "FILE_BASE_URL", "/files")

    if container is None:
        container = build_container(
            db_config=db_config,
            jwt_secret=getattr(settings, "JWT_SECRET"),
            jwt_ttl=int(getattr(settings, "JWT_TTL_SECONDS")),
            tz_name=getattr(settings, "ORG_TIMEZONE"),
            upload_dir=upload_dir,
            file_base_url=file_base_url,
        )

        if getattr(settings, "AUTO_INIT_DB", False):
            database = DBConfig.from_dict(db_config).database
            apply_schema(container.conn, database)
            log.info("schema_ready", database=database, tables=len(list_tables(container.conn)))

        if getattr(settings, "SYNC_PERMISSIONS_ON_START", False):
            container.permission_sync.reconcile(PERMISSION_CATALOG)

    log.info("app_configured", settings=settings_module, tz=container.tz_name)

    @app.route(f"{file_base_url.rstrip('/')}/<path:name>", methods=["GET"], endpoint="uploaded_file")
    def uploaded_file(name: str):
        return send_from_directory(upload_dir, name)

    register_request_context(app)
    register_error_handlers(app)
    register_routes(app, container)
    app.extensions["hr_backoffice.container"] = container
    return app
