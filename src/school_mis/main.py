from __future__ import annotations

import importlib
import logging
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, request
from werkzeug.exceptions import HTTPException

from .attendance.controller import register as register_attendance
from .audit.controller import register as register_audit
from .auth.controller import register as register_auth
from .classes.controller import register as register_classes
from .common.responses import failure
from .config import get_settings_module
from .container import Container, build_container
from .core.exceptions import DomainError
from .database.bootstrap import ensure_indexes, list_collections
from .discipline.controller import register as register_discipline
from .notifications.controller import register as register_notifications
from .students.controller import register as register_students
from .teachers.controller import register as register_teachers
from .users.controller import register as register_users

logger = logging.getLogger(__name__)


def _configure_logging(level_name: str) -> None:
    logging.basicConfig(
        level=getattr(logging, str(level_name).upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(e: DomainError):
        return failure(e.message, status=e.status_code, errors=e.errors)

    @app.errorhandler(HTTPException)
    def handle_http_error(e: HTTPException):
        return failure(e.description or e.name, status=e.code or 500)

    @app.errorhandler(Exception)
    def handle_unexpected(e: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return failure("Internal server error", status=500)


def create_app(container: Optional[Container] = None) -> Flask:
    """Application factory.

    A prebuilt ``container`` (e.g. in-memory repositories in tests) skips the
    MongoDB wiring and index bootstrap.
    """

    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    _configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))
    app.config["SESSION_COOKIE_HTTPONLY"] = True
    app.config["SESSION_COOKIE_SAMESITE"] = "Lax"
    app.config["SESSION_COOKIE_SECURE"] = not app.config["DEBUG"] and not app.config["TESTING"]

    if container is None:
        container = build_container(settings)
        logger.info(
            "settings=%s db=%s session_backend=%s",
            settings_module,
            getattr(settings, "MONGODB_DATABASE", "?"),
            getattr(settings, "SESSION_BACKEND", "memory"),
        )
        if bool(getattr(settings, "AUTO_INIT_DB", False)) and container.conn is not None:
            ensure_indexes(container.conn.db)
            logger.info("collections=%s", ", ".join(list_collections(container.conn.db)))

    app.extensions["container"] = container

    register_auth(app, container)
    register_users(app, container)
    register_students(app, container)
    register_teachers(app, container)
    register_classes(app, container)
    register_attendance(app, container)
    register_discipline(app, container)
    register_notifications(app, container)
    register_audit(app, container)

    _register_error_handlers(app)
    return app
