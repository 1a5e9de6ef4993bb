import logging
import os
from typing import Any

from flask import Flask, jsonify, request
from sqlalchemy.pool import StaticPool

from .authz import configure_login_manager
from .blueprints_registry import register_blueprints
from .config import ENV_DIAGNOSTICS
from .extensions import csrf, db, limiter, migrate
from .logging_config import configure_logging

logger = logging.getLogger(__name__)

_SQLITE_UNSUPPORTED_POOL_ARGS = ("pool_size", "max_overflow", "pool_timeout")


def create_app(config: dict[str, Any] | None = None) -> Flask:
    """Application factory. ``config`` entries override the environment-derived settings."""
    app = Flask(__name__)
    os.makedirs(app.instance_path, exist_ok=True)

    _load_config(app, config)
    _prepare_import_storage(app)
    _adjust_engine_options_for_sqlite(app)

    db.init_app(app)
    migrate.init_app(app, db)
    csrf.init_app(app)
    _init_rate_limiter(app)
    configure_login_manager(app)

    from . import models  # noqa: F401  # register tables before blueprints and Alembic

    register_blueprints(app)
    configure_logging(app)
    _register_error_handlers(app)

    from .management import register_commands

    register_commands(app)
    _maybe_create_tables(app)
    return app


def _load_config(app: Flask, overrides: dict[str, Any] | None) -> None:
    app.config.from_object("fortress.config.Config")
    overrides = dict(overrides or {})
    if "DATABASE_URL" in overrides:
        overrides["SQLALCHEMY_DATABASE_URI"] = overrides.pop("DATABASE_URL")
    app.config.update(overrides)

    if app.config.get("TESTING"):
        app.config.setdefault("WTF_CSRF_ENABLED", False)

    app.config["ENV_DIAGNOSTICS"] = ENV_DIAGNOSTICS
    for warning in ENV_DIAGNOSTICS.get("warnings", ()):
        logger.warning("Environment configuration warning: %s", warning)


def _prepare_import_storage(app: Flask) -> None:
    storage_dir = app.config.get("IMPORT_STORAGE_DIR") or os.path.join(app.instance_path, "import_uploads")
    os.makedirs(storage_dir, exist_ok=True)
    app.config["IMPORT_STORAGE_DIR"] = storage_dir


def _adjust_engine_options_for_sqlite(app: Flask) -> None:
    uri = app.config.get("SQLALCHEMY_DATABASE_URI") or ""
    if not uri.startswith("sqlite"):
        return
    options = {
        key: value
        for key, value in dict(app.config.get("SQLALCHEMY_ENGINE_OPTIONS") or {}).items()
        if key not in _SQLITE_UNSUPPORTED_POOL_ARGS
    }
    if uri == "sqlite:///:memory:":
        # One shared connection, or every session would see an empty database
        options["poolclass"] = StaticPool
        options["connect_args"] = {"check_same_thread": False}
    app.config["SQLALCHEMY_ENGINE_OPTIONS"] = options


def _init_rate_limiter(app: Flask) -> None:
    storage_uri = app.config.get("RATELIMIT_STORAGE_URI") or "memory://"
    if app.config.get("ENV") == "production" and storage_uri.startswith("memory://"):
        raise RuntimeError("Rate limiter storage must be shared (Redis) in production.")
    app.config["RATELIMIT_STORAGE_URI"] = storage_uri
    limiter.init_app(app)


def _maybe_create_tables(app: Flask) -> None:
    """Local convenience: SQLALCHEMY_CREATE_ALL=1 creates tables without Alembic."""
    flag = (os.environ.get("SQLALCHEMY_CREATE_ALL") or "").strip().lower()
    if flag not in {"1", "true", "yes", "on"}:
        logger.debug("db.create_all() not requested; migrations own the schema")
        return

    with app.app_context():
        try:
            db.create_all()
            logger.info("Database tables created/verified via db.create_all()")
        except Exception as exc:  # pragma: no cover - dev helper
            logger.warning("db.create_all() skipped: %s", exc)


def _rollback_quietly() -> None:
    try:
        db.session.rollback()
    except Exception:  # pragma: no cover - connection already gone
        logger.debug("Session rollback failed", exc_info=True)


def _register_error_handlers(app: Flask) -> None:
    """Session rollback on failed requests and JSON bodies for infrastructure errors."""
    from flask_limiter.errors import RateLimitExceeded
    from sqlalchemy.exc import DBAPIError, OperationalError

    @app.teardown_request
    def _rollback_failed_request(exc):
        if exc is not None:
            _rollback_quietly()

    @app.errorhandler(OperationalError)
    @app.errorhandler(DBAPIError)
    def _database_unavailable(e):
        _rollback_quietly()
        logger.error("Database unavailable during %s %s: %s", request.method, request.path, e)
        return jsonify({"success": False, "message": "Service temporarily unavailable. Please try again shortly."}), 503

    @app.errorhandler(RateLimitExceeded)
    def _rate_limited(e):
        return jsonify({"success": False, "message": f"Rate limit exceeded: {e.description}"}), 429

    @app.errorhandler(413)
    def _upload_too_large(e):
        limit_mb = (app.config.get("MAX_CONTENT_LENGTH") or 0) // (1024 * 1024)
        return jsonify({"success": False, "message": f"The uploaded file is larger than {limit_mb} MB."}), 413
