"""
Portfolio Tracker
Flask Application Factory.

Usage:
    from portfolio_tracker import create_app
    app = create_app()           # defaults to "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

from flask import Flask, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate

from portfolio_tracker.config import config
from portfolio_tracker.models import db
from portfolio_tracker.middleware.basic_auth import init_basic_auth
from portfolio_tracker.middleware.logging_config import configure_logging
from portfolio_tracker.middleware.rate_limiter import init_rate_limits
from portfolio_tracker.middleware.timing import init_request_timing

logger = logging.getLogger(__name__)

# ── SQLite FK enforcement (global engine event) ─────────────────────────
from sqlalchemy import event as _sa_event, engine as _sa_engine


@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    """Enable foreign key enforcement for SQLite connections."""
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


migrate = Migrate()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],                     # no global limit — apply per-route
)


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     One of: "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    config_obj = config[config_name]
    # ProductionConfig validates required env vars on instantiation
    app.config.from_object(config_obj() if config_name == "production" else config_obj)

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])
    else:
        CORS(app)

    # ── Authentication & request timing ──────────────────────────────────
    init_basic_auth(app)
    init_request_timing(app)

    # ── Narrative generator for the AI report ────────────────────────────
    from portfolio_tracker.ai.narrative import create_narrative_generator
    app.extensions["narrative_generator"] = create_narrative_generator(app.config)

    # ── Import all models so Alembic can detect them ─────────────────────
    from portfolio_tracker.models import user as _user_models           # noqa: F401
    from portfolio_tracker.models import project as _project_models     # noqa: F401
    from portfolio_tracker.models import time_entry as _time_entry_models  # noqa: F401

    # ── Auto-create tables (CREATE IF NOT EXISTS) ────────────────────────
    if not app.config.get("TESTING"):
        if app.config["SQLALCHEMY_DATABASE_URI"].startswith("sqlite:///"):
            os.makedirs(app.instance_path, exist_ok=True)
        with app.app_context():
            try:
                db.create_all()
                app.logger.info("db.create_all() completed successfully")
            except Exception as e:
                app.logger.warning("db.create_all() failed: %s", e)

    # ── Blueprints ───────────────────────────────────────────────────────
    from portfolio_tracker.blueprints.health_bp import health_bp
    from portfolio_tracker.blueprints.project_bp import project_bp
    from portfolio_tracker.blueprints.reporting_bp import reporting_bp
    from portfolio_tracker.blueprints.time_entry_bp import time_entry_bp
    from portfolio_tracker.blueprints.user_bp import user_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(project_bp)
    app.register_blueprint(user_bp)
    app.register_blueprint(time_entry_bp)
    app.register_blueprint(reporting_bp)

    # ── Error handlers ───────────────────────────────────────────────────
    @app.errorhandler(404)
    def not_found(e):
        return {"error": "Not found", "path": request.path}, 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return {"error": "Method not allowed"}, 405

    @app.errorhandler(429)
    def rate_limited(e):
        return {"error": "Too many requests", "retry_after": e.description}, 429

    @app.errorhandler(500)
    def server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        return {"error": "Internal server error"}, 500

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    return app
