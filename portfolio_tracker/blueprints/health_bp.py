"""
Health check blueprint (exempt from auth and rate limits).

Endpoints:
    GET /api/v1/health        — readiness with database round-trip (503 when degraded)
    GET /api/v1/health/live   — liveness, always 200 while the process serves requests
"""

import logging
import time

from flask import Blueprint, current_app, jsonify

from portfolio_tracker.models import db

logger = logging.getLogger(__name__)

health_bp = Blueprint("health", __name__, url_prefix="/api/v1/health")


@health_bp.route("", methods=["GET"])
def ready():
    """Readiness check with database status."""
    checks = {}
    overall = True

    try:
        t0 = time.perf_counter()
        db.session.execute(db.text("SELECT 1"))
        db_ms = (time.perf_counter() - t0) * 1000
        checks["database"] = {"status": "ok", "latency_ms": round(db_ms, 1)}
    except Exception as exc:
        db.session.rollback()
        checks["database"] = {"status": "error", "detail": str(exc)}
        overall = False
        logger.error("Health check — database failed: %s", exc)

    checks["app"] = {
        "name": "Portfolio Tracker",
        "debug": current_app.debug,
        "testing": current_app.testing,
    }
    status = "healthy" if overall else "degraded"
    return jsonify({"status": status, "checks": checks}), 200 if overall else 503


@health_bp.route("/live", methods=["GET"])
def live():
    """Liveness probe, no dependencies touched."""
    return jsonify({"status": "ok", "app": "Portfolio Tracker"}), 200
