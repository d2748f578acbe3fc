"""Shared-password HTTP Basic Auth for the JSON API."""
import hmac
import logging

from flask import g, jsonify, request

logger = logging.getLogger(__name__)

# Probes stay reachable without credentials
_EXEMPT_PREFIXES = ("/api/v1/health",)


def _auth_enabled(app) -> bool:
    raw = app.config.get("API_AUTH_ENABLED", False)
    if isinstance(raw, str):
        return raw.strip().lower() in ("1", "true", "yes", "on")
    return bool(raw)


def init_basic_auth(app):
    """Require Basic credentials on /api/ when API_AUTH_ENABLED is set.

    Any username is accepted; the password must equal APP_PASSWORD.
    """
    if not _auth_enabled(app):
        app.logger.info("Basic auth: disabled (API_AUTH_ENABLED is off)")
        return

    app.logger.info("Basic auth: enabled")

    @app.before_request
    def require_basic_auth():
        if not request.path.startswith("/api/"):
            return None
        if request.path.startswith(_EXEMPT_PREFIXES):
            return None

        password = app.config.get("APP_PASSWORD")
        if not password:
            logger.error("API_AUTH_ENABLED is set but APP_PASSWORD is not configured")
            return jsonify({"error": "Server configuration error"}), 500

        auth = request.authorization
        # No WWW-Authenticate header: the SPA shows its own login form.
        if not auth or auth.type != "basic":
            return jsonify({"error": "Authentication required"}), 401
        if not hmac.compare_digest((auth.password or "").encode(), password.encode()):
            logger.warning("Rejected credentials for user %r from %s", auth.username, request.remote_addr)
            return jsonify({"error": "Invalid credentials"}), 401

        g.auth_username = auth.username
        return None
