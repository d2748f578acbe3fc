"""
Rate limiting configuration.

The Limiter instance is created in portfolio_tracker/__init__.py with no
default limits; this module applies per-route and per-blueprint limits.

Usage:
    from portfolio_tracker.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

logger = logging.getLogger(__name__)

DEFAULT_AI_REPORT_LIMIT = "10/hour"
WRITE_LIMIT = "60/minute"
READ_LIMIT = "200/minute"


def init_rate_limits(app, limiter):
    """
    Apply rate limits after blueprints are registered.

    Limits (per remote IP):
        - AI report:        AI_REPORT_RATE_LIMIT (default 10/hour, LLM calls)
        - CRUD blueprints:  60/minute
        - Reporting:        200/minute
        - Health check:     exempt

    Rate limiting is skipped in testing mode or when RATELIMIT_ENABLED is off.
    """
    if app.config.get("TESTING") or not app.config.get("RATELIMIT_ENABLED", True):
        app.logger.info("Rate limiter disabled")
        return

    ai_limit = app.config.get("AI_REPORT_RATE_LIMIT") or DEFAULT_AI_REPORT_LIMIT
    view = app.view_functions.get("reporting.ai_report")
    if view is not None:
        app.view_functions["reporting.ai_report"] = limiter.limit(ai_limit)(view)

    for bp_name in ("projects", "users", "time_entries"):
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit(WRITE_LIMIT)(bp)

    bp = app.blueprints.get("reporting")
    if bp:
        limiter.limit(READ_LIMIT)(bp)

    bp = app.blueprints.get("health")
    if bp:
        limiter.exempt(bp)

    app.logger.info(
        "Rate limiter configured — AI report: %s, CRUD: %s, reporting: %s",
        ai_limit, WRITE_LIMIT, READ_LIMIT,
    )
