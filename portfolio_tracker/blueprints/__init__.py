"""
Portfolio Tracker
Blueprint registry and shared view helpers.
"""

import logging

from flask import jsonify, request

from portfolio_tracker.core.exceptions import (
    ConflictError,
    NotFoundError,
    ReportComputationError,
    ValidationError,
)
from portfolio_tracker.utils.helpers import parse_date_input

logger = logging.getLogger(__name__)

_REPORT_LABELS = {"ai": "AI", "risk": "project risk"}


def register_error_handlers(bp):
    """Map domain exceptions raised by services to JSON responses on ``bp``."""

    @bp.errorhandler(NotFoundError)
    def _handle_not_found(error: NotFoundError):
        return jsonify({"error": str(error)}), 404

    @bp.errorhandler(ValidationError)
    def _handle_validation(error: ValidationError):
        return jsonify({"error": str(error), "details": error.details}), 422

    @bp.errorhandler(ConflictError)
    def _handle_conflict(error: ConflictError):
        return jsonify({"error": str(error)}), 409

    @bp.errorhandler(ReportComputationError)
    def _handle_report_failure(error: ReportComputationError):
        label = _REPORT_LABELS.get(error.report, error.report or "the")
        logger.error(
            "%s on %s: %s (cause: %r)",
            type(error).__name__, request.path, error, error.__cause__,
            extra={"report": error.report},
        )
        return jsonify({"error": f"Failed to generate {label} report"}), 500


def date_args(*names, required=()):
    """Parse date query parameters into a dict.

    Raises:
        ValueError: a parameter is malformed, or missing while listed in
            ``required``.
    """
    parsed = {}
    for name in names:
        value = parse_date_input(request.args.get(name))
        if value is None and name in required:
            raise ValueError(f"{name} is required")
        parsed[name] = value
    return parsed
