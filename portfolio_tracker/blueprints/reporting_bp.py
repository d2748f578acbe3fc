"""
Reporting blueprint.

Prefix: /api/v1/reports

Endpoints:
    GET  /reports/executive                 -- Health + ARR exposure + capacity
    GET  /reports/project-risks             -- Risk categories and ARR at risk
    GET  /reports/project-health-trends     -- Health-history counts per day (days=1..365)
    GET  /reports/time-summary              -- Hours per user or per project
    GET  /reports/export/projects           -- JSON or xlsx (format=xlsx)
    GET  /reports/export/time-entries       -- JSON or xlsx (format=xlsx)
    POST /reports/ai-report                 -- Executive report + narrative (rate limited)
"""

import logging
from datetime import datetime

from flask import Blueprint, current_app, jsonify, request, send_file

from portfolio_tracker.blueprints import date_args, register_error_handlers
from portfolio_tracker.services.export_service import (
    export_projects_xlsx,
    export_time_entries_xlsx,
)
from portfolio_tracker.services.report_assembly import create_report_assembler
from portfolio_tracker.services.report_queries import SqlReportRepository
from portfolio_tracker.utils.errors import E, api_error

logger = logging.getLogger(__name__)

reporting_bp = Blueprint("reporting", __name__, url_prefix="/api/v1/reports")
register_error_handlers(reporting_bp)

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _assembler():
    return create_report_assembler(
        current_app.config,
        narrative_generator=current_app.extensions.get("narrative_generator"),
    )


@reporting_bp.route("/executive", methods=["GET"])
def executive_report():
    """GET /api/v1/reports/executive?start_date=&end_date= (default: last 7 days)."""
    try:
        window = date_args("start_date", "end_date")
    except ValueError as exc:
        return api_error(E.VALIDATION_INVALID, str(exc))
    return jsonify(_assembler().executive_report(window["start_date"], window["end_date"])), 200


@reporting_bp.route("/project-risks", methods=["GET"])
def project_risks():
    """GET /api/v1/reports/project-risks — current state, no date window."""
    return jsonify(_assembler().risk_report()), 200


@reporting_bp.route("/project-health-trends", methods=["GET"])
def project_health_trends():
    days = request.args.get("days", 30, type=int)
    if days is None or not 1 <= days <= 365:
        return api_error(E.VALIDATION_INVALID, "days must be an integer between 1 and 365")
    return jsonify(SqlReportRepository().health_trends(days)), 200


@reporting_bp.route("/time-summary", methods=["GET"])
def time_summary():
    try:
        window = date_args("start_date", "end_date", required=("start_date", "end_date"))
    except ValueError as exc:
        return api_error(E.VALIDATION_REQUIRED, str(exc))
    group_by = request.args.get("group_by", "user")
    return jsonify(_assembler().time_summary(
        window["start_date"], window["end_date"], group_by,
    )), 200


# ── Exports ──────────────────────────────────────────────────────────────────


def _wants_xlsx() -> bool:
    return request.args.get("format", "json").lower() in ("xlsx", "excel")


@reporting_bp.route("/export/projects", methods=["GET"])
def export_projects():
    projects = SqlReportRepository().export_projects()
    if not _wants_xlsx():
        return jsonify(projects), 200
    buf = export_projects_xlsx(projects)
    return send_file(
        buf,
        download_name=f"projects_{datetime.now().strftime('%Y%m%d')}.xlsx",
        mimetype=XLSX_MIMETYPE,
        as_attachment=True,
    )


@reporting_bp.route("/export/time-entries", methods=["GET"])
def export_time_entries():
    try:
        window = date_args("start_date", "end_date")
    except ValueError as exc:
        return api_error(E.VALIDATION_INVALID, str(exc))
    entries = SqlReportRepository().export_time_entries(window["start_date"], window["end_date"])
    if not _wants_xlsx():
        return jsonify(entries), 200
    buf = export_time_entries_xlsx(entries)
    return send_file(
        buf,
        download_name=f"time_entries_{datetime.now().strftime('%Y%m%d')}.xlsx",
        mimetype=XLSX_MIMETYPE,
        as_attachment=True,
    )


# ── AI narrative ─────────────────────────────────────────────────────────────


@reporting_bp.route("/ai-report", methods=["POST"])
def ai_report():
    """POST /api/v1/reports/ai-report?start_date=&end_date= — rate limited."""
    try:
        window = date_args("start_date", "end_date")
    except ValueError as exc:
        return api_error(E.VALIDATION_INVALID, str(exc))
    return jsonify(_assembler().ai_report(window["start_date"], window["end_date"])), 200
