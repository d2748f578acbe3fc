"""
Time entry blueprint.

Prefix: /api/v1/time-entries

Endpoints:
    GET    /time-entries                          -- List (user_id, start_date, end_date, week_start)
    GET    /time-entries/week-view/<user_id>      -- 7-day grid (week_start required)
    POST   /time-entries                          -- Upsert on (user_id, entry_date)
    POST   /time-entries/bulk-update              -- Atomic batch upsert
    GET    /time-entries/<id>                     -- Single entry
    PUT    /time-entries/<id>                     -- Partial update (hours, description)
    DELETE /time-entries/<id>                     -- Delete
    GET    /time-entries/reports/capacity         -- Capacity report (start_date, end_date)
"""

import logging

from flask import Blueprint, current_app, jsonify, request

from portfolio_tracker.blueprints import date_args, register_error_handlers
from portfolio_tracker.services import time_entry_service
from portfolio_tracker.services.report_assembly import create_report_assembler
from portfolio_tracker.utils.errors import E, api_error
from portfolio_tracker.utils.helpers import db_commit_or_error

logger = logging.getLogger(__name__)

time_entry_bp = Blueprint("time_entries", __name__, url_prefix="/api/v1/time-entries")
register_error_handlers(time_entry_bp)


@time_entry_bp.route("", methods=["GET"])
def list_entries():
    try:
        window = date_args("start_date", "end_date", "week_start")
    except ValueError as exc:
        return api_error(E.VALIDATION_INVALID, str(exc))
    entries = time_entry_service.list_entries(
        user_id=request.args.get("user_id", type=int),
        **window,
    )
    return jsonify([e.to_dict() for e in entries]), 200


@time_entry_bp.route("/week-view/<int:user_id>", methods=["GET"])
def week_view(user_id):
    try:
        week_start = date_args("week_start", required=("week_start",))["week_start"]
    except ValueError as exc:
        return api_error(E.VALIDATION_REQUIRED, str(exc))
    return jsonify(time_entry_service.week_view(user_id, week_start)), 200


@time_entry_bp.route("", methods=["POST"])
def upsert_entry():
    data = request.get_json(silent=True) or {}
    if not data.get("user_id") or not data.get("entry_date") or data.get("hours") is None:
        return api_error(E.VALIDATION_REQUIRED, "user_id, entry_date, and hours are required")

    entry = time_entry_service.upsert_entry(data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(entry.to_dict()), 201


@time_entry_bp.route("/bulk-update", methods=["POST"])
def bulk_update():
    data = request.get_json(silent=True) or {}
    entries = data.get("entries") if isinstance(data, dict) else None
    if not isinstance(entries, list) or not entries:
        return api_error(E.VALIDATION_REQUIRED, "entries array is required")

    saved = time_entry_service.bulk_upsert(entries)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({
        "message": f"{len(saved)} time entries updated successfully",
        "entries": [e.to_dict() for e in saved],
    }), 200


@time_entry_bp.route("/<int:entry_id>", methods=["GET"])
def get_entry(entry_id):
    return jsonify(time_entry_service.get_entry_or_404(entry_id).to_dict()), 200


@time_entry_bp.route("/<int:entry_id>", methods=["PUT"])
def update_entry(entry_id):
    data = request.get_json(silent=True) or {}
    entry = time_entry_service.update_entry(entry_id, data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(entry.to_dict()), 200


@time_entry_bp.route("/<int:entry_id>", methods=["DELETE"])
def delete_entry(entry_id):
    snapshot = time_entry_service.delete_entry(entry_id)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"message": "Time entry deleted successfully", "entry": snapshot}), 200


@time_entry_bp.route("/reports/capacity", methods=["GET"])
def capacity_report():
    try:
        window = date_args("start_date", "end_date", required=("start_date", "end_date"))
    except ValueError as exc:
        return api_error(E.VALIDATION_REQUIRED, str(exc))
    assembler = create_report_assembler(current_app.config)
    return jsonify(assembler.capacity_report(window["start_date"], window["end_date"])), 200
