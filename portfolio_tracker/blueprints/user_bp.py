"""
User blueprint.

Prefix: /api/v1/users

Endpoints:
    GET    /users                      -- List all users
    POST   /users                      -- Create (tier defaults to 2)
    GET    /users/<id>                 -- Single user
    PUT    /users/<id>                 -- Partial update
    DELETE /users/<id>                 -- Soft delete (deactivate)
    GET    /users/<id>/time-summary    -- Daily hours (start_date, end_date)
"""

import logging

from flask import Blueprint, jsonify, request

from portfolio_tracker.blueprints import date_args, register_error_handlers
from portfolio_tracker.services import user_service
from portfolio_tracker.utils.errors import E, api_error
from portfolio_tracker.utils.helpers import db_commit_or_error

logger = logging.getLogger(__name__)

user_bp = Blueprint("users", __name__, url_prefix="/api/v1/users")
register_error_handlers(user_bp)


@user_bp.route("", methods=["GET"])
def list_users():
    return jsonify([u.to_dict() for u in user_service.list_users()]), 200


@user_bp.route("", methods=["POST"])
def create_user():
    data = request.get_json(silent=True) or {}
    if not data.get("first_name") or not data.get("last_name"):
        return api_error(E.VALIDATION_REQUIRED, "first_name and last_name are required")

    user = user_service.create_user(data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(user.to_dict()), 201


@user_bp.route("/<int:user_id>", methods=["GET"])
def get_user(user_id):
    return jsonify(user_service.get_user_or_404(user_id).to_dict()), 200


@user_bp.route("/<int:user_id>", methods=["PUT"])
def update_user(user_id):
    data = request.get_json(silent=True) or {}
    user = user_service.update_user(user_id, data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(user.to_dict()), 200


@user_bp.route("/<int:user_id>", methods=["DELETE"])
def deactivate_user(user_id):
    user = user_service.deactivate_user(user_id)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"message": "User deactivated successfully", "user": user.to_dict()}), 200


@user_bp.route("/<int:user_id>/time-summary", methods=["GET"])
def time_summary(user_id):
    try:
        window = date_args("start_date", "end_date")
    except ValueError as exc:
        return api_error(E.VALIDATION_INVALID, str(exc))
    return jsonify(user_service.user_time_summary(
        user_id, window["start_date"], window["end_date"],
    )), 200
