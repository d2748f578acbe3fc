"""
Project blueprint.

Prefix: /api/v1/projects

Endpoints:
    GET    /projects                       -- List (status, health, owner_id filters)
    POST   /projects                       -- Create (+ initial health history)
    GET    /projects/<id>                  -- Detail with notes and custom fields
    PUT    /projects/<id>                  -- Partial update
    DELETE /projects/<id>                  -- Delete (cascades children)
    POST   /projects/<id>/notes            -- Add a note
    GET    /projects/<id>/health-history   -- Health changes, newest first
    PUT    /projects/<id>/custom-fields    -- Upsert custom fields by name
"""

import logging

from flask import Blueprint, jsonify, request

from portfolio_tracker.blueprints import register_error_handlers
from portfolio_tracker.services import project_service
from portfolio_tracker.utils.errors import E, api_error
from portfolio_tracker.utils.helpers import db_commit_or_error

logger = logging.getLogger(__name__)

project_bp = Blueprint("projects", __name__, url_prefix="/api/v1/projects")
register_error_handlers(project_bp)


@project_bp.route("", methods=["GET"])
def list_projects():
    owner_id = request.args.get("owner_id")
    if owner_id is not None:
        try:
            owner_id = int(owner_id)
        except ValueError:
            return api_error(E.VALIDATION_INVALID, "owner_id must be an integer")
    projects = project_service.list_projects(
        status=request.args.get("status") or None,
        health=request.args.get("health") or None,
        owner_id=owner_id,
    )
    return jsonify(projects), 200


@project_bp.route("", methods=["POST"])
def create_project():
    data = request.get_json(silent=True) or {}
    if not str(data.get("project_name") or "").strip():
        return api_error(E.VALIDATION_REQUIRED, "project_name is required")

    project = project_service.create_project(data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(project_service.get_project_detail(project.id)), 201


@project_bp.route("/<int:project_id>", methods=["GET"])
def get_project(project_id):
    return jsonify(project_service.get_project_detail(project_id)), 200


@project_bp.route("/<int:project_id>", methods=["PUT"])
def update_project(project_id):
    data = request.get_json(silent=True) or {}
    project_service.update_project(project_id, data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(project_service.get_project_detail(project_id)), 200


@project_bp.route("/<int:project_id>", methods=["DELETE"])
def delete_project(project_id):
    snapshot = project_service.delete_project(project_id)
    err = db_commit_or_error()
    if err:
        return err
    logger.info("Project deleted id=%s", project_id)
    return jsonify({"message": "Project deleted successfully", "project": snapshot}), 200


@project_bp.route("/<int:project_id>/notes", methods=["POST"])
def add_note(project_id):
    data = request.get_json(silent=True) or {}
    if not str(data.get("note_text") or "").strip():
        return api_error(E.VALIDATION_REQUIRED, "note_text is required")

    note = project_service.add_note(project_id, data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(note.to_dict()), 201


@project_bp.route("/<int:project_id>/health-history", methods=["GET"])
def health_history(project_id):
    return jsonify(project_service.get_health_history(project_id)), 200


@project_bp.route("/<int:project_id>/custom-fields", methods=["PUT"])
def upsert_custom_fields(project_id):
    data = request.get_json(silent=True) or {}
    fields = data.get("custom_fields") if isinstance(data, dict) else data
    if fields is None:
        return api_error(E.VALIDATION_REQUIRED, "custom_fields is required")

    result = project_service.upsert_custom_fields(project_id, fields)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(result), 200
