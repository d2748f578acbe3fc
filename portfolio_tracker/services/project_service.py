"""Project CRUD service: partial updates, health history, notes and custom fields.

Services validate and flush; the calling blueprint owns the commit.
"""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation

from portfolio_tracker.core.exceptions import NotFoundError, ValidationError
from portfolio_tracker.models import db
from portfolio_tracker.models.project import (
    DEFAULT_HEALTH,
    DEFAULT_STATUS,
    HEALTH_VALUES,
    PROJECT_STATUSES,
    Project,
    ProjectCustomField,
    ProjectHealthHistory,
    ProjectNote,
)
from portfolio_tracker.models.user import User
from portfolio_tracker.services.records import ProjectRecord, decode_tier3_owners, encode_tier3_owners
from portfolio_tracker.services.report_queries import project_overview_select
from portfolio_tracker.utils.helpers import parse_date

logger = logging.getLogger(__name__)

CUSTOM_FIELD_TYPES = frozenset({"text", "number", "date", "url", "boolean"})

# Columns a PUT may touch; a null/absent value keeps the stored one.
_TEXT_FIELDS = ("project_name", "risk_description", "ask_description", "impact_description")


# ── Validation helpers ───────────────────────────────────────────────────────


def _validate_choice(field: str, value, allowed) -> str:
    if value not in allowed:
        raise ValidationError(
            f"{field} must be one of: {', '.join(sorted(allowed))}",
            details={field: value},
        )
    return value


def _parse_arr(value) -> Decimal:
    try:
        arr = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError("arr_value must be a number", details={"arr_value": value})
    if not arr.is_finite() or arr < 0:
        raise ValidationError("arr_value must be a non-negative number", details={"arr_value": value})
    return arr


def _parse_date_field(field: str, value):
    parsed = parse_date(value)
    if parsed is None:
        raise ValidationError(f"{field} is not a valid date", details={field: value})
    return parsed


def _validate_user_ref(field: str, user_id):
    if isinstance(user_id, bool) or not isinstance(user_id, int):
        try:
            user_id = int(user_id)
        except (TypeError, ValueError):
            raise ValidationError(f"{field} must be a user id", details={field: user_id})
    if db.session.get(User, user_id) is None:
        raise ValidationError(f"{field} references an unknown user", details={field: user_id})
    return user_id


def _tier3_from_payload(data: dict) -> str | None:
    """Accept ``tier3_owner_ids`` (list) or the legacy single ``tier3_owner_id``."""
    owner_ids = data.get("tier3_owner_ids")
    if isinstance(owner_ids, list):
        encoded = encode_tier3_owners(owner_ids)
    elif data.get("tier3_owner_id"):
        encoded = encode_tier3_owners([data["tier3_owner_id"]])
    else:
        return None
    for owner_id in decode_tier3_owners(encoded):
        _validate_user_ref("tier3_owner_ids", owner_id)
    return encoded


def _record_health(project: Project, health: str, changed_by, reason: str) -> None:
    db.session.add(ProjectHealthHistory(
        project_id=project.id,
        health=health,
        changed_by=changed_by,
        change_reason=reason,
    ))


def get_project_or_404(project_id: int) -> Project:
    project = db.session.get(Project, project_id)
    if project is None:
        raise NotFoundError(resource="Project", resource_id=project_id)
    return project


# ── Queries ──────────────────────────────────────────────────────────────────


def list_projects(*, status: str | None = None, health: str | None = None,
                  owner_id: int | None = None) -> list[dict]:
    """List projects newest first with owner names and latest note.

    ``owner_id`` matches the tier-1, tier-2 or any tier-3 slot.
    """
    stmt = project_overview_select()
    if status:
        stmt = stmt.where(Project.status == status)
    if health:
        stmt = stmt.where(Project.health == health)
    stmt = stmt.order_by(Project.created_at.desc(), Project.id.desc())

    records = [ProjectRecord.from_row(row) for row in db.session.execute(stmt).mappings()]
    if owner_id is not None:
        records = [
            r for r in records
            if owner_id in (r.tier1_owner_id, r.tier2_owner_id) or owner_id in r.tier3_owner_ids
        ]
    return [r.to_dict() for r in records]


def get_project_detail(project_id: int) -> dict:
    stmt = project_overview_select().where(Project.id == project_id)
    row = db.session.execute(stmt).mappings().first()
    if row is None:
        raise NotFoundError(resource="Project", resource_id=project_id)

    project = db.session.get(Project, project_id)
    detail = ProjectRecord.from_row(row).to_dict()
    detail["created_at"] = row["created_at"].isoformat() if row["created_at"] else None
    detail["updated_at"] = row["updated_at"].isoformat() if row["updated_at"] else None
    detail["notes"] = [
        n.to_dict()
        for n in project.notes.order_by(
            ProjectNote.created_at.desc(), ProjectNote.id.desc()
        )
    ]
    detail["custom_fields"] = [
        f.to_dict() for f in project.custom_fields.order_by(ProjectCustomField.field_name)
    ]
    return detail


def get_health_history(project_id: int) -> list[dict]:
    project = get_project_or_404(project_id)
    history = project.health_history.order_by(
        ProjectHealthHistory.created_at.desc(), ProjectHealthHistory.id.desc()
    )
    return [h.to_dict() for h in history]


# ── Mutations ────────────────────────────────────────────────────────────────


def create_project(data: dict) -> Project:
    """Create a project and its initial health-history row."""
    name = str(data.get("project_name") or "").strip()
    if not name:
        raise ValidationError("project_name is required", details={"project_name": "required"})

    status = _validate_choice("status", data.get("status") or DEFAULT_STATUS, PROJECT_STATUSES)
    health = _validate_choice("health", data.get("health") or DEFAULT_HEALTH, HEALTH_VALUES)

    project = Project(
        project_name=name,
        status=status,
        health=health,
        arr_value=_parse_arr(data["arr_value"]) if data.get("arr_value") is not None else None,
        close_date=_parse_date_field("close_date", data["close_date"]) if data.get("close_date") else None,
        start_date=_parse_date_field("start_date", data["start_date"]) if data.get("start_date") else None,
        is_closed=bool(data.get("is_closed", False)),
        tier1_owner_id=(
            _validate_user_ref("tier1_owner_id", data["tier1_owner_id"])
            if data.get("tier1_owner_id") is not None else None
        ),
        tier2_owner_id=(
            _validate_user_ref("tier2_owner_id", data["tier2_owner_id"])
            if data.get("tier2_owner_id") is not None else None
        ),
        tier3_owners=_tier3_from_payload(data),
        risk_description=data.get("risk_description"),
        ask_description=data.get("ask_description"),
        impact_description=data.get("impact_description"),
    )
    db.session.add(project)
    db.session.flush()

    _record_health(
        project, health,
        changed_by=project.tier2_owner_id or project.tier1_owner_id,
        reason="Project created",
    )
    db.session.flush()
    logger.info("Project created id=%s name=%r health=%s", project.id, name, health)
    return project


def update_project(project_id: int, data: dict) -> Project:
    """Partial update: a field that is absent or null keeps its stored value."""
    project = get_project_or_404(project_id)
    previous_health = project.health

    for attr in _TEXT_FIELDS:
        if data.get(attr) is not None:
            value = str(data[attr]).strip() if attr == "project_name" else data[attr]
            if attr == "project_name" and not value:
                raise ValidationError("project_name cannot be empty", details={"project_name": "empty"})
            setattr(project, attr, value)

    if data.get("status") is not None:
        project.status = _validate_choice("status", data["status"], PROJECT_STATUSES)
    if data.get("health") is not None:
        project.health = _validate_choice("health", data["health"], HEALTH_VALUES)
    if data.get("arr_value") is not None:
        project.arr_value = _parse_arr(data["arr_value"])
    if data.get("close_date") is not None:
        project.close_date = _parse_date_field("close_date", data["close_date"])
    if data.get("start_date") is not None:
        project.start_date = _parse_date_field("start_date", data["start_date"])
    if data.get("is_closed") is not None:
        project.is_closed = bool(data["is_closed"])
    for slot in ("tier1_owner_id", "tier2_owner_id"):
        if data.get(slot) is not None:
            setattr(project, slot, _validate_user_ref(slot, data[slot]))

    tier3 = _tier3_from_payload(data)
    if tier3 is not None:
        project.tier3_owners = tier3

    if project.health != previous_health:
        changed_by = data.get("changed_by")
        if changed_by is not None:
            changed_by = _validate_user_ref("changed_by", changed_by)
        _record_health(
            project, project.health,
            changed_by=changed_by,
            reason=data.get("health_change_reason") or "Health status updated",
        )
        logger.info("Project %s health %s -> %s", project.id, previous_health, project.health)

    db.session.flush()
    return project


def delete_project(project_id: int) -> dict:
    project = get_project_or_404(project_id)
    snapshot = project.to_dict()
    db.session.delete(project)
    db.session.flush()
    return snapshot


def add_note(project_id: int, data: dict) -> ProjectNote:
    get_project_or_404(project_id)
    note_text = str(data.get("note_text") or "").strip()
    if not note_text:
        raise ValidationError("note_text is required", details={"note_text": "required"})
    created_by = data.get("created_by")
    if created_by is not None:
        created_by = _validate_user_ref("created_by", created_by)

    note = ProjectNote(project_id=project_id, note_text=note_text, created_by=created_by)
    db.session.add(note)
    db.session.flush()
    return note


def upsert_custom_fields(project_id: int, fields: list) -> list[dict]:
    """Create or overwrite custom fields by name; unlisted fields are kept."""
    project = get_project_or_404(project_id)
    if not isinstance(fields, list):
        raise ValidationError("custom_fields must be a list")

    for index, item in enumerate(fields):
        name = str((item or {}).get("field_name") or "").strip()
        if not name:
            raise ValidationError("field_name is required", details={"index": index})
        field_type = item.get("field_type") or "text"
        _validate_choice("field_type", field_type, CUSTOM_FIELD_TYPES)
        value = item.get("field_value")

        existing = ProjectCustomField.query.filter_by(project_id=project.id, field_name=name).first()
        if existing:
            existing.field_value = None if value is None else str(value)
            existing.field_type = field_type
        else:
            db.session.add(ProjectCustomField(
                project_id=project.id,
                field_name=name,
                field_value=None if value is None else str(value),
                field_type=field_type,
            ))
        db.session.flush()

    return [f.to_dict() for f in project.custom_fields.order_by(ProjectCustomField.field_name)]
