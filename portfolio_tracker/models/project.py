"""Project domain models: projects, notes, health history and custom fields."""

from datetime import datetime, timezone

from portfolio_tracker.models import db

# ── Closed value sets ────────────────────────────────────────────────────────

PROJECT_STATUSES = frozenset({
    "in_progress", "in_planning", "on_hold", "completed",
    "cancelled", "active", "ongoing", "delivering",
})
ACTIVE_STATUSES = ("in_progress", "active", "ongoing", "delivering")
HEALTH_VALUES = frozenset({"green", "yellow", "red"})

DEFAULT_STATUS = "in_progress"
DEFAULT_HEALTH = "green"


def _utcnow():
    return datetime.now(timezone.utc)


class Project(db.Model):
    """Tracked customer project with health, ARR value and tiered ownership."""

    __tablename__ = "projects"

    id = db.Column(db.Integer, primary_key=True)
    project_name = db.Column(db.String(255), nullable=False)
    status = db.Column(db.String(30), nullable=False, default=DEFAULT_STATUS)
    health = db.Column(
        db.String(10), nullable=False, default=DEFAULT_HEALTH,
        comment="green | yellow | red",
    )
    arr_value = db.Column(db.Numeric(14, 2), nullable=True)
    close_date = db.Column(db.Date, nullable=True)
    start_date = db.Column(db.Date, nullable=True)
    is_closed = db.Column(db.Boolean, nullable=False, default=False)

    # ── Ownership slots ──
    tier1_owner_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True,
    )
    tier2_owner_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True,
    )
    tier3_owners = db.Column(
        db.Text, nullable=True,
        comment="JSON array of user ids, e.g. [3, 7, 9]",
    )

    # ── Executive narrative inputs ──
    risk_description = db.Column(db.Text, nullable=True)
    ask_description = db.Column(db.Text, nullable=True)
    impact_description = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow,
    )

    tier1_owner = db.relationship("User", foreign_keys=[tier1_owner_id])
    tier2_owner = db.relationship("User", foreign_keys=[tier2_owner_id])
    notes = db.relationship(
        "ProjectNote", backref="project", lazy="dynamic",
        cascade="all, delete-orphan", passive_deletes=True,
    )
    health_history = db.relationship(
        "ProjectHealthHistory", backref="project", lazy="dynamic",
        cascade="all, delete-orphan", passive_deletes=True,
    )
    custom_fields = db.relationship(
        "ProjectCustomField", backref="project", lazy="dynamic",
        cascade="all, delete-orphan", passive_deletes=True,
    )

    __table_args__ = (
        db.Index("ix_projects_status_health", "status", "health"),
    )

    def to_dict(self) -> dict:
        """Serialize stored project columns for API responses."""
        return {
            "id": self.id,
            "project_name": self.project_name,
            "status": self.status,
            "health": self.health,
            "arr_value": float(self.arr_value) if self.arr_value is not None else None,
            "close_date": self.close_date.isoformat() if self.close_date else None,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "is_closed": self.is_closed,
            "tier1_owner_id": self.tier1_owner_id,
            "tier2_owner_id": self.tier2_owner_id,
            "tier3_owners": self.tier3_owners,
            "risk_description": self.risk_description,
            "ask_description": self.ask_description,
            "impact_description": self.impact_description,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self) -> str:
        return f"<Project {self.id}: {self.project_name}>"


class ProjectNote(db.Model):
    __tablename__ = "project_notes"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    note_text = db.Column(db.Text, nullable=False)
    created_by = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True,
    )
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    author = db.relationship("User", foreign_keys=[created_by])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "note_text": self.note_text,
            "created_by": self.created_by,
            "created_by_name": self.author.full_name if self.author else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class ProjectHealthHistory(db.Model):
    """Append-only log of health transitions."""

    __tablename__ = "project_health_history"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    health = db.Column(db.String(10), nullable=False)
    changed_by = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True,
    )
    change_reason = db.Column(db.Text, nullable=True)
    created_at = db.Column(
        db.DateTime(timezone=True), nullable=False, default=_utcnow, index=True,
    )

    changer = db.relationship("User", foreign_keys=[changed_by])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "health": self.health,
            "changed_by": self.changed_by,
            "changed_by_name": self.changer.full_name if self.changer else None,
            "change_reason": self.change_reason,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class ProjectCustomField(db.Model):
    __tablename__ = "project_custom_fields"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    field_name = db.Column(db.String(100), nullable=False)
    field_value = db.Column(db.Text, nullable=True)
    field_type = db.Column(db.String(20), nullable=False, default="text")

    __table_args__ = (
        db.UniqueConstraint("project_id", "field_name", name="uq_project_custom_field_name"),
    )

    def to_dict(self) -> dict:
        return {
            "field_name": self.field_name,
            "field_value": self.field_value,
            "field_type": self.field_type,
        }
