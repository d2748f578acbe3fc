"""
Read-side queries feeding the report assembler and the export endpoints.

Every method returns typed records (or plain dicts for exports) — never ORM
instances — so the aggregation engine never touches the session.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone

from sqlalchemy import and_, case, func, select
from sqlalchemy.orm import aliased

from portfolio_tracker.models import db
from portfolio_tracker.models.project import (
    ACTIVE_STATUSES,
    Project,
    ProjectHealthHistory,
    ProjectNote,
)
from portfolio_tracker.models.time_entry import TimeEntry
from portfolio_tracker.models.user import User
from portfolio_tracker.services.records import ProjectRecord, UserHours

logger = logging.getLogger(__name__)


def _full_name(user):
    return user.first_name + " " + user.last_name


def latest_note_subquery():
    """Correlated scalar subquery: newest note text for ``Project.id``, or ''."""
    newest = (
        select(ProjectNote.note_text)
        .where(ProjectNote.project_id == Project.id)
        .order_by(ProjectNote.created_at.desc(), ProjectNote.id.desc())
        .limit(1)
        .correlate(Project)
        .scalar_subquery()
    )
    return func.coalesce(newest, "")


def project_overview_select():
    """SELECT of project columns + tier owner names + latest note."""
    tier1 = aliased(User)
    tier2 = aliased(User)
    return (
        select(
            Project.id,
            Project.project_name,
            Project.status,
            Project.health,
            Project.arr_value,
            Project.close_date,
            Project.start_date,
            Project.is_closed,
            Project.tier1_owner_id,
            Project.tier2_owner_id,
            Project.tier3_owners,
            Project.risk_description,
            Project.ask_description,
            Project.impact_description,
            Project.created_at,
            Project.updated_at,
            _full_name(tier1).label("tier_1_name"),
            _full_name(tier2).label("tier_2_name"),
            latest_note_subquery().label("latest_note"),
        )
        .select_from(Project)
        .outerjoin(tier1, Project.tier1_owner_id == tier1.id)
        .outerjoin(tier2, Project.tier2_owner_id == tier2.id)
    )


class SqlReportRepository:
    """Report inputs read through the Flask-SQLAlchemy session."""

    def __init__(self, session=None):
        self.session = session if session is not None else db.session

    def list_active_projects(self) -> list[ProjectRecord]:
        """Projects whose status is in the active-like subset."""
        stmt = project_overview_select().where(Project.status.in_(ACTIVE_STATUSES))
        rows = self.session.execute(stmt).mappings().all()
        return [ProjectRecord.from_row(row) for row in rows]

    def list_all_projects_for_risk(self) -> list[ProjectRecord]:
        """Same population as the executive report: current active projects."""
        return self.list_active_projects()

    def list_projects_for_time_summary(self) -> list[ProjectRecord]:
        """Projects listed by the per-project time summary."""
        return self.list_active_projects()

    def list_active_users_with_hours(self, start_date: date, end_date: date) -> list[UserHours]:
        """Active users LEFT JOINed with their entries in [start_date, end_date]."""
        worked = case((TimeEntry.hours > 0, TimeEntry.hours), else_=0)
        pto = case((TimeEntry.hours < 0, func.abs(TimeEntry.hours)), else_=0)
        worked_day = case((TimeEntry.hours > 0, TimeEntry.entry_date), else_=None)

        stmt = (
            select(
                User.id,
                _full_name(User).label("user_name"),
                User.tier,
                func.coalesce(func.sum(worked), 0).label("total_hours"),
                func.coalesce(func.sum(pto), 0).label("pto_hours"),
                func.count(func.distinct(worked_day)).label("days_worked"),
            )
            .select_from(User)
            .outerjoin(
                TimeEntry,
                and_(
                    TimeEntry.user_id == User.id,
                    TimeEntry.entry_date >= start_date,
                    TimeEntry.entry_date <= end_date,
                ),
            )
            .where(User.is_active.is_(True))
            .group_by(User.id, User.first_name, User.last_name, User.tier)
            .order_by(User.id)
        )
        rows = self.session.execute(stmt).mappings().all()
        return [UserHours.from_row(row) for row in rows]

    # ── Trends & exports ─────────────────────────────────────────────────

    def health_trends(self, days: int) -> list[dict]:
        """Count of health-history rows per (day, health) over the last ``days``."""
        since = datetime.now(timezone.utc) - timedelta(days=days)
        day = func.date(ProjectHealthHistory.created_at)
        stmt = (
            select(
                day.label("date"),
                ProjectHealthHistory.health,
                func.count(ProjectHealthHistory.id).label("count"),
            )
            .where(ProjectHealthHistory.created_at >= since)
            .group_by(day, ProjectHealthHistory.health)
            .order_by(day.desc(), ProjectHealthHistory.health)
        )
        return [
            {"date": str(row.date), "health": row.health, "count": row.count}
            for row in self.session.execute(stmt)
        ]

    def export_projects(self) -> list[dict]:
        """Every project (any status), newest first, flattened for export."""
        stmt = project_overview_select().order_by(Project.created_at.desc(), Project.id.desc())
        exported = []
        for row in self.session.execute(stmt).mappings():
            record = ProjectRecord.from_row(row)
            item = record.to_dict()
            # Export mirrors stored values, including ones outside the closed sets.
            item["status"] = row["status"]
            item["health"] = row["health"]
            item["created_at"] = row["created_at"].isoformat() if row["created_at"] else None
            item["updated_at"] = row["updated_at"].isoformat() if row["updated_at"] else None
            exported.append(item)
        return exported

    def export_time_entries(self, start_date: date | None = None, end_date: date | None = None) -> list[dict]:
        stmt = (
            select(
                TimeEntry.id,
                TimeEntry.user_id,
                _full_name(User).label("user_name"),
                TimeEntry.entry_date,
                TimeEntry.hours,
                TimeEntry.description,
                TimeEntry.created_at,
                TimeEntry.updated_at,
            )
            .join(User, TimeEntry.user_id == User.id)
        )
        if start_date:
            stmt = stmt.where(TimeEntry.entry_date >= start_date)
        if end_date:
            stmt = stmt.where(TimeEntry.entry_date <= end_date)
        stmt = stmt.order_by(TimeEntry.entry_date.desc(), User.first_name, User.last_name)

        return [
            {
                "id": row.id,
                "user_id": row.user_id,
                "user_name": row.user_name,
                "entry_date": row.entry_date.isoformat(),
                "hours": float(row.hours),
                "description": row.description,
                "created_at": row.created_at.isoformat() if row.created_at else None,
                "updated_at": row.updated_at.isoformat() if row.updated_at else None,
            }
            for row in self.session.execute(stmt)
        ]
