"""
Report assembly — composes aggregation results into API documents.

    executive_report   project health + ARR exposure + capacity (date window)
    risk_report        per-project risk categories (current state, no window)
    capacity_report    team + tier utilization (explicit window)
    time_summary       hours grouped per user or per project
    ai_report          executive report + generated narrative

The assembler receives its repository and narrative generator explicitly, so
tests substitute fakes without patching modules.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import date, datetime, timedelta, timezone

from sqlalchemy.exc import SQLAlchemyError

from portfolio_tracker.core.exceptions import (
    AggregationFaultError,
    NarrativeGenerationError,
    ReportComputationError,
    ReportInputUnavailableError,
    ValidationError,
)
from portfolio_tracker.services import aggregation
from portfolio_tracker.services.aggregation import (
    DEFAULT_WEEKLY_CAPACITY_HOURS,
    DEFAULT_YELLOW_RISK_WEIGHT,
    round_hours,
)

logger = logging.getLogger(__name__)

# Fixed policy: executive reports default to the trailing week.
DEFAULT_PERIOD_DAYS = 7

TIME_SUMMARY_GROUPS = ("user", "project")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _period(start_date: date, end_date: date) -> dict:
    return {"start_date": start_date.isoformat(), "end_date": end_date.isoformat()}


class ReportAssembler:
    """Builds report documents from repository reads and engine output."""

    def __init__(
        self,
        repository,
        narrative_generator=None,
        *,
        weekly_hours: float = DEFAULT_WEEKLY_CAPACITY_HOURS,
        yellow_weight: float = DEFAULT_YELLOW_RISK_WEIGHT,
        today=date.today,
        now=_utcnow,
    ):
        self.repository = repository
        self.narrative_generator = narrative_generator
        self.weekly_hours = weekly_hours
        self.yellow_weight = yellow_weight
        self._today = today
        self._now = now

    # ── Plumbing ─────────────────────────────────────────────────────────

    def _load(self, report: str, loader, *args):
        """Run one repository read, converting failures to typed errors."""
        try:
            result = loader(*args)
        except SQLAlchemyError as exc:
            raise ReportInputUnavailableError(
                f"{report} report: data store read failed in {loader.__name__}",
                report=report,
            ) from exc
        if result is None:
            raise ReportInputUnavailableError(
                f"{report} report: {loader.__name__} returned no data",
                report=report,
            )
        return result

    @contextmanager
    def _aggregating(self, report: str):
        try:
            yield
        except ReportComputationError:
            raise
        except (ArithmeticError, AttributeError, KeyError, TypeError, ValueError) as exc:
            raise AggregationFaultError(
                f"{report} report: aggregation failed ({type(exc).__name__}: {exc})",
                report=report,
            ) from exc

    def resolve_period(self, start_date: date | None = None, end_date: date | None = None):
        """Fill missing bounds with the trailing-week default."""
        today = self._today()
        start = start_date or today - timedelta(days=DEFAULT_PERIOD_DAYS)
        end = end_date or today
        if start > end:
            raise ValidationError(
                "start_date must be on or before end_date",
                details={"start_date": start.isoformat(), "end_date": end.isoformat()},
            )
        return start, end

    def _capacity_inputs(self, report: str, start: date, end: date):
        return self._load(report, self.repository.list_active_users_with_hours, start, end)

    # ── Documents ────────────────────────────────────────────────────────

    def executive_report(self, start_date: date | None = None, end_date: date | None = None) -> dict:
        start, end = self.resolve_period(start_date, end_date)
        projects = self._load("executive", self.repository.list_active_projects)
        users = self._capacity_inputs("executive", start, end)

        with self._aggregating("executive"):
            health = aggregation.summarize_health(projects, yellow_weight=self.yellow_weight)
            team = aggregation.compute_capacity(users, weekly_hours=self.weekly_hours)
            tiers = aggregation.compute_tier_breakdown(users, weekly_hours=self.weekly_hours)

            capacity_analysis = {
                "total_hours": round_hours(team.total_hours),
                "pto_hours": round_hours(team.pto_hours),
                "expected_hours": round_hours(team.expected_hours),
                "available_hours": round_hours(team.available_hours),
                "avg_hours_per_person": round_hours(team.avg_hours_per_person),
                "utilization_percentage": round_hours(team.utilization_percentage),
                "team_size": team.total_users,
                "active_team_size": team.active_users,
                "per_person_hours": aggregation.per_person_hours(users),
                "tier_breakdown": {key: metrics.to_dict() for key, metrics in tiers.items()},
            }
            document = {
                "report_period": _period(start, end),
                "project_health": health.to_dict(),
                "capacity_analysis": capacity_analysis,
            }

        logger.debug(
            "Executive report built: %d projects, %d users, period=%s..%s",
            health.total_projects, team.total_users, start, end,
        )
        document["generated_at"] = self._now().isoformat()
        return document

    def risk_report(self) -> dict:
        projects = self._load("risk", self.repository.list_all_projects_for_risk)
        with self._aggregating("risk"):
            assessments = aggregation.assess_risks(
                projects, today=self._today(), yellow_weight=self.yellow_weight,
            )
            document = aggregation.summarize_risks(assessments)
        document["generated_at"] = self._now().isoformat()
        return document

    def capacity_report(self, start_date: date, end_date: date) -> dict:
        if start_date is None or end_date is None:
            raise ValidationError("start_date and end_date are required")
        start, end = self.resolve_period(start_date, end_date)
        users = self._capacity_inputs("capacity", start, end)

        with self._aggregating("capacity"):
            team = aggregation.compute_capacity(users, weekly_hours=self.weekly_hours)
            tiers = aggregation.compute_tier_breakdown(users, weekly_hours=self.weekly_hours)
            return {
                "period": _period(start, end),
                "team_summary": {
                    "total_hours": round_hours(team.total_hours),
                    "pto_hours": round_hours(team.pto_hours),
                    "total_users": team.total_users,
                    "active_users": team.active_users,
                    "expected_hours": round_hours(team.expected_hours),
                    "available_hours": round_hours(team.available_hours),
                    "avg_hours_per_user": round_hours(team.avg_hours_per_person),
                    "utilization_percentage": round_hours(team.utilization_percentage),
                },
                "tier_breakdown": {key: metrics.to_dict() for key, metrics in tiers.items()},
                "user_details": aggregation.per_person_hours(users),
            }

    def time_summary(self, start_date: date, end_date: date, group_by: str = "user") -> dict:
        if group_by not in TIME_SUMMARY_GROUPS:
            raise ValidationError(
                "group_by must be one of: user, project", details={"group_by": group_by},
            )
        if start_date is None or end_date is None:
            raise ValidationError("start_date and end_date are required")
        start, end = self.resolve_period(start_date, end_date)

        if group_by == "project":
            # Time entries carry no project reference; hours are not attributable.
            projects = self._load("time-summary", self.repository.list_projects_for_time_summary)
            with self._aggregating("time-summary"):
                ordered = sorted(
                    projects,
                    key=lambda p: (p.arr_value is None, -(p.arr_value or 0.0), p.id),
                )
                data = [
                    {
                        "name": p.project_name,
                        "health": p.health,
                        "arr_value": p.arr_value,
                        "total_hours": 0.0,
                        "team_members": 0,
                        "days_worked": 0,
                    }
                    for p in ordered
                ]
        else:
            users = self._capacity_inputs("time-summary", start, end)
            with self._aggregating("time-summary"):
                data = [
                    {
                        "name": row["user_name"],
                        "user_id": row["id"],
                        "total_hours": row["total_hours"],
                        "pto_hours": row["pto_hours"],
                        "days_worked": row["days_worked"],
                    }
                    for row in aggregation.per_person_hours(users)
                ]

        return {"period": _period(start, end), "group_by": group_by, "data": data}

    def ai_report(self, start_date: date | None = None, end_date: date | None = None) -> dict:
        if self.narrative_generator is None:
            raise NarrativeGenerationError("No narrative generator configured", report="ai")
        executive = self.executive_report(start_date, end_date)
        narrative = self.narrative_generator.generate(executive)
        return {
            "report": narrative,
            "data": executive,
            "generated_at": executive["generated_at"],
        }


def create_report_assembler(config, repository=None, narrative_generator=None) -> ReportAssembler:
    """Wire an assembler from app config; defaults to the SQL repository."""
    if repository is None:
        from portfolio_tracker.services.report_queries import SqlReportRepository
        repository = SqlReportRepository()
    return ReportAssembler(
        repository,
        narrative_generator,
        weekly_hours=config.get("REPORT_WEEKLY_CAPACITY_HOURS", DEFAULT_WEEKLY_CAPACITY_HOURS),
        yellow_weight=config.get("REPORT_YELLOW_RISK_WEIGHT", DEFAULT_YELLOW_RISK_WEIGHT),
    )
