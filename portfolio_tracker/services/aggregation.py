"""
Executive aggregation & risk-scoring engine.

Pure functions over ``ProjectRecord`` / ``UserHours`` snapshots — no I/O,
no Flask, no session. Given the same inputs every function returns the same
output, so report documents built from them are reproducible.

Three concerns live here:
    1. Health grouping and ARR-at-risk (one weighting formula, used everywhere)
    2. Per-project risk categorization for the risk report
    3. Capacity / utilization math, globally and per organizational tier

Rounding for display happens only in the ``*_summary`` / ``to_dict`` helpers;
running totals stay unrounded.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal

from portfolio_tracker.services.records import ProjectRecord, UserHours

logger = logging.getLogger(__name__)

DEFAULT_YELLOW_RISK_WEIGHT = 0.5
DEFAULT_WEEKLY_CAPACITY_HOURS = 40
DUE_SOON_WINDOW_DAYS = 30

HEALTH_PRIORITY = {"red": 1, "yellow": 2, "green": 3}
UNKNOWN_HEALTH_PRIORITY = 4

RISK_HIGH = "High Risk"
RISK_MEDIUM = "Medium Risk"
RISK_OVERDUE = "Overdue"
RISK_DUE_SOON = "Due Soon"
RISK_LOW = "Low Risk"
RISK_CATEGORIES = (RISK_HIGH, RISK_MEDIUM, RISK_OVERDUE, RISK_DUE_SOON, RISK_LOW)

TIER_KEYS = {1: "tier1", 2: "tier2", 3: "tier3"}


# ── Rounding ─────────────────────────────────────────────────────────────────


def round_hours(value: float) -> float:
    """Round to one decimal, half away from zero (55.55 -> 55.6)."""
    return float(Decimal(str(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def round_currency(value: float) -> int:
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def safe_ratio(numerator: float, denominator: float) -> float:
    """numerator / denominator, or 0.0 when the denominator is not positive."""
    if denominator <= 0:
        return 0.0
    return numerator / denominator


# ═════════════════════════════════════════════════════════════════════════════
# 1. Health grouping & ARR at risk
# ═════════════════════════════════════════════════════════════════════════════


def health_priority(health: str | None) -> int:
    return HEALTH_PRIORITY.get(health, UNKNOWN_HEALTH_PRIORITY)


def arr_at_risk(project: ProjectRecord, *, yellow_weight: float = DEFAULT_YELLOW_RISK_WEIGHT) -> float:
    """Weighted revenue exposure of one project: red full, yellow weighted, else 0."""
    arr = project.arr_value or 0.0
    if project.health == "red":
        return arr
    if project.health == "yellow":
        return arr * yellow_weight
    return 0.0


def sort_by_health_priority(projects) -> list[ProjectRecord]:
    """Red, yellow, green, unknown; then ARR descending with nulls last."""
    return sorted(
        projects,
        key=lambda p: (
            health_priority(p.health),
            p.arr_value is None,
            -(p.arr_value or 0.0),
            p.id,
        ),
    )


@dataclass(frozen=True)
class HealthSummary:
    projects: tuple[ProjectRecord, ...]
    red: tuple[ProjectRecord, ...]
    yellow: tuple[ProjectRecord, ...]
    green: tuple[ProjectRecord, ...]
    arr_at_risk: float
    total_arr: float

    @property
    def total_projects(self) -> int:
        return len(self.projects)

    @property
    def other_count(self) -> int:
        return self.total_projects - len(self.red) - len(self.yellow) - len(self.green)

    def to_dict(self) -> dict:
        return {
            "total_projects": self.total_projects,
            "red_projects": len(self.red),
            "yellow_projects": len(self.yellow),
            "green_projects": len(self.green),
            "other_projects": self.other_count,
            "projects_by_health": {
                "red": [p.to_dict() for p in self.red],
                "yellow": [p.to_dict() for p in self.yellow],
                "green": [p.to_dict() for p in self.green],
            },
            "arr_at_risk": round_currency(self.arr_at_risk),
            "total_arr": round_currency(self.total_arr),
        }


def summarize_health(projects, *, yellow_weight: float = DEFAULT_YELLOW_RISK_WEIGHT) -> HealthSummary:
    """Partition active projects by health and total their ARR exposure."""
    ordered = tuple(sort_by_health_priority(projects))
    return HealthSummary(
        projects=ordered,
        red=tuple(p for p in ordered if p.health == "red"),
        yellow=tuple(p for p in ordered if p.health == "yellow"),
        green=tuple(p for p in ordered if p.health == "green"),
        arr_at_risk=sum(arr_at_risk(p, yellow_weight=yellow_weight) for p in ordered),
        total_arr=sum(p.arr_value or 0.0 for p in ordered),
    )


# ═════════════════════════════════════════════════════════════════════════════
# 2. Risk categorization
# ═════════════════════════════════════════════════════════════════════════════


def risk_category(project: ProjectRecord, *, today: date) -> str:
    """First matching rule wins: red, yellow, overdue, due soon, low."""
    if project.health == "red":
        return RISK_HIGH
    if project.health == "yellow":
        return RISK_MEDIUM
    if project.close_date is not None and project.close_date < today and not project.is_closed:
        return RISK_OVERDUE
    if project.due_date is not None and project.due_date < today + timedelta(days=DUE_SOON_WINDOW_DAYS):
        return RISK_DUE_SOON
    return RISK_LOW


@dataclass(frozen=True)
class RiskAssessment:
    project: ProjectRecord
    category: str
    arr_at_risk: float

    def to_dict(self) -> dict:
        data = self.project.to_dict()
        data["risk_category"] = self.category
        data["arr_at_risk"] = round_currency(self.arr_at_risk)
        return data


def assess_risks(
    projects,
    *,
    today: date,
    yellow_weight: float = DEFAULT_YELLOW_RISK_WEIGHT,
) -> list[RiskAssessment]:
    """Categorize every project, ordered by exposure, health, then close date."""
    assessed = [
        RiskAssessment(
            project=p,
            category=risk_category(p, today=today),
            arr_at_risk=arr_at_risk(p, yellow_weight=yellow_weight),
        )
        for p in projects
    ]
    assessed.sort(
        key=lambda a: (
            -a.arr_at_risk,
            health_priority(a.project.health),
            a.project.close_date is None,
            a.project.close_date or date.max,
            a.project.id,
        )
    )
    return assessed


def summarize_risks(assessments: list[RiskAssessment]) -> dict:
    """Group assessed projects by category (first-seen order) and total exposure."""
    groups: dict[str, list[dict]] = {}
    flat = []
    for assessment in assessments:
        item = assessment.to_dict()
        flat.append(item)
        groups.setdefault(assessment.category, []).append(item)
    return {
        "total_arr_at_risk": round_currency(sum(a.arr_at_risk for a in assessments)),
        "risk_groups": groups,
        "projects": flat,
    }


# ═════════════════════════════════════════════════════════════════════════════
# 3. Capacity & utilization
# ═════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class CapacityMetrics:
    """Utilization of one group of users (whole team or one tier)."""

    total_users: int
    active_users: int
    total_hours: float
    pto_hours: float
    expected_hours: float
    available_hours: float
    utilization_percentage: float
    avg_hours_per_person: float

    def to_dict(self) -> dict:
        return {
            "total_users": self.total_users,
            "active_users": self.active_users,
            "total_hours": round_hours(self.total_hours),
            "pto_hours": round_hours(self.pto_hours),
            "expected_hours": round_hours(self.expected_hours),
            "available_hours": round_hours(self.available_hours),
            "utilization_percentage": round_hours(self.utilization_percentage),
            "avg_hours_per_person": round_hours(self.avg_hours_per_person),
        }


def compute_capacity(
    users,
    *,
    weekly_hours: float = DEFAULT_WEEKLY_CAPACITY_HOURS,
) -> CapacityMetrics:
    """PTO-adjusted utilization: worked / (active users x weekly hours - PTO)."""
    users = list(users)
    total_hours = sum(u.total_hours for u in users)
    pto_hours = sum(u.pto_hours for u in users)
    active_users = sum(1 for u in users if u.is_active_in_period)

    expected_hours = active_users * weekly_hours
    available_hours = expected_hours - pto_hours
    utilization = safe_ratio(total_hours, available_hours) * 100

    return CapacityMetrics(
        total_users=len(users),
        active_users=active_users,
        total_hours=total_hours,
        pto_hours=pto_hours,
        expected_hours=expected_hours,
        available_hours=available_hours,
        utilization_percentage=utilization,
        avg_hours_per_person=safe_ratio(total_hours, active_users),
    )


def compute_tier_breakdown(
    users,
    *,
    weekly_hours: float = DEFAULT_WEEKLY_CAPACITY_HOURS,
) -> dict[str, CapacityMetrics]:
    """Capacity per organizational tier; empty tiers are present and zeroed."""
    by_tier: dict[int, list[UserHours]] = {tier: [] for tier in TIER_KEYS}
    for user in users:
        if user.tier in by_tier:
            by_tier[user.tier].append(user)
    return {
        TIER_KEYS[tier]: compute_capacity(members, weekly_hours=weekly_hours)
        for tier, members in by_tier.items()
    }


def per_person_hours(users) -> list[dict]:
    """Per-user rows, most hours first, then by name."""
    ordered = sorted(users, key=lambda u: (-u.total_hours, u.user_name, u.user_id))
    return [
        {
            "id": u.user_id,
            "user_name": u.user_name,
            "tier": u.tier,
            "total_hours": round_hours(u.total_hours),
            "pto_hours": round_hours(u.pto_hours),
            "days_worked": u.days_worked,
        }
        for u in ordered
    ]
