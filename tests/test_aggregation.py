"""
Unit tests for the aggregation engine (health, ARR at risk, risk
categories, capacity). Pure functions over records — no database needed.
"""

import json
from datetime import date

from portfolio_tracker.services import aggregation as agg
from portfolio_tracker.services.records import ProjectRecord, UserHours

TODAY = date(2026, 6, 15)


def _project(pid, health="green", arr=None, close_date=None, is_closed=False, name=None):
    return ProjectRecord(
        id=pid,
        project_name=name or f"Project {pid}",
        status="active",
        health=health,
        arr_value=arr,
        close_date=close_date,
        is_closed=is_closed,
    )


def _user(uid, tier, worked=0.0, pto=0.0, days=0, name=None):
    return UserHours(
        user_id=uid, user_name=name or f"User {uid}", tier=tier,
        total_hours=worked, pto_hours=pto, days_worked=days,
    )


# ── Health & ARR at risk ─────────────────────────────────────────────────


class TestArrAtRisk:
    def test_red_counts_in_full(self):
        assert agg.arr_at_risk(_project(1, "red", 100000)) == 100000

    def test_yellow_counts_half(self):
        assert agg.arr_at_risk(_project(1, "yellow", 100000)) == 50000

    def test_green_counts_nothing(self):
        assert agg.arr_at_risk(_project(1, "green", 100000)) == 0

    def test_unknown_health_and_null_arr(self):
        assert agg.arr_at_risk(_project(1, None, 100000)) == 0
        assert agg.arr_at_risk(_project(2, "red", None)) == 0

    def test_custom_yellow_weight(self):
        assert agg.arr_at_risk(_project(1, "yellow", 1000), yellow_weight=0.25) == 250


class TestSummarizeHealth:
    def _portfolio(self):
        return [
            _project(1, "green", 50000),
            _project(2, "red", 100000),
            _project(3, "yellow", 100000),
            _project(4, None, 70000),
            _project(5, "red", None),
            _project(6, "red", 250000),
        ]

    def test_bucket_counts_add_up(self):
        summary = agg.summarize_health(self._portfolio()).to_dict()
        assert summary["total_projects"] == 6
        assert (summary["red_projects"] + summary["yellow_projects"]
                + summary["green_projects"] + summary["other_projects"]) == 6
        assert summary["other_projects"] == 1

    def test_arr_totals(self):
        summary = agg.summarize_health(self._portfolio()).to_dict()
        assert summary["arr_at_risk"] == 100000 + 250000 + 50000
        assert summary["total_arr"] == 570000
        assert summary["arr_at_risk"] <= summary["total_arr"]

    def test_red_bucket_sorted_by_arr_nulls_last(self):
        summary = agg.summarize_health(self._portfolio())
        assert [p.id for p in summary.red] == [6, 2, 5]

    def test_empty_portfolio(self):
        summary = agg.summarize_health([]).to_dict()
        assert summary["total_projects"] == 0
        assert summary["arr_at_risk"] == 0
        assert summary["projects_by_health"] == {"red": [], "yellow": [], "green": []}

    def test_display_rounding_is_half_up(self):
        summary = agg.summarize_health([_project(1, "yellow", 1001)]).to_dict()
        assert summary["arr_at_risk"] == 501


# ── Risk categorization ──────────────────────────────────────────────────


class TestRiskCategory:
    def test_red_wins_over_overdue(self):
        project = _project(1, "red", close_date=date(2026, 1, 1))
        assert agg.risk_category(project, today=TODAY) == agg.RISK_HIGH

    def test_yellow_is_medium(self):
        project = _project(1, "yellow", close_date=date(2026, 1, 1))
        assert agg.risk_category(project, today=TODAY) == agg.RISK_MEDIUM

    def test_overdue_when_open_and_past_close(self):
        project = _project(1, "green", close_date=date(2026, 6, 14))
        assert agg.risk_category(project, today=TODAY) == agg.RISK_OVERDUE

    def test_closed_project_is_not_overdue(self):
        project = _project(1, "green", close_date=date(2026, 6, 1), is_closed=True)
        assert agg.risk_category(project, today=TODAY) == agg.RISK_LOW

    def test_close_date_today_is_not_overdue(self):
        project = _project(1, "green", close_date=TODAY)
        assert agg.risk_category(project, today=TODAY) == agg.RISK_LOW

    def test_due_soon_never_fires_without_due_date(self):
        project = _project(1, "green", close_date=date(2026, 6, 20))
        assert agg.risk_category(project, today=TODAY) == agg.RISK_LOW


class TestAssessRisks:
    def test_sorted_by_exposure_then_health_then_close_date(self):
        projects = [
            _project(1, "green", 900000, close_date=date(2026, 7, 1)),
            _project(2, "yellow", 200000),
            _project(3, "red", 100000),
            _project(4, "green", 10, close_date=date(2026, 5, 1)),
            _project(5, "green", 10),
        ]
        ordered = [a.project.id for a in agg.assess_risks(projects, today=TODAY)]
        assert ordered == [3, 2, 4, 1, 5]

    def test_summary_groups_and_total(self):
        projects = [_project(1, "red", 1000), _project(2, "yellow", 1000), _project(3, "green", 1000)]
        report = agg.summarize_risks(agg.assess_risks(projects, today=TODAY))
        assert report["total_arr_at_risk"] == 1500
        assert set(report["risk_groups"]) == {agg.RISK_HIGH, agg.RISK_MEDIUM, agg.RISK_LOW}
        assert report["projects"][0]["risk_category"] == agg.RISK_HIGH
        assert report["projects"][0]["arr_at_risk"] == 1000

    def test_project_exposure_rounded_half_up(self):
        assessed = agg.assess_risks([_project(1, "yellow", 1001.0)], today=TODAY)
        assert assessed[0].arr_at_risk == 500.5
        report = agg.summarize_risks(assessed)
        assert report["projects"][0]["arr_at_risk"] == 501
        assert report["total_arr_at_risk"] == 501


# ── Capacity ─────────────────────────────────────────────────────────────


class TestCapacity:
    def test_pto_adjusted_utilization(self):
        users = [_user(1, 1, worked=40, days=5), _user(2, 1, pto=8)]
        metrics = agg.compute_capacity(users).to_dict()
        assert metrics["active_users"] == 2
        assert metrics["expected_hours"] == 80
        assert metrics["available_hours"] == 72
        assert metrics["utilization_percentage"] == 55.6
        assert metrics["avg_hours_per_person"] == 20

    def test_idle_tier_has_zero_utilization(self):
        users = [_user(1, 1, worked=10), _user(2, 3), _user(3, 3)]
        tiers = agg.compute_tier_breakdown(users)
        assert tiers["tier3"].total_users == 2
        assert tiers["tier3"].active_users == 0
        assert tiers["tier3"].utilization_percentage == 0
        assert tiers["tier3"].avg_hours_per_person == 0

    def test_empty_tiers_present(self):
        tiers = agg.compute_tier_breakdown([_user(1, 2, worked=8)])
        assert set(tiers) == {"tier1", "tier2", "tier3"}
        assert tiers["tier1"].to_dict()["total_users"] == 0

    def test_unknown_tier_only_counts_globally(self):
        users = [_user(1, None, worked=8), _user(2, 1, worked=8)]
        tiers = agg.compute_tier_breakdown(users)
        assert sum(t.total_users for t in tiers.values()) == 1
        assert agg.compute_capacity(users).total_users == 2

    def test_all_pto_means_zero_available(self):
        metrics = agg.compute_capacity([_user(1, 1, pto=40)], weekly_hours=40)
        assert metrics.available_hours == 0
        assert metrics.utilization_percentage == 0

    def test_weekly_hours_override(self):
        metrics = agg.compute_capacity([_user(1, 1, worked=30)], weekly_hours=37.5)
        assert metrics.expected_hours == 37.5
        assert metrics.to_dict()["utilization_percentage"] == 80.0

    def test_per_person_rows_sorted(self):
        rows = agg.per_person_hours([
            _user(1, 1, worked=5, name="Zed"),
            _user(2, 2, worked=12.25, name="Amy"),
            _user(3, 2, worked=5, name="Bob"),
        ])
        assert [r["id"] for r in rows] == [2, 3, 1]
        assert rows[0]["total_hours"] == 12.3


def test_same_snapshot_gives_identical_json():
    projects = [_project(1, "red", 1000), _project(2, "yellow", 300, close_date=date(2026, 1, 1))]
    users = [_user(1, 1, worked=40), _user(2, 2, pto=8)]

    def build():
        return json.dumps({
            "health": agg.summarize_health(projects).to_dict(),
            "risks": agg.summarize_risks(agg.assess_risks(projects, today=TODAY)),
            "capacity": agg.compute_capacity(users).to_dict(),
        }, sort_keys=True)

    assert build() == build()
