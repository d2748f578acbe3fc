"""
Report assembly tests with an in-memory repository and a fake narrative
generator injected through the constructor.
"""

import json
from datetime import date, datetime, timezone

import pytest
from sqlalchemy.exc import OperationalError

from portfolio_tracker.ai.narrative import LocalStubProvider, NarrativeGenerator
from portfolio_tracker.core.exceptions import (
    AggregationFaultError,
    NarrativeGenerationError,
    ReportComputationError,
    ReportInputUnavailableError,
    ValidationError,
)
from portfolio_tracker.services.records import ProjectRecord, UserHours
from portfolio_tracker.services.report_assembly import ReportAssembler, create_report_assembler

TODAY = date(2026, 6, 15)


class FakeRepository:
    def __init__(self, projects=None, users=None):
        self.projects = projects if projects is not None else [
            ProjectRecord(id=1, project_name="Apollo", status="active", health="red", arr_value=100000),
            ProjectRecord(id=2, project_name="Gemini", status="active", health="yellow", arr_value=100000),
            ProjectRecord(id=3, project_name="Mercury", status="in_progress", health="green",
                          arr_value=50000, close_date=date(2026, 6, 1)),
        ]
        self.users = users if users is not None else [
            UserHours(user_id=1, user_name="Ada Lovelace", tier=1, total_hours=40, days_worked=5),
            UserHours(user_id=2, user_name="Grace Hopper", tier=1, pto_hours=8),
        ]
        self.windows = []

    def list_active_projects(self):
        return list(self.projects)

    def list_all_projects_for_risk(self):
        return list(self.projects)

    def list_projects_for_time_summary(self):
        return list(self.projects)

    def list_active_users_with_hours(self, start_date, end_date):
        self.windows.append((start_date, end_date))
        return list(self.users)


class FakeGenerator:
    def __init__(self):
        self.reports = []

    def generate(self, report):
        self.reports.append(report)
        return "## Summary\nAll good."


def _assembler(repository=None, generator=None, **kwargs):
    clock = iter(
        datetime(2026, 6, 15, 12, 0, second, tzinfo=timezone.utc) for second in range(60)
    )
    return ReportAssembler(
        repository or FakeRepository(),
        generator,
        today=lambda: TODAY,
        now=lambda: next(clock),
        **kwargs,
    )


class TestExecutiveReport:
    def test_document_shape(self):
        report = _assembler().executive_report()
        assert report["report_period"] == {"start_date": "2026-06-08", "end_date": "2026-06-15"}
        health = report["project_health"]
        assert health["total_projects"] == 3
        assert health["arr_at_risk"] == 150000
        assert health["total_arr"] == 250000

        capacity = report["capacity_analysis"]
        assert capacity["utilization_percentage"] == 55.6
        assert capacity["team_size"] == 2
        assert capacity["active_team_size"] == 2
        assert capacity["tier_breakdown"]["tier1"]["utilization_percentage"] == 55.6
        assert capacity["tier_breakdown"]["tier2"]["active_users"] == 0
        assert capacity["per_person_hours"][0]["user_name"] == "Ada Lovelace"
        assert "generated_at" in report

    def test_explicit_window_is_passed_to_repository(self):
        repo = FakeRepository()
        _assembler(repo).executive_report(date(2026, 5, 1), date(2026, 5, 31))
        assert repo.windows == [(date(2026, 5, 1), date(2026, 5, 31))]

    def test_single_bound_defaults_the_other(self):
        repo = FakeRepository()
        _assembler(repo).executive_report(start_date=date(2026, 6, 1))
        assert repo.windows == [(date(2026, 6, 1), TODAY)]

    def test_inverted_window_rejected(self):
        with pytest.raises(ValidationError):
            _assembler().executive_report(date(2026, 6, 10), date(2026, 6, 1))

    def test_idempotent_modulo_generated_at(self):
        assembler = _assembler()
        first = assembler.executive_report()
        second = assembler.executive_report()
        assert first["generated_at"] != second["generated_at"]
        first.pop("generated_at")
        second.pop("generated_at")
        assert json.dumps(first, sort_keys=True) == json.dumps(second, sort_keys=True)

    def test_configured_policy_applies(self):
        report = _assembler(weekly_hours=20, yellow_weight=1.0).executive_report()
        assert report["project_health"]["arr_at_risk"] == 200000
        assert report["capacity_analysis"]["expected_hours"] == 40


class TestRiskReport:
    def test_categories(self):
        report = _assembler().risk_report()
        categories = {p["project_name"]: p["risk_category"] for p in report["projects"]}
        assert categories == {"Apollo": "High Risk", "Gemini": "Medium Risk", "Mercury": "Overdue"}
        assert report["total_arr_at_risk"] == 150000


class TestCapacityAndTimeSummary:
    def test_capacity_requires_both_dates(self):
        with pytest.raises(ValidationError):
            _assembler().capacity_report(date(2026, 6, 1), None)

    def test_capacity_report(self):
        report = _assembler().capacity_report(date(2026, 6, 8), date(2026, 6, 14))
        assert report["team_summary"]["available_hours"] == 72
        assert report["team_summary"]["avg_hours_per_user"] == 20
        assert len(report["user_details"]) == 2

    def test_time_summary_by_user(self):
        summary = _assembler().time_summary(date(2026, 6, 8), date(2026, 6, 14))
        assert summary["group_by"] == "user"
        assert summary["data"][0] == {
            "name": "Ada Lovelace", "user_id": 1,
            "total_hours": 40.0, "pto_hours": 0.0, "days_worked": 5,
        }

    def test_time_summary_by_project_has_zero_hours(self):
        summary = _assembler().time_summary(date(2026, 6, 8), date(2026, 6, 14), "project")
        assert [row["name"] for row in summary["data"]] == ["Apollo", "Gemini", "Mercury"]
        assert all(row["total_hours"] == 0 for row in summary["data"])

    def test_time_summary_rejects_unknown_group(self):
        with pytest.raises(ValidationError):
            _assembler().time_summary(date(2026, 6, 8), date(2026, 6, 14), "team")


class TestTypedFailures:
    def test_store_failure_becomes_input_unavailable(self):
        repo = FakeRepository()

        def broken():
            raise OperationalError("SELECT 1", {}, Exception("db down"))

        repo.list_active_projects = broken
        with pytest.raises(ReportInputUnavailableError) as exc_info:
            _assembler(repo).executive_report()
        assert exc_info.value.report == "executive"
        assert isinstance(exc_info.value.__cause__, OperationalError)

    def test_none_result_becomes_input_unavailable(self):
        repo = FakeRepository()
        repo.list_all_projects_for_risk = lambda: None
        with pytest.raises(ReportInputUnavailableError):
            _assembler(repo).risk_report()

    def test_bad_record_becomes_aggregation_fault(self):
        repo = FakeRepository(projects=[object()])
        with pytest.raises(AggregationFaultError) as exc_info:
            _assembler(repo).executive_report()
        assert isinstance(exc_info.value, ReportComputationError)


class TestAiReport:
    def test_narrative_attached(self):
        generator = FakeGenerator()
        result = _assembler(generator=generator).ai_report()
        assert result["report"].startswith("## Summary")
        assert result["data"]["project_health"]["total_projects"] == 3
        assert result["generated_at"] == result["data"]["generated_at"]
        assert generator.reports == [result["data"]]

    def test_without_generator(self):
        with pytest.raises(NarrativeGenerationError):
            _assembler().ai_report()

    def test_provider_failure_is_wrapped(self):
        class Exploding(LocalStubProvider):
            def chat(self, messages, model="local-stub", **kwargs):
                raise ConnectionError("timeout")

        generator = NarrativeGenerator(Exploding(), model="local-stub")
        with pytest.raises(NarrativeGenerationError) as exc_info:
            _assembler(generator=generator).ai_report()
        assert exc_info.value.report == "ai"

    def test_local_stub_mentions_portfolio(self):
        generator = NarrativeGenerator(LocalStubProvider(), model="local-stub")
        result = _assembler(generator=generator).ai_report()
        assert "3 active projects" in result["report"]


def test_factory_reads_config():
    assembler = create_report_assembler(
        {"REPORT_WEEKLY_CAPACITY_HOURS": 32, "REPORT_YELLOW_RISK_WEIGHT": 0.25},
        repository=FakeRepository(),
    )
    assert assembler.weekly_hours == 32
    assert assembler.yellow_weight == 0.25
