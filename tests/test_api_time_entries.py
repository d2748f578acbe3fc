"""
API tests for time entries: upsert, atomic bulk update, week view and the
capacity report.
"""

from datetime import date

from portfolio_tracker.models.time_entry import TimeEntry
from portfolio_tracker.utils.helpers import db_commit_or_error


class TestUpsert:
    def test_create_then_overwrite(self, client, make_user):
        user = make_user()
        payload = {"user_id": user.id, "entry_date": "2026-06-01", "hours": 6}
        assert client.post("/api/v1/time-entries", json=payload).status_code == 201
        payload["hours"] = 7.5
        res = client.post("/api/v1/time-entries", json=payload)
        assert res.status_code == 201
        assert res.get_json()["hours"] == 7.5
        assert TimeEntry.query.count() == 1

    def test_pto_is_negative_hours(self, client, make_user):
        user = make_user()
        res = client.post("/api/v1/time-entries",
                          json={"user_id": user.id, "entry_date": "2026-06-01", "hours": -8})
        assert res.status_code == 201
        assert res.get_json()["hours"] == -8

    def test_missing_fields(self, client):
        res = client.post("/api/v1/time-entries", json={"entry_date": "2026-06-01"})
        assert res.status_code == 400

    def test_out_of_range_hours(self, client, make_user):
        user = make_user()
        res = client.post("/api/v1/time-entries",
                          json={"user_id": user.id, "entry_date": "2026-06-01", "hours": 25})
        assert res.status_code == 422

    def test_unknown_user(self, client):
        res = client.post("/api/v1/time-entries",
                          json={"user_id": 999, "entry_date": "2026-06-01", "hours": 8})
        assert res.status_code == 422


class TestBulkUpdate:
    def test_all_entries_saved(self, client, make_user):
        user = make_user()
        res = client.post("/api/v1/time-entries/bulk-update", json={"entries": [
            {"user_id": user.id, "entry_date": "2026-06-01", "hours": 8},
            {"user_id": user.id, "entry_date": "2026-06-02", "hours": 4},
        ]})
        assert res.status_code == 200
        assert len(res.get_json()["entries"]) == 2
        assert TimeEntry.query.count() == 2

    def test_invalid_entry_rolls_back_whole_batch(self, client, make_user, make_entry):
        user = make_user()
        make_entry(user, "2026-06-01", 5)

        res = client.post("/api/v1/time-entries/bulk-update", json={"entries": [
            {"user_id": user.id, "entry_date": "2026-06-01", "hours": 8},
            {"user_id": user.id, "entry_date": "2026-06-02", "hours": 8},
            {"user_id": user.id, "entry_date": "2026-06-03"},
        ]})
        assert res.status_code == 422
        assert res.get_json()["details"]["index"] == 2

        entries = TimeEntry.query.order_by(TimeEntry.entry_date).all()
        assert [(e.entry_date, float(e.hours)) for e in entries] == [(date(2026, 6, 1), 5.0)]

    def test_empty_batch(self, client):
        res = client.post("/api/v1/time-entries/bulk-update", json={"entries": []})
        assert res.status_code == 400


class TestQueries:
    def test_week_view(self, client, make_user, make_entry):
        user = make_user()
        make_entry(user, "2026-06-01", 8)
        make_entry(user, "2026-06-03", -8)
        make_entry(user, "2026-06-08", 8)
        res = client.get(f"/api/v1/time-entries/week-view/{user.id}?week_start=2026-06-01")
        assert res.status_code == 200
        data = res.get_json()
        assert data["week_end"] == "2026-06-07"
        assert data["week_data"] == {"2026-06-01": 8.0, "2026-06-03": -8.0}
        assert data["week_total"] == 0.0

    def test_week_view_requires_start(self, client, make_user):
        user = make_user()
        res = client.get(f"/api/v1/time-entries/week-view/{user.id}")
        assert res.status_code == 400

    def test_list_filters(self, client, make_user, make_entry):
        ada = make_user("Ada", "L")
        bob = make_user("Bob", "M")
        make_entry(ada, "2026-06-01", 8)
        make_entry(bob, "2026-06-01", 6)
        make_entry(ada, "2026-06-10", 4)
        res = client.get(f"/api/v1/time-entries?user_id={ada.id}&end_date=2026-06-05")
        rows = res.get_json()
        assert len(rows) == 1
        assert rows[0]["user_name"] == "Ada L"

    def test_update_and_delete(self, client, make_user, make_entry):
        entry = make_entry(make_user(), "2026-06-01", 8)
        res = client.put(f"/api/v1/time-entries/{entry.id}", json={"description": "Workshop"})
        assert res.get_json()["hours"] == 8.0
        assert res.get_json()["description"] == "Workshop"
        assert client.delete(f"/api/v1/time-entries/{entry.id}").status_code == 200
        assert client.get(f"/api/v1/time-entries/{entry.id}").status_code == 404


class TestCapacityReport:
    def test_pto_adjusted(self, client, make_user, make_entry):
        a = make_user("A", "Worker", tier=1)
        b = make_user("B", "Away", tier=1)
        for day in range(1, 6):
            make_entry(a, f"2026-06-0{day}", 8)
        make_entry(b, "2026-06-02", -8)
        make_user("C", "Idle", tier=3)

        res = client.get("/api/v1/time-entries/reports/capacity?start_date=2026-06-01&end_date=2026-06-07")
        assert res.status_code == 200
        data = res.get_json()
        assert data["team_summary"]["utilization_percentage"] == 55.6
        assert data["team_summary"]["total_users"] == 3
        assert data["team_summary"]["active_users"] == 2
        assert data["tier_breakdown"]["tier3"]["utilization_percentage"] == 0
        worker = next(u for u in data["user_details"] if u["user_name"] == "A Worker")
        assert worker["days_worked"] == 5

    def test_dates_required(self, client):
        res = client.get("/api/v1/time-entries/reports/capacity?start_date=2026-06-01")
        assert res.status_code == 400


class TestCommitHelper:
    def test_constraint_violation_rolls_back_with_409(self, app, session, make_user):
        user = make_user()
        session.add(TimeEntry(user_id=user.id, entry_date=date(2026, 6, 1), hours=4))
        session.add(TimeEntry(user_id=user.id, entry_date=date(2026, 6, 1), hours=5))
        with app.test_request_context():
            resp, status = db_commit_or_error()
        assert status == 409
        assert resp.get_json()["code"] == "ERR_CONFLICT_CONSTRAINT"
        assert TimeEntry.query.count() == 0
