"""Workbook builders for the export endpoints."""

from openpyxl import load_workbook

from portfolio_tracker.services.export_service import (
    HEALTH_FILLS,
    export_projects_xlsx,
    export_time_entries_xlsx,
)


def test_projects_workbook_layout():
    buf = export_projects_xlsx([
        {"id": 1, "project_name": "Apollo", "status": "active", "health": "yellow",
         "arr_value": 2500.0, "tier3_owner_ids": [4, 5], "is_closed": False},
        {"id": 2, "project_name": "Legacy", "status": "on_hold", "health": None},
    ])
    ws = load_workbook(buf).active

    assert ws["A4"].value == "ID"
    assert ws["B5"].value == "Apollo"
    assert ws["D5"].value == "YELLOW"
    assert ws["D5"].fill.start_color.rgb.endswith(HEALTH_FILLS["yellow"].start_color.rgb[-6:])
    assert ws["H5"].value == "No"
    assert ws["K5"].value == "4, 5"
    assert ws["D6"].value is None
    assert ws.freeze_panes == "A5"


def test_time_entries_totals_split_pto():
    buf = export_time_entries_xlsx([
        {"id": 1, "user_id": 1, "user_name": "Ada L", "entry_date": "2026-06-01", "hours": 8.0},
        {"id": 2, "user_id": 1, "user_name": "Ada L", "entry_date": "2026-06-02", "hours": -8.0},
        {"id": 3, "user_id": 2, "user_name": "Bob M", "entry_date": "2026-06-01", "hours": 6.5},
    ])
    ws = load_workbook(buf).active

    assert ws.title == "Time Entries"
    assert ws["E6"].value == -8.0
    assert ws["E6"].font.italic is True
    # Totals sit two rows below the last entry
    assert ws["D9"].value == "Worked hours"
    assert ws["E9"].value == 14.5
    assert ws["D10"].value == "PTO hours"
    assert ws["E10"].value == 8.0


def test_empty_exports_still_have_headers():
    ws = load_workbook(export_time_entries_xlsx([])).active
    assert ws["C4"].value == "User"
