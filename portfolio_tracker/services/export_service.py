"""Excel exports for projects and time entries.

Rows come from ``SqlReportRepository.export_*`` as plain dicts; the workbook
is built in memory and returned as a BytesIO buffer ready for a Response.
"""

import io
import logging
from datetime import datetime, timezone

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

logger = logging.getLogger(__name__)

HEALTH_FILLS = {
    "green": PatternFill(start_color="27AE60", end_color="27AE60", fill_type="solid"),
    "yellow": PatternFill(start_color="F39C12", end_color="F39C12", fill_type="solid"),
    "red": PatternFill(start_color="E74C3C", end_color="E74C3C", fill_type="solid"),
}
WHITE_FONT = Font(color="FFFFFF", bold=True)
HEADER_FILL = PatternFill(start_color="354A5F", end_color="354A5F", fill_type="solid")
HEADER_FONT = Font(color="FFFFFF", bold=True, size=11)
PTO_FONT = Font(color="C0392B", italic=True)
THIN_BORDER = Border(
    left=Side(style="thin"),
    right=Side(style="thin"),
    top=Side(style="thin"),
    bottom=Side(style="thin"),
)

PROJECT_COLUMNS = [
    ("ID", "id"),
    ("Project", "project_name"),
    ("Status", "status"),
    ("Health", "health"),
    ("ARR", "arr_value"),
    ("Start Date", "start_date"),
    ("Close Date", "close_date"),
    ("Closed", "is_closed"),
    ("Tier 1 Owner", "tier_1_name"),
    ("Tier 2 Owner", "tier_2_name"),
    ("Tier 3 Owner IDs", "tier3_owner_ids"),
    ("Latest Note", "latest_note"),
    ("Risk", "risk_description"),
    ("Ask", "ask_description"),
    ("Impact", "impact_description"),
    ("Updated", "updated_at"),
]

TIME_ENTRY_COLUMNS = [
    ("ID", "id"),
    ("User ID", "user_id"),
    ("User", "user_name"),
    ("Date", "entry_date"),
    ("Hours", "hours"),
    ("Description", "description"),
]


def _apply_header_style(ws, row: int, col_count: int) -> None:
    """Apply dark-header styling to an Excel row (1-indexed)."""
    for col in range(1, col_count + 1):
        cell = ws.cell(row=row, column=col)
        cell.fill = HEADER_FILL
        cell.font = HEADER_FONT
        cell.border = THIN_BORDER
        cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)


def _auto_width(ws) -> None:
    """Auto-size column widths based on content (capped at 60 chars)."""
    for col in ws.columns:
        max_len = 0
        col_letter = get_column_letter(col[0].column)
        for cell in col:
            if cell.value:
                max_len = max(max_len, min(len(str(cell.value)), 60))
        ws.column_dimensions[col_letter].width = max(max_len + 4, 12)


def _cell_value(value):
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    if isinstance(value, bool):
        return "Yes" if value else "No"
    return value


def _write_title(ws, title: str, span: int) -> None:
    ws.merge_cells(start_row=1, start_column=1, end_row=1, end_column=span)
    ws["A1"] = title
    ws["A1"].font = Font(size=16, bold=True)
    ws["A2"] = f"Generated: {datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M UTC')}"
    ws["A2"].font = Font(size=10, italic=True, color="666666")


def _save(wb) -> io.BytesIO:
    buf = io.BytesIO()
    wb.save(buf)
    buf.seek(0)
    return buf


def export_projects_xlsx(projects: list[dict]) -> io.BytesIO:
    """Project portfolio workbook with health-coloured status cells."""
    wb = Workbook()
    ws = wb.active
    ws.title = "Projects"
    _write_title(ws, "Project Portfolio", len(PROJECT_COLUMNS))

    header_row = 4
    for col, (label, _) in enumerate(PROJECT_COLUMNS, 1):
        ws.cell(row=header_row, column=col, value=label)
    _apply_header_style(ws, header_row, len(PROJECT_COLUMNS))

    health_col = [key for _, key in PROJECT_COLUMNS].index("health") + 1
    for row, project in enumerate(projects, header_row + 1):
        for col, (_, key) in enumerate(PROJECT_COLUMNS, 1):
            ws.cell(row=row, column=col, value=_cell_value(project.get(key))).border = THIN_BORDER
        health_cell = ws.cell(row=row, column=health_col)
        fill = HEALTH_FILLS.get(project.get("health") or "")
        if fill is not None:
            health_cell.value = project["health"].upper()
            health_cell.fill = fill
            health_cell.font = WHITE_FONT
            health_cell.alignment = Alignment(horizontal="center")

    ws.freeze_panes = ws.cell(row=header_row + 1, column=1)
    _auto_width(ws)
    logger.info("Projects workbook built: %d rows", len(projects))
    return _save(wb)


def export_time_entries_xlsx(entries: list[dict]) -> io.BytesIO:
    """Time-entry workbook; PTO (negative hours) rows are highlighted."""
    wb = Workbook()
    ws = wb.active
    ws.title = "Time Entries"
    _write_title(ws, "Time Entries", len(TIME_ENTRY_COLUMNS))

    header_row = 4
    for col, (label, _) in enumerate(TIME_ENTRY_COLUMNS, 1):
        ws.cell(row=header_row, column=col, value=label)
    _apply_header_style(ws, header_row, len(TIME_ENTRY_COLUMNS))

    row = header_row
    for entry in entries:
        row += 1
        for col, (_, key) in enumerate(TIME_ENTRY_COLUMNS, 1):
            cell = ws.cell(row=row, column=col, value=_cell_value(entry.get(key)))
            cell.border = THIN_BORDER
            if (entry.get("hours") or 0) < 0:
                cell.font = PTO_FONT

    # Totals
    worked = sum(e["hours"] for e in entries if (e.get("hours") or 0) > 0)
    pto = sum(-e["hours"] for e in entries if (e.get("hours") or 0) < 0)
    row += 2
    ws.cell(row=row, column=4, value="Worked hours").font = Font(bold=True)
    ws.cell(row=row, column=5, value=round(worked, 2))
    ws.cell(row=row + 1, column=4, value="PTO hours").font = Font(bold=True)
    ws.cell(row=row + 1, column=5, value=round(pto, 2))

    ws.freeze_panes = ws.cell(row=header_row + 1, column=1)
    _auto_width(ws)
    logger.info("Time-entry workbook built: %d rows", len(entries))
    return _save(wb)
