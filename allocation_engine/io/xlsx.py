"""Render allocations and staff quota usage to a multi-sheet XLSX workbook."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from ..report import allocation_status, quota_overview
from .schemas import EXPORT_COLS, QUOTA_OVERVIEW_COLS
from .writer import export_rows

_SHEETS = [
    ("Allocations", "complete"),
    ("Supervisors", "supervisor"),
    ("Moderators", "moderator"),
]

_QUOTA_HEADERS = {
    "staff_name": "Staff Name",
    "email": "Email",
    "quota": "Total Quota",
    "supervisor_allocations": "Supervisor Allocations",
    "remaining_supervisor": "Remaining Supervisor",
    "moderator_allocations": "Moderator Allocations",
    "remaining_moderator": "Remaining Moderator",
}


def _get_openpyxl():
    try:
        from openpyxl import Workbook
        from openpyxl.styles import Font, PatternFill
        return Workbook, Font, PatternFill
    except ImportError as exc:
        raise ImportError("openpyxl is required for XLSX export: pip install openpyxl") from exc


def _style_headers(worksheets):
    """Apply bold + blue fill to header row of each worksheet."""
    _, Font, PatternFill = _get_openpyxl()
    header_font = Font(bold=True)
    header_fill = PatternFill(start_color="D9E1F2", end_color="D9E1F2", fill_type="solid")
    for ws in worksheets:
        for cell in ws[1]:
            cell.font = header_font
            cell.fill = header_fill


def _write_rows(ws, headers: list[str], rows: list[dict[str, Any]], keys: list[str] | None = None) -> None:
    keys = keys or headers
    ws.append(headers)
    for row in rows:
        ws.append([row.get(k, "") for k in keys])
    for idx, header in enumerate(headers, start=1):
        width = max([len(str(header))] + [len(str(r.get(keys[idx - 1], ""))) for r in rows])
        ws.column_dimensions[ws.cell(row=1, column=idx).column_letter].width = min(width + 2, 60)


def render_allocations_xlsx(session, path: Path) -> Path:
    """Write Allocations / Supervisors / Moderators / Staff Quota / Summary sheets."""
    Workbook, _, _ = _get_openpyxl()
    wb = Workbook()
    sheets = []

    first = True
    for title, kind in _SHEETS:
        ws = wb.active if first else wb.create_sheet()
        first = False
        ws.title = title
        _write_rows(ws, EXPORT_COLS[kind], export_rows(session.roster, kind))
        sheets.append(ws)

    ws = wb.create_sheet("Staff Quota")
    _write_rows(
        ws,
        [_QUOTA_HEADERS[c] for c in QUOTA_OVERVIEW_COLS],
        quota_overview(session),
        keys=QUOTA_OVERVIEW_COLS,
    )
    sheets.append(ws)

    status = allocation_status(session.roster)
    ws = wb.create_sheet("Summary")
    ws.append(["Metric", "Value"])
    ws.append(["Students", status["students"]])
    ws.append(["With supervisor", status["with_supervisor"]])
    ws.append(["With moderator", status["with_moderator"]])
    ws.append(["Staff", status["staff"]])
    sheets.append(ws)

    _style_headers(sheets)
    for ws in sheets:
        ws.freeze_panes = "A2"

    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    wb.save(out)
    return out
