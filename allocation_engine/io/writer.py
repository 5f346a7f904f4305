"""Export allocations as one row per student, and serialize rows to CSV."""

from __future__ import annotations

import csv
import io
from pathlib import Path
from typing import Any

from ..roster import Roster
from .schemas import EXPORT_COLS, UNASSIGNED

EXPORT_FILENAMES = {
    "complete": "allocations.csv",
    "supervisor": "supervisor_allocations.csv",
    "moderator": "moderator_allocations.csv",
}


def _holder_fields(roster: Roster, staff_id: str) -> tuple[str, str]:
    """(name, email) of the holder, or Unassigned for empty/unknown ids."""
    member = roster.staff_member(staff_id) if staff_id else None
    if member is None:
        return UNASSIGNED, UNASSIGNED
    return member.full_name or UNASSIGNED, member.email or UNASSIGNED


def export_rows(roster: Roster, kind: str = "complete") -> list[dict[str, Any]]:
    """Rows for the complete, supervisor-only or moderator-only export."""
    if kind not in EXPORT_COLS:
        raise ValueError(f"Unknown export kind: {kind!r}. Choose from {tuple(EXPORT_COLS)}")
    cols = EXPORT_COLS[kind]
    rows = []
    for student in roster.students:
        sup_name, sup_email = _holder_fields(roster, student.supervisor)
        mod_name, mod_email = _holder_fields(roster, student.moderator)
        full = {
            "StudentID": student.student_id,
            "StudentName": student.full_name,
            "SupervisorName": sup_name,
            "SupervisorEmail": sup_email,
            "ModeratorName": mod_name,
            "ModeratorEmail": mod_email,
        }
        rows.append({c: full[c] for c in cols})
    return rows


def write_csv_text(rows: list[dict[str, Any]], columns: list[str] | None = None) -> str:
    """Serialize rows to CSV text with a header line."""
    if columns is None:
        columns = list(rows[0].keys()) if rows else []
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=columns, extrasaction="ignore", lineterminator="\n")
    writer.writeheader()
    writer.writerows(rows)
    return buf.getvalue()


def write_exports(roster: Roster, directory: Path) -> dict[str, Path]:
    """Write all three CSV exports into ``directory``. Returns name -> path."""
    d = Path(directory)
    d.mkdir(parents=True, exist_ok=True)
    paths: dict[str, Path] = {}
    for kind, filename in EXPORT_FILENAMES.items():
        path = d / filename
        path.write_text(write_csv_text(export_rows(roster, kind), EXPORT_COLS[kind]), encoding="utf-8")
        paths[filename] = path
    return paths
