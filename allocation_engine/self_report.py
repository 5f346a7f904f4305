"""Staff self-report import: agreements signed by staff are applied as-is.

No capacity check happens here. A member of staff who agreed to take a
student keeps that student even past quota.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from .errors import AllocationError, ImportSyntaxError, LookupFailure, ValidationFailure
from .io.reader import parse_csv_text
from .io.schemas import (
    SELF_REPORT_AFFIRMATIVE,
    SELF_REPORT_AGREE,
    SELF_REPORT_COLS,
    SELF_REPORT_ROLE,
    SELF_REPORT_STAFF_NAME,
    SELF_REPORT_STUDENT_ID,
    to_str,
)
from .models import StaffMember, Student, normalize_role
from .report import AllocationReport
from .roster import Roster

logger = logging.getLogger(__name__)

STRATEGY = "self_report"


def strip_prefix(student_id: str, prefix: str) -> str:
    if not prefix:
        return student_id
    return re.sub(rf"^{re.escape(prefix)}", "", student_id, flags=re.IGNORECASE)


def resolve_student(roster: Roster, raw_id: str, prefix: str) -> Student:
    """Match a suffix-form id against ``id`` or ``prefix + id`` in the roster."""
    if not raw_id:
        raise ValidationFailure("Student ID is missing", reason="missing_student_id")
    suffix = strip_prefix(raw_id, prefix)
    matches = roster.students_with_id(suffix, f"{prefix}{suffix}")
    if not matches:
        raise LookupFailure(f"Student not found: {suffix}", reason="student_not_found")
    if len(matches) > 1:
        raise LookupFailure(f"Student id matches {len(matches)} records: {suffix}", reason="ambiguous_student")
    return matches[0]


def resolve_staff(roster: Roster, name: str) -> StaffMember:
    member = roster.staff_by_name(name)
    if member is None:
        raise LookupFailure(f"Staff member not found: {name}", reason="staff_not_found")
    return member


def run_self_report(session, records: list[dict[str, Any]]) -> AllocationReport:
    roster = session.roster
    prefix = session.settings.student_id_prefix
    report = AllocationReport(strategy=STRATEGY)

    for index, row in enumerate(records, start=1):
        if row.get(SELF_REPORT_AGREE) != SELF_REPORT_AFFIRMATIVE:
            logger.info("Skipping row %d without agreement", index)
            report.skip()
            continue

        role = normalize_role(row.get(SELF_REPORT_ROLE))
        raw_id = to_str(row.get(SELF_REPORT_STUDENT_ID))
        try:
            if role is None:
                raise ValidationFailure(f"Unknown role: {row.get(SELF_REPORT_ROLE)!r}", reason="unknown_role")
            student = resolve_student(roster, raw_id, prefix)
            staff = resolve_staff(roster, to_str(row.get(SELF_REPORT_STAFF_NAME)))
        except AllocationError as exc:
            logger.warning("Row %d: %s", index, exc)
            report.failed(role, exc.reason, row=index, student=raw_id, detail=str(exc))
            continue

        if session.allocate(student.doc_id, staff.doc_id, role):
            report.succeeded(role)
        else:
            report.failed(role, "persistence_failed", row=index, student=student.student_id)

    report.close(roster)
    logger.info(report.message())
    return report


def self_report_from_text(session, text: str | bytes) -> AllocationReport:
    """Parse a self-report export and run it; unparseable input aborts the run."""
    try:
        records = parse_csv_text(text, required=SELF_REPORT_COLS)
    except ImportSyntaxError as exc:
        logger.error("Error parsing self-report CSV: %s", exc)
        return AllocationReport(strategy=STRATEGY, error=str(exc)).close(session.roster)
    return run_self_report(session, records)
