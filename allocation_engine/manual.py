"""Manual allocation: operator picks the staff member, quota is not enforced."""

from __future__ import annotations

import logging

from .models import ROLES, StaffMember
from .report import AllocationReport

logger = logging.getLogger(__name__)

STRATEGY = "manual"


def allocate_manual(session, student_doc_id: str, staff_id: str, role: str) -> AllocationReport:
    """Assign (or clear, with an empty ``staff_id``) one role of one student."""
    roster = session.roster
    report = AllocationReport(strategy=STRATEGY)
    student = roster.student(student_doc_id)

    if role not in ROLES:
        report.failed(None, "unknown_role", student=student_doc_id, detail=str(role))
    elif student is None:
        report.failed(role, "student_not_found", student=student_doc_id)
    elif staff_id and roster.staff_member(staff_id) is None:
        report.failed(role, "staff_not_found", student=student.student_id, detail=staff_id)
    elif session.allocate(student_doc_id, staff_id, role):
        report.succeeded(role)
    else:
        report.failed(role, "persistence_failed", student=student.student_id)

    if report.failures:
        logger.warning("Manual allocation failed: %s", report.failures[-1])
    return report.close(roster)


def manual_candidates(session, student_doc_id: str, role: str) -> list[StaffMember]:
    """Staff offered to the operator: those with room, plus the current holder."""
    student = session.roster.student(student_doc_id)
    current = student.holder(role) if student is not None else ""
    return [
        m
        for m in session.roster.staff
        if session.tracker.has_capacity(m.doc_id, role) or m.doc_id == current
    ]
