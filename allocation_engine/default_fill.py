"""Default fill: give every remaining student a supervisor and a moderator.

Students are served course by course, highest course level first. Candidates
are ranked by how much of their quota is still free, so load spreads across
staff instead of filling one person at a time. Coverage is best effort; when
capacity runs out the shortfall shows up as residual counts.
"""

from __future__ import annotations

import logging

from .errors import CapacityExhausted
from .matching import department_tag, group_by_course, interest_covers, rank_by_headroom
from .models import MODERATOR, SUPERVISOR, StaffMember, Student
from .report import AllocationReport

logger = logging.getLogger(__name__)

STRATEGY = "default_fill"
NOTHING_TO_DO = "All students already have supervisors and moderators!"


def _with_capacity(session, role: str) -> list[StaffMember]:
    tracker = session.tracker
    return [m for m in session.roster.staff if tracker.has_capacity(m.doc_id, role)]


def supervisor_candidates(session, student: Student) -> list[StaffMember]:
    """Interest match on the course's department first, anyone with room otherwise."""
    available = _with_capacity(session, SUPERVISOR)
    dept = department_tag(student.course_code)
    suitable = [m for m in available if interest_covers(session.roster.interests_of(m.doc_id), dept)]
    return rank_by_headroom(suitable or available, session.tracker, SUPERVISOR)


def moderator_candidates(session, student: Student) -> list[StaffMember]:
    """Anyone but the student's supervisor; the supervisor only as a last resort."""
    available = _with_capacity(session, MODERATOR)
    others = [m for m in available if m.doc_id != student.supervisor]
    return rank_by_headroom(others or available, session.tracker, MODERATOR)


def _choose(session, student: Student, role: str, pick) -> StaffMember:
    candidates = pick(session, student)
    if not candidates:
        raise CapacityExhausted(f"No available {role} with capacity for student: {student.student_id}")
    chosen = candidates[0]
    if not session.tracker.has_capacity(chosen.doc_id, role):
        raise CapacityExhausted(f"Staff {chosen.full_name} has reached quota limit")
    return chosen


def _fill(session, report: AllocationReport, students: list[Student], role: str, pick) -> None:
    for course, members in group_by_course(students):
        for student in members:
            if student.holder(role):
                continue
            try:
                chosen = _choose(session, student, role, pick)
            except CapacityExhausted as exc:
                logger.warning("%s in course: %s", exc, course)
                report.failed(role, exc.reason, student=student.student_id, detail=course)
                continue

            if session.allocate(student.doc_id, chosen.doc_id, role):
                report.succeeded(role)
            else:
                report.failed(role, "persistence_failed", student=student.student_id, detail=course)


def run_default_fill(session) -> AllocationReport:
    roster = session.roster
    report = AllocationReport(strategy=STRATEGY)

    without_supervisor = roster.missing(SUPERVISOR)
    without_moderator = roster.missing(MODERATOR)
    if not without_supervisor and not without_moderator:
        report.note = NOTHING_TO_DO
        logger.info(NOTHING_TO_DO)
        return report.close(roster)

    _fill(session, report, without_supervisor, SUPERVISOR, supervisor_candidates)
    _fill(session, report, without_moderator, MODERATOR, moderator_candidates)

    report.close(roster)
    logger.info(report.message())
    return report
