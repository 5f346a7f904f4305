"""Student-choice import: ranked supervisor preferences, first come first served."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from .errors import ImportSyntaxError
from .io.reader import infer_day_first, parse_csv_text, parse_timestamp
from .io.schemas import (
    CHOICE_FIRST,
    CHOICE_SECOND,
    CHOICE_STUDENT_ID,
    CHOICE_THIRD,
    CHOICE_TIMESTAMP,
    CHOICE_TOPIC,
    STUDENT_CHOICE_COLS,
    to_str,
)
from .matching import rank_by_load, topic_matches
from .models import SUPERVISOR, StaffMember
from .report import AllocationReport

logger = logging.getLogger(__name__)

STRATEGY = "student_choice"
CHOICE_COLS = (CHOICE_FIRST, CHOICE_SECOND, CHOICE_THIRD)


def order_by_submission(records: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Stable sort by timestamp; rows without a parseable time go last in file order.

    Slash dates are read day-first or month-first for the whole file at once.
    """
    if not records or CHOICE_TIMESTAMP not in records[0]:
        return list(records)
    day_first = infer_day_first(row.get(CHOICE_TIMESTAMP) for row in records)

    def key(row: dict[str, Any]) -> tuple[int, datetime]:
        ts = parse_timestamp(row.get(CHOICE_TIMESTAMP), day_first=day_first)
        return (0, ts) if ts is not None else (1, datetime.min)

    return sorted(records, key=key)


def topic_candidates(session, topic: str) -> list[StaffMember]:
    """Staff with a matching interest and supervisor capacity, least loaded first."""
    roster = session.roster
    tracker = session.tracker
    matching = [
        member
        for member in roster.staff
        if topic_matches(topic, roster.interests_of(member.doc_id))
        and tracker.has_capacity(member.doc_id, SUPERVISOR)
    ]
    return rank_by_load(matching, tracker)


def _try_choices(session, student, row: dict[str, Any]) -> bool:
    roster = session.roster
    for col in CHOICE_COLS:
        choice = to_str(row.get(col))
        if not choice:
            continue
        member = roster.staff_by_name(choice)
        if member is None:
            logger.warning("Staff member not found: %s", choice)
            continue
        if not session.tracker.has_capacity(member.doc_id, SUPERVISOR):
            logger.info("Staff %s has reached capacity", choice)
            continue
        if session.allocate(student.doc_id, member.doc_id, SUPERVISOR):
            return True
    return False


def run_student_choice(session, records: list[dict[str, Any]]) -> AllocationReport:
    roster = session.roster
    report = AllocationReport(strategy=STRATEGY)

    for index, row in enumerate(order_by_submission(records), start=1):
        student_id = to_str(row.get(CHOICE_STUDENT_ID))
        matches = roster.students_with_id(student_id)
        if not matches:
            logger.warning("Student not found: %s", student_id)
            report.failed(SUPERVISOR, "student_not_found", row=index, student=student_id)
            continue
        student = matches[0]

        if student.supervisor:
            logger.info("Student %s already has supervisor %s, skipping", student_id, student.supervisor)
            report.skip()
            continue

        allocated = _try_choices(session, student, row)

        topic = to_str(row.get(CHOICE_TOPIC))
        if not allocated and topic:
            candidates = topic_candidates(session, topic)
            if candidates:
                allocated = session.allocate(student.doc_id, candidates[0].doc_id, SUPERVISOR)

        if allocated:
            report.succeeded(SUPERVISOR)
        else:
            report.failed(SUPERVISOR, "no_choice_available", row=index, student=student_id)

    report.close(roster)
    logger.info(report.message())
    return report


def student_choice_from_text(session, text: str | bytes) -> AllocationReport:
    try:
        records = parse_csv_text(text, required=STUDENT_CHOICE_COLS)
    except ImportSyntaxError as exc:
        logger.error("Error parsing student choice CSV: %s", exc)
        return AllocationReport(strategy=STRATEGY, error=str(exc)).close(session.roster)
    return run_student_choice(session, records)
