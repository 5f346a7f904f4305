"""Course grouping, interest matching and candidate ranking helpers."""

from __future__ import annotations

import re
from collections.abc import Iterable

from .capacity import CapacityTracker
from .models import StaffMember, Student

UNKNOWN_COURSE = "Unknown"

_DEPARTMENT_RE = re.compile(r"^[A-Z]+")
_DIGIT_RE = re.compile(r"\d")


def department_tag(course_code: str | None) -> str:
    """Leading capital letters of a course code: ``"COMP4001" -> "COMP"``."""
    m = _DEPARTMENT_RE.match(course_code or "")
    return m.group(0) if m else ""


def course_level(course_code: str | None) -> int:
    """First digit in the course code, 0 when there is none."""
    m = _DIGIT_RE.search(course_code or "")
    return int(m.group(0)) if m else 0


def group_by_course(students: Iterable[Student]) -> list[tuple[str, list[Student]]]:
    """Group students by course code, highest course level first.

    Groups with the same level keep the order in which they were first seen.
    """
    grouped: dict[str, list[Student]] = {}
    for student in students:
        grouped.setdefault(student.course_code or UNKNOWN_COURSE, []).append(student)
    return sorted(grouped.items(), key=lambda kv: -course_level(kv[0]))


def topic_matches(topic: str | None, interests: Iterable[str]) -> bool:
    """True when the topic contains an interest tag or a tag contains the topic."""
    topic_norm = str(topic or "").lower().strip()
    if not topic_norm:
        return False
    for interest in interests:
        tag = str(interest or "").lower().strip()
        if not tag:
            continue
        if tag in topic_norm or topic_norm in tag:
            return True
    return False


def interest_covers(interests: Iterable[str], department: str) -> bool:
    dept = department.lower()
    if not dept:
        return False
    return any(dept in str(interest).lower() for interest in interests)


def rank_by_headroom(candidates: Iterable[StaffMember], tracker: CapacityTracker, role: str) -> list[StaffMember]:
    """Most remaining capacity (as a fraction of quota) first; ties keep roster order."""
    return sorted(candidates, key=lambda m: -tracker.remaining_fraction(m.doc_id, role))


def rank_by_load(candidates: Iterable[StaffMember], tracker: CapacityTracker) -> list[StaffMember]:
    """Fewest total allocations first; ties keep roster order."""
    return sorted(candidates, key=lambda m: tracker.total_for(m.doc_id))
