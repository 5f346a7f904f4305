"""In-memory view of students, staff, quotas and interests for one run."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from .io.schemas import (
    QUOTA_KEYS,
    STAFF,
    STAFF_INTERESTS,
    STAFF_QUOTAS,
    STUDENTS,
    comma_split,
    to_int_or_none,
    to_str,
)
from .models import StaffMember, Student
from .store import DocumentStore

logger = logging.getLogger(__name__)

DEFAULT_QUOTA = 5
DEFAULT_ID_PREFIX = "UP"


@dataclass(frozen=True)
class EngineSettings:
    default_quota: int = DEFAULT_QUOTA
    student_id_prefix: str = DEFAULT_ID_PREFIX
    batch_limit: int = 500


@dataclass
class Roster:
    students: list[Student]
    staff: list[StaffMember]
    quota_records: dict[str, int] = field(default_factory=dict)
    interests: dict[str, list[str]] = field(default_factory=dict)
    project_ideas: dict[str, list[str]] = field(default_factory=dict)
    default_quota: int = DEFAULT_QUOTA

    def __post_init__(self) -> None:
        self._student_by_doc = {s.doc_id: s for s in self.students}
        self._staff_by_id = {m.doc_id: m for m in self.staff}

    def student(self, doc_id: str) -> Student | None:
        return self._student_by_doc.get(doc_id)

    def students_with_id(self, *student_ids: str) -> list[Student]:
        wanted = {sid for sid in student_ids if sid}
        return [s for s in self.students if s.student_id in wanted]

    def staff_member(self, staff_id: str) -> StaffMember | None:
        return self._staff_by_id.get(staff_id)

    def staff_by_name(self, name: str) -> StaffMember | None:
        """First staff member whose full name equals ``name`` exactly."""
        if not name:
            return None
        for member in self.staff:
            if member.full_name == name:
                return member
        return None

    def staff_name(self, staff_id: str) -> str:
        member = self.staff_member(staff_id)
        return member.full_name if member else ""

    def quota_of(self, staff_id: str) -> int:
        """Resolved capacity per role.

        The staffQuotas record wins; the staff document's own Quota is only a
        seed used when no record exists and it is positive.
        """
        if staff_id in self.quota_records:
            return self.quota_records[staff_id]
        member = self.staff_member(staff_id)
        if member is not None and member.quota > 0:
            return member.quota
        return self.default_quota

    def interests_of(self, staff_id: str) -> list[str]:
        return self.interests.get(staff_id, [])

    def missing(self, role: str) -> list[Student]:
        return [s for s in self.students if not s.holder(role)]


def _quota_records(docs: list[dict[str, Any]]) -> dict[str, int]:
    out: dict[str, int] = {}
    for doc in docs:
        staff_id = next((to_str(doc.get(k)) for k in QUOTA_KEYS if to_str(doc.get(k))), to_str(doc.get("id")))
        quota = to_int_or_none(doc.get("Quota"))
        if not staff_id or quota is None:
            logger.warning("Ignoring malformed quota record: %s", doc.get("id"))
            continue
        out[staff_id] = quota
    return out


def _interest_records(docs: list[dict[str, Any]], key: str) -> dict[str, list[str]]:
    out: dict[str, list[str]] = {}
    for doc in docs:
        staff_id = to_str(doc.get("StaffID")) or to_str(doc.get("id"))
        if staff_id:
            out[staff_id] = comma_split(doc.get(key))
    return out


def load_roster(store: DocumentStore, settings: EngineSettings | None = None) -> Roster:
    """Read all four collections once at the start of a run."""
    settings = settings or EngineSettings()
    students = [Student.from_document(d["id"], d) for d in store.list_all(STUDENTS)]
    staff = [StaffMember.from_document(d["id"], d) for d in store.list_all(STAFF)]
    interest_docs = store.list_all(STAFF_INTERESTS)
    roster = Roster(
        students=students,
        staff=staff,
        quota_records=_quota_records(store.list_all(STAFF_QUOTAS)),
        interests=_interest_records(interest_docs, "Interests"),
        project_ideas=_interest_records(interest_docs, "ProjectIdeas"),
        default_quota=settings.default_quota,
    )
    logger.info(
        "Loaded roster: %d students, %d staff, %d quota records, %d interest records",
        len(students),
        len(staff),
        len(roster.quota_records),
        len(roster.interests),
    )
    return roster
