"""Allocation session: one store handle, one roster, one tracker per run."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .capacity import CapacityTracker
from .errors import PersistenceError
from .io.schemas import STUDENTS
from .models import ROLES, role_field
from .roster import EngineSettings, Roster, load_roster
from .store import DocumentStore

logger = logging.getLogger(__name__)


@dataclass
class AllocationSession:
    store: DocumentStore
    roster: Roster
    settings: EngineSettings = field(default_factory=EngineSettings)
    tracker: CapacityTracker = field(init=False)

    def __post_init__(self) -> None:
        self.tracker = CapacityTracker(self.roster)

    @classmethod
    def open(cls, store: DocumentStore, settings: EngineSettings | None = None) -> "AllocationSession":
        settings = settings or EngineSettings()
        return cls(store=store, roster=load_roster(store, settings), settings=settings)

    def allocate(self, student_doc_id: str, staff_id: str, role: str) -> bool:
        """Persist ``role`` of the student as ``staff_id`` ("" clears it).

        No capacity check happens here. Returns False instead of raising.
        """
        if role not in ROLES:
            logger.warning("Unknown role %r for student %s", role, student_doc_id)
            return False
        student = self.roster.student(student_doc_id)
        if student is None:
            logger.warning("Student document not found: %s", student_doc_id)
            return False

        staff_id = staff_id or ""
        try:
            self.store.set_fields(STUDENTS, student_doc_id, {role_field(role): staff_id})
        except PersistenceError:
            logger.exception("Error allocating %s %s to student %s", role, staff_id, student.student_id)
            return False
        except Exception:
            logger.exception("Unexpected store error allocating %s to student %s", role, student.student_id)
            return False

        previous = student.holder(role)
        student.set_holder(role, staff_id)
        if previous != staff_id:
            if previous:
                self.tracker.release_allocation(previous, role)
            if staff_id:
                self.tracker.record_allocation(staff_id, role)
        return True
