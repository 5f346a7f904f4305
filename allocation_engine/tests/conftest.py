"""Shared roster fixtures for engine tests."""

from __future__ import annotations

import pytest

from allocation_engine.io.schemas import STAFF, STAFF_INTERESTS, STAFF_QUOTAS, STUDENTS
from allocation_engine.roster import EngineSettings
from allocation_engine.session import AllocationSession
from allocation_engine.store import MemoryStore


def student_doc(student_id, course="COMP3001", supervisor="", moderator="", first="Sam", surname="Lee"):
    return {
        "studentID": student_id,
        "First name": first,
        "Surname": surname,
        "Course code": course,
        "Module code": "",
        "Notes": "",
        "Supervisor": supervisor,
        "Moderator": moderator,
    }


def staff_doc(name, email=None, quota=0):
    return {
        "Full Name": name,
        "Email": email or f"{name.split()[-1].lower()}@uni.ac.uk",
        "Quota": quota,
        "Avoid": [],
    }


@pytest.fixture
def make_store():
    """Factory: build a MemoryStore from ``{doc_id: fields}`` maps per collection."""

    def _make(students=None, staff=None, quotas=None, interests=None, batch_limit=500):
        return MemoryStore(
            {
                STUDENTS: dict(students or {}),
                STAFF: dict(staff or {}),
                STAFF_QUOTAS: {sid: {"StaffID": sid, "Quota": q} for sid, q in (quotas or {}).items()},
                STAFF_INTERESTS: {
                    sid: {"StaffID": sid, "Interests": tags, "ProjectIdeas": []}
                    for sid, tags in (interests or {}).items()
                },
            },
            batch_limit=batch_limit,
        )

    return _make


@pytest.fixture
def open_session():
    def _open(store, **settings):
        return AllocationSession.open(store, EngineSettings(**settings))

    return _open


@pytest.fixture
def student():
    return student_doc


@pytest.fixture
def staff():
    return staff_doc
