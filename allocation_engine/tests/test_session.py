"""Tests for AllocationSession.allocate and the manual strategy."""

import pytest

from allocation_engine.io.schemas import STUDENTS
from allocation_engine.manual import allocate_manual, manual_candidates
from allocation_engine.models import MODERATOR, SUPERVISOR


@pytest.fixture
def store(make_store, student, staff):
    return make_store(
        students={
            "d1": student("UP1", supervisor="s1"),
            "d2": student("UP2"),
        },
        staff={"s1": staff("Alice Smith"), "s2": staff("Bob Jones"), "s3": staff("Carol White")},
        quotas={"s1": 1, "s2": 2, "s3": 2},
    )


class TestAllocate:
    def test_persists_and_counts(self, store, open_session):
        session = open_session(store)
        assert session.allocate("d2", "s2", SUPERVISOR) is True
        assert store.collections[STUDENTS]["d2"]["Supervisor"] == "s2"
        assert session.roster.student("d2").supervisor == "s2"
        assert session.tracker.count_for("s2", SUPERVISOR) == 1

    def test_reassign_releases_previous_holder(self, store, open_session):
        session = open_session(store)
        assert session.allocate("d1", "s2", SUPERVISOR) is True
        assert session.tracker.count_for("s1", SUPERVISOR) == 0
        assert session.tracker.count_for("s2", SUPERVISOR) == 1

    def test_same_holder_leaves_counts_unchanged(self, store, open_session):
        session = open_session(store)
        assert session.allocate("d1", "s1", SUPERVISOR) is True
        assert session.tracker.count_for("s1", SUPERVISOR) == 1

    def test_clear_role(self, store, open_session):
        session = open_session(store)
        assert session.allocate("d1", "", SUPERVISOR) is True
        assert store.collections[STUDENTS]["d1"]["Supervisor"] == ""
        assert session.tracker.count_for("s1", SUPERVISOR) == 0

    def test_no_capacity_check(self, store, open_session):
        session = open_session(store)
        assert session.allocate("d2", "s1", SUPERVISOR) is True
        assert session.tracker.count_for("s1", SUPERVISOR) == 2

    def test_write_failure_returns_false(self, store, open_session):
        session = open_session(store)
        store.fail_on.add((STUDENTS, "d2"))
        assert session.allocate("d2", "s2", SUPERVISOR) is False
        assert session.roster.student("d2").supervisor == ""
        assert session.tracker.count_for("s2", SUPERVISOR) == 0

    def test_unknown_role_and_student(self, store, open_session):
        session = open_session(store)
        assert session.allocate("d2", "s2", "examiner") is False
        assert session.allocate("nope", "s2", SUPERVISOR) is False


class TestManual:
    def test_success(self, store, open_session):
        report = allocate_manual(open_session(store), "d2", "s3", MODERATOR)
        assert report.success == 1
        assert report.by_role[MODERATOR]["success"] == 1
        assert store.collections[STUDENTS]["d2"]["Moderator"] == "s3"

    def test_ignores_quota(self, store, open_session):
        report = allocate_manual(open_session(store), "d2", "s1", SUPERVISOR)
        assert report.success == 1
        assert report.residual_supervisor == 0

    @pytest.mark.parametrize(
        "doc_id,staff_id,role,reason",
        [
            ("d2", "s2", "examiner", "unknown_role"),
            ("missing", "s2", SUPERVISOR, "student_not_found"),
            ("d2", "ghost", SUPERVISOR, "staff_not_found"),
        ],
    )
    def test_failures(self, store, open_session, doc_id, staff_id, role, reason):
        report = allocate_manual(open_session(store), doc_id, staff_id, role)
        assert report.success == 0
        assert report.failure == 1
        assert report.failures[0]["reason"] == reason

    def test_persistence_failure(self, store, open_session):
        store.fail_on.add((STUDENTS, "*"))
        report = allocate_manual(open_session(store), "d2", "s2", SUPERVISOR)
        assert report.failure_reasons() == {"persistence_failed": 1}

    def test_candidates_include_current_holder(self, store, open_session):
        session = open_session(store)
        ids = [m.doc_id for m in manual_candidates(session, "d1", SUPERVISOR)]
        assert ids == ["s1", "s2", "s3"]
        ids = [m.doc_id for m in manual_candidates(session, "d2", SUPERVISOR)]
        assert ids == ["s2", "s3"]
