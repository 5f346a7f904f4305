"""Tests for the student-choice import."""

import pytest

from allocation_engine.io.schemas import (
    CHOICE_FIRST,
    CHOICE_SECOND,
    CHOICE_STUDENT_ID,
    CHOICE_THIRD,
    CHOICE_TIMESTAMP,
    CHOICE_TOPIC,
    STUDENTS,
)
from allocation_engine.io.writer import write_csv_text
from allocation_engine.models import SUPERVISOR
from allocation_engine.student_choice import (
    order_by_submission,
    run_student_choice,
    student_choice_from_text,
    topic_candidates,
)


def choice(student_id, first="", second="", third="", topic="", ts="2024/10/01 09:00:00"):
    return {
        CHOICE_TIMESTAMP: ts,
        CHOICE_STUDENT_ID: student_id,
        CHOICE_FIRST: first,
        CHOICE_SECOND: second,
        CHOICE_THIRD: third,
        CHOICE_TOPIC: topic,
    }


@pytest.fixture
def store(make_store, student, staff):
    return make_store(
        students={
            "d1": student("UP1"),
            "d2": student("UP2"),
            "d3": student("UP3", supervisor="s3"),
        },
        staff={"s1": staff("Alice Smith"), "s2": staff("Bob Jones"), "s3": staff("Carol White")},
        quotas={"s1": 1, "s2": 1, "s3": 3},
        interests={"s1": ["Machine Learning"], "s2": ["Security"], "s3": ["machine learning", "Vision"]},
    )


class TestOrderBySubmission:
    def test_sorts_by_timestamp(self):
        rows = [
            choice("UP2", ts="2024/10/02 10:00:00"),
            choice("UP1", ts="2024/10/01 10:00:00"),
        ]
        assert [r[CHOICE_STUDENT_ID] for r in order_by_submission(rows)] == ["UP1", "UP2"]

    def test_unparseable_timestamps_go_last_in_file_order(self):
        rows = [
            choice("UPa", ts="garbage"),
            choice("UPb", ts="2024/10/03 10:00:00"),
            choice("UPc", ts=""),
        ]
        assert [r[CHOICE_STUDENT_ID] for r in order_by_submission(rows)] == ["UPb", "UPa", "UPc"]

    def test_without_timestamp_column_keeps_order(self):
        rows = [{CHOICE_STUDENT_ID: "UP2"}, {CHOICE_STUDENT_ID: "UP1"}]
        assert order_by_submission(rows) == rows

    def test_us_dates_read_month_first_for_every_row(self):
        rows = [
            choice("UP_late", ts="01/15/2025 09:00:00"),
            choice("UP_early", ts="01/02/2025 09:00:00"),
        ]
        assert [r[CHOICE_STUDENT_ID] for r in order_by_submission(rows)] == ["UP_early", "UP_late"]

    def test_day_first_file_read_day_first_for_every_row(self):
        rows = [
            choice("UP_late", ts="02/03/2025 09:00:00"),
            choice("UP_early", ts="25/02/2025 09:00:00"),
        ]
        assert [r[CHOICE_STUDENT_ID] for r in order_by_submission(rows)] == ["UP_early", "UP_late"]


class TestRunStudentChoice:
    def test_first_choice(self, store, open_session):
        report = run_student_choice(open_session(store), [choice("UP1", first="Bob Jones")])
        assert report.success == 1
        assert store.collections[STUDENTS]["d1"]["Supervisor"] == "s2"

    def test_earlier_submission_wins_contested_staff(self, store, open_session):
        rows = [
            choice("UP2", first="Alice Smith", second="Bob Jones", ts="2024/10/01 12:00:00"),
            choice("UP1", first="Alice Smith", second="Bob Jones", ts="2024/10/01 09:00:00"),
        ]
        report = run_student_choice(open_session(store), rows)
        assert report.success == 2
        assert store.collections[STUDENTS]["d1"]["Supervisor"] == "s1"
        assert store.collections[STUDENTS]["d2"]["Supervisor"] == "s2"

    def test_earlier_us_date_wins_contested_staff(self, store, open_session):
        rows = [
            choice("UP2", first="Alice Smith", ts="01/15/2025 09:00:00"),
            choice("UP1", first="Alice Smith", ts="01/02/2025 09:00:00"),
        ]
        report = run_student_choice(open_session(store), rows)
        assert report.success == 1
        assert store.collections[STUDENTS]["d1"]["Supervisor"] == "s1"
        assert store.collections[STUDENTS]["d2"]["Supervisor"] == ""

    def test_topic_fallback_when_choices_are_full(self, store, open_session):
        session = open_session(store)
        session.allocate("d2", "s1", SUPERVISOR)
        report = run_student_choice(
            session,
            [choice("UP1", first="Alice Smith", second="Alice Smith", third="Alice Smith", topic="Applied machine learning")],
        )
        assert report.success == 1
        assert store.collections[STUDENTS]["d1"]["Supervisor"] == "s3"

    def test_unknown_choice_names_fall_through(self, store, open_session):
        report = run_student_choice(open_session(store), [choice("UP1", first="Nobody", second="Bob Jones")])
        assert report.success == 1
        assert store.collections[STUDENTS]["d1"]["Supervisor"] == "s2"

    def test_no_option_available(self, store, open_session):
        report = run_student_choice(open_session(store), [choice("UP1", first="Nobody", topic="Quantum")])
        assert report.failure == 1
        assert report.failures[0]["reason"] == "no_choice_available"

    def test_student_not_found(self, store, open_session):
        report = run_student_choice(open_session(store), [choice("UP9", first="Bob Jones")])
        assert report.failures[0]["reason"] == "student_not_found"

    def test_already_supervised_is_skipped(self, store, open_session):
        report = run_student_choice(open_session(store), [choice("UP3", first="Bob Jones")])
        assert report.skipped == 1
        assert report.success == 0
        assert report.failure == 0
        assert store.collections[STUDENTS]["d3"]["Supervisor"] == "s3"


class TestTopicCandidates:
    def test_least_loaded_first(self, store, open_session):
        session = open_session(store)
        ids = [m.doc_id for m in topic_candidates(session, "machine learning")]
        assert ids == ["s1", "s3"]

    def test_empty_topic_matches_nobody(self, store, open_session):
        assert topic_candidates(open_session(store), "") == []


class TestFromText:
    def test_parses_csv(self, store, open_session):
        text = write_csv_text([choice("UP1", first="Bob Jones")])
        report = student_choice_from_text(open_session(store), text)
        assert report.success == 1

    def test_malformed_csv_aborts(self, store, open_session):
        report = student_choice_from_text(open_session(store), 'a,"b\n1,2')
        assert report.aborted
