"""Tests for bulk roster imports and delete-all."""

import pytest

from allocation_engine.bulk import (
    delete_all,
    import_from_text,
    import_interests,
    import_quotas,
    import_staff,
    import_students,
)
from allocation_engine.io.schemas import STAFF, STAFF_INTERESTS, STAFF_QUOTAS, STUDENTS
from allocation_engine.roster import load_roster
from allocation_engine.store import MemoryStore


class TestImportStudents:
    def test_adds_new_and_skips_known(self, make_store, student):
        store = make_store(students={"d1": student("UP1")})
        result = import_students(
            store,
            [
                {"studentID": "UP1", "First name": "A"},
                {"StudentID": "UP2", "First name": "B", "Course code": "COMP3001"},
                {"studentID": "", "First name": "C"},
                {"studentID": "UP2", "First name": "dup"},
            ],
        )
        assert result.added == 1
        assert result.skipped == 3
        added = [d for d in store.list_all(STUDENTS) if d["studentID"] == "UP2"]
        assert len(added) == 1
        assert added[0]["Course code"] == "COMP3001"
        assert "StudentID" not in added[0]

    def test_chunks_respect_batch_limit(self):
        store = MemoryStore(batch_limit=2)
        result = import_students(store, [{"studentID": f"UP{i}"} for i in range(5)])
        assert result.added == 5
        assert store.commits == 3

    def test_failed_chunk_is_reported(self):
        store = MemoryStore(batch_limit=2)
        store.fail_on.add((STUDENTS, "*"))
        result = import_students(store, [{"studentID": f"UP{i}"} for i in range(3)])
        assert result.added == 0
        assert result.failed == 3
        assert len(result.errors) == 2


class TestImportStaff:
    def test_parses_quota_and_avoid(self):
        store = MemoryStore()
        result = import_staff(
            store,
            [
                {"Full Name": "Alice Smith", "Email": "a@uni.ac.uk", "Quota": "4", "Avoid": "Bob Jones, Carol White"},
                {"Full Name": "No Mail", "Email": ""},
                {"Full Name": "Alice Again", "Email": "a@uni.ac.uk"},
            ],
        )
        assert result.added == 1
        assert result.skipped == 2
        (doc,) = store.list_all(STAFF)
        assert doc["Quota"] == 4
        assert doc["Avoid"] == ["Bob Jones", "Carol White"]


class TestImportQuotas:
    def test_writes_record_and_seed(self, make_store, staff):
        store = make_store(staff={"s1": staff("Alice Smith", quota=2)})
        result = import_quotas(store, [{"Full Name": "Alice Smith", "Quota": "7"}, {"Full Name": "Nobody", "Quota": "1"}])
        assert result.updated == 1
        assert result.skipped == 1
        assert store.collections[STAFF_QUOTAS]["s1"] == {"StaffID": "s1", "Quota": 7}
        assert store.collections[STAFF]["s1"]["Quota"] == 7
        assert store.collections[STAFF]["s1"]["Full Name"] == "Alice Smith"
        assert load_roster(store).quota_of("s1") == 7

    def test_failed_seed_write_is_counted(self, make_store, staff):
        store = make_store(staff={"s1": staff("Alice Smith")})
        store.fail_on.add((STAFF, "*"))
        result = import_quotas(store, [{"Full Name": "Alice Smith", "Quota": "7"}])
        assert result.updated == 1
        assert result.failed == 1
        assert result.errors == ["write rejected: staff/s1"]
        assert store.collections[STAFF_QUOTAS]["s1"]["Quota"] == 7
        assert store.collections[STAFF]["s1"]["Quota"] != 7

    def test_blank_quota_skipped(self, make_store, staff):
        store = make_store(staff={"s1": staff("Alice Smith")})
        result = import_quotas(store, [{"Full Name": "Alice Smith", "Quota": ""}])
        assert result.updated == 0
        assert result.skipped == 1


class TestImportInterests:
    def test_merges_by_staff_id(self, make_store, staff):
        store = make_store(staff={"s1": staff("Alice Smith")})
        result = import_interests(
            store,
            [{"Full Name": "Alice Smith", "Interests": "AI, Security", "Project Ideas": "Chatbot"}],
        )
        assert result.updated == 1
        assert store.collections[STAFF_INTERESTS]["s1"]["Interests"] == ["AI", "Security"]
        assert load_roster(store).interests_of("s1") == ["AI", "Security"]
        assert load_roster(store).project_ideas["s1"] == ["Chatbot"]


class TestDeleteAll:
    def test_deletes_in_chunks(self):
        store = MemoryStore({STUDENTS: {f"d{i}": {"studentID": str(i)} for i in range(5)}}, batch_limit=2)
        result = delete_all(store, STUDENTS)
        assert result.deleted == 5
        assert store.list_all(STUDENTS) == []
        assert store.commits == 3


class TestImportFromText:
    def test_staff_csv(self):
        store = MemoryStore()
        result = import_from_text("staff", store, "Full Name,Email,Quota,Avoid\nAlice Smith,a@uni.ac.uk,3,\n")
        assert result.added == 1

    def test_missing_required_header(self):
        result = import_from_text("quotas", MemoryStore(), "Full Name\nAlice\n")
        assert result.added == 0
        assert "missing required columns: Quota" in result.errors[0]

    def test_students_need_an_id_column(self):
        result = import_from_text("students", MemoryStore(), "Name\nAlice\n")
        assert result.errors == ["missing required columns: studentID"]

    def test_unknown_kind(self):
        with pytest.raises(ValueError):
            import_from_text("grades", MemoryStore(), "a\n1\n")
