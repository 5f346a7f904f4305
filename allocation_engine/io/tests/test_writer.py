"""Tests for allocation exports (CSV and XLSX)."""

from __future__ import annotations

import pytest

from allocation_engine.io import export_rows, render_allocations_xlsx, write_csv_text, write_exports
from allocation_engine.io.reader import parse_csv_text
from allocation_engine.models import StaffMember, Student
from allocation_engine.roster import Roster
from allocation_engine.session import AllocationSession
from allocation_engine.store import MemoryStore


@pytest.fixture
def roster():
    return Roster(
        students=[
            Student("d1", student_id="UP1", first_name="Ada", surname="Lovelace", supervisor="s1", moderator="s2"),
            Student("d2", student_id="UP2", first_name="Alan", surname="Turing", supervisor="gone"),
        ],
        staff=[
            StaffMember("s1", full_name="Alice Smith", email="alice@uni.ac.uk"),
            StaffMember("s2", full_name="Bob Jones", email="bob@uni.ac.uk"),
        ],
        quota_records={"s1": 2, "s2": 3},
    )


class TestExportRows:
    def test_complete(self, roster):
        rows = export_rows(roster)
        assert rows[0] == {
            "StudentID": "UP1",
            "StudentName": "Lovelace, Ada",
            "SupervisorName": "Alice Smith",
            "SupervisorEmail": "alice@uni.ac.uk",
            "ModeratorName": "Bob Jones",
            "ModeratorEmail": "bob@uni.ac.uk",
        }

    def test_unknown_and_missing_holders_unassigned(self, roster):
        row = export_rows(roster)[1]
        assert row["SupervisorName"] == "Unassigned"
        assert row["ModeratorEmail"] == "Unassigned"

    def test_role_views(self, roster):
        assert list(export_rows(roster, "supervisor")[0]) == [
            "StudentID",
            "StudentName",
            "SupervisorName",
            "SupervisorEmail",
        ]
        assert export_rows(roster, "moderator")[0] == {"StudentID": "UP1", "ModeratorName": "Bob Jones"}

    def test_unknown_kind(self, roster):
        with pytest.raises(ValueError):
            export_rows(roster, "examiner")


class TestCsv:
    def test_write_csv_text_parses_back(self, roster):
        text = write_csv_text(export_rows(roster))
        assert text.splitlines()[0] == "StudentID,StudentName,SupervisorName,SupervisorEmail,ModeratorName,ModeratorEmail"
        assert parse_csv_text(text)[0]["StudentName"] == "Lovelace, Ada"

    def test_header_only_when_empty(self):
        assert write_csv_text([], ["StudentID"]) == "StudentID\n"

    def test_write_exports(self, roster, tmp_path):
        paths = write_exports(roster, tmp_path / "out")
        assert sorted(paths) == ["allocations.csv", "moderator_allocations.csv", "supervisor_allocations.csv"]
        assert paths["moderator_allocations.csv"].read_text(encoding="utf-8").startswith("StudentID,ModeratorName\n")


class TestXlsx:
    def test_workbook_sheets(self, roster, tmp_path):
        openpyxl = pytest.importorskip("openpyxl")
        session = AllocationSession(store=MemoryStore(), roster=roster)
        path = render_allocations_xlsx(session, tmp_path / "allocations.xlsx")

        wb = openpyxl.load_workbook(path)
        assert wb.sheetnames == ["Allocations", "Supervisors", "Moderators", "Staff Quota", "Summary"]
        ws = wb["Allocations"]
        assert ws.cell(row=1, column=1).value == "StudentID"
        assert ws.cell(row=2, column=3).value == "Alice Smith"
        assert ws.cell(row=1, column=1).font.bold

        quota = wb["Staff Quota"]
        assert quota.cell(row=1, column=1).value == "Staff Name"
        assert quota.cell(row=2, column=1).value == "Alice Smith"
        assert quota.cell(row=2, column=3).value == 2
        assert quota.cell(row=2, column=4).value == 1

        summary = {r[0]: r[1] for r in wb["Summary"].iter_rows(min_row=2, values_only=True)}
        assert summary["Students"] == 2
        assert summary["With supervisor"] == 2
        assert summary["With moderator"] == 1
