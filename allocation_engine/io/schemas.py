"""Document keys, import headers, list helpers, and type coercion for CSV I/O.

Header strings are matched literally (punctuation and casing included), so
every one the engine reads is declared here and nowhere else.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Store collections
# ---------------------------------------------------------------------------

STUDENTS = "students"
STAFF = "staff"
STAFF_QUOTAS = "staffQuotas"
STAFF_INTERESTS = "staffInterests"

COLLECTIONS = (STUDENTS, STAFF, STAFF_QUOTAS, STAFF_INTERESTS)

# ---------------------------------------------------------------------------
# Document field names -> typed attribute names
# ---------------------------------------------------------------------------

STUDENT_FIELDS = {
    "studentID": "student_id",
    "First name": "first_name",
    "Surname": "surname",
    "Course code": "course_code",
    "Module code": "module_code",
    "Notes": "notes",
    "Supervisor": "supervisor",
    "Moderator": "moderator",
}

ROLE_FIELDS = {
    "supervisor": "Supervisor",
    "moderator": "Moderator",
}

# Older quota documents used ``iD`` instead of ``StaffID``.
QUOTA_KEYS = ("StaffID", "iD")

# ---------------------------------------------------------------------------
# Import headers
# ---------------------------------------------------------------------------

SELF_REPORT_AGREE = "I agree to supervise / moderate this project"
SELF_REPORT_ROLE = "Supervisor or Moderator?"
SELF_REPORT_STUDENT_ID = "Student's ID (without 'UP')"
SELF_REPORT_STAFF_NAME = "Supervisor's / Moderator's name"
SELF_REPORT_AFFIRMATIVE = "Yes"

SELF_REPORT_COLS = [
    SELF_REPORT_AGREE,
    SELF_REPORT_ROLE,
    SELF_REPORT_STUDENT_ID,
    SELF_REPORT_STAFF_NAME,
]

CHOICE_TIMESTAMP = "Timestamp"
CHOICE_STUDENT_ID = "Student ID number (INCLUDING 'UP')"
CHOICE_FIRST = "First Supervisor Choice"
CHOICE_SECOND = "Second Supervisor Choice"
CHOICE_THIRD = "Third Supervisor Choice"
CHOICE_TOPIC = "Project Topic."

STUDENT_CHOICE_COLS = [
    CHOICE_STUDENT_ID,
    CHOICE_FIRST,
    CHOICE_SECOND,
    CHOICE_THIRD,
]

STUDENT_IMPORT_ID_HEADERS = ("studentID", "StudentID")

STAFF_IMPORT_COLS = ["Full Name", "Email"]
QUOTA_IMPORT_COLS = ["Full Name", "Quota"]
INTERESTS_IMPORT_COLS = ["Full Name"]
INTERESTS_HEADER = "Interests"
PROJECT_IDEAS_HEADER = "Project Ideas"

# ---------------------------------------------------------------------------
# Export columns
# ---------------------------------------------------------------------------

UNASSIGNED = "Unassigned"

EXPORT_COLS = {
    "complete": [
        "StudentID",
        "StudentName",
        "SupervisorName",
        "SupervisorEmail",
        "ModeratorName",
        "ModeratorEmail",
    ],
    "supervisor": [
        "StudentID",
        "StudentName",
        "SupervisorName",
        "SupervisorEmail",
    ],
    "moderator": [
        "StudentID",
        "ModeratorName",
    ],
}

QUOTA_OVERVIEW_COLS = [
    "staff_name",
    "email",
    "quota",
    "supervisor_allocations",
    "remaining_supervisor",
    "moderator_allocations",
    "remaining_moderator",
]

# ---------------------------------------------------------------------------
# Comma-separated field helpers
# ---------------------------------------------------------------------------

COMMA = ","


def comma_split(value) -> list[str]:
    """Split a comma-separated cell into trimmed items. Lists pass through."""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v).strip() for v in value if str(v).strip()]
    if not str(value).strip():
        return []
    return [v.strip() for v in str(value).split(COMMA) if v.strip()]


# ---------------------------------------------------------------------------
# Type coercion helpers for reading CSV and document values
# ---------------------------------------------------------------------------


def to_str(value) -> str:
    """Coerce a cell or document value to a stripped string. None -> ''."""
    if value is None:
        return ""
    return str(value).strip()


def to_int(value, default: int = 0) -> int:
    """Coerce a CSV string to int. Empty/None/garbage -> default."""
    if value is None or str(value).strip() == "":
        return default
    try:
        return int(float(value))
    except (ValueError, TypeError):
        return default


def to_int_or_none(value) -> int | None:
    if value is None or str(value).strip() == "":
        return None
    try:
        return int(float(value))
    except (ValueError, TypeError):
        return None
