"""Supervisor and moderator allocation engine for final-year projects."""

from .capacity import CapacityTracker
from .default_fill import run_default_fill
from .manual import allocate_manual, manual_candidates
from .mechanisms import STRATEGIES, run_strategy
from .models import MODERATOR, ROLES, SUPERVISOR, StaffMember, Student
from .report import AllocationReport, allocation_status, quota_overview
from .roster import EngineSettings, Roster, load_roster
from .self_report import run_self_report, self_report_from_text
from .session import AllocationSession
from .store import BATCH_LIMIT, DocumentStore, MemoryStore, commit_in_chunks
from .student_choice import run_student_choice, student_choice_from_text

__all__ = [
    "AllocationReport",
    "AllocationSession",
    "BATCH_LIMIT",
    "CapacityTracker",
    "DocumentStore",
    "EngineSettings",
    "MODERATOR",
    "MemoryStore",
    "ROLES",
    "Roster",
    "STRATEGIES",
    "SUPERVISOR",
    "StaffMember",
    "Student",
    "allocate_manual",
    "allocation_status",
    "commit_in_chunks",
    "load_roster",
    "manual_candidates",
    "quota_overview",
    "run_default_fill",
    "run_self_report",
    "run_strategy",
    "run_student_choice",
    "self_report_from_text",
    "student_choice_from_text",
]
