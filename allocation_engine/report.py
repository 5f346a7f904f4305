"""Run reports and staff quota overviews for operator feedback."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any

from .models import MODERATOR, ROLES, SUPERVISOR
from .roster import Roster

_STRATEGY_LABELS = {
    "manual": "Manual allocation",
    "self_report": "Self-report allocation",
    "student_choice": "Student choice allocation",
    "default_fill": "Default allocation",
}


@dataclass
class AllocationReport:
    strategy: str
    success: int = 0
    failure: int = 0
    skipped: int = 0
    by_role: dict[str, dict[str, int]] = field(
        default_factory=lambda: {role: {"success": 0, "failure": 0} for role in ROLES}
    )
    residual_supervisor: int = 0
    residual_moderator: int = 0
    failures: list[dict[str, Any]] = field(default_factory=list)
    error: str | None = None
    note: str = ""

    def succeeded(self, role: str) -> None:
        self.success += 1
        self.by_role[role]["success"] += 1

    def failed(self, role: str | None, reason: str, *, row: int | None = None, student: str = "", detail: str = "") -> None:
        self.failure += 1
        if role in self.by_role:
            self.by_role[role]["failure"] += 1
        self.failures.append(
            {
                "row": row,
                "student": student,
                "role": role or "",
                "reason": reason,
                "detail": detail,
            }
        )

    def skip(self) -> None:
        self.skipped += 1

    def close(self, roster: Roster) -> "AllocationReport":
        """Record the residual counts from the roster's current view."""
        self.residual_supervisor = len(roster.missing(SUPERVISOR))
        self.residual_moderator = len(roster.missing(MODERATOR))
        return self

    @property
    def aborted(self) -> bool:
        return self.error is not None

    def failure_reasons(self) -> dict[str, int]:
        return dict(Counter(f["reason"] for f in self.failures))

    def message(self) -> str:
        label = _STRATEGY_LABELS.get(self.strategy, self.strategy)
        if self.error:
            return f"{label} aborted: {self.error}"
        if self.note:
            return self.note
        text = f"{label} complete! {self.success} successful, {self.failure} failed."
        if self.strategy == "default_fill":
            text += (
                f" Remaining unallocated: {self.residual_supervisor} supervisors,"
                f" {self.residual_moderator} moderators."
            )
        return text

    def to_dict(self) -> dict[str, Any]:
        return {
            "strategy": self.strategy,
            "success": self.success,
            "failure": self.failure,
            "skipped": self.skipped,
            "by_role": {role: dict(v) for role, v in self.by_role.items()},
            "residual": {
                SUPERVISOR: self.residual_supervisor,
                MODERATOR: self.residual_moderator,
            },
            "failure_reasons": self.failure_reasons(),
            "failures": list(self.failures),
            "error": self.error,
            "message": self.message(),
        }


def quota_overview(session) -> list[dict[str, Any]]:
    """One row per staff member, sorted by name, with remaining capacity per role."""
    roster = session.roster
    tracker = session.tracker
    rows = []
    for member in sorted(roster.staff, key=lambda m: m.full_name):
        quota = roster.quota_of(member.doc_id)
        sup = tracker.count_for(member.doc_id, SUPERVISOR)
        mod = tracker.count_for(member.doc_id, MODERATOR)
        rows.append(
            {
                "staff_id": member.doc_id,
                "staff_name": member.full_name,
                "email": member.email,
                "quota": quota,
                "supervisor_allocations": sup,
                "remaining_supervisor": max(0, quota - sup),
                "moderator_allocations": mod,
                "remaining_moderator": max(0, quota - mod),
            }
        )
    return rows


def allocation_status(roster: Roster) -> dict[str, Any]:
    total = len(roster.students)
    return {
        "students": total,
        "with_supervisor": total - len(roster.missing(SUPERVISOR)),
        "with_moderator": total - len(roster.missing(MODERATOR)),
        "staff": len(roster.staff),
    }
