"""Strategy dispatcher for allocation runs.

Routes to one of the allocation strategies:
  - manual:         operator override for a single student and role
  - self_report:    staff agreement form, applied without quota checks
  - student_choice: ranked student preferences with topic fallback
  - default_fill:   course-grouped fill of every remaining gap

Each call opens its own session, so no state carries over between runs.
"""

from __future__ import annotations

from typing import Any

from .report import AllocationReport
from .roster import EngineSettings
from .store import DocumentStore

STRATEGIES = ("manual", "self_report", "student_choice", "default_fill")


def run_strategy(
    strategy: str,
    store: DocumentStore,
    *,
    settings: EngineSettings | None = None,
    csv_text: str | bytes | None = None,
    student_doc_id: str = "",
    staff_id: str = "",
    role: str = "",
) -> AllocationReport:
    """Run the named strategy against a freshly loaded roster."""
    from .default_fill import run_default_fill
    from .manual import allocate_manual
    from .self_report import self_report_from_text
    from .session import AllocationSession
    from .student_choice import student_choice_from_text

    if strategy not in STRATEGIES:
        raise ValueError(f"Unknown strategy: {strategy!r}. Choose from {STRATEGIES}")

    session = AllocationSession.open(store, settings)

    if strategy == "manual":
        return allocate_manual(session, student_doc_id, staff_id, role)
    if strategy == "self_report":
        return self_report_from_text(session, csv_text or "")
    if strategy == "student_choice":
        return student_choice_from_text(session, csv_text or "")
    return run_default_fill(session)


def run_summary(report: AllocationReport) -> dict[str, Any]:
    """Compact report dict without per-row failures."""
    return {k: v for k, v in report.to_dict().items() if k != "failures"}
