"""Per-run allocation counters.

Counts are seeded once from the roster and then only changed in memory, so
back-to-back assignments in one loop never read a stale total from the store.
"""

from __future__ import annotations

from collections import defaultdict

from .models import MODERATOR, ROLES, SUPERVISOR
from .roster import Roster


class CapacityTracker:
    def __init__(self, roster: Roster):
        self.roster = roster
        self.counts: dict[tuple[str, str], int] = defaultdict(int)
        known = {m.doc_id for m in roster.staff}
        for student in roster.students:
            for role in ROLES:
                holder = student.holder(role)
                if holder and holder in known:
                    self.counts[(holder, role)] += 1

    def count_for(self, staff_id: str, role: str) -> int:
        return self.counts.get((staff_id, role), 0)

    def total_for(self, staff_id: str) -> int:
        return self.count_for(staff_id, SUPERVISOR) + self.count_for(staff_id, MODERATOR)

    def remaining_capacity(self, staff_id: str, role: str) -> int:
        return self.roster.quota_of(staff_id) - self.count_for(staff_id, role)

    def has_capacity(self, staff_id: str, role: str) -> bool:
        if self.roster.staff_member(staff_id) is None:
            return False
        return self.remaining_capacity(staff_id, role) > 0

    def remaining_fraction(self, staff_id: str, role: str) -> float:
        quota = self.roster.quota_of(staff_id)
        if quota <= 0:
            return 0.0
        return self.remaining_capacity(staff_id, role) / quota

    def record_allocation(self, staff_id: str, role: str) -> None:
        self.counts[(staff_id, role)] += 1

    def release_allocation(self, staff_id: str, role: str) -> None:
        if self.counts.get((staff_id, role), 0) > 0:
            self.counts[(staff_id, role)] -= 1
