"""Typed student and staff records built from store documents."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .io.schemas import (
    ROLE_FIELDS,
    STUDENT_FIELDS,
    comma_split,
    to_int,
    to_str,
)

SUPERVISOR = "supervisor"
MODERATOR = "moderator"
ROLES = (SUPERVISOR, MODERATOR)


def normalize_role(value: str | None) -> str | None:
    """Return the canonical role tag for ``value`` or None if it is not a role."""
    role = to_str(value).lower()
    return role if role in ROLES else None


@dataclass
class Student:
    doc_id: str
    student_id: str = ""
    first_name: str = ""
    surname: str = ""
    course_code: str = ""
    module_code: str = ""
    notes: str = ""
    supervisor: str = ""
    moderator: str = ""
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def full_name(self) -> str:
        return f"{self.surname}, {self.first_name}"

    def holder(self, role: str) -> str:
        return self.supervisor if role == SUPERVISOR else self.moderator

    def set_holder(self, role: str, staff_id: str) -> None:
        if role == SUPERVISOR:
            self.supervisor = staff_id
        else:
            self.moderator = staff_id

    @classmethod
    def from_document(cls, doc_id: str, data: dict[str, Any]) -> "Student":
        values = {attr: to_str(data.get(key)) for key, attr in STUDENT_FIELDS.items()}
        extra = {k: v for k, v in data.items() if k not in STUDENT_FIELDS and k != "id"}
        return cls(doc_id=doc_id, extra=extra, **values)

    def to_document(self) -> dict[str, Any]:
        doc = dict(self.extra)
        for key, attr in STUDENT_FIELDS.items():
            doc[key] = getattr(self, attr)
        return doc


@dataclass
class StaffMember:
    doc_id: str
    full_name: str = ""
    email: str = ""
    quota: int = 0
    avoid: list[str] = field(default_factory=list)
    department: str = ""

    @classmethod
    def from_document(cls, doc_id: str, data: dict[str, Any]) -> "StaffMember":
        return cls(
            doc_id=doc_id,
            full_name=to_str(data.get("Full Name")),
            email=to_str(data.get("Email")),
            quota=to_int(data.get("Quota")),
            avoid=comma_split(data.get("Avoid")),
            department=to_str(data.get("Department")),
        )

    def to_document(self) -> dict[str, Any]:
        return {
            "Full Name": self.full_name,
            "Email": self.email,
            "Quota": self.quota,
            "Avoid": list(self.avoid),
            **({"Department": self.department} if self.department else {}),
        }


def role_field(role: str) -> str:
    """Document key holding the staff id for ``role``."""
    return ROLE_FIELDS[role]
