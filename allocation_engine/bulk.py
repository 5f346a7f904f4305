"""Bulk maintenance of roster records: CSV imports and delete-all.

All multi-document writes go through ``commit_in_chunks`` so no batch holds
more operations than the store accepts.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from .errors import ImportSyntaxError
from .io.reader import parse_csv_text
from .io.schemas import (
    INTERESTS_HEADER,
    INTERESTS_IMPORT_COLS,
    PROJECT_IDEAS_HEADER,
    QUOTA_IMPORT_COLS,
    STAFF,
    STAFF_IMPORT_COLS,
    STAFF_INTERESTS,
    STAFF_QUOTAS,
    STUDENT_IMPORT_ID_HEADERS,
    STUDENTS,
    comma_split,
    to_int,
    to_int_or_none,
    to_str,
)
from .store import DocumentStore, commit_in_chunks, delete_op, set_op

logger = logging.getLogger(__name__)

IMPORT_KINDS = ("students", "staff", "quotas", "interests")


@dataclass
class BulkResult:
    kind: str
    added: int = 0
    updated: int = 0
    skipped: int = 0
    deleted: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "added": self.added,
            "updated": self.updated,
            "skipped": self.skipped,
            "deleted": self.deleted,
            "failed": self.failed,
            "errors": list(self.errors),
        }


def _student_id(row: dict[str, Any]) -> str:
    for header in STUDENT_IMPORT_ID_HEADERS:
        value = to_str(row.get(header))
        if value:
            return value
    return ""


def _apply(result: BulkResult, store: DocumentStore, ops: list, attr: str, limit: int | None) -> BulkResult:
    chunked = commit_in_chunks(store, ops, limit=limit)
    setattr(result, attr, getattr(result, attr) + chunked.committed)
    result.failed += chunked.failed
    result.errors.extend(chunked.errors)
    return result


def import_students(store: DocumentStore, records: list[dict[str, Any]], *, limit: int | None = None) -> BulkResult:
    """Add students whose id is not on the roster yet."""
    result = BulkResult("students")
    seen = {to_str(d.get("studentID")) for d in store.list_all(STUDENTS)}
    ops = []
    for row in records:
        sid = _student_id(row)
        if not sid or sid in seen:
            result.skipped += 1
            continue
        seen.add(sid)
        doc = {k: v for k, v in row.items() if k not in STUDENT_IMPORT_ID_HEADERS}
        doc["studentID"] = sid
        ops.append(set_op(STUDENTS, store.new_id(), doc))
    return _apply(result, store, ops, "added", limit)


def import_staff(store: DocumentStore, records: list[dict[str, Any]], *, limit: int | None = None) -> BulkResult:
    """Add staff whose email is not known yet."""
    result = BulkResult("staff")
    emails = {to_str(d.get("Email")) for d in store.list_all(STAFF)}
    ops = []
    for row in records:
        name = to_str(row.get("Full Name"))
        email = to_str(row.get("Email"))
        if not name or not email or email in emails:
            result.skipped += 1
            continue
        emails.add(email)
        doc = {
            "Full Name": name,
            "Email": email,
            "Quota": to_int(row.get("Quota")),
            "Avoid": comma_split(row.get("Avoid")),
        }
        if to_str(row.get("Department")):
            doc["Department"] = to_str(row.get("Department"))
        ops.append(set_op(STAFF, store.new_id(), doc))
    return _apply(result, store, ops, "added", limit)


def _staff_ids_by_name(store: DocumentStore) -> dict[str, str]:
    ids: dict[str, str] = {}
    for doc in store.list_all(STAFF):
        name = to_str(doc.get("Full Name"))
        if name and name not in ids:
            ids[name] = doc["id"]
    return ids


def import_quotas(store: DocumentStore, records: list[dict[str, Any]], *, limit: int | None = None) -> BulkResult:
    """Write the canonical quota record for each named staff member."""
    result = BulkResult("quotas")
    by_name = _staff_ids_by_name(store)
    records_ops = []
    seed_ops = []
    for row in records:
        name = to_str(row.get("Full Name"))
        quota = to_int_or_none(row.get("Quota"))
        staff_id = by_name.get(name)
        if not name or quota is None or staff_id is None:
            result.skipped += 1
            continue
        records_ops.append(set_op(STAFF_QUOTAS, staff_id, {"StaffID": staff_id, "Quota": quota}))
        seed_ops.append(set_op(STAFF, staff_id, {"Quota": quota}, merge=True))
    _apply(result, store, records_ops, "updated", limit)
    seeded = commit_in_chunks(store, seed_ops, limit=limit)
    result.failed += seeded.failed
    result.errors.extend(seeded.errors)
    return result


def import_interests(store: DocumentStore, records: list[dict[str, Any]], *, limit: int | None = None) -> BulkResult:
    """Merge interests and project ideas into each named staff member's record."""
    result = BulkResult("interests")
    by_name = _staff_ids_by_name(store)
    updates: dict[str, dict[str, Any]] = {}
    for row in records:
        staff_id = by_name.get(to_str(row.get("Full Name")))
        if staff_id is None:
            result.skipped += 1
            continue
        updates[staff_id] = {
            "StaffID": staff_id,
            "Interests": comma_split(row.get(INTERESTS_HEADER)),
            "ProjectIdeas": comma_split(row.get(PROJECT_IDEAS_HEADER)),
        }
    ops = [set_op(STAFF_INTERESTS, sid, fields, merge=True) for sid, fields in updates.items()]
    return _apply(result, store, ops, "updated", limit)


def delete_all(store: DocumentStore, collection: str, *, limit: int | None = None) -> BulkResult:
    result = BulkResult(f"delete_{collection}")
    ops = [delete_op(collection, doc["id"]) for doc in store.list_all(collection)]
    logger.info("Deleting %d documents from %s", len(ops), collection)
    return _apply(result, store, ops, "deleted", limit)


_IMPORTERS = {
    "students": (import_students, ()),
    "staff": (import_staff, STAFF_IMPORT_COLS),
    "quotas": (import_quotas, QUOTA_IMPORT_COLS),
    "interests": (import_interests, INTERESTS_IMPORT_COLS),
}


def import_from_text(kind: str, store: DocumentStore, text: str | bytes, *, limit: int | None = None) -> BulkResult:
    """Parse a CSV export and run the matching importer."""
    if kind not in _IMPORTERS:
        raise ValueError(f"Unknown import kind: {kind!r}. Choose from {IMPORT_KINDS}")
    importer, required = _IMPORTERS[kind]
    try:
        records = parse_csv_text(text, required=required)
    except ImportSyntaxError as exc:
        logger.error("Error parsing %s CSV: %s", kind, exc)
        return BulkResult(kind, errors=[str(exc)])
    if kind == "students" and records and not any(h in records[0] for h in STUDENT_IMPORT_ID_HEADERS):
        return BulkResult(kind, errors=["missing required columns: studentID"])
    result = importer(store, records, limit=limit)
    logger.info("Imported %s: %s", kind, result.to_dict())
    return result
