"""Document store contract consumed by the engine.

A store is a set of named collections of ``{doc_id: fields}`` documents.
Multi-document writes go through a ``WriteBatch`` that holds at most
``limit`` operations and commits atomically; callers with more work than
that use ``commit_in_chunks``.
"""

from __future__ import annotations

import copy
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Iterable
from uuid import uuid4

from .errors import BatchLimitExceeded, PersistenceError

logger = logging.getLogger(__name__)

BATCH_LIMIT = 500


@dataclass(frozen=True)
class BatchOp:
    kind: str  # "set" | "delete"
    collection: str
    doc_id: str
    fields: dict[str, Any] | None = None
    merge: bool = False


def set_op(collection: str, doc_id: str, fields: dict[str, Any], *, merge: bool = False) -> BatchOp:
    return BatchOp("set", collection, doc_id, dict(fields), merge)


def delete_op(collection: str, doc_id: str) -> BatchOp:
    return BatchOp("delete", collection, doc_id)


class WriteBatch:
    """Queue of writes committed together by the owning store."""

    def __init__(self, store: "DocumentStore", *, limit: int = BATCH_LIMIT):
        self._store = store
        self.limit = limit
        self.ops: list[BatchOp] = []
        self.committed = False

    def _queue(self, op: BatchOp) -> None:
        if self.committed:
            raise PersistenceError("batch already committed")
        if len(self.ops) >= self.limit:
            raise BatchLimitExceeded(f"batch holds at most {self.limit} operations")
        self.ops.append(op)

    def set(self, collection: str, doc_id: str, fields: dict[str, Any], *, merge: bool = False) -> None:
        self._queue(set_op(collection, doc_id, fields, merge=merge))

    def delete(self, collection: str, doc_id: str) -> None:
        self._queue(delete_op(collection, doc_id))

    def commit(self) -> None:
        if self.committed:
            raise PersistenceError("batch already committed")
        self._store._commit(self.ops)
        self.committed = True

    def __len__(self) -> int:
        return len(self.ops)


class DocumentStore(ABC):
    """Base class for persistence adapters.

    Subclasses implement ``list_all``, ``get``, ``set_fields``, ``add``,
    ``delete`` and ``_commit``. Every method raises ``PersistenceError`` when
    the backend does not acknowledge the operation.
    """

    batch_limit = BATCH_LIMIT

    @abstractmethod
    def list_all(self, collection: str) -> list[dict[str, Any]]:
        """Return every document in ``collection`` with its id under ``"id"``."""
        ...

    @abstractmethod
    def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        ...

    @abstractmethod
    def set_fields(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        """Merge ``fields`` into an existing document."""
        ...

    @abstractmethod
    def add(self, collection: str, fields: dict[str, Any]) -> str:
        ...

    @abstractmethod
    def delete(self, collection: str, doc_id: str) -> None:
        ...

    def batch(self) -> WriteBatch:
        return WriteBatch(self, limit=self.batch_limit)

    def new_id(self) -> str:
        return uuid4().hex[:20]

    @abstractmethod
    def _commit(self, ops: list[BatchOp]) -> None:
        ...


class MemoryStore(DocumentStore):
    """In-process store. ``fail_on`` lets tests make selected writes fail."""

    def __init__(self, data: dict[str, dict[str, dict[str, Any]]] | None = None, *, batch_limit: int = BATCH_LIMIT):
        self.collections: dict[str, dict[str, dict[str, Any]]] = copy.deepcopy(data or {})
        self.batch_limit = batch_limit
        self.fail_on: set[tuple[str, str]] = set()
        self.commits = 0

    def _check(self, collection: str, doc_id: str) -> None:
        if (collection, doc_id) in self.fail_on or (collection, "*") in self.fail_on:
            raise PersistenceError(f"write rejected: {collection}/{doc_id}")

    def list_all(self, collection: str) -> list[dict[str, Any]]:
        docs = self.collections.get(collection, {})
        return [{**copy.deepcopy(fields), "id": doc_id} for doc_id, fields in docs.items()]

    def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        doc = self.collections.get(collection, {}).get(doc_id)
        return {**copy.deepcopy(doc), "id": doc_id} if doc is not None else None

    def set_fields(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        self._check(collection, doc_id)
        docs = self.collections.get(collection, {})
        if doc_id not in docs:
            raise PersistenceError(f"no document {collection}/{doc_id}")
        docs[doc_id].update(copy.deepcopy(fields))

    def add(self, collection: str, fields: dict[str, Any]) -> str:
        doc_id = self.new_id()
        self._check(collection, doc_id)
        self.collections.setdefault(collection, {})[doc_id] = copy.deepcopy(fields)
        return doc_id

    def delete(self, collection: str, doc_id: str) -> None:
        self._check(collection, doc_id)
        self.collections.get(collection, {}).pop(doc_id, None)

    def _commit(self, ops: list[BatchOp]) -> None:
        for op in ops:
            self._check(op.collection, op.doc_id)
        for op in ops:
            docs = self.collections.setdefault(op.collection, {})
            if op.kind == "delete":
                docs.pop(op.doc_id, None)
            elif op.merge and op.doc_id in docs:
                docs[op.doc_id].update(copy.deepcopy(op.fields or {}))
            else:
                docs[op.doc_id] = copy.deepcopy(op.fields or {})
        self.commits += 1


@dataclass
class ChunkResult:
    committed: int = 0
    failed: int = 0
    failed_chunks: list[int] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


def commit_in_chunks(store: DocumentStore, ops: Iterable[BatchOp], *, limit: int | None = None) -> ChunkResult:
    """Commit ``ops`` as sequential batches of at most ``limit`` operations.

    A failed commit fails its whole chunk; later chunks still run.
    """
    size = min(limit or store.batch_limit, store.batch_limit)
    pending = list(ops)
    result = ChunkResult()
    for index, start in enumerate(range(0, len(pending), size)):
        chunk = pending[start : start + size]
        batch = store.batch()
        try:
            for op in chunk:
                if op.kind == "delete":
                    batch.delete(op.collection, op.doc_id)
                else:
                    batch.set(op.collection, op.doc_id, op.fields or {}, merge=op.merge)
            batch.commit()
        except PersistenceError as exc:
            logger.exception("Batch %d (%d ops) failed to commit", index, len(chunk))
            result.failed += len(chunk)
            result.failed_chunks.append(index)
            result.errors.append(str(exc))
            continue
        result.committed += len(chunk)
    return result
