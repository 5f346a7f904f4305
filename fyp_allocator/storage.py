from __future__ import annotations

import copy
import json
import os
from pathlib import Path
from typing import Any

from allocation_engine.errors import PersistenceError
from allocation_engine.store import BATCH_LIMIT, BatchOp, DocumentStore

from .utils import new_run_id, now_utc_iso


def _json_stage(path: Path, payload: Any) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    with tmp.open("w", encoding="utf-8") as fh:
        json.dump(payload, fh, indent=2, ensure_ascii=False)
    return tmp


def _json_dump(path: Path, payload: Any) -> None:
    os.replace(_json_stage(path, payload), path)


def _json_load(path: Path) -> Any:
    with path.open("r", encoding="utf-8") as fh:
        return json.load(fh)


def store_root(data_dir: Path) -> Path:
    path = data_dir / "store"
    path.mkdir(parents=True, exist_ok=True)
    return path


def run_root(data_dir: Path) -> Path:
    path = data_dir / "runs"
    path.mkdir(parents=True, exist_ok=True)
    return path


class JsonFileStore(DocumentStore):
    """Document store backed by one JSON file per collection.

    A batch commit applies its operations in memory, stages a temporary file
    for every touched collection, and only then swaps them into place. A
    failure while staging leaves every collection file unchanged.
    """

    def __init__(self, data_dir: Path, *, batch_limit: int = BATCH_LIMIT):
        self.root = store_root(Path(data_dir))
        self.batch_limit = batch_limit

    def _path(self, collection: str) -> Path:
        return self.root / f"{collection}.json"

    def _read(self, collection: str) -> dict[str, dict[str, Any]]:
        path = self._path(collection)
        if not path.exists():
            return {}
        try:
            data = _json_load(path)
        except (OSError, json.JSONDecodeError) as exc:
            raise PersistenceError(f"cannot read {path}: {exc}") from exc
        return data if isinstance(data, dict) else {}

    def _write(self, collection: str, docs: dict[str, dict[str, Any]]) -> None:
        try:
            _json_dump(self._path(collection), docs)
        except OSError as exc:
            raise PersistenceError(f"cannot write {collection}: {exc}") from exc

    def list_all(self, collection: str) -> list[dict[str, Any]]:
        return [{**fields, "id": doc_id} for doc_id, fields in self._read(collection).items()]

    def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        doc = self._read(collection).get(doc_id)
        return {**doc, "id": doc_id} if doc is not None else None

    def set_fields(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        docs = self._read(collection)
        if doc_id not in docs:
            raise PersistenceError(f"no document {collection}/{doc_id}")
        docs[doc_id].update(copy.deepcopy(fields))
        self._write(collection, docs)

    def add(self, collection: str, fields: dict[str, Any]) -> str:
        docs = self._read(collection)
        doc_id = self.new_id()
        docs[doc_id] = copy.deepcopy(fields)
        self._write(collection, docs)
        return doc_id

    def delete(self, collection: str, doc_id: str) -> None:
        docs = self._read(collection)
        if docs.pop(doc_id, None) is not None:
            self._write(collection, docs)

    def _commit(self, ops: list[BatchOp]) -> None:
        touched: dict[str, dict[str, dict[str, Any]]] = {}
        for op in ops:
            if op.collection not in touched:
                touched[op.collection] = self._read(op.collection)
            docs = touched[op.collection]
            if op.kind == "delete":
                docs.pop(op.doc_id, None)
            elif op.merge and op.doc_id in docs:
                docs[op.doc_id].update(copy.deepcopy(op.fields or {}))
            else:
                docs[op.doc_id] = copy.deepcopy(op.fields or {})
        staged: list[tuple[Path, Path]] = []
        try:
            for collection, docs in touched.items():
                path = self._path(collection)
                staged.append((_json_stage(path, docs), path))
        except OSError as exc:
            for tmp, _ in staged:
                tmp.unlink(missing_ok=True)
            raise PersistenceError(f"cannot write batch: {exc}") from exc
        try:
            for tmp, path in staged:
                os.replace(tmp, path)
        except OSError as exc:
            raise PersistenceError(f"cannot write batch: {exc}") from exc


def save_run_report(data_dir: Path, report: dict[str, Any]) -> Path:
    root = run_root(data_dir)
    run_id = report.get("run_id") or new_run_id(report.get("strategy", "run"))
    payload = {**report, "run_id": run_id, "generated_at": report.get("generated_at") or now_utc_iso()}
    target = root / run_id
    target.mkdir(parents=True, exist_ok=True)
    _json_dump(target / "report.json", payload)

    manifest = {
        "run_id": run_id,
        "strategy": payload.get("strategy"),
        "generated_at": payload["generated_at"],
        "success": payload.get("success", 0),
        "failure": payload.get("failure", 0),
        "residual": payload.get("residual", {}),
        "error": payload.get("error"),
        "path": str(target.resolve()),
    }
    _json_dump(target / "manifest.json", manifest)
    _json_dump(root / "latest.json", manifest)
    return target


def list_runs(data_dir: Path, limit: int = 20) -> list[dict[str, Any]]:
    root = run_root(data_dir)
    manifests: list[dict[str, Any]] = []
    for child in root.iterdir():
        if not child.is_dir():
            continue
        manifest_file = child / "manifest.json"
        if not manifest_file.exists():
            continue
        try:
            manifests.append(_json_load(manifest_file))
        except (OSError, json.JSONDecodeError):
            continue
    manifests.sort(key=lambda row: (row.get("generated_at", ""), row.get("run_id", "")), reverse=True)
    return manifests[:limit]


def load_run(data_dir: Path, run_id: str | None = None) -> dict[str, Any]:
    root = run_root(data_dir)
    if run_id:
        manifest_path = root / run_id / "manifest.json"
    else:
        manifest_path = root / "latest.json"
    if not manifest_path.exists():
        raise FileNotFoundError("run manifest not found")
    manifest = _json_load(manifest_path)
    rid = manifest["run_id"]
    path = root / rid / "report.json"
    if not path.exists():
        raise FileNotFoundError(f"run report not found: {rid}")
    return _json_load(path)
