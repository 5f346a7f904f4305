from __future__ import annotations

import base64
import logging
import re
from datetime import datetime
from time import sleep
from typing import Any

import httpx

from allocation_engine.errors import PersistenceError
from allocation_engine.store import BATCH_LIMIT, BatchOp, DocumentStore

from .config import FirestoreConfig

logger = logging.getLogger(__name__)

FIRESTORE_URL = "https://firestore.googleapis.com/v1"
PAGE_SIZE = 300

_SIMPLE_FIELD = re.compile(r"^[A-Za-z_][A-Za-z_0-9]*$")


def encode_value(value: Any) -> dict[str, Any]:
    """Encode a Python value as a Firestore REST ``Value``."""
    if value is None:
        return {"nullValue": None}
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, str):
        return {"stringValue": value}
    if isinstance(value, bytes):
        return {"bytesValue": base64.b64encode(value).decode("ascii")}
    if isinstance(value, datetime):
        return {"timestampValue": value.isoformat().replace("+00:00", "Z")}
    if isinstance(value, (list, tuple)):
        return {"arrayValue": {"values": [encode_value(v) for v in value]}}
    if isinstance(value, dict):
        return {"mapValue": {"fields": encode_fields(value)}}
    raise TypeError(f"Cannot store value of type {type(value).__name__}")


def encode_fields(fields: dict[str, Any]) -> dict[str, Any]:
    return {str(k): encode_value(v) for k, v in fields.items()}


def decode_value(value: dict[str, Any]) -> Any:
    if "nullValue" in value:
        return None
    if "booleanValue" in value:
        return bool(value["booleanValue"])
    if "integerValue" in value:
        return int(value["integerValue"])
    if "doubleValue" in value:
        return float(value["doubleValue"])
    if "stringValue" in value:
        return value["stringValue"]
    if "timestampValue" in value:
        return value["timestampValue"]
    if "referenceValue" in value:
        return value["referenceValue"]
    if "bytesValue" in value:
        return base64.b64decode(value["bytesValue"])
    if "arrayValue" in value:
        return [decode_value(v) for v in value["arrayValue"].get("values", [])]
    if "mapValue" in value:
        return decode_fields(value["mapValue"].get("fields", {}))
    if "geoPointValue" in value:
        return dict(value["geoPointValue"])
    return None


def decode_fields(fields: dict[str, Any]) -> dict[str, Any]:
    return {k: decode_value(v) for k, v in (fields or {}).items()}


def field_path(name: str) -> str:
    """Quote a field name for use in an update mask."""
    if _SIMPLE_FIELD.match(name):
        return name
    escaped = name.replace("\\", "\\\\").replace("`", "\\`")
    return f"`{escaped}`"


def _doc_id(name: str) -> str:
    return name.rsplit("/", 1)[-1]


class FirestoreRestStore(DocumentStore):
    """Document store over the Cloud Firestore REST API.

    Network failures and non-2xx responses surface as ``PersistenceError``.
    Timeouts, connection errors and 5xx responses are retried with
    exponential backoff before giving up.
    """

    def __init__(
        self,
        cfg: FirestoreConfig,
        *,
        base_url: str = FIRESTORE_URL,
        client: httpx.Client | None = None,
        timeout_s: float = 30.0,
        retries: int = 3,
        batch_limit: int = BATCH_LIMIT,
    ):
        self.cfg = cfg
        self.database_path = f"projects/{cfg.project_id}/databases/{cfg.database}"
        self.documents_url = f"{base_url.rstrip('/')}/{self.database_path}/documents"
        self.client = client or httpx.Client(timeout=timeout_s)
        self.retries = max(1, retries)
        self.batch_limit = batch_limit

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.cfg.token:
            headers["Authorization"] = f"Bearer {self.cfg.token}"
        return headers

    def _params(self, params: list[tuple[str, Any]] | None) -> list[tuple[str, Any]]:
        merged = list(params or [])
        if self.cfg.api_key:
            merged.append(("key", self.cfg.api_key))
        return merged

    def _request(
        self,
        method: str,
        url: str,
        *,
        params: list[tuple[str, Any]] | None = None,
        json_body: dict[str, Any] | None = None,
        allow_404: bool = False,
    ) -> httpx.Response | None:
        last_exc: Exception | None = None
        for attempt in range(self.retries):
            try:
                resp = self.client.request(
                    method,
                    url,
                    headers=self._headers(),
                    params=self._params(params),
                    json=json_body,
                )
                if resp.status_code >= 500 and attempt < self.retries - 1:
                    logger.warning("Firestore %s %s returned %d, retrying", method, url, resp.status_code)
                    sleep(2**attempt)
                    continue
                if allow_404 and resp.status_code == 404:
                    return None
                resp.raise_for_status()
                return resp
            except (httpx.TimeoutException, httpx.ConnectError) as exc:
                last_exc = exc
                if attempt < self.retries - 1:
                    sleep(2**attempt)
                    continue
                raise PersistenceError(f"Firestore {method} failed: {exc}") from exc
            except httpx.HTTPStatusError as exc:
                raise PersistenceError(
                    f"Firestore {method} returned {exc.response.status_code}: {exc.response.text[:200]}"
                ) from exc
            except httpx.HTTPError as exc:
                raise PersistenceError(f"Firestore {method} failed: {exc}") from exc
        raise PersistenceError(f"Firestore {method} failed: {last_exc}")

    def _document_name(self, collection: str, doc_id: str) -> str:
        return f"{self.database_path}/documents/{collection}/{doc_id}"

    def _document_url(self, collection: str, doc_id: str) -> str:
        return f"{self.documents_url}/{collection}/{doc_id}"

    def list_all(self, collection: str) -> list[dict[str, Any]]:
        docs: list[dict[str, Any]] = []
        token: str | None = None
        while True:
            params: list[tuple[str, Any]] = [("pageSize", PAGE_SIZE)]
            if token:
                params.append(("pageToken", token))
            resp = self._request("GET", f"{self.documents_url}/{collection}", params=params)
            payload = resp.json() or {}
            for raw in payload.get("documents", []):
                docs.append({**decode_fields(raw.get("fields", {})), "id": _doc_id(raw["name"])})
            token = payload.get("nextPageToken")
            if not token:
                break
        logger.debug("Listed %d documents from %s", len(docs), collection)
        return docs

    def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        resp = self._request("GET", self._document_url(collection, doc_id), allow_404=True)
        if resp is None:
            return None
        raw = resp.json() or {}
        return {**decode_fields(raw.get("fields", {})), "id": doc_id}

    def set_fields(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        params = [("updateMask.fieldPaths", field_path(k)) for k in fields]
        params.append(("currentDocument.exists", "true"))
        self._request(
            "PATCH",
            self._document_url(collection, doc_id),
            params=params,
            json_body={"fields": encode_fields(fields)},
        )

    def add(self, collection: str, fields: dict[str, Any]) -> str:
        resp = self._request(
            "POST",
            f"{self.documents_url}/{collection}",
            json_body={"fields": encode_fields(fields)},
        )
        return _doc_id((resp.json() or {})["name"])

    def delete(self, collection: str, doc_id: str) -> None:
        self._request("DELETE", self._document_url(collection, doc_id))

    def _write(self, op: BatchOp) -> dict[str, Any]:
        name = self._document_name(op.collection, op.doc_id)
        if op.kind == "delete":
            return {"delete": name}
        fields = op.fields or {}
        write: dict[str, Any] = {"update": {"name": name, "fields": encode_fields(fields)}}
        if op.merge:
            write["updateMask"] = {"fieldPaths": [field_path(k) for k in fields]}
        return write

    def _commit(self, ops: list[BatchOp]) -> None:
        if not ops:
            return
        body = {"writes": [self._write(op) for op in ops]}
        self._request("POST", f"{self.documents_url}:commit", json_body=body)
        logger.info("Committed %d writes to Firestore", len(ops))
