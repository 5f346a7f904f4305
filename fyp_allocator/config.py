from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from allocation_engine.roster import DEFAULT_ID_PREFIX, DEFAULT_QUOTA, EngineSettings
from allocation_engine.store import BATCH_LIMIT

STORE_BACKENDS = ("json", "firestore", "memory")


@dataclass(frozen=True)
class FirestoreConfig:
    project_id: str
    database: str
    token: str | None
    api_key: str | None


@dataclass(frozen=True)
class RuntimeConfig:
    store_backend: str
    data_dir: Path
    default_quota: int
    student_id_prefix: str
    batch_limit: int

    def engine_settings(self) -> EngineSettings:
        return EngineSettings(
            default_quota=self.default_quota,
            student_id_prefix=self.student_id_prefix,
            batch_limit=self.batch_limit,
        )


def load_env(dotenv_path: str | Path | None = None) -> None:
    path = Path(dotenv_path) if dotenv_path else None
    if path and path.exists():
        load_dotenv(path)
        return
    load_dotenv()


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


def runtime_config() -> RuntimeConfig:
    backend = os.getenv("FYP_STORE_BACKEND", "json").strip().lower()
    if backend not in STORE_BACKENDS:
        raise ValueError(f"Unknown FYP_STORE_BACKEND {backend!r}. Choose from {STORE_BACKENDS}")
    data_dir = Path(os.getenv("FYP_DATA_DIR", "./artifacts")).expanduser().resolve()
    data_dir.mkdir(parents=True, exist_ok=True)
    batch_limit = _int_env("FYP_BATCH_LIMIT", BATCH_LIMIT)
    if not 0 < batch_limit <= BATCH_LIMIT:
        raise ValueError(f"FYP_BATCH_LIMIT must be between 1 and {BATCH_LIMIT}")
    return RuntimeConfig(
        store_backend=backend,
        data_dir=data_dir,
        default_quota=_int_env("FYP_DEFAULT_QUOTA", DEFAULT_QUOTA),
        student_id_prefix=os.getenv("FYP_STUDENT_ID_PREFIX", DEFAULT_ID_PREFIX),
        batch_limit=batch_limit,
    )


def firestore_config() -> FirestoreConfig:
    project_id = os.getenv("FYP_FIRESTORE_PROJECT", "").strip()
    if not project_id:
        raise ValueError(
            "Missing Firestore project. Expected env var FYP_FIRESTORE_PROJECT "
            "when FYP_STORE_BACKEND=firestore."
        )
    return FirestoreConfig(
        project_id=project_id,
        database=os.getenv("FYP_FIRESTORE_DATABASE", "(default)").strip() or "(default)",
        token=os.getenv("FYP_FIRESTORE_TOKEN", "").strip() or None,
        api_key=os.getenv("FYP_FIRESTORE_API_KEY", "").strip() or None,
    )
