"""fyp-allocator MCP server.

Exposes tools for roster imports, the four allocation strategies
(manual, self-report, student choice, default fill), quota and status
overviews, exports, and stored run reports.
"""
from __future__ import annotations

import argparse
import logging
import os
from pathlib import Path
from typing import Any

from mcp.server.fastmcp import FastMCP

from allocation_engine.bulk import delete_all as _delete_all
from allocation_engine.bulk import import_from_text
from allocation_engine.io import export_rows, render_allocations_xlsx, write_csv_text
from allocation_engine.io.schemas import COLLECTIONS, EXPORT_COLS
from allocation_engine.manual import manual_candidates as _manual_candidates
from allocation_engine.mechanisms import run_strategy, run_summary
from allocation_engine.report import AllocationReport
from allocation_engine.report import allocation_status as _allocation_status
from allocation_engine.report import quota_overview as _quota_overview
from allocation_engine.session import AllocationSession
from allocation_engine.store import DocumentStore, MemoryStore

from .config import RuntimeConfig, firestore_config, load_env, runtime_config
from .storage import JsonFileStore
from .storage import list_runs as _list_runs
from .storage import load_run as _load_run
from .storage import save_run_report

logger = logging.getLogger(__name__)

mcp = FastMCP(
    "fyp-allocator",
    host=os.getenv("HOST", "127.0.0.1"),
    port=int(os.getenv("PORT", "8000")),
    instructions=(
        "Supervisor and moderator allocation for final-year projects. "
        "Imports student and staff rosters, applies self-reported agreements "
        "and student preferences, fills remaining gaps within staff quotas, "
        "and exports the resulting allocations."
    ),
)

_ENV_FILE: str | None = None
_STORE: DocumentStore | None = None


def _config() -> RuntimeConfig:
    load_env(_ENV_FILE or os.getenv("FYP_ENV_FILE"))
    return runtime_config()


def _store() -> DocumentStore:
    global _STORE
    if _STORE is None:
        cfg = _config()
        if cfg.store_backend == "firestore":
            from .firestore_client import FirestoreRestStore

            _STORE = FirestoreRestStore(firestore_config(), batch_limit=cfg.batch_limit)
        elif cfg.store_backend == "memory":
            _STORE = MemoryStore(batch_limit=cfg.batch_limit)
        else:
            _STORE = JsonFileStore(cfg.data_dir, batch_limit=cfg.batch_limit)
        logger.info("Using %s store", cfg.store_backend)
    return _STORE


def _read_input(csv_text: str | None, csv_path: str | None) -> str:
    if csv_text:
        return csv_text
    if csv_path:
        return Path(csv_path).expanduser().read_text(encoding="utf-8-sig")
    raise ValueError("Provide csv_text or csv_path")


def _session() -> AllocationSession:
    return AllocationSession.open(_store(), _config().engine_settings())


def _finish(report: AllocationReport) -> dict[str, Any]:
    """Save the full report; return its summary. Row failures stay in the saved run."""
    target = save_run_report(_config().data_dir, report.to_dict())
    result = run_summary(report)
    result["run_id"] = target.name
    return result


def _run(strategy: str, **kwargs: Any) -> dict[str, Any]:
    report = run_strategy(strategy, _store(), settings=_config().engine_settings(), **kwargs)
    return _finish(report)


# -- Overviews --

@mcp.tool()
def allocation_status() -> dict[str, Any]:
    """Count students, staff, and filled supervisor and moderator roles."""
    return _allocation_status(_session().roster)


@mcp.tool()
def quota_overview() -> list[dict[str, Any]]:
    """Per staff member: quota, allocations and remaining capacity for each role."""
    return _quota_overview(_session())


# -- Allocation strategies --

@mcp.tool()
def manual_allocate(student_doc_id: str, staff_id: str, role: str) -> dict[str, Any]:
    """Assign a staff member to one role of one student, ignoring quota.

    An empty staff_id clears the role. role is "supervisor" or "moderator".
    """
    return _run("manual", student_doc_id=student_doc_id, staff_id=staff_id, role=role)


@mcp.tool()
def manual_candidates(student_doc_id: str, role: str) -> list[dict[str, Any]]:
    """List staff with remaining capacity for role, plus the current holder."""
    session = _session()
    return [
        {
            "staff_id": m.doc_id,
            "staff_name": m.full_name,
            "email": m.email,
            "remaining": session.tracker.remaining_capacity(m.doc_id, role),
        }
        for m in _manual_candidates(session, student_doc_id, role)
    ]


@mcp.tool()
def self_report_import(csv_text: str | None = None, csv_path: str | None = None) -> dict[str, Any]:
    """Apply a staff self-report form export. Rows not marked "Yes" are skipped."""
    return _run("self_report", csv_text=_read_input(csv_text, csv_path))


@mcp.tool()
def student_choice_import(csv_text: str | None = None, csv_path: str | None = None) -> dict[str, Any]:
    """Allocate supervisors from a student preference form export, earliest submission first."""
    return _run("student_choice", csv_text=_read_input(csv_text, csv_path))


@mcp.tool()
def default_fill() -> dict[str, Any]:
    """Fill every missing supervisor, then every missing moderator, within quota."""
    return _run("default_fill")


# -- Exports --

@mcp.tool()
def export_allocations(kind: str = "complete", output_path: str | None = None) -> dict[str, Any]:
    """Export allocations as CSV. kind is complete, supervisor or moderator.

    Writes the CSV to output_path when given, otherwise returns it inline.
    """
    if kind not in EXPORT_COLS:
        raise ValueError(f"Unknown export kind: {kind!r}. Choose from {list(EXPORT_COLS)}")
    rows = export_rows(_session().roster, kind)
    text = write_csv_text(rows, EXPORT_COLS[kind])
    if output_path:
        path = Path(output_path).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return {"kind": kind, "rows": len(rows), "path": str(path)}
    return {"kind": kind, "rows": len(rows), "csv": text}


@mcp.tool()
def export_allocations_xlsx(output_path: str | None = None) -> dict[str, Any]:
    """Write an XLSX workbook with allocation, per-role and quota sheets."""
    path = Path(output_path).expanduser() if output_path else _config().data_dir / "allocations.xlsx"
    target = render_allocations_xlsx(_session(), path)
    return {"path": str(target)}


# -- Roster maintenance --

def _import(kind: str, csv_text: str | None, csv_path: str | None) -> dict[str, Any]:
    cfg = _config()
    result = import_from_text(kind, _store(), _read_input(csv_text, csv_path), limit=cfg.batch_limit)
    return result.to_dict()


@mcp.tool()
def import_students(csv_text: str | None = None, csv_path: str | None = None) -> dict[str, Any]:
    """Add students from CSV. Rows with an existing or empty studentID are skipped."""
    return _import("students", csv_text, csv_path)


@mcp.tool()
def import_staff(csv_text: str | None = None, csv_path: str | None = None) -> dict[str, Any]:
    """Add staff from CSV (Full Name, Email, Quota, Avoid). Known emails are skipped."""
    return _import("staff", csv_text, csv_path)


@mcp.tool()
def import_quotas(csv_text: str | None = None, csv_path: str | None = None) -> dict[str, Any]:
    """Set staff quotas from CSV (Full Name, Quota)."""
    return _import("quotas", csv_text, csv_path)


@mcp.tool()
def import_interests(csv_text: str | None = None, csv_path: str | None = None) -> dict[str, Any]:
    """Set staff interests and project ideas from CSV (Full Name, Interests, Project Ideas)."""
    return _import("interests", csv_text, csv_path)


@mcp.tool()
def delete_all(collection: str) -> dict[str, Any]:
    """Delete every document in one roster collection."""
    if collection not in COLLECTIONS:
        raise ValueError(f"Unknown collection: {collection!r}. Choose from {list(COLLECTIONS)}")
    return _delete_all(_store(), collection, limit=_config().batch_limit).to_dict()


# -- Run reports --

@mcp.tool()
def list_runs(limit: int = 20) -> list[dict[str, Any]]:
    """List stored run report manifests, newest first."""
    return _list_runs(_config().data_dir, limit=limit)


@mcp.tool()
def load_run(run_id: str | None = None) -> dict[str, Any]:
    """Load a full run report by ID (or latest if omitted)."""
    return _load_run(_config().data_dir, run_id=run_id)


# -- Server entrypoints --

async def _run_http() -> None:
    import uvicorn
    from starlette.middleware.base import BaseHTTPMiddleware
    from starlette.responses import JSONResponse, PlainTextResponse
    from starlette.routing import Route

    api_key = os.getenv("MCP_API_KEY")

    class BearerAuth(BaseHTTPMiddleware):
        async def dispatch(self, request, call_next):
            if request.url.path == "/health":
                return await call_next(request)
            auth = request.headers.get("authorization", "")
            if not auth.startswith("Bearer ") or auth[7:] != api_key:
                return JSONResponse({"error": "unauthorized"}, status_code=401)
            return await call_next(request)

    starlette_app = mcp.streamable_http_app()

    if api_key:
        starlette_app.add_middleware(BearerAuth)

    starlette_app.routes.append(
        Route("/health", lambda r: PlainTextResponse("ok"))
    )

    config = uvicorn.Config(
        starlette_app,
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8080")),
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )
    await uvicorn.Server(config).serve()


def main() -> None:
    global _ENV_FILE

    parser = argparse.ArgumentParser(description="Run fyp-allocator MCP server")
    parser.add_argument("--env-file", default=None, help="Path to .env file")
    parser.add_argument(
        "--transport",
        default=None,
        choices=["stdio", "sse", "streamable-http"],
        help="MCP transport (default: streamable-http when PORT is set, else stdio)",
    )
    args = parser.parse_args()
    _ENV_FILE = args.env_file
    load_env(_ENV_FILE or os.getenv("FYP_ENV_FILE"))

    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    transport = args.transport
    if transport is None:
        transport = "streamable-http" if os.getenv("PORT") else "stdio"

    if transport == "streamable-http":
        import anyio
        anyio.run(_run_http)
    else:
        mcp.run(transport=transport)


if __name__ == "__main__":
    main()
