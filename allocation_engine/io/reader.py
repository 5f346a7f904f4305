"""Turn delimited text into header-keyed records in file order."""

from __future__ import annotations

import csv
import io
import re
from datetime import datetime
from pathlib import Path

from ..errors import ImportSyntaxError

# Google Forms and spreadsheet exports seen in practice.
_ISO_LIKE_FORMATS = (
    "%Y/%m/%d %H:%M:%S",
    "%Y/%m/%d %I:%M:%S %p",
)
_MONTH_FIRST_FORMATS = ("%m/%d/%Y %H:%M:%S", "%m/%d/%Y %H:%M", "%m/%d/%Y")
_DAY_FIRST_FORMATS = ("%d/%m/%Y %H:%M:%S", "%d/%m/%Y %H:%M", "%d/%m/%Y")

_SLASH_DATE = re.compile(r"^\s*(\d{1,2})/(\d{1,2})/\d{4}")


def parse_csv_text(text: str | bytes | None, *, required: list[str] | tuple[str, ...] = ()) -> list[dict[str, str]]:
    """Parse CSV ``text`` into a list of ``{header: value}`` dicts.

    Header strings are kept verbatim. Fully blank lines are dropped. Raises
    ImportSyntaxError when the text is empty, malformed, or lacks a header
    listed in ``required``.
    """
    if isinstance(text, bytes):
        try:
            text = text.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise ImportSyntaxError(f"import is not valid UTF-8: {exc}") from exc
    if text is None or not text.strip():
        raise ImportSyntaxError("import is empty")
    text = text.lstrip("\ufeff")

    reader = csv.DictReader(io.StringIO(text, newline=""), strict=True)
    try:
        headers = reader.fieldnames
        rows = [row for row in reader]
    except csv.Error as exc:
        raise ImportSyntaxError(f"malformed CSV at line {reader.line_num}: {exc}") from exc

    if not headers or not any(h and h.strip() for h in headers):
        raise ImportSyntaxError("import has no header row")
    missing = [h for h in required if h not in headers]
    if missing:
        raise ImportSyntaxError(f"missing required columns: {', '.join(missing)}")

    records: list[dict[str, str]] = []
    for row in rows:
        clean = {k: (v if v is not None else "") for k, v in row.items() if k is not None}
        if not any(str(v).strip() for v in clean.values()):
            continue
        records.append(clean)
    return records


def read_csv_file(path: Path, *, required: list[str] | tuple[str, ...] = ()) -> list[dict[str, str]]:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Required file not found: {p}")
    return parse_csv_text(p.read_bytes(), required=required)


def infer_day_first(values) -> bool:
    """Decide the slash-date order for a whole column.

    A leading field above 12 can only be a day. Otherwise the column is read
    month-first, the way browsers parse ``mm/dd/yyyy``.
    """
    for value in values:
        m = _SLASH_DATE.match(value or "")
        if m and int(m.group(1)) > 12:
            return True
    return False


def parse_timestamp(value: str | None, *, day_first: bool = False) -> datetime | None:
    """Best-effort parse of a form submission timestamp. None if unparseable.

    ``day_first`` picks between ``dd/mm/yyyy`` and ``mm/dd/yyyy``; all rows of
    one export must be parsed with the same choice.
    """
    raw = (value or "").strip()
    if not raw:
        return None
    # "2024/10/01 12:00:00 GMT+1" -> drop the zone suffix, forms use one zone
    if " GMT" in raw:
        raw = raw.split(" GMT", 1)[0]
    try:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        return parsed.replace(tzinfo=None)
    except ValueError:
        pass
    slash_formats = _DAY_FIRST_FORMATS if day_first else _MONTH_FIRST_FORMATS
    for fmt in _ISO_LIKE_FORMATS + slash_formats:
        try:
            return datetime.strptime(raw, fmt)
        except ValueError:
            continue
    return None
