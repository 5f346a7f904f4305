"""Tabular import/export adapters.

Public API:
    parse_csv_text(text)               -- delimited text -> header-keyed records
    read_csv_file(path)                -- same, from a file on disk
    export_rows(roster, kind)          -- one row per student with resolved staff
    write_csv_text(rows)               -- rows -> CSV text
    write_exports(roster, dir)         -- complete/supervisor/moderator CSV files
    render_allocations_xlsx(session, path) -- multi-sheet allocations workbook
"""

from .reader import infer_day_first, parse_csv_text, parse_timestamp, read_csv_file

__all__ = [
    "infer_day_first",
    "parse_csv_text",
    "parse_timestamp",
    "read_csv_file",
]

# Lazy imports: writer/xlsx depend on the roster, and xlsx on openpyxl.
def export_rows(*args, **kwargs):
    from .writer import export_rows as _fn
    return _fn(*args, **kwargs)

def write_csv_text(*args, **kwargs):
    from .writer import write_csv_text as _fn
    return _fn(*args, **kwargs)

def write_exports(*args, **kwargs):
    from .writer import write_exports as _fn
    return _fn(*args, **kwargs)

def render_allocations_xlsx(*args, **kwargs):
    from .xlsx import render_allocations_xlsx as _fn
    return _fn(*args, **kwargs)
