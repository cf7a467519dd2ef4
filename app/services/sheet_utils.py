"""
Helpers for header-addressed sheet rows.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from app.errors import SchemaError


def normalize_header(value: Any) -> str:
    """NBSP -> space, trimmed, lowercase."""
    return str(value).replace("\u00a0", " ").strip().lower()


def idx_of(header: List[str], column: str) -> int:
    """Index of a column in a header row; SchemaError when absent."""
    target = normalize_header(column)
    for i, name in enumerate(header):
        if normalize_header(name) == target:
            return i
    raise SchemaError(f"Missing column: {column}")


def cell(row: List[Any], index: int) -> str:
    """Read a cell, treating cells past the end of a short row as empty."""
    if index < len(row) and row[index] is not None:
        return str(row[index])
    return ""


def has_value(value: Any) -> bool:
    return value is not None and value != ""


def find_row(rows: List[List[Any]], col: int, value: str) -> int:
    """
    List index of the first data row whose column equals value, -1 if none.

    The sheet row number is the returned index + 1.
    """
    for i, row in enumerate(rows):
        if i == 0:
            continue
        if cell(row, col).strip() == value:
            return i
    return -1


def to_float(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def to_int(value: Any, default: int = 0) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return default


async def ensure_headers(store, sheet: str, expected: List[str], workbook_id: Optional[str] = None) -> None:
    """
    Make sure a sheet exists and carries every expected header (idempotent).

    - Missing sheet  -> created with the full header row
    - Empty header   -> full header row written
    - Some missing   -> missing names appended after the existing ones
    """
    workbook = workbook_id or store.default_workbook_id

    if sheet not in await store.list_sheets(workbook):
        await store.create_sheet_with_header(workbook, sheet, expected)
        print(f"🧱 Created sheet {sheet}")
        return

    rows = await store.read_all_rows(sheet, workbook)
    existing = rows[0] if rows else []

    if not existing:
        await store.write_header(sheet, expected, workbook)
        return

    present = {normalize_header(h) for h in existing}
    missing = [h for h in expected if normalize_header(h) not in present]

    if missing:
        await store.write_header(sheet, list(existing) + missing, workbook)
        print(f"🧱 Added columns to {sheet}: {', '.join(missing)}")


def column_map(header: List[str], columns: List[str]) -> Dict[str, int]:
    """Resolve many columns at once, SchemaError on the first missing one."""
    return {name: idx_of(header, name) for name in columns}


def utc_now_iso() -> str:
    """Timestamp written to 'Last Updated' style columns."""
    return datetime.now(timezone.utc).isoformat(timespec="seconds")
