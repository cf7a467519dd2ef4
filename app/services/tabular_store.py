"""
Tabular store contract used by every placement service.

A store addresses cells by (workbook, sheet, row, column):
- workbook: spreadsheet id, None means the core calendar workbook
- row: 1-based sheet row number (row 1 is the header)
- col: 0-based column index into the header

Reads can be served from a short-TTL cache. Every write evicts the cache
entry for the table it touched before returning.
"""

import asyncio
import time
import weakref
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Hashable, List, Optional, Tuple


@dataclass
class CellUpdate:
    """A single cell write inside a batch."""
    row: int
    col: int
    value: Any


class TableCache:
    """
    Per-table read cache: key -> (rows, stored_at).

    Injected into the store so each store instance (and each test) owns
    its own cache instead of sharing a process-wide map.
    """

    def __init__(self, ttl_seconds: float = 30.0):
        self.ttl_seconds = ttl_seconds
        self._entries: Dict[Hashable, Tuple[Any, float]] = {}

    def get(self, key: Hashable) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        data, stored_at = entry
        if time.monotonic() - stored_at >= self.ttl_seconds:
            del self._entries[key]
            return None
        return data

    def set(self, key: Hashable, data: Any) -> None:
        self._entries[key] = (data, time.monotonic())

    def invalidate(self, key: Optional[Hashable] = None) -> None:
        """Evict one key, or everything when key is None."""
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)


class KeyedLocks:
    """
    Lazily created asyncio locks, one per key and event loop.

    An asyncio.Lock is bound to the loop it first waits on, so locks are
    kept per running loop.
    """

    def __init__(self):
        self._locks = weakref.WeakKeyDictionary()

    def __call__(self, key: Hashable) -> asyncio.Lock:
        locks: Dict[Hashable, asyncio.Lock] = self._locks.setdefault(asyncio.get_running_loop(), {})
        lock = locks.get(key)
        if lock is None:
            lock = locks[key] = asyncio.Lock()
        return lock


class TabularStore(ABC):
    """
    Base store: caching, invalidation and locks live here,
    backends only implement the raw primitives (the _underscore methods).
    """

    def __init__(self, default_workbook_id: str, cache: Optional[TableCache] = None):
        self.default_workbook_id = default_workbook_id
        self.cache = cache if cache is not None else TableCache()
        self.locks = KeyedLocks()

    def _workbook(self, workbook_id: Optional[str]) -> str:
        return workbook_id or self.default_workbook_id

    # ============ READS ============

    async def read_all_rows(
        self,
        sheet: str,
        workbook_id: Optional[str] = None,
        cached: bool = False
    ) -> List[List[str]]:
        """
        Read every row of a sheet, header included.

        Rows may be shorter than the header (trailing empty cells are
        dropped by the backend), use sheet_utils.cell() to read safely.
        """
        key = (self._workbook(workbook_id), sheet)

        if cached:
            hit = self.cache.get(key)
            if hit is not None:
                return hit

        rows = await self._read_rows(key[0], sheet)
        if cached:
            self.cache.set(key, rows)
        return rows

    async def list_sheets(self, workbook_id: Optional[str] = None) -> List[str]:
        """Sheet titles in a workbook (cached, evicted on sheet creation)."""
        workbook = self._workbook(workbook_id)
        key = (workbook, "__sheets__")
        hit = self.cache.get(key)
        if hit is not None:
            return hit
        titles = await self._list_sheets(workbook)
        self.cache.set(key, titles)
        return titles

    # ============ WRITES ============

    async def append_row(self, sheet: str, row: List[Any], workbook_id: Optional[str] = None) -> None:
        await self.append_rows(sheet, [row], workbook_id)

    async def append_rows(self, sheet: str, rows: List[List[Any]], workbook_id: Optional[str] = None) -> None:
        if not rows:
            return
        workbook = self._workbook(workbook_id)
        await self._append_rows(workbook, sheet, rows)
        self.invalidate(sheet, workbook)

    async def update_cell(
        self,
        sheet: str,
        row: int,
        col: int,
        value: Any,
        workbook_id: Optional[str] = None
    ) -> None:
        await self.batch_update_cells(sheet, [CellUpdate(row, col, value)], workbook_id)

    async def batch_update_cells(
        self,
        sheet: str,
        updates: List[CellUpdate],
        workbook_id: Optional[str] = None
    ) -> None:
        """Apply many cell writes in one round trip."""
        if not updates:
            return
        workbook = self._workbook(workbook_id)
        await self._batch_update(workbook, sheet, updates)
        self.invalidate(sheet, workbook)

    async def create_sheet_with_header(self, workbook_id: str, title: str, headers: List[str]) -> None:
        await self._create_sheet(workbook_id, title)
        self.cache.invalidate((workbook_id, "__sheets__"))
        await self.write_header(title, headers, workbook_id)

    async def write_header(self, sheet: str, headers: List[str], workbook_id: Optional[str] = None) -> None:
        """Overwrite row 1 of a sheet with the given headers."""
        updates = [CellUpdate(1, col, header) for col, header in enumerate(headers)]
        await self.batch_update_cells(sheet, updates, workbook_id)

    async def get_or_create_workbook(self, name: str, folder_id: Optional[str] = None) -> str:
        """Return the id of the workbook with this name, creating it if needed."""
        key = ("__workbook__", name, folder_id)
        hit = self.cache.get(key)
        if hit is not None:
            return hit

        workbook_id = await self._find_workbook(name, folder_id)
        if workbook_id is None:
            workbook_id = await self._create_workbook(name, folder_id)
            print(f"📗 Created workbook {name}")
        self.cache.set(key, workbook_id)
        return workbook_id

    def invalidate(self, sheet: Optional[str] = None, workbook_id: Optional[str] = None) -> None:
        """Evict one table's cached rows, or the whole cache when sheet is None."""
        if sheet is None:
            self.cache.invalidate()
        else:
            self.cache.invalidate((self._workbook(workbook_id), sheet))

    # ============ BACKEND PRIMITIVES ============

    @abstractmethod
    async def _read_rows(self, workbook_id: str, sheet: str) -> List[List[str]]:
        ...

    @abstractmethod
    async def _append_rows(self, workbook_id: str, sheet: str, rows: List[List[Any]]) -> None:
        ...

    @abstractmethod
    async def _batch_update(self, workbook_id: str, sheet: str, updates: List[CellUpdate]) -> None:
        ...

    @abstractmethod
    async def _list_sheets(self, workbook_id: str) -> List[str]:
        ...

    @abstractmethod
    async def _create_sheet(self, workbook_id: str, title: str) -> None:
        ...

    @abstractmethod
    async def _find_workbook(self, name: str, folder_id: Optional[str]) -> Optional[str]:
        ...

    @abstractmethod
    async def _create_workbook(self, name: str, folder_id: Optional[str]) -> str:
        ...
