import asyncio
from collections import Counter
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from app.database import get_store
from app.services.sheet_utils import cell
from app.services.tabular_store import CellUpdate, TableCache, TabularStore
from main import app, bootstrap_sheets

CALENDAR_ID = "calendar"


class MemoryStore(TabularStore):
    """
    In-memory TabularStore with Google Sheets read semantics:
    trailing empty cells are dropped from returned rows.

    fail_reads: sheet titles whose reads raise, to simulate API errors.
    """

    def __init__(self, ttl_seconds: float = 60):
        super().__init__(CALENDAR_ID, TableCache(ttl_seconds=ttl_seconds))
        self.workbooks: Dict[str, Dict[str, List[List[Any]]]] = {CALENDAR_ID: {}}
        self.names: Dict[tuple, str] = {}
        self.fail_reads = set()
        self.calls = Counter()

    def _sheet(self, workbook_id: str, sheet: str) -> List[List[Any]]:
        try:
            return self.workbooks[workbook_id][sheet]
        except KeyError:
            raise LookupError(f"Unable to parse range: {sheet}")

    async def _read_rows(self, workbook_id, sheet):
        self.calls["read"] += 1
        if sheet in self.fail_reads:
            raise RuntimeError(f"backend error reading {sheet}")
        rows = []
        for row in self._sheet(workbook_id, sheet):
            values = ["" if v is None else str(v) for v in row]
            while values and values[-1] == "":
                values.pop()
            rows.append(values)
        return rows

    async def _append_rows(self, workbook_id, sheet, rows):
        self.calls["append"] += 1
        self._sheet(workbook_id, sheet).extend(list(r) for r in rows)

    async def _batch_update(self, workbook_id, sheet, updates: List[CellUpdate]):
        self.calls["batch"] += 1
        rows = self._sheet(workbook_id, sheet)
        for u in updates:
            while len(rows) < u.row:
                rows.append([])
            row = rows[u.row - 1]
            while len(row) <= u.col:
                row.append("")
            row[u.col] = u.value

    async def _list_sheets(self, workbook_id):
        return list(self.workbooks[workbook_id].keys())

    async def _create_sheet(self, workbook_id, title):
        if title in self.workbooks[workbook_id]:
            raise ValueError(f"A sheet with the name {title} already exists")
        self.workbooks[workbook_id][title] = []

    async def _find_workbook(self, name, folder_id):
        return self.names.get((name, folder_id))

    async def _create_workbook(self, name, folder_id):
        workbook_id = f"wb-{len(self.names) + 1}"
        self.names[(name, folder_id)] = workbook_id
        self.workbooks[workbook_id] = {}
        return workbook_id

    # ---------- test helpers ----------

    def workbook_id(self, name: str) -> Optional[str]:
        for (wb_name, _), workbook_id in self.names.items():
            if wb_name == name:
                return workbook_id
        return None

    def records(self, sheet: str, workbook_id: str = CALENDAR_ID) -> List[Dict[str, str]]:
        """Data rows as {header: value} dicts (values rendered as text)."""
        rows = self.workbooks[workbook_id][sheet]
        header = [str(h) for h in rows[0]]
        return [
            {name: cell(row, i) for i, name in enumerate(header)}
            for row in rows[1:]
        ]


def auth(role: str, user: str = "alice") -> dict:
    return {"X-User-Name": user, "X-User-Role": role}


SPOC = auth("SPOC", "spoc.user")
CALENDAR = auth("CALENDAR_TEAM", "calendar.user")
DATA = auth("DATA_TEAM", "data.user")
ADMIN = auth("ADMIN", "admin.user")


@pytest.fixture(autouse=True)
def academic_year(monkeypatch):
    monkeypatch.setenv("ACADEMIC_YEAR", "2025-26")


@pytest.fixture
def store():
    s = MemoryStore()
    asyncio.run(bootstrap_sheets(s))
    return s


@pytest.fixture
def client(store):
    app.dependency_overrides[get_store] = lambda: store
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def enroll(client):
    """Enroll students through the API: enroll("CS", ["24CS1001", ...])."""
    def _enroll(branch: str, rolls: List[str], degree_type: str = "UG"):
        response = client.post("/api/v1/placements/enroll", headers=DATA, json={
            "degree_type": degree_type,
            "branch": branch,
            "students": [
                {"roll_no": roll, "name": f"Student {roll}", "gender": "F", "cgpa": 8.1}
                for roll in rolls
            ],
        })
        assert response.status_code == 200, response.text
        return response.json()

    return _enroll
