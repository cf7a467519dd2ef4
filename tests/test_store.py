"""
TabularStore caching, invalidation and locks, plus A1 addressing helpers.
"""

import asyncio

from app.services import tabular_store
from app.services.sheets_service import a1_range, column_letter
from app.services.tabular_store import KeyedLocks, TableCache


def run(coro):
    return asyncio.run(coro)


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_table_cache_expires_after_ttl(monkeypatch):
    clock = FakeClock()
    monkeypatch.setattr(tabular_store.time, "monotonic", clock)
    cache = TableCache(ttl_seconds=30)

    cache.set("k", [["a"]])
    clock.now += 29
    assert cache.get("k") == [["a"]]

    clock.now += 1
    assert cache.get("k") is None


def test_table_cache_invalidate_one_or_all():
    cache = TableCache(ttl_seconds=60)
    cache.set("a", 1)
    cache.set("b", 2)

    cache.invalidate("a")
    assert cache.get("a") is None
    assert cache.get("b") == 2

    cache.invalidate()
    assert cache.get("b") is None


def test_cached_reads_hit_backend_once(store):
    before = store.calls["read"]

    run(store.read_all_rows("Drive_Requests", cached=True))
    run(store.read_all_rows("Drive_Requests", cached=True))

    assert store.calls["read"] == before + 1


def test_uncached_reads_always_hit_backend(store):
    before = store.calls["read"]

    run(store.read_all_rows("Drive_Requests"))
    run(store.read_all_rows("Drive_Requests"))

    assert store.calls["read"] == before + 2


def test_writes_invalidate_only_their_table(store):
    run(store.read_all_rows("Drive_Requests", cached=True))
    run(store.read_all_rows("Company_Drives", cached=True))
    before = store.calls["read"]

    run(store.append_row("Drive_Requests", ["req-1", "Acme"]))

    rows = run(store.read_all_rows("Drive_Requests", cached=True))
    run(store.read_all_rows("Company_Drives", cached=True))
    assert rows[-1] == ["req-1", "Acme"]
    assert store.calls["read"] == before + 1


def test_batch_update_writes_cells_and_invalidates(store):
    run(store.read_all_rows("Placement_Results", cached=True))

    run(store.update_cell("Placement_Results", 2, 2, "24CS1001"))

    rows = run(store.read_all_rows("Placement_Results", cached=True))
    assert rows[1] == ["", "", "24CS1001"]


def test_empty_writes_are_skipped(store):
    before = dict(store.calls)

    run(store.append_rows("Drive_Requests", []))
    run(store.batch_update_cells("Drive_Requests", []))

    assert dict(store.calls) == before


def test_created_sheet_shows_up_in_cached_listing(store):
    assert "Extra" not in run(store.list_sheets())

    run(store.create_sheet_with_header("calendar", "Extra", ["A"]))

    assert "Extra" in run(store.list_sheets())


def test_get_or_create_workbook_reuses_existing(store):
    first = run(store.get_or_create_workbook("Placement_Data_2025-26_UG", "folder"))
    store.cache.invalidate()
    second = run(store.get_or_create_workbook("Placement_Data_2025-26_UG", "folder"))

    assert first == second
    assert len(store.names) == 1


def test_keyed_locks_are_shared_per_key():
    locks = KeyedLocks()

    async def check():
        assert locks("a") is locks("a")
        assert locks("a") is not locks("b")

    run(check())


def test_keyed_locks_serialize_holders():
    locks = KeyedLocks()
    order = []

    async def worker(name):
        async with locks("publish"):
            order.append(f"{name}-in")
            await asyncio.sleep(0)
            order.append(f"{name}-out")

    async def main():
        await asyncio.gather(worker("a"), worker("b"))

    run(main())
    assert order == ["a-in", "a-out", "b-in", "b-out"]


def test_keyed_locks_work_across_event_loops():
    locks = KeyedLocks()

    async def hold():
        async with locks("k"):
            await asyncio.sleep(0)

    run(hold())
    run(hold())


def test_column_letter():
    assert column_letter(0) == "A"
    assert column_letter(25) == "Z"
    assert column_letter(26) == "AA"
    assert column_letter(701) == "ZZ"
    assert column_letter(702) == "AAA"


def test_a1_range_quotes_sheet_titles():
    assert a1_range("Students_CS") == "'Students_CS'"
    assert a1_range("Company Drives", "B2") == "'Company Drives'!B2"
    assert a1_range("O'Neil") == "'O''Neil'"
