"""
Company_Drives projection maintenance.

- upsert_company_drive: called on slot approval and drive status changes
- record_publication: called once results are published for a drive
"""

from typing import List, Optional

from app.models.company_drive import COMPANY_DRIVES_HEADERS, COMPANY_DRIVES_SHEET, COPIED_FIELDS
from app.models.drive_request import DEFAULT_DRIVE_STATUS, SLOT_COLUMNS, DriveRequest, Slot, SlotStatus
from app.services.sheet_utils import cell, column_map, find_row, to_int, utc_now_iso
from app.services.tabular_store import CellUpdate, TabularStore


async def _load(store: TabularStore):
    rows = await store.read_all_rows(COMPANY_DRIVES_SHEET)
    header = rows[0] if rows else []
    # Schema guard: raises SchemaError if any required column is absent
    cols = column_map(header, COMPANY_DRIVES_HEADERS)
    return rows, header, cols


async def upsert_company_drive(
    store: TabularStore,
    request: DriveRequest,
    slot: Optional[Slot] = None
) -> int:
    """
    Create or refresh the projection row for a drive request.

    Args:
        store: Tabular store
        request: The originating Drive_Requests row
        slot: Slot just approved, or None for a plain status sync

    Returns:
        int: Sheet row number of the projection row
    """
    rows, header, cols = await _load(store)
    index = find_row(rows, cols["Request ID"], request.request_id)
    now = utc_now_iso()
    drive_status = request.drive_status or DEFAULT_DRIVE_STATUS

    if index == -1:
        new_row: List[str] = [""] * len(header)
        new_row[cols["Request ID"]] = request.request_id
        for attr, column in COPIED_FIELDS.items():
            new_row[cols[column]] = getattr(request, attr) or ""
        new_row[cols["Drive Status"]] = drive_status
        new_row[cols["Actual Hires"]] = "0"
        new_row[cols["Results Published"]] = "No"

        if slot is not None:
            slot_cols = SLOT_COLUMNS[slot]
            new_row[cols[slot_cols.datetime]] = request.slot(slot).datetime
            new_row[cols[slot_cols.status]] = SlotStatus.APPROVED.value

        new_row[cols["Last Updated"]] = now
        await store.append_row(COMPANY_DRIVES_SHEET, new_row)
        print(f"📅 Company_Drives created for {request.company} ({request.request_id})")
        return len(rows) + 1

    row = index + 1
    updates = []

    if slot is not None:
        slot_cols = SLOT_COLUMNS[slot]
        updates.append(CellUpdate(row, cols[slot_cols.datetime], request.slot(slot).datetime))
        updates.append(CellUpdate(row, cols[slot_cols.status], SlotStatus.APPROVED.value))

    updates.append(CellUpdate(row, cols["Drive Status"], drive_status))
    updates.append(CellUpdate(row, cols["Last Updated"], now))

    await store.batch_update_cells(COMPANY_DRIVES_SHEET, updates)
    return row


async def record_publication(
    store: TabularStore,
    request: DriveRequest,
    drive_status: str,
    hires_added: int
) -> None:
    """Mark results published on the projection and add the new hires."""
    row = await upsert_company_drive(store, request)

    rows, _, cols = await _load(store)
    current = rows[row - 1] if row - 1 < len(rows) else []
    hires = to_int(cell(current, cols["Actual Hires"])) + hires_added
    now = utc_now_iso()

    await store.batch_update_cells(COMPANY_DRIVES_SHEET, [
        CellUpdate(row, cols["Drive Status"], drive_status),
        CellUpdate(row, cols["Actual Hires"], hires),
        CellUpdate(row, cols["Results Published"], "Yes"),
        CellUpdate(row, cols["Results Published At"], now),
        CellUpdate(row, cols["Last Updated"], now),
    ])
