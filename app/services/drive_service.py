"""
Drive request registry backed by the Drive_Requests sheet.

This module provides the request lifecycle:
- create_or_update_request: SPOC submits or edits a drive request
- approve_slot: calendar team approves / rejects / suggests one slot
- set_drive_status: free-text drive status with projection sync
- Listing queries (pending, all, fully approved)
"""

import uuid
from typing import Any, Dict, List, Optional, Tuple

from app.errors import InvalidInputError, NotFoundError
from app.models.drive_request import (
    COMPLETED_DRIVE_STATUS,
    DEFAULT_DRIVE_STATUS,
    DRIVE_REQUEST_HEADERS,
    DRIVE_REQUESTS_SHEET,
    SLOT_COLUMNS,
    STATIC_COLUMNS,
    ApprovalAction,
    DriveRequest,
    Slot,
    SlotStatus,
)
from app.services import calendar_service
from app.services.sheet_utils import column_map, find_row, has_value
from app.services.tabular_store import CellUpdate, TabularStore

# Fields a SPOC may overwrite on an existing request
EDITABLE_FIELDS = [
    "type",
    "eligible_pool",
    "cgpa_cutoff",
    "internship_stipend",
    "fte_ctc",
    "fte_base",
    "expected_hires",
]


def _text(value: Any) -> str:
    """Render request values the way they are stored in the sheet."""
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


# ============ READS ============

async def _load_requests(store: TabularStore, cached: bool = False) -> Tuple[List[List[str]], List[str], Dict[str, int]]:
    rows = await store.read_all_rows(DRIVE_REQUESTS_SHEET, cached=cached)
    header = rows[0] if rows else []
    cols = column_map(header, DRIVE_REQUEST_HEADERS)
    return rows, header, cols


def _parse_all(rows: List[List[str]], header: List[str]) -> List[DriveRequest]:
    return [
        DriveRequest.from_row(header, row, row_number=i + 1)
        for i, row in enumerate(rows)
        if i > 0 and any(str(v).strip() for v in row)
    ]


async def _find_request(store: TabularStore, request_id: Optional[str]) -> Tuple[Optional[DriveRequest], Dict[str, int]]:
    rows, header, cols = await _load_requests(store)
    index = find_row(rows, cols["Request ID"], request_id) if request_id else -1
    if index == -1:
        return None, cols
    return DriveRequest.from_row(header, rows[index], row_number=index + 1), cols


async def get_drive_request(store: TabularStore, request_id: str) -> Optional[DriveRequest]:
    """Fresh (uncached) lookup of a single request by id."""
    request, _ = await _find_request(store, request_id)
    return request


async def list_pending_requests(store: TabularStore) -> List[dict]:
    """Requests with at least one slot that has a datetime and no decision yet."""
    rows, header, _ = await _load_requests(store, cached=True)
    return [r.to_pending_dict() for r in _parse_all(rows, header) if r.has_pending_slot]


async def list_drive_requests(store: TabularStore) -> List[dict]:
    """Every request as a summary (staff drive list)."""
    rows, header, _ = await _load_requests(store, cached=True)
    return [r.to_summary_dict() for r in _parse_all(rows, header)]


async def list_fully_approved_requests(store: TabularStore) -> List[dict]:
    """
    Requests whose three slots are all APPROVED.

    Served under /drives/completed for historical reasons; this is about
    scheduling, not about results (drive status 'Completed').
    """
    rows, header, _ = await _load_requests(store, cached=True)
    return [r.to_completed_dict() for r in _parse_all(rows, header) if r.all_slots_approved]


# ============ WRITES ============

async def create_or_update_request(
    store: TabularStore,
    spoc: str,
    request_id: Optional[str] = None,
    company: Optional[str] = None,
    slot_datetimes: Optional[dict] = None,
    **fields: Any
) -> str:
    """
    Insert or update a drive request.

    Upsert logic:
    - No request_id, or an id not in the sheet -> new request with a fresh id
    - Known id -> non-empty fields overwrite, slot datetimes are diffed

    A changed slot datetime resets the slot to PENDING unless it was
    already APPROVED, in which case only the datetime changes.

    Args:
        store: Tabular store
        spoc: Username of the submitting SPOC
        request_id: Existing request id, if editing
        company: Company name (required for new requests)
        slot_datetimes: {Slot: datetime string} for submitted slots
        **fields: Any of EDITABLE_FIELDS

    Returns:
        str: The request id (new or existing)
    """
    slot_datetimes = {
        Slot(slot): _text(value)
        for slot, value in (slot_datetimes or {}).items()
        if has_value(_text(value))
    }
    fields = {name: _text(fields.get(name)) for name in EDITABLE_FIELDS}

    rows, header, cols = await _load_requests(store)

    index = -1
    if request_id:
        index = find_row(rows, cols["Request ID"], request_id)

    # ---------- CREATE ----------
    if index == -1:
        if not has_value(_text(company)):
            raise InvalidInputError("company is required for a new drive request")

        request_id = str(uuid.uuid4())
        new_row = [""] * len(header)
        new_row[cols["Request ID"]] = request_id
        new_row[cols["Company"]] = _text(company)
        new_row[cols["SPOC"]] = spoc
        for name, value in fields.items():
            new_row[cols[STATIC_COLUMNS[name]]] = value
        new_row[cols["Drive Status"]] = DEFAULT_DRIVE_STATUS

        for slot, value in slot_datetimes.items():
            slot_cols = SLOT_COLUMNS[slot]
            new_row[cols[slot_cols.datetime]] = value
            new_row[cols[slot_cols.status]] = SlotStatus.PENDING.value

        await store.append_row(DRIVE_REQUESTS_SHEET, new_row)
        print(f"📝 New drive request {request_id} for {company} by {spoc}")
        return request_id

    # ---------- UPDATE ----------
    existing = DriveRequest.from_row(header, rows[index], row_number=index + 1)
    row = existing.row_number
    updates: List[CellUpdate] = []

    for name, value in fields.items():
        if has_value(value) and value != getattr(existing, name):
            updates.append(CellUpdate(row, cols[STATIC_COLUMNS[name]], value))

    for slot, value in slot_datetimes.items():
        state = existing.slot(slot)
        if value == state.datetime:
            continue
        slot_cols = SLOT_COLUMNS[slot]
        updates.append(CellUpdate(row, cols[slot_cols.datetime], value))
        if state.status != SlotStatus.APPROVED.value:
            updates.append(CellUpdate(row, cols[slot_cols.status], SlotStatus.PENDING.value))

    if updates:
        await store.batch_update_cells(DRIVE_REQUESTS_SHEET, updates)
        print(f"✏️  Updated drive request {request_id} ({len(updates)} cells)")

    return request_id


async def approve_slot(
    store: TabularStore,
    request_id: str,
    slot: Slot,
    action: ApprovalAction,
    suggested_datetime: Optional[str] = None
) -> None:
    """
    Calendar team decision on one slot.

    - APPROVE: projection upsert (when the slot has a datetime), then APPROVED
    - REJECT: REJECTED
    - SUGGEST: SUGGESTED plus the suggested datetime

    Raises:
        NotFoundError: Unknown request id
        InvalidInputError: SUGGEST without a suggested datetime
    """
    slot = Slot(slot)
    action = ApprovalAction(action)

    if action is ApprovalAction.SUGGEST and not has_value(_text(suggested_datetime)):
        raise InvalidInputError("suggested_datetime is required to suggest a slot")

    request, cols = await _find_request(store, request_id)
    if request is None:
        raise NotFoundError("Request not found")

    slot_cols = SLOT_COLUMNS[slot]
    row = request.row_number
    updates: List[CellUpdate] = []

    if action is ApprovalAction.APPROVE:
        if request.slot(slot).datetime:
            await calendar_service.upsert_company_drive(store, request, slot)
        updates.append(CellUpdate(row, cols[slot_cols.status], SlotStatus.APPROVED.value))

    elif action is ApprovalAction.REJECT:
        updates.append(CellUpdate(row, cols[slot_cols.status], SlotStatus.REJECTED.value))

    elif action is ApprovalAction.SUGGEST:
        updates.append(CellUpdate(row, cols[slot_cols.status], SlotStatus.SUGGESTED.value))
        updates.append(CellUpdate(row, cols[slot_cols.suggested], _text(suggested_datetime)))

    await store.batch_update_cells(DRIVE_REQUESTS_SHEET, updates)
    print(f"🗓️  {slot.value} {action.value} for {request.company} ({request_id})")


async def set_drive_status(store: TabularStore, request_id: str, status: str) -> None:
    """
    Overwrite the free-text drive status and sync the projection.

    The projection sync is best-effort: failures are logged, not raised.
    """
    if not request_id:
        raise InvalidInputError("request_id required")

    request, cols = await _find_request(store, request_id)
    if request is None:
        raise NotFoundError("Drive not found")

    request.drive_status = _text(status)
    await store.update_cell(DRIVE_REQUESTS_SHEET, request.row_number, cols["Drive Status"], request.drive_status)

    try:
        await calendar_service.upsert_company_drive(store, request, None)
    except Exception as e:
        print(f"⚠️  Failed to sync Company_Drives after drive status change: {e}")


async def lock_drive(store: TabularStore, request: DriveRequest) -> None:
    """Mark a drive Completed once its results are published."""
    _, _, cols = await _load_requests(store)
    await store.update_cell(DRIVE_REQUESTS_SHEET, request.row_number, cols["Drive Status"], COMPLETED_DRIVE_STATUS)
    request.drive_status = COMPLETED_DRIVE_STATUS
