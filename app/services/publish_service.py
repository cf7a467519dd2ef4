"""
Offer publication for a completed drive.

Pipeline for POST /drives/results:
1. Parse the submitted roll numbers (new selection)
2. Load the previous selection from Placement_Results
3. Diff: added = new - previous, removed = previous - new
4. Apply offers for added rolls, 5 at a time
5. Revoke offers for removed rolls
6. Overwrite Placement_Results, lock the drive, update Company_Drives

Per-roll failures never abort the batch; they are reported back in
failedAdds / failedRemoves. Publishes for the same request id are
serialized so two calls cannot interleave their read-diff-write.
"""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional

from app.errors import InvalidInputError, NotFoundError
from app.models.drive_request import COMPLETED_DRIVE_STATUS, DriveRequest
from app.models.placement import DEFAULT_OFFER_TYPE, RollNumber
from app.services import calendar_service, drive_service, results_service, workbook_service
from app.services.sheet_utils import to_float
from app.services.tabular_store import TabularStore

# Max offers written concurrently during one publish
ADD_BATCH_SIZE = 5


@dataclass
class RollOutcome:
    roll: str
    success: bool
    error: Optional[str] = None


def diff_selection(previous: List[str], new: List[str]):
    """Roll numbers to add and to remove, in submission / ledger order."""
    added = [r for r in new if r not in previous]
    removed = [r for r in previous if r not in new]
    return added, removed


async def _settle(roll: str, work: Callable[[str], Awaitable[RollOutcome]]) -> RollOutcome:
    try:
        return await work(roll)
    except Exception as e:
        return RollOutcome(roll=roll, success=False, error=str(e))


async def _add_student(store: TabularStore, request: DriveRequest, roll: str) -> RollOutcome:
    """Propagate the drive's offer to one newly selected student."""
    parsed = RollNumber.parse(roll)
    degree_type = parsed.degree_type.value
    print(f"➕ [publish] {roll} -> branch={parsed.branch_code} degree={degree_type}")

    workbook = await workbook_service.ensure_placement_sheets(store, degree_type, parsed.branch_code)
    student = await workbook_service.find_student(store, workbook, roll)
    if student is None:
        print(f"⚠️  [publish] {roll} not found in {workbook.students_sheet}")
        return RollOutcome(roll=roll, success=False, error="student not enrolled")

    drive_info = request.to_drive_info()
    drive_info["drive_status"] = COMPLETED_DRIVE_STATUS
    drive_info["results_published"] = True

    report = await workbook_service.apply_offer(
        store,
        roll_no=roll,
        company=request.company,
        branch=parsed.branch_code,
        degree_type=degree_type,
        ctc=to_float(request.fte_ctc),
        offer_type=request.type or DEFAULT_OFFER_TYPE,
        request_id=request.request_id,
        drive_info=drive_info
    )

    if not report.ok:
        return RollOutcome(roll=roll, success=False, error="; ".join(report.errors.values()))
    return RollOutcome(roll=roll, success=True)


async def _remove_student(store: TabularStore, roll: str) -> RollOutcome:
    """Revoke the offer of a student dropped from the selection."""
    parsed = RollNumber.parse(roll)
    workbook = await workbook_service.ensure_placement_sheets(store, parsed.degree_type.value, parsed.branch_code)
    await workbook_service.revoke_offer(store, workbook.workbook_id, parsed.branch_code, roll)
    return RollOutcome(roll=roll, success=True)


async def publish_results(store: TabularStore, request_id: str, results: str, actor: str = "unknown") -> dict:
    """
    Publish (or republish) the selected roll numbers for a drive.

    Args:
        store: Tabular store
        request_id: Drive request id
        results: Comma-separated roll numbers
        actor: Username, for the log line

    Returns:
        dict: success, company, selected, added, removed, failedAdds, failedRemoves

    Raises:
        InvalidInputError: Missing request id or no roll numbers
        NotFoundError: Unknown drive
    """
    if not request_id:
        raise InvalidInputError("request_id is required")

    if not isinstance(results, str) or not results.strip():
        raise InvalidInputError("results must be comma-separated roll numbers")

    new_rolls = results_service.split_roll_numbers(results)
    if not new_rolls:
        raise InvalidInputError("No valid roll numbers")

    print(f"📤 [publish] actor={actor} request_id={request_id} rolls={','.join(new_rolls)}")

    async with store.locks(("publish", request_id)):
        previous = await results_service.get_placement_results(store, request_id)
        added, removed = diff_selection(previous.roll_numbers, new_rolls)
        print(f"📊 [publish] Added: {len(added)}, Removed: {len(removed)}")

        request = await drive_service.get_drive_request(store, request_id)
        if request is None:
            raise NotFoundError("Drive not found")

        # ---------- ADDITIONS (capped) ----------
        add_results: List[RollOutcome] = []
        for start in range(0, len(added), ADD_BATCH_SIZE):
            chunk = added[start:start + ADD_BATCH_SIZE]
            add_results.extend(await asyncio.gather(*[
                _settle(roll, lambda r: _add_student(store, request, r))
                for roll in chunk
            ]))

        # ---------- REMOVALS ----------
        remove_results: List[RollOutcome] = list(await asyncio.gather(*[
            _settle(roll, lambda r: _remove_student(store, r))
            for roll in removed
        ]))

        for outcome in add_results + remove_results:
            if not outcome.success:
                print(f"❌ [publish] {outcome.roll}: {outcome.error}")

        # ---------- LEDGER + LOCK ----------
        await results_service.update_placement_results(store, request_id, request.company, new_rolls)
        await drive_service.lock_drive(store, request)

        successful_adds = sum(1 for r in add_results if r.success)
        try:
            await calendar_service.record_publication(store, request, COMPLETED_DRIVE_STATUS, successful_adds)
        except Exception as e:
            print(f"⚠️  Failed to update Company_Drives after publish: {e}")

    return {
        "success": True,
        "company": request.company,
        "selected": len(new_rolls),
        "added": successful_adds,
        "removed": sum(1 for r in remove_results if r.success),
        "failedAdds": [r.roll for r in add_results if not r.success],
        "failedRemoves": [r.roll for r in remove_results if not r.success],
    }


async def get_results(store: TabularStore, request_id: str) -> dict:
    """Published roll numbers for a drive; zero results when nothing was published."""
    current = await results_service.get_placement_results(store, request_id)
    return {
        "results": ", ".join(current.roll_numbers),
        "rollNumbers": current.roll_numbers,
        "count": len(current.roll_numbers),
    }
