"""
Drive request workflow endpoints.

SPOC:           submit/edit requests, set drive status, publish results
Calendar team:  review pending slots, approve / reject / suggest
Staff:          list drives
"""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from typing import Optional, Union

from app.api.deps import CurrentUser, require_roles
from app.database import get_store
from app.errors import InvalidInputError, NotFoundError
from app.models.drive_request import ApprovalAction, Slot
from app.services import drive_service, publish_service
from app.services.tabular_store import TabularStore


router = APIRouter(prefix="/drives", tags=["Drives"])

# Numbers are accepted as-is from forms and stored as text
Scalar = Union[str, float, int]


# ============ Request / Response Schemas ============

class DriveRequestBody(BaseModel):
    """Create (no request_id) or edit a drive request."""
    request_id: Optional[str] = None
    company: Optional[str] = None
    type: Optional[str] = None
    eligible_pool: Optional[str] = None
    cgpa_cutoff: Optional[Scalar] = None
    ppt_datetime: Optional[str] = None
    ot_datetime: Optional[str] = None
    interview_datetime: Optional[str] = None
    internship_stipend: Optional[Scalar] = None
    fte_ctc: Optional[Scalar] = None
    fte_base: Optional[Scalar] = None
    expected_hires: Optional[Scalar] = None


class RequestIdResponse(BaseModel):
    request_id: str


class ApproveBody(BaseModel):
    request_id: str
    slot: Slot
    action: ApprovalAction
    suggested_datetime: Optional[str] = None


class StatusBody(BaseModel):
    request_id: Optional[str] = None
    status: str = ""


class ResultsBody(BaseModel):
    request_id: Optional[str] = None
    results: Optional[str] = None


class SuccessResponse(BaseModel):
    success: bool = True


class PublishResponse(BaseModel):
    success: bool
    company: str
    selected: int
    added: int
    removed: int
    failedAdds: list[str]
    failedRemoves: list[str]


class ResultsResponse(BaseModel):
    results: str
    rollNumbers: list[str]
    count: int


# ============ SPOC ============

@router.post("/request", response_model=RequestIdResponse)
async def submit_request(
    body: DriveRequestBody,
    user: CurrentUser = Depends(require_roles("SPOC")),
    store: TabularStore = Depends(get_store)
):
    """
    Submit a new drive request, or edit one by passing its request_id.

    Changing a slot datetime puts the slot back to PENDING unless the
    calendar team already approved it.
    """
    try:
        request_id = await drive_service.create_or_update_request(
            store,
            spoc=user.username,
            request_id=body.request_id,
            company=body.company,
            slot_datetimes={
                Slot.PPT: body.ppt_datetime,
                Slot.OT: body.ot_datetime,
                Slot.INTERVIEW: body.interview_datetime,
            },
            type=body.type,
            eligible_pool=body.eligible_pool,
            cgpa_cutoff=body.cgpa_cutoff,
            internship_stipend=body.internship_stipend,
            fte_ctc=body.fte_ctc,
            fte_base=body.fte_base,
            expected_hires=body.expected_hires
        )
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return RequestIdResponse(request_id=request_id)


@router.post("/status", response_model=SuccessResponse)
async def update_drive_status(
    body: StatusBody,
    user: CurrentUser = Depends(require_roles("SPOC", "ADMIN")),
    store: TabularStore = Depends(get_store)
):
    """Set the free-text drive status (e.g. 'Ongoing', 'Postponed')."""
    try:
        await drive_service.set_drive_status(store, body.request_id, body.status)
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return SuccessResponse()


@router.post("/results", response_model=PublishResponse)
async def publish_results(
    body: ResultsBody,
    user: CurrentUser = Depends(require_roles("SPOC", "ADMIN")),
    store: TabularStore = Depends(get_store)
):
    """
    Publish the selected roll numbers for a drive.

    **Body:** `{"request_id": "...", "results": "24CS1001, 24CS1002"}`

    Republishing diffs against the previous list: new rolls get the offer,
    dropped rolls have it revoked. Always 200 once the drive is found;
    check failedAdds / failedRemoves for per-student failures.
    """
    try:
        return await publish_service.publish_results(
            store, body.request_id, body.results, actor=user.username
        )
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/results/{request_id}", response_model=ResultsResponse)
async def get_results(
    request_id: str,
    user: CurrentUser = Depends(require_roles("SPOC", "ADMIN")),
    store: TabularStore = Depends(get_store)
):
    """Published roll numbers for a drive (empty when none yet)."""
    return await publish_service.get_results(store, request_id)


# ============ CALENDAR TEAM ============

@router.get("/pending")
async def list_pending(
    user: CurrentUser = Depends(require_roles("CALENDAR_TEAM")),
    store: TabularStore = Depends(get_store)
):
    """Requests with at least one slot waiting for a decision."""
    return {"pending": await drive_service.list_pending_requests(store)}


@router.post("/approve", response_model=SuccessResponse)
async def approve_slot(
    body: ApproveBody,
    user: CurrentUser = Depends(require_roles("CALENDAR_TEAM")),
    store: TabularStore = Depends(get_store)
):
    """
    Approve, reject or suggest another time for one slot.

    **Returns:**
    - 200: Decision recorded
    - 400: SUGGEST without suggested_datetime
    - 404: Request not found
    """
    try:
        await drive_service.approve_slot(
            store,
            request_id=body.request_id,
            slot=body.slot,
            action=body.action,
            suggested_datetime=body.suggested_datetime
        )
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return SuccessResponse()


@router.get("/completed")
async def list_completed(
    user: CurrentUser = Depends(require_roles("CALENDAR_TEAM", "ADMIN")),
    store: TabularStore = Depends(get_store)
):
    """Drives whose PPT, OT and interview slots are all approved."""
    return {"completed": await drive_service.list_fully_approved_requests(store)}


# ============ STAFF ============

@router.get("/my")
async def list_drives(
    user: CurrentUser = Depends(require_roles("SPOC", "CALENDAR_TEAM", "DATA_TEAM", "ADMIN")),
    store: TabularStore = Depends(get_store)
):
    """All drive requests with slot states and suggested times."""
    return {"drives": await drive_service.list_drive_requests(store)}
