"""
Placement workbook enrollment.

Students must be enrolled into Students_<branch> before results can be
published for them.
"""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from typing import Optional, Union

from app.api.deps import CurrentUser, require_roles
from app.database import get_store
from app.errors import InvalidInputError
from app.models.placement import DegreeType
from app.services import workbook_service
from app.services.tabular_store import TabularStore


router = APIRouter(prefix="/placements", tags=["Placements"])


class StudentIn(BaseModel):
    roll_no: Optional[str] = None
    name: Optional[str] = None
    gender: Optional[str] = None
    cgpa: Optional[Union[float, str]] = None


class EnrollBody(BaseModel):
    degree_type: DegreeType
    branch: str = Field(..., min_length=2, description="Branch code, e.g. CS or CSE")
    students: list[StudentIn]


class EnrollResponse(BaseModel):
    added: int
    skipped: int
    workbook: str
    sheet: str


@router.post("/enroll", response_model=EnrollResponse)
async def enroll(
    body: EnrollBody,
    user: CurrentUser = Depends(require_roles("DATA_TEAM", "ADMIN")),
    store: TabularStore = Depends(get_store)
):
    """
    Enroll students into the placement workbook for the current academic year.

    Roll numbers already present in the branch sheet are skipped.
    """
    try:
        return await workbook_service.enroll_students(
            store,
            degree_type=body.degree_type.value,
            branch=body.branch,
            students=[s.model_dump() for s in body.students]
        )
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
