"""
Drive request model - one row per company drive in the Drive_Requests sheet.

A request carries three independently approvable slots:
- PPT: Pre-Placement Talk
- OT: Online Test
- INTERVIEW

Sheet layout is defined by DRIVE_REQUEST_HEADERS. Rows are parsed by
header name so column order in the live sheet does not matter.
"""

import enum
from dataclasses import dataclass, field
from typing import Dict, List

from app.services.sheet_utils import cell, idx_of


DRIVE_REQUESTS_SHEET = "Drive_Requests"

DEFAULT_DRIVE_STATUS = "Scheduled"
COMPLETED_DRIVE_STATUS = "Completed"


class Slot(str, enum.Enum):
    """Scheduled phase of a drive."""
    PPT = "PPT"
    OT = "OT"
    INTERVIEW = "INTERVIEW"


class SlotStatus(str, enum.Enum):
    """Approval state of one slot. An empty cell means the slot is unset."""
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    SUGGESTED = "SUGGESTED"


class ApprovalAction(str, enum.Enum):
    """What the calendar team does with a slot."""
    APPROVE = "APPROVE"
    REJECT = "REJECT"
    SUGGEST = "SUGGEST"


@dataclass(frozen=True)
class SlotColumns:
    datetime: str
    status: str
    suggested: str


SLOT_COLUMNS: Dict[Slot, SlotColumns] = {
    Slot.PPT: SlotColumns("PPT Datetime", "PPT Status", "PPT Suggested Datetime"),
    Slot.OT: SlotColumns("OT Datetime", "OT Status", "OT Suggested Datetime"),
    Slot.INTERVIEW: SlotColumns("Interview Datetime", "INTERVIEW Status", "INTERVIEW Suggested Datetime"),
}

# Static (non-slot) fields: attribute name -> header
STATIC_COLUMNS: Dict[str, str] = {
    "request_id": "Request ID",
    "company": "Company",
    "spoc": "SPOC",
    "type": "Type",
    "eligible_pool": "Eligible Pool",
    "cgpa_cutoff": "CGPA Cutoff",
    "internship_stipend": "Internship Stipend",
    "fte_ctc": "FTE CTC",
    "fte_base": "FTE Base",
    "expected_hires": "Expected Hires",
    "drive_status": "Drive Status",
}

DRIVE_REQUEST_HEADERS: List[str] = [
    "Request ID", "Company", "SPOC", "Type", "Eligible Pool", "CGPA Cutoff",
    "PPT Datetime", "OT Datetime", "Interview Datetime",
    "PPT Status", "OT Status", "INTERVIEW Status",
    "PPT Suggested Datetime", "OT Suggested Datetime", "INTERVIEW Suggested Datetime",
    "Internship Stipend", "FTE CTC", "FTE Base", "Expected Hires", "Drive Status",
]


@dataclass
class SlotState:
    datetime: str = ""
    status: str = ""
    suggested_datetime: str = ""

    @property
    def is_pending(self) -> bool:
        """Has a datetime and nobody has acted on it yet."""
        return bool(self.datetime) and self.status in ("", SlotStatus.PENDING.value)


@dataclass
class DriveRequest:
    """Parsed Drive_Requests row."""
    row_number: int
    request_id: str = ""
    company: str = ""
    spoc: str = ""
    type: str = ""
    eligible_pool: str = ""
    cgpa_cutoff: str = ""
    internship_stipend: str = ""
    fte_ctc: str = ""
    fte_base: str = ""
    expected_hires: str = ""
    drive_status: str = ""
    slots: Dict[Slot, SlotState] = field(default_factory=dict)

    @classmethod
    def from_row(cls, header: List[str], row: List[str], row_number: int) -> "DriveRequest":
        values = {
            attr: cell(row, idx_of(header, column))
            for attr, column in STATIC_COLUMNS.items()
        }
        slots = {
            slot: SlotState(
                datetime=cell(row, idx_of(header, cols.datetime)),
                status=cell(row, idx_of(header, cols.status)),
                suggested_datetime=cell(row, idx_of(header, cols.suggested)),
            )
            for slot, cols in SLOT_COLUMNS.items()
        }
        return cls(row_number=row_number, slots=slots, **values)

    def slot(self, slot: Slot) -> SlotState:
        return self.slots.get(slot) or SlotState()

    @property
    def has_pending_slot(self) -> bool:
        return any(state.is_pending for state in self.slots.values())

    @property
    def all_slots_approved(self) -> bool:
        """All three slots approved. Unrelated to drive_status == 'Completed'."""
        return all(
            self.slot(slot).status == SlotStatus.APPROVED.value
            for slot in Slot
        )

    def to_pending_dict(self) -> dict:
        """Fields the calendar team needs to act on a request."""
        return {
            "request_id": self.request_id,
            "company": self.company,
            "ppt_datetime": self.slot(Slot.PPT).datetime,
            "ot_datetime": self.slot(Slot.OT).datetime,
            "interview_datetime": self.slot(Slot.INTERVIEW).datetime,
            "ppt_status": self.slot(Slot.PPT).status or SlotStatus.PENDING.value,
            "ot_status": self.slot(Slot.OT).status or SlotStatus.PENDING.value,
            "interview_status": self.slot(Slot.INTERVIEW).status or SlotStatus.PENDING.value,
        }

    def to_summary_dict(self) -> dict:
        """Full drive summary for the staff drive list."""
        summary = {
            "request_id": self.request_id,
            "company": self.company,
            "type": self.type,
            "eligible_pool": self.eligible_pool,
            "cgpa_cutoff": self.cgpa_cutoff,
        }
        for slot in Slot:
            prefix = slot.value.lower()
            state = self.slot(slot)
            summary[f"{prefix}_datetime"] = state.datetime
            summary[f"{prefix}_status"] = state.status
            summary[f"{prefix}_suggested_datetime"] = state.suggested_datetime

        summary.update({
            "internship_stipend": self.internship_stipend,
            "fte_ctc": self.fte_ctc,
            "fte_base": self.fte_base,
            "expected_hires": self.expected_hires,
            "drive_status": self.drive_status.strip() or DEFAULT_DRIVE_STATUS,
        })
        return summary

    def to_completed_dict(self) -> dict:
        return {
            "request_id": self.request_id,
            "company": self.company,
            "ppt_status": self.slot(Slot.PPT).status,
            "ot_status": self.slot(Slot.OT).status,
            "interview_status": self.slot(Slot.INTERVIEW).status,
        }

    def to_drive_info(self) -> dict:
        """Drive metadata copied into per-branch Company_Drives rows."""
        return {
            "spoc": self.spoc,
            "drive_type": self.type,
            "eligible_pool": self.eligible_pool,
            "ppt_datetime": self.slot(Slot.PPT).datetime,
            "ot_datetime": self.slot(Slot.OT).datetime,
            "interview_datetime": self.slot(Slot.INTERVIEW).datetime,
            "ppt_status": self.slot(Slot.PPT).status,
            "ot_status": self.slot(Slot.OT).status,
            "interview_status": self.slot(Slot.INTERVIEW).status,
            "internship_stipend": self.internship_stipend,
            "fte_ctc": self.fte_ctc,
            "fte_base": self.fte_base,
            "expected_hires": self.expected_hires,
            "drive_status": self.drive_status,
        }
