"""
Sheet-backed models for the placement workflow.

This package contains:
- DriveRequest: One row of Drive_Requests (three approvable slots)
- Company_Drives: Calendar-facing projection of approved requests
- Placement workbook layout: per-branch Students/Offers/Company_Drives sheets

Note: rows are addressed by header name, never by column position.
"""

from app.models.company_drive import COMPANY_DRIVES_HEADERS, COMPANY_DRIVES_SHEET
from app.models.drive_request import ApprovalAction, DriveRequest, Slot, SlotStatus
from app.models.placement import DegreeType, OfferStatus, RollNumber

__all__ = [
    "COMPANY_DRIVES_HEADERS",
    "COMPANY_DRIVES_SHEET",
    "ApprovalAction",
    "DriveRequest",
    "Slot",
    "SlotStatus",
    "DegreeType",
    "OfferStatus",
    "RollNumber",
]
