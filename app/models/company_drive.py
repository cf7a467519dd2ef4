"""
Company_Drives projection - calendar/SPOC facing copy of a drive request.

Exactly one row per Request ID. Created on the first slot approval or
drive status sync, never when the request is first submitted.
"""

from typing import List

COMPANY_DRIVES_SHEET = "Company_Drives"

COMPANY_DRIVES_HEADERS: List[str] = [
    "Company", "SPOC", "Request ID", "Type", "Eligible Pool", "CGPA Cutoff",
    "PPT Datetime", "OT Datetime", "Interview Datetime",
    "PPT Status", "OT Status", "INTERVIEW Status",
    "Internship Stipend", "FTE CTC", "FTE Base", "Expected Hires",
    "Drive Status", "Actual Hires", "Results Published", "Results Published At",
    "Last Updated",
]

# DriveRequest attribute -> projection column, copied when the row is created
COPIED_FIELDS = {
    "company": "Company",
    "spoc": "SPOC",
    "type": "Type",
    "eligible_pool": "Eligible Pool",
    "cgpa_cutoff": "CGPA Cutoff",
    "internship_stipend": "Internship Stipend",
    "fte_ctc": "FTE CTC",
    "fte_base": "FTE Base",
    "expected_hires": "Expected Hires",
}
