"""
Placement workbook layout.

One workbook per (academic year, degree type), named
Placement_Data_<academicYear>_<UG|PG>. Each branch owns five sheets:

- Students_<branch>          one row per enrolled student
- Offers_<branch>            one row per offer
- Company_Drives_<branch>    one row per drive that placed someone from the branch
- Placement_Stats_<branch>   metric/value pairs (formulas, maintained elsewhere)
- CTC_Distribution_<branch>  CTC bucket counts (formulas, maintained elsewhere)
"""

import enum
from dataclasses import dataclass
from typing import Dict, List


class DegreeType(str, enum.Enum):
    UG = "UG"
    PG = "PG"


class OfferStatus(str, enum.Enum):
    ACTIVE = "Active"


PLACED = "Placed"
DEFAULT_OFFER_TYPE = "FTE"

# Minimum CGPA for a student to be marked eligible at enrollment
ELIGIBLE_CGPA = 6.5

STUDENT_HEADERS: List[str] = [
    "Roll No", "Student Name", "Gender", "Branch", "CGPA", "Eligible",
    "Placement Status", "Placement Type", "Company", "Highest CTC", "Offer Revoked",
]

# Fields written by offer publication and cleared by revocation
PLACEMENT_FIELDS: List[str] = [
    "Placement Status", "Placement Type", "Company", "Highest CTC", "Offer Revoked",
]

OFFER_HEADERS: List[str] = ["Roll No", "Company", "Offer Type", "CTC (LPA)", "Offer Status"]

BRANCH_DRIVE_HEADERS: List[str] = [
    "Company", "SPOC", "Request ID", "Drive Type", "Eligible Pool",
    "PPT Datetime", "OT Datetime", "Interview Datetime",
    "PPT Status", "OT Status", "INTERVIEW Status",
    "Internship Stipend", "FTE CTC", "FTE Base", "Expected Hires",
    "Actual Hires", "Drive Status", "Results Published",
    "Results Published At", "Last Updated",
]

# driveInfo key -> Company_Drives_<branch> column
BRANCH_DRIVE_FIELDS: Dict[str, str] = {
    "spoc": "SPOC",
    "drive_type": "Drive Type",
    "eligible_pool": "Eligible Pool",
    "ppt_datetime": "PPT Datetime",
    "ot_datetime": "OT Datetime",
    "interview_datetime": "Interview Datetime",
    "ppt_status": "PPT Status",
    "ot_status": "OT Status",
    "interview_status": "INTERVIEW Status",
    "internship_stipend": "Internship Stipend",
    "fte_ctc": "FTE CTC",
    "fte_base": "FTE Base",
    "expected_hires": "Expected Hires",
}

PLACEMENT_STATS_HEADERS: List[str] = ["Metric", "Value"]
CTC_DISTRIBUTION_HEADERS: List[str] = ["CTC Range", "Count"]


def normalize_branch_code(branch: str) -> str:
    """Branch codes are two letters (CS, EC, EE, ME); 'CSE' -> 'CS'."""
    code = str(branch or "").upper().strip()
    if len(code) == 3:
        return code[:2]
    return code


def workbook_name(academic_year: str, degree_type: str) -> str:
    return f"Placement_Data_{academic_year}_{degree_type}"


def branch_sheets(branch_code: str) -> Dict[str, List[str]]:
    """Required sheet title -> header row for one branch."""
    return {
        f"Students_{branch_code}": STUDENT_HEADERS,
        f"Offers_{branch_code}": OFFER_HEADERS,
        f"Company_Drives_{branch_code}": BRANCH_DRIVE_HEADERS,
        f"Placement_Stats_{branch_code}": PLACEMENT_STATS_HEADERS,
        f"CTC_Distribution_{branch_code}": CTC_DISTRIBUTION_HEADERS,
    }


@dataclass(frozen=True)
class RollNumber:
    """
    What a roll number encodes, e.g. 24CS1001:
    - chars 0-1: admission year (2000 + yy)
    - chars 2-3: branch code
    - char 6 (or char 4 on short rolls): degree indicator, 'M' means PG
    """
    roll: str
    admission_year: int
    branch_code: str
    degree_char: str

    @classmethod
    def parse(cls, roll: str) -> "RollNumber":
        s = str(roll or "").strip()
        yy = s[0:2]
        year = 2000 + int(yy) if yy.isdigit() else 0
        degree_char = s[6:7] or s[4:5]
        return cls(
            roll=s,
            admission_year=year,
            branch_code=s[2:4].upper(),
            degree_char=degree_char.upper(),
        )

    @property
    def degree_type(self) -> DegreeType:
        return DegreeType.PG if self.degree_char == "M" else DegreeType.UG
