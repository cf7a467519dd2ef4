"""
Per-branch placement workbook writer.

- ensure_placement_sheets: workbook + the five branch sheets
- apply_offer: offer row, student placement fields, branch drive row
- revoke_offer: clear a student's placement fields
- enroll_students: add students to Students_<branch>, skipping duplicates

apply_offer is best-effort: each of its three steps catches and logs its
own failure, and the outcome of every step is returned in an OfferReport.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from app import config
from app.errors import InvalidInputError
from app.models.placement import (
    BRANCH_DRIVE_FIELDS,
    BRANCH_DRIVE_HEADERS,
    DEFAULT_OFFER_TYPE,
    ELIGIBLE_CGPA,
    OFFER_HEADERS,
    PLACED,
    PLACEMENT_FIELDS,
    STUDENT_HEADERS,
    DegreeType,
    OfferStatus,
    branch_sheets,
    normalize_branch_code,
    workbook_name,
)
from app.services.sheet_utils import cell, column_map, find_row, to_float, to_int, utc_now_iso
from app.services.tabular_store import CellUpdate, TabularStore


@dataclass
class PlacementWorkbook:
    workbook_id: str
    name: str
    branch_code: str

    @property
    def students_sheet(self) -> str:
        return f"Students_{self.branch_code}"

    @property
    def offers_sheet(self) -> str:
        return f"Offers_{self.branch_code}"

    @property
    def drives_sheet(self) -> str:
        return f"Company_Drives_{self.branch_code}"


@dataclass
class OfferReport:
    """Outcome of each apply_offer step. None means the step did not run."""
    roll_no: str
    offer_appended: Optional[bool] = None
    student_updated: Optional[bool] = None
    drive_updated: Optional[bool] = None
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors


async def ensure_placement_sheets(store: TabularStore, degree_type: str, branch: str) -> PlacementWorkbook:
    """
    Get or create Placement_Data_<year>_<degree> and the branch sheets.

    Serialized per workbook so parallel offers for the same branch do not
    race to create the same sheet twice.
    """
    degree = DegreeType(degree_type).value
    branch_code = normalize_branch_code(branch)
    name = workbook_name(config.get_academic_year(), degree)

    async with store.locks(("workbook", name)):
        workbook_id = await store.get_or_create_workbook(name, config.PLACEMENT_FOLDER_ID)
        existing = await store.list_sheets(workbook_id)

        for title, headers in branch_sheets(branch_code).items():
            if title not in existing:
                print(f"🧱 Creating {title} in {name}")
                await store.create_sheet_with_header(workbook_id, title, headers)

    return PlacementWorkbook(workbook_id=workbook_id, name=name, branch_code=branch_code)


async def find_student(store: TabularStore, workbook: PlacementWorkbook, roll_no: str) -> Optional[Dict[str, str]]:
    """Student row as {column: value}, None when the roll is not enrolled."""
    rows = await store.read_all_rows(workbook.students_sheet, workbook.workbook_id)
    if len(rows) <= 1:
        return None

    header = rows[0]
    cols = column_map(header, STUDENT_HEADERS)
    index = find_row(rows, cols["Roll No"], str(roll_no).strip())
    if index == -1:
        return None

    return {name: cell(rows[index], col) for name, col in cols.items()}


# ============ APPLY OFFER ============

async def apply_offer(
    store: TabularStore,
    roll_no: str,
    company: str,
    branch: str,
    degree_type: str,
    ctc: float,
    offer_type: Optional[str] = None,
    request_id: Optional[str] = None,
    drive_info: Optional[Dict[str, Any]] = None
) -> OfferReport:
    """
    Record an offer for one student.

    Steps (independent, none rolls back another):
    1. Append to Offers_<branch> unless an Active offer for the same
       (roll, company, offer type) already exists
    2. Set the student's placement fields, keeping the highest CTC seen
    3. Upsert the Company_Drives_<branch> row for the drive

    Returns:
        OfferReport: What each step did and which ones failed
    """
    offer_type = offer_type or DEFAULT_OFFER_TYPE
    workbook = await ensure_placement_sheets(store, degree_type, branch)
    report = OfferReport(roll_no=roll_no)

    try:
        report.offer_appended = await _append_offer(store, workbook, roll_no, company, offer_type, ctc)
    except Exception as e:
        print(f"❌ [offers] {roll_no}: {e}")
        report.errors["offer"] = str(e)

    try:
        report.student_updated = await _update_student_placement(store, workbook, roll_no, company, offer_type, ctc)
    except Exception as e:
        print(f"❌ [students] {roll_no}: {e}")
        report.errors["student"] = str(e)

    if drive_info is not None or request_id:
        try:
            await _upsert_branch_drive(store, workbook, company, request_id, drive_info or {})
            report.drive_updated = True
        except Exception as e:
            print(f"❌ [company drives] {roll_no}: {e}")
            report.errors["drive"] = str(e)

    return report


async def _append_offer(
    store: TabularStore,
    workbook: PlacementWorkbook,
    roll_no: str,
    company: str,
    offer_type: str,
    ctc: float
) -> bool:
    """Append an Active offer. False when the same Active offer already exists."""
    rows = await store.read_all_rows(workbook.offers_sheet, workbook.workbook_id)
    cols = column_map(rows[0] if rows else [], OFFER_HEADERS)

    for row in rows[1:]:
        if (
            cell(row, cols["Roll No"]) == roll_no
            and cell(row, cols["Company"]) == company
            and cell(row, cols["Offer Type"]) == offer_type
            and cell(row, cols["Offer Status"]) == OfferStatus.ACTIVE.value
        ):
            print(f"↩️  Duplicate offer for {roll_no} from {company}, skipping")
            return False

    new_row = [""] * len(rows[0])
    new_row[cols["Roll No"]] = roll_no
    new_row[cols["Company"]] = company
    new_row[cols["Offer Type"]] = offer_type
    new_row[cols["CTC (LPA)"]] = ctc
    new_row[cols["Offer Status"]] = OfferStatus.ACTIVE.value

    await store.append_row(workbook.offers_sheet, new_row, workbook.workbook_id)
    print(f"💼 Offer added for {roll_no} to {workbook.offers_sheet}")
    return True


async def _update_student_placement(
    store: TabularStore,
    workbook: PlacementWorkbook,
    roll_no: str,
    company: str,
    offer_type: str,
    ctc: float
) -> bool:
    """Mark the student placed. False when the roll is not in Students_<branch>."""
    rows = await store.read_all_rows(workbook.students_sheet, workbook.workbook_id)
    if not rows:
        print(f"⚠️  {workbook.students_sheet} is empty")
        return False

    cols = column_map(rows[0], STUDENT_HEADERS)
    index = find_row(rows, cols["Roll No"], roll_no)
    if index == -1:
        print(f"⚠️  Student {roll_no} not found in {workbook.students_sheet}")
        return False

    current_ctc = to_float(cell(rows[index], cols["Highest CTC"]))
    highest_ctc = max(current_ctc, to_float(ctc))
    row = index + 1

    await store.batch_update_cells(workbook.students_sheet, [
        CellUpdate(row, cols["Placement Status"], PLACED),
        CellUpdate(row, cols["Placement Type"], offer_type),
        CellUpdate(row, cols["Company"], company),
        CellUpdate(row, cols["Highest CTC"], highest_ctc),
        CellUpdate(row, cols["Offer Revoked"], "No"),
    ], workbook.workbook_id)
    return True


async def _upsert_branch_drive(
    store: TabularStore,
    workbook: PlacementWorkbook,
    company: str,
    request_id: Optional[str],
    drive_info: Dict[str, Any]
) -> None:
    """Increment Actual Hires on the drive row, or append it with 1 hire."""
    sheet = workbook.drives_sheet
    drive_status = drive_info.get("drive_status") or "In Progress"
    published = bool(drive_info.get("results_published"))
    now = utc_now_iso()

    # Read-increment-write of Actual Hires must not interleave
    async with store.locks((workbook.workbook_id, sheet)):
        rows = await store.read_all_rows(sheet, workbook.workbook_id)
        header = rows[0] if rows else []
        cols = column_map(header, BRANCH_DRIVE_HEADERS)
        index = find_row(rows, cols["Request ID"], request_id or "")

        if index > 0:
            row = index + 1
            hires = to_int(cell(rows[index], cols["Actual Hires"])) + 1
            await store.batch_update_cells(sheet, [
                CellUpdate(row, cols["Actual Hires"], hires),
                CellUpdate(row, cols["Drive Status"], drive_status),
                CellUpdate(row, cols["Results Published"], "Yes" if published else "No"),
                CellUpdate(row, cols["Results Published At"], now if published else ""),
                CellUpdate(row, cols["Last Updated"], now),
            ], workbook.workbook_id)
            return

        new_row = [""] * len(header)
        new_row[cols["Company"]] = company
        new_row[cols["Request ID"]] = request_id or ""
        for key, column in BRANCH_DRIVE_FIELDS.items():
            new_row[cols[column]] = drive_info.get(key) or ""
        new_row[cols["Actual Hires"]] = 1
        new_row[cols["Drive Status"]] = drive_status
        new_row[cols["Results Published"]] = "Yes" if published else "No"
        new_row[cols["Results Published At"]] = now if published else ""
        new_row[cols["Last Updated"]] = now

        await store.append_row(sheet, new_row, workbook.workbook_id)

    print(f"🏢 {sheet} updated for {company}")


# ============ REVOKE ============

async def revoke_offer(store: TabularStore, workbook_id: str, branch: str, roll_no: str) -> bool:
    """
    Blank the five placement fields of a student (hard reset).

    Returns:
        bool: False when the student is not in Students_<branch> (logged, not an error)
    """
    sheet = f"Students_{normalize_branch_code(branch)}"
    rows = await store.read_all_rows(sheet, workbook_id)
    if not rows:
        print(f"⚠️  [revoke] {sheet} is empty")
        return False

    cols = column_map(rows[0], STUDENT_HEADERS)
    index = find_row(rows, cols["Roll No"], roll_no)
    if index == -1:
        print(f"⚠️  [revoke] Student {roll_no} not found in {sheet}")
        return False

    await store.batch_update_cells(
        sheet,
        [CellUpdate(index + 1, cols[name], "") for name in PLACEMENT_FIELDS],
        workbook_id
    )
    print(f"🚫 [revoke] Revoked offer for {roll_no} in {sheet}")
    return True


# ============ ENROLLMENT ============

async def enroll_students(
    store: TabularStore,
    degree_type: str,
    branch: str,
    students: List[Dict[str, Any]]
) -> Dict[str, Any]:
    """
    Add students to Students_<branch>, skipping roll numbers already present.

    Each student dict needs roll_no and name; gender and cgpa are optional.
    Students with CGPA >= 6.5 are marked eligible.

    Returns:
        dict: added/skipped counts plus the workbook and sheet names
    """
    for i, student in enumerate(students):
        if not str(student.get("roll_no") or "").strip() or not str(student.get("name") or "").strip():
            raise InvalidInputError(f"Student #{i + 1} is missing roll_no or name")

    workbook = await ensure_placement_sheets(store, degree_type, branch)

    rows = await store.read_all_rows(workbook.students_sheet, workbook.workbook_id)
    cols = column_map(rows[0] if rows else [], STUDENT_HEADERS)
    seen = {cell(row, cols["Roll No"]).strip() for row in rows[1:]}

    new_rows = []
    for student in students:
        roll_no = str(student["roll_no"]).strip()
        if roll_no in seen:
            print(f"↩️  Skipping duplicate student {roll_no}")
            continue
        seen.add(roll_no)

        cgpa = to_float(student.get("cgpa"))
        new_row = [""] * len(rows[0])
        new_row[cols["Roll No"]] = roll_no
        new_row[cols["Student Name"]] = str(student["name"]).strip()
        new_row[cols["Gender"]] = str(student.get("gender") or "").strip()
        new_row[cols["Branch"]] = workbook.branch_code
        new_row[cols["CGPA"]] = cgpa
        new_row[cols["Eligible"]] = "Yes" if cgpa >= ELIGIBLE_CGPA else "No"
        new_row[cols["Offer Revoked"]] = "No"
        new_rows.append(new_row)

    await store.append_rows(workbook.students_sheet, new_rows, workbook.workbook_id)
    print(f"🎓 Enrolled {len(new_rows)} students into {workbook.students_sheet}")

    return {
        "added": len(new_rows),
        "skipped": len(students) - len(new_rows),
        "workbook": workbook.name,
        "sheet": workbook.students_sheet,
    }
