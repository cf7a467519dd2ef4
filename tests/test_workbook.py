"""
Placement workbook writer, roll number parsing and the header schema guard.
"""

import asyncio

import pytest

from app.errors import InvalidInputError, SchemaError
from app.models.drive_request import DriveRequest
from app.models.placement import RollNumber, normalize_branch_code
from app.services import calendar_service, workbook_service
from app.services.sheet_utils import ensure_headers, to_float

UG_WORKBOOK = "Placement_Data_2025-26_UG"


def run(coro):
    return asyncio.run(coro)


def enroll(store, rolls, branch="CS", cgpa=8.0):
    return run(workbook_service.enroll_students(store, "UG", branch, [
        {"roll_no": roll, "name": f"Student {roll}", "cgpa": cgpa} for roll in rolls
    ]))


def offer(store, roll, company="Acme", ctc=12.0, **kwargs):
    return run(workbook_service.apply_offer(
        store, roll_no=roll, company=company, branch="CS", degree_type="UG", ctc=ctc, **kwargs
    ))


def student(store, roll, branch="CS"):
    rows = store.records(f"Students_{branch}", store.workbook_id(UG_WORKBOOK))
    return next(r for r in rows if r["Roll No"] == roll)


# ============ WORKBOOK LAYOUT ============

def test_ensure_placement_sheets_creates_branch_sheets_once(store):
    workbook = run(workbook_service.ensure_placement_sheets(store, "UG", "CSE"))

    assert workbook.name == UG_WORKBOOK
    assert workbook.branch_code == "CS"
    assert sorted(store.workbooks[workbook.workbook_id]) == [
        "CTC_Distribution_CS",
        "Company_Drives_CS",
        "Offers_CS",
        "Placement_Stats_CS",
        "Students_CS",
    ]

    again = run(workbook_service.ensure_placement_sheets(store, "UG", "CS"))
    assert again.workbook_id == workbook.workbook_id
    assert len(store.names) == 1


def test_workbook_name_follows_academic_year(store, monkeypatch):
    monkeypatch.setenv("ACADEMIC_YEAR", "2026-27")

    workbook = run(workbook_service.ensure_placement_sheets(store, "PG", "EC"))

    assert workbook.name == "Placement_Data_2026-27_PG"


def test_unknown_degree_type_is_rejected(store):
    with pytest.raises(ValueError):
        run(workbook_service.ensure_placement_sheets(store, "PHD", "CS"))


@pytest.mark.parametrize("branch, expected", [("cse", "CS"), (" EC ", "EC"), ("ME", "ME"), ("", "")])
def test_normalize_branch_code(branch, expected):
    assert normalize_branch_code(branch) == expected


@pytest.mark.parametrize("roll, year, branch, degree", [
    ("24CS1001", 2024, "CS", "UG"),
    ("23EC10M4", 2023, "EC", "PG"),
    ("22MEM", 2022, "ME", "PG"),
    (" 25ee2002 ", 2025, "EE", "UG"),
])
def test_roll_number_parse(roll, year, branch, degree):
    parsed = RollNumber.parse(roll)
    assert parsed.admission_year == year
    assert parsed.branch_code == branch
    assert parsed.degree_type.value == degree


# ============ ENROLLMENT ============

def test_enroll_skips_duplicates_and_marks_eligibility(store):
    first = enroll(store, ["24CS1001"], cgpa=6.5)
    second = run(workbook_service.enroll_students(store, "UG", "CS", [
        {"roll_no": "24CS1001", "name": "Again"},
        {"roll_no": "24CS1002", "name": "Low CGPA", "cgpa": "6.2"},
        {"roll_no": "24CS1002", "name": "Repeated in batch"},
    ]))

    assert first == {"added": 1, "skipped": 0, "workbook": UG_WORKBOOK, "sheet": "Students_CS"}
    assert second["added"] == 1
    assert second["skipped"] == 2
    assert student(store, "24CS1001")["Eligible"] == "Yes"
    assert student(store, "24CS1002")["Eligible"] == "No"
    assert student(store, "24CS1002")["Student Name"] == "Low CGPA"
    assert student(store, "24CS1002")["Branch"] == "CS"


def test_enroll_requires_roll_and_name(store):
    with pytest.raises(InvalidInputError):
        run(workbook_service.enroll_students(store, "UG", "CS", [{"roll_no": "24CS1001", "name": " "}]))


def test_enroll_endpoint_requires_data_team(client):
    response = client.post(
        "/api/v1/placements/enroll",
        headers={"X-User-Name": "s", "X-User-Role": "SPOC"},
        json={"degree_type": "UG", "branch": "CS", "students": []}
    )
    assert response.status_code == 403


def test_enroll_endpoint_reports_missing_fields(client):
    response = client.post(
        "/api/v1/placements/enroll",
        headers={"X-User-Name": "d", "X-User-Role": "DATA_TEAM"},
        json={"degree_type": "UG", "branch": "CS", "students": [{"roll_no": "24CS1001"}]}
    )
    assert response.status_code == 400


# ============ OFFERS ============

def test_apply_offer_suppresses_duplicate_active_offer(store):
    enroll(store, ["24CS1001"])

    first = offer(store, "24CS1001")
    second = offer(store, "24CS1001")

    assert first.offer_appended is True
    assert second.offer_appended is False
    assert second.ok
    offers = store.records("Offers_CS", store.workbook_id(UG_WORKBOOK))
    assert len(offers) == 1


def test_different_offer_type_is_a_new_offer(store):
    enroll(store, ["24CS1001"])

    offer(store, "24CS1001", offer_type="FTE")
    offer(store, "24CS1001", offer_type="Intern")

    offers = store.records("Offers_CS", store.workbook_id(UG_WORKBOOK))
    assert [o["Offer Type"] for o in offers] == ["FTE", "Intern"]


def test_highest_ctc_never_decreases(store):
    enroll(store, ["24CS1001"])

    offer(store, "24CS1001", company="Acme", ctc=8)
    offer(store, "24CS1001", company="Globex", ctc=6)

    row = student(store, "24CS1001")
    assert to_float(row["Highest CTC"]) == 8
    assert row["Company"] == "Globex"
    assert row["Placement Status"] == "Placed"


def test_offer_for_unenrolled_student_still_records_the_offer(store):
    enroll(store, ["24CS1001"])

    report = offer(store, "24CS1999")

    assert report.offer_appended is True
    assert report.student_updated is False
    assert report.drive_updated is None
    assert report.ok


def test_offer_with_drive_info_upserts_branch_drive(store):
    enroll(store, ["24CS1001", "24CS1002"])
    info = {"spoc": "spoc.user", "drive_type": "FTE", "fte_ctc": "12"}

    offer(store, "24CS1001", request_id="req-1", drive_info=info)
    report = offer(store, "24CS1002", request_id="req-1", drive_info=info)

    assert report.drive_updated is True
    [row] = store.records("Company_Drives_CS", store.workbook_id(UG_WORKBOOK))
    assert row["Request ID"] == "req-1"
    assert row["SPOC"] == "spoc.user"
    assert row["Actual Hires"] == "2"
    assert row["Drive Status"] == "In Progress"
    assert row["Results Published"] == "No"


def test_revoke_clears_placement_fields(store):
    enroll(store, ["24CS1001"])
    workbook = run(workbook_service.ensure_placement_sheets(store, "UG", "CS"))
    offer(store, "24CS1001")

    assert run(workbook_service.revoke_offer(store, workbook.workbook_id, "CS", "24CS1001")) is True

    row = student(store, "24CS1001")
    assert row["Placement Status"] == ""
    assert row["Highest CTC"] == ""
    assert row["Offer Revoked"] == ""
    assert row["CGPA"] != ""


def test_revoke_unknown_student_returns_false(store):
    workbook = run(workbook_service.ensure_placement_sheets(store, "UG", "CS"))
    assert run(workbook_service.revoke_offer(store, workbook.workbook_id, "CS", "24CS1001")) is False


# ============ SCHEMA ============

def test_projection_write_fails_on_missing_column(store):
    header = store.workbooks["calendar"]["Company_Drives"][0]
    header.remove("Actual Hires")
    request = DriveRequest(row_number=2, request_id="req-1", company="Acme")

    with pytest.raises(SchemaError, match="Actual Hires"):
        run(calendar_service.upsert_company_drive(store, request))

    assert len(store.workbooks["calendar"]["Company_Drives"]) == 1


def test_drive_request_parse_fails_on_missing_column():
    with pytest.raises(SchemaError):
        DriveRequest.from_row(["Request ID", "Company"], ["req-1", "Acme"], row_number=2)


def test_headers_match_ignoring_case_and_nbsp(store):
    store.workbooks["calendar"]["Legacy"] = [["roll\u00a0no ", "NAME"]]
    store.invalidate()

    run(ensure_headers(store, "Legacy", ["Roll No", "Name", "Branch"]))

    assert store.workbooks["calendar"]["Legacy"][0] == ["roll\u00a0no ", "NAME", "Branch"]


def test_ensure_headers_creates_missing_sheet(store):
    run(ensure_headers(store, "Fresh", ["A", "B"]))

    assert store.workbooks["calendar"]["Fresh"] == [["A", "B"]]
