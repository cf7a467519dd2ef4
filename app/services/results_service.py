"""
Placement_Results ledger: the currently selected roll numbers per drive.

Each publish replaces the stored set; the diff against the previous set
decides which offers are added and which are revoked.
"""

from dataclasses import dataclass, field
from typing import List

from app.services.sheet_utils import cell, column_map, ensure_headers, find_row, utc_now_iso
from app.services.tabular_store import CellUpdate, TabularStore

PLACEMENT_RESULTS_SHEET = "Placement_Results"
PLACEMENT_RESULTS_HEADERS = ["Company", "Request ID", "Roll Numbers", "Last Updated"]


@dataclass
class PlacementResults:
    exists: bool
    roll_numbers: List[str] = field(default_factory=list)
    row_number: int = 0


def split_roll_numbers(value: str) -> List[str]:
    """'R1, R2,,R3 ' -> ['R1', 'R2', 'R3'], first occurrence wins."""
    rolls: List[str] = []
    for part in str(value or "").split(","):
        roll = part.strip()
        if roll and roll not in rolls:
            rolls.append(roll)
    return rolls


async def get_placement_results(store: TabularStore, request_id: str) -> PlacementResults:
    """Current selection for a drive; an empty result when nothing was published."""
    await ensure_headers(store, PLACEMENT_RESULTS_SHEET, PLACEMENT_RESULTS_HEADERS)

    rows = await store.read_all_rows(PLACEMENT_RESULTS_SHEET)
    cols = column_map(rows[0], PLACEMENT_RESULTS_HEADERS)
    index = find_row(rows, cols["Request ID"], request_id)

    if index == -1:
        return PlacementResults(exists=False)

    return PlacementResults(
        exists=True,
        roll_numbers=split_roll_numbers(cell(rows[index], cols["Roll Numbers"])),
        row_number=index + 1
    )


async def update_placement_results(
    store: TabularStore,
    request_id: str,
    company: str,
    roll_numbers: List[str]
) -> None:
    """Overwrite (or append) the ledger row for a drive."""
    await ensure_headers(store, PLACEMENT_RESULTS_SHEET, PLACEMENT_RESULTS_HEADERS)

    rows = await store.read_all_rows(PLACEMENT_RESULTS_SHEET)
    header = rows[0]
    cols = column_map(header, PLACEMENT_RESULTS_HEADERS)
    index = find_row(rows, cols["Request ID"], request_id)

    values = {
        "Company": company,
        "Request ID": request_id,
        "Roll Numbers": ", ".join(roll_numbers),
        "Last Updated": utc_now_iso(),
    }

    if index == -1:
        new_row = [""] * len(header)
        for column, value in values.items():
            new_row[cols[column]] = value
        await store.append_row(PLACEMENT_RESULTS_SHEET, new_row)
    else:
        await store.batch_update_cells(PLACEMENT_RESULTS_SHEET, [
            CellUpdate(index + 1, cols[column], value)
            for column, value in values.items()
        ])

    print(f"📋 [PlacementResults] {company}: {len(roll_numbers)} students")
