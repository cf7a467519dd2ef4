from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from app.api.v1.api import api_router
from app import config
from app.database import get_store
from app.models.company_drive import COMPANY_DRIVES_HEADERS, COMPANY_DRIVES_SHEET
from app.models.drive_request import DRIVE_REQUEST_HEADERS, DRIVE_REQUESTS_SHEET
from app.services.results_service import PLACEMENT_RESULTS_HEADERS, PLACEMENT_RESULTS_SHEET
from app.services.sheet_utils import ensure_headers
from app.services.tabular_store import TabularStore

app = FastAPI(
    title="Placement Drive Workflow",
    description="Drive scheduling, approvals and offer publication on Google Sheets",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

CORE_SHEETS = {
    DRIVE_REQUESTS_SHEET: DRIVE_REQUEST_HEADERS,
    COMPANY_DRIVES_SHEET: COMPANY_DRIVES_HEADERS,
    PLACEMENT_RESULTS_SHEET: PLACEMENT_RESULTS_HEADERS,
}


async def bootstrap_sheets(store: TabularStore) -> None:
    """Create the calendar workbook tables / missing columns (idempotent)."""
    for sheet, headers in CORE_SHEETS.items():
        await ensure_headers(store, sheet, headers)


@app.on_event("startup")
async def on_startup():
    """Make sure the core sheets exist before serving requests."""
    store = app.dependency_overrides.get(get_store, get_store)()
    await bootstrap_sheets(store)
    print("✅ Core sheets created/verified")


app.include_router(api_router)


@app.get("/")
def health_check():
    return {"status": "ok"}


@app.get("/academic-year")
def academic_year():
    return {"academicYear": config.get_academic_year()}
