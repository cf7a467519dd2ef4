"""
Runtime configuration loaded from the environment (.env supported).

All values are read once at import time, the same way app.database did
for DATABASE_URL.
"""

from dotenv import load_dotenv
import os

load_dotenv()

# Core calendar workbook (Drive_Requests, Company_Drives, Placement_Results)
GOOGLE_SHEET_ID = os.getenv("GOOGLE_SHEET_ID")

# Drive folder that holds the Placement_Data_* workbooks (optional)
PLACEMENT_FOLDER_ID = os.getenv("PLACEMENT_FOLDER_ID")

# Credentials: service account JSON takes priority over an authorized user token
GOOGLE_SERVICE_ACCOUNT_FILE = os.getenv("GOOGLE_SERVICE_ACCOUNT_FILE")
GOOGLE_TOKEN_FILE = os.getenv("GOOGLE_TOKEN_FILE", "token.json")

SHEETS_CACHE_TTL_SECONDS = float(os.getenv("SHEETS_CACHE_TTL_SECONDS", "30"))

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
    if origin.strip()
]

DEFAULT_ACADEMIC_YEAR = "2025-26"


def get_academic_year() -> str:
    """Academic year label used to name placement workbooks, e.g. '2025-26'."""
    return os.getenv("ACADEMIC_YEAR") or DEFAULT_ACADEMIC_YEAR
