from typing import Optional

from app import config
from app.services.tabular_store import TableCache, TabularStore

_store: Optional[TabularStore] = None


def get_store() -> TabularStore:
    """
    FastAPI dependency returning the Google Sheets backed store.

    Built on first use so importing the app never needs credentials.
    Tests replace it via app.dependency_overrides[get_store].

    Usage:
        @router.get("/items")
        async def get_items(store: TabularStore = Depends(get_store)):
            ...
    """
    global _store

    if _store is None:
        from app.services.sheets_service import GoogleSheetsStore

        if not config.GOOGLE_SHEET_ID:
            raise RuntimeError("GOOGLE_SHEET_ID not set in environment variables")

        _store = GoogleSheetsStore(
            default_workbook_id=config.GOOGLE_SHEET_ID,
            cache=TableCache(ttl_seconds=config.SHEETS_CACHE_TTL_SECONDS)
        )

    return _store
