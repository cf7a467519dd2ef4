import asyncio
import os
from typing import Any, List, Optional

import google_auth_httplib2
import httplib2
from google.auth.transport.requests import Request
from google.oauth2 import service_account
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build

from app import config
from app.services.tabular_store import CellUpdate, TableCache, TabularStore

SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive"
]

SPREADSHEET_MIME = "application/vnd.google-apps.spreadsheet"


def get_google_credentials():
    """
    Load Google credentials for the Sheets and Drive APIs.

    A service account key (GOOGLE_SERVICE_ACCOUNT_FILE) is preferred.
    Otherwise an authorized user token file is used, refreshed in memory
    if expired. Token files are never written back.
    """
    if config.GOOGLE_SERVICE_ACCOUNT_FILE:
        return service_account.Credentials.from_service_account_file(
            config.GOOGLE_SERVICE_ACCOUNT_FILE, scopes=SCOPES
        )

    if not os.path.exists(config.GOOGLE_TOKEN_FILE):
        raise RuntimeError(
            "No Google credentials: set GOOGLE_SERVICE_ACCOUNT_FILE or provide "
            f"an authorized user token at {config.GOOGLE_TOKEN_FILE}"
        )

    creds = Credentials.from_authorized_user_file(config.GOOGLE_TOKEN_FILE, SCOPES)

    if not creds.valid:
        if creds.expired and creds.refresh_token:
            creds.refresh(Request())
        else:
            raise RuntimeError("Google token expired and has no refresh token")

    return creds


def column_letter(col: int) -> str:
    """0-based column index -> A1 column letters (0 -> A, 26 -> AA)."""
    letters = ""
    col += 1
    while col > 0:
        col, remainder = divmod(col - 1, 26)
        letters = chr(65 + remainder) + letters
    return letters


def a1_range(sheet: str, cell: str = "") -> str:
    """Quote the sheet title so names with spaces or digits stay valid."""
    quoted = "'" + sheet.replace("'", "''") + "'"
    return f"{quoted}!{cell}" if cell else quoted


class GoogleSheetsStore(TabularStore):
    """
    TabularStore backed by Google Sheets v4 and Drive v3.

    The Google client is blocking, so each call runs in a worker thread.
    httplib2 is not thread-safe: every call gets its own authorized
    transport instead of sharing the one built into the service object.
    """

    def __init__(self, default_workbook_id: str, credentials=None, cache: Optional[TableCache] = None):
        super().__init__(default_workbook_id, cache)
        self._creds = credentials or get_google_credentials()
        self._sheets = build("sheets", "v4", credentials=self._creds, cache_discovery=False)
        self._drive = build("drive", "v3", credentials=self._creds, cache_discovery=False)

    def _http(self):
        return google_auth_httplib2.AuthorizedHttp(self._creds, http=httplib2.Http())

    async def _execute(self, request) -> dict:
        return await asyncio.to_thread(request.execute, http=self._http())

    async def _read_rows(self, workbook_id: str, sheet: str) -> List[List[str]]:
        response = await self._execute(
            self._sheets.spreadsheets().values().get(
                spreadsheetId=workbook_id,
                range=a1_range(sheet)
            )
        )
        return [[str(value) for value in row] for row in response.get("values", [])]

    async def _append_rows(self, workbook_id: str, sheet: str, rows: List[List[Any]]) -> None:
        await self._execute(
            self._sheets.spreadsheets().values().append(
                spreadsheetId=workbook_id,
                range=a1_range(sheet, "A1"),
                valueInputOption="RAW",
                insertDataOption="INSERT_ROWS",
                body={"values": rows}
            )
        )

    async def _batch_update(self, workbook_id: str, sheet: str, updates: List[CellUpdate]) -> None:
        data = [
            {
                "range": a1_range(sheet, f"{column_letter(u.col)}{u.row}"),
                "values": [[u.value]]
            }
            for u in updates
        ]
        await self._execute(
            self._sheets.spreadsheets().values().batchUpdate(
                spreadsheetId=workbook_id,
                body={"valueInputOption": "RAW", "data": data}
            )
        )

    async def _list_sheets(self, workbook_id: str) -> List[str]:
        meta = await self._execute(
            self._sheets.spreadsheets().get(
                spreadsheetId=workbook_id,
                fields="sheets.properties.title"
            )
        )
        return [s["properties"]["title"] for s in meta.get("sheets", [])]

    async def _create_sheet(self, workbook_id: str, title: str) -> None:
        await self._execute(
            self._sheets.spreadsheets().batchUpdate(
                spreadsheetId=workbook_id,
                body={
                    "requests": [{
                        "addSheet": {
                            "properties": {
                                "title": title,
                                "gridProperties": {"frozenRowCount": 1}
                            }
                        }
                    }]
                }
            )
        )

    async def _find_workbook(self, name: str, folder_id: Optional[str]) -> Optional[str]:
        escaped = name.replace("'", "\\'")
        query = f"name='{escaped}' and mimeType='{SPREADSHEET_MIME}' and trashed=false"
        if folder_id:
            query += f" and '{folder_id}' in parents"

        response = await self._execute(
            self._drive.files().list(q=query, fields="files(id, name)")
        )
        files = response.get("files", [])
        return files[0]["id"] if files else None

    async def _create_workbook(self, name: str, folder_id: Optional[str]) -> str:
        body = {"name": name, "mimeType": SPREADSHEET_MIME}
        if folder_id:
            body["parents"] = [folder_id]

        created = await self._execute(
            self._drive.files().create(body=body, fields="id")
        )
        return created["id"]
