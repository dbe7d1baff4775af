"""
Async wrapper around the Google Sheets v4 API.

google-api-python-client is synchronous; we run each request in the thread
pool executor so it doesn't block the asyncio event loop.

Authentication uses a service account whose email and private key come from
Settings (GOOGLE_SERVICE_ACCOUNT_EMAIL / GOOGLE_PRIVATE_KEY). The key is
usually stored in .env with literal "\\n" sequences, which are unescaped here.
"""
import asyncio
import re
from typing import Any, Dict, List, Optional

from google.oauth2 import service_account
from googleapiclient.discovery import build

from regdesk.errors import SheetsNotConfiguredError

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]
TOKEN_URI = "https://oauth2.googleapis.com/token"

_SIMPLE_TITLE_RE = re.compile(r"^[A-Za-z0-9_]+$")


def a1_range(sheet_name: str, range_spec: str = "") -> str:
    """Return "Sheet!A1:B2" with the worksheet title quoted when needed."""
    title = sheet_name.strip()
    if not _SIMPLE_TITLE_RE.fullmatch(title):
        title = "'" + title.replace("'", "''") + "'"
    return f"{title}!{range_spec}" if range_spec else title


class SheetsClient:
    """
    Thin async wrapper over a googleapiclient Sheets resource, bound to one
    spreadsheet.

    Usage:
        client = SheetsClient.from_settings(get_settings())
        rows = await client.get_values(a1_range("Users", "A:A"))
    """

    def __init__(self, service, spreadsheet_id: str):
        """
        Args:
            service: Result of googleapiclient build("sheets", "v4", ...)
                     (or a MagicMock in tests).
            spreadsheet_id: Target spreadsheet (GOOGLE_SHEET_ID).
        """
        self._service = service
        self.spreadsheet_id = spreadsheet_id

    @classmethod
    def from_settings(cls, settings) -> "SheetsClient":
        """
        Build an authenticated client from service-account settings.

        Raises:
            SheetsNotConfiguredError: if any credential or the sheet id is unset.
        """
        if not settings.sheets_configured:
            raise SheetsNotConfiguredError(
                "Google Sheets credentials not configured. Set "
                "GOOGLE_SERVICE_ACCOUNT_EMAIL, GOOGLE_PRIVATE_KEY, and GOOGLE_SHEET_ID"
            )
        info = {
            "type": "service_account",
            "client_email": settings.google_service_account_email,
            "private_key": settings.google_private_key.replace("\\n", "\n"),
            "token_uri": TOKEN_URI,
        }
        credentials = service_account.Credentials.from_service_account_info(
            info, scopes=SCOPES
        )
        service = build("sheets", "v4", credentials=credentials, cache_discovery=False)
        return cls(service, settings.google_sheet_id)

    async def _run(self, request) -> Dict[str, Any]:
        """Execute a prepared googleapiclient request in the thread pool."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, request.execute)

    def _values(self):
        return self._service.spreadsheets().values()

    async def get_values(self, range_: str) -> List[List[str]]:
        """Return the cell values in range_ (rows; trailing blanks trimmed by the API)."""
        result = await self._run(
            self._values().get(spreadsheetId=self.spreadsheet_id, range=range_)
        )
        return result.get("values", [])

    async def update_values(self, range_: str, values: List[List[Any]]) -> None:
        await self._run(
            self._values().update(
                spreadsheetId=self.spreadsheet_id,
                range=range_,
                valueInputOption="RAW",
                body={"values": values},
            )
        )

    async def append_values(self, range_: str, values: List[List[Any]]) -> None:
        await self._run(
            self._values().append(
                spreadsheetId=self.spreadsheet_id,
                range=range_,
                valueInputOption="RAW",
                body={"values": values},
            )
        )

    async def clear_values(self, range_: str) -> None:
        await self._run(
            self._values().clear(
                spreadsheetId=self.spreadsheet_id, range=range_, body={}
            )
        )

    async def get_sheet_ids(self) -> Dict[str, int]:
        """Map worksheet title → numeric sheetId."""
        result = await self._run(
            self._service.spreadsheets().get(
                spreadsheetId=self.spreadsheet_id,
                fields="sheets(properties(title,sheetId))",
            )
        )
        sheet_ids: Dict[str, int] = {}
        for sheet in result.get("sheets", []):
            props = sheet.get("properties", {})
            title: Optional[str] = props.get("title")
            if title is not None and props.get("sheetId") is not None:
                sheet_ids[title] = props["sheetId"]
        return sheet_ids

    async def batch_update(self, requests: List[Dict[str, Any]]) -> None:
        await self._run(
            self._service.spreadsheets().batchUpdate(
                spreadsheetId=self.spreadsheet_id, body={"requests": requests}
            )
        )
