# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Google Sheets client implementing the TabularStore contract.
Sheets REST v4 over httpx; service-account tokens come from google-auth.
"""

import asyncio
import json
from typing import Any, Optional
from urllib.parse import quote

import httpx
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request as GoogleAuthRequest
from google.oauth2 import service_account

from roster.core.config import settings
from roster.core.errors import TabularStoreError
from roster.core.logging import get_logger
from roster.repositories.tabular_store import TabularStore

logger = get_logger(__name__)

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]


def cell_ref(sheet: str, column: str, row: int) -> str:
    return f"'{sheet}'!{column}{row}"


class GoogleSheetsStore(TabularStore):
    """Spreadsheet access for the signup log, schedule grid and form responses."""

    def __init__(
        self,
        spreadsheet_id: str | None = None,
        credentials: Any = None,
        api_base: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self._spreadsheet_id = spreadsheet_id or settings.SHEET_ID
        self._credentials = credentials
        self._api_base = (api_base or settings.SHEETS_API_BASE).rstrip("/")
        self._timeout = timeout or settings.SHEETS_TIMEOUT
        self._sheet_gids: dict[str, int] = {}

    # ── Auth ──

    def _load_credentials(self):
        if self._credentials is None:
            if not settings.GOOGLE_SERVICE_JSON:
                raise TabularStoreError("GOOGLE_SERVICE_JSON is not configured")
            info = json.loads(settings.GOOGLE_SERVICE_JSON)
            self._credentials = service_account.Credentials.from_service_account_info(
                info, scopes=SCOPES
            )
        return self._credentials

    async def _token(self) -> str:
        creds = self._load_credentials()
        if not creds.valid:
            # google-auth refreshes synchronously
            await asyncio.to_thread(creds.refresh, GoogleAuthRequest())
        return creds.token

    # ── Transport ──

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, str]] = None,
        json_body: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        url = f"{self._api_base}/{self._spreadsheet_id}{path}"
        try:
            token = await self._token()
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.request(
                    method,
                    url,
                    params=params,
                    json=json_body,
                    headers={"Authorization": f"Bearer {token}"},
                )
        except (httpx.HTTPError, GoogleAuthError, ValueError) as exc:
            raise TabularStoreError(f"Sheets request failed: {exc}") from exc

        if resp.status_code >= 400:
            raise TabularStoreError(
                f"Sheets returned {resp.status_code} for {method} {path}: {resp.text[:200]}"
            )
        return resp.json() if resp.content else {}

    # ── TabularStore ──

    async def read_range(self, range_name: str) -> list[list[str]]:
        data = await self._request("GET", f"/values/{quote(range_name)}")
        return [[str(cell) for cell in row] for row in data.get("values", [])]

    async def append_row(self, range_name: str, values: list[str]) -> None:
        await self._request(
            "POST",
            f"/values/{quote(range_name)}:append",
            params={"valueInputOption": "USER_ENTERED", "insertDataOption": "INSERT_ROWS"},
            json_body={"values": [[str(v) for v in values]]},
        )

    async def read_cell(self, sheet: str, column: str, row: int) -> str:
        data = await self._request("GET", f"/values/{quote(cell_ref(sheet, column, row))}")
        values = data.get("values") or [[""]]
        return str(values[0][0]) if values[0] else ""

    async def write_cell(self, sheet: str, column: str, row: int, value: str) -> None:
        await self._request(
            "PUT",
            f"/values/{quote(cell_ref(sheet, column, row))}",
            params={"valueInputOption": "USER_ENTERED"},
            json_body={"values": [[value]]},
        )

    async def delete_rows(self, sheet: str, start_row: int, end_row: int) -> None:
        gid = await self._sheet_gid(sheet)
        await self._request(
            "POST",
            ":batchUpdate",
            json_body={
                "requests": [{
                    "deleteDimension": {
                        "range": {
                            "sheetId": gid,
                            "dimension": "ROWS",
                            "startIndex": start_row - 1,
                            "endIndex": end_row,
                        }
                    }
                }]
            },
        )

    async def _sheet_gid(self, sheet: str) -> int:
        if sheet not in self._sheet_gids:
            data = await self._request(
                "GET", "", params={"fields": "sheets.properties(sheetId,title)"}
            )
            for entry in data.get("sheets", []):
                props = entry.get("properties", {})
                self._sheet_gids[props.get("title")] = props.get("sheetId")
        if sheet not in self._sheet_gids:
            raise TabularStoreError(f"Sheet '{sheet}' not found")
        return self._sheet_gids[sheet]
