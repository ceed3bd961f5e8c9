"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is offered as an optional backend because:
1. Non-technical owners can see (and back up) their data directly in Sheets
2. No database setup required
3. Easy to export/migrate later

Each key takes one or more rows in a worksheet:

    key | part | value_json | updated_at

A cell holds at most 50,000 characters, so the JSON value is split into
chunks across rows and joined again on read.

TRADEOFFS:
- Every read scans the whole worksheet
- No transactions across keys (same as the local backend)

The implementation follows the abstract interface, so the Ledger Store does
not know which backend it is talking to.
"""

import json
from typing import Any, Optional

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from ledgerbook.config import GoogleSheetsSettings, get_settings
from ledgerbook.models.ledger import utc_now
from ledgerbook.services.storage.interface import (
    ConnectionError,
    KeyValueStorageInterface,
    StorageError,
)


STATE_COLUMNS = [
    "key",
    "part",
    "value_json",
    "updated_at",
]

# Google Sheets hard limit per cell
MAX_CELL_CHARS = 50_000


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_state_sheet(self) -> gspread.Worksheet:
        """Get or create the key-value worksheet."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(self._settings.state_sheet_name)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=self._settings.state_sheet_name,
                rows=100,
                cols=len(STATE_COLUMNS),
            )
            sheet.append_row(STATE_COLUMNS)
        return sheet


class GoogleSheetsKeyValueStorage(KeyValueStorageInterface):
    """
    Google Sheets implementation of key-value storage.

    The value is JSON-serialized and split into MAX_CELL_CHARS chunks, one
    row per chunk. `part` orders the chunks of a key.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _find_rows(self, sheet: gspread.Worksheet, key: str) -> list[tuple[int, list]]:
        """Return (1-based row index, row values) for every chunk of a key."""
        all_rows = sheet.get_all_values()
        return [
            (idx, row)
            for idx, row in enumerate(all_rows[1:], start=2)  # Row 1 is header
            if row and row[0] == key
        ]

    def get(self, key: str) -> Optional[Any]:
        """Read a key from the sheet, joining its chunks in part order."""
        try:
            sheet = self._client.get_state_sheet()
            found = self._find_rows(sheet, key)
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read '{key}': {e}")

        if not found:
            return None
        try:
            chunks = sorted(
                (int(row[1]), row[2] if len(row) > 2 else "")
                for _, row in found
            )
        except ValueError as e:
            raise StorageError(f"Corrupt chunk index for '{key}': {e}")

        raw = "".join(chunk for _, chunk in chunks)
        if not raw:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise StorageError(f"Corrupt JSON for '{key}': {e}")

    def set(self, key: str, value: Any) -> None:
        """Insert or replace a key."""
        try:
            payload = json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise StorageError(f"Value for '{key}' is not JSON-serializable: {e}")

        chunks = [
            payload[start:start + MAX_CELL_CHARS]
            for start in range(0, len(payload), MAX_CELL_CHARS)
        ]
        try:
            self._write_rows(key, chunks)
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to write '{key}': {e}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _write_rows(self, key: str, chunks: list[str]) -> None:
        sheet = self._client.get_state_sheet()
        existing = self._find_rows(sheet, key)
        updated_at = utc_now().isoformat()
        new_rows = [
            [key, str(part), chunk, updated_at]
            for part, chunk in enumerate(chunks)
        ]

        # Reuse the key's rows in place, then grow or shrink
        for (idx, _), row in zip(existing, new_rows):
            sheet.update(
                range_name=f"A{idx}:D{idx}",
                values=[row],
                value_input_option="RAW",
            )
        if len(new_rows) > len(existing):
            sheet.append_rows(new_rows[len(existing):], value_input_option="RAW")
        for idx, _ in reversed(existing[len(new_rows):]):
            sheet.delete_rows(idx)

    def delete(self, key: str) -> bool:
        """Delete every row of a key."""
        try:
            sheet = self._client.get_state_sheet()
            found = self._find_rows(sheet, key)
            for idx, _ in reversed(found):
                sheet.delete_rows(idx)
            return bool(found)
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete '{key}': {e}")

    def keys(self) -> list[str]:
        try:
            sheet = self._client.get_state_sheet()
            rows = sheet.get_all_values()[1:]
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to list keys: {e}")
        return list(dict.fromkeys(row[0] for row in rows if row and row[0]))
