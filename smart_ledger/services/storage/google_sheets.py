"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is the host-provided alternative to the
local file store because:
1. The ledger can follow the user across machines
2. No database setup required
3. Built-in backup (Google's infrastructure)

The sheet is used as a plain key-value table: one row per collection,
column A is the key, column B the JSON text.

TRADEOFFS:
- A single cell holds at most 50,000 characters; larger collections are
  rejected with a StorageError (the gateway logs it and keeps going)
- Every read is a network round trip (fine for a personal ledger)
"""

from datetime import datetime, timezone
from typing import Optional

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from smart_ledger.config import GoogleSheetsSettings, get_settings
from smart_ledger.services.storage.interface import (
    BackendUnavailableError,
    KeyValueBackend,
    StorageError,
)


KV_COLUMNS = ["key", "value", "updated_at"]

MAX_CELL_CHARS = 50_000


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for connecting.
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
                raise BackendUnavailableError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise BackendUnavailableError(f"Failed to connect to Google Sheets: {e}")

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
                raise BackendUnavailableError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_kv_sheet(self) -> gspread.Worksheet:
        """Get or create the key-value worksheet."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(self._settings.kv_sheet_name)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=self._settings.kv_sheet_name,
                rows=20,
                cols=len(KV_COLUMNS),
            )
            sheet.append_row(KV_COLUMNS)
        return sheet


class GoogleSheetsBackend(KeyValueBackend):
    """
    Google Sheets implementation of the key-value backend.

    Collections are stored as rows; the header row is skipped on lookup.
    """

    name = "sheets"

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _find_row(self, sheet: gspread.Worksheet, key: str) -> Optional[int]:
        """1-based row index of the key, or None."""
        keys = sheet.col_values(1)
        for idx, value in enumerate(keys[1:], start=2):  # Row 1 is the header
            if value == key:
                return idx
        return None

    def get_item(self, key: str) -> Optional[str]:
        try:
            sheet = self._client.get_kv_sheet()
            row_idx = self._find_row(sheet, key)
            if row_idx is None:
                return None
            row = sheet.row_values(row_idx)
            return row[1] if len(row) > 1 and row[1] else None
        except BackendUnavailableError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read {key}: {e}")

    def set_item(self, key: str, value: str) -> None:
        if len(value) > MAX_CELL_CHARS:
            raise StorageError(
                f"Collection {key} is {len(value)} characters; "
                f"a sheet cell holds at most {MAX_CELL_CHARS}"
            )
        updated_at = datetime.now(timezone.utc).isoformat()
        try:
            sheet = self._client.get_kv_sheet()
            row_idx = self._find_row(sheet, key)
            if row_idx is None:
                sheet.append_row([key, value, updated_at], value_input_option="RAW")
            else:
                sheet.update_cell(row_idx, 2, value)
                sheet.update_cell(row_idx, 3, updated_at)
        except BackendUnavailableError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to write {key}: {e}")
