"""Google Sheets client treating one spreadsheet as a set of tables.

Each worksheet ("sheet") is a table whose first row holds the field names.
The client only knows about rows and ranges; record identity and the
positional column contracts live in :mod:`sheetdesk.tables` and
:mod:`sheetdesk.records`.

A1 ranges are always built with quoted worksheet titles so that names
containing spaces or apostrophes never produce "Unable to parse range"
errors.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Mapping, MutableSequence, Optional, Sequence

from google.auth.exceptions import RefreshError
from googleapiclient.errors import HttpError

from sheetdesk.client_state import ClientState
from sheetdesk.errors import (
    REMOTE_ERRORS,
    AuthFailedError,
    ConnectivityTimeoutError,
    PermissionDeniedError,
    ResourceNotFoundError,
    StoreError,
    classify_remote_error,
    http_status,
)
from sheetdesk.google_client import LazyGoogleClient, ServiceFactory, google_service_factory
from sheetdesk.google_credentials import CredentialLoader
from sheetdesk.settings import DEFAULT_PROBE_TIMEOUT, DEFAULT_READ_RANGE, DEFAULT_SPREADSHEET_ID

logger = logging.getLogger(__name__)

SCOPES: Sequence[str] = (
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive.file",
)
ROW_NUMBER_FIELD = "_rowNumber"
# Header row plus 1-based numbering.
HEADER_ROW_OFFSET = 2
VALUE_INPUT_OPTION = "RAW"



def column_letter(index: int) -> str:
    """Return the spreadsheet column letter for a 1-indexed column index."""

    if index < 1:
        raise ValueError("Column index must be >= 1")
    letters: MutableSequence[str] = []
    while index:
        index, remainder = divmod(index - 1, 26)
        letters.append(chr(65 + remainder))
    return "".join(reversed(letters))


def quote_sheet_title(title: str) -> str:
    """Return a worksheet title quoted according to A1 notation rules."""

    safe = (title or "").strip()
    if len(safe) >= 2 and safe[0] == safe[-1] == "'":
        safe = safe[1:-1].replace("''", "'")
    if not safe:
        raise ValueError("Worksheet title must not be empty")
    return "'" + safe.replace("'", "''") + "'"


def a1_range(title: str, range_spec: str) -> str:
    return f"{quote_sheet_title(title)}!{range_spec}"


def row_range_spec(row_number: int, columns: int) -> str:
    """Return ``A<n>:<last><n>`` covering ``columns`` cells of one row."""

    if row_number < 1:
        raise ValueError("Row number must be >= 1")
    last_column = column_letter(max(1, columns))
    return f"A{row_number}:{last_column}{row_number}"


def rows_to_records(values: Sequence[Sequence[Any]]) -> List[Dict[str, Any]]:
    """Convert a raw value matrix into records keyed by the header row.

    The header row is never returned. Cells missing from short rows map to
    ``""`` and every record carries its sheet row number under
    :data:`ROW_NUMBER_FIELD`.
    """

    if not values:
        return []

    headers = [str(header) for header in values[0]]
    records: List[Dict[str, Any]] = []
    for index, raw in enumerate(values[1:]):
        record: Dict[str, Any] = {}
        for position, header in enumerate(headers):
            if not header:
                continue
            record[header] = raw[position] if position < len(raw) else ""
        record[ROW_NUMBER_FIELD] = index + HEADER_ROW_OFFSET
        records.append(record)
    return records


class TabularStoreClient(LazyGoogleClient):
    """Lazily initialised client for one spreadsheet."""

    display_name = "Google Sheets"
    scopes = SCOPES

    def __init__(
        self,
        loader: CredentialLoader,
        *,
        spreadsheet_id: str = DEFAULT_SPREADSHEET_ID,
        probe_timeout: float = DEFAULT_PROBE_TIMEOUT,
        read_range: str = DEFAULT_READ_RANGE,
        service_factory: Optional[ServiceFactory] = None,
        state: Optional[ClientState] = None,
    ) -> None:
        super().__init__(loader, service_factory or google_service_factory("sheets", "v4"), state=state)
        self.spreadsheet_id = spreadsheet_id
        self.probe_timeout = probe_timeout
        self.read_range = read_range

    # ------------------------------------------------------------------
    # Connectivity
    # ------------------------------------------------------------------
    async def _handshake(self, service: Any) -> None:
        await self._probe(service)

    async def _probe(self, service: Any) -> None:
        request = service.spreadsheets().get(spreadsheetId=self.spreadsheet_id, fields="properties.title")
        try:
            await asyncio.wait_for(self._execute(request), timeout=self.probe_timeout)
        except asyncio.TimeoutError as exc:
            raise ConnectivityTimeoutError(
                "Connection to Google Sheets timed out. Please check your internet connection."
            ) from exc
        except HttpError as exc:
            raise self._describe_probe_failure(exc) from exc
        except RefreshError as exc:
            raise AuthFailedError(
                "Authentication failed. Please check your service account credentials."
            ) from exc
        except REMOTE_ERRORS as exc:
            raise classify_remote_error(exc, "Connection test failed") from exc

    def _describe_probe_failure(self, exc: HttpError) -> StoreError:
        status = http_status(exc)
        if status == 404:
            return ResourceNotFoundError(
                f"Spreadsheet not found. Please check the spreadsheet ID: {self.spreadsheet_id}. "
                "Make sure the spreadsheet exists and is accessible."
            )
        if status == 403:
            email = self.service_account_email or "unknown"
            return PermissionDeniedError(
                f"Permission denied. Please ensure the service account ({email}) has Editor access "
                "to the spreadsheet. Share the spreadsheet with this email address."
            )
        if status == 401:
            return AuthFailedError("Authentication failed. Please check your service account credentials.")
        return classify_remote_error(exc, "Connection test failed")

    async def health_check(self) -> Dict[str, str]:
        """Re-run the connectivity probe.

        A failing probe on a ready client is reported but does not change the
        client state.
        """

        was_ready = self.is_ready
        try:
            service = await self._ensure_ready()
            if was_ready:
                await self._probe(service)
        except StoreError as exc:
            return {"status": "error", "message": str(exc)}
        return {"status": "healthy", "message": "Google Sheets API is working correctly"}

    # ------------------------------------------------------------------
    # Table operations
    # ------------------------------------------------------------------
    async def read_all(self, sheet_name: str, range_spec: Optional[str] = None) -> List[Dict[str, Any]]:
        """Return every data row of ``sheet_name`` as a record."""

        service = await self._ensure_ready()
        request = (
            service.spreadsheets()
            .values()
            .get(spreadsheetId=self.spreadsheet_id, range=a1_range(sheet_name, range_spec or self.read_range))
        )
        try:
            response = await self._execute(request)
        except REMOTE_ERRORS as exc:
            logger.error("Error reading sheet %s: %s", sheet_name, exc)
            raise classify_remote_error(exc, f"Failed to read from {sheet_name}") from exc

        values = response.get("values", []) if isinstance(response, Mapping) else []
        if not values:
            logger.info("No data found in sheet: %s", sheet_name)
            return []

        records = rows_to_records(values)
        logger.info("Successfully read %d records from %s", len(records), sheet_name)
        return records

    async def append(self, sheet_name: str, values: Sequence[Any]) -> Mapping[str, Any]:
        """Append one row after the last row of ``sheet_name``.

        The value order is positional; the caller owns the column contract.
        """

        service = await self._ensure_ready()
        request = (
            service.spreadsheets()
            .values()
            .append(
                spreadsheetId=self.spreadsheet_id,
                range=a1_range(sheet_name, "A:A"),
                valueInputOption=VALUE_INPUT_OPTION,
                body={"values": [list(values)]},
            )
        )
        try:
            response = await self._execute(request)
        except REMOTE_ERRORS as exc:
            logger.error("Error appending to sheet %s: %s", sheet_name, exc)
            raise classify_remote_error(exc, f"Failed to append to {sheet_name}") from exc

        logger.info("Successfully appended data to %s", sheet_name)
        return response or {}

    async def update_range(
        self,
        sheet_name: str,
        range_spec: str,
        rows: Sequence[Sequence[Any]],
    ) -> Mapping[str, Any]:
        """Overwrite the cells of ``range_spec`` with ``rows``."""

        service = await self._ensure_ready()
        request = (
            service.spreadsheets()
            .values()
            .update(
                spreadsheetId=self.spreadsheet_id,
                range=a1_range(sheet_name, range_spec),
                valueInputOption=VALUE_INPUT_OPTION,
                body={"values": [list(row) for row in rows]},
            )
        )
        try:
            response = await self._execute(request)
        except REMOTE_ERRORS as exc:
            logger.error("Error updating sheet %s: %s", sheet_name, exc)
            raise classify_remote_error(exc, f"Failed to update {sheet_name}") from exc

        logger.info("Successfully updated %s range %s", sheet_name, range_spec)
        return response or {}


__all__ = [
    "HEADER_ROW_OFFSET",
    "ROW_NUMBER_FIELD",
    "SCOPES",
    "TabularStoreClient",
    "a1_range",
    "column_letter",
    "quote_sheet_title",
    "row_range_spec",
    "rows_to_records",
]
