"""Source adapter: fetch a sheet range from the Google Sheets values API as header-keyed records."""

import json
import logging
import time
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import httpx

from app.schemas.sync import SourceId

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)

SheetRecord = dict[str, str]


class SheetsNotConfiguredError(Exception):
    """Raised when a source is fetched but its sheet id or API credentials are missing."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class SheetsFetchError(Exception):
    """Raised when the Sheets API is unreachable, rejects the request, or returns a malformed body."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


def rows_to_records(rows: list[list[Any]] | None) -> list[SheetRecord]:
    """
    Convert a 2-D grid (first row = headers) into header-keyed records.

    Rows shorter than the header row are padded with "" for the missing trailing cells.
    Fewer than 2 rows means there is no data beyond the header: returns [].
    """
    if not rows or len(rows) < 2:
        return []
    headers = ["" if h is None else str(h) for h in rows[0]]
    records: list[SheetRecord] = []
    for row in rows[1:]:
        record: SheetRecord = {}
        for index, header in enumerate(headers):
            cell = row[index] if index < len(row) else None
            record[header] = "" if cell is None else str(cell)
        records.append(record)
    return records


def _error_detail(resp: httpx.Response) -> str:
    try:
        body = resp.json()
        error = body.get("error", {}) if isinstance(body, dict) else {}
        message = error.get("message") if isinstance(error, dict) else None
        return message or json.dumps(body)[:500]
    except ValueError:
        return resp.text[:500] if resp.text else "Unknown error"


class SheetsAdapter:
    """
    Fetches the configured range for each source.

    Pure read: no caching and no retries. Network, auth and malformed-response failures
    raise SheetsFetchError so the caller can record the source as failed; they never
    degrade to an empty result.
    """

    def __init__(self, settings: "Settings") -> None:
        self._settings = settings

    def sheet_for(self, source: SourceId) -> tuple[str, str]:
        """Return (spreadsheet_id, A1 range) for a source. Raises SheetsNotConfiguredError."""
        s = self._settings
        sheets = {
            "kb4": (s.SHEET_ID_KB4, s.SHEET_RANGE_KB4),
            "ncm": (s.SHEET_ID_NCM, s.SHEET_RANGE_NCM),
            "edr": (s.SHEET_ID_EDR, s.SHEET_RANGE_EDR),
            "hibp": (s.SHEET_ID_HIBP, s.SHEET_RANGE_HIBP),
        }
        if source not in sheets:
            raise ValueError(f"Unknown source {source!r}")
        sheet_id, sheet_range = sheets[source]
        if not sheet_id:
            raise SheetsNotConfiguredError(
                f"Sheet for source '{source}' is not configured; set SHEET_ID_{source.upper()}."
            )
        return sheet_id, sheet_range

    def _auth(self) -> tuple[dict[str, str], dict[str, str]]:
        """Return (headers, query params) carrying the configured credential."""
        token = self._settings.GOOGLE_ACCESS_TOKEN
        if token is not None and token.get_secret_value().strip():
            return {"Authorization": f"Bearer {token.get_secret_value().strip()}"}, {}
        api_key = self._settings.GOOGLE_API_KEY
        if api_key is not None and api_key.get_secret_value().strip():
            return {}, {"key": api_key.get_secret_value().strip()}
        raise SheetsNotConfiguredError(
            "Google Sheets credentials are not configured; set GOOGLE_ACCESS_TOKEN or GOOGLE_API_KEY."
        )

    async def fetch(self, source: SourceId) -> list[SheetRecord]:
        """Fetch one source's sheet and return its rows as header-keyed records."""
        sheet_id, sheet_range = self.sheet_for(source)
        headers, params = self._auth()
        url = (
            f"{self._settings.SHEETS_API_BASE_URL}/spreadsheets/"
            f"{quote(sheet_id, safe='')}/values/{quote(sheet_range, safe='')}"
        )
        timeout = httpx.Timeout(self._settings.SHEETS_REQUEST_TIMEOUT_SEC)
        start = time.perf_counter()

        try:
            async with httpx.AsyncClient(timeout=timeout) as client:
                resp = await client.get(url, params=params, headers=headers)
        except httpx.TimeoutException as e:
            raise SheetsFetchError(
                f"Sheets request for '{source}' timed out. Try increasing SHEETS_REQUEST_TIMEOUT_SEC."
            ) from e
        except httpx.HTTPError as e:
            raise SheetsFetchError(f"Sheets API is unreachable for '{source}': {e!s}") from e

        if resp.status_code in (401, 403):
            raise SheetsFetchError(
                f"Sheets API rejected credentials for '{source}': {_error_detail(resp)}",
                resp.status_code,
            )
        if resp.status_code == 404:
            raise SheetsFetchError(
                f"Sheet or range not found for '{source}' ({sheet_range}).", 404
            )
        if resp.status_code >= 400:
            raise SheetsFetchError(
                f"Sheets API returned {resp.status_code} for '{source}': {_error_detail(resp)}",
                resp.status_code,
            )

        try:
            body = resp.json()
        except ValueError as e:
            raise SheetsFetchError(f"Sheets response for '{source}' is not valid JSON.") from e
        if not isinstance(body, dict):
            raise SheetsFetchError(f"Sheets response for '{source}' is not a JSON object.")
        values = body.get("values", [])
        if not isinstance(values, list) or not all(isinstance(r, list) for r in values):
            raise SheetsFetchError(f"Sheets response for '{source}' has a malformed 'values' grid.")

        records = rows_to_records(values)
        logger.info(
            "Sheet fetched",
            extra={
                "source": source,
                "row_count": len(records),
                "fetch_latency_seconds": time.perf_counter() - start,
            },
        )
        return records
