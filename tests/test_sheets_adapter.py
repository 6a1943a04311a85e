"""Unit tests for app.services.sheets: range lookup, credentials, and fetch error mapping."""

import asyncio
import unittest
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
from pydantic import SecretStr

from app.services.sheets import (
    SheetsAdapter,
    SheetsFetchError,
    SheetsNotConfiguredError,
    rows_to_records,
)


def _settings(**kwargs: object) -> MagicMock:
    settings = MagicMock()
    settings.SHEETS_API_BASE_URL = "https://sheets.example.test/v4"
    settings.SHEETS_REQUEST_TIMEOUT_SEC = 5.0
    settings.GOOGLE_API_KEY = SecretStr("api-key")
    settings.GOOGLE_ACCESS_TOKEN = None
    settings.SHEET_ID_KB4 = "kb4-sheet"
    settings.SHEET_RANGE_KB4 = "外部!A:U"
    settings.SHEET_ID_NCM = None
    settings.SHEET_RANGE_NCM = "15_FW_Version_VulnSummary!A:M"
    settings.SHEET_ID_EDR = "edr-sheet"
    settings.SHEET_RANGE_EDR = "ODS_VT!A:H"
    settings.SHEET_ID_HIBP = "hibp-sheet"
    settings.SHEET_RANGE_HIBP = "HIBP_Report!A:F"
    for key, value in kwargs.items():
        setattr(settings, key, value)
    return settings


def _response(status_code: int, json_body: object = None, text: str | None = None) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status_code
    if text is not None:
        resp.text = text
        resp.json.side_effect = ValueError("not json")
    else:
        resp.text = ""
        resp.json.return_value = json_body
    return resp


def _patch_client(mock_client_class: MagicMock, get: AsyncMock) -> MagicMock:
    mock_instance = MagicMock()
    mock_instance.get = get
    mock_client_class.return_value.__aenter__ = AsyncMock(return_value=mock_instance)
    mock_client_class.return_value.__aexit__ = AsyncMock(return_value=None)
    return mock_instance


class TestRowsToRecords(unittest.TestCase):
    def test_header_only_or_empty_returns_empty(self) -> None:
        self.assertEqual(rows_to_records([]), [])
        self.assertEqual(rows_to_records(None), [])
        self.assertEqual(rows_to_records([["user_id", "email"]]), [])

    def test_short_rows_padded_with_empty_string(self) -> None:
        records = rows_to_records([["a", "b", "c"], ["1"], ["x", 2, None]])
        self.assertEqual(records[0], {"a": "1", "b": "", "c": ""})
        self.assertEqual(records[1], {"a": "x", "b": "2", "c": ""})


class TestSheetFor(unittest.TestCase):
    def test_missing_sheet_id_raises_not_configured(self) -> None:
        adapter = SheetsAdapter(_settings())
        with self.assertRaises(SheetsNotConfiguredError) as ctx:
            adapter.sheet_for("ncm")
        self.assertIn("SHEET_ID_NCM", ctx.exception.message)

    def test_unknown_source_raises_value_error(self) -> None:
        with self.assertRaises(ValueError):
            SheetsAdapter(_settings()).sheet_for("nope")  # type: ignore[arg-type]


class TestFetch(unittest.TestCase):
    @patch("app.services.sheets.httpx.AsyncClient")
    def test_returns_header_keyed_records_with_api_key(self, mock_client_class: MagicMock) -> None:
        get = AsyncMock(
            return_value=_response(
                200, {"values": [["user_id", "email"], ["u1", "a@x.com"], ["u2"]]}
            )
        )
        _patch_client(mock_client_class, get)

        records = asyncio.run(SheetsAdapter(_settings()).fetch("kb4"))

        self.assertEqual(records, [{"user_id": "u1", "email": "a@x.com"}, {"user_id": "u2", "email": ""}])
        url = get.call_args[0][0]
        self.assertTrue(url.startswith("https://sheets.example.test/v4/spreadsheets/kb4-sheet/values/"))
        self.assertEqual(get.call_args.kwargs["params"], {"key": "api-key"})
        self.assertEqual(get.call_args.kwargs["headers"], {})

    @patch("app.services.sheets.httpx.AsyncClient")
    def test_access_token_takes_precedence(self, mock_client_class: MagicMock) -> None:
        get = AsyncMock(return_value=_response(200, {"values": []}))
        _patch_client(mock_client_class, get)
        settings = _settings(GOOGLE_ACCESS_TOKEN=SecretStr("tok"))

        records = asyncio.run(SheetsAdapter(settings).fetch("edr"))

        self.assertEqual(records, [])
        self.assertEqual(get.call_args.kwargs["headers"], {"Authorization": "Bearer tok"})
        self.assertEqual(get.call_args.kwargs["params"], {})

    def test_no_credentials_raises_not_configured(self) -> None:
        settings = _settings(GOOGLE_API_KEY=None, GOOGLE_ACCESS_TOKEN=None)
        with self.assertRaises(SheetsNotConfiguredError):
            asyncio.run(SheetsAdapter(settings).fetch("kb4"))

    @patch("app.services.sheets.httpx.AsyncClient")
    def test_auth_failure_raises_fetch_error_with_status(self, mock_client_class: MagicMock) -> None:
        get = AsyncMock(return_value=_response(403, {"error": {"message": "The caller does not have permission"}}))
        _patch_client(mock_client_class, get)

        with self.assertRaises(SheetsFetchError) as ctx:
            asyncio.run(SheetsAdapter(_settings()).fetch("hibp"))
        self.assertEqual(ctx.exception.status_code, 403)
        self.assertIn("permission", ctx.exception.message)

    @patch("app.services.sheets.httpx.AsyncClient")
    def test_not_found_raises_fetch_error(self, mock_client_class: MagicMock) -> None:
        _patch_client(mock_client_class, AsyncMock(return_value=_response(404, {})))
        with self.assertRaises(SheetsFetchError) as ctx:
            asyncio.run(SheetsAdapter(_settings()).fetch("kb4"))
        self.assertEqual(ctx.exception.status_code, 404)

    @patch("app.services.sheets.httpx.AsyncClient")
    def test_server_error_raises_fetch_error(self, mock_client_class: MagicMock) -> None:
        _patch_client(mock_client_class, AsyncMock(return_value=_response(503, text="unavailable")))
        with self.assertRaises(SheetsFetchError) as ctx:
            asyncio.run(SheetsAdapter(_settings()).fetch("kb4"))
        self.assertEqual(ctx.exception.status_code, 503)

    @patch("app.services.sheets.httpx.AsyncClient")
    def test_timeout_raises_fetch_error(self, mock_client_class: MagicMock) -> None:
        _patch_client(mock_client_class, AsyncMock(side_effect=httpx.ReadTimeout("slow")))
        with self.assertRaises(SheetsFetchError) as ctx:
            asyncio.run(SheetsAdapter(_settings()).fetch("kb4"))
        self.assertIn("timed out", ctx.exception.message)

    @patch("app.services.sheets.httpx.AsyncClient")
    def test_connection_error_raises_fetch_error(self, mock_client_class: MagicMock) -> None:
        _patch_client(mock_client_class, AsyncMock(side_effect=httpx.ConnectError("refused")))
        with self.assertRaises(SheetsFetchError) as ctx:
            asyncio.run(SheetsAdapter(_settings()).fetch("kb4"))
        self.assertIn("unreachable", ctx.exception.message)

    @patch("app.services.sheets.httpx.AsyncClient")
    def test_invalid_json_raises_fetch_error(self, mock_client_class: MagicMock) -> None:
        _patch_client(mock_client_class, AsyncMock(return_value=_response(200, text="<html>")))
        with self.assertRaises(SheetsFetchError):
            asyncio.run(SheetsAdapter(_settings()).fetch("kb4"))

    @patch("app.services.sheets.httpx.AsyncClient")
    def test_malformed_values_raises_fetch_error(self, mock_client_class: MagicMock) -> None:
        _patch_client(mock_client_class, AsyncMock(return_value=_response(200, {"values": "oops"})))
        with self.assertRaises(SheetsFetchError):
            asyncio.run(SheetsAdapter(_settings()).fetch("kb4"))

    @patch("app.services.sheets.httpx.AsyncClient")
    def test_missing_values_key_is_empty_feed(self, mock_client_class: MagicMock) -> None:
        _patch_client(mock_client_class, AsyncMock(return_value=_response(200, {"range": "A1:B1"})))
        self.assertEqual(asyncio.run(SheetsAdapter(_settings()).fetch("kb4")), [])


if __name__ == "__main__":
    unittest.main()
