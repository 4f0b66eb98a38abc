"""
Google Sheets Agent

This module provides an agent for reading a rectangular range of rows from the
Google Sheets values API. The agent fetches data without handling caching,
leaving that to the refresh service.

Key Features:
- One call per sheet: GET {endpoint}/{workbook}/values/{sheet}!A{start_row}:Z?key=...
- Bounded timeout on every request.
- Failures are classified so callers can tell "retry later" from "fix the config":
    ServiceUnavailable  5xx, 429, timeouts, connection errors
    AuthError           missing key, 401/403, rejected API key
    MalformedResponse   non-JSON body, missing or ill-shaped 'values'
- API keys never appear in log output.

Terminology (from the Sheets API):
- Workbook ID: the spreadsheet identifier from its URL.
- Range: A1 notation, e.g. "Filtered!A2:Z".
- values: array of row arrays; trailing empty cells are omitted by the API.
"""

import logging
from logging import Logger
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests

from exceptions import AuthError, MalformedResponse, ServiceUnavailable

logger = logging.getLogger("google_sheets_agent")

SHEETS_CONFIG: Dict[str, Any] = {
    "endpoint": "https://sheets.googleapis.com/v4/spreadsheets",
    "timeout_seconds": 30,
    "user_agent": "Mozilla/5.0 (compatible; Enterprise API)",
    "last_column": "Z",
}

Rows = List[List[str]]


def build_range(sheet_name: str, start_row: int, last_column: str = "Z") -> str:
    """A1 range covering columns A..last_column from start_row to the end of the sheet."""
    return f"{sheet_name}!A{int(start_row)}:{last_column}"


def redact_key(url: str) -> str:
    if "key=" not in url:
        return url
    head, _, tail = url.partition("key=")
    _, amp, rest = tail.partition("&")
    return f"{head}key=***{amp}{rest}"


class GoogleSheetsAgent:
    """Fetches raw rows from the spreadsheet API for one workbook/sheet at a time."""

    def __init__(self, endpoint: Optional[str] = None, timeout: Optional[float] = None,
                 user_agent: Optional[str] = None, session: Optional[requests.Session] = None,
                 logger: Logger = logger):
        self.endpoint = (endpoint or SHEETS_CONFIG["endpoint"]).rstrip("/")
        self.timeout = timeout if timeout is not None else SHEETS_CONFIG["timeout_seconds"]
        self.user_agent = user_agent or SHEETS_CONFIG["user_agent"]
        self.session = session
        self.logger = logger

    @classmethod
    def from_config(cls, sheets_config: Dict[str, Any]) -> "GoogleSheetsAgent":
        return cls(
            endpoint=sheets_config.get("endpoint"),
            timeout=sheets_config.get("timeout_seconds"),
            user_agent=sheets_config.get("user_agent"),
        )

    def build_url(self, workbook_id: str, sheet_name: str, start_row: int) -> str:
        range_a1 = quote(build_range(sheet_name, start_row, SHEETS_CONFIG["last_column"]), safe="!:")
        return f"{self.endpoint}/{quote(workbook_id, safe='')}/values/{range_a1}"

    def fetch(self, workbook_id: str, sheet_name: str, start_row: int, api_key: str,
              tenant: Optional[str] = None) -> Rows:
        """
        Fetch every row of a sheet from start_row onward.

        Args:
            workbook_id (str): Spreadsheet identifier.
            sheet_name (str): Sheet (tab) name.
            start_row (int): First 1-based row to include (skips header rows).
            api_key (str): Tenant's API key.
            tenant (Optional[str]): Tenant code for logging context.

        Returns:
            Rows: List of rows, every cell converted to str.

        Raises:
            AuthError: If the key is missing or rejected.
            ServiceUnavailable: On timeouts, connection failures, 429 and 5xx.
            MalformedResponse: If the body is not the expected JSON shape.
        """
        if not api_key:
            self.logger.error("Google API key not configured", extra={"tenant": tenant})
            raise AuthError("Google API key not configured")

        url = self.build_url(workbook_id, sheet_name, start_row)
        self.logger.info("Fetching sheet values",
                         extra={"tenant": tenant, "sheet": sheet_name, "start_row": start_row})
        self.logger.debug(f"GET {url}?key=***")

        getter = self.session.get if self.session is not None else requests.get
        try:
            response = getter(url, params={"key": api_key}, timeout=self.timeout,
                              headers={"User-Agent": self.user_agent})
        except requests.exceptions.Timeout as e:
            self.logger.error("Timed out fetching sheet values",
                              extra={"tenant": tenant, "sheet": sheet_name, "error": redact_key(str(e))})
            raise ServiceUnavailable(f"Timed out after {self.timeout}s fetching {sheet_name}")
        except requests.exceptions.RequestException as e:
            self.logger.error("Request error fetching sheet values",
                              extra={"tenant": tenant, "sheet": sheet_name, "error": redact_key(str(e))})
            raise ServiceUnavailable(f"Failed to reach Google Sheets for {sheet_name}")

        self._raise_for_status(response, sheet_name, tenant)

        try:
            payload = response.json()
        except ValueError:
            self.logger.error("Invalid JSON response from Google Sheets",
                              extra={"tenant": tenant, "sheet": sheet_name})
            raise MalformedResponse("Invalid JSON response from Google Sheets")

        rows = self.parse_values(payload)
        self.logger.info(f"Fetched {len(rows)} rows", extra={"tenant": tenant, "sheet": sheet_name})
        return rows

    def _raise_for_status(self, response, sheet_name: str, tenant: Optional[str]) -> None:
        status = response.status_code
        if status == 200:
            return
        if status == 429 or status >= 500:
            self.logger.error("Google Sheets service unavailable",
                              extra={"tenant": tenant, "sheet": sheet_name, "status_code": status})
            raise ServiceUnavailable(f"Google Sheets returned HTTP {status}", status_code=status)
        if status in (401, 403) or (status == 400 and "api key" in (response.text or "").lower()):
            self.logger.error("Google Sheets rejected the API key",
                              extra={"tenant": tenant, "sheet": sheet_name, "status_code": status})
            raise AuthError(f"Google Sheets rejected the request credentials (HTTP {status})",
                            status_code=status)
        self.logger.error("Unexpected status code",
                          extra={"tenant": tenant, "sheet": sheet_name, "status_code": status})
        raise MalformedResponse(f"Unexpected HTTP {status} from Google Sheets", status_code=status)

    @staticmethod
    def parse_values(payload: Any) -> Rows:
        """Validate the response body and return its rows as lists of strings."""
        if not isinstance(payload, dict) or "values" not in payload:
            raise MalformedResponse("No values found in Google Sheets response")
        values = payload["values"]
        if not isinstance(values, list):
            raise MalformedResponse("Google Sheets 'values' is not an array")
        rows = []
        for row in values:
            if not isinstance(row, list):
                raise MalformedResponse("Google Sheets 'values' contains a non-array row")
            rows.append(["" if value is None else str(value) for value in row])
        return rows


__all__ = [
    'GoogleSheetsAgent',
    'build_range',
    'redact_key',
]
