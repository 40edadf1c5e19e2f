"""Report sinks: destinations for comparison tables other than stdout.

A sink has one capability: take a titled set of tables, publish them,
and return a locator the user can follow (a URL or a file path).
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Mapping, Protocol

import requests
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import AuthorizedSession
from google.oauth2 import service_account

from benchcmp.bench.benchstat import Table
from benchcmp.bench.display import table_headers, table_rows
from benchcmp.bench.export import export_text
from benchcmp.errors import ConfigError, ReportError
from benchcmp.logging import get_logger

log = get_logger("sinks")

CREDENTIALS_ENV = "GOOGLE_APPLICATION_CREDENTIALS"
SHEETS_SCOPES = (
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive",
)
SHEETS_API = "https://sheets.googleapis.com/v4/spreadsheets"
DRIVE_API = "https://www.googleapis.com/drive/v3/files"


class ReportSink(Protocol):
    def publish(self, title: str, tables: list[Table]) -> str:
        """Publish *tables* under *title* and return where they can be found."""
        ...


# ---------------------------------------------------------------------------
# File sink
# ---------------------------------------------------------------------------


class FileSink:
    """Writes the tables to a local Markdown or CSV file."""

    def __init__(self, path: Path, fmt: str = "markdown") -> None:
        self.path = path
        self.fmt = fmt

    def publish(self, title: str, tables: list[Table]) -> str:
        text = export_text(title, tables, self.fmt)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(text, encoding="utf-8")
        except OSError as exc:
            raise ReportError(f"writing {self.path}: {exc}") from exc
        return str(self.path)


# ---------------------------------------------------------------------------
# Google Sheets sink
# ---------------------------------------------------------------------------


def _sheet_title(metric: str) -> str:
    # Sheet titles are limited to 100 characters.
    return metric[:100]


def _a1_range(sheet_title: str) -> str:
    quoted = sheet_title.replace("'", "''")
    return f"'{quoted}'!A1"


class GoogleSheetsSink:
    """Uploads the tables to a new Google Sheets spreadsheet.

    The spreadsheet is created by a service account, gets one sheet per
    metric, and is shared read-only with anyone who has the link.
    """

    def __init__(self, session: requests.Session, *, timeout: float = 60.0) -> None:
        self.session = session
        self.timeout = timeout

    @classmethod
    def from_environment(cls, env: Mapping[str, str] | None = None) -> GoogleSheetsSink:
        """Build a sink from the service-account key named by the environment.

        Raises:
            ConfigError: If ``GOOGLE_APPLICATION_CREDENTIALS`` is unset or
                the key file cannot be loaded.
        """
        environ = os.environ if env is None else env
        key_path = environ.get(CREDENTIALS_ENV, "")
        if not key_path:
            raise ConfigError(
                f"{CREDENTIALS_ENV} must point to a Google service account key file "
                "to upload results to Google Sheets"
            )
        try:
            creds = service_account.Credentials.from_service_account_file(
                key_path, scopes=list(SHEETS_SCOPES)
            )
        except (OSError, ValueError) as exc:
            raise ConfigError(f"loading service account key {key_path}: {exc}") from exc
        return cls(AuthorizedSession(creds))

    def _request(self, method: str, url: str, body: dict[str, Any]) -> dict[str, Any]:
        log.debug("%s %s", method, url)
        try:
            resp = self.session.request(method, url, json=body, timeout=self.timeout)
        except (requests.RequestException, GoogleAuthError) as exc:
            raise ReportError(f"{method} {url} failed: {exc}") from exc
        if resp.status_code != 200:
            raise ReportError(
                f"{method} {url} returned HTTP {resp.status_code}: {resp.text.strip()[:200]}"
            )
        try:
            data = resp.json()
        except ValueError as exc:
            raise ReportError(f"{method} {url} returned invalid JSON") from exc
        return data if isinstance(data, dict) else {}

    def publish(self, title: str, tables: list[Table]) -> str:
        sheet_titles = [_sheet_title(t.metric) for t in tables] or ["results"]
        created = self._request(
            "POST",
            SHEETS_API,
            {
                "properties": {"title": title},
                "sheets": [{"properties": {"title": name}} for name in sheet_titles],
            },
        )
        spreadsheet_id = created.get("spreadsheetId")
        if not spreadsheet_id:
            raise ReportError("spreadsheet creation returned no spreadsheetId")

        if tables:
            data = [
                {
                    "range": _a1_range(name),
                    "values": [table_headers(table), *table_rows(table)],
                }
                for name, table in zip(sheet_titles, tables)
            ]
            self._request(
                "POST",
                f"{SHEETS_API}/{spreadsheet_id}/values:batchUpdate",
                {"valueInputOption": "RAW", "data": data},
            )

        self._request(
            "POST",
            f"{DRIVE_API}/{spreadsheet_id}/permissions",
            {"role": "reader", "type": "anyone"},
        )
        return created.get(
            "spreadsheetUrl", f"https://docs.google.com/spreadsheets/d/{spreadsheet_id}"
        )
