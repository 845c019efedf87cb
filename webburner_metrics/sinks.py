"""Spreadsheet sinks for publishing summary and breakdown tables."""

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Any, Protocol
from urllib.parse import quote

import pandas as pd
import requests

from webburner_metrics.errors import SinkError
from webburner_metrics.state import RunStateStore

logger = logging.getLogger(__name__)

DEFAULT_SHEET = "Sheet1"
SPREADSHEET_MIME_TYPE = "application/vnd.google-apps.spreadsheet"


class SpreadsheetSink(Protocol):
    """Common interface for spreadsheet services that receive CSV tables."""

    def create_spreadsheet(self, parent_id: str, title: str) -> str:
        """Create an empty spreadsheet under `parent_id` and return its id."""
        ...

    def create_sheet(self, destination_id: str, sheet_name: str) -> None:
        """Add a new sheet (tab) named `sheet_name` to a spreadsheet."""
        ...

    def upload_csv(
        self, destination_id: str, sheet_name: str, csv_bytes: bytes
    ) -> dict[str, Any]:
        """Write CSV contents to a sheet, starting at its first cell."""
        ...


def _csv_rows(csv_bytes: bytes) -> list[list[str]]:
    if not csv_bytes.strip():
        return []
    df = pd.read_csv(io.BytesIO(csv_bytes), dtype=str, header=None, keep_default_na=False)
    return df.values.tolist()


def _a1_sheet(sheet_name: str) -> str:
    escaped = sheet_name.replace("'", "''")
    return f"'{escaped}'"


class GoogleSheetsSink:
    """Google Drive v3 / Sheets v4 REST client.

    Authenticates with an OAuth 2.0 bearer token (e.g. from
    ``gcloud auth print-access-token``). Requests are not retried; any HTTP
    or transport failure raises `SinkError`.
    """

    def __init__(
        self,
        token: str,
        *,
        session: requests.Session | None = None,
        timeout: float = 30.0,
        sheets_url: str = "https://sheets.googleapis.com/v4",
        drive_url: str = "https://www.googleapis.com/drive/v3",
    ) -> None:
        self._token = token
        self._session = session or requests.Session()
        self._timeout = timeout
        self._sheets_url = sheets_url.rstrip("/")
        self._drive_url = drive_url.rstrip("/")

    def _request(self, method: str, url: str, **kwargs: Any) -> dict[str, Any]:
        kwargs["headers"] = kwargs.get("headers", {})
        kwargs["headers"]["Authorization"] = f"Bearer {self._token}"
        try:
            resp = self._session.request(method, url, timeout=self._timeout, **kwargs)
        except requests.RequestException as e:
            raise SinkError(f"{method} {url} failed: {e}") from e
        if resp.status_code >= 400:
            logger.error("%s %s returned a %d: %s", method, url, resp.status_code, resp.text)
            raise SinkError(f"{method} {url} returned HTTP {resp.status_code}: {resp.text}")
        logger.debug("%s %s returned a %d", method, url, resp.status_code)
        if not resp.content:
            return {}
        try:
            return resp.json()
        except ValueError as e:
            raise SinkError(f"{method} {url} returned a non-JSON body") from e

    def create_spreadsheet(self, parent_id: str, title: str) -> str:
        body = self._request(
            "POST",
            f"{self._drive_url}/files",
            params={"supportsAllDrives": "true"},
            json={"name": title, "mimeType": SPREADSHEET_MIME_TYPE, "parents": [parent_id]},
        )
        sheet_id = body.get("id")
        if not isinstance(sheet_id, str) or not sheet_id:
            raise SinkError(f"Drive did not return an id for spreadsheet {title!r}")
        logger.info("Created spreadsheet %r with id %s", title, sheet_id)
        return sheet_id

    def create_sheet(self, destination_id: str, sheet_name: str) -> None:
        logger.info("Creating sheet %r in spreadsheet %s", sheet_name, destination_id)
        self._request(
            "POST",
            f"{self._sheets_url}/spreadsheets/{destination_id}:batchUpdate",
            json={"requests": [{"addSheet": {"properties": {"title": sheet_name}}}]},
        )

    def upload_csv(
        self, destination_id: str, sheet_name: str, csv_bytes: bytes
    ) -> dict[str, Any]:
        a1 = _a1_sheet(sheet_name)
        rows = _csv_rows(csv_bytes)
        logger.info("Writing %d rows to %s in spreadsheet %s", len(rows), a1, destination_id)
        return self._request(
            "PUT",
            f"{self._sheets_url}/spreadsheets/{destination_id}/values/{quote(a1, safe='')}",
            params={"valueInputOption": "USER_ENTERED"},
            json={"range": a1, "majorDimension": "ROWS", "values": rows},
        )


def publish_summary(
    sink: SpreadsheetSink,
    table: str | Path,
    *,
    parent_id: str,
    title: str,
    state: RunStateStore,
    day: str,
) -> str:
    """Upload the whole summary table to the day's spreadsheet.

    The spreadsheet created on the first upload of a day is recorded in
    `state` and reused by later iterations of the same day.

    Returns:
        Id of the spreadsheet written to.
    """
    sheet_id = state.sheet_id(day)
    if sheet_id is None:
        logger.info("No spreadsheet recorded for %s; creating %r", day, title)
        sheet_id = sink.create_spreadsheet(parent_id, title)
        state.set_sheet_id(day, sheet_id)
    else:
        logger.info("Reusing spreadsheet %s from an earlier iteration", sheet_id)
    sink.upload_csv(sheet_id, DEFAULT_SHEET, Path(table).read_bytes())
    return sheet_id


def publish_table(
    sink: SpreadsheetSink,
    destination_id: str,
    table: str | Path,
    *,
    sheet_name: str | None = None,
) -> dict[str, Any]:
    """Upload a table as a new sheet named after the file (without ``.csv``)."""
    p = Path(table)
    name = sheet_name or p.stem
    sink.create_sheet(destination_id, name)
    return sink.upload_csv(destination_id, name, p.read_bytes())
