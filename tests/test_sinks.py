from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest
import requests
from conftest import RecordingSink

from webburner_metrics.errors import SinkError
from webburner_metrics.sinks import GoogleSheetsSink, publish_summary, publish_table
from webburner_metrics.state import RunStateStore


def _response(status: int, body: bytes = b"", payload: object = None) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    resp.content = body
    resp.text = body.decode()
    resp.json.return_value = payload
    return resp


class TestGoogleSheetsSink:
    def test_create_spreadsheet(self) -> None:
        session = MagicMock()
        session.request.return_value = _response(200, b'{"id": "abc"}', {"id": "abc"})
        sink = GoogleSheetsSink("tok", session=session, drive_url="https://drive.test/v3/")

        assert sink.create_spreadsheet("folder", "2026-October-19.csv") == "abc"

        method, url = session.request.call_args.args
        kwargs = session.request.call_args.kwargs
        assert (method, url) == ("POST", "https://drive.test/v3/files")
        assert kwargs["headers"]["Authorization"] == "Bearer tok"
        assert kwargs["json"]["parents"] == ["folder"]
        assert kwargs["json"]["mimeType"] == "application/vnd.google-apps.spreadsheet"

    def test_create_spreadsheet_without_id(self) -> None:
        session = MagicMock()
        session.request.return_value = _response(200, b"{}", {})
        sink = GoogleSheetsSink("tok", session=session)
        with pytest.raises(SinkError, match="did not return an id"):
            sink.create_spreadsheet("folder", "title")

    def test_upload_csv(self) -> None:
        session = MagicMock()
        session.request.return_value = _response(200, b'{"updatedRows": 2}', {"updatedRows": 2})
        sink = GoogleSheetsSink("tok", session=session, sheets_url="https://sheets.test/v4")

        sink.upload_csv("sid", "nodeCPU-run1", b"JobName,MaxValue\njob,\n")

        method, url = session.request.call_args.args
        kwargs = session.request.call_args.kwargs
        assert method == "PUT"
        assert url == "https://sheets.test/v4/spreadsheets/sid/values/%27nodeCPU-run1%27"
        assert kwargs["params"] == {"valueInputOption": "USER_ENTERED"}
        assert kwargs["json"]["values"] == [["JobName", "MaxValue"], ["job", ""]]

    def test_http_error(self) -> None:
        session = MagicMock()
        session.request.return_value = _response(403, b"forbidden")
        sink = GoogleSheetsSink("tok", session=session)
        with pytest.raises(SinkError, match="HTTP 403"):
            sink.create_sheet("sid", "Sheet2")

    def test_transport_error(self) -> None:
        session = MagicMock()
        session.request.side_effect = requests.ConnectionError("connection refused")
        sink = GoogleSheetsSink("tok", session=session)
        with pytest.raises(SinkError, match="connection refused"):
            sink.create_sheet("sid", "Sheet2")


class TestPublish:
    def test_summary_reuses_spreadsheet(self, tmp_path: Path, sink: RecordingSink) -> None:
        table = tmp_path / "2026-October-19.csv"
        table.write_text("Iteration\niteration_1\n")
        state = RunStateStore(tmp_path / "run-state.yaml")

        first = publish_summary(
            sink, table, parent_id="folder", title=table.name, state=state, day="d"
        )
        second = publish_summary(
            sink, table, parent_id="folder", title=table.name, state=state, day="d"
        )

        assert first == second == "sheet-1"
        assert sink.created == [("folder", "2026-October-19.csv")]
        assert state.sheet_id("d") == "sheet-1"
        assert [(d, name) for d, name, _ in sink.uploads] == [
            ("sheet-1", "Sheet1"),
            ("sheet-1", "Sheet1"),
        ]

    def test_table_named_after_file(self, tmp_path: Path, sink: RecordingSink) -> None:
        table = tmp_path / "nodeCPU-run1.csv"
        table.write_text("a,b\n1,2\n")
        publish_table(sink, "sid", table)
        assert sink.sheets == [("sid", "nodeCPU-run1")]
        assert sink.uploads == [("sid", "nodeCPU-run1", b"a,b\n1,2\n")]
