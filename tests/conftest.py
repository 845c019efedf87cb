from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

RUN_ID = "8f1c2d3e"


def scalar(
    node: str,
    value: float | int,
    timestamp: str,
    *,
    label_key: str = "instance",
    job: str = "node-density",
    metric: str = "nodeCPU",
) -> dict[str, Any]:
    return {
        "timestamp": timestamp,
        "labels": {label_key: node},
        "value": value,
        "uuid": RUN_ID,
        "query": f"sum({metric})",
        "metricName": metric,
        "jobName": job,
    }


def write_metric(path: Path, payload: object) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload))
    return path


class RecordingSink:
    """In-memory spreadsheet sink that records every call."""

    def __init__(self) -> None:
        self.created: list[tuple[str, str]] = []
        self.sheets: list[tuple[str, str]] = []
        self.uploads: list[tuple[str, str, bytes]] = []

    def create_spreadsheet(self, parent_id: str, title: str) -> str:
        self.created.append((parent_id, title))
        return f"sheet-{len(self.created)}"

    def create_sheet(self, destination_id: str, sheet_name: str) -> None:
        self.sheets.append((destination_id, sheet_name))

    def upload_csv(self, destination_id: str, sheet_name: str, csv_bytes: bytes) -> dict[str, Any]:
        self.uploads.append((destination_id, sheet_name, csv_bytes))
        return {}


@pytest.fixture()
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture()
def metrics_dir(tmp_path: Path) -> Path:
    """Collected-metrics directory holding one small file per summary metric."""
    root = tmp_path / "collected-metrics"
    write_metric(
        root / f"nodeCPU-{RUN_ID}.json",
        [
            scalar("master-0", 1.5, "2026-10-19T10:00:00Z"),
            scalar("worker-1", 3.25, "2026-10-19T10:00:30Z"),
            scalar("master-0", 2.0, "2026-10-19T10:01:00Z"),
        ],
    )
    write_metric(
        root / f"nodeMemoryActive-{RUN_ID}.json",
        [
            scalar("master-0", 2147483648, "2026-10-19T10:00:00Z", metric="nodeMemoryActive"),
            scalar("worker-1", 500, "2026-10-19T10:01:00Z", metric="nodeMemoryActive"),
        ],
    )
    write_metric(
        root / f"kubeletCPU-{RUN_ID}.json",
        [
            scalar("master-0", 0.5, "2026-10-19T10:00:00Z", label_key="node", metric="kubeletCPU"),
            scalar("worker-1", 0.75, "2026-10-19T10:01:00Z", label_key="node", metric="kubeletCPU"),
        ],
    )
    write_metric(
        root / f"podStatusCount-{RUN_ID}.json",
        [
            scalar("master-0", 0, "2026-10-19T10:02:00Z", metric="podStatusCount"),
            scalar("master-0", 12, "2026-10-19T10:03:00Z", metric="podStatusCount"),
            scalar("master-0", 40, "2026-10-19T10:04:00Z", metric="podStatusCount"),
        ],
    )
    write_metric(
        root / f"job-podLatency-{RUN_ID}.json",
        [
            {
                "quantileName": "Ready",
                "uuid": RUN_ID,
                "P99": 1200,
                "P95": 900,
                "P50": 400,
                "max": 1500,
                "avg": 450,
                "timestamp": "2026-10-19T10:05:00Z",
                "metricName": "podLatencyQuantilesMeasurement",
                "jobName": "node-density",
            }
        ],
    )
    write_metric(root / "nodeCPU-otherrun.json", [scalar("master-0", 99.0, "x")])
    return root
