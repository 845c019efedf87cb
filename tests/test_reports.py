from __future__ import annotations

from pathlib import Path

import pandas as pd
import pytest
from conftest import RUN_ID, scalar, write_metric

from webburner_metrics.errors import EmptyInputError
from webburner_metrics.raw.discovery import SUMMARY_TAGS, discover_metric_files
from webburner_metrics.records.model import ScalarRecord
from webburner_metrics.reports.breakdown import (
    BREAKDOWN_HEADER,
    POD_LATENCY_HEADER,
    breakdown_rows,
    write_breakdown_table,
    write_breakdown_tables,
)
from webburner_metrics.reports.summary import (
    SUMMARY_HEADER,
    SummaryRow,
    append_summary_row,
    build_summary_row,
    ensure_summary_table,
    read_summary_table,
)


class TestSummaryRow:
    def test_build_from_run(self, metrics_dir: Path) -> None:
        files = discover_metric_files(metrics_dir, RUN_ID, SUMMARY_TAGS)
        row = build_summary_row(files, run_id=RUN_ID, iteration="iteration_1")

        assert row.iteration == "iteration_1"
        assert row.uuid == RUN_ID
        assert row.master_cpu == "2.00"
        assert row.worker_cpu == "3.25"
        assert row.master_memory_active == "2.00GB"
        assert row.worker_memory_active == "500.00GB"
        assert row.kubelet_cpu == "0.75"
        assert row.pod_count == "2"
        assert row.service_count == ""
        # podStatusCount is the last summarized file.
        assert row.start_time == "2026-10-19T10:02:00Z"
        assert row.end_time == "2026-10-19T10:04:00Z"

    def test_every_summary_column(self, metrics_dir: Path) -> None:
        def add(tag: str, samples: list[tuple[str, float | int, str]], **kw: str) -> None:
            write_metric(
                metrics_dir / f"{tag}-{RUN_ID}.json",
                [scalar(node, value, ts, metric=tag, **kw) for node, value, ts in samples],
            )

        add("nodeMemoryAvailable", [("master-0", 3221225472, "t0"), ("worker-1", 1073741824, "t1")])
        add("nodeMemoryCached", [("master-0", 536870912, "t0"), ("worker-1", 800, "t1")])
        add(
            "kubeletMemory",
            [("master-0", 52428800.0, "t0"), ("worker-1", 104857600.0, "t1")],
            label_key="node",
        )
        add("crioCPU", [("master-0", 0.333, "t0"), ("worker-1", 1.256, "t1")], label_key="node")
        add("crioMemory", [("master-0", 2684354560, "t0")])
        add("API99thLatency", [("master-0", 0.5, "t0"), ("master-1", 0.876, "t1")])
        add("serviceCount", [("master-0", 0, "t0"), ("master-0", 3, "t1"), ("master-0", 5, "t2")])
        add("namespaceCount", [("master-0", 1, "t0")])
        add("deploymentCount", [("master-0", 0, "t0"), ("master-0", 0, "t1")])
        add(
            "99thEtcdDiskWalFsyncDurationSeconds",
            [("master-0", 0.004, "t0"), ("master-1", 0.0123456, "t1")],
        )
        add("etcdLeaderChangesRate", [("master-0", 0.0, "e0"), ("master-1", 0.0, "e1")])

        files = discover_metric_files(metrics_dir, RUN_ID, SUMMARY_TAGS)
        assert len(files) == len(SUMMARY_TAGS)
        row = build_summary_row(files, run_id=RUN_ID, iteration="iteration_1")

        assert dict(zip(SUMMARY_HEADER, row.as_list(), strict=True)) == {
            "Iteration": "iteration_1",
            "StartTime": "e0",
            "EndTime": "e1",
            "UUID": RUN_ID,
            "MasterCPU": "2.00",
            "WorkerCPU": "3.25",
            "MasterMemoryActive": "2.00GB",
            "WorkerMemoryActive": "500.00GB",
            "MasterMemoryAvailable": "3.00GB",
            "WorkerMemoryAvailable": "1.00GB",
            "MasterMemoryCached": "0.50GB",
            "WorkerMemoryCached": "800.00GB",
            "KubeletCPU": "0.75",
            "KubeletMemory": "0.10GB",
            "CrioCPU": "1.26",
            "CrioMemory": "2.50GB",
            "API99thLatency": "0.88",
            "PodCount": "2",
            "ServiceCount": "2",
            "NamespaceCount": "1",
            "DeploymentCount": "0",
            "99thEtcdDiskWalFsyncDurationSeconds": "0.01",
            "EtcdLeaderChangeRate": "0",
        }

    def test_etcd_fsync_rounded(self, tmp_path: Path) -> None:
        path = write_metric(
            tmp_path / "99thEtcdDiskWalFsyncDurationSeconds-r.json",
            [scalar("master-0", 0.0123456, "t0", metric="99thEtcdDiskWalFsyncDurationSeconds")],
        )
        row = build_summary_row([path], run_id="r", iteration="iteration_1")
        assert row.etcd_fsync_99th == "0.01"

    def test_bad_file_is_skipped(self, tmp_path: Path) -> None:
        good = write_metric(
            tmp_path / "nodeCPU-r.json",
            [scalar("master-0", 1.0, "a0"), scalar("worker-0", 2.0, "a1")],
        )
        broken = tmp_path / "serviceCount-r.json"
        broken.write_text("[{")
        empty = write_metric(tmp_path / "namespaceCount-r.json", [])

        row = build_summary_row([good, broken, empty], run_id="r", iteration="iteration_3")
        assert row.master_cpu == "1.00"
        assert row.worker_cpu == "2.00"
        assert row.service_count == ""
        assert row.namespace_count == ""
        assert (row.start_time, row.end_time) == ("a0", "a1")

    def test_window_from_last_file(self, tmp_path: Path) -> None:
        first = write_metric(tmp_path / "nodeCPU-r.json", [scalar("master-0", 1.0, "a0")])
        second = write_metric(
            tmp_path / "serviceCount-r.json",
            [scalar("master-0", 1, "b0"), scalar("master-0", 1, "b1")],
        )
        row = build_summary_row([first, second], run_id="r", iteration="iteration_1")
        assert (row.start_time, row.end_time) == ("b0", "b1")

    def test_unknown_metric_name(self) -> None:
        row = SummaryRow()
        assert not row.set_metric("default", "5")
        assert row.set_metric("crioMemory", "1073741824")
        assert row.crio_memory == "1.00GB"


class TestSummaryTable:
    def test_header_written_once(self, tmp_path: Path) -> None:
        table = tmp_path / "gsheet" / "2026-October-19.csv"
        assert ensure_summary_table(table)
        assert not ensure_summary_table(table)
        lines = table.read_text().splitlines()
        assert lines == [",".join(SUMMARY_HEADER)]

    def test_append_preserves_text(self, tmp_path: Path) -> None:
        table = tmp_path / "summary.csv"
        ensure_summary_table(table)
        first = SummaryRow(iteration="iteration_1", uuid="u1", master_cpu="3.00", pod_count="0")
        second = SummaryRow(
            iteration="iteration_2",
            uuid="u2",
            worker_memory_cached="500.00GB",
            etcd_fsync_99th="0.01",
        )
        append_summary_row(table, first)
        append_summary_row(table, second)

        df = read_summary_table(table)
        assert list(df.columns) == list(SUMMARY_HEADER)
        assert df.values.tolist() == [first.as_list(), second.as_list()]

    def test_append_requires_table(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError, match="does not exist"):
            append_summary_row(tmp_path / "missing.csv", SummaryRow())


class TestBreakdown:
    def test_rows_grouped_by_node_then_job(self) -> None:
        records = [
            ScalarRecord("t0", "node-a", 1, "u", "q", "m", "job1"),
            ScalarRecord("t1", "node-b", 5, "u", "q", "m", "job1"),
            ScalarRecord("t2", "node-a", 3, "u", "q", "m", "job2"),
            ScalarRecord("t3", "node-a", 4, "u", "q", "m", "job1"),
            ScalarRecord("t4", "node-a", 4, "u", "q", "m", "job1"),
        ]
        rows = breakdown_rows(records)
        assert [(r.node, r.job_name, r.max_value, r.timestamp) for r in rows] == [
            ("node-a", "job1", "4", "t3"),
            ("node-a", "job2", "3", "t2"),
            ("node-b", "job1", "5", "t1"),
        ]

    def test_write_scalar_table(self, metrics_dir: Path, tmp_path: Path) -> None:
        out = tmp_path / "max-job-val"
        dest = write_breakdown_table(metrics_dir / f"nodeCPU-{RUN_ID}.json", "run1", out)
        assert dest == out / "nodeCPU-run1.csv"

        df = pd.read_csv(dest, dtype=str, keep_default_na=False)
        assert list(df.columns) == list(BREAKDOWN_HEADER)
        assert df["Node"].tolist() == ["master-0", "worker-1"]
        assert df["MaxValue"].tolist() == ["2.000000", "3.250000"]
        assert df["Timestamp"].tolist() == ["2026-10-19T10:01:00Z", "2026-10-19T10:00:30Z"]

    def test_write_pod_latency_table(self, metrics_dir: Path, tmp_path: Path) -> None:
        dest = write_breakdown_table(
            metrics_dir / f"job-podLatency-{RUN_ID}.json", "run1", tmp_path
        )
        assert dest.name == "podLatency-run1.csv"

        df = pd.read_csv(dest, dtype=str, keep_default_na=False)
        assert list(df.columns) == list(POD_LATENCY_HEADER)
        assert df.values.tolist() == [
            [
                "Ready",
                RUN_ID,
                "1200",
                "900",
                "400",
                "1500",
                "450",
                "2026-10-19T10:05:00Z",
                "podLatencyQuantilesMeasurement",
                "node-density",
            ]
        ]

    def test_empty_file(self, tmp_path: Path) -> None:
        path = write_metric(tmp_path / "job-podLatency-x.json", [])
        with pytest.raises(EmptyInputError):
            write_breakdown_table(path, "x", tmp_path / "out")

    def test_bad_files_skipped(self, metrics_dir: Path, tmp_path: Path) -> None:
        broken = metrics_dir / f"crioCPU-{RUN_ID}.json"
        broken.write_text('{"not": "a list"}')
        written = write_breakdown_tables(
            [metrics_dir / f"kubeletCPU-{RUN_ID}.json", broken], RUN_ID, tmp_path / "out"
        )
        assert [p.name for p in written] == [f"kubeletCPU-{RUN_ID}.csv"]
