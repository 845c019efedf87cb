"""Per-node, per-job maxima tables for individual metric files."""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

import pandas as pd

from webburner_metrics.errors import EmptyInputError, MetricsError
from webburner_metrics.records.extract import format_value, pod_latency_records, resolve_metric
from webburner_metrics.records.model import PodLatencyRecord, ScalarRecord, Shape, load_records

logger = logging.getLogger(__name__)

BREAKDOWN_HEADER: tuple[str, ...] = (
    "JobName",
    "Node",
    "MaxValue",
    "MetricName",
    "Timestamp",
    "UUID",
    "Query",
)

POD_LATENCY_HEADER: tuple[str, ...] = (
    "quantileName",
    "uuid",
    "p99",
    "p95",
    "p50",
    "max",
    "avg",
    "timestamp",
    "metricName",
    "jobName",
)


@dataclass(frozen=True)
class BreakdownRow:
    """Maximum sample of one (node, job) pair.

    Attributes:
        job_name: Benchmark job.
        node: Node label value.
        max_value: Greatest sample value, formatted as text.
        metric_name: Source metric name of the record holding the maximum.
        timestamp: Timestamp of the record holding the maximum.
        uuid: Run identifier.
        query: PromQL query of the record holding the maximum.
    """

    job_name: str
    node: str
    max_value: str
    metric_name: str
    timestamp: str
    uuid: str
    query: str


def breakdown_rows(records: Sequence[ScalarRecord]) -> list[BreakdownRow]:
    """Greatest record per (node, job) pair.

    Nodes appear in first-seen order and, within a node, jobs appear in
    first-seen order. Ties keep the earlier record.
    """
    best: dict[str, dict[str, ScalarRecord]] = {}
    for r in records:
        jobs = best.setdefault(r.node, {})
        current = jobs.get(r.job_name)
        if current is None or r.value > current.value:
            jobs[r.job_name] = r

    rows: list[BreakdownRow] = []
    for node, jobs in best.items():
        for job_name, r in jobs.items():
            rows.append(
                BreakdownRow(
                    job_name=job_name,
                    node=node,
                    max_value=format_value(r.value),
                    metric_name=r.metric_name,
                    timestamp=r.timestamp,
                    uuid=r.uuid,
                    query=r.query,
                )
            )
    return rows


def pod_latency_rows(records: Sequence[PodLatencyRecord]) -> list[list[str]]:
    """One table row per pod-latency record, in input order."""
    return [
        [
            r.quantile_name,
            r.uuid,
            str(r.p99),
            str(r.p95),
            str(r.p50),
            str(r.max),
            str(r.avg),
            r.timestamp,
            r.metric_name,
            r.job_name,
        ]
        for r in records
    ]


def breakdown_table_path(key: str, run_id: str, out_dir: str | Path) -> Path:
    """Location of the breakdown table for a metric key and run."""
    return Path(out_dir) / f"{key}-{run_id}.csv"


def breakdown_frame(path: str | Path) -> tuple[str, pd.DataFrame]:
    """Build the breakdown table of one metric file.

    Returns:
        The resolved metric key and the table contents.

    Raises:
        FileReadError: The file cannot be read.
        DecodeError: The file does not match its resolved shape.
        EmptyInputError: The file holds an empty array.
    """
    p = Path(path)
    metric = resolve_metric(p)
    records = load_records(p, metric.shape)
    if not records:
        raise EmptyInputError(p)

    if metric.shape is Shape.POD_LATENCY:
        logger.info("Writing pod latency records of %s without aggregation", p.name)
        rows = pod_latency_rows(pod_latency_records(records))
        return metric.key, pd.DataFrame(rows, columns=list(POD_LATENCY_HEADER))

    scalars = [r for r in records if isinstance(r, ScalarRecord)]
    data = [dataclasses.astuple(r) for r in breakdown_rows(scalars)]
    return metric.key, pd.DataFrame(data, columns=list(BREAKDOWN_HEADER))


def write_breakdown_table(path: str | Path, run_id: str, out_dir: str | Path) -> Path:
    """Write the breakdown table of one metric file to `out_dir`.

    The table is named ``<metric key>-<run id>.csv`` and replaces any table
    of the same name.
    """
    key, df = breakdown_frame(path)
    dest = breakdown_table_path(key, run_id, out_dir)
    dest.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(dest, index=False)
    logger.info("Wrote %s (%d rows)", dest, len(df))
    return dest


def write_breakdown_tables(
    files: Sequence[str | Path],
    run_id: str,
    out_dir: str | Path,
) -> list[Path]:
    """Write one breakdown table per metric file, skipping unusable files."""
    written: list[Path] = []
    for path in files:
        try:
            written.append(write_breakdown_table(path, run_id, out_dir))
        except MetricsError:
            logger.warning("Skipping breakdown for %s", path, exc_info=True)
    logger.info("Wrote %d breakdown tables to %s", len(written), out_dir)
    return written
