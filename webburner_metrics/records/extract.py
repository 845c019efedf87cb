"""Resolve metric files to a record shape and compute their summary values."""

from __future__ import annotations

import enum
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

import numpy as np

from webburner_metrics.errors import EmptyInputError
from webburner_metrics.records.model import (
    MetricRecord,
    PodLatencyRecord,
    ScalarRecord,
    Shape,
    load_records,
)

logger = logging.getLogger(__name__)

_GIGABYTE = 1024**3


class Policy(enum.Enum):
    """How a metric file is reduced to a summary value."""

    PASSTHROUGH = "passthrough"
    MAXIMUM = "maximum"
    POSITIVE_COUNT = "positive_count"


@dataclass(frozen=True)
class ResolvedMetric:
    """File-name pattern bound to a record shape and metric key."""

    pattern: str
    shape: Shape
    key: str
    policy: Policy


# First match wins; `job-podLatency` must stay ahead of the scalar tags.
METRIC_TABLE: tuple[ResolvedMetric, ...] = (
    ResolvedMetric("job-podLatency", Shape.POD_LATENCY, "podLatency", Policy.PASSTHROUGH),
    ResolvedMetric("nodeCPU", Shape.FLOAT_INSTANCE, "nodeCPU", Policy.MAXIMUM),
    ResolvedMetric("nodeMemoryActive", Shape.INT_INSTANCE, "nodeMemoryActive", Policy.MAXIMUM),
    ResolvedMetric(
        "nodeMemoryAvailable", Shape.INT_INSTANCE, "nodeMemoryAvailable", Policy.MAXIMUM
    ),
    ResolvedMetric("nodeMemoryCached", Shape.INT_INSTANCE, "nodeMemoryCached", Policy.MAXIMUM),
    ResolvedMetric("kubeletCPU", Shape.FLOAT_NODE, "kubeletCPU", Policy.MAXIMUM),
    ResolvedMetric("kubeletMemory", Shape.FLOAT_NODE, "kubeletMemory", Policy.MAXIMUM),
    ResolvedMetric("crioCPU", Shape.FLOAT_NODE, "crioCPU", Policy.MAXIMUM),
    ResolvedMetric("crioMemory", Shape.INT_INSTANCE, "crioMemory", Policy.MAXIMUM),
    ResolvedMetric("API99thLatency", Shape.FLOAT_INSTANCE, "API99thLatency", Policy.MAXIMUM),
    ResolvedMetric("podStatusCount", Shape.INT_INSTANCE, "podStatusCount", Policy.POSITIVE_COUNT),
    ResolvedMetric("serviceCount", Shape.INT_INSTANCE, "serviceCount", Policy.POSITIVE_COUNT),
    ResolvedMetric(
        "namespaceCount", Shape.INT_INSTANCE, "namespaceCount", Policy.POSITIVE_COUNT
    ),
    ResolvedMetric(
        "deploymentCount", Shape.INT_INSTANCE, "deploymentCount", Policy.POSITIVE_COUNT
    ),
    ResolvedMetric(
        "99thEtcdDiskWalFsyncDurationSeconds",
        Shape.FLOAT_INSTANCE,
        "99thEtcdDiskWalFsyncDurationSeconds",
        Policy.MAXIMUM,
    ),
    ResolvedMetric(
        "etcdLeaderChangesRate",
        Shape.FLOAT_INSTANCE,
        "etcdLeaderChangesRate",
        Policy.POSITIVE_COUNT,
    ),
)

DEFAULT_METRIC = ResolvedMetric("", Shape.INT_INSTANCE, "default", Policy.MAXIMUM)

# Node metrics reported separately for control-plane and worker nodes.
SPLIT_NAMES: dict[str, tuple[str, str]] = {
    "nodeCPU": ("masterCPU", "workerCPU"),
    "nodeMemoryActive": ("masterMemoryActive", "workerMemoryActive"),
    "nodeMemoryAvailable": ("masterMemoryAvailable", "workerMemoryAvailable"),
    "nodeMemoryCached": ("masterMemoryCached", "workerMemoryCached"),
}


@dataclass(frozen=True)
class MetricSummary:
    """Summary values extracted from one metric file.

    Attributes:
        key: Resolved metric key (e.g. ``"nodeCPU"``).
        values: ``(name, text)`` pairs; one pair for plain metrics, up to two
            for master/worker split metrics, none for pod latency.
        start_time: Timestamp of the first record in file order.
        end_time: Timestamp of the last record in file order.
        path: File the summary was extracted from.
    """

    key: str
    values: tuple[tuple[str, str], ...]
    start_time: str | None
    end_time: str | None
    path: str

    def value(self, name: str) -> str | None:
        for n, v in self.values:
            if n == name:
                return v
        return None


def resolve_metric(path: str | Path) -> ResolvedMetric:
    """Pick the record shape and metric key for a file by its name."""
    name = Path(path).name
    for entry in METRIC_TABLE:
        if entry.pattern in name:
            return entry
    logger.debug("No metric pattern matches %s; using default", name)
    return DEFAULT_METRIC


def format_value(value: int | float) -> str:
    """Render a sample value the way it is stored in summary tables."""
    if isinstance(value, float):
        return f"{value:f}"
    return str(value)


def _scalar_records(records: Sequence[MetricRecord], source: str) -> list[ScalarRecord]:
    out = [r for r in records if isinstance(r, ScalarRecord)]
    if len(out) != len(records):
        raise TypeError(f"Expected scalar records from {source}")
    return out


def max_record(records: Sequence[ScalarRecord], *, source: str = "<records>") -> ScalarRecord:
    """Return the record holding the greatest value; ties keep the first seen.

    Raises:
        EmptyInputError: `records` is empty.
    """
    if not records:
        raise EmptyInputError(source)
    values = np.asarray([r.value for r in records])
    # argmax returns the first index of the maximum.
    return records[int(np.argmax(values))]


def split_max_records(
    records: Sequence[ScalarRecord],
    *,
    source: str = "<records>",
) -> tuple[ScalarRecord | None, ScalarRecord | None]:
    """Maxima over master nodes and over worker nodes.

    Nodes whose name contains neither ``"master"`` nor ``"worker"`` are
    ignored. A class without any record maps to ``None``.
    """
    if not records:
        raise EmptyInputError(source)
    masters = [r for r in records if "master" in r.node]
    workers = [r for r in records if "worker" in r.node]
    return (
        max_record(masters, source=source) if masters else None,
        max_record(workers, source=source) if workers else None,
    )


def count_positive(records: Sequence[ScalarRecord], *, source: str = "<records>") -> int:
    """Number of records whose value is strictly greater than zero."""
    if not records:
        raise EmptyInputError(source)
    values = np.asarray([r.value for r in records])
    return int(np.count_nonzero(values > 0))


def summarize_records(
    records: Sequence[MetricRecord],
    metric: ResolvedMetric,
    *,
    source: str = "<records>",
    split_nodes: bool = False,
) -> MetricSummary:
    """Reduce decoded records according to the metric's policy.

    Args:
        records: Records decoded with ``metric.shape``.
        metric: Resolved metric the records belong to.
        source: Name used in log and error messages.
        split_nodes: Report node metrics separately for master and worker
            nodes instead of a single maximum.

    Raises:
        EmptyInputError: `records` is empty.
    """
    if not records:
        raise EmptyInputError(source)

    if metric.policy is Policy.PASSTHROUGH:
        return MetricSummary(metric.key, (), None, None, source)

    scalars = _scalar_records(records, source)
    values: tuple[tuple[str, str], ...]
    if metric.policy is Policy.POSITIVE_COUNT:
        values = ((metric.key, str(count_positive(scalars, source=source))),)
    elif split_nodes and metric.key in SPLIT_NAMES:
        master, worker = split_max_records(scalars, source=source)
        master_name, worker_name = SPLIT_NAMES[metric.key]
        pairs: list[tuple[str, str]] = []
        if master is not None:
            pairs.append((master_name, format_value(master.value)))
        if worker is not None:
            pairs.append((worker_name, format_value(worker.value)))
        if not pairs:
            logger.warning("No master or worker nodes in %s", source)
        values = tuple(pairs)
    else:
        best = max_record(scalars, source=source)
        values = ((metric.key, format_value(best.value)),)

    return MetricSummary(
        key=metric.key,
        values=values,
        start_time=scalars[0].timestamp,
        end_time=scalars[-1].timestamp,
        path=source,
    )


def summarize_file(path: str | Path, *, split_nodes: bool = False) -> MetricSummary:
    """Load one metric file and compute its summary values.

    Raises:
        FileReadError: The file cannot be read.
        DecodeError: The file does not match its resolved shape.
        EmptyInputError: The file holds an empty array.
    """
    p = Path(path)
    metric = resolve_metric(p)
    records = load_records(p, metric.shape)
    summary = summarize_records(records, metric, source=str(p), split_nodes=split_nodes)
    logger.debug("Summarized %s as %s: %s", p.name, metric.key, summary.values)
    return summary


def _parse_number(text: str) -> float:
    try:
        return float(text)
    except ValueError as e:
        raise ValueError(f"Not a decimal value: {text!r}") from e


def clean_value(text: str) -> str:
    """Round a decimal string to two places (``"3.000000"`` -> ``"3.00"``)."""
    if text == "":
        return ""
    return f"{_parse_number(text):.2f}"


def to_gigabytes(text: str) -> str:
    """Render a byte count in gigabytes with a ``GB`` suffix.

    Values of 1000 or less are not scaled but still carry the suffix, so
    ``"500"`` becomes ``"500.00GB"``.
    """
    if text == "":
        return ""
    value = _parse_number(text)
    if value > 1000:
        value = value / _GIGABYTE
    return f"{value:.2f}GB"


def pod_latency_records(records: Sequence[MetricRecord]) -> list[PodLatencyRecord]:
    """Narrow decoded records to pod-latency rows."""
    out = [r for r in records if isinstance(r, PodLatencyRecord)]
    if len(out) != len(records):
        raise TypeError("Expected pod-latency records")
    return out
