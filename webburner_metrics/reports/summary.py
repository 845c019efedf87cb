"""Per-iteration summary row and the append-only summary table."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path

import pandas as pd

from webburner_metrics.errors import MetricsError
from webburner_metrics.records.extract import clean_value, summarize_file, to_gigabytes

logger = logging.getLogger(__name__)


@dataclass
class SummaryRow:
    """One line of the summary table.

    Every field holds the final text written to its column; an unset metric
    stays an empty string.
    """

    iteration: str = ""
    start_time: str = ""
    end_time: str = ""
    uuid: str = ""
    master_cpu: str = ""
    worker_cpu: str = ""
    master_memory_active: str = ""
    worker_memory_active: str = ""
    master_memory_available: str = ""
    worker_memory_available: str = ""
    master_memory_cached: str = ""
    worker_memory_cached: str = ""
    kubelet_cpu: str = ""
    kubelet_memory: str = ""
    crio_cpu: str = ""
    crio_memory: str = ""
    api_99th_latency: str = ""
    pod_count: str = ""
    service_count: str = ""
    namespace_count: str = ""
    deployment_count: str = ""
    etcd_fsync_99th: str = ""
    etcd_leader_change_rate: str = ""

    def set_metric(self, name: str, text: str) -> bool:
        """Store an extracted metric value in its column.

        Args:
            name: Value name produced by the extractor (e.g. ``"masterCPU"``).
            text: Value as formatted by the extractor.

        Returns:
            False if no column tracks `name`.
        """
        target = _METRIC_FIELDS.get(name)
        if target is None:
            logger.debug("No summary column for metric %r", name)
            return False
        field_name, convert = target
        setattr(self, field_name, convert(text))
        return True

    def as_list(self) -> list[str]:
        """Column values in header order."""
        return [getattr(self, f) for _, f in SUMMARY_COLUMNS]


def _verbatim(text: str) -> str:
    return text


# Extractor value name -> (row field, column formatter).
_METRIC_FIELDS: dict[str, tuple[str, Callable[[str], str]]] = {
    "masterCPU": ("master_cpu", clean_value),
    "workerCPU": ("worker_cpu", clean_value),
    "masterMemoryActive": ("master_memory_active", to_gigabytes),
    "workerMemoryActive": ("worker_memory_active", to_gigabytes),
    "masterMemoryAvailable": ("master_memory_available", to_gigabytes),
    "workerMemoryAvailable": ("worker_memory_available", to_gigabytes),
    "masterMemoryCached": ("master_memory_cached", to_gigabytes),
    "workerMemoryCached": ("worker_memory_cached", to_gigabytes),
    "kubeletCPU": ("kubelet_cpu", clean_value),
    "kubeletMemory": ("kubelet_memory", to_gigabytes),
    "crioCPU": ("crio_cpu", clean_value),
    "crioMemory": ("crio_memory", to_gigabytes),
    "API99thLatency": ("api_99th_latency", clean_value),
    "podStatusCount": ("pod_count", _verbatim),
    "serviceCount": ("service_count", _verbatim),
    "namespaceCount": ("namespace_count", _verbatim),
    "deploymentCount": ("deployment_count", _verbatim),
    "99thEtcdDiskWalFsyncDurationSeconds": ("etcd_fsync_99th", clean_value),
    "etcdLeaderChangesRate": ("etcd_leader_change_rate", _verbatim),
}

# (header, row field) in table order.
SUMMARY_COLUMNS: tuple[tuple[str, str], ...] = (
    ("Iteration", "iteration"),
    ("StartTime", "start_time"),
    ("EndTime", "end_time"),
    ("UUID", "uuid"),
    ("MasterCPU", "master_cpu"),
    ("WorkerCPU", "worker_cpu"),
    ("MasterMemoryActive", "master_memory_active"),
    ("WorkerMemoryActive", "worker_memory_active"),
    ("MasterMemoryAvailable", "master_memory_available"),
    ("WorkerMemoryAvailable", "worker_memory_available"),
    ("MasterMemoryCached", "master_memory_cached"),
    ("WorkerMemoryCached", "worker_memory_cached"),
    ("KubeletCPU", "kubelet_cpu"),
    ("KubeletMemory", "kubelet_memory"),
    ("CrioCPU", "crio_cpu"),
    ("CrioMemory", "crio_memory"),
    ("API99thLatency", "api_99th_latency"),
    ("PodCount", "pod_count"),
    ("ServiceCount", "service_count"),
    ("NamespaceCount", "namespace_count"),
    ("DeploymentCount", "deployment_count"),
    ("99thEtcdDiskWalFsyncDurationSeconds", "etcd_fsync_99th"),
    ("EtcdLeaderChangeRate", "etcd_leader_change_rate"),
)

SUMMARY_HEADER: tuple[str, ...] = tuple(h for h, _ in SUMMARY_COLUMNS)


def build_summary_row(
    files: Sequence[str | Path],
    *,
    run_id: str,
    iteration: str,
) -> SummaryRow:
    """Summarize every metric file of a run into one row.

    Files are processed in order. A file that cannot be read, decoded or
    holds no records is logged and left out of the row. The reported time
    window is the one of the last file summarized successfully.
    """
    row = SummaryRow(iteration=iteration, uuid=run_id)
    used = 0
    for path in files:
        try:
            summary = summarize_file(path, split_nodes=True)
        except MetricsError:
            logger.warning("Skipping metric file %s", path, exc_info=True)
            continue
        for name, text in summary.values:
            row.set_metric(name, text)
        if summary.start_time is not None and summary.end_time is not None:
            row.start_time = summary.start_time
            row.end_time = summary.end_time
        used += 1
    logger.info("Summarized %d of %d metric files for %s", used, len(files), run_id)
    return row


def ensure_summary_table(path: str | Path) -> bool:
    """Create the summary table with its header if it does not exist yet.

    Returns:
        True if the table was created by this call.
    """
    p = Path(path)
    if p.exists():
        return False
    p.parent.mkdir(parents=True, exist_ok=True)
    pd.DataFrame(columns=list(SUMMARY_HEADER)).to_csv(p, index=False)
    logger.info("Created summary table %s", p)
    return True


def append_summary_row(path: str | Path, row: SummaryRow) -> None:
    """Append one row to an existing summary table."""
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Summary table does not exist: {p}")
    df = pd.DataFrame([row.as_list()], columns=list(SUMMARY_HEADER))
    df.to_csv(p, mode="a", header=False, index=False)
    logger.info("Appended %s to %s", row.iteration or "row", p)


def read_summary_table(path: str | Path) -> pd.DataFrame:
    """Load a summary table with every cell kept as text."""
    return pd.read_csv(Path(path), dtype=str, keep_default_na=False)
