"""Locate the metric files of one run inside a collected-metrics directory."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

logger = logging.getLogger(__name__)

# Metrics summarized into the per-iteration summary row.
SUMMARY_TAGS: tuple[str, ...] = (
    "nodeCPU",
    "nodeMemoryActive",
    "nodeMemoryAvailable",
    "nodeMemoryCached",
    "kubeletMemory",
    "kubeletCPU",
    "crioCPU",
    "crioMemory",
    "API99thLatency",
    "podStatusCount",
    "serviceCount",
    "namespaceCount",
    "deploymentCount",
    "99thEtcdDiskWalFsyncDurationSeconds",
    "etcdLeaderChangesRate",
)

# Metrics broken down by node and job, plus the pod latency dump.
BREAKDOWN_TAGS: tuple[str, ...] = (
    "nodeCPU",
    "nodeMemoryActive",
    "nodeMemoryAvailable",
    "nodeMemoryCached",
    "kubeletMemory",
    "kubeletCPU",
    "crioCPU",
    "crioMemory",
    "API99thLatency",
    "job-podLatency",
)


def discover_metric_files(
    directory: str | Path,
    run_id: str,
    tags: Sequence[str],
) -> list[Path]:
    """Find metric files whose names contain both `run_id` and a tag.

    Args:
        directory: Directory holding the collected ``*.json`` metric files.
        run_id: Run identifier that must appear in the file name.
        tags: Metric names to look for; results are grouped in this order.

    Returns:
        Matching paths, grouped by tag and sorted by name within a tag. A
        file matching several tags is listed once, under its first tag.
    """
    root = Path(directory)
    if not root.is_dir():
        raise FileNotFoundError(f"Metrics directory does not exist: {root}")

    candidates = sorted(p for p in root.glob("*.json") if p.is_file() and run_id in p.name)
    out: list[Path] = []
    seen: set[Path] = set()
    for tag in tags:
        matches = [p for p in candidates if tag in p.name and p not in seen]
        if not matches:
            logger.info("No %s file found for run %s in %s", tag, run_id, root)
            continue
        out.extend(matches)
        seen.update(matches)
    logger.info("Found %d metric files for run %s", len(out), run_id)
    return out
