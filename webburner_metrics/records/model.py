"""Typed record shapes found in web-burner metric snapshot files."""

from __future__ import annotations

import enum
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from webburner_metrics.errors import DecodeError, FileReadError

logger = logging.getLogger(__name__)


class Shape(enum.Enum):
    """Structural JSON layout of one metric file.

    Scalar shapes differ only in the numeric type of ``value`` and in which
    ``labels`` key carries the node name.
    """

    POD_LATENCY = "pod_latency"
    INT_INSTANCE = "int_instance"
    FLOAT_INSTANCE = "float_instance"
    FLOAT_NODE = "float_node"

    @property
    def label_key(self) -> str | None:
        if self is Shape.POD_LATENCY:
            return None
        if self is Shape.FLOAT_NODE:
            return "node"
        return "instance"

    @property
    def is_float(self) -> bool:
        return self in (Shape.FLOAT_INSTANCE, Shape.FLOAT_NODE)


@dataclass(frozen=True)
class PodLatencyRecord:
    """One pod-latency quantile row.

    Attributes:
        quantile_name: Pod condition the quantiles refer to (e.g. ``"Ready"``).
        uuid: Run identifier.
        p99: 99th percentile latency in milliseconds.
        p95: 95th percentile latency in milliseconds.
        p50: Median latency in milliseconds.
        max: Maximum latency in milliseconds.
        avg: Average latency in milliseconds.
        timestamp: Collection timestamp as written by the benchmark.
        metric_name: Source metric name.
        job_name: Benchmark job the quantiles belong to.
    """

    quantile_name: str
    uuid: str
    p99: int
    p95: int
    p50: int
    max: int
    avg: int
    timestamp: str
    metric_name: str
    job_name: str


@dataclass(frozen=True)
class ScalarRecord:
    """One sample of a Prometheus-style scalar metric.

    Attributes:
        timestamp: Sample timestamp as written by the benchmark.
        node: Node name taken from ``labels.instance`` or ``labels.node``.
        value: Sample value (int or float depending on the file shape).
        uuid: Run identifier.
        query: PromQL query that produced the sample.
        metric_name: Source metric name.
        job_name: Benchmark job the sample belongs to.
        labels: Full label mapping of the sample.
    """

    timestamp: str
    node: str
    value: int | float
    uuid: str
    query: str
    metric_name: str
    job_name: str
    labels: dict[str, Any] = field(default_factory=dict, compare=False)


MetricRecord = PodLatencyRecord | ScalarRecord


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-standard constant {name}")


def _require(obj: dict[str, Any], key: str, index: int, *aliases: str) -> Any:
    for k in (key, *aliases):
        if k in obj:
            return obj[k]
    raise ValueError(f"element {index} is missing required field {key!r}")


def _as_str(raw: Any, key: str, index: int) -> str:
    if not isinstance(raw, str):
        raise ValueError(f"element {index} field {key!r} must be a string, got {raw!r}")
    return raw


def _optional_str(obj: dict[str, Any], key: str, index: int) -> str:
    raw = obj.get(key)
    if raw is None:
        return ""
    return _as_str(raw, key, index)


def _as_int(raw: Any, key: str, index: int) -> int:
    if isinstance(raw, bool) or not isinstance(raw, int):
        raise ValueError(f"element {index} field {key!r} must be an integer, got {raw!r}")
    return raw


def _as_float(raw: Any, key: str, index: int) -> float:
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise ValueError(f"element {index} field {key!r} must be a number, got {raw!r}")
    return float(raw)


def _pod_latency(obj: dict[str, Any], index: int) -> PodLatencyRecord:
    # kube-burner writes P99/P95/P50 capitalized; older summaries use lowercase.
    uuid = obj.get("uuid", obj.get("uid"))
    return PodLatencyRecord(
        quantile_name=_as_str(_require(obj, "quantileName", index), "quantileName", index),
        uuid=_as_str(uuid, "uuid", index) if uuid is not None else "",
        p99=_as_int(_require(obj, "p99", index, "P99"), "p99", index),
        p95=_as_int(_require(obj, "p95", index, "P95"), "p95", index),
        p50=_as_int(_require(obj, "p50", index, "P50"), "p50", index),
        max=_as_int(_require(obj, "max", index), "max", index),
        avg=_as_int(_require(obj, "avg", index), "avg", index),
        timestamp=_as_str(_require(obj, "timestamp", index), "timestamp", index),
        metric_name=_optional_str(obj, "metricName", index),
        job_name=_optional_str(obj, "jobName", index),
    )


def _scalar(obj: dict[str, Any], index: int, shape: Shape) -> ScalarRecord:
    label_key = shape.label_key
    if label_key is None:
        raise ValueError(f"{shape.value} records carry no node label")
    labels = _require(obj, "labels", index)
    if not isinstance(labels, dict):
        raise ValueError(f"element {index} field 'labels' must be an object, got {labels!r}")
    if label_key not in labels:
        raise ValueError(f"element {index} is missing required label {label_key!r}")
    node = _as_str(labels[label_key], f"labels.{label_key}", index)

    raw_value = _require(obj, "value", index)
    value: int | float
    if shape.is_float:
        value = _as_float(raw_value, "value", index)
    else:
        value = _as_int(raw_value, "value", index)

    return ScalarRecord(
        timestamp=_as_str(_require(obj, "timestamp", index), "timestamp", index),
        node=node,
        value=value,
        uuid=_optional_str(obj, "uuid", index),
        query=_optional_str(obj, "query", index),
        metric_name=_optional_str(obj, "metricName", index),
        job_name=_optional_str(obj, "jobName", index),
        labels=dict(labels),
    )


def decode_records(
    data: bytes | str,
    shape: Shape,
    *,
    source: str | Path = "<memory>",
) -> list[MetricRecord]:
    """Decode a JSON array into records of exactly one shape.

    Args:
        data: Raw file contents.
        shape: Record layout every element must match.
        source: Name used in error messages (usually the file path).

    Returns:
        Records in file order. An empty array decodes to an empty list.

    Raises:
        DecodeError: Invalid JSON, a non-array document, or an element that
            does not match `shape`.
    """
    try:
        payload = json.loads(data, parse_constant=_reject_constant)
    except ValueError as e:
        raise DecodeError(source, f"invalid JSON ({e})") from e
    if not isinstance(payload, list):
        raise DecodeError(source, f"expected a JSON array, got {type(payload).__name__}")

    out: list[MetricRecord] = []
    for i, obj in enumerate(payload):
        if not isinstance(obj, dict):
            raise DecodeError(source, f"element {i} is not an object")
        try:
            if shape is Shape.POD_LATENCY:
                out.append(_pod_latency(obj, i))
            else:
                out.append(_scalar(obj, i, shape))
        except ValueError as e:
            raise DecodeError(source, str(e)) from e
    logger.debug("Decoded %d %s records from %s", len(out), shape.value, source)
    return out


def load_records(path: str | Path, shape: Shape) -> list[MetricRecord]:
    """Read a metric file from disk and decode it as `shape`."""
    p = Path(path)
    try:
        data = p.read_bytes()
    except OSError as e:
        raise FileReadError(p, e.strerror or str(e)) from e
    return decode_records(data, shape, source=p)
