"""Metric record decoders and summary extraction."""

from webburner_metrics.records.extract import (
    MetricSummary,
    ResolvedMetric,
    clean_value,
    resolve_metric,
    summarize_file,
    to_gigabytes,
)
from webburner_metrics.records.model import (
    MetricRecord,
    PodLatencyRecord,
    ScalarRecord,
    Shape,
    decode_records,
    load_records,
)

__all__ = [
    "MetricRecord",
    "MetricSummary",
    "PodLatencyRecord",
    "ResolvedMetric",
    "ScalarRecord",
    "Shape",
    "clean_value",
    "decode_records",
    "load_records",
    "resolve_metric",
    "summarize_file",
    "to_gigabytes",
]
