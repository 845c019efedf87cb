"""Raw metric file discovery."""

from webburner_metrics.raw.discovery import (
    BREAKDOWN_TAGS,
    SUMMARY_TAGS,
    discover_metric_files,
)

__all__ = [
    "BREAKDOWN_TAGS",
    "SUMMARY_TAGS",
    "discover_metric_files",
]
