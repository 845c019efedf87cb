"""Summary and breakdown tables built from metric files."""

from webburner_metrics.reports.breakdown import (
    BreakdownRow,
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

__all__ = [
    "SUMMARY_HEADER",
    "BreakdownRow",
    "SummaryRow",
    "append_summary_row",
    "build_summary_row",
    "ensure_summary_table",
    "read_summary_table",
    "write_breakdown_table",
    "write_breakdown_tables",
]
