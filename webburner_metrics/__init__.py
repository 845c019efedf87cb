"""Web-burner benchmark metric summarizer."""

from webburner_metrics.records.extract import summarize_file
from webburner_metrics.records.model import Shape, decode_records, load_records
from webburner_metrics.reports.summary import SUMMARY_HEADER, SummaryRow, build_summary_row
from webburner_metrics.state import RunStateStore

__all__ = [
    "SUMMARY_HEADER",
    "RunStateStore",
    "Shape",
    "SummaryRow",
    "build_summary_row",
    "decode_records",
    "load_records",
    "summarize_file",
]

__version__ = "0.1.0"
