"""Summarize web-burner metric files into CSV tables and publish them.

Two commands are provided:

- ``summarize`` appends one row per iteration to the day's summary table
  (``<output-dir>/<year>-<Month>-<day>.csv``), writes per-node/per-job
  breakdown tables to ``<output-dir>/max-job-val/``, and optionally uploads
  everything to Google Sheets.
- ``convert`` turns a single metric file into a breakdown table and
  optionally uploads it to a new or existing spreadsheet.

Usage::

    webburner-metrics summarize --uuid 8f1c... \\
      --metrics-dir collected-metrics --output-dir gsheet

    GOOGLE_OAUTH_ACCESS_TOKEN=$(gcloud auth print-access-token) \\
    webburner-metrics summarize --uuid 8f1c... --gdocs --parent <folder id>

    webburner-metrics convert --json collected-metrics/nodeCPU-8f1c.json \\
      --csv node-cpu.csv
"""

from __future__ import annotations

import argparse
import datetime as dt
import logging
from collections.abc import Sequence
from pathlib import Path

from webburner_metrics.config import ConvertConfig, ReportConfig
from webburner_metrics.errors import MetricsError
from webburner_metrics.raw.discovery import BREAKDOWN_TAGS, SUMMARY_TAGS, discover_metric_files
from webburner_metrics.reports.breakdown import breakdown_frame, write_breakdown_tables
from webburner_metrics.reports.summary import (
    append_summary_row,
    build_summary_row,
    ensure_summary_table,
)
from webburner_metrics.sinks import (
    GoogleSheetsSink,
    SpreadsheetSink,
    publish_summary,
    publish_table,
)
from webburner_metrics.state import RunStateStore, day_key

logger = logging.getLogger(__name__)


def run_summarize(
    config: ReportConfig,
    *,
    today: dt.date | None = None,
    sink: SpreadsheetSink | None = None,
) -> Path:
    """Summarize one iteration of a run and return the summary table path."""
    day = day_key(today)
    logger.info("Looking for metric files of run %s in %s", config.run_id, config.metrics_dir)
    files = discover_metric_files(config.metrics_dir, config.run_id, SUMMARY_TAGS)

    if not config.output_dir.exists():
        logger.info("Creating output directory %s", config.output_dir)
    config.breakdown_dir.mkdir(parents=True, exist_ok=True)

    table = config.output_dir / f"{day}.csv"
    ensure_summary_table(table)

    state = RunStateStore(config.state_path)
    iteration = state.next_iteration(day)
    logger.info("This will be %s", iteration)

    row = build_summary_row(files, run_id=config.run_id, iteration=iteration)
    append_summary_row(table, row)
    logger.info("Wrote summary data to %s", table)

    sheet_id = None
    if config.upload:
        if sink is None:
            sink = GoogleSheetsSink(config.token or "")
        sheet_id = publish_summary(
            sink,
            table,
            parent_id=config.parent_id or "",
            title=table.name,
            state=state,
            day=day,
        )

    logger.info("Writing max values by node by job to %s", config.breakdown_dir)
    breakdown_files = discover_metric_files(config.metrics_dir, config.run_id, BREAKDOWN_TAGS)
    tables = write_breakdown_tables(breakdown_files, config.run_id, config.breakdown_dir)
    if sink is not None and sheet_id is not None:
        for t in tables:
            publish_table(sink, sheet_id, t)
    return table


def run_convert(config: ConvertConfig, *, sink: SpreadsheetSink | None = None) -> Path:
    """Convert one metric file to a breakdown table and return its path."""
    key, df = breakdown_frame(config.json_path)
    if config.csv_path.exists():
        logger.info("Replacing existing table %s", config.csv_path)
    config.csv_path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(config.csv_path, index=False)
    logger.info("Wrote %s table %s (%d rows)", key, config.csv_path, len(df))

    if config.upload:
        if sink is None:
            sink = GoogleSheetsSink(config.token or "")
        if config.new_spreadsheet:
            sheet_id = sink.create_spreadsheet(config.parent_id or "", config.title)
        else:
            sheet_id = config.sheet_id or ""
        publish_table(sink, sheet_id, config.csv_path, sheet_name=config.csv_path.name)
        logger.info("Uploaded %s to spreadsheet %s", config.csv_path, sheet_id)
    return config.csv_path


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="webburner-metrics",
        description="Summarize web-burner metric files into CSV tables and Google Sheets",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    summarize = sub.add_parser("summarize", help="Append one iteration to the day's summary table")
    summarize.add_argument("--uuid", type=str, default="", help="Run identifier of the workload")
    summarize.add_argument(
        "--metrics-dir",
        type=str,
        default="collected-metrics",
        help="Directory holding the collected metric JSON files",
    )
    summarize.add_argument(
        "--output-dir",
        type=str,
        default="gsheet",
        help="Directory for summary tables, breakdown tables and run state",
    )
    summarize.add_argument(
        "--gdocs",
        action="store_true",
        help="Upload the tables to Google Sheets",
    )
    summarize.add_argument(
        "--parent",
        type=str,
        default=None,
        help="Google Drive folder id receiving new spreadsheets",
    )

    convert = sub.add_parser("convert", help="Convert one metric file to a breakdown table")
    convert.add_argument("--json", type=str, default=None, help="Path to the metric JSON file")
    convert.add_argument("--csv", type=str, default="output.csv", help="CSV file name")
    convert.add_argument(
        "--gs",
        type=str,
        default="web-burner output",
        help="Name of the spreadsheet to create",
    )
    convert.add_argument(
        "--upload",
        action="store_true",
        help="Upload the table to Google Sheets",
    )
    convert.add_argument(
        "--no-new",
        action="store_false",
        dest="new",
        help="Add the table to an existing spreadsheet given with --sheet-id",
    )
    convert.add_argument("--parent", type=str, default=None, help="Google Drive folder id")
    convert.add_argument("--sheet-id", type=str, default=None, help="Existing spreadsheet id")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    try:
        if args.command == "summarize":
            report = ReportConfig.from_args(
                run_id=args.uuid,
                metrics_dir=args.metrics_dir,
                output_dir=args.output_dir,
                upload=args.gdocs,
                parent_id=args.parent,
            )
            run_summarize(report)
        else:
            conversion = ConvertConfig.from_args(
                json_path=args.json,
                csv_name=args.csv,
                title=args.gs,
                upload=args.upload,
                new_spreadsheet=args.new,
                parent_id=args.parent,
                sheet_id=args.sheet_id,
            )
            run_convert(conversion)
    except (MetricsError, OSError) as e:
        logger.error("%s", e)
        logger.debug("Traceback", exc_info=True)
        return 1

    logger.info("Completed successfully")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
