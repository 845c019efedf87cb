"""Immutable run configuration built once from command-line options."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from webburner_metrics.errors import ConfigError
from webburner_metrics.state import STATE_FILE_NAME

logger = logging.getLogger(__name__)

TOKEN_ENV = "GOOGLE_OAUTH_ACCESS_TOKEN"


def _upload_token(env: Mapping[str, str]) -> str:
    token = env.get(TOKEN_ENV, "").strip()
    if not token:
        raise ConfigError(
            f"Uploading requires the {TOKEN_ENV} environment variable to hold an "
            f"OAuth access token with Drive and Sheets scopes "
            f"(e.g. `gcloud auth print-access-token`)."
        )
    return token


def with_csv_suffix(name: str) -> str:
    """Append ``.csv`` to a file name that lacks it."""
    if name.endswith(".csv"):
        return name
    logger.info("No .csv extension in %r; appending one", name)
    return f"{name}.csv"


@dataclass(frozen=True)
class ReportConfig:
    """Settings for summarizing one iteration of a benchmark run.

    Attributes:
        run_id: Run identifier (UUID) selecting the metric files.
        metrics_dir: Directory holding the collected ``*.json`` files.
        output_dir: Directory for the summary table and run state.
        upload: Whether to publish the tables to Google Sheets.
        parent_id: Drive folder receiving new spreadsheets.
        token: OAuth access token used when uploading.
    """

    run_id: str
    metrics_dir: Path
    output_dir: Path
    upload: bool = False
    parent_id: str | None = None
    token: str | None = None

    @property
    def breakdown_dir(self) -> Path:
        return self.output_dir / "max-job-val"

    @property
    def state_path(self) -> Path:
        return self.output_dir / STATE_FILE_NAME

    @classmethod
    def from_args(
        cls,
        *,
        run_id: str,
        metrics_dir: str | Path = "collected-metrics",
        output_dir: str | Path = "gsheet",
        upload: bool = False,
        parent_id: str | None = None,
        env: Mapping[str, str] | None = None,
    ) -> ReportConfig:
        """Validate options and build the configuration.

        Raises:
            ConfigError: Missing run id, a parent id without uploading,
                uploading without a parent id, or no access token.
        """
        env = os.environ if env is None else env
        if not run_id:
            raise ConfigError("A run identifier is required (--uuid).")
        if parent_id and not upload:
            raise ConfigError("A parent id was given with --parent but --gdocs is not set.")
        token = None
        if upload:
            if not parent_id:
                raise ConfigError("--gdocs requires a parent folder id given with --parent.")
            token = _upload_token(env)
        return cls(
            run_id=run_id,
            metrics_dir=Path(metrics_dir),
            output_dir=Path(output_dir),
            upload=upload,
            parent_id=parent_id or None,
            token=token,
        )


@dataclass(frozen=True)
class ConvertConfig:
    """Settings for converting a single metric file to a breakdown table.

    Attributes:
        json_path: Metric file to convert.
        csv_path: Destination table.
        title: Name of the spreadsheet created when `new_spreadsheet` is set.
        upload: Whether to publish the table to Google Sheets.
        new_spreadsheet: Create a new spreadsheet instead of using `sheet_id`.
        parent_id: Drive folder receiving a new spreadsheet.
        sheet_id: Existing spreadsheet to add the table to.
        token: OAuth access token used when uploading.
    """

    json_path: Path
    csv_path: Path
    title: str = "web-burner output"
    upload: bool = False
    new_spreadsheet: bool = True
    parent_id: str | None = None
    sheet_id: str | None = None
    token: str | None = None

    @classmethod
    def from_args(
        cls,
        *,
        json_path: str | Path | None,
        csv_name: str = "output.csv",
        title: str = "web-burner output",
        upload: bool = False,
        new_spreadsheet: bool = True,
        parent_id: str | None = None,
        sheet_id: str | None = None,
        env: Mapping[str, str] | None = None,
    ) -> ConvertConfig:
        """Validate options and build the configuration.

        Raises:
            ConfigError: Missing input file, or an upload target that cannot
                be resolved.
        """
        env = os.environ if env is None else env
        if not json_path:
            raise ConfigError("A metric file is required (--json).")
        token = None
        if upload:
            if new_spreadsheet and not parent_id:
                raise ConfigError("Creating a spreadsheet requires a parent folder id (--parent).")
            if not new_spreadsheet and not sheet_id:
                raise ConfigError("--no-new requires an existing spreadsheet id (--sheet-id).")
            token = _upload_token(env)
        return cls(
            json_path=Path(json_path),
            csv_path=Path(with_csv_suffix(csv_name or "output.csv")),
            title=title or "web-burner output",
            upload=upload,
            new_spreadsheet=new_spreadsheet,
            parent_id=parent_id or None,
            sheet_id=sheet_id or None,
            token=token,
        )
