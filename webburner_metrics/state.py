"""Per-day run state: iteration counter and the spreadsheet in use."""

from __future__ import annotations

import datetime as dt
import logging
from pathlib import Path
from typing import Any

import yaml

from webburner_metrics.errors import StateError

logger = logging.getLogger(__name__)

STATE_FILE_NAME = "run-state.yaml"


def day_key(day: dt.date | None = None) -> str:
    """Calendar-day key used for state entries and table names (``2026-October-19``)."""
    d = day or dt.date.today()
    return f"{d.year}-{d.strftime('%B')}-{d.day}"


def iteration_label(n: int) -> str:
    return f"iteration_{n}"


class RunStateStore:
    """YAML-backed store of per-day counters.

    The file maps a day key to ``{"iteration": int, "sheet_id": str | None}``.
    Every mutation is written back immediately.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def __repr__(self) -> str:
        return f"RunStateStore({self.path})"

    def _load(self) -> dict[str, dict[str, Any]]:
        if not self.path.exists():
            return {}
        try:
            raw = yaml.safe_load(self.path.read_text())
        except yaml.YAMLError as e:
            raise StateError(f"Invalid state file {self.path}: {e}") from e
        if raw is None:
            return {}
        if not isinstance(raw, dict):
            raise StateError(f"Invalid state file (not a mapping): {self.path}")
        for key, entry in raw.items():
            if not isinstance(entry, dict):
                raise StateError(f"Invalid state entry {key!r} in {self.path}")
            iteration = entry.get("iteration")
            if iteration is None:
                continue
            if isinstance(iteration, bool) or not isinstance(iteration, int):
                raise StateError(f"Invalid iteration {iteration!r} for {key!r} in {self.path}")
        return {str(k): v for k, v in raw.items()}

    def _save(self, data: dict[str, dict[str, Any]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(yaml.safe_dump(data, sort_keys=True))
        tmp.replace(self.path)

    def iteration(self, day: str) -> int | None:
        """Last iteration number issued for `day`, if any."""
        return self._load().get(day, {}).get("iteration")

    def next_iteration(self, day: str) -> str:
        """Increment and persist the iteration counter of `day`.

        Returns:
            The new iteration label; the first call of a day returns
            ``"iteration_1"``.
        """
        data = self._load()
        entry = data.setdefault(day, {})
        current = entry.get("iteration") or 0
        entry["iteration"] = current + 1
        self._save(data)
        label = iteration_label(entry["iteration"])
        if current == 0:
            logger.info("No iteration recorded for %s; starting at %s", day, label)
        else:
            logger.info("Incremented iteration for %s to %s", day, label)
        return label

    def sheet_id(self, day: str) -> str | None:
        """Spreadsheet id recorded for `day`, if any."""
        sheet_id = self._load().get(day, {}).get("sheet_id")
        return str(sheet_id) if sheet_id else None

    def set_sheet_id(self, day: str, sheet_id: str) -> None:
        data = self._load()
        data.setdefault(day, {})["sheet_id"] = sheet_id
        self._save(data)
        logger.info("Recorded spreadsheet %s for %s", sheet_id, day)
