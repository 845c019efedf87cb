"""Error types raised while loading, summarizing and publishing metric files."""

from __future__ import annotations

from pathlib import Path


class MetricsError(Exception):
    """Base class for all errors raised by this package."""


class FileReadError(MetricsError, OSError):
    """A metric file could not be read from disk."""

    def __init__(self, path: str | Path, reason: str) -> None:
        super().__init__(f"Could not read metric file {path}: {reason}")
        self.path = Path(path)


class DecodeError(MetricsError, ValueError):
    """A metric file does not hold the record shape it was resolved to."""

    def __init__(self, source: str | Path, reason: str) -> None:
        super().__init__(f"Could not decode {source}: {reason}")
        self.source = str(source)


class EmptyInputError(MetricsError, ValueError):
    """A metric file decoded to zero records."""

    def __init__(self, source: str | Path) -> None:
        super().__init__(f"No records in {source}")
        self.source = str(source)


class StateError(MetricsError, ValueError):
    """The persisted run-state file is malformed."""


class ConfigError(MetricsError, ValueError):
    """Invalid combination of command-line options or environment."""


class SinkError(MetricsError):
    """The spreadsheet service rejected a request or could not be reached."""
