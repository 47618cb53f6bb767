from __future__ import annotations

from pathlib import Path


class XmlTailError(Exception):
  """Base class for xmltail errors."""


class WatchDirectoryError(XmlTailError):
  """The configured log directory is missing or is not a directory."""

  def __init__(self, directory: Path) -> None:
    super().__init__(f"Log directory '{directory}' does not exist or is not a directory")
    self.directory = directory


class RecordParseError(XmlTailError, ValueError):
  """A sanitized record fragment could not be turned into a LogRecord."""


class TailIOError(XmlTailError):
  """Reading an open log file failed for a reason other than end-of-stream."""

  def __init__(self, path: Path, cause: OSError) -> None:
    super().__init__(f"Failed reading log file '{path}': {cause}")
    self.path = path
