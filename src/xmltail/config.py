from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Mapping, Optional, Union

DEFAULT_LOG_DIR = "log"

SKIP_TO_END_KEY = "skip.to.end"
READ_ALL_KEY = "readAll"


@dataclass(frozen=True)
class TailerConfig:
  """
  Settings consumed by the watcher and the tailer.

  Intervals are in milliseconds. `skip_to_end` positions the first tailed
  file at its current end; `read_all` queues every older log file in the
  directory as backlog at startup.
  """

  log_dir: Path
  skip_to_end: bool = False
  read_all: bool = False
  poll_interval_ms: int = 100
  idle_interval_ms: int = 5000
  watch_interval_ms: int = 500
  extension: str = ".xml"

  @classmethod
  def from_properties(
    cls,
    properties: Mapping[str, Any],
    log_dir: Optional[Union[str, Path]] = None,
  ) -> "TailerConfig":
    """
    Build configuration from externally supplied properties.

    Recognized keys are `skip.to.end` and `readAll` (both default false),
    plus the optional tuning keys `pollIntervalMs`, `idleIntervalMs` and
    `watchIntervalMs`. String values are parsed like "true"/"false".
    """
    directory = log_dir or properties.get("logDir") or default_log_dir()
    return cls(
      log_dir=Path(directory).expanduser(),
      skip_to_end=parse_bool(properties.get(SKIP_TO_END_KEY, False)),
      read_all=parse_bool(properties.get(READ_ALL_KEY, False)),
      poll_interval_ms=int(properties.get("pollIntervalMs", 100)),
      idle_interval_ms=int(properties.get("idleIntervalMs", 5000)),
      watch_interval_ms=int(properties.get("watchIntervalMs", 500)),
    )

  def with_overrides(
    self,
    log_dir: Optional[Union[str, Path]] = None,
    skip_to_end: Optional[bool] = None,
    read_all: Optional[bool] = None,
  ) -> "TailerConfig":
    """Return a copy with any non-None argument applied."""
    changes: dict = {}
    if log_dir is not None:
      changes["log_dir"] = Path(log_dir).expanduser()
    if skip_to_end is not None:
      changes["skip_to_end"] = skip_to_end
    if read_all is not None:
      changes["read_all"] = read_all
    return replace(self, **changes)


def default_log_dir() -> Path:
  """XMLTAIL_LOG_DIR, or ./log when unset."""
  return Path(os.getenv("XMLTAIL_LOG_DIR") or DEFAULT_LOG_DIR).expanduser()


def parse_bool(value: Any) -> bool:
  """Only a case-insensitive "true" (or a real True) counts as true."""
  if isinstance(value, bool):
    return value
  if value is None:
    return False
  return str(value).strip().lower() == "true"
