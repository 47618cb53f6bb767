from __future__ import annotations

import sys
import threading
from collections import deque
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Deque, List, Optional, TextIO

from .models import LogRecord
from .output_formatter import LogFormatter


class ConsumerPort:
  """
  Receiver of everything the tailer produces.

  The tailer calls these methods synchronously from its own thread, so
  implementations must return promptly.
  """

  def handle(self, record: LogRecord) -> None:
    raise NotImplementedError

  def set_current_file(self, path: Path) -> None:
    raise NotImplementedError

  def set_initialized(self, initialized: bool) -> None:
    raise NotImplementedError

  def set_working(self, working: bool) -> None:
    raise NotImplementedError

  def set_last_entry_timestamp(self, millis: int) -> None:
    raise NotImplementedError

  def set_backlog_count(self, count: int) -> None:
    raise NotImplementedError


@dataclass
class TailStatus:
  current_file: Optional[str] = None
  initialized: bool = False
  working: bool = False
  last_entry_timestamp: Optional[int] = None
  backlog: int = 0
  records_forwarded: int = 0

  def to_dict(self) -> dict:
    return asdict(self)


class StatusConsumer(ConsumerPort):
  """
  Consumer that remembers the tailer status and the most recent records.

  Safe to read from other threads (e.g. the HTTP status endpoint) while
  the tailer writes to it.
  """

  def __init__(self, max_recent: int = 200) -> None:
    self._lock = threading.Lock()
    self._status = TailStatus()
    self._recent: Deque[LogRecord] = deque(maxlen=max_recent)

  def handle(self, record: LogRecord) -> None:
    with self._lock:
      self._recent.append(record)
      self._status.records_forwarded += 1

  def set_current_file(self, path: Path) -> None:
    with self._lock:
      self._status.current_file = str(path)

  def set_initialized(self, initialized: bool) -> None:
    with self._lock:
      self._status.initialized = initialized

  def set_working(self, working: bool) -> None:
    with self._lock:
      self._status.working = working

  def set_last_entry_timestamp(self, millis: int) -> None:
    with self._lock:
      self._status.last_entry_timestamp = millis

  def set_backlog_count(self, count: int) -> None:
    with self._lock:
      self._status.backlog = count

  def status(self) -> TailStatus:
    with self._lock:
      return TailStatus(**asdict(self._status))

  def recent(self, limit: Optional[int] = None) -> List[LogRecord]:
    """Most recently forwarded records, oldest first."""
    with self._lock:
      records = list(self._recent)
    if limit is not None:
      records = records[-limit:] if limit > 0 else []
    return records


class PrintConsumer(StatusConsumer):
  """StatusConsumer that also writes every forwarded record to a stream."""

  def __init__(
    self,
    formatter: Optional[LogFormatter] = None,
    stream: Optional[TextIO] = None,
    max_recent: int = 200,
  ) -> None:
    super().__init__(max_recent=max_recent)
    self._formatter = formatter or LogFormatter()
    self._stream = stream

  def handle(self, record: LogRecord) -> None:
    super().handle(record)
    stream = self._stream or sys.stdout
    print(self._formatter.format_record(record), file=stream, flush=True)
