from __future__ import annotations

import io
import logging
import os
import threading
from pathlib import Path
from typing import Callable, Optional

from .assembler import RecordAssembler
from .consumer import ConsumerPort
from .errors import TailIOError
from .models import LogRecord
from .pending_queue import PendingFileQueue
from .state import TailerPhase, TailerState

SHORTCUT_EXTENSION = ".lnk"

_logger = logging.getLogger(__name__)


class LogTailer:
  """
  Consumes queued log files one at a time and forwards their records.

  For each file taken from the queue the tailer reads line by line and
  feeds the assembler. At end-of-stream it either waits on the same file
  (queue empty, the producer may still append) or abandons it for the next
  queued file (rotation happened). The current file stays open while
  waiting and is closed on every way out of the read loop.

  `method_filter`, when given, further restricts forwarding to records
  whose method it accepts; every parsed record still updates the
  last-entry timestamp.

  Shutdown is cooperative: the shared `shutdown` event is checked before
  every read and before every wait, and all waits are interruptible.
  """

  def __init__(
    self,
    queue: PendingFileQueue,
    consumer: ConsumerPort,
    shutdown: threading.Event,
    assembler: Optional[RecordAssembler] = None,
    skip_to_end: bool = False,
    poll_interval: float = 0.1,
    idle_interval: float = 5.0,
    method_filter: Optional[Callable[[str], bool]] = None,
  ) -> None:
    self._queue = queue
    self._consumer = consumer
    self._shutdown = shutdown
    self._assembler = assembler or RecordAssembler()
    self._poll_interval = poll_interval
    self._idle_interval = idle_interval
    self._method_filter = method_filter
    self._partial = ""
    self.state = TailerState(skip_to_end=skip_to_end)

  def run(self) -> None:
    """
    Tail queued files until shutdown is requested.

    Raises:
      TailIOError: If reading an open file fails. The file is closed and
        the tailer reports not-working before the error propagates.
    """
    _logger.info("Log tailer started")
    while not self._shutdown.is_set():
      self.state.phase = TailerPhase.IDLE
      path = self._queue.dequeue_front(timeout=self._idle_interval)
      if path is None:
        continue
      self._set_backlog(self._queue.size())
      _logger.info("new log file %s", path)
      if not self._tail_file(path):
        break
    self._enter_shutdown()

  def _tail_file(self, path: Path) -> bool:
    """
    Read one file until it is superseded or shutdown is requested.

    Returns False when the loop ended because of shutdown.
    """
    if path.name.endswith(SHORTCUT_EXTENSION) or not path.is_file():
      _logger.info("ignoring %s, not a regular log file", path)
      return True

    self.state.current_file = path
    self._consumer.set_current_file(path)
    self._assembler.reset()
    self._partial = ""

    try:
      with open(path, "r", encoding="utf-8", errors="replace") as stream:
        if self.state.skip_to_end:
          self._position_at_end(stream)
        return self._read_loop(path, stream)
    except OSError as e:
      self._set_working(False)
      _logger.error(
        "Reading %s failed, in-progress record lines: %s",
        path,
        self._assembler.pending_lines,
      )
      raise TailIOError(path, e) from e

  def _position_at_end(self, stream: io.TextIOBase) -> None:
    self.state.phase = TailerPhase.POSITIONING
    _logger.info("skipping to end of %s", self.state.current_file)
    offset = stream.seek(0, os.SEEK_END)
    _logger.info("skipped to offset %s", offset)
    self.state.skip_to_end = False
    self._set_initialized(True)

  def _read_loop(self, path: Path, stream: io.TextIOBase) -> bool:
    self.state.phase = TailerPhase.READING
    while True:
      if self._shutdown.is_set():
        return False

      line = self._read_line(stream)
      if line is None:
        self._set_initialized(True)
        if self._queue.size() > 0:
          self.state.phase = TailerPhase.SWITCHING
          _logger.info("%s done and a newer file is queued", path)
          return True

        self._set_working(False)
        self.state.phase = TailerPhase.WAITING_FOR_DATA
        if self._shutdown.is_set():
          return False
        self._shutdown.wait(self._poll_interval)
        continue

      self.state.phase = TailerPhase.READING
      self._set_working(True)
      record = self._assembler.feed(line)
      if record is not None:
        self._deliver(record)

  def _read_line(self, stream: io.TextIOBase) -> Optional[str]:
    """
    Return the next complete line, or None at end-of-stream.

    A trailing line without its newline is still being written; it is
    held back and completed by a later read.
    """
    chunk = stream.readline()
    if not chunk:
      return None
    if not chunk.endswith("\n"):
      self._partial += chunk
      return None
    line = self._partial + chunk
    self._partial = ""
    return line

  def _deliver(self, record: LogRecord) -> None:
    self.state.last_entry_timestamp = record.millis
    self._consumer.set_last_entry_timestamp(record.millis)
    # Records without a method carry no event worth forwarding.
    if not record.method:
      return
    if self._method_filter is None or self._method_filter(record.method):
      self._consumer.handle(record)

  def _enter_shutdown(self) -> None:
    self.state.phase = TailerPhase.SHUTDOWN
    _logger.info("Log tailer shut down")
    self._set_working(False)

  def _set_working(self, value: bool) -> None:
    self.state.working = value
    self._consumer.set_working(value)

  def _set_initialized(self, value: bool) -> None:
    self.state.initialized = value
    self._consumer.set_initialized(value)

  def _set_backlog(self, count: int) -> None:
    self.state.backlog = count
    self._consumer.set_backlog_count(count)
