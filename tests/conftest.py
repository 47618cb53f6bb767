import threading
import time
from pathlib import Path
from typing import Callable, List, Optional

import pytest

from xmltail.consumer import ConsumerPort
from xmltail.models import LogRecord


def record_xml(millis: int, message: str = "hello", method: Optional[str] = "run", sequence: int = 1) -> str:
  """Render one record the way the producer's XML formatter writes it."""
  method_line = f"  <method>{method}</method>\n" if method is not None else ""
  return (
    "<record>\n"
    "  <date>2021-01-01T10:00:00</date>\n"
    f"  <millis>{millis}</millis>\n"
    f"  <sequence>{sequence}</sequence>\n"
    "  <logger>game</logger>\n"
    "  <level>INFO</level>\n"
    "  <class>Engine</class>\n"
    f"{method_line}"
    "  <thread>1</thread>\n"
    f"  <message>{message}</message>\n"
    "</record>\n"
  )


def append(path: Path, text: str) -> None:
  with open(path, "a", encoding="utf-8") as f:
    f.write(text)


def wait_until(predicate: Callable[[], bool], timeout: float = 5.0) -> bool:
  deadline = time.monotonic() + timeout
  while time.monotonic() < deadline:
    if predicate():
      return True
    time.sleep(0.01)
  return predicate()


class RecordingConsumer(ConsumerPort):
  def __init__(self) -> None:
    self._lock = threading.Lock()
    self.records: List[LogRecord] = []
    self.files: List[Path] = []
    self.timestamps: List[int] = []
    self.backlog_counts: List[int] = []
    self.working: Optional[bool] = None
    self.initialized = False

  def handle(self, record: LogRecord) -> None:
    with self._lock:
      self.records.append(record)

  def set_current_file(self, path: Path) -> None:
    with self._lock:
      self.files.append(path)

  def set_initialized(self, initialized: bool) -> None:
    self.initialized = initialized

  def set_working(self, working: bool) -> None:
    self.working = working

  def set_last_entry_timestamp(self, millis: int) -> None:
    with self._lock:
      self.timestamps.append(millis)

  def set_backlog_count(self, count: int) -> None:
    with self._lock:
      self.backlog_counts.append(count)

  def messages(self) -> List[str]:
    with self._lock:
      return [r.message for r in self.records]


@pytest.fixture
def consumer() -> RecordingConsumer:
  return RecordingConsumer()
