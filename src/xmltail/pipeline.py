from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass
from typing import Callable, List, Optional

from .assembler import RecordAssembler
from .config import TailerConfig
from .consumer import ConsumerPort
from .deserializer import Deserializer, parse_record
from .pending_queue import PendingFileQueue
from .tailer import LogTailer
from .watcher import DirectoryWatcher

_logger = logging.getLogger(__name__)

TAILER_WORKER = "tailer"
WATCHER_WORKER = "watcher"


@dataclass(frozen=True)
class WorkerFailure:
  worker: str
  error: BaseException

  def describe(self) -> str:
    return f"{self.worker}: {type(self.error).__name__}: {self.error}"


class TailPipeline:
  """
  Owns one run of the directory watcher and the log tailer.

  The pipeline holds the pending queue, the shutdown event and both worker
  threads. A worker that fails does not take the process down: its error is
  logged and put on an error channel, and whoever owns the pipeline decides
  what happens next (usually `stop()`).

  Usage:
    >>> with TailPipeline(config, consumer) as pipeline:
    ...   failure = pipeline.wait()
  """

  def __init__(
    self,
    config: TailerConfig,
    consumer: ConsumerPort,
    deserializer: Deserializer = parse_record,
    method_filter: Optional[Callable[[str], bool]] = None,
  ) -> None:
    self.config = config
    self.queue = PendingFileQueue()
    self._shutdown = threading.Event()
    self._failures: "queue.Queue[Optional[WorkerFailure]]" = queue.Queue()
    self._threads: List[threading.Thread] = []
    self._lock = threading.Lock()
    self._started = False
    self._stopped = False
    self.failure: Optional[WorkerFailure] = None

    self.watcher = DirectoryWatcher(
      config.log_dir,
      self.queue,
      read_all=config.read_all,
      poll_interval=config.watch_interval_ms / 1000.0,
      extension=config.extension,
    )
    self.tailer = LogTailer(
      self.queue,
      consumer,
      self._shutdown,
      assembler=RecordAssembler(deserializer=deserializer),
      skip_to_end=config.skip_to_end,
      poll_interval=config.poll_interval_ms / 1000.0,
      idle_interval=config.idle_interval_ms / 1000.0,
      method_filter=method_filter,
    )

  @property
  def running(self) -> bool:
    return self._started and not self._stopped

  def start(self) -> None:
    """
    Validate the log directory and start both workers.

    Raises:
      WatchDirectoryError: If the log directory is missing. No worker
        thread has been started in that case.
    """
    with self._lock:
      if self._started:
        return
      self.watcher.initialize()
      self._started = True
      # The tailer goes first so it is already waiting when files arrive.
      self._spawn(TAILER_WORKER, self.tailer.run)
      self._spawn(WATCHER_WORKER, self.watcher.run)

  def _spawn(self, name: str, target: Callable[[], None]) -> None:
    thread = threading.Thread(
      target=self._run_worker, args=(name, target), name=f"xmltail-{name}", daemon=True
    )
    self._threads.append(thread)
    thread.start()

  def _run_worker(self, name: str, target: Callable[[], None]) -> None:
    try:
      target()
    except Exception as e:
      _logger.exception("%s worker failed", name)
      self._failures.put(WorkerFailure(name, e))

  def wait(self, timeout: Optional[float] = None) -> Optional[WorkerFailure]:
    """
    Block until a worker fails or the pipeline is stopped.

    Returns the first worker failure, or None when the pipeline was stopped
    or `timeout` elapsed.
    """
    if self.failure is not None:
      return self.failure
    try:
      item = self._failures.get(timeout=timeout)
    except queue.Empty:
      return None
    if item is None:
      # Re-post the stop marker for any other waiter.
      self._failures.put(None)
      return self.failure
    self.failure = item
    return item

  def stop(self, join_timeout: float = 2.0) -> None:
    """Request cooperative shutdown of both workers. Safe to call repeatedly."""
    with self._lock:
      if self._stopped:
        return
      self._stopped = True

    _logger.info("Stopping tail pipeline")
    self.watcher.stop()
    self._shutdown.set()
    self.queue.wake()
    for thread in self._threads:
      if thread is not threading.current_thread():
        thread.join(timeout=join_timeout)
    self._failures.put(None)

  def __enter__(self) -> "TailPipeline":
    self.start()
    return self

  def __exit__(self, exc_type, exc, tb) -> None:
    self.stop()
