"""
Discovery of new log files in the producer's log directory.

The producer rotates by creating a new file next to the old one. The
watcher notices each newly created file and appends it to the pending
queue; the tailer decides what to do with it.

Design Decisions:
    - Directory changes are detected by polling a name snapshot
    - Newly created files are queued unfiltered; the tailer rejects
      shortcuts and non-regular files
    - The newest `.xml` file at startup becomes the initial active file
"""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import List, Optional, Set

from .errors import WatchDirectoryError
from .pending_queue import PendingFileQueue

LOG_EXTENSION = ".xml"

_logger = logging.getLogger(__name__)


def _mtime(path: Path) -> float:
    return path.stat().st_mtime


def list_log_files(directory: Path, extension: str = LOG_EXTENSION) -> List[Path]:
    """
    Return regular files in `directory` ending in `extension`, oldest first.

    Files with identical modification times are ordered by name.
    """
    files = [
        p for p in directory.iterdir()
        if p.name.endswith(extension) and p.is_file()
    ]
    return sorted(files, key=lambda p: (_mtime(p), p.name))


class PollingDirectoryEvents:
    """
    Report files created in a directory since the previous poll.

    A snapshot of entry names is taken when the source is opened; every
    `poll()` lists the directory again and returns the entries that were
    not present last time. A file that is deleted and re-created between
    polls is reported again.
    """

    def __init__(self, directory: Path):
        self.directory = directory
        self._known: Set[str] = set()
        self._open = False

    def open(self) -> None:
        self._known = set(os.listdir(self.directory))
        self._open = True

    def poll(self) -> List[Path]:
        if not self._open:
            return []
        current = set(os.listdir(self.directory))
        created = current - self._known
        self._known = current

        paths = [self.directory / name for name in created]
        # Keep creation order stable when several files appear in one poll.
        return sorted(paths, key=self._sort_key)

    def mark_seen(self, paths: List[Path]) -> None:
        """Treat `paths` as already reported."""
        self._known.update(p.name for p in paths)

    def close(self) -> None:
        self._open = False

    @staticmethod
    def _sort_key(path: Path) -> tuple:
        try:
            return (_mtime(path), path.name)
        except OSError:
            return (float("inf"), path.name)


class DirectoryWatcher:
    """
    Feed the pending queue with log files from one directory.

    Lifecycle:
        1. `initialize()` validates the directory, optionally seeds the
           backlog and selects the newest log file as the active file.
        2. `run()` enqueues the active file and then queues every newly
           created file until `stop()` is called.

    Attributes:
        directory: Directory being watched.
        queue: Queue receiving discovered paths.
        read_all: Queue all older log files as backlog at startup.
        active_file: Newest log file found by `initialize()`, or None.
    """

    def __init__(
        self,
        directory: Path,
        queue: PendingFileQueue,
        read_all: bool = False,
        poll_interval: float = 0.5,
        extension: str = LOG_EXTENSION,
        events: Optional[PollingDirectoryEvents] = None,
    ):
        self.directory = Path(directory)
        self.queue = queue
        self.read_all = read_all
        self.poll_interval = poll_interval
        self.extension = extension
        self.active_file: Optional[Path] = None
        self._events = events or PollingDirectoryEvents(self.directory)
        self._stopped = threading.Event()
        self._initialized = False

    def initialize(self) -> None:
        """
        Prepare the watcher before its loop starts.

        Raises:
            WatchDirectoryError: If the directory is missing or not a directory.
        """
        if self._initialized:
            return
        if not self.directory.is_dir():
            raise WatchDirectoryError(self.directory)

        # Register for changes first so nothing created from here on is missed.
        self._events.open()

        log_files = list_log_files(self.directory, self.extension)
        self._events.mark_seen(log_files)
        if self.read_all and log_files:
            # The newest file is picked up as the active file instead.
            backlog = log_files[:-1]
            for path in backlog:
                self.queue.enqueue(path)
            _logger.info("added %s file(s) to backlog", len(backlog))

        self.active_file = log_files[-1] if log_files else None
        self._initialized = True

    def run(self) -> None:
        """Watch the directory until stopped. Blocks the calling thread."""
        self.initialize()
        _logger.info("Directory watcher started on %s", self.directory)

        if self.active_file is not None:
            _logger.info("Setting newest log file as current log file: %s", self.active_file)
            self.queue.enqueue(self.active_file)

        while not self._stopped.wait(self.poll_interval):
            for path in self._events.poll():
                _logger.info("new file %s", path)
                self.queue.enqueue(path)

        _logger.info("Directory watcher stopped")

    def stop(self) -> None:
        """Cancel the watch. A poll already in progress still completes."""
        self._stopped.set()
        self._events.close()
