from __future__ import annotations

import threading
from collections import deque
from pathlib import Path
from typing import Deque, List, Optional


class PendingFileQueue:
  """
  FIFO of log file paths waiting to be tailed.

  The watcher is the only writer (append) and the tailer the only reader
  (remove from the front). Paths are kept in insertion order and are not
  de-duplicated.

  Waiting readers can be released early with `wake()`, which is how a
  shutdown request reaches a tailer blocked on an empty queue.
  """

  def __init__(self) -> None:
    self._items: Deque[Path] = deque()
    self._cond = threading.Condition()
    self._woken = False

  def enqueue(self, path: Path) -> None:
    with self._cond:
      self._items.append(Path(path))
      self._cond.notify_all()

  def dequeue_front(self, timeout: Optional[float] = 0) -> Optional[Path]:
    """
    Remove and return the oldest path.

    With `timeout=0` this only polls. Otherwise it waits up to `timeout`
    seconds (forever for None) for a path to arrive. Returns None when the
    queue is still empty, including after an early `wake()`.
    """
    with self._cond:
      if timeout != 0:
        self._cond.wait_for(lambda: self._items or self._woken, timeout)
      self._woken = False
      if not self._items:
        return None
      return self._items.popleft()

  def wake(self) -> None:
    """Release the current or next waiting reader empty-handed."""
    with self._cond:
      self._woken = True
      self._cond.notify_all()

  def size(self) -> int:
    with self._cond:
      return len(self._items)

  def __len__(self) -> int:
    return self.size()

  def snapshot(self) -> List[Path]:
    with self._cond:
      return list(self._items)
