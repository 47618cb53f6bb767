from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional


class TailerPhase(Enum):
  IDLE = "idle"
  POSITIONING = "positioning"
  READING = "reading"
  WAITING_FOR_DATA = "waiting_for_data"
  SWITCHING = "switching"
  SHUTDOWN = "shutdown"


@dataclass
class TailerState:
  """
  Per-run state of the tailer.

  Owned and mutated only by the tailer thread; other threads may read it
  for reporting but never write it.
  """

  current_file: Optional[Path] = None
  # True only until the first file has been positioned.
  skip_to_end: bool = False
  working: bool = False
  initialized: bool = False
  last_entry_timestamp: Optional[int] = None
  backlog: int = 0
  phase: TailerPhase = TailerPhase.IDLE
