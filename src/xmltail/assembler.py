from __future__ import annotations

import logging
from typing import Callable, List, Optional

from .deserializer import Deserializer, parse_record
from .errors import RecordParseError
from .models import LogRecord
from .sanitizer import ROOT_TAG, sanitize

RECORD_TERMINATOR = "</record>"

_logger = logging.getLogger(__name__)


class RecordAssembler:
  """
  Collects trimmed lines until a `</record>` line arrives, then builds and
  parses the record.

  The line buffer is cleared after every completion attempt, whether the
  fragment parsed or not. Parse failures are contained here: the record is
  dropped and the caller simply gets None back.
  """

  def __init__(
    self,
    deserializer: Deserializer = parse_record,
    sanitizer: Callable[[str], str] = sanitize,
  ) -> None:
    self._deserializer = deserializer
    self._sanitizer = sanitizer
    self._lines: List[str] = []
    self.dropped = 0

  @property
  def pending_lines(self) -> List[str]:
    return list(self._lines)

  def reset(self) -> None:
    self._lines.clear()

  def feed(self, line: str) -> Optional[LogRecord]:
    """
    Add one raw line.

    Returns the parsed record when `line` completes one, otherwise None.
    """
    line = line.strip()
    self._lines.append(line)
    if line != RECORD_TERMINATOR:
      return None
    try:
      return self._complete()
    finally:
      self._lines.clear()

  def build_fragment(self) -> str:
    """Wrap the buffered lines in the synthetic root and sanitize them."""
    wrapped = f"<{ROOT_TAG}>" + "".join(self._lines) + f"</{ROOT_TAG}>"
    return self._sanitizer(wrapped)

  def _complete(self) -> Optional[LogRecord]:
    fragment = self.build_fragment()
    try:
      return self._deserializer(fragment)
    except RecordParseError as e:
      self.dropped += 1
      _logger.debug("Dropping unparseable record (%s): %s", e, fragment)
      return None
