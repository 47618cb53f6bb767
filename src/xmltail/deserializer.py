from __future__ import annotations

import xml.etree.ElementTree as ET
from typing import Callable, Dict, Optional

from pydantic import ValidationError

from .errors import RecordParseError
from .models import LogRecord

Deserializer = Callable[[str], LogRecord]


def parse_record(text: str) -> LogRecord:
  """
  Turn a sanitized, wrapped fragment into a LogRecord.

  The fragment's root element must hold a `record` element whose children
  are the record fields. Unknown child elements are ignored, and only the
  first occurrence of a field counts: the `message`, `class` and `method`
  tags of an escaped `<exception>` block follow the record's own fields.

  Raises:
    RecordParseError: if the text is not well-formed XML, holds no record,
      or the record fields fail validation (e.g. missing `millis`).
  """
  try:
    root = ET.fromstring(text)
  except ET.ParseError as e:
    raise RecordParseError(f"Malformed record fragment: {e}") from e

  element = root if root.tag == "record" else root.find("record")
  if element is None:
    raise RecordParseError("Fragment does not contain a <record> element")

  fields: Dict[str, Optional[str]] = {}
  for child in element:
    if child.tag in fields:
      continue
    text_value = child.text.strip() if child.text else None
    fields[child.tag] = text_value or None

  try:
    return LogRecord.model_validate(fields)
  except ValidationError as e:
    raise RecordParseError(f"Invalid record fields: {e}") from e
