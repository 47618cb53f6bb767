"""
Text repairs applied to a wrapped record fragment before XML parsing.

Log messages are free text and routinely contain angle-bracket tokens
(generic types, C++ template names, anonymous function names) that would
otherwise read as markup. The rules below run in a fixed order:

1. raw `&` becomes `&amp;` (existing entities are left alone)
2. the empty pair `<>` becomes `&lt;&gt;`
3. `<lambda_xxx>` names collapse to `&lt;lambda&gt;`
4. any `<...>` token that does not mention a structural tag name is
   escaped; this runs twice so tokens exposed by the first pass
   (`<Foo<Bar>>`) are escaped too
5. `<class ` with attributes is escaped
"""

from __future__ import annotations

import re
from typing import Tuple

ROOT_TAG = "envelope"

STRUCTURAL_TAGS: Tuple[str, ...] = (
  ROOT_TAG,
  "record",
  "date",
  "millis",
  "sequence",
  "logger",
  "level",
  "class",
  "method",
  "thread",
  "message",
)

_RAW_AMPERSAND = re.compile(r"&(?!(?:amp|lt|gt|quot|apos|#[0-9]+|#x[0-9a-fA-F]+);)")
_EMPTY_BRACKETS = re.compile(r"<>")
_LAMBDA_NAME = re.compile(r"<lambda_[a-z0-9]+>")
_NON_STRUCTURAL_TOKEN = re.compile(
  r"<((?:(?!" + "|".join(STRUCTURAL_TAGS) + r").)+?)>"
)
_CLASS_WITH_ATTRIBUTES = re.compile(r"<class ")


def sanitize(text: str) -> str:
  text = _RAW_AMPERSAND.sub("&amp;", text)
  text = _EMPTY_BRACKETS.sub("&lt;&gt;", text)
  text = _LAMBDA_NAME.sub("&lt;lambda&gt;", text)
  text = _NON_STRUCTURAL_TOKEN.sub(r"&lt;\1&gt;", text)
  text = _NON_STRUCTURAL_TOKEN.sub(r"&lt;\1&gt;", text)
  return _CLASS_WITH_ATTRIBUTES.sub("&lt;class ", text)
