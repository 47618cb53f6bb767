from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class LogRecord(BaseModel):
  """
  One parsed log entry, as written by the producer's XML formatter.

  Instances are immutable; the consumer owns them once forwarded.
  """

  model_config = ConfigDict(frozen=True, populate_by_name=True)

  millis: int = Field(..., description="Milliseconds since the epoch when the entry was logged")
  date: Optional[str] = None
  sequence: Optional[int] = None
  logger: Optional[str] = None
  level: Optional[str] = None
  # `class` is reserved, so the field is exposed as `clazz`.
  clazz: Optional[str] = Field(default=None, alias="class")
  method: Optional[str] = None
  thread: Optional[str] = None
  message: Optional[str] = None
