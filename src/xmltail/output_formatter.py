"""Rendering of forwarded records for the terminal.

`tail` prints one line per record, either as readable text or as one JSON
object per line for piping into other tools. Severity colouring follows the
java.util.logging level names the producer writes (SEVERE, WARNING, ...).
"""

import json
import sys
from datetime import datetime
from enum import Enum
from typing import Dict, Iterable, Union

from xmltail.models import LogRecord


class OutputFormat(Enum):
    PLAIN = "plain"
    JSON = "json"


class ColorMode(Enum):
    AUTO = "auto"
    ALWAYS = "always"
    NEVER = "never"


RED = "\033[91m"
YELLOW = "\033[93m"
RESET = "\033[0m"

LEVEL_COLORS: Dict[str, str] = {
    "SEVERE": RED,
    "ERROR": RED,
    "WARNING": YELLOW,
    "WARN": YELLOW,
}


def record_timestamp(record: LogRecord) -> str:
    """Local ISO-8601 time of the record, to the millisecond."""
    return datetime.fromtimestamp(record.millis / 1000).isoformat(timespec="milliseconds")


def record_to_dict(record: LogRecord) -> dict:
    data = record.model_dump(by_alias=True, exclude={"date"})
    data["timestamp"] = record_timestamp(record)
    return data


class LogFormatter:
    """
    Turns records into output lines.

    Args:
        output_format: `plain` or `json` (enum or its value)
        color_mode: `auto` colours only when stdout is a terminal
    """

    def __init__(
        self,
        output_format: Union[OutputFormat, str] = OutputFormat.PLAIN,
        color_mode: Union[ColorMode, str] = ColorMode.AUTO,
    ):
        self.output_format = OutputFormat(
            output_format.lower() if isinstance(output_format, str) else output_format
        )
        self.color_mode = ColorMode(
            color_mode.lower() if isinstance(color_mode, str) else color_mode
        )
        self.use_colors = self._detect_colors()

    def _detect_colors(self) -> bool:
        if self.color_mode is ColorMode.AUTO:
            isatty = getattr(sys.stdout, "isatty", None)
            return bool(isatty and isatty())
        return self.color_mode is ColorMode.ALWAYS

    def paint_level(self, level: str) -> str:
        color = LEVEL_COLORS.get(level.upper()) if self.use_colors else None
        return f"{color}{level}{RESET}" if color else level

    def format_record(self, record: LogRecord) -> str:
        if self.output_format is OutputFormat.JSON:
            return json.dumps(record_to_dict(record))

        # [timestamp] [logger] [LEVEL] Class.method: message
        source = ".".join(part for part in (record.clazz, record.method) if part)
        return "[{}] [{}] [{}] {}: {}".format(
            record_timestamp(record),
            record.logger or "unknown",
            self.paint_level(record.level or "UNKNOWN"),
            source,
            record.message or "",
        )

    def format_records(self, records: Iterable[LogRecord]) -> str:
        """Newline-separated lines for plain output, a JSON array for json."""
        if self.output_format is OutputFormat.JSON:
            return json.dumps([record_to_dict(r) for r in records])
        return "\n".join(self.format_record(r) for r in records)
