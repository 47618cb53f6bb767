"""
xmltail

Follows a directory of append-only XML-fragment log files, reassembles
whole records from lines as they are written, and forwards them to a
consumer while transparently following file rotation.
"""

from .config import TailerConfig
from .consumer import ConsumerPort, PrintConsumer, StatusConsumer
from .models import LogRecord
from .pipeline import TailPipeline, WorkerFailure

__version__ = "0.1.0"

__all__ = [
  "ConsumerPort",
  "LogRecord",
  "PrintConsumer",
  "StatusConsumer",
  "TailerConfig",
  "TailPipeline",
  "WorkerFailure",
]
