from __future__ import annotations

from typing import Optional

from .consumer import StatusConsumer

SERVICE_NAME = "xmltail"


def get_status(consumer: StatusConsumer, failure: Optional[str] = None) -> dict:
  """
  Return the status payload served by the HTTP surface.

  `failure` is the description of a worker failure, if one occurred.
  """
  from . import __version__

  payload = consumer.status().to_dict()
  payload.update(
    status="failed" if failure else "healthy",
    service_name=SERVICE_NAME,
    version=__version__,
    failure=failure,
  )
  return payload
