from __future__ import annotations

from typing import Callable, Dict, List, Optional

from fastapi import FastAPI, Query

from .consumer import StatusConsumer
from .status import get_status


def create_app(
  consumer: StatusConsumer,
  failure_source: Optional[Callable[[], Optional[str]]] = None,
) -> FastAPI:
  """
  Build the HTTP surface for a running pipeline.

  `failure_source` returns a description of the worker failure, if any,
  so `/status` can report it.
  """
  from . import __version__

  app = FastAPI(title="xmltail", version=__version__)

  @app.get("/status")
  async def status_endpoint() -> Dict[str, object]:
    failure = failure_source() if failure_source else None
    return get_status(consumer, failure=failure)

  @app.get("/records")
  async def records_endpoint(
    limit: int = Query(50, ge=1, le=1000, description="Maximum number of records to return"),
  ) -> Dict[str, List[dict]]:
    """Most recently forwarded records, newest last."""
    records = consumer.recent(limit)
    return {"records": [r.model_dump(by_alias=True) for r in records]}

  return app
