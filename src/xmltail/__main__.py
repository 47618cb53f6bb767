from __future__ import annotations

import argparse
import json
import logging
import sys
import threading
from typing import NoReturn, Optional
from urllib import error, request

from .config_loader import load_config, tailer_config_from
from .consumer import PrintConsumer, StatusConsumer
from .errors import WatchDirectoryError
from .output_formatter import LogFormatter
from .pipeline import TailPipeline

LOG_LEVELS = {
  "debug": logging.DEBUG,
  "info": logging.INFO,
  "warn": logging.WARNING,
  "error": logging.ERROR,
}

_logger = logging.getLogger("xmltail")


def main(argv: list[str] | None = None) -> NoReturn:
  argv = list(sys.argv[1:] if argv is None else argv)

  if not argv or argv[0] not in {"tail", "serve", "status"}:
    print("Usage: python -m xmltail {tail|serve|status}", file=sys.stderr)
    print("  tail          - Follow the log directory and print records", file=sys.stderr)
    print("  serve         - Follow the log directory and serve status over HTTP", file=sys.stderr)
    print("  status        - Query a running xmltail server", file=sys.stderr)
    sys.exit(1)

  if argv[0] == "tail":
    _run_tail(argv[1:])
  elif argv[0] == "serve":
    _run_serve(argv[1:])
  elif argv[0] == "status":
    _run_status(argv[1:])


def _add_pipeline_arguments(parser: argparse.ArgumentParser) -> None:
  parser.add_argument(
    "--dir",
    dest="log_dir",
    default=None,
    help="Log directory to follow (default: tailer.logDir, XMLTAIL_LOG_DIR or ./log)",
  )
  parser.add_argument(
    "--skip-to-end",
    action="store_true",
    default=None,
    help="Only process records written after startup",
  )
  parser.add_argument(
    "--read-all",
    action="store_true",
    default=None,
    help="Process all older log files in the directory first",
  )
  parser.add_argument(
    "--log-level",
    choices=sorted(LOG_LEVELS),
    default=None,
    help="Diagnostic log level (default: output.logLevel)",
  )
  parser.add_argument(
    "--project-root",
    default=".",
    help="Directory containing the _xmltail/ config folder (default: current directory)",
  )


def _load(parsed: argparse.Namespace) -> tuple:
  try:
    config = load_config(project_root=parsed.project_root)
  except ValueError as e:
    print(f"Error: {e}", file=sys.stderr)
    sys.exit(2)

  level = parsed.log_level or config["output"]["logLevel"]
  logging.basicConfig(
    level=LOG_LEVELS[level],
    format="%(asctime)s %(levelname)s [%(threadName)s] %(name)s: %(message)s",
    stream=sys.stderr,
  )

  tailer_config = tailer_config_from(config).with_overrides(
    log_dir=parsed.log_dir,
    skip_to_end=parsed.skip_to_end,
    read_all=parsed.read_all,
  )
  return config, tailer_config


def _start(pipeline: TailPipeline) -> None:
  try:
    pipeline.start()
  except WatchDirectoryError as e:
    print(f"Error: {e}", file=sys.stderr)
    print("Hint: pass --dir or set XMLTAIL_LOG_DIR to the producer's log folder.", file=sys.stderr)
    sys.exit(2)


def _run_tail(args: list[str]) -> None:
  """Follow the log directory and print every forwarded record."""
  parser = argparse.ArgumentParser(
    prog="xmltail tail",
    description="Follow the log directory and print records as they are written",
  )
  _add_pipeline_arguments(parser)
  parser.add_argument(
    "--format",
    choices=["plain", "json"],
    default=None,
    help="Record output format (default: output.format)",
  )
  parser.add_argument(
    "--color",
    choices=["auto", "always", "never"],
    default=None,
    help="Color output mode (default: output.color)",
  )

  parsed = parser.parse_args(args)
  config, tailer_config = _load(parsed)

  formatter = LogFormatter(
    output_format=parsed.format or config["output"]["format"],
    color_mode=parsed.color or config["output"]["color"],
  )
  consumer = PrintConsumer(formatter=formatter)
  pipeline = TailPipeline(tailer_config, consumer)
  _start(pipeline)

  print(f"[Tailing {tailer_config.log_dir}...]", file=sys.stderr)
  print("[Press Ctrl+C to exit]", file=sys.stderr)

  try:
    failure = pipeline.wait()
  except KeyboardInterrupt:
    print("\n[Tail interrupted]", file=sys.stderr)
    pipeline.stop()
    sys.exit(0)

  pipeline.stop()
  if failure is not None:
    print(f"Error: {failure.describe()}", file=sys.stderr)
    sys.exit(1)
  sys.exit(0)


def _run_serve(args: list[str]) -> None:
  """Follow the log directory and expose its status over HTTP."""
  import uvicorn

  from .api import create_app

  parser = argparse.ArgumentParser(
    prog="xmltail serve",
    description="Follow the log directory and serve /status and /records",
  )
  _add_pipeline_arguments(parser)
  parser.add_argument("--host", default=None, help="Bind host (default: server.host)")
  parser.add_argument("--port", type=int, default=None, help="Bind port (default: server.port)")

  parsed = parser.parse_args(args)
  config, tailer_config = _load(parsed)

  consumer = StatusConsumer(max_recent=config["server"]["recentRecords"])
  pipeline = TailPipeline(tailer_config, consumer)
  _start(pipeline)

  def supervise() -> None:
    failure = pipeline.wait()
    if failure is not None:
      _logger.error("Tailing stopped after worker failure: %s", failure.describe())
      pipeline.stop()

  threading.Thread(target=supervise, name="xmltail-supervisor", daemon=True).start()

  def failure_source() -> Optional[str]:
    return pipeline.failure.describe() if pipeline.failure else None

  app = create_app(consumer, failure_source=failure_source)
  try:
    uvicorn.run(
      app,
      host=parsed.host or config["server"]["host"],
      port=parsed.port or config["server"]["port"],
    )
  finally:
    pipeline.stop()
  sys.exit(1 if pipeline.failure else 0)


def _run_status(args: list[str]) -> None:
  parser = argparse.ArgumentParser(
    prog="xmltail status",
    description="Query a running xmltail server",
  )
  parser.add_argument("--host", default="localhost", help="Server host (default: localhost)")
  parser.add_argument("--port", type=int, default=8002, help="Server port (default: 8002)")
  parsed = parser.parse_args(args)

  url = f"http://{parsed.host}:{parsed.port}/status"
  try:
    with request.urlopen(url, timeout=1.0) as resp:  # nosec B310
      data = json.loads(resp.read().decode("utf-8"))
  except (error.URLError, error.HTTPError, TimeoutError, OSError):
    print(f"xmltail status: UNREACHABLE at {url}", file=sys.stderr)
    print("Hint: ensure `python -m xmltail serve` is running on this host/port.", file=sys.stderr)
    sys.exit(2)

  print(f"xmltail status: {str(data.get('status', 'unknown')).upper()}")
  print(f"Service: {data.get('service_name')} v{data.get('version')}")
  print(f"Current file: {data.get('current_file') or '-'}")
  print(f"Working: {data.get('working')}  Initialized: {data.get('initialized')}")
  print(f"Backlog: {data.get('backlog')}  Records forwarded: {data.get('records_forwarded')}")
  if data.get("last_entry_timestamp") is not None:
    print(f"Last entry: {data['last_entry_timestamp']}")
  if data.get("failure"):
    print(f"Failure: {data['failure']}")
  sys.exit(0)


if __name__ == "__main__":  # pragma: no cover
  main()
