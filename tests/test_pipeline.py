import os
import threading

import pytest

from conftest import append, record_xml, wait_until

from xmltail.config import TailerConfig
from xmltail.errors import WatchDirectoryError
from xmltail.pipeline import TailPipeline


def _config(log_dir, **kwargs):
  return TailerConfig(
    log_dir=log_dir,
    poll_interval_ms=10,
    idle_interval_ms=50,
    watch_interval_ms=20,
    **kwargs,
  )


def _write(path, text, mtime):
  path.write_text(text, encoding="utf-8")
  os.utime(path, (mtime, mtime))


def test_missing_directory_fails_before_workers_start(tmp_path, consumer):
  before = threading.active_count()
  pipeline = TailPipeline(_config(tmp_path / "missing"), consumer)

  with pytest.raises(WatchDirectoryError):
    pipeline.start()

  assert threading.active_count() == before
  assert not pipeline.running


def test_backlog_then_active_file_then_rotation(tmp_path, consumer):
  _write(tmp_path / "a.xml", record_xml(1, "a"), 1000)
  _write(tmp_path / "b.xml", record_xml(2, "b"), 2000)
  _write(tmp_path / "c.xml", record_xml(3, "c"), 3000)

  with TailPipeline(_config(tmp_path, read_all=True), consumer) as pipeline:
    assert wait_until(lambda: consumer.messages() == ["a", "b", "c"])

    # Producer rotates: a new file appears and the old one is abandoned.
    (tmp_path / "d.xml").write_text(record_xml(4, "d"), encoding="utf-8")
    assert wait_until(lambda: consumer.messages() == ["a", "b", "c", "d"])
    append(tmp_path / "d.xml", record_xml(5, "e"))
    assert wait_until(lambda: consumer.messages() == ["a", "b", "c", "d", "e"])
    assert pipeline.wait(timeout=0.01) is None

  assert consumer.files[-1] == tmp_path / "d.xml"
  assert consumer.working is False


def test_without_read_all_only_newest_file_is_tailed(tmp_path, consumer):
  _write(tmp_path / "old.xml", record_xml(1, "old"), 1000)
  _write(tmp_path / "new.xml", record_xml(2, "new"), 2000)

  with TailPipeline(_config(tmp_path), consumer):
    assert wait_until(lambda: consumer.messages() == ["new"])

  assert consumer.files == [tmp_path / "new.xml"]


def test_skip_to_end_only_forwards_new_records(tmp_path, consumer):
  _write(tmp_path / "live.xml", record_xml(1, "history"), 1000)

  with TailPipeline(_config(tmp_path, skip_to_end=True), consumer) as pipeline:
    assert wait_until(lambda: consumer.initialized)
    append(tmp_path / "live.xml", record_xml(2, "fresh"))
    assert wait_until(lambda: consumer.messages() == ["fresh"])
    assert pipeline.tailer.state.skip_to_end is False


def test_stop_is_idempotent_and_wait_returns_none(tmp_path, consumer):
  pipeline = TailPipeline(_config(tmp_path), consumer)
  pipeline.start()
  assert pipeline.running

  pipeline.stop()
  pipeline.stop()

  assert not pipeline.running
  assert pipeline.wait(timeout=1.0) is None
  for thread in pipeline._threads:
    assert not thread.is_alive()


def test_worker_failure_is_reported_not_raised(tmp_path, consumer, monkeypatch):
  _write(tmp_path / "live.xml", record_xml(1, "x"), 1000)
  pipeline = TailPipeline(_config(tmp_path), consumer)

  def broken_run():
    raise RuntimeError("boom")

  monkeypatch.setattr(pipeline.tailer, "run", broken_run)
  pipeline.start()
  try:
    failure = pipeline.wait(timeout=5.0)
  finally:
    pipeline.stop()

  assert failure is not None
  assert failure.worker == "tailer"
  assert isinstance(failure.error, RuntimeError)
  assert "boom" in failure.describe()
  assert pipeline.failure is failure


def test_method_filter_is_passed_to_tailer(tmp_path, consumer):
  _write(tmp_path / "live.xml", record_xml(1, "a", method="run") + record_xml(2, "b", method="skip"), 1000)

  config = _config(tmp_path)
  with TailPipeline(config, consumer, method_filter=lambda method: method == "run"):
    assert wait_until(lambda: consumer.timestamps == [1, 2])

  assert consumer.messages() == ["a"]
