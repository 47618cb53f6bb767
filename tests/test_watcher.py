import os
import threading
from pathlib import Path

import pytest

from conftest import wait_until

from xmltail.errors import WatchDirectoryError
from xmltail.pending_queue import PendingFileQueue
from xmltail.watcher import DirectoryWatcher, PollingDirectoryEvents, list_log_files


def _touch(path: Path, mtime: float) -> Path:
  path.write_text("", encoding="utf-8")
  os.utime(path, (mtime, mtime))
  return path


@pytest.fixture
def log_dir(tmp_path):
  _touch(tmp_path / "b.xml", 2000)
  _touch(tmp_path / "c.xml", 3000)
  _touch(tmp_path / "a.xml", 1000)
  _touch(tmp_path / "notes.txt", 4000)
  return tmp_path


def test_list_log_files_orders_by_mtime_and_filters_extension(log_dir):
  names = [p.name for p in list_log_files(log_dir)]
  assert names == ["a.xml", "b.xml", "c.xml"]


def test_read_all_seeds_backlog_without_newest_file(log_dir):
  q = PendingFileQueue()
  watcher = DirectoryWatcher(log_dir, q, read_all=True)
  watcher.initialize()

  assert q.snapshot() == [log_dir / "a.xml", log_dir / "b.xml"]
  assert watcher.active_file == log_dir / "c.xml"


def test_without_read_all_queue_starts_empty(log_dir):
  q = PendingFileQueue()
  watcher = DirectoryWatcher(log_dir, q)
  watcher.initialize()

  assert q.snapshot() == []
  assert watcher.active_file == log_dir / "c.xml"


def test_empty_directory_has_no_active_file(tmp_path):
  q = PendingFileQueue()
  watcher = DirectoryWatcher(tmp_path, q, read_all=True)
  watcher.initialize()
  assert watcher.active_file is None
  assert q.size() == 0


def test_missing_directory_is_fatal(tmp_path):
  watcher = DirectoryWatcher(tmp_path / "missing", PendingFileQueue())
  with pytest.raises(WatchDirectoryError):
    watcher.initialize()


def test_file_instead_of_directory_is_fatal(tmp_path):
  target = tmp_path / "file.xml"
  target.write_text("", encoding="utf-8")
  with pytest.raises(WatchDirectoryError):
    DirectoryWatcher(target, PendingFileQueue()).initialize()


def test_run_queues_active_file_then_created_files_unfiltered(log_dir):
  q = PendingFileQueue()
  watcher = DirectoryWatcher(log_dir, q, read_all=True, poll_interval=0.02)
  thread = threading.Thread(target=watcher.run)
  thread.start()
  try:
    assert wait_until(lambda: q.size() == 3)
    (log_dir / "d.xml").write_text("", encoding="utf-8")
    (log_dir / "shortcut.lnk").write_text("", encoding="utf-8")
    assert wait_until(lambda: q.size() == 5)
  finally:
    watcher.stop()
    thread.join(timeout=2.0)

  assert not thread.is_alive()
  queued = q.snapshot()
  assert queued[:3] == [log_dir / "a.xml", log_dir / "b.xml", log_dir / "c.xml"]
  assert set(queued[3:]) == {log_dir / "d.xml", log_dir / "shortcut.lnk"}


def test_stop_before_events_ends_run_promptly(tmp_path):
  q = PendingFileQueue()
  watcher = DirectoryWatcher(tmp_path, q, poll_interval=10.0)
  thread = threading.Thread(target=watcher.run)
  thread.start()
  watcher.stop()
  thread.join(timeout=2.0)
  assert not thread.is_alive()


def test_polling_events_report_each_creation_once(tmp_path):
  events = PollingDirectoryEvents(tmp_path)
  events.open()
  assert events.poll() == []

  (tmp_path / "new.xml").write_text("", encoding="utf-8")
  assert events.poll() == [tmp_path / "new.xml"]
  assert events.poll() == []

  events.close()
  (tmp_path / "after.xml").write_text("", encoding="utf-8")
  assert events.poll() == []
