import os
import time
from unittest.mock import MagicMock

import pytest
from watchdog.events import (
    DirModifiedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from lesser.ingest.watch import FileChangeHandler, FileWatcher


def normalized(path):
    return os.path.normcase(os.path.realpath(path))


@pytest.fixture
def watcher():
    watcher = FileWatcher()
    yield watcher
    watcher.stop()


class TestFileChangeHandler:
    """Test translation of watchdog events"""

    def test_file_events_forwarded(self, tmp_path):
        callback = MagicMock()
        handler = FileChangeHandler(callback)
        path = str(tmp_path / "a.log")

        handler.on_created(FileCreatedEvent(path))
        handler.on_modified(FileModifiedEvent(path))
        handler.on_deleted(FileDeletedEvent(path))

        assert [c.args for c in callback.call_args_list] == [
            ("created", normalized(path)),
            ("modified", normalized(path)),
            ("deleted", normalized(path)),
        ]

    def test_move_reports_both_paths(self, tmp_path):
        callback = MagicMock()
        handler = FileChangeHandler(callback)
        old, new = str(tmp_path / "a.log"), str(tmp_path / "a.log.1")

        handler.on_moved(FileMovedEvent(old, new))

        callback.assert_any_call("moved", normalized(old))
        callback.assert_any_call("moved", normalized(new))

    def test_directory_events_ignored(self, tmp_path):
        callback = MagicMock()
        handler = FileChangeHandler(callback)
        handler.on_modified(DirModifiedEvent(str(tmp_path)))
        callback.assert_not_called()


class TestFileWatcherWithObserver:
    """Test the watcher against a real observer"""

    def test_modification_reaches_callback(self, watcher, tmp_path):
        path = tmp_path / "app.log"
        path.write_text("start\n")
        events = []
        watcher.watch_file(path, events.append)
        watcher.start()
        time.sleep(0.1)  # Give observer time to start

        with open(path, "a") as f:
            f.write("more\n")
        time.sleep(0.5)  # Give observer time to detect

        assert "modified" in events

    def test_other_files_in_directory_filtered(self, watcher, tmp_path):
        path = tmp_path / "app.log"
        path.write_text("")
        events = []
        watcher.watch_file(path, events.append)
        watcher.start()
        time.sleep(0.1)

        (tmp_path / "unrelated.txt").write_text("noise\n")
        time.sleep(0.5)

        assert events == []

    def test_one_directory_watch_for_several_files(self, watcher, tmp_path):
        first, second = tmp_path / "a.log", tmp_path / "b.log"
        first.write_text("")
        second.write_text("")
        watcher.watch_file(first, lambda event_type: None)
        watcher.watch_file(second, lambda event_type: None)

        assert len(watcher.monitored_directories) == 1
        assert sorted(watcher.list_watched_files()) == sorted([normalized(first), normalized(second)])

    def test_stop_clears_directories(self, tmp_path):
        watcher = FileWatcher()
        watcher.watch_file(tmp_path / "a.log", lambda event_type: None)
        watcher.start()
        watcher.stop()
        assert not watcher.observer.is_alive()
        assert watcher.monitored_directories == {}
