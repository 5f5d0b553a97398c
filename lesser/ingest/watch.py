"""
File Watch Module - watchdog-based change notifications for watched files

Handles:
- One observer for all watched files
- Scheduling each file's parent directory (non-recursive)
- Routing created/modified/moved/deleted events to the file's callback

watchdog watches directories, so events for unrelated files in the same
directory arrive too and are filtered by path here.
"""
import logging
import os
import threading
from typing import Callable, Dict, List

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[str, str], None]


def _normalize(path) -> str:
    return os.path.normcase(os.path.realpath(os.fsdecode(path)))


class FileChangeHandler(FileSystemEventHandler):
    """Forwards file events to a callback as (event_type, path)"""

    def __init__(self, callback: ChangeCallback):
        super().__init__()
        self.callback = callback

    def _process_event(self, event_type, path):
        self.callback(event_type, _normalize(path))

    def on_created(self, event):
        if not event.is_directory:
            self._process_event("created", event.src_path)

    def on_modified(self, event):
        if not event.is_directory:
            self._process_event("modified", event.src_path)

    def on_deleted(self, event):
        if not event.is_directory:
            self._process_event("deleted", event.src_path)

    def on_moved(self, event):
        if not event.is_directory:
            self._process_event("moved", event.src_path)
            self._process_event("moved", event.dest_path)


class FileWatcher:
    """
    Delivers change events for individual files

    Example:
        >>> watcher = FileWatcher()
        >>> watcher.watch_file("app.log", lambda event_type: reader.wake())
        >>> watcher.start()
    """

    def __init__(self):
        self.observer = Observer()
        self.event_handler = FileChangeHandler(self._dispatch)
        self.monitored_directories: Dict[str, object] = {}  # {directory: watchdog watch}
        self._callbacks: Dict[str, List[Callable[[str], None]]] = {}
        self._lock = threading.Lock()

    def watch_file(self, path, callback: Callable[[str], None]) -> None:
        """
        Call callback(event_type) whenever path changes

        Args:
            path: File to watch
            callback: Receives "created", "modified", "deleted" or "moved"
        """
        target = _normalize(path)
        directory = os.path.dirname(target)
        with self._lock:
            self._callbacks.setdefault(target, []).append(callback)
            if directory not in self.monitored_directories:
                watch = self.observer.schedule(self.event_handler, directory, recursive=False)
                self.monitored_directories[directory] = watch
                logger.info(f"Watching directory {directory}")

    def list_watched_files(self) -> List[str]:
        with self._lock:
            return list(self._callbacks.keys())

    def _dispatch(self, event_type: str, path: str) -> None:
        with self._lock:
            callbacks = list(self._callbacks.get(path, ()))
        for callback in callbacks:
            callback(event_type)

    def start(self) -> None:
        if not self.observer.is_alive():
            self.observer.start()

    def stop(self, timeout: float = 2.0) -> None:
        """Stop the observer thread (bounded wait)"""
        if self.observer.is_alive():
            self.observer.stop()
            self.observer.join(timeout=timeout)
        with self._lock:
            self.monitored_directories.clear()
        logger.info("File watching stopped")
