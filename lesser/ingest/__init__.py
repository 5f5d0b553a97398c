"""
Input ingestion: readers, file watching, producer threads and events
"""

from .coordinator import IngestionCoordinator
from .events import (
    ContentAppended,
    EventChannel,
    KeyPressed,
    PagerEvent,
    QuitRequested,
    Resized,
    SourceEnded,
    SourceFailed,
    SourceWasReset,
)
from .readers import (
    SOURCE_RESET,
    FileReader,
    LineReader,
    SourceReset,
    StreamReader,
    WatchingFileReader,
)
from .watch import FileChangeHandler, FileWatcher

__all__ = [
    'IngestionCoordinator',
    'ContentAppended',
    'EventChannel',
    'KeyPressed',
    'PagerEvent',
    'QuitRequested',
    'Resized',
    'SourceEnded',
    'SourceFailed',
    'SourceWasReset',
    'SOURCE_RESET',
    'FileReader',
    'LineReader',
    'SourceReset',
    'StreamReader',
    'WatchingFileReader',
    'FileChangeHandler',
    'FileWatcher',
]
