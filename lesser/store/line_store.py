"""
Line Store Module - Append-only line record for one source

Handles:
- Line numbering (0-based, gap-free) at the single-writer append site
- Thread-safe reads from the consumer while the producer appends
- Change notifications (append, end of stream, reset)
- Timestamp parsing with carry-forward for lines without one
- Per-source non-decreasing effective timestamps (the merge key)
"""
import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional

from lesser.errors import OutOfRangeError

from .timestamps import TimestampParser, anchor_timestamp

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Line:
    """One immutable line of a source"""
    source_id: int
    line_number: int
    text: str
    timestamp: Optional[datetime] = None
    # Latest timestamp seen so far in the same source, this line's included
    effective_timestamp: Optional[datetime] = None

    def __str__(self) -> str:
        return self.text


class StoreChange(Enum):
    """Kinds of store notifications"""
    APPENDED = "appended"
    ENDED = "ended"
    RESET = "reset"


StoreListener = Callable[["LineStore", StoreChange], None]


class Subscription:
    """Handle returned by LineStore.subscribe"""

    def __init__(self, store: "LineStore", callback: StoreListener):
        self._store = store
        self.callback = callback

    def cancel(self) -> None:
        self._store._unsubscribe(self)


def strip_line_ending(text: str) -> str:
    """Remove one trailing \\r\\n, \\n or \\r"""
    if text.endswith('\r\n'):
        return text[:-2]
    if text.endswith('\n') or text.endswith('\r'):
        return text[:-1]
    return text


class LineStore:
    """
    Growable, append-only sequence of Line objects for one source

    The producer thread is the only writer. The lock makes the line list
    and its length safely readable from the consumer while appends happen.
    Listeners are called outside the lock, on the writer's thread.

    Attributes:
        source_id: Id stamped on every Line
        version: Incremented on every append and reset
        generation: Incremented on every reset
        ended: End of stream seen (never clears)
        error: Read error message when the source failed
    """

    def __init__(self, source_id: int, timestamp_parser: Optional[TimestampParser] = None):
        self.source_id = source_id
        self.timestamp_parser = timestamp_parser
        self.version = 0
        self.generation = 0
        self.ended = False
        self.error: Optional[str] = None

        self._lines: List[Line] = []
        self._last_timestamp: Optional[datetime] = None
        self._lock = threading.Lock()
        self._subscriptions: List[Subscription] = []

    def append(self, text: str) -> int:
        """
        Append a line of text

        Args:
            text: Line content; one trailing line ending is stripped

        Returns:
            The new line's line number
        """
        text = strip_line_ending(text)
        parsed = self.timestamp_parser(text) if self.timestamp_parser else None

        with self._lock:
            previous = self._last_timestamp
            if parsed is not None:
                parsed = anchor_timestamp(parsed, previous)
                # Merge keys never decrease within a source
                self._last_timestamp = parsed if previous is None else max(parsed, previous)
            line_number = len(self._lines)
            self._lines.append(Line(
                source_id=self.source_id,
                line_number=line_number,
                text=text,
                timestamp=parsed,
                effective_timestamp=self._last_timestamp,
            ))
            self.version += 1

        self._notify(StoreChange.APPENDED)
        return line_number

    def get(self, line_number: int) -> Line:
        """Return a line, raising OutOfRangeError past the end"""
        with self._lock:
            if line_number < 0 or line_number >= len(self._lines):
                raise OutOfRangeError(line_number, len(self._lines))
            return self._lines[line_number]

    def peek(self, line_number: int) -> Optional[Line]:
        """Return a line, or None when it does not exist (yet)"""
        with self._lock:
            if 0 <= line_number < len(self._lines):
                return self._lines[line_number]
            return None

    def slice(self, start: int, stop: Optional[int] = None) -> List[Line]:
        """Copy of lines[start:stop]"""
        with self._lock:
            return self._lines[start:stop]

    def length(self) -> int:
        with self._lock:
            return len(self._lines)

    def __len__(self) -> int:
        return self.length()

    def mark_ended(self, error: Optional[str] = None) -> None:
        """Record end of stream (and the read error, if any)"""
        with self._lock:
            if self.ended:
                return
            self.ended = True
            self.error = error
        self._notify(StoreChange.ENDED)

    def reset(self) -> None:
        """
        Drop all lines after truncation or rotation of the backing file

        Numbering restarts at 0. The generation counter tells readers
        (such as the search engine) that anything they derived is stale.
        """
        with self._lock:
            dropped = len(self._lines)
            self._lines = []
            self._last_timestamp = None
            self.version += 1
            self.generation += 1
        logger.info(f"Source {self.source_id} reset, dropped {dropped} lines")
        self._notify(StoreChange.RESET)

    def subscribe(self, callback: StoreListener) -> Subscription:
        """Register a callback fired on append, end of stream and reset"""
        subscription = Subscription(self, callback)
        with self._lock:
            self._subscriptions.append(subscription)
        return subscription

    def _unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

    def _notify(self, change: StoreChange) -> None:
        with self._lock:
            subscriptions = list(self._subscriptions)
        for subscription in subscriptions:
            subscription.callback(self, change)
