"""
Pager Events Module - Everything the consumer can wake up for

Handles:
- Event types for key presses, producer notifications and resizes
- EventChannel: the single queue keyboard input and producers share in
  PagerSession.run_headless (PagerApp uses Textual's message queue)
"""
import queue
from dataclasses import dataclass
from typing import Callable, List, Optional, Union


@dataclass(frozen=True)
class KeyPressed:
    """
    A discrete key event

    key is the key name ("up", "pagedown", "enter", "escape", "backspace",
    or the character itself); character is set for printable keys.
    """
    key: str
    character: Optional[str] = None

    @classmethod
    def parse(cls, name: str) -> "KeyPressed":
        """KeyPressed from a name; single characters are printable"""
        if len(name) == 1:
            return cls(key=name, character=name)
        if name == "space":
            return cls(key=name, character=" ")
        return cls(key=name)

    @property
    def printable(self) -> bool:
        return self.character is not None and self.character.isprintable()


@dataclass(frozen=True)
class ContentAppended:
    source_id: int


@dataclass(frozen=True)
class SourceEnded:
    source_id: int


@dataclass(frozen=True)
class SourceFailed:
    source_id: int
    message: str


@dataclass(frozen=True)
class SourceWasReset:
    source_id: int


@dataclass(frozen=True)
class Resized:
    page_height: int


@dataclass(frozen=True)
class QuitRequested:
    pass


PagerEvent = Union[
    KeyPressed, ContentAppended, SourceEnded, SourceFailed,
    SourceWasReset, Resized, QuitRequested,
]
Publisher = Callable[[PagerEvent], None]


class EventChannel:
    """Thread-safe queue of PagerEvent, many publishers and one consumer"""

    def __init__(self):
        self._queue: "queue.Queue[PagerEvent]" = queue.Queue()

    def publish(self, event: PagerEvent) -> None:
        self._queue.put(event)

    def next_event(self, timeout: Optional[float] = None) -> Optional[PagerEvent]:
        """
        Block until an event arrives

        Args:
            timeout: Seconds to wait; None waits forever

        Returns:
            The event, or None if the timeout expired
        """
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def drain(self) -> List[PagerEvent]:
        """Return every queued event without blocking"""
        events = []
        while True:
            try:
                events.append(self._queue.get_nowait())
            except queue.Empty:
                return events
