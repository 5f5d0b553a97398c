"""
Line Reader Module - Producers of raw lines for each source

Handles:
- Piped/standard input streams (read until EOF)
- Static files (read once to end of file)
- Watched files (tail new content, woken by file-change events)
- Partial lines (buffered until their newline arrives)
- Truncation and rotation of watched files (reported as a reset)
- Undecodable bytes (replaced, never fatal)

Each reader yields text lines, or SOURCE_RESET when everything read so far
no longer describes the file. Readers check the stop event between lines,
so a producer observes cancellation within one read or poll cycle.
"""
import codecs
import logging
import os
import threading
from pathlib import Path
from typing import BinaryIO, Iterator, List, Optional, Tuple, Union

from lesser.errors import SourceIOError

logger = logging.getLogger(__name__)


class SourceReset:
    """Marker yielded when a watched file was truncated or replaced"""

    def __repr__(self) -> str:
        return "SOURCE_RESET"


SOURCE_RESET = SourceReset()

ReadItem = Union[str, SourceReset]


class LineReader:
    """Base class for readers; subclasses implement lines()"""

    name: str = "?"
    watch_mode: bool = False

    def lines(self, stop: threading.Event) -> Iterator[ReadItem]:
        raise NotImplementedError

    def wake(self) -> None:
        """Called when the backing content is known to have changed"""

    def close(self) -> None:
        """Release the source handle"""


class StreamReader(LineReader):
    """
    Reads a binary stream line by line until EOF

    A blocking read on an idle pipe cannot observe the stop event; the
    producer thread is a daemon so this never holds up exit.
    """

    def __init__(self, stream: BinaryIO, name: str = "stdin", encoding: str = "utf-8"):
        self.stream = stream
        self.name = name
        self.encoding = encoding

    def lines(self, stop: threading.Event) -> Iterator[ReadItem]:
        for raw in iter(self.stream.readline, b""):
            if stop.is_set():
                return
            yield raw.decode(self.encoding, errors="replace")

    def close(self) -> None:
        try:
            self.stream.close()
        except OSError as e:
            logger.debug(f"Error closing {self.name}: {e}")


def open_for_reading(path: Path) -> BinaryIO:
    """Open a file in binary mode, raising SourceIOError on failure"""
    try:
        return open(path, "rb")
    except OSError as e:
        raise SourceIOError(str(path), e.strerror or str(e))


class FileReader(StreamReader):
    """Reads a file once, to its end"""

    def __init__(self, path: Path, encoding: str = "utf-8"):
        self.path = Path(path)
        super().__init__(open_for_reading(self.path), name=str(path), encoding=encoding)


class WatchingFileReader(LineReader):
    """
    Tails a file for appended content

    Tracks the read offset and polls for new content whenever woken (by
    a file-change event) or when poll_interval elapses. A shrinking file
    or a new inode at the same path means truncation or rotation: the
    reader starts over at offset 0 and yields SOURCE_RESET first. A
    missing file is waited for rather than treated as an error.

    Attributes:
        path: Watched file
        offset: Bytes consumed so far
        partial: Text after the last newline, waiting for its newline
    """

    watch_mode = True

    def __init__(self, path: Path, encoding: str = "utf-8", poll_interval: float = 0.5):
        self.path = Path(path)
        self.name = str(path)
        self.encoding = encoding
        self.poll_interval = poll_interval

        # Must be readable at startup
        open_for_reading(self.path).close()

        self.offset = 0
        self.partial = ""
        self._inode: Optional[int] = None
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._wake = threading.Event()

    def wake(self) -> None:
        self._wake.set()

    def close(self) -> None:
        # Unblock a waiting lines() loop
        self._wake.set()

    def _start_over(self) -> None:
        self.offset = 0
        self.partial = ""
        self._decoder.reset()

    def read_new_lines(self) -> Tuple[bool, List[str]]:
        """
        Read complete lines appended since the last call

        Returns:
            (was_reset, lines)
        """
        try:
            stat = os.stat(self.path)
        except FileNotFoundError:
            # Rotated away; the replacement shows up with a new inode
            return False, []

        reset = False
        if self._inode is not None and stat.st_ino != self._inode:
            logger.info(f"{self.name} was replaced, starting over")
            reset = True
        elif stat.st_size < self.offset:
            logger.info(f"{self.name} was truncated, starting over")
            reset = True
        if reset:
            self._start_over()
        self._inode = stat.st_ino

        if stat.st_size == self.offset:
            return reset, []

        with open(self.path, "rb") as f:
            f.seek(self.offset)
            data = f.read()
        self.offset += len(data)

        text = self.partial + self._decoder.decode(data)
        parts = text.split("\n")
        # Last part has no newline yet (empty when text ended with one)
        self.partial = parts.pop()
        return reset, parts

    def lines(self, stop: threading.Event) -> Iterator[ReadItem]:
        while not stop.is_set():
            self._wake.clear()
            reset, lines = self.read_new_lines()
            if reset:
                yield SOURCE_RESET
            for line in lines:
                if stop.is_set():
                    return
                yield line
            self._wake.wait(self.poll_interval)
