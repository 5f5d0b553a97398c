import io
import os
import threading
import time

import pytest

from lesser.errors import SourceIOError
from lesser.ingest.readers import (
    SOURCE_RESET,
    FileReader,
    StreamReader,
    WatchingFileReader,
    open_for_reading,
)


@pytest.fixture
def stop():
    return threading.Event()


@pytest.fixture
def log_path(tmp_path):
    path = tmp_path / "app.log"
    path.write_bytes(b"")
    return path


def append_bytes(path, data):
    with open(path, "ab") as f:
        f.write(data)


class TestStreamReader:
    """Test reading piped input"""

    def test_reads_until_eof(self, stop):
        reader = StreamReader(io.BytesIO(b"one\ntwo\r\nthree"))
        assert list(reader.lines(stop)) == ["one\n", "two\r\n", "three"]

    def test_undecodable_bytes_are_replaced(self, stop):
        reader = StreamReader(io.BytesIO(b"ok\n\xff\xfe bad\n"))
        lines = list(reader.lines(stop))
        assert lines[0] == "ok\n"
        assert lines[1] == "\ufffd\ufffd bad\n"

    def test_stop_event_ends_iteration(self, stop):
        reader = StreamReader(io.BytesIO(b"a\nb\nc\n"))
        iterator = reader.lines(stop)
        assert next(iterator) == "a\n"
        stop.set()
        assert list(iterator) == []

    def test_close_closes_stream(self):
        stream = io.BytesIO(b"")
        StreamReader(stream).close()
        assert stream.closed


class TestFileReader:
    """Test reading static files"""

    def test_reads_whole_file(self, tmp_path, stop):
        path = tmp_path / "static.txt"
        path.write_bytes(b"alpha\nbeta\n")
        reader = FileReader(path)
        assert list(reader.lines(stop)) == ["alpha\n", "beta\n"]
        reader.close()

    def test_missing_file(self, tmp_path):
        with pytest.raises(SourceIOError) as excinfo:
            FileReader(tmp_path / "missing.log")
        assert "missing.log" in str(excinfo.value)

    def test_open_for_reading_directory(self, tmp_path):
        with pytest.raises(SourceIOError):
            open_for_reading(tmp_path)


class TestWatchingFileReader:
    """Test tailing a watched file"""

    def test_reads_existing_then_new_content(self, log_path):
        log_path.write_bytes(b"first\n")
        reader = WatchingFileReader(log_path)
        assert reader.read_new_lines() == (False, ["first"])
        append_bytes(log_path, b"second\nthird\n")
        assert reader.read_new_lines() == (False, ["second", "third"])
        assert reader.read_new_lines() == (False, [])

    def test_partial_line_waits_for_newline(self, log_path):
        reader = WatchingFileReader(log_path)
        append_bytes(log_path, b"one\ntw")
        assert reader.read_new_lines() == (False, ["one"])
        assert reader.partial == "tw"
        append_bytes(log_path, b"o\n")
        assert reader.read_new_lines() == (False, ["two"])

    def test_multibyte_character_split_across_reads(self, log_path):
        reader = WatchingFileReader(log_path)
        append_bytes(log_path, b"caf\xc3")
        assert reader.read_new_lines() == (False, [])
        append_bytes(log_path, b"\xa9\n")
        assert reader.read_new_lines() == (False, ["café"])

    def test_truncation_resets(self, log_path):
        log_path.write_bytes(b"aaaa\nbbbb\n")
        reader = WatchingFileReader(log_path)
        reader.read_new_lines()
        log_path.write_bytes(b"c\n")
        assert reader.read_new_lines() == (True, ["c"])
        assert reader.offset == 2

    def test_replacement_resets(self, log_path, tmp_path):
        log_path.write_bytes(b"old\n")
        reader = WatchingFileReader(log_path)
        reader.read_new_lines()

        replacement = tmp_path / "app.log.new"
        replacement.write_bytes(b"new 1\nnew 2\n")
        os.replace(replacement, log_path)
        assert reader.read_new_lines() == (True, ["new 1", "new 2"])

    def test_missing_file_is_waited_for(self, log_path):
        reader = WatchingFileReader(log_path)
        os.remove(log_path)
        assert reader.read_new_lines() == (False, [])

    def test_unreadable_at_start(self, tmp_path):
        with pytest.raises(SourceIOError):
            WatchingFileReader(tmp_path / "nope.log")

    def test_lines_loop_yields_reset_marker_and_stops(self, log_path, stop):
        log_path.write_bytes(b"before\nmore before\n")
        reader = WatchingFileReader(log_path, poll_interval=0.05)
        received = []

        def consume():
            for item in reader.lines(stop):
                received.append(item)

        thread = threading.Thread(target=consume, daemon=True)
        thread.start()
        time.sleep(0.2)
        log_path.write_bytes(b"after\n")
        reader.wake()
        time.sleep(0.3)

        stop.set()
        reader.close()
        thread.join(timeout=2.0)

        assert not thread.is_alive()
        assert received == ["before", "more before", SOURCE_RESET, "after"]
