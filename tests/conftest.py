import pytest

from lesser.sources.multiplexer import SourceMultiplexer
from lesser.sources.source import Source
from lesser.store.line_store import LineStore
from lesser.store.timestamps import LogTimestampParser


@pytest.fixture
def make_source():
    """Factory for a Source pre-filled with lines (no reader)"""
    def _make(lines=(), source_id=0, name=None, parse_timestamps=False, ended=True):
        parser = LogTimestampParser() if parse_timestamps else None
        store = LineStore(source_id, timestamp_parser=parser)
        for text in lines:
            store.append(text)
        if ended:
            store.mark_ended()
        return Source(source_id, name or f"source-{source_id}", store)
    return _make


@pytest.fixture
def make_multiplexer(make_source):
    """Factory for a multiplexer over several pre-filled sources"""
    def _make(*line_lists, parse_timestamps=False, merged=False):
        sources = [
            make_source(lines, source_id=i, name=f"src{i}", parse_timestamps=parse_timestamps)
            for i, lines in enumerate(line_lists)
        ]
        return SourceMultiplexer(sources, merged=merged)
    return _make
