"""
Source Multiplexer Module - Active source selection and merged view

Handles:
- Cycling the active source
- A per-source line sequence (SourceView)
- A lazily merged, timestamp-ordered sequence over all sources (MergedView)

Both views expose the same interface to the viewport:
    length(), window(top, count), position_of(line), label

Merge order is the key (effective_timestamp, source_id, line_number).
Lines before the first parsed timestamp of their source sort earliest.
LineStore keeps keys non-decreasing within a source, so bisect over one
store and heapq.merge across stores agree on every line's position.
The merged view never builds the combined sequence: every window is a
k-way merge (heapq.merge) started from a per-source cursor, which is
found by merging forward or backward from the nearest known point.
"""
import heapq
import logging
import sys
from bisect import bisect_left
from datetime import datetime
from itertools import islice
from typing import Iterator, List, Optional, Sequence, Tuple, Union

from lesser.store.line_store import Line, LineStore

from .source import Source

logger = logging.getLogger(__name__)

MERGED = "merged"

MergeKey = Tuple[datetime, int, int]
Positions = Tuple[int, ...]

_AFTER_EVERYTHING: MergeKey = (datetime.max, sys.maxsize, sys.maxsize)


def merge_key(line: Line) -> MergeKey:
    """Sort key of a line in the merged view"""
    return (line.effective_timestamp or datetime.min, line.source_id, line.line_number)


class SourceView:
    """Line sequence of a single source"""

    def __init__(self, source: Source):
        self.source = source

    @property
    def label(self) -> str:
        return self.source.display_name

    def length(self) -> int:
        return self.source.store.length()

    def window(self, top: int, count: int) -> List[Line]:
        top = max(0, top)
        return self.source.store.slice(top, top + max(0, count))

    def position_of(self, line: Line) -> Optional[int]:
        if line.source_id != self.source.source_id:
            return None
        return line.line_number


class _KeyedLines:
    """Read-only sequence of merge keys over a store, for bisect"""

    def __init__(self, store: LineStore):
        self.store = store

    def __len__(self) -> int:
        return self.store.length()

    def __getitem__(self, index: int) -> MergeKey:
        line = self.store.peek(index)
        if line is None:
            return _AFTER_EVERYTHING
        return merge_key(line)


class MergedView:
    """
    Timestamp-ordered interleaving of all sources

    A cursor is one read position per source; the ordinal of a cursor in
    the merged sequence is the sum of its positions. One anchor (the last
    located cursor) is kept so consecutive windows near the same place
    cost a few merge steps rather than a walk from either end.
    """

    label = "merged"

    def __init__(self, sources: Sequence[Source]):
        self.sources = list(sources)
        self._slot = {source.source_id: i for i, source in enumerate(self.sources)}
        # (positions, versions, generations, line at positions)
        self._anchor: Optional[Tuple[Positions, Tuple[int, ...], Tuple[int, ...], Optional[Line]]] = None

    def length(self) -> int:
        return sum(source.store.length() for source in self.sources)

    def _versions(self) -> Tuple[int, ...]:
        return tuple(source.store.version for source in self.sources)

    def _generations(self) -> Tuple[int, ...]:
        return tuple(source.store.generation for source in self.sources)

    # Merging

    @staticmethod
    def _iter_store(store: LineStore, start: int) -> Iterator[Line]:
        index = start
        while True:
            line = store.peek(index)
            if line is None:
                return
            yield line
            index += 1

    @staticmethod
    def _iter_store_reversed(store: LineStore, stop: int) -> Iterator[Line]:
        index = stop - 1
        while index >= 0:
            line = store.peek(index)
            if line is None:
                return
            yield line
            index -= 1

    def iter_from(self, positions: Positions) -> Iterator[Line]:
        """Lines in merge order starting at a cursor"""
        iterables = [
            self._iter_store(source.store, position)
            for source, position in zip(self.sources, positions)
        ]
        return heapq.merge(*iterables, key=merge_key)

    def iter_before(self, positions: Positions) -> Iterator[Line]:
        """Lines in reverse merge order ending just before a cursor"""
        iterables = [
            self._iter_store_reversed(source.store, position)
            for source, position in zip(self.sources, positions)
        ]
        return heapq.merge(*iterables, key=merge_key, reverse=True)

    def advance(self, positions: Positions, steps: int) -> Positions:
        moved = list(positions)
        for line in islice(self.iter_from(positions), steps):
            moved[self._slot[line.source_id]] = line.line_number + 1
        return tuple(moved)

    def retreat(self, positions: Positions, steps: int) -> Positions:
        moved = list(positions)
        for line in islice(self.iter_before(positions), steps):
            moved[self._slot[line.source_id]] = line.line_number
        return tuple(moved)

    def cursor_before(self, line: Line) -> Positions:
        """Cursor whose next emitted line is the given line"""
        key = merge_key(line)
        positions = []
        for source in self.sources:
            if source.source_id == line.source_id:
                positions.append(line.line_number)
            else:
                positions.append(bisect_left(_KeyedLines(source.store), key))
        return tuple(positions)

    # Navigation

    def locate(self, ordinal: int) -> Positions:
        """
        Cursor at an ordinal of the merged sequence

        Starts from the nearest of the beginning, the end and the anchor.
        After appends the anchor is re-derived from the line it pointed
        at; after a reset it is dropped.
        """
        lengths = tuple(source.store.length() for source in self.sources)
        total = sum(lengths)
        ordinal = max(0, min(ordinal, total))
        versions = self._versions()
        generations = self._generations()

        candidates = [(0, tuple(0 for _ in lengths)), (total, lengths)]
        if self._anchor is not None:
            positions, anchor_versions, anchor_generations, anchor_line = self._anchor
            if anchor_versions == versions:
                candidates.append((sum(positions), positions))
            elif anchor_generations == generations and anchor_line is not None:
                positions = self.cursor_before(anchor_line)
                candidates.append((sum(positions), positions))

        base_ordinal, base = min(candidates, key=lambda c: abs(c[0] - ordinal))
        if ordinal >= base_ordinal:
            positions = self.advance(base, ordinal - base_ordinal)
        else:
            positions = self.retreat(base, base_ordinal - ordinal)

        anchor_line = next(self.iter_from(positions), None)
        self._anchor = (positions, versions, generations, anchor_line)
        return positions

    def window(self, top: int, count: int) -> List[Line]:
        positions = self.locate(top)
        return list(islice(self.iter_from(positions), max(0, count)))

    def position_of(self, line: Line) -> Optional[int]:
        if line.source_id not in self._slot:
            return None
        return sum(self.cursor_before(line))


SequenceView = Union[SourceView, MergedView]


class SourceMultiplexer:
    """
    Owns the pager's sources and the current selection

    Attributes:
        sources: All sources, indexed by source_id
        active_index: Index of the active source
        merged: Whether the merged view is shown instead
    """

    def __init__(self, sources: Sequence[Source], merged: bool = False):
        if not sources:
            raise ValueError("at least one source is required")
        self.sources: List[Source] = list(sources)
        self.active_index = 0
        self.merged = merged
        self._source_views = [SourceView(source) for source in self.sources]
        self._merged_view = MergedView(self.sources)

    def __len__(self) -> int:
        return len(self.sources)

    def __iter__(self) -> Iterator[Source]:
        return iter(self.sources)

    def get(self, source_id: int) -> Source:
        return self.sources[source_id]

    def active(self) -> Source:
        """The active source (the last one shown, while merged)"""
        return self.sources[self.active_index]

    @property
    def active_key(self) -> Union[int, str]:
        """Source id of the active source, or MERGED"""
        if self.merged:
            return MERGED
        return self.active().source_id

    def switch_next(self) -> Union[int, str]:
        """Rotate to the next source (leaving the merged view)"""
        self.merged = False
        self.active_index = (self.active_index + 1) % len(self.sources)
        logger.debug(f"Switched to source {self.active().display_name}")
        return self.active_key

    def toggle_merged(self) -> Union[int, str]:
        self.merged = not self.merged
        return self.active_key

    def merged_view(self) -> MergedView:
        return self._merged_view

    def view(self) -> SequenceView:
        """Sequence for the current selection"""
        if self.merged:
            return self._merged_view
        return self._source_views[self.active_index]

    def stores_in_scope(self) -> List[LineStore]:
        """Stores the current selection shows (and search covers)"""
        if self.merged:
            return [source.store for source in self.sources]
        return [self.active().store]
