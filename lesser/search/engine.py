"""
Search Engine Module - Literal and regex matching over line stores

Handles:
- Pattern compilation (case-sensitive literal or Python regex)
- Incremental scanning: only lines appended since the last scan
- Sorted match set across one or more sources
- Next/previous traversal with wraparound detection
- Staleness after a source reset

Matches are kept sorted by (source_id, line_number, start). Appended lines
of a source always sort after that source's existing matches, so new
matches are inserted as one block and the current index is shifted when
the block lands before it.
"""
import logging
import re
from bisect import bisect_left, bisect_right
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from lesser.errors import InvalidRegexError
from lesser.store.line_store import LineStore

logger = logging.getLogger(__name__)

Span = Tuple[int, int]
SpanFinder = Callable[[str], List[Span]]


class SearchMode(Enum):
    """Search state as seen by the viewport"""
    INACTIVE = "inactive"
    LITERAL_ENTRY = "literal_entry"
    REGEX_ENTRY = "regex_entry"
    NAVIGATING = "navigating"


@dataclass(frozen=True, order=True)
class Match:
    """Location of one match inside a line"""
    source_id: int
    line_number: int
    start: int
    end: int


@dataclass(frozen=True)
class MatchHit:
    """Result of a next/previous step"""
    match: Match
    index: int
    total: int
    wrapped: bool = False


@dataclass
class SearchState:
    """Pattern, matcher and match set of the active search"""
    mode: SearchMode = SearchMode.INACTIVE
    pattern_text: str = ""
    is_regex: bool = False
    matcher: Optional[SpanFinder] = None
    matches: List[Match] = field(default_factory=list)
    current_index: Optional[int] = None


def literal_spans(pattern: str) -> SpanFinder:
    """Span finder for a case-sensitive substring"""
    width = len(pattern)

    def find(text: str) -> List[Span]:
        spans = []
        if not width:
            return spans
        start = text.find(pattern)
        while start != -1:
            spans.append((start, start + width))
            start = text.find(pattern, start + width)
        return spans

    return find


def regex_spans(pattern: str) -> SpanFinder:
    """
    Span finder for a regex

    Records every non-overlapping non-empty match. A line that only
    produces empty matches records the first one, so patterns such as
    "^$" still locate lines.

    Raises:
        InvalidRegexError: If the pattern does not compile
    """
    try:
        compiled = re.compile(pattern)
    except re.error as e:
        raise InvalidRegexError(pattern, str(e))

    def find(text: str) -> List[Span]:
        spans = []
        first_empty = None
        for match in compiled.finditer(text):
            start, end = match.span()
            if start == end:
                if first_empty is None:
                    first_empty = (start, end)
                continue
            spans.append((start, end))
        if not spans and first_empty is not None:
            spans.append(first_empty)
        return spans

    return find


def _match_key(match: Match) -> Tuple[int, int]:
    return (match.source_id, match.line_number)


class SearchEngine:
    """
    Incremental search over line stores

    Single-threaded: called only from the consumer. Stores are only read.

    Attributes:
        state: SearchState holding pattern, matches and current index
    """

    def __init__(self):
        self.state = SearchState()
        # source_id -> (store generation, next line to scan)
        self._scanned: Dict[int, Tuple[int, int]] = {}

    # Pattern management

    @property
    def active(self) -> bool:
        """True when a pattern is compiled"""
        return self.state.matcher is not None

    @property
    def matches(self) -> List[Match]:
        return self.state.matches

    def set_pattern(self, text: str, is_regex: bool) -> bool:
        """
        Compile and install a pattern

        Args:
            text: Pattern text
            is_regex: Regex (True) or literal substring (False)

        Returns:
            True if matches were discarded (pattern or kind changed),
            False if the same pattern was already installed

        Raises:
            InvalidRegexError: If a regex pattern does not compile
        """
        state = self.state
        if state.matcher is not None and state.pattern_text == text and state.is_regex == is_regex:
            return False

        matcher = regex_spans(text) if is_regex else literal_spans(text)
        self._discard_matches()
        state.pattern_text = text
        state.is_regex = is_regex
        state.matcher = matcher
        logger.debug(f"Search pattern set: {text!r} (regex={is_regex})")
        return True

    def clear(self) -> None:
        """Forget pattern and matches"""
        self.state = SearchState()
        self._scanned.clear()

    def retarget(self, stores: Iterable[LineStore]) -> int:
        """Drop all matches and scan the given stores from line 0"""
        self._discard_matches()
        if not self.active:
            return 0
        return self.refresh(stores)

    def _discard_matches(self) -> None:
        self.state.matches = []
        self.state.current_index = None
        self._scanned.clear()

    # Scanning

    def rescan(self, store: LineStore, from_line: int = 0) -> int:
        """
        Scan a store from a given line

        Matches of this store at or after from_line are replaced by the
        result of the scan.

        Returns:
            Number of matches added
        """
        if not self.active:
            return 0
        source_id = store.source_id
        from_line = max(0, from_line)
        self._remove_matches(source_id, from_line)
        return self._scan(store, from_line)

    def refresh(self, stores: Iterable[LineStore]) -> int:
        """
        Scan whatever each store gained since the last scan

        A store whose generation changed (reset) is rescanned from 0.

        Returns:
            Number of matches added
        """
        if not self.active:
            return 0
        added = 0
        for store in stores:
            generation, next_line = self._scanned.get(store.source_id, (store.generation, 0))
            if generation != store.generation:
                logger.debug(f"Source {store.source_id} was reset, matches are stale")
                added += self.rescan(store, 0)
            else:
                added += self._scan(store, next_line)
        return added

    def _scan(self, store: LineStore, from_line: int) -> int:
        generation = store.generation
        lines = store.slice(from_line)
        found: List[Match] = []
        matcher = self.state.matcher
        for line in lines:
            for start, end in matcher(line.text):
                found.append(Match(store.source_id, line.line_number, start, end))
        self._scanned[store.source_id] = (generation, from_line + len(lines))
        if found:
            self._insert_block(store.source_id, found)
        return len(found)

    def _insert_block(self, source_id: int, block: List[Match]) -> None:
        matches = self.state.matches
        at = bisect_right(matches, (source_id, block[0].line_number), key=_match_key)
        matches[at:at] = block
        current = self.state.current_index
        if current is not None and at <= current:
            self.state.current_index = current + len(block)

    def _remove_matches(self, source_id: int, from_line: int) -> None:
        matches = self.state.matches
        lo = bisect_left(matches, (source_id, from_line), key=_match_key)
        hi = bisect_left(matches, (source_id + 1, 0), key=_match_key)
        if lo == hi:
            return
        del matches[lo:hi]
        current = self.state.current_index
        if current is None:
            return
        if not matches:
            self.state.current_index = None
        elif current >= hi:
            self.state.current_index = current - (hi - lo)
        elif current >= lo:
            self.state.current_index = lo if lo < len(matches) else 0

    # Traversal

    def select(self, index: int) -> Optional[MatchHit]:
        """Make a match current"""
        matches = self.state.matches
        if not matches:
            self.state.current_index = None
            return None
        index = max(0, min(index, len(matches) - 1))
        self.state.current_index = index
        return MatchHit(matches[index], index, len(matches))

    def current(self) -> Optional[MatchHit]:
        index = self.state.current_index
        if index is None or not self.state.matches:
            return None
        return MatchHit(self.state.matches[index], index, len(self.state.matches))

    def next_match(self) -> Optional[MatchHit]:
        """Advance to the next match, wrapping from the last to the first"""
        matches = self.state.matches
        if not matches:
            return None
        current = self.state.current_index
        if current is None:
            index, wrapped = 0, False
        else:
            index = current + 1
            wrapped = index >= len(matches)
            if wrapped:
                index = 0
        self.state.current_index = index
        return MatchHit(matches[index], index, len(matches), wrapped)

    def prev_match(self) -> Optional[MatchHit]:
        """Step back to the previous match, wrapping from the first to the last"""
        matches = self.state.matches
        if not matches:
            return None
        current = self.state.current_index
        if current is None:
            index, wrapped = len(matches) - 1, False
        else:
            index = current - 1
            wrapped = index < 0
            if wrapped:
                index = len(matches) - 1
        self.state.current_index = index
        return MatchHit(matches[index], index, len(matches), wrapped)

    def first_at_or_after(self, source_id: int, line_number: int) -> Optional[int]:
        """Index of the first match at or after a line of one source"""
        matches = self.state.matches
        index = bisect_left(matches, (source_id, line_number), key=_match_key)
        if index < len(matches) and matches[index].source_id == source_id:
            return index
        return None

    def spans_for(self, source_id: int, line_number: int) -> List[Span]:
        """Match spans on one line, for highlighting"""
        matches = self.state.matches
        lo = bisect_left(matches, (source_id, line_number), key=_match_key)
        hi = bisect_right(matches, (source_id, line_number), key=_match_key)
        return [(m.start, m.end) for m in matches[lo:hi]]
