"""
Viewport Controller Module - Navigation and search state machine

Handles:
- Scroll offset, page height and cursor of the visible page
- Mode transitions (browsing, search entry, match navigation, goto entry)
- Search pattern entry and match traversal through the SearchEngine
- Source switching with remembered positions
- Reactions to producer notifications (new content, end, failure, reset)
- Page snapshots for the renderer

All state lives in one PagerState owned by the controller; the consumer
thread is the only caller. Positions are indices into the sequence of
the current selection (a source, or the merged view).
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple, Union

from lesser.errors import PatternError
from lesser.ingest.events import KeyPressed
from lesser.search.engine import Match, MatchHit, SearchEngine, SearchMode, Span
from lesser.sources.multiplexer import SourceMultiplexer
from lesser.store.line_store import Line

logger = logging.getLogger(__name__)

DIGITS = "0123456789"


class Mode(Enum):
    """Controller modes"""
    BROWSING = "browsing"
    SEARCH_ENTRY = "search_entry"
    SEARCH_NAVIGATING = "search_navigating"
    GOTO_ENTRY = "goto_entry"


@dataclass
class Viewport:
    """Visible window over the current sequence"""
    active_source: Union[int, str] = 0
    top_line_number: int = 0
    page_height: int = 24
    cursor_line_number: int = 0

    def max_top(self, length: int) -> int:
        return max(0, length - self.page_height)

    def settle(self, length: int, follow_cursor: bool = False) -> None:
        """
        Restore top <= cursor < top + page_height within [0, length)

        Args:
            length: Current sequence length
            follow_cursor: Move the page to the cursor (True) or the
                cursor into the page (False)
        """
        if length <= 0:
            self.top_line_number = 0
            self.cursor_line_number = 0
            return
        cursor = min(max(self.cursor_line_number, 0), length - 1)
        top = self.top_line_number
        if follow_cursor:
            if cursor < top:
                top = cursor
            elif cursor >= top + self.page_height:
                top = cursor - self.page_height + 1
            top = min(max(top, 0), self.max_top(length))
        else:
            top = min(max(top, 0), self.max_top(length))
            cursor = min(max(cursor, top), min(top + self.page_height - 1, length - 1))
        self.top_line_number = top
        self.cursor_line_number = cursor


@dataclass
class PagerState:
    """Everything the consumer mutates"""
    viewport: Viewport
    mode: Mode = Mode.BROWSING
    entry_text: str = ""
    entry_is_regex: bool = False
    status: str = ""
    highlight_cursor: bool = False
    quit_requested: bool = False
    # selection key -> (top, cursor)
    remembered: Dict[Union[int, str], Tuple[int, int]] = field(default_factory=dict)


@dataclass
class PageLine:
    """One line of a rendered page"""
    line: Line
    spans: List[Span] = field(default_factory=list)
    current_span: Optional[Span] = None
    is_cursor: bool = False
    source_name: Optional[str] = None


@dataclass
class PageSnapshot:
    """What the renderer needs for one frame"""
    lines: List[PageLine]
    mode: Mode
    title: str
    top: int
    cursor: int
    length: int
    page_height: int
    prompt: Optional[str] = None
    status: str = ""
    source_status: str = ""
    highlight_cursor: bool = False


class ViewportController:
    """
    Translates key presses and content notifications into viewport moves

    Example:
        >>> controller = ViewportController(multiplexer, page_height=40)
        >>> controller.handle_key(KeyPressed.parse("/"))
        >>> controller.handle_key(KeyPressed.parse("e"))
        >>> controller.handle_key(KeyPressed.parse("enter"))
        >>> controller.snapshot().status
        'Match 1/3 on line 12'
    """

    def __init__(self, multiplexer: SourceMultiplexer, search: Optional[SearchEngine] = None,
                 page_height: int = 24, match_context: int = 10):
        self.multiplexer = multiplexer
        self.search = search or SearchEngine()
        self.match_context = match_context
        self.state = PagerState(
            viewport=Viewport(active_source=multiplexer.active_key, page_height=max(1, page_height))
        )
        self._key_handlers: Dict[Mode, Callable[[KeyPressed], None]] = {
            Mode.BROWSING: self._browsing_key,
            Mode.SEARCH_ENTRY: self._search_entry_key,
            Mode.SEARCH_NAVIGATING: self._search_navigating_key,
            Mode.GOTO_ENTRY: self._goto_entry_key,
        }

    @property
    def mode(self) -> Mode:
        return self.state.mode

    @property
    def viewport(self) -> Viewport:
        return self.state.viewport

    @property
    def quit_requested(self) -> bool:
        return self.state.quit_requested

    def _length(self) -> int:
        return self.multiplexer.view().length()

    # Key dispatch

    def handle_key(self, press: KeyPressed) -> None:
        """Apply one key press in the current mode"""
        self._key_handlers[self.state.mode](press)

    def _browsing_key(self, press: KeyPressed) -> None:
        key = press.key
        char = press.character if press.printable else None
        page = self.viewport.page_height

        if key == "escape" or char in ("q", "Q"):
            self.request_quit()
        elif key == "up":
            self.scroll(-1)
        elif key == "down":
            self.scroll(1)
        elif key == "pageup" or char in ("u", "U"):
            self.scroll(-page)
        elif key == "pagedown" or char in ("d", "D", " "):
            self.scroll(page)
        elif key in ("enter", "end") or char == "G":
            self.jump_to_end()
        elif key == "home":
            self.jump_to_start()
        elif char == "/":
            self._begin_search(is_regex=False)
        elif char in ("r", "R"):
            self._begin_search(is_regex=True)
        elif char == "g":
            self.state.mode = Mode.GOTO_ENTRY
            self.state.entry_text = ""
            self.state.status = ""
        elif char in ("s", "S"):
            self.switch_source()
        elif char in ("m", "M"):
            self.toggle_merged()

    def _search_entry_key(self, press: KeyPressed) -> None:
        state = self.state
        if press.key == "enter":
            self._confirm_search()
        elif press.key == "backspace":
            if state.entry_text:
                state.entry_text = state.entry_text[:-1]
                state.status = ""
            else:
                self._cancel_search()
        elif press.printable:
            state.entry_text += press.character
            state.status = ""
        else:
            self._cancel_search()

    def _search_navigating_key(self, press: KeyPressed) -> None:
        key = press.key
        char = press.character if press.printable else None

        if key in ("down", "right", "enter") or char == "n":
            self._show_hit(self.search.next_match())
        elif key in ("up", "left") or char == "p":
            self._show_hit(self.search.prev_match())
        elif key == "escape" or char in ("q", "Q"):
            # Matches stay for re-entry; only highlighting stops
            self.state.mode = Mode.BROWSING
            self.search.state.mode = SearchMode.INACTIVE
            self.state.highlight_cursor = False
            self.state.status = ""

    def _goto_entry_key(self, press: KeyPressed) -> None:
        state = self.state
        key = press.key
        char = press.character if press.printable else None

        if char is not None and char in DIGITS:
            state.entry_text += char
        elif char == "g" and not state.entry_text:
            state.mode = Mode.BROWSING
            self.jump_to_start()
        elif key == "enter":
            text = state.entry_text
            state.mode = Mode.BROWSING
            state.entry_text = ""
            if text:
                self.goto_line(int(text))
        elif key == "backspace":
            if state.entry_text:
                state.entry_text = state.entry_text[:-1]
            else:
                state.mode = Mode.BROWSING
        elif key == "escape":
            state.mode = Mode.BROWSING
            state.entry_text = ""

    # Navigation

    def request_quit(self) -> None:
        self.state.quit_requested = True

    def scroll(self, delta: int) -> None:
        """Move page and cursor by delta lines"""
        viewport = self.viewport
        viewport.top_line_number += delta
        viewport.cursor_line_number += delta
        viewport.settle(self._length())
        self.state.highlight_cursor = False

    def jump_to_start(self) -> None:
        viewport = self.viewport
        viewport.top_line_number = 0
        viewport.cursor_line_number = 0
        viewport.settle(self._length())
        self.state.highlight_cursor = False

    def jump_to_end(self) -> None:
        """Show the last page as of now; later appends do not scroll"""
        length = self._length()
        viewport = self.viewport
        viewport.cursor_line_number = length - 1
        viewport.top_line_number = viewport.max_top(length)
        viewport.settle(length, follow_cursor=True)
        self.state.highlight_cursor = False

    def goto_line(self, line_number: int) -> None:
        """
        Jump to a 1-based line number as shown to the user

        0 means the first line; numbers past the end clamp to the last line.
        """
        length = self._length()
        if length == 0:
            return
        position = min(max(line_number - 1, 0), length - 1)
        self.reveal(position)
        self.state.highlight_cursor = True
        self.state.status = f"Line {position + 1}"

    def reveal(self, position: int) -> None:
        """Put the cursor on a position, scrolling only if it is off-page"""
        viewport = self.viewport
        length = self._length()
        viewport.cursor_line_number = position
        top = viewport.top_line_number
        if not (top <= position < top + viewport.page_height):
            context = min(self.match_context, viewport.page_height - 1)
            viewport.top_line_number = max(0, position - context)
        viewport.settle(length, follow_cursor=True)

    def resize(self, page_height: int) -> None:
        self.viewport.page_height = max(1, page_height)
        self.viewport.settle(self._length(), follow_cursor=True)

    # Sources

    def _switch_to(self, key: Union[int, str]) -> None:
        viewport = self.viewport
        top, cursor = self.state.remembered.get(key, (0, 0))
        viewport.active_source = key
        viewport.top_line_number = top
        viewport.cursor_line_number = cursor
        viewport.settle(self._length())
        self.state.highlight_cursor = False
        if self.search.active:
            self.search.retarget(self.multiplexer.stores_in_scope())

    def _remember_position(self) -> None:
        viewport = self.viewport
        self.state.remembered[viewport.active_source] = (
            viewport.top_line_number, viewport.cursor_line_number
        )

    def switch_source(self) -> None:
        """Rotate to the next source, restoring where it was left"""
        self._remember_position()
        self._switch_to(self.multiplexer.switch_next())
        self.state.status = f"Switched to source: {self.multiplexer.active().display_name}"

    def toggle_merged(self) -> None:
        self._remember_position()
        self._switch_to(self.multiplexer.toggle_merged())
        if self.multiplexer.merged:
            self.state.status = f"Merged view of {len(self.multiplexer)} sources"
        else:
            self.state.status = f"Switched to source: {self.multiplexer.active().display_name}"

    # Search

    def _begin_search(self, is_regex: bool) -> None:
        self.state.mode = Mode.SEARCH_ENTRY
        self.state.entry_text = ""
        self.state.entry_is_regex = is_regex
        self.state.status = ""
        self.search.state.mode = SearchMode.REGEX_ENTRY if is_regex else SearchMode.LITERAL_ENTRY

    def _cancel_search(self) -> None:
        self.search.clear()
        self.state.mode = Mode.BROWSING
        self.state.entry_text = ""
        self.state.status = ""
        self.state.highlight_cursor = False

    def _confirm_search(self) -> None:
        state = self.state
        text = state.entry_text or self.search.state.pattern_text
        if not text:
            self._cancel_search()
            return

        try:
            self.search.set_pattern(text, state.entry_is_regex)
        except PatternError as e:
            logger.debug(f"Rejected pattern: {e}")
            state.status = str(e)
            return

        self.search.refresh(self.multiplexer.stores_in_scope())
        state.mode = Mode.SEARCH_NAVIGATING
        state.entry_text = ""
        self.search.state.mode = SearchMode.NAVIGATING

        index = self._first_match_from_cursor()
        if index is None:
            state.status = f"Pattern not found: {text}"
            return
        self._show_hit(self.search.select(index))

    def _position_of_match(self, match: Match) -> Optional[int]:
        line = self.multiplexer.get(match.source_id).store.peek(match.line_number)
        if line is None:
            return None
        return self.multiplexer.view().position_of(line)

    def _first_match_from_cursor(self) -> Optional[int]:
        """Index of the first match at or after the cursor, else 0"""
        matches = self.search.matches
        if not matches:
            return None
        cursor = self.viewport.cursor_line_number
        if not self.multiplexer.merged:
            index = self.search.first_at_or_after(self.multiplexer.active().source_id, cursor)
            return 0 if index is None else index

        best: Optional[Tuple[int, int]] = None
        for index, match in enumerate(matches):
            position = self._position_of_match(match)
            if position is not None and position >= cursor and (best is None or position < best[0]):
                best = (position, index)
        return 0 if best is None else best[1]

    def _show_hit(self, hit: Optional[MatchHit]) -> None:
        if hit is None:
            self.state.status = f"No matches for {self.search.state.pattern_text}"
            return
        position = self._position_of_match(hit.match)
        if position is not None:
            self.reveal(position)
            self.state.highlight_cursor = True
        status = f"Match {hit.index + 1}/{hit.total} on line {hit.match.line_number + 1}"
        if self.multiplexer.merged:
            status += f" of {self.multiplexer.get(hit.match.source_id).display_name}"
        if hit.wrapped:
            status += " (search wrapped)"
        self.state.status = status

    # Producer notifications

    def on_content(self, source_id: int) -> None:
        """New lines in a source: extend the match set incrementally"""
        if self.search.active:
            self.search.refresh(self.multiplexer.stores_in_scope())
        self.viewport.settle(self._length())

    def on_source_reset(self, source_id: int) -> None:
        """A watched file was truncated or replaced"""
        source = self.multiplexer.get(source_id)
        self.state.remembered.pop(source_id, None)
        if self.search.active:
            self.search.refresh(self.multiplexer.stores_in_scope())
        self.viewport.settle(self._length())
        if source.store in self.multiplexer.stores_in_scope():
            self.state.status = f"{source.display_name} was truncated, reloading"

    def on_source_failed(self, source_id: int, message: str) -> None:
        source = self.multiplexer.get(source_id)
        self.state.status = f"{source.display_name}: {message}"

    def on_source_ended(self, source_id: int) -> None:
        self.viewport.settle(self._length())

    # Rendering

    def _prompt(self) -> Optional[str]:
        state = self.state
        if state.mode is Mode.SEARCH_ENTRY:
            label = "Regex" if state.entry_is_regex else "Search"
            return f"{label}: {state.entry_text}"
        if state.mode is Mode.GOTO_ENTRY:
            return f"Go to line: {state.entry_text}"
        return None

    def snapshot(self) -> PageSnapshot:
        """Lines of the current page with highlight metadata"""
        view = self.multiplexer.view()
        viewport = self.viewport
        length = view.length()
        viewport.settle(length)

        merged = self.multiplexer.merged
        highlighting = self.state.mode is Mode.SEARCH_NAVIGATING
        current = self.search.current() if highlighting else None

        page: List[PageLine] = []
        for offset, line in enumerate(view.window(viewport.top_line_number, viewport.page_height)):
            page_line = PageLine(
                line=line,
                is_cursor=viewport.top_line_number + offset == viewport.cursor_line_number,
                source_name=self.multiplexer.get(line.source_id).display_name if merged else None,
            )
            if highlighting:
                page_line.spans = self.search.spans_for(line.source_id, line.line_number)
                if (current is not None and current.match.source_id == line.source_id
                        and current.match.line_number == line.line_number):
                    page_line.current_span = (current.match.start, current.match.end)
            page.append(page_line)

        if merged:
            source_status = f"merged ({len(self.multiplexer)} sources)"
        else:
            source_status = self.multiplexer.active().status_text()

        return PageSnapshot(
            lines=page,
            mode=self.state.mode,
            title=view.label,
            top=viewport.top_line_number,
            cursor=viewport.cursor_line_number,
            length=length,
            page_height=viewport.page_height,
            prompt=self._prompt(),
            status=self.state.status,
            source_status=source_status,
            highlight_cursor=self.state.highlight_cursor,
        )
