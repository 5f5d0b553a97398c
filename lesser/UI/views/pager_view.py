"""
Pager View Module - Widgets drawing a page snapshot

Handles:
- Line rendering with match highlighting
- Cursor line and current match styling
- Source tags in the merged view
- One row per line: long lines are cropped, the current match kept in view
- Status bar with position, source state and prompts
"""
from typing import Optional

from rich.cells import cell_len
from rich.console import Console
from rich.style import Style
from rich.text import Text
from textual.strip import Strip
from textual.widget import Widget
from textual.widgets import Static

from lesser.viewport.controller import PageLine, PageSnapshot

MATCH_STYLE = "black on yellow"
CURRENT_MATCH_STYLE = "bold black on cyan"
CURSOR_STYLE = "on grey23"
SOURCE_TAG_STYLE = "bold magenta"

# Control characters would shift match offsets once the terminal drops them
_CONTROL_CHARS = {code: "?" for code in list(range(0x20)) + [0x7f] if code != 0x09}


def printable(text: str) -> str:
    """Replace control characters one-for-one so match offsets stay valid"""
    return text.translate(_CONTROL_CHARS)


def render_line(page_line: PageLine, highlight_cursor: bool = False) -> Text:
    """
    Render one line of the page

    Args:
        page_line: Line with its match spans
        highlight_cursor: Whether the cursor line gets the cursor style

    Returns:
        Styled rich Text
    """
    base_style = CURSOR_STYLE if page_line.is_cursor and highlight_cursor else ""
    body = Text(printable(page_line.line.text), style=base_style, no_wrap=True, overflow="crop")

    for start, end in page_line.spans:
        body.stylize(MATCH_STYLE, start, end)
    if page_line.current_span is not None:
        start, end = page_line.current_span
        body.stylize(CURRENT_MATCH_STYLE, start, end)

    if page_line.source_name is None:
        return body
    return Text.assemble((f"[{page_line.source_name}] ", SOURCE_TAG_STYLE), body)


def row_offset(row: Text, width: int) -> int:
    """
    Horizontal shift of a cropped row

    Zero unless the row holds the current match and that match ends past
    the right edge; then the row is shifted until the match is in view
    (its start at the left edge when it is wider than the row).
    """
    current = [span for span in row.spans if span.style == CURRENT_MATCH_STYLE]
    if not current or width <= 0:
        return 0
    start = cell_len(row.plain[:current[-1].start])
    end = cell_len(row.plain[:current[-1].end])
    if end <= width:
        return 0
    return min(start, end - width)


def render_row(page_line: PageLine, console: Console, width: int,
               highlight_cursor: bool = False) -> Strip:
    """
    Render one line as exactly one screen row

    Args:
        page_line: Line with its match spans
        console: Console used to turn the styled text into segments
        width: Row width in cells; longer lines are cropped
        highlight_cursor: Whether the cursor line gets the cursor style

    Returns:
        A Strip of exactly `width` cells
    """
    row = render_line(page_line, highlight_cursor)
    row.expand_tabs()
    strip = Strip(row.render(console), row.cell_len)
    fill = Style.parse(CURSOR_STYLE) if page_line.is_cursor and highlight_cursor else None
    offset = row_offset(row, width)
    return strip.crop_extend(offset, offset + width, fill)


def position_text(snapshot: PageSnapshot) -> str:
    if snapshot.length == 0:
        return "(empty)"
    last = min(snapshot.top + snapshot.page_height, snapshot.length)
    return f"lines {snapshot.top + 1}-{last}/{snapshot.length}"


def status_text(snapshot: PageSnapshot) -> Text:
    """Prompt while entering text, otherwise position and messages"""
    if snapshot.prompt is not None:
        return Text(snapshot.prompt, style="bold")

    status = Text.assemble(
        (snapshot.source_status, "bold"),
        " | ",
        position_text(snapshot),
    )
    if snapshot.status:
        status.append(" | ")
        status.append(snapshot.status, style="yellow")
    return status


class PagerView(Widget):
    """The page of lines, one stored line per row"""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.snapshot: Optional[PageSnapshot] = None

    def show(self, snapshot: PageSnapshot) -> None:
        self.snapshot = snapshot
        self.refresh()

    def render_line(self, y: int) -> Strip:
        width = self.size.width
        if self.snapshot is None or y >= len(self.snapshot.lines):
            return Strip.blank(width, self.rich_style)
        return render_row(self.snapshot.lines[y], self.app.console, width,
                          self.snapshot.highlight_cursor)


class StatusBar(Static):
    """One-line status and prompt area"""

    def show(self, snapshot: PageSnapshot) -> None:
        self.update(status_text(snapshot))
