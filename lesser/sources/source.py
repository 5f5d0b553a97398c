"""
Source Module - One input of the pager

Handles:
- Pairing a display name and line store with the reader that fills it
- Reporting per-source status (reading, ended, failed)
"""
from dataclasses import dataclass
from typing import Optional, TYPE_CHECKING

from lesser.store.line_store import LineStore

if TYPE_CHECKING:
    from lesser.ingest.readers import LineReader


@dataclass
class Source:
    """An input stream and the lines read from it so far"""
    source_id: int
    display_name: str
    store: LineStore
    reader: Optional["LineReader"] = None
    watch_mode: bool = False

    @property
    def ended(self) -> bool:
        return self.store.ended

    @property
    def error(self) -> Optional[str]:
        return self.store.error

    def status_text(self) -> str:
        """Short status for the status bar"""
        if self.store.error:
            return f"{self.display_name}: {self.store.error}"
        if self.watch_mode:
            return f"{self.display_name} (watching)"
        if not self.store.ended:
            return f"{self.display_name} (reading)"
        return self.display_name
