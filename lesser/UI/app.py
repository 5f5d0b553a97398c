"""
lesser Main Application - Terminal pager UI using Textual

Textual's message queue is the consumer's single wait point: key presses
arrive as Key events and producer notifications are posted from reader
threads as SourceActivity messages. Both end up in PagerSession.dispatch,
the same entry point PagerSession.run_headless uses without a terminal.
"""
import logging

from textual import events
from textual.app import App, ComposeResult
from textual.css.query import NoMatches
from textual.message import Message

from lesser.ingest.events import KeyPressed, PagerEvent, QuitRequested, Resized
from lesser.session import PagerSession
from lesser.UI.views.pager_view import PagerView, StatusBar

logger = logging.getLogger(__name__)

STATUS_BAR_HEIGHT = 1


class SourceActivity(Message):
    """A producer notification, posted from a reader thread"""

    def __init__(self, event: PagerEvent):
        super().__init__()
        self.event = event


class PagerApp(App):
    """lesser - interactive terminal pager"""

    TITLE = "lesser"
    CSS_PATH = "lesser.tcss"

    def __init__(self, session: PagerSession, **kwargs):
        super().__init__(**kwargs)
        self.session = session

    def compose(self) -> ComposeResult:
        """Compose the main UI layout"""
        yield PagerView(id="pager-view")
        yield StatusBar(id="status-bar")

    def on_mount(self) -> None:
        """Size the page and start the producers"""
        logger.info(f"Pager started with {len(self.session.multiplexer)} source(s)")
        self.session.dispatch(Resized(self._page_height(self.size.height)))
        coordinator = self.session.coordinator
        if coordinator is not None:
            coordinator.publish = self.publish
            coordinator.start()
        self.refresh_page()

    def on_unmount(self) -> None:
        self.stop_producers()

    def stop_producers(self) -> None:
        if self.session.coordinator is not None:
            self.session.coordinator.stop()

    def publish(self, event: PagerEvent) -> None:
        """Thread-safe entry point for producer notifications"""
        self.post_message(SourceActivity(event))

    @staticmethod
    def _page_height(screen_height: int) -> int:
        return max(1, screen_height - STATUS_BAR_HEIGHT)

    def on_source_activity(self, message: SourceActivity) -> None:
        if self.session.dispatch(message.event):
            self.refresh_page()

    def on_key(self, event: events.Key) -> None:
        press = KeyPressed(event.key, event.character if event.is_printable else None)
        event.stop()
        event.prevent_default()
        self.session.dispatch(press)
        if self.session.finished:
            self.stop_producers()
            self.exit(0)
            return
        self.refresh_page()

    async def action_quit(self) -> None:
        """Textual's own quit binding ends the session like the q key"""
        self.session.dispatch(QuitRequested())
        self.stop_producers()
        self.exit(0)

    def on_resize(self, event: events.Resize) -> None:
        self.session.dispatch(Resized(self._page_height(event.size.height)))
        self.refresh_page()

    def refresh_page(self) -> None:
        """Redraw page and status bar from a fresh snapshot"""
        try:
            pager_view = self.query_one("#pager-view", PagerView)
            status_bar = self.query_one("#status-bar", StatusBar)
        except NoMatches:
            # Resize can arrive before compose
            return
        snapshot = self.session.controller.snapshot()
        pager_view.show(snapshot)
        status_bar.show(snapshot)


def run_app(session: PagerSession) -> int:
    """
    Run the pager until the user quits

    Returns:
        Process exit code
    """
    app = PagerApp(session)
    try:
        result = app.run()
    finally:
        app.stop_producers()
    return 0 if result is None else result
