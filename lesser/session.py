"""
Pager Session Module - The consumer side of the pager

Handles:
- Routing events from the channel to the viewport controller
- Acknowledging content notifications before the stores are read
- A terminal-free event loop (run_headless) over an EventChannel, for
  scripted sessions and tests; the interactive consumer is PagerApp,
  which feeds the same dispatch() from Textual's message queue
"""
import logging
from typing import Callable, Optional

from lesser.ingest.coordinator import IngestionCoordinator
from lesser.ingest.events import (
    ContentAppended,
    EventChannel,
    KeyPressed,
    PagerEvent,
    QuitRequested,
    Resized,
    SourceEnded,
    SourceFailed,
    SourceWasReset,
)
from lesser.sources.multiplexer import SourceMultiplexer
from lesser.viewport.controller import PageSnapshot, ViewportController

logger = logging.getLogger(__name__)

Renderer = Callable[[PageSnapshot], None]


class PagerSession:
    """
    Ties the multiplexer, the producers and the controller together

    Attributes:
        multiplexer: Sources and the active selection
        coordinator: Producer threads (may be None for static content)
        controller: Viewport state machine
    """

    def __init__(self, multiplexer: SourceMultiplexer,
                 coordinator: Optional[IngestionCoordinator] = None,
                 controller: Optional[ViewportController] = None):
        self.multiplexer = multiplexer
        self.coordinator = coordinator
        self.controller = controller or ViewportController(multiplexer)

    @property
    def finished(self) -> bool:
        return self.controller.quit_requested

    def dispatch(self, event: PagerEvent) -> bool:
        """
        Apply one event

        Returns:
            True if the visible state may have changed and a redraw is due
        """
        controller = self.controller
        if isinstance(event, KeyPressed):
            controller.handle_key(event)
        elif isinstance(event, ContentAppended):
            if self.coordinator is not None:
                self.coordinator.acknowledge(event.source_id)
            controller.on_content(event.source_id)
        elif isinstance(event, SourceWasReset):
            controller.on_source_reset(event.source_id)
        elif isinstance(event, SourceFailed):
            logger.warning(f"Source {event.source_id} failed: {event.message}")
            controller.on_source_failed(event.source_id, event.message)
        elif isinstance(event, SourceEnded):
            controller.on_source_ended(event.source_id)
        elif isinstance(event, Resized):
            controller.resize(event.page_height)
        elif isinstance(event, QuitRequested):
            controller.request_quit()
        else:
            logger.debug(f"Ignoring unknown event {event!r}")
            return False
        return True

    def run_headless(self, channel: EventChannel, render: Renderer,
                     idle_timeout: Optional[float] = None) -> None:
        """
        Consume events without a terminal until quit is requested

        Args:
            channel: Queue shared by keyboard input and producers
            render: Called with a fresh snapshot after each batch of events
            idle_timeout: Stop after this many seconds without events
        """
        if self.coordinator is not None:
            if self.coordinator.publish is None:
                self.coordinator.publish = channel.publish
            self.coordinator.start()
        try:
            render(self.controller.snapshot())
            while not self.finished:
                event = channel.next_event(timeout=idle_timeout)
                if event is None:
                    break
                changed = self.dispatch(event)
                for pending in channel.drain():
                    changed = self.dispatch(pending) or changed
                    if self.finished:
                        break
                if changed and not self.finished:
                    render(self.controller.snapshot())
        finally:
            if self.coordinator is not None:
                self.coordinator.stop()
