"""
Ingestion Coordinator Module - Producer threads feeding the line stores

Handles:
- One daemon thread per source, appending to that source's store only
- Coalesced notifications (at most one pending ContentAppended per source)
- Wiring watched files to the watchdog observer
- Per-source failure isolation (a failing source is marked ended)
- Prompt, bounded shutdown
"""
import logging
import threading
from typing import Dict, List, Optional, Sequence, Set

from lesser.sources.source import Source
from lesser.store.line_store import LineStore, StoreChange

from .events import ContentAppended, Publisher, SourceEnded, SourceFailed, SourceWasReset
from .readers import SourceReset
from .watch import FileWatcher

logger = logging.getLogger(__name__)


class IngestionCoordinator:
    """
    Runs the producers and forwards their notifications to the consumer

    The consumer calls acknowledge(source_id) before reading a store in
    response to ContentAppended; appends after that point publish a new
    event, so nothing is missed and the channel holds at most one
    content event per source.

    Attributes:
        sources: Sources to read
        publish: Thread-safe callable delivering events to the consumer;
            must be set before start()
        stop_event: Set on shutdown; readers check it between lines
    """

    def __init__(self, sources: Sequence[Source], publish: Optional[Publisher] = None,
                 watcher: Optional[FileWatcher] = None):
        self.sources = list(sources)
        self.publish = publish
        self.watcher = watcher
        self.stop_event = threading.Event()

        self._threads: List[threading.Thread] = []
        self._pending: Set[int] = set()
        self._lock = threading.Lock()
        self._subscriptions: Dict[int, object] = {}
        self.is_running = False

    def start(self) -> None:
        """Subscribe to the stores and start one producer per source"""
        if self.is_running:
            return
        if self.publish is None:
            raise RuntimeError("No publisher set for producer notifications")

        self.stop_event.clear()
        for source in self.sources:
            self._subscriptions[source.source_id] = source.store.subscribe(self._on_store_change)
            reader = source.reader
            if reader is not None and reader.watch_mode:
                if self.watcher is None:
                    self.watcher = FileWatcher()
                self.watcher.watch_file(reader.path, lambda event_type, reader=reader: reader.wake())

        if self.watcher is not None:
            self.watcher.start()

        for source in self.sources:
            if source.reader is None:
                continue
            thread = threading.Thread(
                target=self._produce,
                args=(source,),
                name=f"reader-{source.source_id}",
                daemon=True,
            )
            self._threads.append(thread)
            thread.start()

        self.is_running = True
        logger.info(f"Started {len(self._threads)} reader thread(s)")

    def stop(self, timeout: float = 1.0) -> None:
        """
        Stop all producers

        Readers blocked on an idle pipe are not waited for beyond the
        timeout; they are daemon threads and their output is ignored.
        """
        if not self.is_running:
            return

        self.stop_event.set()
        for source in self.sources:
            if source.reader is not None and source.reader.watch_mode:
                source.reader.close()
        if self.watcher is not None:
            self.watcher.stop()
        for subscription in self._subscriptions.values():
            subscription.cancel()
        self._subscriptions.clear()

        for thread in self._threads:
            thread.join(timeout=timeout)
            if thread.is_alive():
                logger.debug(f"{thread.name} still blocked in a read, abandoning it")
        self._threads.clear()
        self.is_running = False
        logger.info("Reader threads stopped")

    def acknowledge(self, source_id: int) -> None:
        """Consumer has seen the latest content of a source"""
        with self._lock:
            self._pending.discard(source_id)

    def _on_store_change(self, store: LineStore, change: StoreChange) -> None:
        if self.stop_event.is_set():
            return
        if change is StoreChange.APPENDED:
            with self._lock:
                if store.source_id in self._pending:
                    return
                self._pending.add(store.source_id)
            self.publish(ContentAppended(store.source_id))
        elif change is StoreChange.RESET:
            self.publish(SourceWasReset(store.source_id))
        elif change is StoreChange.ENDED:
            if store.error:
                self.publish(SourceFailed(store.source_id, store.error))
            else:
                self.publish(SourceEnded(store.source_id))

    def _produce(self, source: Source) -> None:
        """Producer thread body"""
        reader = source.reader
        store = source.store
        logger.info(f"Reading {source.display_name}")
        try:
            for item in reader.lines(self.stop_event):
                if self.stop_event.is_set():
                    break
                if isinstance(item, SourceReset):
                    store.reset()
                else:
                    store.append(item)
        except Exception as e:
            logger.error(f"Error reading {source.display_name}: {e}", exc_info=True)
            store.mark_ended(error=f"read error: {e}")
        else:
            if not self.stop_event.is_set():
                store.mark_ended()
                logger.info(f"Finished reading {source.display_name} ({store.length()} lines)")
        finally:
            reader.close()
