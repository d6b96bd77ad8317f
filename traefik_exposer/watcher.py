"""
Container Event Watcher

Consumes the runtime's lifecycle event stream and marks the discovery cache
stale for every accepted event. Runs in its own thread for the lifetime of the
process and stops when asked to or when the runtime closes the stream; it
never reconnects.
"""

import logging
import threading
from typing import Iterable, Iterator, Optional

from .errors import EventStreamError
from .models import ContainerEvent

DEFAULT_EVENT_KINDS = ('create', 'start', 'update', 'die', 'destroy')


class EventWatcher:
    """Turns container lifecycle events into cache invalidation signals"""

    def __init__(self, runtime, cache, logger: logging.Logger, kinds: Iterable[str] = DEFAULT_EVENT_KINDS):
        self.runtime = runtime
        self.cache = cache
        self.logger = logger
        self.kinds = frozenset(kinds)
        self.events_received = 0
        self.events_accepted = 0
        self.errors = 0
        self._stop_requested = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def stopped_by_request(self) -> bool:
        return self._stop_requested.is_set()

    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def subscribe(self, kinds: Optional[Iterable[str]] = None) -> Iterator[ContainerEvent]:
        """Yield accepted container events in the order the runtime reports them.

        Each accepted event marks the cache stale before it is yielded.
        Malformed payloads are logged and skipped. The iterator ends when the
        underlying stream closes or ``stop()`` is called.
        """
        accepted = frozenset(kinds) if kinds is not None else self.kinds
        if self._stop_requested.is_set():
            return

        for payload in self.runtime.events():
            if self._stop_requested.is_set():
                break
            self.events_received += 1

            try:
                event = ContainerEvent.from_payload(payload)
            except EventStreamError as e:
                self.errors += 1
                self.logger.error(f"Error receiving event: {e}")
                continue

            if event.event_type != 'container' or event.kind not in accepted:
                continue

            self.events_accepted += 1
            if self.logger.isEnabledFor(logging.DEBUG):
                self.logger.debug(f"Container event: {event.kind} for {event.container_name or event.container_id[:12]}")
            self.cache.mark_stale()
            yield event

    def run(self):
        """Drain the subscription until the stream ends"""
        self.logger.info(f"Watching container events: {', '.join(sorted(self.kinds))}")
        for _ in self.subscribe():
            pass

        if self._stop_requested.is_set():
            self.logger.info("Event watcher stopped")
        else:
            self.logger.error("Container event stream closed by the runtime")

    def start(self) -> threading.Thread:
        """Run the watcher in a background thread"""
        self._thread = threading.Thread(target=self.run, daemon=True, name="EventWatcher")
        self._thread.start()
        return self._thread

    def stop(self):
        """Stop consuming events and release the subscription"""
        self._stop_requested.set()
        self.runtime.close_events()

    def join(self, timeout: Optional[float] = None):
        if self._thread is not None:
            self._thread.join(timeout)
