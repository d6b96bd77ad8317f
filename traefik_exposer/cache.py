"""
Discovery Cache

Holds the last-known set of running containers and refreshes it from the
runtime only when it is empty or has been marked stale by the event watcher.

State machine::

    empty --refresh ok--> fresh --mark_stale--> stale --refresh ok--> fresh
      ^                                           |
      +---------------- refresh failed -----------+

A refresh always rebuilds the whole snapshot; there are no targeted updates,
so reordered or coalesced events cannot desynchronize the cache.
"""

import logging
import threading
from typing import Optional, Tuple

from .errors import RuntimeQueryError
from .models import ContainerSnapshot

STATE_EMPTY = 'empty'
STATE_FRESH = 'fresh'
STATE_STALE = 'stale'


class DiscoveryCache:
    """Lock-guarded cache of container snapshots shared by the watcher and the API server"""

    def __init__(self, runtime, logger: logging.Logger):
        self.runtime = runtime
        self.logger = logger
        self.refresh_count = 0
        self._snapshot: Optional[Tuple[ContainerSnapshot, ...]] = None
        # Event rather than a bool under the lock: setting it never waits for a refresh
        self._stale = threading.Event()
        self._refresh_lock = threading.Lock()

    @property
    def state(self) -> str:
        if self._snapshot is None:
            return STATE_EMPTY
        return STATE_STALE if self._stale.is_set() else STATE_FRESH

    @property
    def is_stale(self) -> bool:
        return self._stale.is_set()

    def mark_stale(self):
        """Flag the snapshot as outdated; the next read refreshes it"""
        self._stale.set()

    def invalidate(self):
        """Drop the cached snapshot"""
        with self._refresh_lock:
            self._snapshot = None

    def peek(self) -> Optional[Tuple[ContainerSnapshot, ...]]:
        """Current snapshot without triggering a refresh"""
        return self._snapshot

    def get_snapshot(self) -> Tuple[ContainerSnapshot, ...]:
        """Return the cached containers, refreshing first if stale or empty.

        Concurrent callers arriving during a refresh wait for it instead of
        starting their own, so at most one runtime query is ever in flight.

        Raises:
            RuntimeQueryError: the runtime could not be queried. The cache is
                left empty and stale so the next call retries.
        """
        with self._refresh_lock:
            if self._snapshot is not None and not self._stale.is_set():
                self.logger.debug("Responding from cache")
                return self._snapshot
            return self._refresh()

    def _refresh(self) -> Tuple[ContainerSnapshot, ...]:
        # Cleared before querying: an event landing mid-refresh sets it again
        self._stale.clear()
        try:
            containers = self.runtime.list_containers()
        except RuntimeQueryError as e:
            self._snapshot = None
            self._stale.set()
            self.logger.error(f"Cache refresh failed, discarding cached containers: {e}")
            raise

        self._snapshot = tuple(containers)
        self.refresh_count += 1
        self.logger.info(f"Cache refreshed: {len(self._snapshot)} running containers")
        return self._snapshot
