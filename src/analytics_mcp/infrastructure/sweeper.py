from __future__ import annotations

import logging
import threading

from analytics_mcp.infrastructure.cache import CacheStore

logger = logging.getLogger(__name__)

DEFAULT_SWEEP_INTERVAL = 60.0  # seconds


class CacheSweeper:
    """Periodically drops expired entries from every registered store.

    Best effort only: reads already refuse expired entries, the sweeper just
    bounds memory held by keys that are written once and never read again.
    """

    def __init__(self, interval_s: float = DEFAULT_SWEEP_INTERVAL) -> None:
        if interval_s <= 0:
            raise ValueError(f"interval_s must be positive, got {interval_s}")
        self._interval_s = interval_s
        self._stores: list[CacheStore] = []
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    def register(self, store: CacheStore) -> None:
        if not any(s is store for s in self._stores):
            self._stores.append(store)

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def sweep(self) -> int:
        """Run one pass over all stores. Returns the number of entries removed."""
        removed = 0
        for store in list(self._stores):
            removed += store.evict_expired()
        if removed:
            logger.debug("Cache sweep removed %d expired entries", removed)
        return removed

    def start(self) -> None:
        """Start the background thread. Calling start() while running is a no-op."""
        if self.running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run, name="cache-sweeper", daemon=True
        )
        self._thread.start()
        logger.info("Cache sweeper started (interval %.1fs)", self._interval_s)

    def stop(self, timeout: float | None = 5.0) -> None:
        """Signal the thread to exit and wait for it."""
        thread = self._thread
        if thread is None:
            return
        self._stop_event.set()
        thread.join(timeout)
        self._thread = None
        logger.info("Cache sweeper stopped")

    def _run(self) -> None:
        # Event.wait returns True once stop() is called.
        while not self._stop_event.wait(self._interval_s):
            try:
                self.sweep()
            except Exception:
                logger.exception("Cache sweep failed")
