from __future__ import annotations

import logging
import threading
from typing import Dict, Optional

from capacity_ledger.domain.capacity import CapacityRecord
from capacity_ledger.store.resource_store import ResourceStore

logger = logging.getLogger(__name__)


class CapacityPoller:
    """
    Fixed-interval refresh of the assignment list.

    Each tick reloads assignments and, when the capacity map changed since
    the previous tick, notifies the store's subscribers with a "poll" event.
    """

    def __init__(self, store: ResourceStore, interval_seconds: Optional[float] = None):
        self.store = store
        self.interval_seconds = (
            interval_seconds if interval_seconds is not None else store.settings.refresh_interval_seconds
        )
        if self.interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._last: Optional[Dict[str, CapacityRecord]] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def tick(self) -> bool:
        """
        Refresh once. Returns True if subscribers were notified.
        """
        self.store.refresh("assignments")
        capacity = self.store.capacity()
        if capacity == self._last:
            return False
        self._last = capacity
        self.store.notify("poll", capacity)
        return True

    def _run(self) -> None:
        while not self._stop.is_set():
            try:
                self.tick()
            except Exception:
                logger.exception("Capacity refresh failed")
            self._stop.wait(self.interval_seconds)

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="capacity-poller", daemon=True)
        self._thread.start()
        logger.info("Capacity poller started (every %.1fs)", self.interval_seconds)

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("Capacity poller stopped")

    def __enter__(self) -> "CapacityPoller":
        self.start()
        return self

    def __exit__(self, *exc) -> None:
        self.stop()
