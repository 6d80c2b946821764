"""
Per-driver ledger ownership.

Each driver gets exactly one ActivityLedger per process, guarded by its own
lock. Callers work on a ledger inside session(), which holds that lock, so
two requests for the same driver cannot interleave a start and a stop.

Ledgers are rebuilt from the store outside the registry-wide lock, so a slow
load for one driver does not hold up the others. Drivers that have been idle
longer than idle_timeout are evicted and rebuilt on their next request.
"""

import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, Optional

from .ledger_service import ActivityLedger

logger = logging.getLogger(__name__)

DEFAULT_IDLE_TIMEOUT = 3600.0  # seconds


@dataclass
class _LedgerEntry:
    ledger: ActivityLedger
    last_used: float
    lock: threading.Lock = field(default_factory=threading.Lock)


class LedgerRegistry:
    """
    Holds the authoritative ledger of every active driver.

    The optional store is used to rebuild a ledger the first time a driver
    is seen and is attached to it as a listener; it must provide
    load_ledger_state(driver_id) and listener_for(driver_id).
    """

    def __init__(
        self,
        store=None,
        idle_timeout: Optional[float] = DEFAULT_IDLE_TIMEOUT,
        clock: Callable[[], float] = time.monotonic
    ):
        self.store = store
        self.idle_timeout = idle_timeout
        self._clock = clock
        self._entries: Dict[str, _LedgerEntry] = {}
        self._lock = threading.Lock()

    def _entry(self, driver_id: str) -> _LedgerEntry:
        with self._lock:
            entry = self._entries.get(driver_id)
        if entry is not None:
            return entry

        ledger = self._build_ledger(driver_id)

        with self._lock:
            # Another request may have built this driver's ledger meanwhile
            entry = self._entries.get(driver_id)
            if entry is None:
                entry = _LedgerEntry(ledger=ledger, last_used=self._clock())
                self._entries[driver_id] = entry
                logger.info(f"Ledger created for driver {driver_id}")
        self.evict_idle()
        return entry

    def _build_ledger(self, driver_id: str) -> ActivityLedger:
        ledger = ActivityLedger(driver_id)
        if self.store is not None:
            open_activity, completed = self.store.load_ledger_state(driver_id)
            ledger.restore(open_activity, completed)
            ledger.add_listener(self.store.listener_for(driver_id))
        return ledger

    @contextmanager
    def session(self, driver_id: str) -> Iterator[ActivityLedger]:
        """Exclusive access to a driver's ledger."""
        while True:
            entry = self._entry(driver_id)
            entry.lock.acquire()
            with self._lock:
                current = self._entries.get(driver_id) is entry
            if current:
                break
            # Evicted between lookup and lock; use the replacement
            entry.lock.release()

        try:
            yield entry.ledger
        finally:
            entry.last_used = self._clock()
            entry.lock.release()

    def evict_idle(self) -> int:
        """
        Drop ledgers unused for longer than idle_timeout.

        Tracking ledgers and ledgers in an open session are kept. Returns the
        number of drivers evicted.
        """
        if self.idle_timeout is None:
            return 0

        cutoff = self._clock() - self.idle_timeout
        evicted = 0
        with self._lock:
            for driver_id, entry in list(self._entries.items()):
                if entry.last_used > cutoff:
                    continue
                if not entry.lock.acquire(blocking=False):
                    continue
                try:
                    if entry.ledger.is_tracking:
                        continue
                    del self._entries[driver_id]
                    evicted += 1
                finally:
                    entry.lock.release()

        if evicted:
            logger.info(f"Evicted {evicted} idle ledger(s)")
        return evicted

    def __contains__(self, driver_id: str) -> bool:
        with self._lock:
            return driver_id in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def discard(self, driver_id: str):
        """Forget a driver's ledger; the next session rebuilds it from the store."""
        with self._lock:
            self._entries.pop(driver_id, None)

    def clear(self):
        with self._lock:
            self._entries.clear()
