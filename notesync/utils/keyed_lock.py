"""Per-key mutual exclusion."""

import logging
import threading
from contextlib import contextmanager

log = logging.getLogger(__name__)


class KeyedLock:
    """Hands out one lock per key and forgets it once nobody holds or waits on it.

    Callers for the same key block until the current holder releases; callers
    for different keys never contend.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks = {}
        self._waiters = {}

    @contextmanager
    def hold(self, key):
        with self._guard:
            lock = self._locks.setdefault(key, threading.Lock())
            self._waiters[key] = self._waiters.get(key, 0) + 1

        if lock.locked():
            log.info(f"Waiting for in-flight work on {key}")
        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._guard:
                self._waiters[key] -= 1
                if self._waiters[key] == 0:
                    del self._waiters[key]
                    del self._locks[key]
