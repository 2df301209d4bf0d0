"""Per-key mutual exclusion used to serialise work on one cart, order or product."""

import threading
from collections.abc import Iterator
from contextlib import contextmanager

DEFAULT_TIMEOUT = 10.0


class KeyedLocks:
    """A lazily grown table of re-entrant locks, one per key.

    ``hold`` acquires several keys in sorted order, so two callers asking for
    overlapping key sets can never deadlock. Every acquire is bounded by
    ``timeout``; a caller that cannot get the lock in time gets ``TimeoutError``.
    """

    def __init__(self, name: str, timeout: float = DEFAULT_TIMEOUT):
        self.name = name
        self.timeout = timeout
        self._guard = threading.Lock()
        self._locks: dict[str, threading.RLock] = {}

    def _lock_for(self, key: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.RLock()
            return lock

    @contextmanager
    def hold(self, *keys: str) -> Iterator[None]:
        acquired = []
        try:
            for key in sorted({str(k) for k in keys}):
                lock = self._lock_for(key)
                if not lock.acquire(timeout=self.timeout):
                    raise TimeoutError(f"Timed out waiting for {self.name} lock on {key}")
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()
