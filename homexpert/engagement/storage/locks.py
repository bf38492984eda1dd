"""Per-key mutexes for short critical sections.

Each logical operation (lock a profile, accept a request, create a contract)
runs while holding the mutex for its key, so the read-modify-write against
storage happens as one unit within this process. Storage compare-and-set
still guards against writers in other processes.

Waits are bounded: a caller that cannot enter within ``timeout`` seconds
gets ConcurrencyTimeoutError instead of blocking forever.
"""

import contextlib
import logging
import threading
from typing import Dict, Iterator

from homexpert.engagement.errors import ConcurrencyTimeoutError

logger = logging.getLogger(__name__)


class _Entry:
    __slots__ = ("lock", "refs")

    def __init__(self):
        self.lock = threading.RLock()
        self.refs = 0


class KeyedLocks:
    """Re-entrant locks created on demand and dropped once unused."""

    def __init__(self, timeout: float = 5.0):
        self.timeout = timeout
        self._entries: Dict[str, _Entry] = {}
        self._guard = threading.Lock()

    @contextlib.contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = self._entries[key] = _Entry()
            entry.refs += 1

        acquired = entry.lock.acquire(timeout=self.timeout)
        try:
            if not acquired:
                logger.warning(f"Timed out after {self.timeout}s waiting for {key}")
                raise ConcurrencyTimeoutError(
                    "The record is busy with another update, please retry shortly"
                )
            yield
        finally:
            if acquired:
                entry.lock.release()
            with self._guard:
                entry.refs -= 1
                if entry.refs == 0:
                    self._entries.pop(key, None)

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)
