"""Per-key mutual exclusion for pipeline stages.

Two requests for the same source model (or the same toolchain) must not both
observe "not present" and run the expensive step twice.  :class:`KeyedLocks`
hands out one ``threading.Lock`` per key; requests for different keys never
block each other.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager


class KeyedLocks:
    """Lazily created lock per hashable key."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def lock_for(self, key: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        """Hold the lock for ``key`` for the duration of the block."""
        with self.lock_for(key):
            yield
