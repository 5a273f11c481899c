from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Iterator


class KeyedLocks:
    """One lock per key, created on first use and kept for the ledger's life.

    Operations on the same key serialize; different keys never contend beyond
    the short registry lookup.
    """

    def __init__(self) -> None:
        self._locks: Dict[str, threading.Lock] = {}
        self._registry = threading.Lock()

    def _get(self, key: str) -> threading.Lock:
        with self._registry:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        lock = self._get(key)
        with lock:
            yield

    def __len__(self) -> int:
        with self._registry:
            return len(self._locks)
