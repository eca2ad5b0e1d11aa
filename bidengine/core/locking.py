"""
Keyed mutual exclusion for bid placement.

One lock per key ("sale:12", "user:bob@example.com"), created on first use
and dropped again once nobody holds or waits on it, so the registry only
ever contains keys that are in flight. Keys are always acquired in the
order given and released in reverse, so callers that agree on an order
(sale before user) cannot deadlock.
"""

import threading
import time
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional

from bidengine.core.errors import LockTimeout
from bidengine.utils.logger import get_logger

logger = get_logger("locking")


def sale_key(sale_id: int) -> str:
    return f"sale:{sale_id}"


def user_key(identity: str) -> str:
    return f"user:{identity}"


class KeyedLockManager:
    """Registry of named locks with deadline-bounded acquisition."""

    def __init__(self):
        self._locks: Dict[str, threading.Lock] = {}
        self._users: Dict[str, int] = {}  # holders + waiters per key
        self._registry_lock = threading.Lock()

    def _checkout(self, key: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
                self._users[key] = 0
            self._users[key] += 1
            return lock

    def _checkin(self, key: str) -> None:
        with self._registry_lock:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]

    def is_locked(self, key: str) -> bool:
        with self._registry_lock:
            lock = self._locks.get(key)
        return lock is not None and lock.locked()

    @contextmanager
    def hold(self, *keys: str, timeout: Optional[float] = None) -> Iterator[None]:
        """
        Hold every lock in ``keys`` for the duration of the block.

        Args:
            keys: Lock names, acquired left to right
            timeout: Overall deadline in seconds, None waits forever

        Raises:
            LockTimeout: if the deadline passes before all locks are held
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        checked_out: List[str] = []
        held: List[threading.Lock] = []

        try:
            for key in keys:
                lock = self._checkout(key)
                checked_out.append(key)
                if deadline is None:
                    lock.acquire()
                else:
                    remaining = max(0.0, deadline - time.monotonic())
                    if not lock.acquire(timeout=remaining):
                        logger.warning(f"Lock timeout on {key} after {timeout:.2f}s")
                        raise LockTimeout(key, timeout)
                held.append(lock)

            yield
        finally:
            for lock in reversed(held):
                lock.release()
            for key in reversed(checked_out):
                self._checkin(key)

    def __len__(self) -> int:
        with self._registry_lock:
            return len(self._locks)
