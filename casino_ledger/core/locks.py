"""Per-agent serialization boundaries.

Requests for the same agent must not interleave their read-check-write
sequences; requests for different agents never block each other. Operations
that touch two agents (tips) take both locks in sorted key order, so two
agents tipping each other at the same time cannot deadlock.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import ExitStack, contextmanager


class AgentLockManager:
    """Hands out one re-entrant lock per key (agent id or reserved name)."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.RLock] = {}

    def lock_for(self, key: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.RLock()
            return lock

    @contextmanager
    def hold(self, *keys: str) -> Iterator[None]:
        """Acquire the locks for ``keys`` in deterministic (sorted) order."""
        with ExitStack() as stack:
            for key in sorted(set(keys)):
                lock = self.lock_for(key)
                lock.acquire()
                stack.callback(lock.release)
            yield

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
