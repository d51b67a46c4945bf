"""Tests for per-agent lock ordering."""

import threading

from casino_ledger.core.locks import AgentLockManager


class TestAgentLockManager:
    def test_same_key_same_lock(self):
        locks = AgentLockManager()
        assert locks.lock_for("a") is locks.lock_for("a")
        assert locks.lock_for("a") is not locks.lock_for("b")
        assert len(locks) == 2

    def test_hold_is_reentrant_and_deduplicates(self):
        locks = AgentLockManager()
        with locks.hold("a", "a", "b"):
            with locks.hold("a"):
                pass

    def test_opposite_order_does_not_deadlock(self):
        locks = AgentLockManager()
        done = []

        def worker(first, second):
            for _ in range(200):
                with locks.hold(first, second):
                    pass
            done.append(first)

        threads = [
            threading.Thread(target=worker, args=("a", "b")),
            threading.Thread(target=worker, args=("b", "a")),
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)
        assert sorted(done) == ["a", "b"]
