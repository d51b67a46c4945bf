"""
Transactional Store

LedgerDatabase wraps a DatabaseManager and hands out units of work: one
DuckDB transaction on a private cursor, committed or rolled back as a whole.

Events staged during a unit of work are written at commit time, under the
log's append lock, with strictly increasing ``created_at`` stamps. The log
therefore grows only at its tail and in commit order, which is what feed
readers cursoring on ``created_at`` rely on.
"""

from __future__ import annotations

import logging
import threading
import uuid
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

import duckdb

from casino_ledger.core.clock import Clock, SystemClock
from casino_ledger.core.errors import PersistenceError

from .connection import DatabaseManager

logger = logging.getLogger(__name__)

_TICK = timedelta(microseconds=1)


@dataclass
class StagedEvent:
    """An event waiting for its transaction to commit."""

    id: str
    agent_id: str
    type: str
    payload: str
    visibility: str
    target_agent_id: str | None = None
    created_at: datetime | None = None


class UnitOfWork:
    """One open transaction.

    Attributes:
        conn: Cursor bound to the transaction
        now: Clock reading taken when the transaction began; used for every
            ``updated_at`` written by this unit of work
    """

    def __init__(self, conn: duckdb.DuckDBPyConnection, now: datetime) -> None:
        self.conn = conn
        self.now = now
        self.staged_events: list[StagedEvent] = []
        self.committed_events: list[StagedEvent] = []
        self.deferred_error: BaseException | None = None

    def execute(self, sql: str, params: Sequence[Any] | None = None) -> duckdb.DuckDBPyConnection:
        return self.conn.execute(sql, params or [])

    def fetchone(self, sql: str, params: Sequence[Any] | None = None) -> tuple | None:
        return self.conn.execute(sql, params or []).fetchone()

    def fetchall(self, sql: str, params: Sequence[Any] | None = None) -> list[tuple]:
        return self.conn.execute(sql, params or []).fetchall()

    def stage_event(
        self,
        agent_id: str,
        event_type: str,
        payload: str,
        visibility: str = "public",
        target_agent_id: str | None = None,
    ) -> StagedEvent:
        event = StagedEvent(
            id=uuid.uuid4().hex,
            agent_id=agent_id,
            type=event_type,
            payload=payload,
            visibility=visibility,
            target_agent_id=target_agent_id,
        )
        self.staged_events.append(event)
        return event

    def fail_after_commit(self, error: BaseException) -> None:
        """Commit what was written so far (typically an audit event), then
        raise ``error`` from the transaction block."""
        self.deferred_error = error


class LedgerDatabase:
    """Explicit store object: opened at process start, closed at shutdown.

    Usage:
        db = LedgerDatabase.open("casino.db")
        with db.transaction() as uow:
            uow.execute("UPDATE balances SET ...")
        db.close()
    """

    def __init__(self, manager: DatabaseManager, clock: Clock | None = None) -> None:
        self.manager = manager
        self.clock: Clock = clock or SystemClock()
        self._append_lock = threading.Lock()
        row = manager.conn.execute("SELECT max(created_at) FROM events").fetchone()
        self._last_event_at: datetime | None = row[0] if row else None

    @classmethod
    def open(
        cls,
        db_path: str | Path = "casino.db",
        clock: Clock | None = None,
        migrations_dir: Path | None = None,
    ) -> "LedgerDatabase":
        """Open (and if needed initialize) a database."""
        manager = DatabaseManager(db_path, migrations_dir=migrations_dir)
        try:
            manager.setup()
        except Exception:
            manager.close()
            raise
        return cls(manager, clock=clock)

    def close(self) -> None:
        self.manager.close()

    def __enter__(self) -> "LedgerDatabase":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    @contextmanager
    def transaction(self) -> Iterator[UnitOfWork]:
        """Run a block as one all-or-nothing transaction.

        Any exception rolls back every write and every staged event. DuckDB
        failures are logged and re-raised as PersistenceError; business
        errors (CasinoError) propagate unchanged.
        """
        cursor = self.manager.cursor()
        try:
            cursor.begin()
            uow = UnitOfWork(cursor, self.clock.now())
            try:
                yield uow
                self._commit(uow)
            except duckdb.Error as e:
                self._rollback(cursor)
                logger.exception("Transaction failed, rolled back")
                raise PersistenceError(f"Storage failure: {e}") from e
            except BaseException:
                self._rollback(cursor)
                raise
        finally:
            cursor.close()

        if uow.deferred_error is not None:
            raise uow.deferred_error

    @contextmanager
    def reader(self) -> Iterator[duckdb.DuckDBPyConnection]:
        """A private cursor for read-only queries (snapshot of committed data)."""
        cursor = self.manager.cursor()
        try:
            yield cursor
        except duckdb.Error as e:
            logger.exception("Read query failed")
            raise PersistenceError(f"Storage failure: {e}") from e
        finally:
            cursor.close()

    def _commit(self, uow: UnitOfWork) -> None:
        with self._append_lock:
            last = self._last_event_at
            for event in uow.staged_events:
                stamp = self.clock.now()
                if last is not None and stamp <= last:
                    stamp = last + _TICK
                event.created_at = last = stamp

            if uow.staged_events:
                uow.conn.executemany(
                    """
                    INSERT INTO events (
                        id, agent_id, target_agent_id, type, payload, visibility, created_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    [
                        (
                            e.id,
                            e.agent_id,
                            e.target_agent_id,
                            e.type,
                            e.payload,
                            e.visibility,
                            e.created_at,
                        )
                        for e in uow.staged_events
                    ],
                )

            uow.conn.commit()
            self._last_event_at = last

        uow.committed_events = list(uow.staged_events)

    @staticmethod
    def _rollback(cursor: duckdb.DuckDBPyConnection) -> None:
        try:
            cursor.rollback()
        except duckdb.Error:
            # The transaction is already gone (e.g. the commit itself failed)
            logger.debug("Rollback found no active transaction")
