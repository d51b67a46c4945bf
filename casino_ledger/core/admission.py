"""Admission Control.

Two gates run before any ledger mutation:

* SlidingWindowLimiter: at most ``max_count`` admitted actions of a kind per
  agent in any ``window_seconds`` window. It only shapes throughput between
  agents and has no effect on ledger correctness.
* RiskGate: the operator pause flag and the agent's own stop-loss /
  take-profit thresholds, measured against ``anchor_balance``.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum

from casino_ledger.core.errors import AgentPausedError, LimitBreachedError, RateLimitedError
from casino_ledger.persistence.store import UnitOfWork

logger = logging.getLogger(__name__)


class ActionKind(str, Enum):
    BET = "bet"
    THOUGHT = "thought"
    CHAT = "chat"
    TIP = "tip"
    CASHIN = "cashin"
    CASHOUT = "cashout"
    BEG = "beg"
    REACT = "react"
    MEMORY = "memory"


@dataclass(frozen=True)
class RateLimit:
    window_seconds: int
    max_count: int


DEFAULT_RATE_LIMITS: dict[ActionKind, RateLimit] = {
    ActionKind.BET: RateLimit(60, 240),
    ActionKind.THOUGHT: RateLimit(60, 12),
    ActionKind.CHAT: RateLimit(60, 12),
    ActionKind.TIP: RateLimit(60, 24),
    ActionKind.CASHIN: RateLimit(60, 20),
    ActionKind.CASHOUT: RateLimit(60, 20),
    ActionKind.BEG: RateLimit(60, 6),
    ActionKind.REACT: RateLimit(60, 30),
    ActionKind.MEMORY: RateLimit(60, 30),
}


class SlidingWindowLimiter:
    """Per-(agent, kind) sliding window over the ``rate_limits`` table.

    Callers hold the agent's lock, so count-then-insert is not raced by
    another request of the same agent.
    """

    def __init__(self, limits: dict[ActionKind, RateLimit] | None = None) -> None:
        self.limits = dict(DEFAULT_RATE_LIMITS)
        if limits:
            self.limits.update(limits)

    def admit(self, uow: UnitOfWork, agent_id: str, kind: ActionKind) -> None:
        """Record one action or reject it.

        Records strictly newer than ``now - window`` are counted, so an action
        becomes admissible again exactly ``window`` seconds after the oldest
        counted one.

        Raises:
            RateLimitedError: The window already holds ``max_count`` actions
        """
        limit = self.limits[kind]
        window_start = uow.now - timedelta(seconds=limit.window_seconds)

        uow.execute(
            "DELETE FROM rate_limits WHERE agent_id = ? AND kind = ? AND created_at <= ?",
            [agent_id, kind.value, window_start],
        )
        count, oldest = uow.fetchone(
            """
            SELECT COUNT(*), MIN(created_at) FROM rate_limits
            WHERE agent_id = ? AND kind = ? AND created_at > ?
            """,
            [agent_id, kind.value, window_start],
        )

        if count >= limit.max_count:
            expires_at = oldest + timedelta(seconds=limit.window_seconds)
            retry_after = max(1, math.ceil((expires_at - uow.now).total_seconds()))
            logger.warning(
                "Rate limited agent=%s kind=%s count=%d retry_after=%ds",
                agent_id, kind.value, count, retry_after,
            )
            raise RateLimitedError(kind.value, retry_after)

        uow.execute(
            "INSERT INTO rate_limits (agent_id, kind, created_at) VALUES (?, ?, ?)",
            [agent_id, kind.value, uow.now],
        )

    def prune(self, uow: UnitOfWork) -> int:
        """Drop every record older than the longest window. Returns rows removed."""
        longest = max(limit.window_seconds for limit in self.limits.values())
        cutoff = uow.now - timedelta(seconds=longest)
        (removed,) = uow.fetchone("SELECT COUNT(*) FROM rate_limits WHERE created_at <= ?", [cutoff])
        uow.execute("DELETE FROM rate_limits WHERE created_at <= ?", [cutoff])
        return int(removed)


@dataclass(frozen=True)
class RiskSnapshot:
    """Inputs of the pre-stake risk check."""

    balance: int
    anchor_balance: int
    stop_loss: int | None
    take_profit: int | None

    @property
    def pnl(self) -> int:
        return self.balance - self.anchor_balance


class RiskGate:
    """Pause flag and stop-loss / take-profit evaluation.

    Thresholds are checked against the balance *before* the stake of the
    current request. A single bet can therefore overshoot a threshold; the
    breach is caught on the agent's next request.
    """

    @staticmethod
    def check_paused(agent_id: str, is_paused: bool, reason: str | None = None) -> None:
        if is_paused:
            raise AgentPausedError(agent_id, reason)

    @staticmethod
    def check_limits(snapshot: RiskSnapshot) -> None:
        if snapshot.stop_loss is not None and snapshot.pnl <= -snapshot.stop_loss:
            raise LimitBreachedError(
                "stop_loss", snapshot.stop_loss, snapshot.balance, snapshot.anchor_balance
            )
        if snapshot.take_profit is not None and snapshot.pnl >= snapshot.take_profit:
            raise LimitBreachedError(
                "take_profit", snapshot.take_profit, snapshot.balance, snapshot.anchor_balance
            )
