"""Bankruptcy faucet.

When an agent's total wealth (casino + bank) reaches exactly zero the faucet
is armed with a fixed cooldown. After the cooldown the agent may claim one
grant. A claimed faucet re-arms only if wealth returns to zero again.
"""

from __future__ import annotations

import logging
import math
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta

from casino_ledger.core.clock import isoformat
from casino_ledger.core.errors import NotArmedError, NotBrokeError, TooSoonError
from casino_ledger.core.events import (
    BailoutDeniedPayload,
    BailoutGrantedPayload,
    BrokePayload,
    EventLog,
    EventType,
)
from casino_ledger.core.ledger import LedgerStore
from casino_ledger.persistence.store import UnitOfWork

logger = logging.getLogger(__name__)

DEFAULT_COOLDOWN_SECONDS = 30 * 60
DEFAULT_GRANT_AMOUNT = 1000


@dataclass(frozen=True)
class FaucetState:
    zeroed_at: datetime
    available_at: datetime
    last_claimed_at: datetime | None

    @property
    def armed(self) -> bool:
        """Armed until the grant for the current bankruptcy is claimed."""
        return self.last_claimed_at is None or self.last_claimed_at <= self.zeroed_at

    def remaining_seconds(self, now: datetime) -> int:
        return max(0, math.ceil((self.available_at - now).total_seconds()))


@dataclass(frozen=True)
class FaucetStatus:
    armed: bool
    total_wealth: int
    remaining_seconds: int | None = None
    can_claim: bool = False
    zeroed_at: datetime | None = None
    available_at: datetime | None = None

    def to_dict(self) -> dict:
        out = {
            "armed": self.armed,
            "total_wealth": self.total_wealth,
            "can_claim": self.can_claim,
        }
        if self.armed:
            out.update(
                zeroed_at=isoformat(self.zeroed_at),
                available_at=isoformat(self.available_at),
                remaining_seconds=self.remaining_seconds,
            )
        return out


@dataclass(frozen=True)
class FaucetGrant:
    amount: int
    balance: int


class Faucet:
    def __init__(
        self,
        ledger: LedgerStore,
        events: EventLog,
        cooldown_seconds: int = DEFAULT_COOLDOWN_SECONDS,
        grant_amount: int = DEFAULT_GRANT_AMOUNT,
    ) -> None:
        self.ledger = ledger
        self.events = events
        self.cooldown = timedelta(seconds=cooldown_seconds)
        self.grant_amount = grant_amount

    def get_state(self, uow: UnitOfWork, agent_id: str) -> FaucetState | None:
        row = uow.fetchone(
            "SELECT zeroed_at, available_at, last_claimed_at FROM faucet_state WHERE agent_id = ?",
            [agent_id],
        )
        return FaucetState(*row) if row else None

    def arm_if_broke(self, uow: UnitOfWork, agent_id: str) -> FaucetState | None:
        """Arm the faucet when total wealth is exactly zero.

        Emits ``broke`` on the transition into the armed state. Already armed
        state is left untouched, so the cooldown is never extended.

        Returns:
            The armed state, or None when the agent is not broke
        """
        if self.ledger.total_wealth(uow, agent_id) != 0:
            return None

        current = self.get_state(uow, agent_id)
        if current is not None and current.armed:
            return current

        zeroed_at = uow.now
        available_at = zeroed_at + self.cooldown
        if current is None:
            uow.execute(
                """
                INSERT INTO faucet_state (agent_id, zeroed_at, available_at, last_claimed_at)
                VALUES (?, ?, ?, NULL)
                """,
                [agent_id, zeroed_at, available_at],
            )
        else:
            uow.execute(
                "UPDATE faucet_state SET zeroed_at = ?, available_at = ? WHERE agent_id = ?",
                [zeroed_at, available_at, agent_id],
            )

        self.events.append(
            uow, agent_id, EventType.BROKE, BrokePayload(available_at=isoformat(available_at))
        )
        logger.info("Faucet armed agent=%s available_at=%s", agent_id, available_at)
        return FaucetState(zeroed_at, available_at, current.last_claimed_at if current else None)

    def status(self, uow: UnitOfWork, agent_id: str) -> FaucetStatus:
        """Report faucet state, arming it on first observation of bankruptcy."""
        total = self.ledger.total_wealth(uow, agent_id)
        if total > 0:
            return FaucetStatus(armed=False, total_wealth=total)

        state = self.arm_if_broke(uow, agent_id)
        remaining = state.remaining_seconds(uow.now)
        return FaucetStatus(
            armed=True,
            total_wealth=0,
            remaining_seconds=remaining,
            can_claim=remaining == 0,
            zeroed_at=state.zeroed_at,
            available_at=state.available_at,
        )

    def claim(self, uow: UnitOfWork, agent_id: str) -> FaucetGrant:
        """Pay out the grant.

        TooSoonError is raised *after* the denial event is staged; callers
        that want the denial on record commit before re-raising.

        Raises:
            NotBrokeError: Total wealth is above zero
            NotArmedError: No unclaimed bankruptcy on record
            TooSoonError: The cooldown has not elapsed
        """
        total = self.ledger.total_wealth(uow, agent_id)
        if total > 0:
            raise NotBrokeError(total)

        state = self.get_state(uow, agent_id)
        if state is None or not state.armed:
            raise NotArmedError("faucet is not armed")

        remaining = state.remaining_seconds(uow.now)
        if remaining > 0:
            self.events.append(
                uow,
                agent_id,
                EventType.BAILOUT_DENIED_TOO_SOON,
                BailoutDeniedPayload(remaining_seconds=remaining),
            )
            raise TooSoonError(remaining)

        uow.execute(
            "INSERT INTO faucet_grants (id, agent_id, amount, created_at) VALUES (?, ?, ?, ?)",
            [uuid.uuid4().hex, agent_id, self.grant_amount, uow.now],
        )
        balance = self.ledger.credit(uow, agent_id, self.grant_amount)
        uow.execute(
            "UPDATE faucet_state SET last_claimed_at = ? WHERE agent_id = ?",
            [uow.now, agent_id],
        )
        self.events.append(
            uow,
            agent_id,
            EventType.BAILOUT_GRANTED,
            BailoutGrantedPayload(amount=self.grant_amount, balance=balance),
        )
        logger.info("Faucet grant agent=%s amount=%d", agent_id, self.grant_amount)
        return FaucetGrant(amount=self.grant_amount, balance=balance)
