"""Wager Settlement Machine.

Each bet request walks the states

    VALIDATED -> STAKE_RESERVED -> OUTCOME_COMPUTED -> SETTLED
        \\-> REJECTED

inside a single unit of work. Validation failures are recorded as
``limit_hit`` events and committed without touching balances; once the stake
is reserved, the draw, payout and settlement events land in the same
transaction, so a stake is never deducted without its settlement.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from casino_ledger.core.admission import RiskGate, RiskSnapshot
from casino_ledger.core.agents import Agent, AgentConfig
from casino_ledger.core.errors import (
    AgentPausedError,
    CasinoError,
    InsufficientFundsError,
    InvalidInputError,
    LimitBreachedError,
)
from casino_ledger.core.events import (
    BetCommitmentPayload,
    BetPlacedPayload,
    BetResolvedPayload,
    BetRevealPayload,
    EventLog,
    EventType,
    LimitHitPayload,
    RevealPayload,
)
from casino_ledger.core.fairness import FairDraw, FairnessEngine, client_seed_for
from casino_ledger.core.faucet import Faucet
from casino_ledger.core.games import CoinSide, DiceDirection, Game, GameOutcome, play
from casino_ledger.core.ledger import LedgerStore
from casino_ledger.core.reasoning import Reasoning
from casino_ledger.core.redact import redact_optional
from casino_ledger.persistence.store import UnitOfWork

logger = logging.getLogger(__name__)

MAX_STAKE = 100_000


class WagerState(str, Enum):
    VALIDATED = "validated"
    STAKE_RESERVED = "stake_reserved"
    OUTCOME_COMPUTED = "outcome_computed"
    SETTLED = "settled"
    REJECTED = "rejected"


_TRANSITIONS: dict[WagerState | None, set[WagerState]] = {
    None: {WagerState.VALIDATED, WagerState.REJECTED},
    WagerState.VALIDATED: {WagerState.STAKE_RESERVED},
    WagerState.STAKE_RESERVED: {WagerState.OUTCOME_COMPUTED},
    WagerState.OUTCOME_COMPUTED: {WagerState.SETTLED},
    WagerState.SETTLED: set(),
    WagerState.REJECTED: set(),
}


class BetRequest(BaseModel):
    """A bet as submitted by an agent."""

    game: Game
    stake: int = Field(..., ge=1, le=MAX_STAKE)
    choice: CoinSide | None = None
    target: int | None = Field(None, ge=1, le=99)
    direction: DiceDirection | None = None
    note: str | None = Field(None, max_length=280)
    logic: Reasoning | None = None


@dataclass
class BetResult:
    win: bool
    payout: int
    outcome: dict[str, Any]
    balance: int
    nonce: int
    bet_id: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "win": self.win,
            "payout": self.payout,
            "outcome": self.outcome,
            "balance": self.balance,
        }


@dataclass
class Wager:
    """One pass through the machine."""

    agent: Agent
    request: BetRequest
    state: WagerState | None = None
    history: list[WagerState] = field(default_factory=list)
    balance_before: int | None = None
    balance_after_stake: int | None = None
    draw: FairDraw | None = None
    outcome: GameOutcome | None = None
    result: BetResult | None = None
    error: CasinoError | None = None

    def advance(self, state: WagerState) -> None:
        if state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Illegal wager transition {self.state} -> {state}")
        self.state = state
        self.history.append(state)


class WagerSettlementMachine:
    def __init__(
        self,
        ledger: LedgerStore,
        fairness: FairnessEngine,
        events: EventLog,
        faucet: Faucet,
        risk_gate: RiskGate | None = None,
        max_stake: int = MAX_STAKE,
    ) -> None:
        self.ledger = ledger
        self.fairness = fairness
        self.events = events
        self.faucet = faucet
        self.risk_gate = risk_gate or RiskGate()
        self.max_stake = max_stake

    def settle(
        self, uow: UnitOfWork, agent: Agent, config: AgentConfig | None, request: BetRequest
    ) -> Wager:
        """Run a bet to completion.

        Rejections are not raised here: the ``limit_hit`` event is staged, the
        error is attached to the wager and handed to ``uow.fail_after_commit``
        so the audit record is committed before the caller sees the error.
        """
        if request.stake > self.max_stake:
            raise InvalidInputError(
                f"stake must be at most {self.max_stake}", stake=request.stake
            )

        wager = Wager(agent=agent, request=request)
        balance = self.ledger.get_balance(uow, agent.id)
        wager.balance_before = balance

        try:
            self._validate(agent, config, request, balance)
        except (AgentPausedError, LimitBreachedError, InsufficientFundsError) as e:
            self._reject(uow, wager, e, balance)
            return wager
        wager.advance(WagerState.VALIDATED)

        self._reserve_stake(uow, wager)
        self._compute_outcome(uow, wager)
        self._settle(uow, wager)
        return wager

    def reject_if_paused(self, uow: UnitOfWork, agent: Agent, request: BetRequest) -> Wager | None:
        """Reject a paused agent's bet before any other gate runs.

        Returns the rejected wager, or None when the agent may proceed to
        admission and settlement.
        """
        try:
            self.risk_gate.check_paused(agent.id, agent.is_paused, agent.paused_reason)
        except AgentPausedError as e:
            wager = Wager(agent=agent, request=request)
            wager.balance_before = self.ledger.get_balance(uow, agent.id)
            self._reject(uow, wager, e, wager.balance_before)
            return wager
        return None

    # ------------------------------------------------------------------
    # States
    # ------------------------------------------------------------------

    def _validate(
        self, agent: Agent, config: AgentConfig | None, request: BetRequest, balance: int
    ) -> None:
        self.risk_gate.check_paused(agent.id, agent.is_paused, agent.paused_reason)

        if config is not None:
            anchor = config.anchor_balance if config.anchor_balance is not None else balance
            self.risk_gate.check_limits(
                RiskSnapshot(
                    balance=balance,
                    anchor_balance=anchor,
                    stop_loss=config.stop_loss,
                    take_profit=config.take_profit,
                )
            )

        # max_bet is advisory: agents set it for self-control, the house
        # does not enforce it.
        if balance < request.stake:
            raise InsufficientFundsError(balance=balance, required=request.stake)

    def _reject(
        self,
        uow: UnitOfWork,
        wager: Wager,
        error: CasinoError,
        balance: int,
    ) -> None:
        payload = LimitHitPayload(kind=error.code, action="bet", balance=balance)
        if isinstance(error, LimitBreachedError):
            payload.anchor_balance = error.anchor_balance
            setattr(payload, error.kind, error.threshold)
        elif isinstance(error, InsufficientFundsError):
            payload.required = error.required

        self.events.append(uow, wager.agent.id, EventType.LIMIT_HIT, payload)
        wager.advance(WagerState.REJECTED)
        wager.error = error
        uow.fail_after_commit(error)
        logger.warning("Bet rejected agent=%s reason=%s", wager.agent.name, error.code)

    def _reserve_stake(self, uow: UnitOfWork, wager: Wager) -> None:
        request = wager.request
        commitment = self.fairness.commit(uow, wager.agent.id)
        wager.balance_after_stake = self.ledger.debit(uow, wager.agent.id, request.stake)

        self.events.append(
            uow,
            wager.agent.id,
            EventType.BET_PLACED,
            BetPlacedPayload(
                game=request.game.value,
                stake=request.stake,
                choice=request.choice.value if request.choice else None,
                target=request.target,
                direction=request.direction.value if request.direction else None,
                note=redact_optional(request.note),
                logic=request.logic.to_payload() if request.logic else None,
                balance_before=wager.balance_before,
                balance=wager.balance_after_stake,
                provably_fair=BetCommitmentPayload(
                    client_seed=client_seed_for(wager.agent.name),
                    server_seed_hash=commitment.server_seed_hash,
                    nonce=commitment.nonce + 1,
                ),
            ),
        )
        wager.advance(WagerState.STAKE_RESERVED)

    def _compute_outcome(self, uow: UnitOfWork, wager: Wager) -> None:
        request = wager.request
        wager.draw = self.fairness.draw(
            uow, wager.agent.id, client_seed_for(wager.agent.name), request.game.value
        )
        wager.outcome = play(
            request.game,
            wager.draw.value,
            request.stake,
            choice=request.choice,
            target=request.target,
            direction=request.direction,
        )
        wager.advance(WagerState.OUTCOME_COMPUTED)

    def _settle(self, uow: UnitOfWork, wager: Wager) -> None:
        request = wager.request
        outcome = wager.outcome
        draw = wager.draw
        assert outcome is not None and draw is not None

        if outcome.payout > 0:
            balance = self.ledger.credit(uow, wager.agent.id, outcome.payout)
        else:
            balance = self.ledger.get_balance(uow, wager.agent.id)

        bet_id = self.events.append(
            uow,
            wager.agent.id,
            EventType.BET_RESOLVED,
            BetResolvedPayload(
                game=request.game.value,
                stake=request.stake,
                win=outcome.win,
                payout=outcome.payout,
                outcome=outcome.detail,
                balance_before=wager.balance_after_stake,
                balance=balance,
                provably_fair=BetRevealPayload(
                    reveal=RevealPayload(**draw.reveal.to_dict()),
                    next_server_seed_hash=draw.next_server_seed_hash,
                ),
            ),
        )

        self.faucet.arm_if_broke(uow, wager.agent.id)

        wager.result = BetResult(
            win=outcome.win,
            payout=outcome.payout,
            outcome=outcome.detail,
            balance=balance,
            nonce=draw.reveal.nonce,
            bet_id=bet_id,
        )
        wager.advance(WagerState.SETTLED)
        logger.info(
            "Bet settled agent=%s game=%s stake=%d win=%s payout=%d balance=%d",
            wager.agent.name, request.game.value, request.stake, outcome.win, outcome.payout, balance,
        )
