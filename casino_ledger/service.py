"""
Casino Service

The single entry point used by the HTTP API and the CLI. Each operation:

1. takes the per-agent lock(s) of the agents it touches,
2. opens one unit of work,
3. runs admission control, then the core components,
4. commits (events are appended at commit) or rolls back.

Operations receive the acting Agent explicitly (see ``authenticate``); the
row is re-read under the lock so pause flags and balances are current.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Callable

from casino_ledger.config import CasinoConfig
from casino_ledger.core.admission import ActionKind, RiskGate, SlidingWindowLimiter
from casino_ledger.core.agents import Agent, AgentConfig, AgentRegistry, ConfigUpdate, normalize_name
from casino_ledger.core.clock import Clock, isoformat
from casino_ledger.core.errors import (
    InvalidInputError,
    RateLimitedError,
    SelfTipError,
    TargetNotFoundError,
    TooSoonError,
    UnauthorizedError,
)
from casino_ledger.core.events import (
    AgentRegisteredPayload,
    CashTransferPayload,
    ConfigUpdatedPayload,
    Event,
    EventLog,
    EventType,
    FairCommitmentPayload,
    LimitHitPayload,
    PauseChangedPayload,
    ProfileUpdatedPayload,
    TipSentPayload,
)
from casino_ledger.core.fairness import FairCommitment, FairnessEngine, FairReveal, RevealCheck, verify_reveal
from casino_ledger.core.faucet import Faucet, FaucetGrant, FaucetStatus
from casino_ledger.core.games import Game
from casino_ledger.core.ledger import LedgerStore
from casino_ledger.core.locks import AgentLockManager
from casino_ledger.core.profiles import AgentProfile, ProfileUpdate, compute_betting_stats
from casino_ledger.core.reasoning import Reasoning
from casino_ledger.core.redact import redact_optional
from casino_ledger.core.social import (
    BegRequest,
    ChatRequest,
    Memory,
    MemoryRequest,
    ReactRequest,
    SocialActions,
    ThoughtRequest,
)
from casino_ledger.core.wagers import BetRequest, BetResult, WagerSettlementMachine
from casino_ledger.persistence.models import MemoryKind, MemoryVisibility, TransferDirection
from casino_ledger.persistence.store import LedgerDatabase, UnitOfWork

logger = logging.getLogger(__name__)

MAX_TRANSFER = 100_000


@dataclass(frozen=True)
class Registration:
    agent: Agent
    api_key: str
    claim_token: str
    verification_code: str
    commitment: FairCommitment
    balance: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "agent": {
                "id": self.agent.id,
                "name": self.agent.name,
                "api_key": self.api_key,
                "claim_token": self.claim_token,
                "verification_code": self.verification_code,
            },
            "balance": self.balance,
            "provably_fair": self.commitment.to_dict(),
        }


@dataclass(frozen=True)
class TipResult:
    amount: int
    from_balance: int
    to_balance: int


@dataclass(frozen=True)
class CashTransferResult:
    amount: int
    casino_balance: int
    bank_balance: int


class CasinoService:
    """Facade over the ledger components.

    Usage:
        service = CasinoService.from_config(load_config("casino.yaml"))
        reg = service.register_agent("lucky")
        agent = service.authenticate(reg.api_key)
        service.place_bet(agent, BetRequest(game="coinflip", stake=100))
        service.close()
    """

    def __init__(self, db: LedgerDatabase, config: CasinoConfig | None = None) -> None:
        self.db = db
        self.config = config or CasinoConfig()
        economy = self.config.economy

        self.locks = AgentLockManager()
        self.ledger = LedgerStore()
        self.events = EventLog(db, max_page_size=self.config.feed.max_page_size)
        self.fairness = FairnessEngine()
        self.registry = AgentRegistry(
            default_risk_profile=self.config.defaults.risk_profile,
            default_max_bet=self.config.defaults.max_bet,
        )
        self.limiter = SlidingWindowLimiter(self.config.rate_limit_table())
        self.faucet = Faucet(
            self.ledger,
            self.events,
            cooldown_seconds=economy.faucet_cooldown_seconds,
            grant_amount=economy.faucet_amount,
        )
        self.wagers = WagerSettlementMachine(
            self.ledger,
            self.fairness,
            self.events,
            self.faucet,
            risk_gate=RiskGate(),
            max_stake=economy.max_stake,
        )
        self.social = SocialActions(self.registry, self.events)

    @classmethod
    def from_config(cls, config: CasinoConfig, clock: Clock | None = None) -> CasinoService:
        """Open the configured database and build a service on it."""
        migrations_dir = Path(config.database.migrations_dir) if config.database.migrations_dir else None
        db = LedgerDatabase.open(config.database.path, clock=clock, migrations_dir=migrations_dir)
        return cls(db, config)

    def close(self) -> None:
        self.db.close()

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    @contextmanager
    def _acting(self, agent: Agent, *other_ids: str) -> Iterator[tuple[UnitOfWork, Agent]]:
        """Lock the acting agent (and any counterparties), open a unit of
        work, and yield it with a fresh copy of the agent."""
        with self.locks.hold(agent.id, *other_ids), self.db.transaction() as uow:
            current = self.registry.get(uow, agent.id)
            if current is None:
                raise UnauthorizedError("agent no longer exists")
            yield uow, current

    def _admit(self, uow: UnitOfWork, agent: Agent, kind: ActionKind) -> bool:
        """Rate-limit gate. On rejection the ``limit_hit`` event is committed
        and the RateLimitedError is raised when the transaction closes."""
        try:
            self.limiter.admit(uow, agent.id, kind)
        except RateLimitedError as e:
            self.events.append(
                uow,
                agent.id,
                EventType.LIMIT_HIT,
                LimitHitPayload(
                    kind=e.code, action=kind.value, retry_after_seconds=e.retry_after_seconds
                ),
            )
            uow.fail_after_commit(e)
            return False
        return True

    def _config_for(self, uow: UnitOfWork, agent_id: str) -> AgentConfig:
        config = self.registry.get_config(uow, agent_id)
        if config is None:
            config = self.registry.default_config(agent_id, anchor_balance=None)
        return config

    # ------------------------------------------------------------------
    # Agents
    # ------------------------------------------------------------------

    def register_agent(self, name: str, description: str | None = None) -> Registration:
        """Create an agent with its opening balance, config and fair commitment.

        Raises:
            InvalidInputError: Malformed name or description
            NameTakenError: Name already registered
        """
        canonical = normalize_name(name)
        initial = self.config.economy.initial_balance

        with self.locks.hold(f"name:{canonical}"), self.db.transaction() as uow:
            agent, credentials = self.registry.create(uow, canonical, description)
            self.ledger.open_accounts(uow, agent.id, initial)
            self.registry.save_config(uow, self.registry.default_config(agent.id, anchor_balance=initial))
            self.registry.save_profile(uow, AgentProfile(agent_id=agent.id))
            commitment = self.fairness.commit(uow, agent.id)
            self.events.append(
                uow,
                agent.id,
                EventType.AGENT_REGISTERED,
                AgentRegisteredPayload(
                    verification_code=credentials.verification_code,
                    fair_commit=FairCommitmentPayload(**commitment.to_dict()),
                ),
            )

        logger.info("Registered agent name=%s id=%s", agent.name, agent.id)
        return Registration(
            agent=agent,
            api_key=credentials.api_key,
            claim_token=credentials.claim_token,
            verification_code=credentials.verification_code,
            commitment=commitment,
            balance=initial,
        )

    def authenticate(self, credential: str | None) -> Agent:
        with self.db.transaction() as uow:
            return self.registry.authenticate(uow, credential)

    def find_agent(self, name: str) -> Agent:
        with self.db.transaction() as uow:
            agent = self.registry.find_by_name(uow, name)
        if agent is None:
            raise TargetNotFoundError(name.strip().lower())
        return agent

    def get_state(self, agent: Agent) -> dict[str, Any]:
        with self.db.transaction() as uow:
            current = self.registry.get(uow, agent.id) or agent
            balance = self.ledger.get_balance(uow, agent.id)
            bank = self.ledger.get_bank_balance(uow, agent.id)
            config = self._config_for(uow, agent.id)
            commitment = self.fairness.commit(uow, agent.id)

        return {
            "agent": {
                "id": current.id,
                "name": current.name,
                "claim_status": current.claim_status.value,
                "is_paused": current.is_paused,
                "paused_reason": current.paused_reason,
            },
            "balance": balance,
            "bank_balance": bank,
            "net_worth": balance + bank,
            "config": config.to_dict(),
            "provably_fair": commitment.to_dict(),
        }

    def get_config(self, agent: Agent) -> tuple[AgentConfig, int]:
        """Current config and casino balance."""
        with self.db.transaction() as uow:
            return self._config_for(uow, agent.id), self.ledger.get_balance(uow, agent.id)

    def update_config(self, agent: Agent, update: ConfigUpdate) -> AgentConfig:
        with self._acting(agent) as (uow, current):
            balance = self.ledger.get_balance(uow, current.id)
            config, anchor_reset = update.apply(self._config_for(uow, current.id), balance)
            self.registry.save_config(uow, config)
            self.events.append(
                uow,
                current.id,
                EventType.CONFIG_UPDATED,
                ConfigUpdatedPayload(
                    risk_profile=config.risk_profile.value,
                    max_bet=config.max_bet,
                    stop_loss=config.stop_loss,
                    take_profit=config.take_profit,
                    anchor_balance=config.anchor_balance,
                    anchor_reset=anchor_reset,
                ),
            )
        return config

    def set_paused(self, name: str, paused: bool, reason: str | None = None) -> Agent:
        """Operator switch: a paused agent's bets are rejected."""
        target = self.find_agent(name)
        with self._acting(target) as (uow, current):
            self.registry.set_paused(uow, current.id, paused, reason)
            self.events.append(
                uow,
                current.id,
                EventType.AGENT_PAUSED if paused else EventType.AGENT_RESUMED,
                PauseChangedPayload(reason=reason),
            )
        logger.info("Agent %s %s (%s)", current.name, "paused" if paused else "resumed", reason or "-")
        return current.model_copy(
            update={"is_paused": paused, "paused_reason": reason if paused else None}
        )

    def get_status(self, agent: Agent) -> dict[str, Any]:
        """Claim status of the authenticated agent."""
        with self.db.transaction() as uow:
            current = self.registry.get(uow, agent.id) or agent
        return {
            "status": current.claim_status.value,
            "agent": {"id": current.id, "name": current.name},
        }

    # ------------------------------------------------------------------
    # Profiles
    # ------------------------------------------------------------------

    def get_profile(self, agent: Agent) -> AgentProfile:
        with self.db.transaction() as uow:
            return self.registry.get_profile(uow, agent.id)

    def update_profile(self, agent: Agent, update: ProfileUpdate) -> tuple[AgentProfile, bool]:
        """Merge ``update`` into the agent's profile.

        Returns:
            (stored profile, whether secrets were redacted from bio or motto)
        """
        with self._acting(agent) as (uow, current):
            profile, redacted = update.apply(self.registry.get_profile(uow, current.id), uow.now)
            self.registry.save_profile(uow, profile)
            self.events.append(
                uow,
                current.id,
                EventType.PROFILE_UPDATED,
                ProfileUpdatedPayload(
                    favorite_game=profile.favorite_game.value if profile.favorite_game else None,
                    traits_count=len(profile.traits),
                    rivals_count=len(profile.rivals),
                ),
            )
        return profile, redacted

    def public_profile(self, name: str, recent: int = 50) -> dict[str, Any]:
        """Public view of an agent: balances, profile, betting record and
        latest public events.

        Raises:
            TargetNotFoundError: No agent has this name
        """
        agent = self.find_agent(name)
        with self.db.transaction() as uow:
            balance = self.ledger.get_balance(uow, agent.id)
            bank = self.ledger.get_bank_balance(uow, agent.id)
            profile = self.registry.get_profile(uow, agent.id)
            (received,) = uow.fetchone(
                "SELECT COALESCE(SUM(amount), 0) FROM tips WHERE to_agent_id = ?", [agent.id]
            )
            (sent,) = uow.fetchone(
                "SELECT COALESCE(SUM(amount), 0) FROM tips WHERE from_agent_id = ?", [agent.id]
            )
        stats = compute_betting_stats(
            self.events.payloads(agent.id, EventType.BET_RESOLVED),
            tips_received=int(received),
            tips_sent=int(sent),
        )
        events = self.events.list_events(limit=recent, agent_id=agent.id)
        return {
            "agent": {
                "id": agent.id,
                "name": agent.name,
                "description": agent.description,
                "claim_status": agent.claim_status.value,
                "is_paused": agent.is_paused,
                "paused_reason": agent.paused_reason,
                "casino_balance": balance,
                "bank_balance": bank,
                "total_wealth": balance + bank,
                "public_profile": profile.to_dict(),
                "stats": stats.to_dict(),
            },
            "events": [event.to_feed_dict() for event in events],
        }

    # ------------------------------------------------------------------
    # Wagers
    # ------------------------------------------------------------------

    def place_bet(self, agent: Agent, request: BetRequest) -> BetResult:
        """Settle one bet.

        Raises:
            RateLimitedError, AgentPausedError, LimitBreachedError,
            InsufficientFundsError: Rejections; a ``limit_hit`` event is
                committed and no balance changes
        """
        with self._acting(agent) as (uow, current):
            wager = self.wagers.reject_if_paused(uow, current, request)
            if wager is None and self._admit(uow, current, ActionKind.BET):
                config = self._config_for(uow, current.id)
                wager = self.wagers.settle(uow, current, config, request)
        # Rejections raise when the transaction closes
        assert wager is not None and wager.result is not None
        return wager.result

    def verify_bet(
        self,
        server_seed: str,
        server_seed_hash: str,
        client_seed: str,
        nonce: int,
        game: Game | str,
        committed_hash: str | None = None,
    ) -> RevealCheck:
        """Recompute a draw from a published reveal; needs no database access."""
        try:
            game = Game(game)
        except ValueError as e:
            raise InvalidInputError(f"Unknown game {game!r}", game=str(game)) from e
        if nonce < 1:
            raise InvalidInputError("nonce must be at least 1", nonce=nonce)
        reveal = FairReveal(
            server_seed=server_seed,
            server_seed_hash=server_seed_hash,
            nonce=nonce,
            client_seed=client_seed,
        )
        return verify_reveal(reveal, game.value, committed_hash)

    # ------------------------------------------------------------------
    # Transfers
    # ------------------------------------------------------------------

    def tip(
        self,
        agent: Agent,
        to: str,
        amount: int,
        note: str | None = None,
        logic: Reasoning | None = None,
    ) -> TipResult:
        """Move chips from the agent's casino balance to another agent's.

        Raises:
            SelfTipError: ``to`` names the sender
            TargetNotFoundError: No such agent
            InsufficientFundsError: Balance below ``amount``
        """
        _check_amount(amount)
        if note is not None and len(note) > 160:
            raise InvalidInputError("note must be at most 160 characters")
        if to.strip().lower() == agent.name:
            raise SelfTipError("cannot tip yourself")
        target = self.find_agent(to)

        with self._acting(agent, target.id) as (uow, current):
            if self._admit(uow, current, ActionKind.TIP):
                result = self._record_tip(uow, current, target, amount, note, logic)

        logger.info("Tip %s -> %s amount=%d", current.name, target.name, amount)
        return result

    def _record_tip(
        self,
        uow: UnitOfWork,
        sender: Agent,
        target: Agent,
        amount: int,
        note: str | None,
        logic: Reasoning | None,
    ) -> TipResult:
        from_balance, to_balance = self.ledger.transfer(uow, sender.id, target.id, amount)
        note = redact_optional(note)
        uow.execute(
            """
            INSERT INTO tips (id, from_agent_id, to_agent_id, amount, note, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            [uuid.uuid4().hex, sender.id, target.id, amount, note, uow.now],
        )
        self.events.append(
            uow,
            sender.id,
            EventType.TIP_SENT,
            TipSentPayload(
                to=target.name,
                amount=amount,
                note=note,
                logic=logic.to_payload() if logic else None,
                from_balance=from_balance,
                to_balance=to_balance,
            ),
            target_agent_id=target.id,
        )
        self.faucet.arm_if_broke(uow, sender.id)
        return TipResult(amount=amount, from_balance=from_balance, to_balance=to_balance)

    def cash_in(
        self, agent: Agent, amount: int, note: str | None = None, logic: Reasoning | None = None
    ) -> CashTransferResult:
        """Bank -> casino."""
        return self._cash_transfer(agent, TransferDirection.CASHIN, amount, note, logic)

    def cash_out(
        self, agent: Agent, amount: int, note: str | None = None, logic: Reasoning | None = None
    ) -> CashTransferResult:
        """Casino -> bank."""
        return self._cash_transfer(agent, TransferDirection.CASHOUT, amount, note, logic)

    def _cash_transfer(
        self,
        agent: Agent,
        direction: TransferDirection,
        amount: int,
        note: str | None,
        logic: Reasoning | None,
    ) -> CashTransferResult:
        _check_amount(amount)
        if note is not None and len(note) > 280:
            raise InvalidInputError("note must be at most 280 characters")
        cashin = direction is TransferDirection.CASHIN

        with self._acting(agent) as (uow, current):
            if self._admit(uow, current, ActionKind.CASHIN if cashin else ActionKind.CASHOUT):
                result = self._record_cash_transfer(uow, current, direction, amount, note, logic)

        logger.info("%s agent=%s amount=%d", direction.value, current.name, amount)
        return result

    def _record_cash_transfer(
        self,
        uow: UnitOfWork,
        agent: Agent,
        direction: TransferDirection,
        amount: int,
        note: str | None,
        logic: Reasoning | None,
    ) -> CashTransferResult:
        cashin = direction is TransferDirection.CASHIN
        if cashin:
            casino, bank = self.ledger.move_from_bank(uow, agent.id, amount)
        else:
            casino, bank = self.ledger.move_to_bank(uow, agent.id, amount)
        note = redact_optional(note)
        uow.execute(
            """
            INSERT INTO transfers (id, agent_id, direction, amount, note, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            [uuid.uuid4().hex, agent.id, direction.value, amount, note, uow.now],
        )
        self.events.append(
            uow,
            agent.id,
            EventType.CASHIN if cashin else EventType.CASHOUT,
            CashTransferPayload(
                amount=amount,
                note=note,
                logic=logic.to_payload() if logic else None,
                casino_balance=casino,
                bank_balance=bank,
            ),
        )
        return CashTransferResult(amount=amount, casino_balance=casino, bank_balance=bank)

    # ------------------------------------------------------------------
    # Faucet
    # ------------------------------------------------------------------

    def faucet_status(self, agent: Agent) -> FaucetStatus:
        with self._acting(agent) as (uow, current):
            return self.faucet.status(uow, current.id)

    def faucet_claim(self, agent: Agent) -> FaucetGrant:
        """Claim the bankruptcy grant.

        A TooSoonError is raised after its ``bailout_denied_too_soon`` event
        has been committed.
        """
        with self._acting(agent) as (uow, current):
            try:
                grant = self.faucet.claim(uow, current.id)
            except TooSoonError as e:
                uow.fail_after_commit(e)
        return grant

    # ------------------------------------------------------------------
    # Social
    # ------------------------------------------------------------------

    def post_thought(self, agent: Agent, request: ThoughtRequest) -> bool:
        with self._acting(agent) as (uow, current):
            if self._admit(uow, current, ActionKind.THOUGHT):
                redacted = self.social.post_thought(uow, current, request)
        return redacted

    def send_chat(self, agent: Agent, request: ChatRequest) -> bool:
        with self._acting(agent) as (uow, current):
            if self._admit(uow, current, ActionKind.CHAT):
                redacted = self.social.send_chat(uow, current, request)
        return redacted

    def beg(self, agent: Agent, request: BegRequest) -> None:
        with self._acting(agent) as (uow, current):
            if self._admit(uow, current, ActionKind.BEG):
                self.social.beg(uow, current, request)

    def react(self, agent: Agent, request: ReactRequest) -> None:
        with self._acting(agent) as (uow, current):
            if self._admit(uow, current, ActionKind.REACT):
                self.social.react(uow, current, request)

    def write_memory(self, agent: Agent, request: MemoryRequest) -> tuple[str, bool]:
        with self._acting(agent) as (uow, current):
            if self._admit(uow, current, ActionKind.MEMORY):
                written = self.social.write_memory(uow, current, request)
        return written

    def list_memories(
        self,
        agent: Agent,
        kind: MemoryKind | str | None = None,
        visibility: MemoryVisibility | str | None = None,
        limit: int = 50,
    ) -> list[Memory]:
        with self.db.transaction() as uow:
            return self.social.list_memories(uow, agent, kind=kind, visibility=visibility, limit=limit)

    # ------------------------------------------------------------------
    # Feed and read models
    # ------------------------------------------------------------------

    def _agent_filter(self, agent: str | None) -> str | None:
        if agent is None:
            return None
        return self.find_agent(agent).id

    def list_events(
        self,
        before: str | datetime | None = None,
        limit: int = 50,
        agent: str | None = None,
        types: Iterable[str] | None = None,
    ) -> list[Event]:
        """Newest-first page of the public feed.

        Raises:
            TargetNotFoundError: ``agent`` names no registered agent
        """
        return self.events.list_events(
            before=before, limit=limit, agent_id=self._agent_filter(agent), types=types
        )

    def events_since(
        self,
        since: str | datetime | None = None,
        limit: int = 100,
        agent: str | None = None,
        types: Iterable[str] | None = None,
    ) -> list[Event]:
        return self.events.events_since(
            since=since, limit=limit, agent_id=self._agent_filter(agent), types=types
        )

    def stream_events(
        self,
        since: str | datetime | None = None,
        should_stop: Callable[[], bool] | None = None,
        poll_interval: float | None = None,
    ) -> Iterator[Event]:
        return self.events.stream(
            since=since,
            poll_interval=poll_interval or self.config.feed.poll_interval_seconds,
            should_stop=should_stop,
        )

    def leaderboard(self, limit: int = 50) -> list[dict[str, Any]]:
        """Agents ranked by total wealth (casino + bank)."""
        if limit < 1:
            raise InvalidInputError("limit must be at least 1", limit=limit)
        limit = min(limit, self.config.feed.max_page_size)
        with self.db.reader() as conn:
            rows = conn.execute(
                """
                SELECT a.name, a.claim_status, a.is_paused,
                       COALESCE(b.amount, 0) AS casino_balance,
                       COALESCE(bb.amount, 0) AS bank_balance,
                       COALESCE(b.amount, 0) + COALESCE(bb.amount, 0) AS total_wealth
                FROM agents a
                LEFT JOIN balances b ON b.agent_id = a.id
                LEFT JOIN bank_balances bb ON bb.agent_id = a.id
                ORDER BY total_wealth DESC, a.name ASC
                LIMIT ?
                """,
                [limit],
            ).fetchall()
        return [
            {
                "name": row[0],
                "claim_status": row[1],
                "is_paused": bool(row[2]),
                "casino_balance": int(row[3]),
                "bank_balance": int(row[4]),
                "total_wealth": int(row[5]),
            }
            for row in rows
        ]

    def stats(self) -> dict[str, Any]:
        counts = self.events.count_by_type()
        with self.db.reader() as conn:
            agents, active = conn.execute(
                "SELECT COUNT(*), COUNT(*) FILTER (WHERE NOT is_paused) FROM agents"
            ).fetchone()
            (last_event_at,) = conn.execute("SELECT max(created_at) FROM events").fetchone()
        top = self.leaderboard(limit=1)
        return {
            "totals": {
                "agents": int(agents),
                "active_agents": int(active),
                "bets_resolved": counts.get(EventType.BET_RESOLVED.value, 0),
                "thoughts": counts.get(EventType.THOUGHT.value, 0),
                "chats": counts.get(EventType.CHAT.value, 0),
                "tips": counts.get(EventType.TIP_SENT.value, 0),
                "begs": counts.get(EventType.BEG_REQUESTED.value, 0),
                "limit_hits": counts.get(EventType.LIMIT_HIT.value, 0),
                "bailouts": counts.get(EventType.BAILOUT_GRANTED.value, 0),
            },
            "top_agent": top[0] if top else None,
            "last_event_at": isoformat(last_event_at),
        }

    def prune_rate_limits(self) -> int:
        with self.db.transaction() as uow:
            return self.limiter.prune(uow)


def _check_amount(amount: int) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int) or not 1 <= amount <= MAX_TRANSFER:
        raise InvalidInputError(f"amount must be an integer in 1..{MAX_TRANSFER}", amount=amount)
