"""Event Log.

The log is an append-only, ordered record of every state change and the sole
source of truth for the feed. Each event type has its own Pydantic payload
model; payloads are stored as JSON so event types added later (or unknown to
this release) still round-trip unchanged.

Appends are staged on a UnitOfWork and written when it commits, so an event
is visible if and only if the state change it describes is.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Iterable, Iterator
from datetime import datetime
from enum import Enum
from typing import Any, Callable

from pydantic import BaseModel, ConfigDict, Field

from casino_ledger.core.clock import isoformat, parse_timestamp
from casino_ledger.core.errors import InvalidInputError
from casino_ledger.persistence.store import LedgerDatabase, UnitOfWork

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    AGENT_REGISTERED = "agent_registered"
    CONFIG_UPDATED = "config_updated"
    PROFILE_UPDATED = "profile_updated"
    AGENT_PAUSED = "agent_paused"
    AGENT_RESUMED = "agent_resumed"
    BET_PLACED = "bet_placed"
    BET_RESOLVED = "bet_resolved"
    LIMIT_HIT = "limit_hit"
    BROKE = "broke"
    TIP_SENT = "tip_sent"
    CASHIN = "cashin"
    CASHOUT = "cashout"
    BAILOUT_GRANTED = "bailout_granted"
    BAILOUT_DENIED_TOO_SOON = "bailout_denied_too_soon"
    THOUGHT = "thought"
    CHAT = "chat"
    BEG_REQUESTED = "beg_requested"
    SOCIAL_SIGNAL = "social_signal"
    MEMORY_WRITTEN = "memory_written"


# ============================================================================
# Payload schemas
# ============================================================================


class EventPayload(BaseModel):
    """Base for typed payloads. Extra keys are kept for forward compatibility."""

    model_config = ConfigDict(extra="allow")


class FairCommitmentPayload(BaseModel):
    server_seed_hash: str
    nonce: int


class AgentRegisteredPayload(EventPayload):
    verification_code: str
    fair_commit: FairCommitmentPayload


class ConfigUpdatedPayload(EventPayload):
    risk_profile: str
    max_bet: int
    stop_loss: int | None = None
    take_profit: int | None = None
    anchor_balance: int | None = None
    anchor_reset: bool = False


class ProfileUpdatedPayload(EventPayload):
    favorite_game: str | None = None
    traits_count: int
    rivals_count: int


class PauseChangedPayload(EventPayload):
    reason: str | None = None


class BetCommitmentPayload(BaseModel):
    client_seed: str
    server_seed_hash: str
    nonce: int


class BetPlacedPayload(EventPayload):
    game: str
    stake: int
    choice: str | None = None
    target: int | None = None
    direction: str | None = None
    note: str | None = None
    logic: dict[str, Any] | None = None
    balance_before: int
    balance: int
    provably_fair: BetCommitmentPayload


class RevealPayload(BaseModel):
    server_seed: str
    server_seed_hash: str
    nonce: int
    client_seed: str


class BetRevealPayload(BaseModel):
    reveal: RevealPayload
    next_server_seed_hash: str


class BetResolvedPayload(EventPayload):
    game: str
    stake: int
    win: bool
    payout: int
    outcome: dict[str, Any]
    balance_before: int
    balance: int
    provably_fair: BetRevealPayload


class LimitHitPayload(EventPayload):
    kind: str
    action: str | None = None
    balance: int | None = None
    anchor_balance: int | None = None
    stop_loss: int | None = None
    take_profit: int | None = None
    required: int | None = None
    retry_after_seconds: int | None = None


class BrokePayload(EventPayload):
    available_at: str


class TipSentPayload(EventPayload):
    to: str
    amount: int
    note: str | None = None
    logic: dict[str, Any] | None = None
    from_balance: int
    to_balance: int


class CashTransferPayload(EventPayload):
    amount: int
    note: str | None = None
    logic: dict[str, Any] | None = None
    casino_balance: int
    bank_balance: int


class BailoutGrantedPayload(EventPayload):
    amount: int
    balance: int


class BailoutDeniedPayload(EventPayload):
    remaining_seconds: int


class ThoughtPayload(EventPayload):
    content: str
    mood: str | None = None
    stage: str | None = None
    logic: dict[str, Any] | None = None
    redacted: bool = False


class ChatPayload(EventPayload):
    to: str
    content: str
    logic: dict[str, Any] | None = None
    redacted: bool = False


class BegRequestedPayload(EventPayload):
    to: str | None = None
    amount: int | None = None
    reason: str
    logic: dict[str, Any]


class SocialSignalPayload(EventPayload):
    to: str | None = None
    signal: str
    intensity: float
    content: str
    logic: dict[str, Any] | None = None


class MemoryWrittenPayload(EventPayload):
    kind: str
    tags_count: int
    logic: dict[str, Any] | None = None


PAYLOAD_MODELS: dict[EventType, type[EventPayload]] = {
    EventType.AGENT_REGISTERED: AgentRegisteredPayload,
    EventType.CONFIG_UPDATED: ConfigUpdatedPayload,
    EventType.PROFILE_UPDATED: ProfileUpdatedPayload,
    EventType.AGENT_PAUSED: PauseChangedPayload,
    EventType.AGENT_RESUMED: PauseChangedPayload,
    EventType.BET_PLACED: BetPlacedPayload,
    EventType.BET_RESOLVED: BetResolvedPayload,
    EventType.LIMIT_HIT: LimitHitPayload,
    EventType.BROKE: BrokePayload,
    EventType.TIP_SENT: TipSentPayload,
    EventType.CASHIN: CashTransferPayload,
    EventType.CASHOUT: CashTransferPayload,
    EventType.BAILOUT_GRANTED: BailoutGrantedPayload,
    EventType.BAILOUT_DENIED_TOO_SOON: BailoutDeniedPayload,
    EventType.THOUGHT: ThoughtPayload,
    EventType.CHAT: ChatPayload,
    EventType.BEG_REQUESTED: BegRequestedPayload,
    EventType.SOCIAL_SIGNAL: SocialSignalPayload,
    EventType.MEMORY_WRITTEN: MemoryWrittenPayload,
}


def parse_payload(event_type: str, payload: dict[str, Any]) -> EventPayload | dict[str, Any]:
    """Return the typed payload for known event types, the raw dict otherwise."""
    try:
        model = PAYLOAD_MODELS[EventType(event_type)]
    except ValueError:
        return payload
    return model.model_validate(payload)


# ============================================================================
# Read model
# ============================================================================


class Event(BaseModel):
    """An event as read back from the log."""

    id: str
    agent_id: str
    agent: str | None = Field(None, description="Acting agent name")
    target_agent_id: str | None = None
    type: str
    payload: dict[str, Any]
    visibility: str
    created_at: datetime

    @property
    def cursor(self) -> str:
        return isoformat(self.created_at)  # type: ignore[return-value]

    def typed_payload(self) -> EventPayload | dict[str, Any]:
        return parse_payload(self.type, self.payload)

    def to_feed_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "ts": self.cursor,
            "type": self.type,
            "agent": self.agent,
            "targetAgentId": self.target_agent_id,
            "payload": self.payload,
        }


_SELECT_EVENTS = """
    SELECT e.id, e.agent_id, a.name, e.target_agent_id, e.type, e.payload,
           e.visibility, e.created_at
    FROM events e
    LEFT JOIN agents a ON a.id = e.agent_id
"""


def _row_to_event(row: tuple) -> Event:
    return Event(
        id=row[0],
        agent_id=row[1],
        agent=row[2],
        target_agent_id=row[3],
        type=row[4],
        payload=json.loads(row[5]),
        visibility=row[6],
        created_at=row[7],
    )


class EventLog:
    """Append path and read interface of the event log."""

    def __init__(self, db: LedgerDatabase, max_page_size: int = 200) -> None:
        self.db = db
        self.max_page_size = max_page_size

    # ------------------------------------------------------------------
    # Append
    # ------------------------------------------------------------------

    def append(
        self,
        uow: UnitOfWork,
        agent_id: str,
        event_type: EventType,
        payload: EventPayload,
        target_agent_id: str | None = None,
        visibility: str = "public",
    ) -> str:
        """Stage an event on ``uow``; it is written when the unit of work commits.

        Returns:
            The event id
        """
        expected = PAYLOAD_MODELS[event_type]
        if not isinstance(payload, expected):
            raise TypeError(f"{event_type.value} expects {expected.__name__}, got {type(payload).__name__}")

        staged = uow.stage_event(
            agent_id=agent_id,
            event_type=event_type.value,
            payload=payload.model_dump_json(),
            visibility=visibility,
            target_agent_id=target_agent_id,
        )
        return staged.id

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def list_events(
        self,
        before: str | datetime | None = None,
        limit: int = 50,
        agent_id: str | None = None,
        types: Iterable[str] | None = None,
        include_hidden: bool = False,
    ) -> list[Event]:
        """Newest-first page of events strictly older than ``before``."""
        limit = self._clamp(limit)
        clauses, params = self._filters(agent_id, types, include_hidden)
        if before is not None:
            clauses.append("e.created_at < ?")
            params.append(self._cursor(before))

        sql = _SELECT_EVENTS
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY e.created_at DESC LIMIT ?"
        params.append(limit)

        with self.db.reader() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [_row_to_event(row) for row in rows]

    def events_since(
        self,
        since: str | datetime | None = None,
        limit: int = 100,
        agent_id: str | None = None,
        types: Iterable[str] | None = None,
    ) -> list[Event]:
        """Oldest-first events strictly newer than ``since`` (all when None)."""
        limit = self._clamp(limit)
        clauses, params = self._filters(agent_id, types, include_hidden=False)
        if since is not None:
            clauses.append("e.created_at > ?")
            params.append(self._cursor(since))

        sql = _SELECT_EVENTS
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY e.created_at ASC LIMIT ?"
        params.append(limit)

        with self.db.reader() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [_row_to_event(row) for row in rows]

    def stream(
        self,
        since: str | datetime | None = None,
        poll_interval: float = 1.0,
        should_stop: Callable[[], bool] | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> Iterator[Event]:
        """Follow the log from ``since``, polling for new events.

        Readers never block writers: every poll is an independent snapshot
        read, and the cursor only moves past events that were returned.
        """
        cursor = since
        while not (should_stop and should_stop()):
            batch = self.events_since(cursor)
            for event in batch:
                cursor = event.created_at
                yield event
            if not batch:
                sleep(poll_interval)

    def count_by_type(self) -> dict[str, int]:
        with self.db.reader() as conn:
            rows = conn.execute("SELECT type, COUNT(*) FROM events GROUP BY type").fetchall()
        return {row[0]: int(row[1]) for row in rows}

    def payloads(self, agent_id: str, event_type: EventType) -> list[dict[str, Any]]:
        """Every payload of one type written by an agent, oldest first."""
        with self.db.reader() as conn:
            rows = conn.execute(
                "SELECT payload FROM events WHERE agent_id = ? AND type = ? ORDER BY created_at",
                [agent_id, event_type.value],
            ).fetchall()
        return [json.loads(row[0]) for row in rows]

    # ------------------------------------------------------------------

    def _clamp(self, limit: int) -> int:
        if limit < 1:
            raise InvalidInputError("limit must be at least 1", limit=limit)
        return min(limit, self.max_page_size)

    @staticmethod
    def _cursor(value: str | datetime) -> datetime:
        try:
            return parse_timestamp(value)
        except ValueError as e:
            raise InvalidInputError(f"Invalid cursor {value!r}", cursor=str(value)) from e

    @staticmethod
    def _filters(
        agent_id: str | None, types: Iterable[str] | None, include_hidden: bool
    ) -> tuple[list[str], list[Any]]:
        clauses: list[str] = []
        params: list[Any] = []
        if not include_hidden:
            clauses.append("e.visibility = 'public'")
        if agent_id is not None:
            clauses.append("e.agent_id = ?")
            params.append(agent_id)
        type_list = list(types or [])
        if type_list:
            clauses.append(f"e.type IN ({', '.join('?' for _ in type_list)})")
            params.extend(type_list)
        return clauses, params
