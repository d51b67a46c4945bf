"""Social actions: thoughts, chat, begging, reactions and agent memory.

None of these touch balances. Free text is scrubbed by ``redact`` before it
is stored or published, and every action leaves exactly one event.
"""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime
from enum import Enum
from typing import Annotated, Any

from pydantic import BaseModel, Field

from casino_ledger.core.agents import Agent, AgentRegistry
from casino_ledger.core.clock import isoformat
from casino_ledger.core.errors import InvalidInputError, TargetNotFoundError
from casino_ledger.core.events import (
    BegRequestedPayload,
    ChatPayload,
    EventLog,
    EventType,
    MemoryWrittenPayload,
    SocialSignalPayload,
    ThoughtPayload,
)
from casino_ledger.core.reasoning import Reasoning
from casino_ledger.core.redact import redact
from casino_ledger.persistence.models import MemoryKind, MemoryVisibility
from casino_ledger.persistence.store import UnitOfWork

logger = logging.getLogger(__name__)

MAX_MEMORY_PAGE = 200


class Signal(str, Enum):
    HYPE = "hype"
    PRAISE = "praise"
    RIDICULE = "ridicule"
    DOUBT = "doubt"
    SILENCE = "silence"


# ============================================================================
# Requests
# ============================================================================


class ThoughtRequest(BaseModel):
    content: str = Field(..., min_length=1, max_length=500)
    mood: str | None = Field(None, max_length=40)
    stage: str | None = Field(None, max_length=40)
    logic: Reasoning | None = None


class ChatRequest(BaseModel):
    to: str = Field(..., min_length=2, max_length=32, description="Recipient agent name")
    content: str = Field(..., min_length=1, max_length=280)
    logic: Reasoning | None = None


class BegRequest(BaseModel):
    """A public plea for chips. Unlike other actions, reasoning is required."""

    to: str | None = Field(None, min_length=2, max_length=32)
    amount: int | None = Field(None, ge=1, le=100_000)
    reason: str = Field(..., min_length=1, max_length=240)
    logic: Reasoning


class ReactRequest(BaseModel):
    to: str | None = Field(None, min_length=1, max_length=64)
    signal: Signal
    intensity: float = Field(0.5, ge=0.0, le=1.0)
    content: str = Field(..., min_length=1, max_length=240)
    logic: Reasoning | None = None


class MemoryRequest(BaseModel):
    kind: MemoryKind
    content: str = Field(..., min_length=1, max_length=2000)
    tags: list[Annotated[str, Field(min_length=1, max_length=24)]] = Field(
        default_factory=list, max_length=12
    )
    visibility: MemoryVisibility = MemoryVisibility.PRIVATE
    logic: Reasoning | None = None


class Memory(BaseModel):
    id: str
    kind: MemoryKind
    content: str
    tags: list[str]
    visibility: MemoryVisibility
    logic: dict[str, Any] | None = None
    created_at: datetime

    def to_dict(self) -> dict[str, Any]:
        out = self.model_dump(mode="json")
        out["created_at"] = isoformat(self.created_at)
        return out


def _logic(reasoning: Reasoning | None) -> dict[str, Any] | None:
    return reasoning.to_payload() if reasoning else None


# ============================================================================
# Actions
# ============================================================================


class SocialActions:
    def __init__(self, registry: AgentRegistry, events: EventLog) -> None:
        self.registry = registry
        self.events = events

    def _target(self, uow: UnitOfWork, name: str) -> Agent:
        target = self.registry.find_by_name(uow, name)
        if target is None:
            raise TargetNotFoundError(name.strip().lower())
        return target

    def post_thought(self, uow: UnitOfWork, agent: Agent, request: ThoughtRequest) -> bool:
        """Publish a thought. Returns whether anything was redacted."""
        scrubbed = redact(request.content)
        self.events.append(
            uow,
            agent.id,
            EventType.THOUGHT,
            ThoughtPayload(
                content=scrubbed.text,
                mood=request.mood,
                stage=request.stage,
                logic=_logic(request.logic),
                redacted=scrubbed.redacted,
            ),
        )
        return scrubbed.redacted

    def send_chat(self, uow: UnitOfWork, agent: Agent, request: ChatRequest) -> bool:
        target = self._target(uow, request.to)
        scrubbed = redact(request.content)
        self.events.append(
            uow,
            agent.id,
            EventType.CHAT,
            ChatPayload(
                to=target.name,
                content=scrubbed.text,
                logic=_logic(request.logic),
                redacted=scrubbed.redacted,
            ),
            target_agent_id=target.id,
        )
        return scrubbed.redacted

    def beg(self, uow: UnitOfWork, agent: Agent, request: BegRequest) -> None:
        target = self._target(uow, request.to) if request.to else None
        self.events.append(
            uow,
            agent.id,
            EventType.BEG_REQUESTED,
            BegRequestedPayload(
                to=target.name if target else None,
                amount=request.amount,
                reason=redact(request.reason).text,
                logic=request.logic.to_payload(),
            ),
            target_agent_id=target.id if target else None,
        )
        logger.info("Beg agent=%s to=%s amount=%s", agent.name, request.to, request.amount)

    def react(self, uow: UnitOfWork, agent: Agent, request: ReactRequest) -> None:
        target = None
        if request.to and request.to.strip():
            target = self._target(uow, request.to)
        self.events.append(
            uow,
            agent.id,
            EventType.SOCIAL_SIGNAL,
            SocialSignalPayload(
                to=target.name if target else None,
                signal=request.signal.value,
                intensity=request.intensity,
                content=redact(request.content).text,
                logic=_logic(request.logic),
            ),
            target_agent_id=target.id if target else None,
        )

    # ------------------------------------------------------------------
    # Memory
    # ------------------------------------------------------------------

    def write_memory(self, uow: UnitOfWork, agent: Agent, request: MemoryRequest) -> tuple[str, bool]:
        """Store a memory note.

        Public notes are mirrored to the feed as a ``thought`` (stage
        ``memory_public``); private ones only announce that a note was written.

        Returns:
            (memory id, whether the content was redacted)
        """
        scrubbed = redact(request.content)
        memory_id = uuid.uuid4().hex
        logic = _logic(request.logic)
        uow.execute(
            """
            INSERT INTO agent_memory (id, agent_id, kind, content, tags, visibility, logic, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [
                memory_id,
                agent.id,
                request.kind.value,
                scrubbed.text,
                json.dumps(request.tags),
                request.visibility.value,
                json.dumps(logic) if logic is not None else None,
                uow.now,
            ],
        )

        if request.visibility is MemoryVisibility.PUBLIC:
            self.events.append(
                uow,
                agent.id,
                EventType.THOUGHT,
                ThoughtPayload(
                    content=scrubbed.text,
                    mood=request.kind.value,
                    stage="memory_public",
                    logic=logic,
                    redacted=scrubbed.redacted,
                ),
            )
        else:
            self.events.append(
                uow,
                agent.id,
                EventType.MEMORY_WRITTEN,
                MemoryWrittenPayload(kind=request.kind.value, tags_count=len(request.tags), logic=logic),
            )
        return memory_id, scrubbed.redacted

    def list_memories(
        self,
        uow: UnitOfWork,
        agent: Agent,
        kind: MemoryKind | str | None = None,
        visibility: MemoryVisibility | str | None = None,
        limit: int = 50,
    ) -> list[Memory]:
        """An agent's own memory notes, newest first."""
        if limit < 1:
            raise InvalidInputError("limit must be at least 1", limit=limit)
        try:
            kind = MemoryKind(kind) if kind is not None else None
            visibility = MemoryVisibility(visibility) if visibility is not None else None
        except ValueError as e:
            raise InvalidInputError(str(e)) from e

        sql = """
            SELECT id, kind, content, tags, visibility, logic, created_at
            FROM agent_memory WHERE agent_id = ?
        """
        params: list[Any] = [agent.id]
        if kind is not None:
            sql += " AND kind = ?"
            params.append(kind.value)
        if visibility is not None:
            sql += " AND visibility = ?"
            params.append(visibility.value)
        sql += " ORDER BY created_at DESC LIMIT ?"
        params.append(min(limit, MAX_MEMORY_PAGE))

        return [
            Memory(
                id=row[0],
                kind=MemoryKind(row[1]),
                content=row[2],
                tags=json.loads(row[3]) if row[3] else [],
                visibility=MemoryVisibility(row[4]),
                logic=json.loads(row[5]) if row[5] else None,
                created_at=row[6],
            )
            for row in uow.fetchall(sql, params)
        ]
