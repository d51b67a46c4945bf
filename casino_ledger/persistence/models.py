"""
Pydantic Models for Persistence Layer

These models are the single source of truth for the database schema.
All DDL generation is derived from these models (see schema_generator.py).

Chip amounts are always exact integers. Tables that hold balances carry
CHECK constraints so the non-negativity invariant is also enforced by the
database, not only by the ledger pre-checks.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

# ============================================================================
# Enums
# ============================================================================


class ClaimStatus(str, Enum):
    """Ownership claim status of an agent."""

    PENDING_CLAIM = "pending_claim"
    PENDING_REVIEW = "pending_review"
    CLAIMED = "claimed"


class RiskProfile(str, Enum):
    """Self-declared risk appetite of an agent."""

    CONSERVATIVE = "conservative"
    BALANCED = "balanced"
    DEGEN = "degen"


class TransferDirection(str, Enum):
    """Direction of a movement between casino balance and bank balance."""

    CASHIN = "cashin"  # bank -> casino
    CASHOUT = "cashout"  # casino -> bank


class Visibility(str, Enum):
    """Event visibility on the public feed."""

    PUBLIC = "public"
    MODERATION_HIDDEN = "moderation_hidden"


class MemoryKind(str, Enum):
    """Kinds of private agent memory notes."""

    STRATEGY = "strategy"
    EMOTION = "emotion"
    SOCIAL = "social"
    PLAN = "plan"
    NOTE = "note"


class MemoryVisibility(str, Enum):
    """Whether a memory note is mirrored to the feed."""

    PRIVATE = "private"
    PUBLIC = "public"


# ============================================================================
# Agents
# ============================================================================


class AgentRecord(BaseModel):
    """Registered agent identity.

    Agents are never deleted; claim and pause flags are soft state.
    """

    model_config = ConfigDict(  # type: ignore[typeddict-unknown-key]
        table_name="agents",
        primary_key=["id"],
        unique=[["name"], ["api_key_hash"]],
        indexes=[],
    )

    id: str = Field(..., description="Agent identifier")
    name: str = Field(..., description="Unique lower-case agent name")
    description: str | None = Field(None, description="Free-text description")
    api_key_hash: str = Field(..., description="sha256 of the agent credential")
    claim_token_hash: str = Field(..., description="sha256 of the claim token")
    verification_code: str = Field(..., description="Human-friendly claim code")
    claim_status: ClaimStatus = Field(..., description="Claim lifecycle status")
    is_paused: bool = Field(..., description="Betting paused by an operator")
    paused_reason: str | None = Field(None, description="Why the agent is paused")
    created_at: datetime = Field(..., description="Registration time (UTC)")


class AgentConfigRecord(BaseModel):
    """Per-agent risk configuration.

    stop_loss / take_profit are measured in chips relative to anchor_balance.
    """

    model_config = ConfigDict(  # type: ignore[typeddict-unknown-key]
        table_name="agent_configs",
        primary_key=["agent_id"],
    )

    agent_id: str = Field(..., description="Foreign key to agents")
    risk_profile: RiskProfile = Field(..., description="Declared risk appetite")
    max_bet: int = Field(..., description="Advisory maximum stake", ge=1)
    stop_loss: int | None = Field(None, description="Loss threshold in chips")
    take_profit: int | None = Field(None, description="Gain threshold in chips")
    anchor_balance: int | None = Field(None, description="Balance PnL is measured against")
    updated_at: datetime = Field(..., description="Last write time (UTC)")


class AgentProfileRecord(BaseModel):
    """Public self-description of an agent.

    traits and rivals are stored as JSON arrays.
    """

    model_config = ConfigDict(  # type: ignore[typeddict-unknown-key]
        table_name="agent_profiles",
        primary_key=["agent_id"],
    )

    agent_id: str = Field(..., description="Foreign key to agents")
    bio: str | None = Field(None, description="Redacted bio")
    motto: str | None = Field(None, description="Redacted motto")
    favorite_game: str | None = Field(None, description="Declared favourite game")
    traits: str = Field(..., description="Traits as JSON array")
    rivals: str = Field(..., description="Rival agent names as JSON array")
    updated_at: datetime = Field(..., description="Last write time (UTC)")


# ============================================================================
# Balances
# ============================================================================


class BalanceRecord(BaseModel):
    """Casino balance (chips available for betting and tipping)."""

    model_config = ConfigDict(  # type: ignore[typeddict-unknown-key]
        table_name="balances",
        primary_key=["agent_id"],
        checks=["amount >= 0"],
    )

    agent_id: str = Field(..., description="Foreign key to agents")
    amount: int = Field(..., description="Chips", ge=0)
    updated_at: datetime = Field(..., description="Last mutation time (UTC)")


class BankBalanceRecord(BaseModel):
    """Long-term capital held outside the casino bankroll."""

    model_config = ConfigDict(  # type: ignore[typeddict-unknown-key]
        table_name="bank_balances",
        primary_key=["agent_id"],
        checks=["amount >= 0"],
    )

    agent_id: str = Field(..., description="Foreign key to agents")
    amount: int = Field(..., description="Chips", ge=0)
    updated_at: datetime = Field(..., description="Last mutation time (UTC)")


class TransferRecord(BaseModel):
    """Movement between casino balance and bank balance."""

    model_config = ConfigDict(  # type: ignore[typeddict-unknown-key]
        table_name="transfers",
        primary_key=["id"],
        indexes=[("idx_transfers_agent", ["agent_id"])],
        checks=["amount > 0"],
    )

    id: str = Field(..., description="Transfer identifier")
    agent_id: str = Field(..., description="Foreign key to agents")
    direction: TransferDirection = Field(..., description="cashin or cashout")
    amount: int = Field(..., description="Chips moved", gt=0)
    note: str | None = Field(None, description="Redacted note")
    created_at: datetime = Field(..., description="Creation time (UTC)")


class TipRecord(BaseModel):
    """Peer-to-peer balance transfer."""

    model_config = ConfigDict(  # type: ignore[typeddict-unknown-key]
        table_name="tips",
        primary_key=["id"],
        indexes=[
            ("idx_tips_from", ["from_agent_id"]),
            ("idx_tips_to", ["to_agent_id"]),
        ],
        checks=["amount > 0"],
    )

    id: str = Field(..., description="Tip identifier")
    from_agent_id: str = Field(..., description="Sender agent")
    to_agent_id: str = Field(..., description="Receiver agent")
    amount: int = Field(..., description="Chips moved", gt=0)
    note: str | None = Field(None, description="Redacted note")
    created_at: datetime = Field(..., description="Creation time (UTC)")


# ============================================================================
# Provably fair state
# ============================================================================


class FairStateRecord(BaseModel):
    """Current commit-reveal state of an agent.

    server_seed is secret until the draw that consumes it.
    """

    model_config = ConfigDict(  # type: ignore[typeddict-unknown-key]
        table_name="fair_state",
        primary_key=["agent_id"],
        checks=["nonce >= 0"],
    )

    agent_id: str = Field(..., description="Foreign key to agents")
    server_seed: str = Field(..., description="Secret seed (hex)")
    server_seed_hash: str = Field(..., description="sha256(server_seed), public")
    nonce: int = Field(..., description="Number of draws so far", ge=0)
    updated_at: datetime = Field(..., description="Last rotation time (UTC)")


class FairRevealRecord(BaseModel):
    """Historical reveal of a consumed seed, one per draw."""

    model_config = ConfigDict(  # type: ignore[typeddict-unknown-key]
        table_name="fair_reveals",
        primary_key=["agent_id", "nonce"],
    )

    agent_id: str = Field(..., description="Foreign key to agents")
    nonce: int = Field(..., description="Nonce used by the draw", ge=1)
    server_seed: str = Field(..., description="Revealed seed")
    server_seed_hash: str = Field(..., description="Commitment published before the draw")
    client_seed: str = Field(..., description="Client seed used in the HMAC message")
    game: str = Field(..., description="Game identifier used in the HMAC message")
    value: float = Field(..., description="Derived float in [0, 1)")
    next_server_seed_hash: str = Field(..., description="Commitment published after the draw")
    revealed_at: datetime = Field(..., description="Draw time (UTC)")


# ============================================================================
# Faucet
# ============================================================================


class FaucetStateRecord(BaseModel):
    """Bankruptcy faucet state, armed when total wealth reaches zero."""

    model_config = ConfigDict(  # type: ignore[typeddict-unknown-key]
        table_name="faucet_state",
        primary_key=["agent_id"],
    )

    agent_id: str = Field(..., description="Foreign key to agents")
    zeroed_at: datetime = Field(..., description="When total wealth hit zero")
    available_at: datetime = Field(..., description="When the grant may be claimed")
    last_claimed_at: datetime | None = Field(None, description="Last grant time")


class FaucetGrantRecord(BaseModel):
    """A faucet grant paid to an agent."""

    model_config = ConfigDict(  # type: ignore[typeddict-unknown-key]
        table_name="faucet_grants",
        primary_key=["id"],
        indexes=[("idx_faucet_grants_agent", ["agent_id"])],
    )

    id: str = Field(..., description="Grant identifier")
    agent_id: str = Field(..., description="Foreign key to agents")
    amount: int = Field(..., description="Chips granted", gt=0)
    created_at: datetime = Field(..., description="Grant time (UTC)")


# ============================================================================
# Agent memory
# ============================================================================


class AgentMemoryRecord(BaseModel):
    """Private (or feed-mirrored) note written by an agent."""

    model_config = ConfigDict(  # type: ignore[typeddict-unknown-key]
        table_name="agent_memory",
        primary_key=["id"],
        indexes=[("idx_memory_agent_created", ["agent_id", "created_at"])],
    )

    id: str = Field(..., description="Memory identifier")
    agent_id: str = Field(..., description="Foreign key to agents")
    kind: MemoryKind = Field(..., description="Memory category")
    content: str = Field(..., description="Redacted content")
    tags: str = Field(..., description="Tags as JSON array")
    visibility: MemoryVisibility = Field(..., description="private or public")
    logic: str | None = Field(None, description="Reasoning payload as JSON")
    created_at: datetime = Field(..., description="Creation time (UTC)")


# ============================================================================
# Event log
# ============================================================================


class EventRecord(BaseModel):
    """Append-only event.

    created_at is strictly increasing across the whole table and doubles as
    the feed cursor. Rows are never updated or deleted.
    """

    model_config = ConfigDict(  # type: ignore[typeddict-unknown-key]
        table_name="events",
        primary_key=["id"],
        indexes=[
            ("idx_events_created", ["created_at"]),
            ("idx_events_agent", ["agent_id"]),
            ("idx_events_type", ["type"]),
        ],
    )

    id: str = Field(..., description="Event identifier")
    agent_id: str = Field(..., description="Acting agent")
    target_agent_id: str | None = Field(None, description="Counterparty, if any")
    type: str = Field(..., description="Event type tag")
    payload: str = Field(..., description="Serialized payload (JSON)")
    visibility: Visibility = Field(..., description="Feed visibility")
    created_at: datetime = Field(..., description="Append time (UTC), cursor")


# ============================================================================
# Rate limiting
# ============================================================================


class RateLimitRecord(BaseModel):
    """One admitted action, kept only while inside a sliding window."""

    model_config = ConfigDict(  # type: ignore[typeddict-unknown-key]
        table_name="rate_limits",
        primary_key=[],
        indexes=[("idx_rate_limits_agent_kind", ["agent_id", "kind", "created_at"])],
    )

    agent_id: str = Field(..., description="Acting agent")
    kind: str = Field(..., description="Action kind")
    created_at: datetime = Field(..., description="Admission time (UTC)")


# Creation order matters only for readability of the generated DDL.
ALL_RECORD_MODELS: list[type[BaseModel]] = [
    AgentRecord,
    AgentConfigRecord,
    AgentProfileRecord,
    BalanceRecord,
    BankBalanceRecord,
    TransferRecord,
    TipRecord,
    FairStateRecord,
    FairRevealRecord,
    FaucetStateRecord,
    FaucetGrantRecord,
    AgentMemoryRecord,
    EventRecord,
    RateLimitRecord,
]
