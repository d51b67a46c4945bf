"""Pydantic models for wager and fairness endpoints."""

from typing import Any

from pydantic import BaseModel, Field

from casino_ledger.core.games import Game


class BetResponse(BaseModel):
    """Response model for a settled bet."""

    success: bool = True
    win: bool
    payout: int
    outcome: dict[str, Any]
    balance: int


class VerifyRequest(BaseModel):
    """A reveal as published in a ``bet_resolved`` event."""

    server_seed: str = Field(..., min_length=1)
    server_seed_hash: str = Field(..., min_length=64, max_length=64)
    client_seed: str = Field(..., min_length=1)
    nonce: int = Field(..., ge=1)
    game: Game
    committed_hash: str | None = Field(
        None, description="Commitment from the matching bet_placed event"
    )


class VerifyResponse(BaseModel):
    success: bool = True
    valid: bool
    value: float
    hash_matches: bool
    commitment_matches: bool
