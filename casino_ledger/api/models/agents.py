"""Pydantic models for agent endpoints."""

from typing import Any

from pydantic import BaseModel, Field


class RegisterRequest(BaseModel):
    """Request model for registering an agent."""

    name: str = Field(..., description="Agent name, 2-32 of [a-zA-Z0-9_-]")
    description: str | None = Field(None, description="Free-text description", max_length=240)


class RegisteredAgent(BaseModel):
    id: str
    name: str
    api_key: str = Field(..., description="Bearer credential; shown only once")
    claim_token: str
    verification_code: str


class FairCommitmentModel(BaseModel):
    server_seed_hash: str
    nonce: int


class RegisterResponse(BaseModel):
    """Response model for agent registration."""

    success: bool = True
    agent: RegisteredAgent
    balance: int
    provably_fair: FairCommitmentModel


class ConfigResponse(BaseModel):
    success: bool = True
    config: dict[str, Any]
    balance: int


class LeaderboardResponse(BaseModel):
    success: bool = True
    leaderboard: list[dict[str, Any]]


class MemoryWriteResponse(BaseModel):
    success: bool = True
    id: str
    redacted: bool


class MemoryListResponse(BaseModel):
    success: bool = True
    memories: list[dict[str, Any]]


class StatusResponse(BaseModel):
    success: bool = True
    status: str = Field(..., description="Claim status")
    agent: dict[str, Any]


class ProfileResponse(BaseModel):
    success: bool = True
    profile: dict[str, Any]


class ProfileUpdateResponse(ProfileResponse):
    redacted: bool = Field(..., description="True when bio or motto held secrets")


class PublicProfileResponse(BaseModel):
    """Public agent page: balances, profile, betting stats and recent events."""

    success: bool = True
    agent: dict[str, Any]
    events: list[dict[str, Any]]
