"""Pydantic models for API request/response schemas."""

from .agents import (
    ConfigResponse,
    FairCommitmentModel,
    LeaderboardResponse,
    MemoryListResponse,
    MemoryWriteResponse,
    ProfileResponse,
    ProfileUpdateResponse,
    PublicProfileResponse,
    RegisteredAgent,
    RegisterRequest,
    RegisterResponse,
    StatusResponse,
)
from .bank import (
    CashRequest,
    CashResponse,
    FaucetClaimRequest,
    FaucetClaimResponse,
    FaucetStatusResponse,
    TipRequest,
    TipResponse,
)
from .bets import BetResponse, VerifyRequest, VerifyResponse
from .feed import FeedEvent, FeedResponse, OkResponse, StatsResponse

__all__ = [
    "BetResponse",
    "CashRequest",
    "CashResponse",
    "ConfigResponse",
    "FairCommitmentModel",
    "FaucetClaimRequest",
    "FaucetClaimResponse",
    "FaucetStatusResponse",
    "FeedEvent",
    "FeedResponse",
    "LeaderboardResponse",
    "MemoryListResponse",
    "MemoryWriteResponse",
    "OkResponse",
    "ProfileResponse",
    "ProfileUpdateResponse",
    "PublicProfileResponse",
    "RegisterRequest",
    "RegisterResponse",
    "RegisteredAgent",
    "StatsResponse",
    "StatusResponse",
    "TipRequest",
    "TipResponse",
    "VerifyRequest",
    "VerifyResponse",
]
