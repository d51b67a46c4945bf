"""Router for agent endpoints.

Handles registration, status, state, configuration, profiles, memory and
the leaderboard.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from casino_ledger.api.dependencies import get_current_agent, get_service
from casino_ledger.api.models import (
    ConfigResponse,
    LeaderboardResponse,
    MemoryListResponse,
    MemoryWriteResponse,
    ProfileResponse,
    ProfileUpdateResponse,
    PublicProfileResponse,
    RegisterRequest,
    RegisterResponse,
    StatusResponse,
)
from casino_ledger.core.agents import Agent, ConfigUpdate
from casino_ledger.core.profiles import ProfileUpdate
from casino_ledger.core.social import MemoryRequest
from casino_ledger.persistence.models import MemoryKind, MemoryVisibility
from casino_ledger.service import CasinoService

router = APIRouter(prefix="/agents", tags=["agents"])


@router.post("/register", response_model=RegisterResponse)
def register_agent(
    body: RegisterRequest,
    service: CasinoService = Depends(get_service),
) -> RegisterResponse:
    """Register a new agent.

    The response carries the API key exactly once; only its hash is stored.
    """
    registration = service.register_agent(body.name, body.description)
    return RegisterResponse.model_validate(registration.to_dict())


@router.get("/me/state")
def get_state(
    agent: Agent = Depends(get_current_agent),
    service: CasinoService = Depends(get_service),
) -> dict:
    return {"success": True, **service.get_state(agent)}


@router.get("/me/config", response_model=ConfigResponse)
def get_config(
    agent: Agent = Depends(get_current_agent),
    service: CasinoService = Depends(get_service),
) -> ConfigResponse:
    config, balance = service.get_config(agent)
    return ConfigResponse(config=config.to_dict(), balance=balance)


@router.patch("/me/config", response_model=ConfigResponse)
def update_config(
    body: ConfigUpdate,
    agent: Agent = Depends(get_current_agent),
    service: CasinoService = Depends(get_service),
) -> ConfigResponse:
    """Update risk settings.

    Omitted fields are unchanged; ``stop_loss``/``take_profit`` accept null
    to clear. ``reset_anchor`` moves the PnL anchor to the current balance.
    """
    config = service.update_config(agent, body)
    _, balance = service.get_config(agent)
    return ConfigResponse(config=config.to_dict(), balance=balance)


@router.get("/me/memory", response_model=MemoryListResponse)
def list_memories(
    kind: MemoryKind | None = Query(None),
    visibility: MemoryVisibility | None = Query(None),
    limit: int = Query(50, ge=1, le=200),
    agent: Agent = Depends(get_current_agent),
    service: CasinoService = Depends(get_service),
) -> MemoryListResponse:
    memories = service.list_memories(agent, kind=kind, visibility=visibility, limit=limit)
    return MemoryListResponse(memories=[m.to_dict() for m in memories])


@router.post("/me/memory", response_model=MemoryWriteResponse)
def write_memory(
    body: MemoryRequest,
    agent: Agent = Depends(get_current_agent),
    service: CasinoService = Depends(get_service),
) -> MemoryWriteResponse:
    memory_id, redacted = service.write_memory(agent, body)
    return MemoryWriteResponse(id=memory_id, redacted=redacted)


@router.get("/leaderboard", response_model=LeaderboardResponse)
def leaderboard(
    limit: int = Query(50, ge=1, le=200),
    service: CasinoService = Depends(get_service),
) -> LeaderboardResponse:
    return LeaderboardResponse(leaderboard=service.leaderboard(limit))


@router.get("/status", response_model=StatusResponse)
def get_status(
    agent: Agent = Depends(get_current_agent),
    service: CasinoService = Depends(get_service),
) -> StatusResponse:
    return StatusResponse(**service.get_status(agent))


@router.get("/me/profile", response_model=ProfileResponse)
def get_profile(
    agent: Agent = Depends(get_current_agent),
    service: CasinoService = Depends(get_service),
) -> ProfileResponse:
    return ProfileResponse(profile=service.get_profile(agent).to_dict())


@router.patch("/me/profile", response_model=ProfileUpdateResponse)
def update_profile(
    body: ProfileUpdate,
    agent: Agent = Depends(get_current_agent),
    service: CasinoService = Depends(get_service),
) -> ProfileUpdateResponse:
    """Update the public profile.

    Omitted fields are unchanged; null clears a field. Secrets in ``bio``
    and ``motto`` are replaced with ``[REDACTED]``.
    """
    profile, redacted = service.update_profile(agent, body)
    return ProfileUpdateResponse(profile=profile.to_dict(), redacted=redacted)


@router.get("/profile", response_model=PublicProfileResponse)
def public_profile(
    name: str = Query(..., min_length=1, description="Agent name"),
    service: CasinoService = Depends(get_service),
) -> PublicProfileResponse:
    """Public profile with betting stats derived from the event log."""
    return PublicProfileResponse(**service.public_profile(name))
