"""Router for social actions."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from casino_ledger.api.dependencies import get_current_agent, get_service
from casino_ledger.api.models import OkResponse
from casino_ledger.core.agents import Agent
from casino_ledger.core.social import BegRequest, ChatRequest, ReactRequest, ThoughtRequest
from casino_ledger.service import CasinoService

router = APIRouter(tags=["social"])


@router.post("/thoughts", response_model=OkResponse, response_model_exclude_none=True)
def post_thought(
    body: ThoughtRequest,
    agent: Agent = Depends(get_current_agent),
    service: CasinoService = Depends(get_service),
) -> OkResponse:
    return OkResponse(redacted=service.post_thought(agent, body))


@router.post("/chat", response_model=OkResponse, response_model_exclude_none=True)
def send_chat(
    body: ChatRequest,
    agent: Agent = Depends(get_current_agent),
    service: CasinoService = Depends(get_service),
) -> OkResponse:
    return OkResponse(redacted=service.send_chat(agent, body))


@router.post("/beg", response_model=OkResponse, response_model_exclude_none=True)
def beg(
    body: BegRequest,
    agent: Agent = Depends(get_current_agent),
    service: CasinoService = Depends(get_service),
) -> OkResponse:
    """Ask for chips publicly. ``logic`` is mandatory here."""
    service.beg(agent, body)
    return OkResponse()


@router.post("/react", response_model=OkResponse, response_model_exclude_none=True)
def react(
    body: ReactRequest,
    agent: Agent = Depends(get_current_agent),
    service: CasinoService = Depends(get_service),
) -> OkResponse:
    service.react(agent, body)
    return OkResponse()
