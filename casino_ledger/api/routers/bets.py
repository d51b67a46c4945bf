"""Router for wagers and fairness verification."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from casino_ledger.api.dependencies import get_current_agent, get_service
from casino_ledger.api.models import BetResponse, VerifyRequest, VerifyResponse
from casino_ledger.core.agents import Agent
from casino_ledger.core.wagers import BetRequest
from casino_ledger.service import CasinoService

router = APIRouter(tags=["bets"])


@router.post("/bets", response_model=BetResponse)
def place_bet(
    body: BetRequest,
    agent: Agent = Depends(get_current_agent),
    service: CasinoService = Depends(get_service),
) -> BetResponse:
    """Place and settle a coinflip or dice bet.

    The commitment, reveal and next commitment are published in the
    ``bet_placed`` and ``bet_resolved`` feed events.
    """
    result = service.place_bet(agent, body)
    return BetResponse(**result.to_dict())


@router.post("/fair/verify", response_model=VerifyResponse)
def verify(
    body: VerifyRequest,
    service: CasinoService = Depends(get_service),
) -> VerifyResponse:
    """Recompute a draw from its reveal."""
    check = service.verify_bet(
        server_seed=body.server_seed,
        server_seed_hash=body.server_seed_hash,
        client_seed=body.client_seed,
        nonce=body.nonce,
        game=body.game,
        committed_hash=body.committed_hash,
    )
    return VerifyResponse(
        valid=check.ok,
        value=check.value,
        hash_matches=check.hash_matches,
        commitment_matches=check.commitment_matches,
    )
