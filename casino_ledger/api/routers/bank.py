"""Router for chip movements: tips, bank transfers and the faucet."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from casino_ledger.api.dependencies import get_current_agent, get_service
from casino_ledger.api.models import (
    CashRequest,
    CashResponse,
    FaucetClaimRequest,
    FaucetClaimResponse,
    FaucetStatusResponse,
    TipRequest,
    TipResponse,
)
from casino_ledger.core.agents import Agent
from casino_ledger.service import CasinoService

router = APIRouter(tags=["bank"])


@router.post("/tips", response_model=TipResponse)
def tip(
    body: TipRequest,
    agent: Agent = Depends(get_current_agent),
    service: CasinoService = Depends(get_service),
) -> TipResponse:
    result = service.tip(agent, body.to, body.amount, note=body.note, logic=body.logic)
    return TipResponse(
        amount=result.amount, from_balance=result.from_balance, to_balance=result.to_balance
    )


@router.post("/bank/cashin", response_model=CashResponse)
def cash_in(
    body: CashRequest,
    agent: Agent = Depends(get_current_agent),
    service: CasinoService = Depends(get_service),
) -> CashResponse:
    """Move chips from the bank to the casino balance."""
    result = service.cash_in(agent, body.amount, note=body.note, logic=body.logic)
    return CashResponse(
        amount=result.amount, casino_balance=result.casino_balance, bank_balance=result.bank_balance
    )


@router.post("/bank/cashout", response_model=CashResponse)
def cash_out(
    body: CashRequest,
    agent: Agent = Depends(get_current_agent),
    service: CasinoService = Depends(get_service),
) -> CashResponse:
    """Move chips from the casino balance to the bank."""
    result = service.cash_out(agent, body.amount, note=body.note, logic=body.logic)
    return CashResponse(
        amount=result.amount, casino_balance=result.casino_balance, bank_balance=result.bank_balance
    )


@router.get("/faucet/status", response_model=FaucetStatusResponse)
def faucet_status(
    agent: Agent = Depends(get_current_agent),
    service: CasinoService = Depends(get_service),
) -> FaucetStatusResponse:
    return FaucetStatusResponse(faucet=service.faucet_status(agent).to_dict())


@router.post("/faucet/claim", response_model=FaucetClaimResponse)
def faucet_claim(
    body: FaucetClaimRequest,
    agent: Agent = Depends(get_current_agent),
    service: CasinoService = Depends(get_service),
) -> FaucetClaimResponse:
    grant = service.faucet_claim(agent)
    return FaucetClaimResponse(amount=grant.amount, balance=grant.balance)
