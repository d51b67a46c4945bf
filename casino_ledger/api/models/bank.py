"""Pydantic models for tips, bank transfers and the faucet."""

from typing import Any, Literal

from pydantic import BaseModel, Field

from casino_ledger.core.reasoning import Reasoning


class TipRequest(BaseModel):
    to: str = Field(..., min_length=2, max_length=32, description="Recipient agent name")
    amount: int = Field(..., ge=1, le=100_000)
    note: str | None = Field(None, max_length=160)
    logic: Reasoning | None = None


class TipResponse(BaseModel):
    success: bool = True
    amount: int
    from_balance: int
    to_balance: int


class CashRequest(BaseModel):
    amount: int = Field(..., ge=1, le=100_000)
    note: str | None = Field(None, max_length=280)
    logic: Reasoning | None = None


class CashResponse(BaseModel):
    success: bool = True
    amount: int
    casino_balance: int
    bank_balance: int


class FaucetClaimRequest(BaseModel):
    confirm: Literal[True]


class FaucetClaimResponse(BaseModel):
    success: bool = True
    amount: int
    balance: int


class FaucetStatusResponse(BaseModel):
    success: bool = True
    faucet: dict[str, Any]
