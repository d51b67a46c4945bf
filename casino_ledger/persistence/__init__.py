"""
Persistence layer for the casino ledger.

Provides DuckDB-based storage: Pydantic record models that generate the
schema, a connection manager with migrations, and the transactional store.
"""

from .connection import DatabaseManager
from .models import (
    ALL_RECORD_MODELS,
    AgentConfigRecord,
    AgentMemoryRecord,
    AgentProfileRecord,
    AgentRecord,
    BalanceRecord,
    BankBalanceRecord,
    ClaimStatus,
    EventRecord,
    FairRevealRecord,
    FairStateRecord,
    FaucetGrantRecord,
    FaucetStateRecord,
    MemoryKind,
    MemoryVisibility,
    RateLimitRecord,
    RiskProfile,
    TipRecord,
    TransferDirection,
    TransferRecord,
    Visibility,
)
from .store import LedgerDatabase, UnitOfWork

__all__ = [
    "ALL_RECORD_MODELS",
    "AgentConfigRecord",
    "AgentMemoryRecord",
    "AgentProfileRecord",
    "AgentRecord",
    "BalanceRecord",
    "BankBalanceRecord",
    "ClaimStatus",
    "DatabaseManager",
    "EventRecord",
    "FairRevealRecord",
    "FairStateRecord",
    "FaucetGrantRecord",
    "FaucetStateRecord",
    "LedgerDatabase",
    "MemoryKind",
    "MemoryVisibility",
    "RateLimitRecord",
    "RiskProfile",
    "TipRecord",
    "TransferDirection",
    "TransferRecord",
    "UnitOfWork",
    "Visibility",
]
