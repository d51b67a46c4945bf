"""Configuration module for the casino ledger."""
from pydantic import ValidationError

from .loader import load_config
from .schemas import (
    AgentDefaults,
    CasinoConfig,
    DatabaseSettings,
    EconomySettings,
    FeedSettings,
    LoggingSettings,
    RateLimitSettings,
)

__all__ = [
    "AgentDefaults",
    "CasinoConfig",
    "DatabaseSettings",
    "EconomySettings",
    "FeedSettings",
    "LoggingSettings",
    "RateLimitSettings",
    "ValidationError",
    "load_config",
]
