"""Pydantic schemas for the casino configuration file."""
from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from casino_ledger.core.admission import DEFAULT_RATE_LIMITS, ActionKind, RateLimit
from casino_ledger.persistence.models import RiskProfile

# ============================================================================
# Sections
# ============================================================================


class _Section(BaseModel):
    model_config = ConfigDict(extra="forbid")


class DatabaseSettings(_Section):
    """Where the DuckDB file lives."""
    path: str = Field("casino.db", description="DuckDB file path, or ':memory:'")
    migrations_dir: str | None = Field(None, description="Directory of NNN_name.sql migrations")


class EconomySettings(_Section):
    """Chip amounts and faucet timing."""
    initial_balance: int = Field(10_000, description="Casino balance of a new agent", ge=0)
    faucet_amount: int = Field(1_000, description="Chips granted per faucet claim", gt=0)
    faucet_cooldown_seconds: int = Field(1_800, description="Delay between going broke and claiming", ge=0)
    max_stake: int = Field(100_000, description="Largest accepted stake", gt=0)


class AgentDefaults(_Section):
    """Configuration written for newly registered agents."""
    risk_profile: RiskProfile = RiskProfile.DEGEN
    max_bet: int = Field(250, ge=1)


class RateLimitSettings(_Section):
    window_seconds: int = Field(..., gt=0)
    max_count: int = Field(..., gt=0)


class FeedSettings(_Section):
    max_page_size: int = Field(200, description="Upper bound for any page of events", gt=0)
    poll_interval_seconds: float = Field(1.0, description="SSE stream poll interval", gt=0)


class LoggingSettings(_Section):
    level: str = Field("INFO", description="Root log level")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate against the standard logging level names."""
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v}")
        return level


def _default_rate_limits() -> dict[str, RateLimitSettings]:
    return {
        kind.value: RateLimitSettings(window_seconds=limit.window_seconds, max_count=limit.max_count)
        for kind, limit in DEFAULT_RATE_LIMITS.items()
    }


# ============================================================================
# Root
# ============================================================================


class CasinoConfig(_Section):
    """Complete casino configuration.

    Every section is optional; omitted values take the defaults shown in
    each field. Unknown keys are rejected so typos fail loudly.
    """
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    economy: EconomySettings = Field(default_factory=EconomySettings)
    defaults: AgentDefaults = Field(default_factory=AgentDefaults)
    rate_limits: dict[str, RateLimitSettings] = Field(default_factory=_default_rate_limits)
    feed: FeedSettings = Field(default_factory=FeedSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @field_validator("rate_limits")
    @classmethod
    def validate_rate_limit_kinds(cls, v: dict[str, RateLimitSettings]) -> dict[str, RateLimitSettings]:
        """Validate that every key names a known action kind."""
        known = {kind.value for kind in ActionKind}
        unknown = sorted(set(v) - known)
        if unknown:
            raise ValueError(f"Unknown rate limit kinds: {unknown} (known: {sorted(known)})")
        return v

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CasinoConfig:
        return cls.model_validate(data)

    def rate_limit_table(self) -> dict[ActionKind, RateLimit]:
        """Configured limits merged over the defaults."""
        table = dict(DEFAULT_RATE_LIMITS)
        for kind, limit in self.rate_limits.items():
            table[ActionKind(kind)] = RateLimit(limit.window_seconds, limit.max_count)
        return table
