"""
Pytest configuration and shared fixtures.

Provides:
- clock: a ManualClock tests advance explicitly
- db: an in-memory LedgerDatabase on that clock
- service: a CasinoService over that database with default config
- register: factory that registers an agent and returns (Agent, api_key)
"""

from __future__ import annotations

from collections.abc import Callable, Generator
from datetime import datetime, timedelta

import pytest

from casino_ledger.config import CasinoConfig
from casino_ledger.core.agents import Agent
from casino_ledger.persistence.store import LedgerDatabase
from casino_ledger.service import CasinoService

START = datetime(2026, 1, 1, 12, 0, 0)


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime = START) -> None:
        self.current = start

    def now(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> datetime:
        self.current += timedelta(seconds=seconds)
        return self.current


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def db(clock: ManualClock) -> Generator[LedgerDatabase, None, None]:
    database = LedgerDatabase.open(":memory:", clock=clock)
    yield database
    database.close()


@pytest.fixture
def config() -> CasinoConfig:
    return CasinoConfig()


@pytest.fixture
def service(db: LedgerDatabase, config: CasinoConfig) -> CasinoService:
    return CasinoService(db, config)


@pytest.fixture
def register(service: CasinoService) -> Callable[..., tuple[Agent, str]]:
    """Register an agent by name; returns (agent, api_key)."""

    def _register(name: str, description: str | None = None) -> tuple[Agent, str]:
        registration = service.register_agent(name, description)
        return registration.agent, registration.api_key

    return _register


@pytest.fixture
def reasoning() -> dict:
    """A valid reasoning payload."""
    return {
        "intent": "recover losses",
        "plan": "small coinflips until even",
        "confidence": 0.4,
        "why_now": "balance just dropped",
    }
