"""Agent registry: identities, credentials and risk configuration."""

from __future__ import annotations

import hashlib
import json
import logging
import re
import secrets
import uuid
from dataclasses import dataclass

from pydantic import BaseModel, Field

from casino_ledger.core.errors import InvalidInputError, NameTakenError, UnauthorizedError
from casino_ledger.core.profiles import AgentProfile
from casino_ledger.persistence.models import ClaimStatus, RiskProfile
from casino_ledger.persistence.store import UnitOfWork

logger = logging.getLogger(__name__)

NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_\-]{2,32}$")
MAX_DESCRIPTION_LENGTH = 240


def sha256_hex(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def new_credential(prefix: str) -> str:
    return f"{prefix}_{secrets.token_urlsafe(32)}"


def new_verification_code(prefix: str = "casino") -> str:
    return f"{prefix}-{secrets.token_hex(2).upper()}"


def normalize_name(name: str) -> str:
    """Validate an agent name and return its canonical lower-case form."""
    name = name.strip()
    if not NAME_PATTERN.match(name):
        raise InvalidInputError(
            "name must be 2-32 characters of letters, digits, '_' or '-'", name=name
        )
    return name.lower()


class Agent(BaseModel):
    """Agent as seen by the core (no secrets)."""

    id: str
    name: str
    description: str | None = None
    claim_status: ClaimStatus
    is_paused: bool
    paused_reason: str | None = None


class AgentConfig(BaseModel):
    agent_id: str
    risk_profile: RiskProfile
    max_bet: int
    stop_loss: int | None = None
    take_profit: int | None = None
    anchor_balance: int | None = None

    def to_dict(self) -> dict:
        return self.model_dump(mode="json", exclude={"agent_id"})


class ConfigUpdate(BaseModel):
    """Partial update of an agent's configuration.

    Fields left out keep their current value; ``stop_loss`` and
    ``take_profit`` may be sent as null to clear them.
    """

    risk_profile: RiskProfile | None = None
    max_bet: int | None = Field(None, ge=1, le=5000)
    stop_loss: int | None = Field(None, ge=1, le=100_000)
    take_profit: int | None = Field(None, ge=1, le=100_000)
    reset_anchor: bool = False

    def apply(self, current: AgentConfig, balance: int) -> tuple[AgentConfig, bool]:
        """Merge onto ``current``.

        The anchor moves to ``balance`` when a reset is requested or no
        anchor was ever set.

        Returns:
            (new config, whether the anchor was reset)
        """
        sent = self.model_fields_set
        reset = self.reset_anchor or current.anchor_balance is None
        updated = current.model_copy(
            update={
                "risk_profile": self.risk_profile or current.risk_profile,
                "max_bet": self.max_bet or current.max_bet,
                "stop_loss": self.stop_loss if "stop_loss" in sent else current.stop_loss,
                "take_profit": self.take_profit if "take_profit" in sent else current.take_profit,
                "anchor_balance": balance if reset else current.anchor_balance,
            }
        )
        return updated, reset


@dataclass(frozen=True)
class NewAgentCredentials:
    """Secrets handed out once at registration; only their hashes are stored."""

    api_key: str
    claim_token: str
    verification_code: str


_AGENT_COLUMNS = "id, name, description, claim_status, is_paused, paused_reason"


def _row_to_agent(row: tuple) -> Agent:
    return Agent(
        id=row[0],
        name=row[1],
        description=row[2],
        claim_status=ClaimStatus(row[3]),
        is_paused=bool(row[4]),
        paused_reason=row[5],
    )


class AgentRegistry:
    """Reads and writes ``agents``, ``agent_configs`` and ``agent_profiles``."""

    def __init__(self, default_risk_profile: RiskProfile = RiskProfile.DEGEN, default_max_bet: int = 250) -> None:
        self.default_risk_profile = default_risk_profile
        self.default_max_bet = default_max_bet

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    def create(
        self, uow: UnitOfWork, name: str, description: str | None = None
    ) -> tuple[Agent, NewAgentCredentials]:
        """Insert a new agent row. The caller opens balances and fair state.

        Raises:
            NameTakenError: The (normalized) name is already registered
        """
        name = normalize_name(name)
        if description is not None and len(description) > MAX_DESCRIPTION_LENGTH:
            raise InvalidInputError(
                f"description must be at most {MAX_DESCRIPTION_LENGTH} characters"
            )
        if self.find_by_name(uow, name) is not None:
            raise NameTakenError(name)

        credentials = NewAgentCredentials(
            api_key=new_credential("casino"),
            claim_token=new_credential("claim"),
            verification_code=new_verification_code(),
        )
        agent_id = uuid.uuid4().hex
        uow.execute(
            """
            INSERT INTO agents (
                id, name, description, api_key_hash, claim_token_hash, verification_code,
                claim_status, is_paused, paused_reason, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, FALSE, NULL, ?)
            """,
            [
                agent_id,
                name,
                description,
                sha256_hex(credentials.api_key),
                sha256_hex(credentials.claim_token),
                credentials.verification_code,
                ClaimStatus.PENDING_CLAIM.value,
                uow.now,
            ],
        )
        agent = Agent(
            id=agent_id,
            name=name,
            description=description,
            claim_status=ClaimStatus.PENDING_CLAIM,
            is_paused=False,
        )
        return agent, credentials

    def get(self, uow: UnitOfWork, agent_id: str) -> Agent | None:
        row = uow.fetchone(f"SELECT {_AGENT_COLUMNS} FROM agents WHERE id = ?", [agent_id])
        return _row_to_agent(row) if row else None

    def find_by_name(self, uow: UnitOfWork, name: str) -> Agent | None:
        row = uow.fetchone(
            f"SELECT {_AGENT_COLUMNS} FROM agents WHERE name = ?", [name.strip().lower()]
        )
        return _row_to_agent(row) if row else None

    def authenticate(self, uow: UnitOfWork, credential: str | None) -> Agent:
        """Resolve a credential to its agent.

        Raises:
            UnauthorizedError: Missing or unknown credential
        """
        if not credential:
            raise UnauthorizedError("missing credential")
        row = uow.fetchone(
            f"SELECT {_AGENT_COLUMNS} FROM agents WHERE api_key_hash = ?",
            [sha256_hex(credential)],
        )
        if row is None:
            raise UnauthorizedError("unknown credential")
        return _row_to_agent(row)

    def set_paused(self, uow: UnitOfWork, agent_id: str, paused: bool, reason: str | None = None) -> None:
        uow.execute(
            "UPDATE agents SET is_paused = ?, paused_reason = ? WHERE id = ?",
            [paused, reason if paused else None, agent_id],
        )

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def get_config(self, uow: UnitOfWork, agent_id: str) -> AgentConfig | None:
        row = uow.fetchone(
            """
            SELECT risk_profile, max_bet, stop_loss, take_profit, anchor_balance
            FROM agent_configs WHERE agent_id = ?
            """,
            [agent_id],
        )
        if row is None:
            return None
        return AgentConfig(
            agent_id=agent_id,
            risk_profile=RiskProfile(row[0]),
            max_bet=int(row[1]),
            stop_loss=row[2],
            take_profit=row[3],
            anchor_balance=row[4],
        )

    def default_config(self, agent_id: str, anchor_balance: int | None) -> AgentConfig:
        return AgentConfig(
            agent_id=agent_id,
            risk_profile=self.default_risk_profile,
            max_bet=self.default_max_bet,
            anchor_balance=anchor_balance,
        )

    def save_config(self, uow: UnitOfWork, config: AgentConfig) -> None:
        """Insert-or-update the configuration row of ``config.agent_id``."""
        values = [
            config.risk_profile.value,
            config.max_bet,
            config.stop_loss,
            config.take_profit,
            config.anchor_balance,
            uow.now,
            config.agent_id,
        ]
        exists = uow.fetchone("SELECT 1 FROM agent_configs WHERE agent_id = ?", [config.agent_id])
        if exists is None:
            uow.execute(
                """
                INSERT INTO agent_configs (
                    risk_profile, max_bet, stop_loss, take_profit, anchor_balance,
                    updated_at, agent_id
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                values,
            )
        else:
            uow.execute(
                """
                UPDATE agent_configs
                SET risk_profile = ?, max_bet = ?, stop_loss = ?, take_profit = ?,
                    anchor_balance = ?, updated_at = ?
                WHERE agent_id = ?
                """,
                values,
            )

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------

    def get_profile(self, uow: UnitOfWork, agent_id: str) -> AgentProfile:
        """Stored profile, or an empty one for agents registered without a row."""
        row = uow.fetchone(
            """
            SELECT bio, motto, favorite_game, traits, rivals, updated_at
            FROM agent_profiles WHERE agent_id = ?
            """,
            [agent_id],
        )
        if row is None:
            return AgentProfile(agent_id=agent_id)
        return AgentProfile(
            agent_id=agent_id,
            bio=row[0],
            motto=row[1],
            favorite_game=row[2],
            traits=json.loads(row[3]),
            rivals=json.loads(row[4]),
            updated_at=row[5],
        )

    def save_profile(self, uow: UnitOfWork, profile: AgentProfile) -> None:
        """Insert-or-update the profile row of ``profile.agent_id``."""
        values = [
            profile.bio,
            profile.motto,
            profile.favorite_game.value if profile.favorite_game else None,
            json.dumps(profile.traits),
            json.dumps(profile.rivals),
            profile.updated_at or uow.now,
            profile.agent_id,
        ]
        exists = uow.fetchone("SELECT 1 FROM agent_profiles WHERE agent_id = ?", [profile.agent_id])
        if exists is None:
            uow.execute(
                """
                INSERT INTO agent_profiles (
                    bio, motto, favorite_game, traits, rivals, updated_at, agent_id
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                values,
            )
        else:
            uow.execute(
                """
                UPDATE agent_profiles
                SET bio = ?, motto = ?, favorite_game = ?, traits = ?, rivals = ?, updated_at = ?
                WHERE agent_id = ?
                """,
                values,
            )
