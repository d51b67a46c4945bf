"""Fairness Engine: per-agent commit-reveal seeds.

Protocol, per agent:

1. A random server seed is generated and only ``sha256(seed)`` is published
   (the commitment) together with the current nonce.
2. A draw uses nonce + 1 and derives
   ``int(HMAC_SHA256(seed, f"{client_seed}:{nonce}:{game}")[:13 hex], 16) / 2**52``,
   a float in [0, 1).
3. In the same transaction the consumed seed is revealed (recorded in
   ``fair_reveals``) and replaced by a fresh seed whose hash becomes the
   next commitment.

Anyone holding a reveal can recompute the value and check that the seed
hashes to the commitment that was published before the draw.

The engine exclusively owns ``server_seed``; nothing else reads it before
it is revealed.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
from dataclasses import asdict, dataclass
from typing import Callable

from casino_ledger.persistence.store import UnitOfWork

logger = logging.getLogger(__name__)

FLOAT_BITS = 52
_HEX_DIGITS = FLOAT_BITS // 4  # 13 hex digits = 52 bits


def hash_seed(seed: str) -> str:
    """Public commitment for a server seed."""
    return hashlib.sha256(seed.encode("utf-8")).hexdigest()


def new_seed() -> str:
    """32 random bytes, hex encoded."""
    return secrets.token_hex(32)


def draw_message(client_seed: str, nonce: int, game: str) -> str:
    return f"{client_seed}:{nonce}:{game}"


def derive_float(server_seed: str, client_seed: str, nonce: int, game: str) -> float:
    """Deterministic value in [0, 1) for one draw."""
    digest = hmac.new(
        server_seed.encode("utf-8"),
        draw_message(client_seed, nonce, game).encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()
    return int(digest[:_HEX_DIGITS], 16) / 2**FLOAT_BITS


def client_seed_for(agent_name: str) -> str:
    """Stable, non-secret client seed of an agent."""
    return f"agent:{agent_name}"


@dataclass(frozen=True)
class FairCommitment:
    server_seed_hash: str
    nonce: int

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class FairReveal:
    server_seed: str
    server_seed_hash: str
    nonce: int
    client_seed: str

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class FairDraw:
    value: float
    reveal: FairReveal
    next_server_seed_hash: str


@dataclass(frozen=True)
class RevealCheck:
    """Outcome of independently re-deriving a draw from its reveal."""

    value: float
    hash_matches: bool
    commitment_matches: bool

    @property
    def ok(self) -> bool:
        return self.hash_matches and self.commitment_matches


def verify_reveal(
    reveal: FairReveal, game: str, committed_hash: str | None = None
) -> RevealCheck:
    """Recompute a draw from its reveal.

    Args:
        reveal: Revealed seed, its claimed hash, nonce and client seed
        game: Game identifier that was part of the HMAC message
        committed_hash: Commitment published before the draw, if known
            separately from the reveal (e.g. from the bet_placed event)
    """
    actual_hash = hash_seed(reveal.server_seed)
    return RevealCheck(
        value=derive_float(reveal.server_seed, reveal.client_seed, reveal.nonce, game),
        hash_matches=actual_hash == reveal.server_seed_hash,
        commitment_matches=committed_hash is None or committed_hash == actual_hash,
    )


class FairnessEngine:
    """Owns the per-agent FairState rows and performs draws."""

    def __init__(self, seed_factory: Callable[[], str] = new_seed) -> None:
        self._seed_factory = seed_factory

    def commit(self, uow: UnitOfWork, agent_id: str) -> FairCommitment:
        """Return the current public commitment, creating the state if absent."""
        row = uow.fetchone(
            "SELECT server_seed_hash, nonce FROM fair_state WHERE agent_id = ?",
            [agent_id],
        )
        if row is not None:
            return FairCommitment(server_seed_hash=row[0], nonce=int(row[1]))

        seed = self._seed_factory()
        seed_hash = hash_seed(seed)
        uow.execute(
            """
            INSERT INTO fair_state (agent_id, server_seed, server_seed_hash, nonce, updated_at)
            VALUES (?, ?, ?, 0, ?)
            """,
            [agent_id, seed, seed_hash, uow.now],
        )
        return FairCommitment(server_seed_hash=seed_hash, nonce=0)

    def draw(self, uow: UnitOfWork, agent_id: str, client_seed: str, game: str) -> FairDraw:
        """Consume the committed seed for one draw and rotate to a new one.

        Runs inside the caller's transaction: if anything later in that
        transaction fails, the draw, the reveal record and the rotation are
        all rolled back together.
        """
        self.commit(uow, agent_id)
        server_seed, server_seed_hash, current_nonce = uow.fetchone(
            "SELECT server_seed, server_seed_hash, nonce FROM fair_state WHERE agent_id = ?",
            [agent_id],
        )
        nonce = int(current_nonce) + 1
        value = derive_float(server_seed, client_seed, nonce, game)

        next_seed = self._seed_factory()
        next_hash = hash_seed(next_seed)

        uow.execute(
            """
            INSERT INTO fair_reveals (
                agent_id, nonce, server_seed, server_seed_hash, client_seed, game,
                value, next_server_seed_hash, revealed_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [agent_id, nonce, server_seed, server_seed_hash, client_seed, game,
             value, next_hash, uow.now],
        )
        uow.execute(
            """
            UPDATE fair_state
            SET server_seed = ?, server_seed_hash = ?, nonce = ?, updated_at = ?
            WHERE agent_id = ?
            """,
            [next_seed, next_hash, nonce, uow.now, agent_id],
        )

        logger.debug("Fair draw agent=%s nonce=%d game=%s", agent_id, nonce, game)
        return FairDraw(
            value=value,
            reveal=FairReveal(
                server_seed=server_seed,
                server_seed_hash=server_seed_hash,
                nonce=nonce,
                client_seed=client_seed,
            ),
            next_server_seed_hash=next_hash,
        )
