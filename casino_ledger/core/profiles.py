"""Public agent profiles and the betting record shown next to them.

The profile is self-declared text; the stats are derived from the agent's
``bet_resolved`` history and tip totals, never stored.
"""

from __future__ import annotations

import math
from collections import Counter, defaultdict
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Annotated, Any

from pydantic import BaseModel, Field

from casino_ledger.core.clock import isoformat
from casino_ledger.core.games import Game
from casino_ledger.core.redact import redact

Trait = Annotated[str, Field(min_length=1, max_length=24)]
RivalName = Annotated[str, Field(min_length=2, max_length=32)]


class AgentProfile(BaseModel):
    agent_id: str
    bio: str | None = None
    motto: str | None = None
    favorite_game: Game | None = None
    traits: list[str] = Field(default_factory=list)
    rivals: list[str] = Field(default_factory=list)
    updated_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "bio": self.bio,
            "motto": self.motto,
            "favorite_game": self.favorite_game.value if self.favorite_game else None,
            "traits": list(self.traits),
            "rivals": list(self.rivals),
            "updated_at": isoformat(self.updated_at),
        }


class ProfileUpdate(BaseModel):
    """Partial profile update.

    Omitted fields keep their value; an explicit null clears the field
    (``traits`` and ``rivals`` become empty lists).
    """

    bio: str | None = Field(None, max_length=280)
    motto: str | None = Field(None, max_length=120)
    favorite_game: Game | None = None
    traits: list[Trait] | None = Field(None, max_length=12)
    rivals: list[RivalName] | None = Field(None, max_length=12)

    def apply(self, current: AgentProfile, now: datetime) -> tuple[AgentProfile, bool]:
        """Merge onto ``current``, redacting secrets from the free text.

        Returns:
            (new profile, whether anything was redacted)
        """
        sent = self.model_fields_set
        redacted = False

        def text(field: str) -> str | None:
            nonlocal redacted
            if field not in sent:
                return getattr(current, field)
            value = getattr(self, field)
            if not value:
                return None
            result = redact(value)
            redacted = redacted or result.redacted
            return result.text

        def items(field: str) -> list[str]:
            if field not in sent:
                return list(getattr(current, field))
            return list(getattr(self, field) or [])

        profile = AgentProfile(
            agent_id=current.agent_id,
            bio=text("bio"),
            motto=text("motto"),
            favorite_game=self.favorite_game if "favorite_game" in sent else current.favorite_game,
            traits=items("traits"),
            rivals=items("rivals"),
            updated_at=now,
        )
        return profile, redacted


@dataclass(frozen=True)
class BettingStats:
    favorite_game: str | None
    largest_win: int
    wins: int
    total_bets: int
    most_profitable_game: str | None
    best_net: int
    worst_net: int
    longest_win_streak: int
    longest_loss_streak: int
    losses_in_row: int
    avg_stake_last10: int
    tilt_index: int
    tips_received: int
    tips_sent: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def compute_betting_stats(
    resolved: list[dict[str, Any]], tips_received: int = 0, tips_sent: int = 0
) -> BettingStats:
    """Summarize ``bet_resolved`` payloads given oldest first.

    ``tilt_index`` is the current losing streak times the average stake of
    the last ten bets.
    """
    games: Counter[str] = Counter()
    net_by_game: dict[str, int] = defaultdict(int)
    nets: list[int] = []
    wins = longest_win = longest_loss = current_win = current_loss = 0

    for payload in resolved:
        game = str(payload.get("game"))
        stake = int(payload.get("stake", 0))
        payout = int(payload.get("payout", 0))
        games[game] += 1
        net_by_game[game] += payout - stake
        nets.append(payout - stake)

        if payload.get("win"):
            wins += 1
            current_win, current_loss = current_win + 1, 0
        else:
            current_win, current_loss = 0, current_loss + 1
        longest_win = max(longest_win, current_win)
        longest_loss = max(longest_loss, current_loss)

    last10 = [int(p.get("stake", 0)) for p in resolved[-10:]]
    avg_stake = sum(last10) / len(last10) if last10 else 0.0

    return BettingStats(
        favorite_game=games.most_common(1)[0][0] if games else None,
        largest_win=max((int(p.get("payout", 0)) for p in resolved), default=0),
        wins=wins,
        total_bets=len(resolved),
        most_profitable_game=max(net_by_game, key=net_by_game.__getitem__) if net_by_game else None,
        best_net=max(nets, default=0),
        worst_net=min(nets, default=0),
        longest_win_streak=longest_win,
        longest_loss_streak=longest_loss,
        losses_in_row=current_loss,
        avg_stake_last10=_round_half_up(avg_stake),
        tilt_index=_round_half_up(current_loss * avg_stake),
        tips_received=tips_received,
        tips_sent=tips_sent,
    )
