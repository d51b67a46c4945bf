"""Game rules: turn a fairness value in [0, 1) into an outcome and a payout.

Both games are zero-edge: the payout multiplier is the inverse of the win
probability of the chosen band. Payouts are computed with integer arithmetic.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from casino_ledger.core.errors import InvalidInputError


class Game(str, Enum):
    COINFLIP = "coinflip"
    DICE = "dice"


class CoinSide(str, Enum):
    HEADS = "heads"
    TAILS = "tails"


class DiceDirection(str, Enum):
    OVER = "over"
    UNDER = "under"


DICE_SIDES = 100
DEFAULT_DICE_TARGET = 50
MIN_DICE_TARGET = 1
MAX_DICE_TARGET = 99


@dataclass(frozen=True)
class GameOutcome:
    win: bool
    payout: int
    detail: dict[str, Any] = field(default_factory=dict)


def value_to_int(value: float, low: int, high: int) -> int:
    """Map a value in [0, 1) uniformly onto the integers low..high."""
    return math.floor(value * (high - low + 1)) + low


def play_coinflip(value: float, stake: int, choice: CoinSide | str = CoinSide.HEADS) -> GameOutcome:
    choice = CoinSide(choice)
    flip = CoinSide.HEADS if value < 0.5 else CoinSide.TAILS
    win = flip is choice
    return GameOutcome(
        win=win,
        payout=stake * 2 if win else 0,
        detail={"flip": flip.value, "choice": choice.value},
    )


def dice_denominator(target: int, direction: DiceDirection | str) -> int:
    """Number of winning faces (at least 1) for a target and direction."""
    if DiceDirection(direction) is DiceDirection.UNDER:
        return max(1, target - 1)
    return max(1, DICE_SIDES - target)


def play_dice(
    value: float,
    stake: int,
    target: int = DEFAULT_DICE_TARGET,
    direction: DiceDirection | str = DiceDirection.UNDER,
) -> GameOutcome:
    direction = DiceDirection(direction)
    if not MIN_DICE_TARGET <= target <= MAX_DICE_TARGET:
        raise InvalidInputError(
            f"dice target must be in {MIN_DICE_TARGET}..{MAX_DICE_TARGET}", target=target
        )

    roll = value_to_int(value, 1, DICE_SIDES)
    if direction is DiceDirection.UNDER:
        win = roll < target
    else:
        win = roll > target

    denominator = dice_denominator(target, direction)
    return GameOutcome(
        win=win,
        payout=(stake * DICE_SIDES) // denominator if win else 0,
        detail={
            "roll": roll,
            "target": target,
            "direction": direction.value,
            "mult": DICE_SIDES / denominator,
        },
    )


def play(game: Game | str, value: float, stake: int, **params: Any) -> GameOutcome:
    """Dispatch to the rules of ``game``; None-valued params take defaults."""
    game = Game(game)
    params = {k: v for k, v in params.items() if v is not None}
    if game is Game.COINFLIP:
        return play_coinflip(value, stake, params.get("choice", CoinSide.HEADS))
    return play_dice(
        value,
        stake,
        params.get("target", DEFAULT_DICE_TARGET),
        params.get("direction", DiceDirection.UNDER),
    )
