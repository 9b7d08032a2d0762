from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

READY = "ready"
RACE = "race"
FINISH = "finish"


@dataclass(frozen=True)
class RaceTuning:
    winning_position: int = 100
    move_amount: int = 2
    countdown_ticks: int = 3
    tick_s: float = 1.0


@dataclass(frozen=True)
class RaceState:
    """
    Renderable race snapshot.

    Invariants:
      - 0 <= playerN_position <= winning_position
      - winner is not None iff phase == "finish"
    """
    phase: str = READY
    player1_position: int = 0
    player2_position: int = 0
    player1_impulses: int = 0  # drives renderer wobble
    player2_impulses: int = 0
    winner: Optional[int] = None
    countdown: int = 0


@dataclass(frozen=True)
class Impulse:
    """
    One input edge for a race player.

    pressed: None for a momentary tap (press + release), else explicit state.
    """
    player: int
    key: str
    pressed: Optional[bool] = None
