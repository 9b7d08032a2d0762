from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Tuple

PLAYER1 = "player1"
PLAYER2 = "player2"
SLOTS: Tuple[str, str] = (PLAYER1, PLAYER2)


@dataclass(frozen=True)
class Drawing:
    id: str
    url: str


@dataclass(frozen=True)
class Position:
    x: float = 0.0
    y: float = 0.0


ORIGIN = Position()


@dataclass(frozen=True)
class Pairing:
    controller_id: str
    slot: str
    drawing_id: str
    topic_hint: Optional[str] = None  # topic suffix the connect arrived on


@dataclass(frozen=True)
class StageTuning:
    limit: float = 40.0  # each axis clamped to [-limit, limit]


@dataclass(frozen=True)
class PairingChange:
    """
    What a successful connect did.

    created: False when the controller already had a pairing (slot kept)
    previous_drawing_id: the drawing it held before, if any
    evicted: pairings of other controllers that held the same drawing
    """
    pairing: Pairing
    created: bool
    previous_drawing_id: Optional[str] = None
    evicted: Tuple[Pairing, ...] = ()


def slot_number(slot: str) -> int:
    """
    "player1" -> 1, "player2" -> 2
    """
    return SLOTS.index(slot) + 1
