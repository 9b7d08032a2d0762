from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional

CONNECT = "connect"
MOVE = "move"
UNKNOWN = "unknown"

DEFAULT_STEP = 6.0


@dataclass(frozen=True)
class Axis:
    dx: Optional[float] = None
    dy: Optional[float] = None

    @property
    def present(self) -> bool:
        return self.dx is not None or self.dy is not None


@dataclass(frozen=True)
class ControllerEvent:
    """
    Canonical form of any inbound controller message.

    Conventions:
      - raw: decoded payload text, always kept for diagnostics
      - source_id: upper-cased hardware address, else the topic hint
      - kind: "connect" | "move" | "unknown"
      - button: lower-cased direction/action token
      - pressed: None for a momentary tap, True/False for explicit press/release
    """
    raw: str
    source_id: Optional[str] = None
    kind: str = UNKNOWN
    axis: Axis = field(default_factory=Axis)
    button: Optional[str] = None
    step: float = DEFAULT_STEP
    topic_hint: Optional[str] = None
    pressed: Optional[bool] = None

    @property
    def is_connect(self) -> bool:
        return self.kind == CONNECT

    @property
    def is_move(self) -> bool:
        return self.kind == MOVE
