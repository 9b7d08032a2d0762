from __future__ import annotations
import time
from dataclasses import dataclass, field
from typing import Callable, Optional


@dataclass
class TickTimer:
    """
    Repeating timer polled from the main loop.

    No threads: poll() reports how many whole periods elapsed since the last
    poll, so callbacks always run on the loop that owns the state.
    """
    period_s: float = 1.0
    clock: Callable[[], float] = time.monotonic
    _next_t: Optional[float] = field(default=None, init=False)

    @property
    def armed(self) -> bool:
        return self._next_t is not None

    def start(self) -> None:
        self._next_t = self.clock() + self.period_s

    def cancel(self) -> None:
        self._next_t = None

    def poll(self) -> int:
        if self._next_t is None:
            return 0
        now = self.clock()
        ticks = 0
        while self._next_t is not None and now >= self._next_t:
            ticks += 1
            self._next_t += self.period_s
        return ticks
