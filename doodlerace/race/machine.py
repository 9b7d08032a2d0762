"""
machine.py

Two-player race: ready (countdown) -> race -> finish, reset back to ready.

Input is edge-triggered: a key has to go released -> pressed to count, so
holding a key (or a stuck "down" from a controller) moves a player once.
Batches are processed player 1 first, which makes same-frame photo finishes
deterministic.
"""
from __future__ import annotations

from dataclasses import replace
from typing import Iterable, List, Optional

from doodlerace.input_helpers import EdgeDetector
from doodlerace.race.timer import TickTimer
from doodlerace.race.types import FINISH, RACE, READY, Impulse, RaceState, RaceTuning
from doodlerace.utils import clamp

PLAYERS = (1, 2)


class RaceStateMachine:
    def __init__(self, tuning: RaceTuning = RaceTuning(), timer: Optional[TickTimer] = None) -> None:
        self.tuning = tuning
        self.timer = timer or TickTimer(period_s=tuning.tick_s)
        self.edges = EdgeDetector()
        self._state = RaceState()
        self._running = False

    # -------- lifecycle --------

    @property
    def running(self) -> bool:
        return self._running

    @property
    def phase(self) -> str:
        return self._state.phase

    def start(self, player1_drawing: Optional[str], player2_drawing: Optional[str]) -> bool:
        """
        Enter the countdown. Refuses without both drawings; the caller shows a
        waiting screen instead.
        """
        if not player1_drawing or not player2_drawing:
            return False
        self._running = True
        self._restart()
        return True

    def reset(self) -> None:
        """Replay: clear positions, counters and winner, restart the countdown."""
        if not self._running:
            return
        self._restart()

    def stop(self) -> None:
        self.timer.cancel()
        self.edges.reset()
        self._running = False

    def _restart(self) -> None:
        self.timer.cancel()
        self.edges.reset()
        self._state = RaceState(phase=READY, countdown=self.tuning.countdown_ticks)
        if self.tuning.countdown_ticks <= 0:
            self._state = replace(self._state, phase=RACE, countdown=0)
            return
        self.timer.start()

    # -------- countdown --------

    def tick(self) -> None:
        if not self._running or self._state.phase != READY:
            return
        remaining = self._state.countdown - 1
        if remaining <= 0:
            self.timer.cancel()
            self._state = replace(self._state, phase=RACE, countdown=0)
        else:
            self._state = replace(self._state, countdown=remaining)

    def update(self) -> None:
        """Advance the countdown by however many ticks the timer says elapsed."""
        for _ in range(self.timer.poll()):
            self.tick()

    # -------- input --------

    def press(self, player: int, key: str) -> bool:
        if player not in PLAYERS:
            return False
        if not self.edges.rising((player, key), True):
            return False
        return self._advance(player)

    def release(self, player: int, key: str) -> None:
        if player in PLAYERS:
            self.edges.rising((player, key), False)

    def tap(self, player: int, key: str) -> bool:
        moved = self.press(player, key)
        self.release(player, key)
        return moved

    def apply(self, impulse: Impulse) -> bool:
        if impulse.pressed is None:
            return self.tap(impulse.player, impulse.key)
        if impulse.pressed:
            return self.press(impulse.player, impulse.key)
        self.release(impulse.player, impulse.key)
        return False

    def process_batch(self, impulses: Iterable[Impulse]) -> List[Impulse]:
        """
        Apply one frame of impulses, player 1 before player 2 (stable within a
        player). Returns the impulses that moved someone.
        """
        moved: List[Impulse] = []
        for imp in sorted(impulses, key=lambda i: i.player):
            if self.apply(imp):
                moved.append(imp)
        return moved

    def _advance(self, player: int) -> bool:
        st = self._state
        if not self._running or st.phase != RACE:
            return False

        win = self.tuning.winning_position
        if player == 1:
            pos = int(clamp(st.player1_position + self.tuning.move_amount, 0, win))
            st = replace(st, player1_position=pos, player1_impulses=st.player1_impulses + 1)
        else:
            pos = int(clamp(st.player2_position + self.tuning.move_amount, 0, win))
            st = replace(st, player2_position=pos, player2_impulses=st.player2_impulses + 1)

        if pos >= win:
            st = replace(st, phase=FINISH, winner=player)
            self.timer.cancel()
        self._state = st
        return True

    # -------- snapshot --------

    def state(self) -> RaceState:
        return self._state
