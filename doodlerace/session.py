"""
PlaySession - the single-threaded hub between inputs and state.

Screens:
  stage -> pick a drawing, press the controller's A button (connect) to pair
  games -> pick the minigame (only "race" exists)
  race  -> countdown, race, finish / replay

Every external trigger (broker message, keyboard, timer tick) ends up in one of
the handle_* methods, which run to completion before the next one.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from doodlerace.controllers.normalize import normalize
from doodlerace.controllers.types import ControllerEvent
from doodlerace.pairing.registry import PairingRegistry
from doodlerace.pairing.types import PLAYER1, PLAYER2, Drawing, Pairing, PairingChange, Position, slot_number
from doodlerace.race.machine import RaceStateMachine
from doodlerace.race.types import Impulse, RaceState
from doodlerace.store.drawings import DrawingStore, DrawingStoreError

STAGE = "stage"
GAMES = "games"
RACE_SCREEN = "race"

GAMES_AVAILABLE = ("race",)

Message = Tuple[str, bytes]


@dataclass(frozen=True)
class SessionSnapshot:
    screen: str
    drawings: Tuple[Drawing, ...]
    active_drawing_id: Optional[str]
    pairings: Tuple[Pairing, ...]
    positions: Dict[str, Position]
    race: Optional[RaceState]
    waiting_for_players: bool
    last_raw: Optional[str]
    load_error: Optional[str]


class PlaySession:
    def __init__(
        self,
        registry: Optional[PairingRegistry] = None,
        race: Optional[RaceStateMachine] = None,
        *,
        log_events: bool = True,
    ) -> None:
        self.registry = registry or PairingRegistry()
        self.race = race or RaceStateMachine()
        self.log_events = log_events

        self.drawings: List[Drawing] = []
        self.active_drawing_id: Optional[str] = None
        self.screen = STAGE
        self.load_error: Optional[str] = None
        self.last_event: Optional[ControllerEvent] = None
        self.waiting_for_players = False

    # -------- drawings / selection --------

    def load_drawings(self, store: DrawingStore) -> bool:
        try:
            self.drawings = store.list_drawings()
        except DrawingStoreError as e:
            self.load_error = str(e)
            print(f"[store] {e}")
            return False
        self.load_error = None
        return True

    def drawing(self, drawing_id: Optional[str]) -> Optional[Drawing]:
        for d in self.drawings:
            if d.id == drawing_id:
                return d
        return None

    def select(self, drawing_id: str) -> bool:
        if self.screen != STAGE or self.drawing(drawing_id) is None:
            return False
        self.active_drawing_id = drawing_id
        return True

    def select_next(self) -> Optional[str]:
        if self.screen != STAGE or not self.drawings:
            return None
        ids = [d.id for d in self.drawings]
        if self.active_drawing_id in ids:
            nxt = ids[(ids.index(self.active_drawing_id) + 1) % len(ids)]
        else:
            nxt = ids[0]
        self.active_drawing_id = nxt
        return nxt

    def release_selection(self) -> None:
        self.active_drawing_id = None

    # -------- inbound --------

    def handle_message(self, topic: str, payload: bytes) -> ControllerEvent:
        return self.handle_batch([(topic, payload)])[0]

    def handle_batch(self, messages: Iterable[Message], impulses: Sequence[Impulse] = ()) -> List[ControllerEvent]:
        """
        One frame of input. Connects and stage motion apply in arrival order;
        race impulses are collected and applied together, player 1 first.
        """
        events: List[ControllerEvent] = []
        frame: List[Impulse] = list(impulses)
        for topic, payload in messages:
            ev = normalize(payload, topic)
            events.append(ev)
            self.last_event = ev
            imp = self._route(ev)
            if imp is not None:
                frame.append(imp)

        if frame and self.screen == RACE_SCREEN:
            before = self.race.state().winner
            self.race.process_batch(frame)
            after = self.race.state().winner
            if after is not None and before is None and self.log_events:
                print(f"[race] winner player{after}")
        return events

    def _route(self, ev: ControllerEvent) -> Optional[Impulse]:
        if ev.is_connect:
            self._bind(ev)
            return None
        if not ev.is_move:
            return None

        if self.screen == STAGE:
            self.registry.nudge(ev)
            return None
        if self.screen == RACE_SCREEN:
            slot = self.registry.slot_for(ev)
            if slot is None:
                return None  # unattributable impulses are dropped
            return Impulse(player=slot_number(slot), key=ev.button or "move", pressed=ev.pressed)
        return None

    def _bind(self, ev: ControllerEvent) -> Optional[PairingChange]:
        # pairing only happens on the selection stage
        if self.screen != STAGE:
            return None
        change = self.registry.bind_active_selection(ev, self.active_drawing_id)
        if change is None:
            return None
        self.active_drawing_id = None
        if self.log_events:
            p = change.pairing
            print(f"[pair] {p.controller_id} -> {p.slot} ({p.drawing_id})")
            for old in change.evicted:
                print(f"[pair] evicted {old.controller_id} from {old.drawing_id}")
        return change

    # -------- screens --------

    def player_drawing(self, slot: str) -> Optional[Drawing]:
        return self.drawing(self.registry.drawing_for_slot(slot))

    def open_games(self) -> bool:
        if self.screen != STAGE or len(self.registry) == 0:
            return False
        self.screen = GAMES
        return True

    def start_game(self, game: str = "race") -> bool:
        """
        Enter the race. Without two bound drawings the race does not start and
        the session sits in a waiting state.
        """
        if self.screen not in (GAMES, RACE_SCREEN) or game not in GAMES_AVAILABLE:
            return False
        p1 = self.player_drawing(PLAYER1)
        p2 = self.player_drawing(PLAYER2)
        if not self.race.start(p1.id if p1 else None, p2.id if p2 else None):
            self.waiting_for_players = True
            return False
        self.waiting_for_players = False
        self.screen = RACE_SCREEN
        if self.log_events:
            print(f"[race] start {p1.id} vs {p2.id}")
        return True

    def replay(self) -> bool:
        if self.screen != RACE_SCREEN:
            return False
        self.race.reset()
        return True

    def back(self) -> None:
        """
        Leave whatever screen is up. Backing out of the minigame drops all
        pairings.
        """
        if self.screen == RACE_SCREEN:
            self.race.stop()
            self.registry.clear()
            self.screen = STAGE
        elif self.screen == GAMES:
            self.screen = STAGE
        else:
            self.active_drawing_id = None
        self.waiting_for_players = False

    def confirm(self) -> bool:
        if self.screen == GAMES:
            return self.start_game("race")
        if self.screen == RACE_SCREEN and self.race.state().winner is not None:
            return self.replay()
        return False

    # -------- timers / teardown --------

    def update(self) -> None:
        if self.screen == RACE_SCREEN:
            self.race.update()

    def close(self) -> None:
        self.race.stop()

    # -------- view --------

    def snapshot(self) -> SessionSnapshot:
        pairings = self.registry.pairings_view()
        return SessionSnapshot(
            screen=self.screen,
            drawings=tuple(self.drawings),
            active_drawing_id=self.active_drawing_id,
            pairings=pairings,
            positions={p.drawing_id: self.registry.position_of(p.drawing_id) for p in pairings},
            race=self.race.state() if self.screen == RACE_SCREEN else None,
            waiting_for_players=self.waiting_for_players,
            last_raw=self.last_event.raw if self.last_event else None,
            load_error=self.load_error,
        )
