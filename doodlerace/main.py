"""
DoodleRaceApp - runner for the controller pairing + race minigame.

How to run:
- `python -m doodlerace.main` (or the `doodle-race` console script)
- Configure with env vars, see doodlerace/config.py. Without MQTT_BROKER_URL
  the broker is off and the keyboard stands in for both controllers.

Loop (single thread, LOOP_HZ):
  1. drain broker messages queued by the paho thread
  2. pump pygame keyboard events
  3. hand the frame to PlaySession as one batch
  4. advance the countdown timer
  5. render if anything changed
"""
from __future__ import annotations

import time
from pathlib import Path
from typing import List, Optional, Tuple

from doodlerace import config
from doodlerace.controllers.keyboard import KeyboardTranslator, PygameKeyboard, debug_slot_map, topic_base
from doodlerace.input_helpers import ActionBindings
from doodlerace.pairing.registry import PairingRegistry
from doodlerace.pairing.slots import SlotPolicy, load_slot_map
from doodlerace.pairing.types import PLAYER1, PLAYER2, StageTuning
from doodlerace.protocol.mqtt_client import MqttTransport, TransportConfig
from doodlerace.race.machine import RaceStateMachine
from doodlerace.race.types import Impulse, RaceTuning
from doodlerace.render.print_renderer import PrintRenderer
from doodlerace.session import PlaySession
from doodlerace.store.drawings import DrawingStore, HttpDrawingStore, StaticDrawingStore, YamlDrawingStore


def build_policy() -> SlotPolicy:
    policy = SlotPolicy({config.PLAYER1_ID: PLAYER1, config.PLAYER2_ID: PLAYER2})
    if config.CONTROLLER_MAP_FILE:
        policy.update(load_slot_map(Path(config.CONTROLLER_MAP_FILE)))
    if config.DEBUG_KEYS:
        policy.update(debug_slot_map())
    return policy


def build_store() -> DrawingStore:
    if config.DRAWINGS_URL:
        return HttpDrawingStore(config.DRAWINGS_URL, timeout_s=config.DRAWINGS_TIMEOUT_S)
    if config.DRAWINGS_FILE:
        return YamlDrawingStore(Path(config.DRAWINGS_FILE))
    print("[store] no DRAWINGS_URL / DRAWINGS_FILE set, starting with no drawings")
    return StaticDrawingStore()


def build_session() -> PlaySession:
    registry = PairingRegistry(build_policy(), StageTuning(limit=config.STAGE_LIMIT))
    race = RaceStateMachine(RaceTuning(
        winning_position=config.WINNING_POSITION,
        move_amount=config.MOVE_AMOUNT,
        countdown_ticks=config.COUNTDOWN_TICKS,
        tick_s=config.COUNTDOWN_TICK_S,
    ))
    return PlaySession(registry, race, log_events=config.LOG_EVENTS)


def build_transport() -> MqttTransport:
    return MqttTransport(TransportConfig(
        broker_url=config.MQTT_BROKER_URL,
        username=config.MQTT_USER,
        password=config.MQTT_PASS,
        topic=config.MQTT_TOPIC,
        control_topic=config.MQTT_CONTROL_TOPIC,
        keepalive_s=config.MQTT_KEEPALIVE_S,
        log_rx=config.LOG_RX,
    ))


class DoodleRaceApp:
    """Main loop that bridges controllers/keyboard -> session -> renderer."""

    def __init__(self, session: PlaySession, transport: MqttTransport, store: DrawingStore,
                 *, hz: float = 60.0, keyboard: bool = True) -> None:
        self.session = session
        self.transport = transport
        self.store = store
        self.hz = hz
        self.use_keyboard = keyboard
        self.renderer = PrintRenderer(winning_position=session.race.tuning.winning_position)

        self.actions = ActionBindings()
        self.running = False

    def _bind_actions(self) -> None:
        s = self.session
        self.actions.bind("NEXT_DRAWING", s.select_next)
        self.actions.bind("RELEASE_SELECTION", s.release_selection)
        self.actions.bind("OPEN_GAMES", s.open_games)
        self.actions.bind("CONFIRM", s.confirm)
        self.actions.bind("REPLAY", s.replay)
        self.actions.bind("BACK", s.back)
        self.actions.bind("QUIT", self.stop)

    def stop(self) -> None:
        self.running = False

    def _split(self, results) -> Tuple[List[Tuple[str, bytes]], List[Impulse]]:
        messages: List[Tuple[str, bytes]] = []
        impulses: List[Impulse] = []
        for res in results:
            if isinstance(res, Impulse):
                impulses.append(res)
            elif isinstance(res, tuple):
                messages.append(res)
            elif isinstance(res, str):
                self.actions.run(res)
        return messages, impulses

    def run(self) -> None:
        self.session.load_drawings(self.store)
        self._bind_actions()

        kb: Optional[PygameKeyboard] = None
        if self.use_keyboard:
            kb = PygameKeyboard(KeyboardTranslator(topic_base(config.MQTT_TOPIC)))

        period = 1.0 / max(1.0, self.hz)
        self.running = True
        print("Running. tab: pick drawing, 1/2: pair, g: games, enter: start, esc: back, q: quit")

        with self.transport:
            try:
                while self.running:
                    loop_start = time.time()

                    messages = self.transport.drain()
                    impulses: List[Impulse] = []
                    if kb is not None:
                        kb_messages, impulses = self._split(kb.poll(self.session.screen))
                        messages.extend(kb_messages)
                        if kb.quit_requested:
                            self.running = False

                    if messages or impulses:
                        self.session.handle_batch(messages, impulses)

                    self.session.update()
                    self.renderer.render(self.session.snapshot(), self.transport.status)

                    sleep_s = period - (time.time() - loop_start)
                    if sleep_s > 0:
                        time.sleep(sleep_s)
            except KeyboardInterrupt:
                print("\nStopped.")
            finally:
                self.session.close()
                if kb is not None:
                    kb.close()


def main() -> None:
    app = DoodleRaceApp(
        build_session(),
        build_transport(),
        build_store(),
        hz=config.LOOP_HZ,
        keyboard=config.DEBUG_KEYS,
    )
    app.run()


if __name__ == "__main__":
    main()
