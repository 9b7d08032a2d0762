"""
keyboard.py

Keyboard stand-in for the handheld controllers (debug / no broker).

Stage screen:
  1 / 2          -> '{"event":"connect","id":<debug id>}' on <base>/player1|2
  arrow keys     -> 'up' / 'down' / 'left' / 'right' on <base>/player1
Race screen:
  1 / 2          -> press/release straight to race player 1 / 2
  arrow keys     -> same text payloads as on the stage (player1 only)

Synthetic messages go through normalize() like broker traffic; nothing
downstream can tell them apart.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Dict, List, Tuple, Union

import pygame

from doodlerace.pairing.types import PLAYER1, PLAYER2
from doodlerace.race.types import Impulse

Message = Tuple[str, bytes]

DEBUG_IDS: Dict[str, str] = {
    PLAYER1: "DE:B0:00:00:00:01",
    PLAYER2: "DE:B0:00:00:00:02",
}

_SLOT_KEYS = {"1": PLAYER1, "2": PLAYER2}
_RACE_KEYS = {"1": 1, "2": 2}
_ARROWS = ("up", "down", "left", "right")

# key name -> ui action name, resolved through ActionBindings
UI_KEYS: Dict[str, str] = {
    "tab": "NEXT_DRAWING",
    "backspace": "RELEASE_SELECTION",
    "g": "OPEN_GAMES",
    "return": "CONFIRM",
    "r": "REPLAY",
    "escape": "BACK",
    "q": "QUIT",
}

KeyResult = Union[Message, Impulse, str, None]


def topic_base(topic: str) -> str:
    """
    "yokohama/hackathon/running/player1" -> "yokohama/hackathon/running"
    """
    head, sep, _ = topic.rstrip("/").rpartition("/")
    return head if sep else ""


def _topic(base: str, slot: str) -> str:
    return f"{base}/{slot}" if base else slot


def connect_message(slot: str, base: str) -> Message:
    payload = json.dumps({"event": "connect", "id": DEBUG_IDS[slot]}, separators=(",", ":"))
    return _topic(base, slot), payload.encode("utf-8")


def arrow_message(direction: str, base: str) -> Message:
    return _topic(base, PLAYER1), direction.encode("utf-8")


@dataclass
class KeyboardTranslator:
    """
    Key name + up/down + current screen -> what it means.
    Returns a transport message, a race Impulse, a ui action name, or None.
    """
    base: str

    def translate(self, key: str, down: bool, screen: str) -> KeyResult:
        key = key.lower()

        if screen == "race" and key in _RACE_KEYS:
            return Impulse(player=_RACE_KEYS[key], key=key, pressed=down)

        if not down:
            return None

        if screen == "stage" and key in _SLOT_KEYS:
            return connect_message(_SLOT_KEYS[key], self.base)

        if key in _ARROWS and screen in ("stage", "race"):
            return arrow_message(key, self.base)

        return UI_KEYS.get(key)


class PygameKeyboard:
    """
    Small pygame window that owns keyboard focus and turns key events into
    KeyResults. Holding a key does not auto-repeat (pygame repeat stays off).
    """

    def __init__(self, translator: KeyboardTranslator, *, size: Tuple[int, int] = (360, 120),
                 caption: str = "doodle-race keys") -> None:
        pygame.init()
        self.screen = pygame.display.set_mode(size)
        pygame.display.set_caption(caption)
        pygame.key.set_repeat()  # disabled
        self.translator = translator
        self.quit_requested = False

    def poll(self, screen: str) -> List[KeyResult]:
        out: List[KeyResult] = []
        for ev in pygame.event.get():
            if ev.type == pygame.QUIT:
                self.quit_requested = True
            elif ev.type in (pygame.KEYDOWN, pygame.KEYUP):
                res = self.translator.translate(pygame.key.name(ev.key), ev.type == pygame.KEYDOWN, screen)
                if res is not None:
                    out.append(res)
        return out

    def close(self) -> None:
        pygame.display.quit()
        pygame.quit()


def debug_slot_map() -> Dict[str, str]:
    return {identity: slot for slot, identity in DEBUG_IDS.items()}
