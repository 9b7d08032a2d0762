"""
normalize.py

Opaque (topic, payload) -> ControllerEvent.

Payloads seen in the wild:
  - '{"event":"connect","id":"AA:BB:CC:DD:EE:10"}'   (device boot / A button)
  - '{"button":"RIGHT","step":4}'                   (discrete press)
  - '{"dx":1.5,"dy":-2}' or '{"x":..,"y":..}'        (tilt)
  - '{"event":"run"}'                               (shake during the race)
  - 'up'                                            (plain text, older firmware)

Never raises. Anything unparseable degrades to a text button token.
"""
from __future__ import annotations

import json
import math
from typing import Any, Dict, Optional, Union

from doodlerace.controllers.types import CONNECT, DEFAULT_STEP, MOVE, UNKNOWN, Axis, ControllerEvent
from doodlerace.utils import decode_payload, last_topic_segment, looks_like_hw_address

RUN_EVENT = "run"

_PRESSED_STATES = ("down", "press", "pressed")
_RELEASED_STATES = ("up", "release", "released")


def _number(obj: Dict[str, Any], *keys: str) -> Optional[float]:
    for k in keys:
        v = obj.get(k)
        # bool is an int subclass; "true" is not a displacement
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            try:
                v = float(v)
            except OverflowError:
                continue
            # 1e999 parses to inf
            if math.isfinite(v):
                return v
    return None


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-standard JSON constant {name}")


def _string(obj: Dict[str, Any], *keys: str) -> Optional[str]:
    for k in keys:
        v = obj.get(k)
        if isinstance(v, str):
            return v
    return None


def _pressed(obj: Dict[str, Any]) -> Optional[bool]:
    v = obj.get("pressed")
    if isinstance(v, bool):
        return v
    state = obj.get("state")
    if isinstance(state, str):
        s = state.strip().lower()
        if s in _PRESSED_STATES:
            return True
        if s in _RELEASED_STATES:
            return False
    return None


def resolve_source_id(identity: Optional[str], topic_hint: Optional[str]) -> Optional[str]:
    """
    Hardware address wins (upper-cased); anything else falls back to the topic hint.
    """
    if identity is not None and looks_like_hw_address(identity):
        return identity.strip().upper()
    return topic_hint


def _from_text(raw: str, topic_hint: Optional[str], text: Optional[str] = None) -> ControllerEvent:
    button = (raw if text is None else text).strip().lower()
    return ControllerEvent(
        raw=raw,
        source_id=topic_hint,
        kind=MOVE if button else UNKNOWN,
        button=button,
        topic_hint=topic_hint,
    )


def _from_object(raw: str, obj: Dict[str, Any], topic_hint: Optional[str]) -> ControllerEvent:
    axis = Axis(dx=_number(obj, "dx", "x"), dy=_number(obj, "dy", "y"))

    button = _string(obj, "button", "key")
    if button is not None:
        button = button.lower()

    step = _number(obj, "step")
    event = obj.get("event")

    if event == CONNECT:
        kind = CONNECT
    elif event == RUN_EVENT:
        kind = MOVE
        button = button or RUN_EVENT
    elif button is not None or axis.present:
        kind = MOVE
    else:
        kind = UNKNOWN

    return ControllerEvent(
        raw=raw,
        source_id=resolve_source_id(_string(obj, "id"), topic_hint),
        kind=kind,
        axis=axis,
        button=button,
        step=DEFAULT_STEP if step is None else step,
        topic_hint=topic_hint,
        pressed=_pressed(obj),
    )


def normalize(raw_bytes: Union[bytes, bytearray, str, None], topic: Optional[str] = None) -> ControllerEvent:
    raw = decode_payload(raw_bytes)
    topic_hint = last_topic_segment(topic)

    try:
        # NaN / Infinity are not JSON; such payloads take the text path
        parsed = json.loads(raw, parse_constant=_reject_constant)
    except (ValueError, RecursionError):
        return _from_text(raw, topic_hint)

    if isinstance(parsed, str):
        return _from_text(raw, topic_hint, parsed)

    # '42', '[1,2]' are valid JSON but not a controller object
    if not isinstance(parsed, dict):
        return _from_text(raw, topic_hint)

    return _from_object(raw, parsed, topic_hint)
