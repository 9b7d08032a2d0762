from __future__ import annotations

from typing import Dict, Optional, Tuple

from doodlerace.controllers.types import ControllerEvent
from doodlerace.pairing.slots import SlotPolicy
from doodlerace.pairing.types import ORIGIN, SLOTS, Pairing, PairingChange, Position, StageTuning
from doodlerace.utils import clamp

_DIRECTIONS = {
    "up": (0.0, -1.0),
    "down": (0.0, 1.0),
    "left": (-1.0, 0.0),
    "right": (1.0, 0.0),
}


class PairingRegistry:
    """
    Sole owner of controller <-> player slot <-> drawing state.

    Invariants:
      - at most one pairing per slot
      - at most one pairing per drawing id
      - pairings only come from connect events with an active drawing

    Calls outside those preconditions are silent no-ops (None); callers poll
    pairings_view() for state.
    """

    def __init__(self, policy: Optional[SlotPolicy] = None, stage: StageTuning = StageTuning()) -> None:
        self.policy = policy or SlotPolicy()
        self.stage = stage
        self._pairings: Dict[str, Pairing] = {}  # controller_id -> Pairing
        self._positions: Dict[str, Position] = {}  # drawing_id -> Position

    # -------- binding --------

    def bind_active_selection(
        self, event: ControllerEvent, active_drawing_id: Optional[str]
    ) -> Optional[PairingChange]:
        if not event.is_connect or not active_drawing_id or not event.source_id:
            return None

        controller_id = event.source_id
        slot = self.policy.assign(controller_id, self._occupied())
        if slot is None:
            return None

        existing = self._pairings.get(controller_id)
        if existing is not None and existing.drawing_id == active_drawing_id:
            return PairingChange(pairing=existing, created=False, previous_drawing_id=active_drawing_id)

        evicted = tuple(
            p for cid, p in self._pairings.items()
            if p.drawing_id == active_drawing_id and cid != controller_id
        )
        for p in evicted:
            del self._pairings[p.controller_id]

        pairing = Pairing(
            controller_id=controller_id,
            slot=slot,
            drawing_id=active_drawing_id,
            topic_hint=event.topic_hint,
        )
        self._pairings[controller_id] = pairing

        if existing is not None and existing.drawing_id not in self._held_drawings():
            self._positions.pop(existing.drawing_id, None)
        self._positions[active_drawing_id] = ORIGIN

        return PairingChange(
            pairing=pairing,
            created=existing is None,
            previous_drawing_id=existing.drawing_id if existing else None,
            evicted=evicted,
        )

    def release(self, controller_id: str) -> Optional[Pairing]:
        pairing = self._pairings.pop(controller_id, None)
        if pairing is not None:
            self._positions.pop(pairing.drawing_id, None)
        return pairing

    def clear(self) -> None:
        self._pairings.clear()
        self._positions.clear()

    # -------- queries --------

    def pairings_view(self) -> Tuple[Pairing, ...]:
        return tuple(sorted(self._pairings.values(), key=lambda p: SLOTS.index(p.slot)))

    def pairing_for_slot(self, slot: str) -> Optional[Pairing]:
        for p in self._pairings.values():
            if p.slot == slot:
                return p
        return None

    def drawing_for_slot(self, slot: str) -> Optional[str]:
        p = self.pairing_for_slot(slot)
        return p.drawing_id if p else None

    def position_of(self, drawing_id: str) -> Position:
        return self._positions.get(drawing_id, ORIGIN)

    def pairing_for(self, event: ControllerEvent) -> Optional[Pairing]:
        """
        Attribute an event to a pairing.

        By identity first. Devices that do not send an identity with every
        impulse only carry the topic hint ("player2"). Slots are handed out
        first-come, so the hint is matched against the topic each controller
        connected on, not against the slot name. The slot holder only takes a
        hint no pairing connected on when it did not itself connect on another
        player topic.
        """
        hint = event.source_id
        if not hint:
            return None
        pairing = self._pairings.get(hint)
        if pairing is not None:
            return pairing
        if hint not in SLOTS:
            return None

        for p in self.pairings_view():
            if p.topic_hint == hint:
                return p
        holder = self.pairing_for_slot(hint)
        if holder is not None and holder.topic_hint not in SLOTS:
            return holder
        return None

    def slot_for(self, event: ControllerEvent) -> Optional[str]:
        p = self.pairing_for(event)
        return p.slot if p else None

    # -------- stage motion --------

    def nudge(self, event: ControllerEvent) -> Optional[Position]:
        """
        Move a paired drawing around the selection stage.
        dx/dy when the device sends tilt, otherwise button direction * step.
        A release (pressed=False) does not move anything.
        """
        if not event.is_move or event.pressed is False:
            return None
        pairing = self.pairing_for(event)
        if pairing is None:
            return None

        if event.axis.present:
            dx, dy = event.axis.dx or 0.0, event.axis.dy or 0.0
        else:
            direction = _DIRECTIONS.get(event.button or "")
            if direction is None:
                return None
            dx, dy = direction[0] * event.step, direction[1] * event.step

        lim = self.stage.limit
        cur = self.position_of(pairing.drawing_id)
        pos = Position(x=clamp(cur.x + dx, -lim, lim), y=clamp(cur.y + dy, -lim, lim))
        self._positions[pairing.drawing_id] = pos
        return pos

    # -------- internals --------

    def _occupied(self) -> Dict[str, str]:
        return {p.slot: cid for cid, p in self._pairings.items()}

    def _held_drawings(self) -> set:
        return {p.drawing_id for p in self._pairings.values()}

    def __len__(self) -> int:
        return len(self._pairings)
