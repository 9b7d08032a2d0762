"""
Controller identity -> player slot.

Policy is first-come: the first distinct controller gets player1, the next
player2, a third is turned away while both slots are held. Move impulses do not
reliably carry an identity on every firmware; those are routed by the topic the
controller connected on (see PairingRegistry.pairing_for), which need not match
the slot it was handed.

A static mapping (env PLAYER1_ID / PLAYER2_ID, a yaml file, keyboard debug ids)
overrides first-come for the identities it names.
"""
from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable, Mapping, Optional

import yaml

from doodlerace.pairing.types import SLOTS
from doodlerace.utils import looks_like_hw_address


def canonical_identity(identity: str) -> str:
    identity = identity.strip()
    return identity.upper() if looks_like_hw_address(identity) else identity


def load_slot_map(path: Path) -> Dict[str, str]:
    """
    Yaml file, either flat or under a `controllers:` key:

      controllers:
        "00:4B:12:C4:FF:18": player1
        "00:4B:12:C4:FF:9A": player2
    """
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    if isinstance(data, dict) and isinstance(data.get("controllers"), dict):
        data = data["controllers"]
    if not isinstance(data, dict):
        raise ValueError(f"Controller map must be a mapping: {path}")

    out: Dict[str, str] = {}
    for identity, slot in data.items():
        if slot not in SLOTS:
            raise ValueError(f"Unknown slot {slot!r} for {identity!r} in {path}")
        out[canonical_identity(str(identity))] = slot
    return out


class SlotPolicy:
    def __init__(self, static_map: Optional[Mapping[str, str]] = None) -> None:
        self._static: Dict[str, str] = {}
        if static_map:
            self.update(static_map)

    def update(self, static_map: Mapping[str, str]) -> None:
        for identity, slot in static_map.items():
            if not identity:
                continue
            if slot not in SLOTS:
                raise ValueError(f"Unknown slot {slot!r} for {identity!r}")
            self._static[canonical_identity(identity)] = slot

    @property
    def static_map(self) -> Dict[str, str]:
        return dict(self._static)

    def _reserved(self) -> Iterable[str]:
        return set(self._static.values())

    def assign(self, identity: str, occupied: Mapping[str, str]) -> Optional[str]:
        """
        occupied: slot -> controller_id currently holding it.
        Returns the slot for `identity`, or None if it cannot have one now.
        """
        for slot, holder in occupied.items():
            if holder == identity:
                return slot

        mapped = self._static.get(identity)
        if mapped is not None:
            return mapped if mapped not in occupied else None

        free = [s for s in SLOTS if s not in occupied]
        if not free:
            return None

        reserved = self._reserved()
        for slot in free:
            if slot not in reserved:
                return slot
        return free[0]
