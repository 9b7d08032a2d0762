from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Optional

from doodlerace.race.types import FINISH, READY, RaceState
from doodlerace.session import SessionSnapshot


def race_line(st: RaceState, width: int = 20, winning_position: int = 100) -> List[str]:
    def lane(n: int, pos: int, wobble: int) -> str:
        filled = int(round(width * pos / max(1, winning_position)))
        runner = "\\o/" if wobble % 2 else "_o_"
        return f"P{n} |{'=' * filled}{runner}{' ' * (width - filled)}| {pos:3d}"

    if st.phase == READY:
        head = f"ready... {st.countdown}"
    elif st.phase == FINISH:
        head = f"player{st.winner} wins!"
    else:
        head = "go!"
    return [head, lane(1, st.player1_position, st.player1_impulses), lane(2, st.player2_position, st.player2_impulses)]


@dataclass
class PrintRenderer:
    """
    Stand-in for the real screen. Prints the session only when it changed.
    """
    winning_position: int = 100
    _last: Optional[List[str]] = field(default=None, init=False)

    def lines(self, snap: SessionSnapshot, status: str) -> List[str]:
        out = [f"[{snap.screen}] {status}"]
        if snap.load_error:
            out.append(f"load error: {snap.load_error}")

        if snap.screen == "stage":
            out.append(f"selected: {snap.active_drawing_id or '-'}  ({len(snap.drawings)} drawings)")
            for p in snap.pairings:
                pos = snap.positions.get(p.drawing_id)
                where = f" @ ({pos.x:+.0f},{pos.y:+.0f})" if pos else ""
                out.append(f"  {p.slot}: {p.drawing_id} <- ..{p.controller_id[-5:]}{where}")
        elif snap.screen == "games":
            out.append("games: race  (enter to start)")
            if snap.waiting_for_players:
                out.append("waiting for two paired players...")
        elif snap.race is not None:
            out.extend(race_line(snap.race, winning_position=self.winning_position))
        return out

    def render(self, snap: SessionSnapshot, status: str) -> bool:
        cur = self.lines(snap, status)
        if cur == self._last:
            return False
        self._last = cur
        print("\n".join(cur))
        return True
