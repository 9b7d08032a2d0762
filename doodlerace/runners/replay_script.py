"""
Feed a scripted list of broker messages through a PlaySession and print what
happens. No broker, no window.

  python -m doodlerace.runners.replay_script [script.yaml]

Script format (yaml list), each step one of:
  - select: d1
  - msg: {topic: "yokohama/hackathon/running/player1", payload: '{"event":"connect","id":"AA:BB:CC:DD:EE:10"}'}
  - open_games: true
  - start: race
  - tick: 3
  - replay: true
  - back: true
"""
from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Dict, List

import yaml

from doodlerace.pairing.types import Drawing
from doodlerace.render.print_renderer import PrintRenderer
from doodlerace.session import PlaySession
from doodlerace.store.drawings import StaticDrawingStore

TOPIC = "yokohama/hackathon/running"

DEMO_SCRIPT: List[Dict[str, Any]] = [
    {"select": "cat"},
    {"msg": {"topic": f"{TOPIC}/player1", "payload": '{"event":"connect","id":"AA:BB:CC:DD:EE:10"}'}},
    {"select": "dog"},
    {"msg": {"topic": f"{TOPIC}/player2", "payload": '{"event":"connect","id":"AA:BB:CC:DD:EE:81"}'}},
    {"msg": {"topic": f"{TOPIC}/player2", "payload": '{"button":"RIGHT"}'}},
    {"open_games": True},
    {"start": "race"},
    {"tick": 3},
] + [
    {"msg": {"topic": f"{TOPIC}/player1", "payload": '{"event":"run","id":"AA:BB:CC:DD:EE:10"}'}}
    for _ in range(50)
]

DEMO_DRAWINGS = [Drawing("cat", "file:///cat.png"), Drawing("dog", "file:///dog.png")]


def run_script(session: PlaySession, steps: List[Dict[str, Any]], renderer: PrintRenderer) -> None:
    for step in steps:
        if "select" in step:
            session.select(str(step["select"]))
        elif "msg" in step:
            m = step["msg"]
            session.handle_message(m["topic"], str(m["payload"]).encode("utf-8"))
        elif "open_games" in step:
            session.open_games()
        elif "start" in step:
            session.start_game(str(step["start"]))
        elif "tick" in step:
            for _ in range(int(step["tick"])):
                session.race.tick()
        elif "replay" in step:
            session.replay()
        elif "back" in step:
            session.back()
        else:
            print(f"[replay] unknown step: {step}")
            continue
        renderer.render(session.snapshot(), "replay")


def main() -> None:
    session = PlaySession()
    session.load_drawings(StaticDrawingStore(DEMO_DRAWINGS))
    steps = DEMO_SCRIPT
    if len(sys.argv) > 1:
        steps = yaml.safe_load(Path(sys.argv[1]).read_text(encoding="utf-8")) or []
    run_script(session, steps, PrintRenderer())


if __name__ == "__main__":
    main()
