import json

from doodlerace.controllers.keyboard import DEBUG_IDS, KeyboardTranslator, debug_slot_map, topic_base
from doodlerace.controllers.normalize import normalize
from doodlerace.input_helpers import ActionBindings, EdgeDetector
from doodlerace.race.types import Impulse

BASE = "yokohama/hackathon/running"


def test_topic_base():
    assert topic_base(f"{BASE}/player1") == BASE
    assert topic_base(f"{BASE}/player1/") == BASE
    assert topic_base("player1") == ""


def test_stage_number_keys_publish_connect():
    kb = KeyboardTranslator(BASE)
    topic, payload = kb.translate("1", True, "stage")
    assert topic == f"{BASE}/player1"
    assert json.loads(payload) == {"event": "connect", "id": DEBUG_IDS["player1"]}

    ev = normalize(payload, topic)
    assert ev.is_connect
    assert ev.source_id == DEBUG_IDS["player1"]


def test_key_up_on_stage_is_ignored():
    kb = KeyboardTranslator(BASE)
    assert kb.translate("1", False, "stage") is None
    assert kb.translate("up", False, "stage") is None


def test_arrows_are_plain_text_on_player1_topic():
    kb = KeyboardTranslator(BASE)
    topic, payload = kb.translate("left", True, "stage")
    assert topic == f"{BASE}/player1"
    assert payload == b"left"
    ev = normalize(payload, topic)
    assert ev.is_move
    assert ev.button == "left"


def test_race_number_keys_are_press_and_release():
    kb = KeyboardTranslator(BASE)
    assert kb.translate("2", True, "race") == Impulse(player=2, key="2", pressed=True)
    assert kb.translate("2", False, "race") == Impulse(player=2, key="2", pressed=False)


def test_ui_keys():
    kb = KeyboardTranslator(BASE)
    assert kb.translate("return", True, "games") == "CONFIRM"
    assert kb.translate("Escape", True, "race") == "BACK"
    assert kb.translate("1", True, "games") is None
    assert kb.translate("z", True, "stage") is None


def test_debug_slot_map():
    assert debug_slot_map() == {DEBUG_IDS["player1"]: "player1", DEBUG_IDS["player2"]: "player2"}


def test_edge_detector_and_bindings():
    det = EdgeDetector()
    assert det.rising("a", True)
    assert not det.rising("a", True)
    assert not det.rising("a", False)
    assert det.rising("a", True)
    det.reset()
    assert det.rising("a", True)

    hits = []
    actions = ActionBindings()
    actions.bind("GO", lambda: hits.append("go"))
    assert actions.run("GO")
    assert not actions.run("STOP")
    actions.bind("GO", lambda: hits.append("again"))
    assert actions.run("GO")
    assert hits == ["go", "again"]

