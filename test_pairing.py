import itertools
import random

import pytest

from doodlerace.controllers.normalize import normalize
from doodlerace.pairing.registry import PairingRegistry
from doodlerace.pairing.slots import SlotPolicy, load_slot_map
from doodlerace.pairing.types import PLAYER1, PLAYER2, Position, StageTuning

TOPIC = "yokohama/hackathon/running/player1"
P2_TOPIC = "yokohama/hackathon/running/player2"
CONTROL_TOPIC = "dorosupi/controller"
MAC_A = "AA:BB:CC:DD:EE:10"
MAC_B = "AA:BB:CC:DD:EE:81"
MAC_C = "AA:BB:CC:DD:EE:22"


def connect(mac, topic=TOPIC):
    return normalize(f'{{"event":"connect","id":"{mac}"}}'.encode(), topic)


def move(payload, topic=TOPIC):
    return normalize(payload.encode(), topic)


def test_scenario_a_first_connect_binds_player1():
    reg = PairingRegistry()
    change = reg.bind_active_selection(connect(MAC_A), "d1")

    assert change is not None
    assert change.created
    view = reg.pairings_view()
    assert len(view) == 1
    assert view[0].controller_id == MAC_A
    assert view[0].slot == PLAYER1
    assert view[0].drawing_id == "d1"
    assert reg.position_of("d1") == Position(0, 0)


def test_second_controller_gets_player2_and_third_is_rejected():
    reg = PairingRegistry()
    reg.bind_active_selection(connect(MAC_A), "d1")
    change = reg.bind_active_selection(connect(MAC_B), "d2")
    assert change.pairing.slot == PLAYER2

    assert reg.bind_active_selection(connect(MAC_C), "d3") is None
    assert [p.controller_id for p in reg.pairings_view()] == [MAC_A, MAC_B]


def test_no_active_drawing_is_a_noop():
    reg = PairingRegistry()
    assert reg.bind_active_selection(connect(MAC_A), None) is None
    assert reg.pairings_view() == ()


def test_unresolvable_identity_is_a_noop():
    reg = PairingRegistry()
    ev = normalize(b'{"event":"connect"}', None)
    assert reg.bind_active_selection(ev, "d1") is None
    assert len(reg) == 0


def test_move_never_creates_a_pairing():
    reg = PairingRegistry()
    ev = normalize(f'{{"button":"up","id":"{MAC_A}"}}'.encode(), TOPIC)
    assert reg.bind_active_selection(ev, "d1") is None
    assert len(reg) == 0


def test_rebinding_same_drawing_elsewhere_evicts_previous_holder():
    reg = PairingRegistry()
    reg.bind_active_selection(connect(MAC_A), "d1")
    change = reg.bind_active_selection(connect(MAC_B), "d1")

    assert [p.controller_id for p in change.evicted] == [MAC_A]
    view = reg.pairings_view()
    assert len(view) == 1
    assert view[0].controller_id == MAC_B
    assert view[0].drawing_id == "d1"


def test_reconnect_with_new_drawing_keeps_slot():
    reg = PairingRegistry()
    reg.bind_active_selection(connect(MAC_A), "d1")
    reg.bind_active_selection(connect(MAC_B), "d2")

    change = reg.bind_active_selection(connect(MAC_B), "d3")
    assert not change.created
    assert change.previous_drawing_id == "d2"
    assert change.pairing.slot == PLAYER2
    assert reg.drawing_for_slot(PLAYER2) == "d3"


def test_reconnect_onto_other_players_drawing_evicts_them_but_keeps_own_slot():
    reg = PairingRegistry()
    reg.bind_active_selection(connect(MAC_A), "d1")
    reg.bind_active_selection(connect(MAC_B), "d2")

    reg.bind_active_selection(connect(MAC_B), "d1")
    view = reg.pairings_view()
    assert len(view) == 1
    assert view[0].controller_id == MAC_B
    assert view[0].slot == PLAYER2
    assert reg.drawing_for_slot(PLAYER1) is None


def test_same_connect_twice_is_idempotent():
    reg = PairingRegistry()
    reg.bind_active_selection(connect(MAC_A), "d1")
    before = reg.pairings_view()
    change = reg.bind_active_selection(connect(MAC_A), "d1")
    assert change is not None
    assert not change.created
    assert reg.pairings_view() == before


def test_release_and_clear():
    reg = PairingRegistry()
    reg.bind_active_selection(connect(MAC_A), "d1")
    reg.bind_active_selection(connect(MAC_B), "d2")

    released = reg.release(MAC_A)
    assert released.slot == PLAYER1
    assert reg.release(MAC_A) is None

    # freed slot goes to the next newcomer
    assert reg.bind_active_selection(connect(MAC_C), "d3").pairing.slot == PLAYER1

    reg.clear()
    assert reg.pairings_view() == ()


def test_static_mapping_takes_precedence():
    reg = PairingRegistry(SlotPolicy({MAC_A.lower(): PLAYER2}))
    assert reg.bind_active_selection(connect(MAC_A), "d1").pairing.slot == PLAYER2
    # unmapped newcomer takes the free slot
    assert reg.bind_active_selection(connect(MAC_B), "d2").pairing.slot == PLAYER1


def test_static_mapping_rejects_when_slot_taken():
    reg = PairingRegistry(SlotPolicy({MAC_C: PLAYER1}))
    reg.bind_active_selection(connect(MAC_A), "d1")
    reg.bind_active_selection(connect(MAC_B), "d2")
    assert reg.bind_active_selection(connect(MAC_C), "d3") is None


def test_unmapped_controller_avoids_reserved_slot():
    policy = SlotPolicy({MAC_C: PLAYER1})
    assert policy.assign(MAC_A, {}) == PLAYER2
    assert policy.assign(MAC_B, {PLAYER2: MAC_A}) == PLAYER1


def test_slot_invariants_hold_for_random_connect_sequences():
    rng = random.Random(7)
    macs = [f"AA:BB:CC:DD:EE:{i:02X}" for i in range(5)]
    drawings = ["d1", "d2", "d3"]
    for _ in range(200):
        reg = PairingRegistry()
        for mac, d in zip(rng.choices(macs, k=12), rng.choices(drawings + [None], k=12)):
            reg.bind_active_selection(connect(mac), d)
            view = reg.pairings_view()
            slots = [p.slot for p in view]
            held = [p.drawing_id for p in view]
            assert len(slots) == len(set(slots))
            assert len(held) == len(set(held))


def test_impulse_attribution_by_identity_and_topic_hint():
    reg = PairingRegistry()
    reg.bind_active_selection(connect(MAC_A), "d1")
    reg.bind_active_selection(connect(MAC_B, P2_TOPIC), "d2")

    assert reg.slot_for(move(f'{{"event":"run","id":"{MAC_B}"}}')) == PLAYER2
    # no identity: routed by the topic the controller connected on
    assert reg.slot_for(move("up", P2_TOPIC)) == PLAYER2
    assert reg.slot_for(move("up", TOPIC)) == PLAYER1
    # unknown device
    assert reg.slot_for(move(f'{{"event":"run","id":"{MAC_C}"}}')) is None
    assert reg.slot_for(move("up", "other/topic")) is None


def test_topic_hint_follows_connect_topic_not_slot_name():
    reg = PairingRegistry()
    # A connects first on player2's topic and still gets player1
    reg.bind_active_selection(connect(MAC_A, P2_TOPIC), "d1")
    reg.bind_active_selection(connect(MAC_B, TOPIC), "d2")
    assert reg.pairing_for_slot(PLAYER1).controller_id == MAC_A

    assert reg.pairing_for(move("run", P2_TOPIC)).controller_id == MAC_A
    assert reg.pairing_for(move("run", TOPIC)).controller_id == MAC_B


def test_unclaimed_topic_hint_falls_back_to_slot_holder():
    reg = PairingRegistry()
    reg.bind_active_selection(connect(MAC_A, CONTROL_TOPIC), "d1")
    reg.bind_active_selection(connect(MAC_B, CONTROL_TOPIC), "d2")
    assert reg.slot_for(move("run", TOPIC)) == PLAYER1
    assert reg.slot_for(move("run", P2_TOPIC)) == PLAYER2


def test_slot_holder_from_another_player_topic_is_not_a_fallback():
    reg = PairingRegistry()
    reg.bind_active_selection(connect(MAC_A, CONTROL_TOPIC), "d1")
    reg.bind_active_selection(connect(MAC_B, TOPIC), "d2")

    assert reg.slot_for(move("run", TOPIC)) == PLAYER2
    # player2 is held by B, which connected on player1's topic
    assert reg.slot_for(move("run", P2_TOPIC)) is None


def test_nudge_by_button_and_axis_is_clamped():
    reg = PairingRegistry(stage=StageTuning(limit=40))
    reg.bind_active_selection(connect(MAC_A), "d1")
    ev_right = move(f'{{"button":"right","id":"{MAC_A}"}}')

    assert reg.nudge(ev_right) == Position(6, 0)
    for _ in range(10):
        reg.nudge(ev_right)
    assert reg.position_of("d1") == Position(40, 0)

    reg.nudge(move(f'{{"dx":-100,"dy":5.5,"id":"{MAC_A}"}}'))
    assert reg.position_of("d1") == Position(-40, 5.5)


def test_nudge_ignores_unpaired_and_unknown_buttons():
    reg = PairingRegistry()
    assert reg.nudge(move(f'{{"button":"up","id":"{MAC_A}"}}')) is None
    reg.bind_active_selection(connect(MAC_A), "d1")
    assert reg.nudge(move(f'{{"button":"a","id":"{MAC_A}"}}')) is None


def test_load_slot_map(tmp_path):
    f = tmp_path / "controllers.yaml"
    f.write_text('controllers:\n  "00:4b:12:c4:ff:18": player1\n  "00:4B:12:C4:FF:9A": player2\n')
    assert load_slot_map(f) == {"00:4B:12:C4:FF:18": PLAYER1, "00:4B:12:C4:FF:9A": PLAYER2}


def test_load_slot_map_rejects_bad_slot(tmp_path):
    f = tmp_path / "controllers.yaml"
    f.write_text('"00:4B:12:C4:FF:18": player3\n')
    with pytest.raises(ValueError):
        load_slot_map(f)


def test_slot_policy_order_independent_of_insertion():
    for first, second in itertools.permutations([MAC_A, MAC_B]):
        reg = PairingRegistry()
        reg.bind_active_selection(connect(first), "d1")
        reg.bind_active_selection(connect(second), "d2")
        assert reg.pairing_for_slot(PLAYER1).controller_id == first
