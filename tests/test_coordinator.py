import random

import pytest

from shapenet.battle.ai import HeuristicPolicy
from shapenet.battle.core import BattleCore
from shapenet.battle.events import EventKind, TurnEvent
from shapenet.battle.factory import RosterSlotConfig, build_roster, create_combatant
from shapenet.battle.models import Action, Combatant, Side
from shapenet.battle.session import PHASE_SWITCH
from shapenet.core.errors import ChannelClosedError, ProtocolError, SessionDisconnected, SessionError
from shapenet.net.channel import LoopbackChannel
from shapenet.net.coordinator import Role, SessionCoordinator, SessionState
from shapenet.net.protocol import Handshake, TurnResult, encode
from shapenet.system.roster_store import builtin_roster


def default_roster(prefix):
    return build_roster(builtin_roster(), prefix)


def connect(host_roster=None, guest_roster=None, seed=0, start=True):
    host_ch, guest_ch = LoopbackChannel.pair()
    host = SessionCoordinator.host(host_ch, host_roster or default_roster("p1"), room_id="ROOM", core=BattleCore(random.Random(seed)))
    guest = SessionCoordinator.guest(guest_ch, guest_roster or default_roster("p2"), room_id="ROOM")
    if start:
        host.start()
        guest.start()
    return host, guest


def test_lobby_until_both_handshakes():
    host, guest = connect(start=False)
    assert host.state == guest.state == SessionState.LOBBY
    with pytest.raises(SessionError):
        host.submit_action(Side.A, Action.move(0))
    host.start()
    assert host.state == SessionState.LOBBY
    assert guest.state == SessionState.LOBBY
    guest.start()
    assert host.state == guest.state == SessionState.AWAITING_ACTIONS
    assert host.battle.digest() == guest.battle.digest()


def test_roles_and_resolver_ownership():
    host, guest = connect()
    assert host.role == Role.HOST and host.side == Side.A
    assert guest.role == Role.GUEST and guest.side == Side.B
    assert host.core is not None
    assert guest.core is None


def test_room_id_generated_for_host():
    host_ch, _ = LoopbackChannel.pair()
    host = SessionCoordinator.host(host_ch, default_roster("p1"))
    assert len(host.room_id) == 4


def test_round_resolves_once_both_actions_arrive():
    host, guest = connect()
    seen = []
    guest.on_events = seen.append
    host.submit_action(Side.A, Action.move(0))
    assert host.state == SessionState.AWAITING_OPPONENT
    assert host.rounds_resolved == 0
    guest.submit_action(Side.B, Action.move(0))
    assert host.rounds_resolved == 1
    assert len(seen) == 1 and seen[0]
    assert host.state == guest.state == SessionState.AWAITING_ACTIONS
    assert host.battle.digest() == guest.battle.digest()
    assert guest.desyncs == 0
    assert host.turn == guest.turn == 1


def test_guest_first_then_host():
    host, guest = connect()
    guest.submit_action(Side.B, Action.move(1))
    assert guest.state == SessionState.AWAITING_OPPONENT
    assert host.rounds_resolved == 0
    host.submit_action(Side.A, Action.move(1))
    assert host.rounds_resolved == 1
    assert guest.state == SessionState.AWAITING_ACTIONS


def test_last_submission_wins():
    host, guest = connect()
    host.submit_action(Side.A, Action.move(0))
    host.submit_action(Side.A, Action.move(1))
    events = []
    host.on_events = events.extend
    guest.submit_action(Side.B, Action.move(2))
    anims = [e for e in events if e.kind == EventKind.ATTACK_ANIM and e.attacker == Side.A]
    assert [e.move_index for e in anims] == [1]
    assert host.rounds_resolved == 1


def test_guest_cannot_act_for_host_side():
    host, guest = connect()
    with pytest.raises(SessionError):
        guest.submit_action(Side.A, Action.move(0))


def test_full_battle_stays_in_sync():
    host, guest = connect(seed=11)
    policy = HeuristicPolicy(random.Random(11))
    for _ in range(300):
        if host.state == SessionState.GAME_OVER:
            break
        for coord in (host, guest):
            if coord.state == SessionState.GAME_OVER:
                break
            battle, side = coord.battle, coord.side
            if coord.state == SessionState.FORCED_SWITCH:
                if battle.side_phase(side) == PHASE_SWITCH:
                    coord.submit_action(side, Action.switch(battle.party(side).first_available()))
            else:
                coord.submit_action(side, policy.choose_action(battle.active(side), battle.active(side.other)))
        assert host.battle.digest() == guest.battle.digest()
    assert guest.desyncs == 0
    assert host.state == guest.state


def _lead_at_one_hp(host, guest):
    for coord in (host, guest):
        coord.battle.active(Side.B).current_hp = 1


def test_forced_switch_round():
    host_roster = build_roster([RosterSlotConfig("KITE", ["QUICK_STRIKE"])], "p1")
    guest_roster = build_roster([RosterSlotConfig("TRIANGLE", ["PIERCE"]), RosterSlotConfig("SQUARE")], "p2")
    host, guest = connect(host_roster, guest_roster)
    _lead_at_one_hp(host, guest)
    host.submit_action(Side.A, Action.move(0))
    guest.submit_action(Side.B, Action.move(0))
    assert host.state == guest.state == SessionState.FORCED_SWITCH
    assert host.battle.forced_switch_sides() == [Side.B]

    with pytest.raises(SessionError):
        guest.submit_action(Side.B, Action.move(0))
    with pytest.raises(SessionError):
        host.submit_action(Side.A, Action.move(0))

    guest.submit_action(Side.B, Action.switch(1))
    assert host.state == guest.state == SessionState.AWAITING_ACTIONS
    assert host.battle.party(Side.B).active_index == 1
    assert guest.battle.party(Side.B).active_index == 1
    assert host.battle.digest() == guest.battle.digest()
    # replacements are not turns
    assert host.rounds_resolved == 1
    assert host.turn == guest.turn == 1


def test_game_over_when_roster_wiped():
    host_roster = build_roster([RosterSlotConfig("KITE", ["QUICK_STRIKE"])], "p1")
    guest_roster = build_roster([RosterSlotConfig("TRIANGLE", ["PIERCE"])], "p2")
    host, guest = connect(host_roster, guest_roster)
    _lead_at_one_hp(host, guest)
    states = []
    guest.on_state = states.append
    host.submit_action(Side.A, Action.move(0))
    guest.submit_action(Side.B, Action.move(0))
    assert host.state == guest.state == SessionState.GAME_OVER
    assert host.winner == guest.winner == Side.A
    assert states[-1] == SessionState.GAME_OVER
    with pytest.raises(SessionError):
        host.submit_action(Side.A, Action.move(0))


def test_restart_resets_both_ends():
    host, guest = connect()
    initial = host.battle.digest()
    host.submit_action(Side.A, Action.move(0))
    guest.submit_action(Side.B, Action.move(0))
    assert host.battle.digest() != initial
    host.request_restart()
    assert host.battle.digest() == guest.battle.digest() == initial
    assert host.turn == guest.turn == 0
    assert host.state == guest.state == SessionState.AWAITING_ACTIONS


def test_disconnect_is_reported_and_blocks_actions():
    host, guest = connect()
    errors = []
    guest.on_error = errors.append
    host.close()
    assert host.state == guest.state == SessionState.DISCONNECTED
    assert len(errors) == 1 and isinstance(errors[0], SessionDisconnected)
    assert errors[0].room_id == "ROOM"
    with pytest.raises(ChannelClosedError):
        guest.submit_action(Side.B, Action.move(0))
    with pytest.raises(ChannelClosedError):
        host.submit_action(Side.A, Action.move(0))


def test_malformed_message_reported():
    host, guest = connect()
    errors = []
    guest.on_error = errors.append
    host.channel.send("{definitely not json")
    assert len(errors) == 1 and isinstance(errors[0], ProtocolError)
    assert guest.state == SessionState.AWAITING_ACTIONS


def test_handshake_with_unknown_move_rejected():
    host_ch, guest_ch = LoopbackChannel.pair()
    host = SessionCoordinator.host(host_ch, default_roster("p1"), core=BattleCore(random.Random(0)))
    errors = []
    host.on_error = errors.append
    guest_ch.on_message(lambda text: None)
    host.start()
    bad = create_combatant("SQUARE", id_prefix="p2").to_dict()
    bad["moves"] = [{"id": "SPLASH", "pp": 40}]
    guest_ch.send(encode(Handshake([bad])))
    assert host.state == SessionState.LOBBY
    assert len(errors) == 1 and isinstance(errors[0], ProtocolError)


def test_host_ignores_remote_action_in_lobby():
    host_ch, guest_ch = LoopbackChannel.pair()
    host = SessionCoordinator.host(host_ch, default_roster("p1"), core=BattleCore(random.Random(0)))
    guest_ch.send('{"type":"ACTION","payload":{"kind":"MOVE","index":0}}')
    assert host.state == SessionState.LOBBY
    assert host.pending[Side.B] is None


def test_handshake_with_unknown_ability_rejected():
    host_ch, guest_ch = LoopbackChannel.pair()
    host = SessionCoordinator.host(host_ch, default_roster("p1"), core=BattleCore(random.Random(0)))
    errors = []
    host.on_error = errors.append
    guest_ch.on_message(lambda text: None)
    host.start()
    bad = create_combatant("SQUARE", id_prefix="p2").to_dict()
    bad["ability"] = "BLAZE"
    guest_ch.send(encode(Handshake([bad])))
    assert host.state == SessionState.LOBBY
    assert len(errors) == 1 and isinstance(errors[0], ProtocolError)


def test_clashing_instance_ids_are_made_unique():
    lead = create_combatant("TRIANGLE", id_prefix="p1", move_overrides=["PIERCE"])
    # the guest's process numbers from 1 too and can hand out the same id
    twin = Combatant.from_dict({**create_combatant("TRIANGLE", move_overrides=["PIERCE"]).to_dict(),
                                "instance_id": lead.instance_id})
    host, guest = connect([lead], [twin])
    for coord in (host, guest):
        a_id = coord.battle.active(Side.A).instance_id
        b_id = coord.battle.active(Side.B).instance_id
        assert a_id == lead.instance_id
        assert b_id == "b_" + lead.instance_id
    assert host.battle.digest() == guest.battle.digest()


def test_double_knockout_with_shared_ids_stays_in_sync():
    lead = create_combatant("TRIANGLE", move_overrides=["PIERCE"])
    twin = Combatant.from_dict({**create_combatant("TRIANGLE", move_overrides=["PIERCE"]).to_dict(),
                                "instance_id": lead.instance_id})
    host, guest = connect([lead], [twin])
    for coord in (host, guest):
        coord.battle.active(Side.A).current_hp = 1
        coord.battle.active(Side.B).current_hp = 1
    events = []
    guest.on_events = events.extend
    host.submit_action(Side.A, Action.move(0))
    guest.submit_action(Side.B, Action.move(0))
    assert sorted(e.target.value for e in events if e.kind == EventKind.FAINT) == ["A", "B"]
    assert host.state == guest.state == SessionState.GAME_OVER
    assert host.winner is None and guest.winner is None
    assert guest.desyncs == 0


@pytest.mark.parametrize("bad_event", [
    TurnEvent(EventKind.DAMAGE, amount=5),
    TurnEvent(EventKind.ATTACK_ANIM, attacker=Side.A, move_index=9),
])
def test_unplayable_turn_result_reported(bad_event):
    host, guest = connect()
    errors = []
    guest.on_error = errors.append
    host.channel.send(encode(TurnResult([bad_event], None)))
    assert len(errors) == 1 and isinstance(errors[0], ProtocolError)
    assert guest.desyncs == 1
    assert guest.turn == 0
