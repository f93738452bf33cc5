import random

import pytest

from shapenet.battle.core import BattleCore
from shapenet.battle.events import EventKind
from shapenet.battle.factory import create_combatant
from shapenet.battle.models import Action, Side
from shapenet.core.types import StatusCondition


def duel(a_key, b_key, a_moves=None, b_moves=None, a_item=None, b_item=None):
    a = create_combatant(a_key, id_prefix="p1", move_overrides=a_moves, item_key=a_item)
    b = create_combatant(b_key, id_prefix="p2", move_overrides=b_moves, item_key=b_item)
    return a, b


def turn(core, act_a, act_b, a, b):
    return core.resolve_turn(act_a, act_b, 0, 0, [a], [b])


def attackers(events):
    return [e.attacker for e in events if e.kind == EventKind.ATTACK_ANIM]


def of_kind(events, kind):
    return [e for e in events if e.kind == kind]


def logs(events):
    return [e.message for e in events if e.kind == EventKind.LOG]


def test_priority_overrides_speed():
    a, b = duel("SQUARE", "KITE", a_moves=["QUICK_STRIKE"], b_moves=["AERO_SLASH"])
    events = turn(BattleCore(random.Random(1)), Action.move(0), Action.move(0), a, b)
    assert attackers(events) == [Side.A, Side.B]


def test_speed_orders_equal_priority():
    a, b = duel("SQUARE", "KITE", a_moves=["ROLLOUT"], b_moves=["AERO_SLASH"])
    events = turn(BattleCore(random.Random(1)), Action.move(0), Action.move(0), a, b)
    assert attackers(events) == [Side.B, Side.A]


def test_effective_speed_modifiers():
    core = BattleCore(random.Random(0))
    kite = create_combatant("KITE")
    assert core.effective_speed(kite) == pytest.approx(155 * 1.5)
    kite.status = StatusCondition.LAGGING
    assert core.effective_speed(kite) == pytest.approx(155 * 1.5 * 0.5)
    booted = create_combatant("KITE", item_key="SPEED_BOOTS")
    assert core.effective_speed(booted) == pytest.approx(155 * 1.5 * 1.5)


def test_speed_tie_is_a_coin_flip():
    firsts = set()
    for seed in range(30):
        a, b = duel("TRIANGLE", "TRIANGLE", a_moves=["PIERCE"], b_moves=["PIERCE"])
        events = turn(BattleCore(random.Random(seed)), Action.move(0), Action.move(0), a, b)
        firsts.add(attackers(events)[0])
    assert firsts == {Side.A, Side.B}


def test_switch_precedes_move():
    lead = create_combatant("TRIANGLE", id_prefix="p1")
    bench = create_combatant("SQUARE", id_prefix="p1")
    foe = create_combatant("KITE", id_prefix="p2", move_overrides=["AERO_SLASH"])
    core = BattleCore(random.Random(3))
    events = core.resolve_turn(Action.switch(1), Action.move(0), 0, 0, [lead, bench], [foe])
    kinds = [e.kind for e in events]
    assert kinds.index(EventKind.SWITCH_ANIM) < kinds.index(EventKind.ATTACK_ANIM)
    switch = of_kind(events, EventKind.SWITCH_ANIM)[0]
    assert switch.target == Side.A and switch.new_active_index == 1
    assert lead.current_hp == lead.max_hp
    assert bench.current_hp < bench.max_hp
    assert any("come back" in m for m in logs(events))


@pytest.mark.parametrize("action", [
    None,
    Action.move(5),
    Action.switch(0),   # already active
    Action.switch(1),   # fainted
    Action.switch(9),
])
def test_invalid_actions_become_noops(action):
    a, b = duel("TRIANGLE", "SQUARE", a_moves=["PIERCE"], b_moves=["FORTIFY"])
    fainted = create_combatant("CIRCLE", id_prefix="p1")
    fainted.current_hp = 0
    core = BattleCore(random.Random(2))
    events = core.resolve_turn(action, Action.move(0), 0, 0, [a, fainted], [b])
    assert Side.A not in attackers(events)
    assert not of_kind(events, EventKind.SWITCH_ANIM)
    assert a.moves[0].pp == a.moves[0].template.base_pp
    assert attackers(events) == [Side.B]


def test_move_without_pp_is_ignored():
    a, b = duel("TRIANGLE", "SQUARE", a_moves=["PIERCE"], b_moves=["FORTIFY"])
    a.moves[0].pp = 0
    events = turn(BattleCore(random.Random(2)), Action.move(0), None, a, b)
    assert attackers(events) == []
    assert b.current_hp == b.max_hp


def test_pp_decrements_and_attack_anim_carries_move_index():
    a, b = duel("TRIANGLE", "SQUARE", a_moves=["FORTIFY", "PIERCE"])
    events = turn(BattleCore(random.Random(2)), Action.move(1), None, a, b)
    anim = of_kind(events, EventKind.ATTACK_ANIM)[0]
    assert anim.move_index == 1
    assert a.moves[1].pp == a.moves[1].template.base_pp - 1
    assert a.moves[0].pp == a.moves[0].template.base_pp


def test_scenario_a_damage_within_formula_bounds():
    # base = (22 * 50 * 1 / 50) + 2 = 24; x1.5 STAB x2 type => 72 * rand(0.85..1.00)
    seen = set()
    for seed in range(200):
        a, b = duel("TRIANGLE", "CIRCLE", a_moves=["PIERCE"])
        a.stats["atk"] = 100
        b.stats["def"] = 100
        a.stats["spd"] = b.stats["spd"] = 100
        events = turn(BattleCore(random.Random(seed)), Action.move(0), None, a, b)
        dmg = [e for e in of_kind(events, EventKind.DAMAGE) if e.target == Side.B][0].amount
        assert 61 <= dmg <= 72
        seen.add(dmg)
    assert len(seen) > 5
    assert "It's super effective!" in logs(events)


def test_scenario_b_guaranteed_status():
    for seed in range(20):
        a, b = duel("BITMASS", "SQUARE", a_moves=["CORRUPT"])
        events = turn(BattleCore(random.Random(seed)), Action.move(0), None, a, b)
        applied = of_kind(events, EventKind.STATUS_APPLIED)
        assert len(applied) == 1
        assert applied[0].target == Side.B
        assert applied[0].status == StatusCondition.GLITCHED
        assert b.status == StatusCondition.GLITCHED
        dot = of_kind(events, EventKind.STATUS_DAMAGE)
        assert dot[0].amount == b.max_hp // 8


def test_status_immunity_and_existing_status():
    a, b = duel("BITMASS", "HEXAGON", a_moves=["CORRUPT"])
    events = turn(BattleCore(random.Random(0)), Action.move(0), None, a, b)
    assert not of_kind(events, EventKind.STATUS_APPLIED)
    assert b.status == StatusCondition.NONE
    assert any("unaffected" in m for m in logs(events))

    a, c = duel("BITMASS", "SQUARE", a_moves=["CORRUPT"])
    c.status = StatusCondition.LAGGING
    events = turn(BattleCore(random.Random(0)), Action.move(0), None, a, c)
    assert not of_kind(events, EventKind.STATUS_APPLIED)
    assert c.status == StatusCondition.LAGGING


def test_sleep_counter_rolled_on_infliction():
    for seed in range(40):
        a, b = duel("RHOMBUS", "SQUARE", a_moves=["LULLABY_WAVE"])
        events = turn(BattleCore(random.Random(seed)), Action.move(0), None, a, b)
        applied = of_kind(events, EventKind.STATUS_APPLIED)
        if applied:
            assert 1 <= applied[0].amount <= 3
            assert b.status == StatusCondition.ASLEEP
            assert b.status_turns == applied[0].amount
            return
    pytest.fail("a 75% sleep move never landed in 40 seeds")


def test_sleep_skips_turns_then_wakes():
    a, b = duel("SQUARE", "CIRCLE", a_moves=["BOX_BASH"])
    a.status = StatusCondition.ASLEEP
    a.status_turns = 2
    core = BattleCore(random.Random(4))
    first = turn(core, Action.move(0), None, a, b)
    assert attackers(first) == []
    assert of_kind(first, EventKind.STATUS_TICK)[0].amount == 1
    assert "Cubix is fast asleep." in logs(first)
    second = turn(core, Action.move(0), None, a, b)
    assert of_kind(second, EventKind.STATUS_TICK)[0].amount == 0
    cleared = of_kind(second, EventKind.STATUS_CLEARED)
    assert cleared and cleared[0].status == StatusCondition.ASLEEP
    assert attackers(second) == [Side.A]
    assert a.status == StatusCondition.NONE
    assert a.status_turns == 0


def test_last_sleep_turn_wakes_and_acts():
    a, b = duel("SQUARE", "CIRCLE", a_moves=["BOX_BASH"])
    a.status = StatusCondition.ASLEEP
    a.status_turns = 1
    events = turn(BattleCore(random.Random(0)), Action.move(0), None, a, b)
    assert "Cubix woke up!" in logs(events)
    assert attackers(events) == [Side.A]
    assert b.current_hp < b.max_hp


def test_double_knockout_reports_both_faints_with_shared_ids():
    # each process numbers its own combatants, so both leads can share an id
    a, b = duel("TRIANGLE", "TRIANGLE", a_moves=["PIERCE"], b_moves=["PIERCE"])
    b.instance_id = a.instance_id
    a.current_hp = 1
    b.current_hp = 1
    events = turn(BattleCore(random.Random(0)), Action.move(0), None, a, b)
    assert [e.target for e in of_kind(events, EventKind.FAINT)] == [Side.B, Side.A]
    assert a.current_hp == 0 and b.current_hp == 0


def test_lagging_sometimes_skips():
    skipped = acted = 0
    for seed in range(60):
        a, b = duel("SQUARE", "CIRCLE", a_moves=["FORTIFY"])
        a.status = StatusCondition.LAGGING
        events = turn(BattleCore(random.Random(seed)), Action.move(0), None, a, b)
        if attackers(events):
            acted += 1
        else:
            skipped += 1
            assert any("lagging" in m for m in logs(events))
    assert skipped > 0 and acted > skipped


def test_heal_move_clamps_to_max():
    a, b = duel("SQUARE", "CIRCLE", a_moves=["RECOVER"])
    core = BattleCore(random.Random(0))
    a.current_hp = 50
    heal = of_kind(turn(core, Action.move(0), None, a, b), EventKind.HEAL)
    assert heal[0].amount == 90 and heal[0].target == Side.A
    a.current_hp = 170
    heal = of_kind(turn(core, Action.move(0), None, a, b), EventKind.HEAL)
    assert heal[0].amount == 10
    assert a.current_hp == a.max_hp
    events = turn(core, Action.move(0), None, a, b)
    assert not of_kind(events, EventKind.HEAL)


def test_stat_buff_is_permanent():
    a, b = duel("SQUARE", "CIRCLE", a_moves=["FORTIFY"])
    events = turn(BattleCore(random.Random(0)), Action.move(0), None, a, b)
    boost = of_kind(events, EventKind.STAT_BOOST)[0]
    assert boost.stat == "def" and boost.amount == 62
    assert a.stats["def"] == 187


def test_type_and_ability_immunity():
    a, b = duel("PENTAGON", "RHOMBUS", a_moves=["NULL_RAY"])
    events = turn(BattleCore(random.Random(0)), Action.move(0), None, a, b)
    assert not of_kind(events, EventKind.DAMAGE)
    assert any("doesn't affect" in m for m in logs(events))

    a, b = duel("SQUARE", "PENTAGON", a_moves=["BOX_BASH"])
    events = turn(BattleCore(random.Random(0)), Action.move(0), None, a, b)
    assert not of_kind(events, EventKind.DAMAGE)
    assert b.current_hp == b.max_hp


def test_fainted_combatant_does_not_act():
    a, b = duel("KITE", "TRIANGLE", a_moves=["QUICK_STRIKE"], b_moves=["PIERCE"])
    b.current_hp = 1
    events = turn(BattleCore(random.Random(0)), Action.move(0), Action.move(0), a, b)
    assert attackers(events) == [Side.A]
    faints = of_kind(events, EventKind.FAINT)
    assert [f.target for f in faints] == [Side.B]
    assert b.current_hp == 0
    # rough surface retaliation still lands on contact
    assert a.current_hp == a.max_hp - a.max_hp // 8
    assert "Pyramidon fainted!" in logs(events)


def test_same_seed_same_events():
    def play(seed):
        a, b = duel("BITMASS", "HEXAGON", a_item="LIFE_SHARD", b_item="CUBE_LEFTOVERS")
        core = BattleCore(random.Random(seed))
        out = []
        for i in range(4):
            out.extend(e.to_dict() for e in turn(core, Action.move(i % 4), Action.move((i + 1) % 4), a, b))
        return out, a.to_dict()["current_hp"], b.to_dict()["current_hp"]
    assert play(99) == play(99)
