"""Turn resolver for shape battles.

BattleCore takes one action per side plus both rosters and active indices,
mutates the combatants in place and returns the ordered TurnEvent list that a
renderer or a remote mirror replays. All randomness comes from the injected
``random.Random``; with a fixed seed a round is a pure function of its inputs.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple
import random

from shapenet.core.logging import logger
from shapenet.core.types import MoveCategory, StatusCondition, effectiveness
from shapenet.data.templates import MoveTemplate
from . import triggers
from .events import EventKind, TurnEvent
from .models import Action, ActionKind, Combatant, Side

SWITCH_PRIORITY = 10
LEVEL_TERM = 50
STAB = 1.5
STAT_BUFF = 1.5
DRAIN_DIVISOR = 2
LAG_SKIP_CHANCE = 0.25
SLEEP_TURNS = (1, 3)

_DOT_DIVISOR = {
    StatusCondition.FRAGMENTED: 16,
    StatusCondition.GLITCHED: 8,
}

_STATUS_TEXT = {
    StatusCondition.FRAGMENTED: "was fragmented",
    StatusCondition.LAGGING: "is lagging",
    StatusCondition.GLITCHED: "was glitched",
    StatusCondition.ASLEEP: "fell asleep",
}

_STAT_LABEL = {"atk": "Attack", "def": "Defense", "spd": "Speed", "hp": "HP"}

_SOURCE_LABEL = {
    "REGENERATOR": "Regenerator",
    "CUBE_LEFTOVERS": "Cube Scraps",
    "STURDY": "Sturdy",
    "FOCUS_BAND": "Focus Band",
}


@dataclass
class _Round:
    rosters: Dict[Side, Sequence[Combatant]]
    actives: Dict[Side, int]
    events: List[TurnEvent] = field(default_factory=list)
    # (side, roster index)
    fainted: Set[Tuple[Side, int]] = field(default_factory=set)

    def active(self, side: Side) -> Combatant:
        return self.rosters[side][self.actives[side]]

    def emit(self, kind: EventKind, **kw: Any) -> None:
        self.events.append(TurnEvent(kind, **kw))

    def log(self, message: str) -> None:
        self.events.append(TurnEvent.log(message))


class BattleCore:
    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    # ------------------------------------------------------------------
    # Mechanics
    # ------------------------------------------------------------------
    def effective_speed(self, c: Combatant) -> float:
        spd = float(c.stats["spd"])
        if c.status == StatusCondition.LAGGING:
            spd *= 0.5
        return spd * triggers.speed_multiplier(c)

    def action_priority(self, action: Action, c: Combatant) -> int:
        if action.kind == ActionKind.SWITCH:
            return SWITCH_PRIORITY
        return c.moves[action.index].template.priority

    def type_multiplier(self, move: MoveTemplate, defender: Combatant) -> float:
        if triggers.type_immunity(defender, move):
            return 0.0
        return effectiveness(move.type, defender.type)

    def calc_damage(self, attacker: Combatant, defender: Combatant, move: MoveTemplate) -> Dict[str, Any]:
        """Roll damage for one hit; does not touch HP.

        Returns ``{"damage", "effectiveness", "crit"}``. Immune matchups return
        early without consuming randomness.
        """
        if move.category == MoveCategory.STATUS or move.power <= 0:
            return {"damage": 0, "effectiveness": 1.0, "crit": False}
        type_mult = self.type_multiplier(move, defender)
        if type_mult == 0:
            return {"damage": 0, "effectiveness": 0.0, "crit": False}
        physical = move.category == MoveCategory.PHYSICAL
        atk = float(attacker.stats["atk"])
        if physical and attacker.status == StatusCondition.FRAGMENTED:
            atk *= 0.5
        atk *= triggers.offensive_multiplier(attacker, move)
        # special moves are defended with speed
        dfn = float(defender.stats["def" if physical else "spd"])
        dfn *= triggers.defensive_stat_multiplier(defender, move)
        base = ((2 * LEVEL_TERM / 5 + 2) * move.power * (atk / dfn) / 50) + 2
        stab = STAB if attacker.type == move.type else 1.0
        rand = self.rng.randint(85, 100) / 100
        mods = triggers.defensive_multiplier(defender, move) * triggers.power_multiplier(attacker, move)
        crit = False
        chance = triggers.crit_chance(attacker)
        if chance > 0 and self.rng.random() < chance:
            crit = True
            mods *= triggers.CRIT_MULTIPLIER
        damage = int(base * stab * type_mult * rand * mods)
        return {"damage": max(0, damage), "effectiveness": type_mult, "crit": crit}

    # ------------------------------------------------------------------
    # Round entry points
    # ------------------------------------------------------------------
    def resolve_turn(
        self,
        action_a: Optional[Action],
        action_b: Optional[Action],
        active_a: int,
        active_b: int,
        roster_a: Sequence[Combatant],
        roster_b: Sequence[Combatant],
    ) -> List[TurnEvent]:
        rnd = _Round({Side.A: roster_a, Side.B: roster_b}, {Side.A: active_a, Side.B: active_b})
        actions = {
            Side.A: self._validate(rnd, Side.A, action_a),
            Side.B: self._validate(rnd, Side.B, action_b),
        }
        for side in (Side.A, Side.B):
            act = actions[side]
            if act is not None and act.kind == ActionKind.SWITCH:
                self._switch(rnd, side, act.index)
        for side in self._order(rnd, actions):
            user = rnd.active(side)
            if user.is_fainted:
                continue
            self._execute_move(rnd, side, actions[side].index)
        for side in (Side.A, Side.B):
            self._upkeep(rnd, side)
        logger.debug("TurnResolved", events=len(rnd.events), active_a=rnd.actives[Side.A], active_b=rnd.actives[Side.B])
        return rnd.events

    def resolve_replacements(
        self,
        replacements: Dict[Side, int],
        active_a: int,
        active_b: int,
        roster_a: Sequence[Combatant],
        roster_b: Sequence[Combatant],
    ) -> List[TurnEvent]:
        """Send in replacements for fainted actives outside a normal round."""
        rnd = _Round({Side.A: roster_a, Side.B: roster_b}, {Side.A: active_a, Side.B: active_b})
        for side in (Side.A, Side.B):
            if side not in replacements:
                continue
            idx = replacements[side]
            roster = rnd.rosters[side]
            if not 0 <= idx < len(roster) or roster[idx].is_fainted or idx == rnd.actives[side]:
                logger.warn("InvalidReplacementIgnored", side=side.value, index=idx)
                continue
            rnd.emit(EventKind.SWITCH_ANIM, target=side, new_active_index=idx)
            rnd.actives[side] = idx
            rnd.log(f"Go! {roster[idx].name}!")
        return rnd.events

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------
    def _validate(self, rnd: _Round, side: Side, action: Optional[Action]) -> Optional[Action]:
        if action is None:
            logger.debug("NoActionForSide", side=side.value)
            return None
        roster = rnd.rosters[side]
        active = rnd.actives[side]
        reason = None
        if action.kind == ActionKind.MOVE:
            user = roster[active]
            if not 0 <= action.index < len(user.moves):
                reason = "move index out of range"
            elif user.moves[action.index].pp <= 0:
                reason = "no PP left"
        else:
            if not 0 <= action.index < len(roster):
                reason = "switch index out of range"
            elif action.index == active:
                reason = "already active"
            elif roster[action.index].is_fainted:
                reason = "switch target fainted"
        if reason:
            logger.warn("InvalidActionIgnored", side=side.value, kind=action.kind.value, index=action.index, reason=reason)
            return None
        return action

    def _switch(self, rnd: _Round, side: Side, index: int) -> None:
        old = rnd.active(side)
        rnd.log(f"{old.name}, come back!")
        rnd.emit(EventKind.SWITCH_ANIM, target=side, new_active_index=index)
        rnd.actives[side] = index
        rnd.log(f"Go! {rnd.active(side).name}!")

    def _order(self, rnd: _Round, actions: Dict[Side, Optional[Action]]) -> List[Side]:
        movers = [s for s in (Side.A, Side.B) if actions[s] is not None and actions[s].kind == ActionKind.MOVE]
        if len(movers) < 2:
            return movers
        a, b = rnd.active(Side.A), rnd.active(Side.B)
        pa = self.action_priority(actions[Side.A], a)
        pb = self.action_priority(actions[Side.B], b)
        if pa != pb:
            return [Side.A, Side.B] if pa > pb else [Side.B, Side.A]
        sa, sb = self.effective_speed(a), self.effective_speed(b)
        if sa != sb:
            return [Side.A, Side.B] if sa > sb else [Side.B, Side.A]
        return [Side.A, Side.B] if self.rng.random() < 0.5 else [Side.B, Side.A]

    def _can_act(self, rnd: _Round, side: Side, user: Combatant) -> bool:
        if user.status == StatusCondition.ASLEEP:
            user.status_turns = max(0, user.status_turns - 1)
            rnd.emit(EventKind.STATUS_TICK, target=side, amount=user.status_turns)
            if user.status_turns > 0:
                rnd.log(f"{user.name} is fast asleep.")
                return False
            user.status = StatusCondition.NONE
            rnd.emit(EventKind.STATUS_CLEARED, target=side, status=StatusCondition.ASLEEP)
            rnd.log(f"{user.name} woke up!")
        elif user.status == StatusCondition.LAGGING and self.rng.random() < LAG_SKIP_CHANCE:
            rnd.log(f"{user.name} is lagging and can't move!")
            return False
        return True

    def _execute_move(self, rnd: _Round, side: Side, index: int) -> None:
        user = rnd.active(side)
        if not self._can_act(rnd, side, user):
            return
        slot = user.moves[index]
        move = slot.template
        slot.pp -= 1
        rnd.log(f"{user.name} used {move.name}!")
        rnd.emit(EventKind.ATTACK_ANIM, attacker=side, move_index=index)
        if move.category == MoveCategory.STATUS:
            self._status_move(rnd, side, move)
        else:
            self._damaging_move(rnd, side, move)

    def _status_move(self, rnd: _Round, side: Side, move: MoveTemplate) -> None:
        user = rnd.active(side)
        if move.heal_fraction:
            amount = int(user.max_hp * move.heal_fraction)
            actual = min(amount, user.max_hp - user.current_hp)
            if actual > 0:
                user.current_hp += actual
                rnd.emit(EventKind.HEAL, target=side, amount=actual)
                rnd.log(f"{user.name} regained health!")
            else:
                rnd.log(f"{user.name}'s HP is already full!")
        if move.stat_buff_target:
            stat = move.stat_buff_target
            old = user.stats[stat]
            new = int(old * STAT_BUFF)
            user.stats[stat] = new
            rnd.emit(EventKind.STAT_BOOST, target=side, stat=stat, amount=new - old)
            rnd.log(f"{user.name}'s {_STAT_LABEL.get(stat, stat)} rose!")
        self._try_inflict(rnd, side, move)

    def _damaging_move(self, rnd: _Round, side: Side, move: MoveTemplate) -> None:
        user = rnd.active(side)
        foe_side = side.other
        defender = rnd.active(foe_side)
        if defender.is_fainted:
            rnd.log("But there was no target!")
            return
        result = self.calc_damage(user, defender, move)
        if result["effectiveness"] == 0:
            rnd.log(f"It doesn't affect {defender.name}...")
            return
        damage = result["damage"]
        saved_by = None
        if damage >= defender.current_hp:
            saved_by = triggers.fatal_hit_save(defender, self.rng)
            if saved_by:
                damage = defender.current_hp - 1
        dealt = min(damage, defender.current_hp)
        defender.current_hp -= dealt
        rnd.emit(EventKind.DAMAGE, target=foe_side, attacker=side, amount=dealt)
        if result["crit"]:
            rnd.log("A critical hit!")
        if saved_by:
            rnd.log(f"{defender.name} held on thanks to {_SOURCE_LABEL.get(saved_by, saved_by)}!")
        if result["effectiveness"] > 1:
            rnd.log("It's super effective!")
        elif result["effectiveness"] < 1:
            rnd.log("It's not very effective...")

        recoil = triggers.contact_retaliation(defender, user, move)
        if recoil > 0 and not user.is_fainted:
            self._hurt(rnd, side, recoil)
            rnd.log(f"{user.name} was hurt by {defender.name}'s rough surface!")
        self._try_inflict(rnd, side, move)
        if move.is_draining and dealt > 0 and not user.is_fainted:
            heal = min(dealt // DRAIN_DIVISOR, user.max_hp - user.current_hp)
            if heal > 0:
                user.current_hp += heal
                rnd.emit(EventKind.HEAL, target=side, amount=heal)
                rnd.log(f"{defender.name} had its energy drained!")
        frac = triggers.recoil_fraction(user)
        if frac > 0 and dealt > 0 and not user.is_fainted:
            lost = int(dealt * frac)
            if lost > 0:
                self._hurt(rnd, side, lost)
                rnd.log(f"{user.name} lost some HP to its {user.held_item.template.name}!")
        self._faint_check(rnd, foe_side)
        self._faint_check(rnd, side)

    def _hurt(self, rnd: _Round, side: Side, amount: int) -> None:
        c = rnd.active(side)
        dealt = min(amount, c.current_hp)
        c.current_hp -= dealt
        rnd.emit(EventKind.DAMAGE, target=side, amount=dealt)

    def _try_inflict(self, rnd: _Round, side: Side, move: MoveTemplate) -> None:
        status = move.status_to_inflict
        if status is None or status == StatusCondition.NONE or move.status_chance <= 0:
            return
        target = rnd.active(side.other)
        if target.is_fainted or target.status != StatusCondition.NONE:
            if move.category == MoveCategory.STATUS and not target.is_fainted:
                rnd.log("But it failed!")
            return
        if triggers.status_immunity(target):
            if move.category == MoveCategory.STATUS:
                rnd.log(f"{target.name} is unaffected!")
            return
        if self.rng.random() * 100 >= move.status_chance:
            return
        target.status = status
        turns = self.rng.randint(*SLEEP_TURNS) if status == StatusCondition.ASLEEP else 0
        target.status_turns = turns
        rnd.emit(EventKind.STATUS_APPLIED, target=side.other, status=status, amount=turns)
        rnd.log(f"{target.name} {_STATUS_TEXT[status]}!")

    def _faint_check(self, rnd: _Round, side: Side) -> None:
        c = rnd.active(side)
        key = (side, rnd.actives[side])
        if c.is_fainted and key not in rnd.fainted:
            rnd.fainted.add(key)
            rnd.emit(EventKind.FAINT, target=side)
            rnd.log(f"{c.name} fainted!")

    def _upkeep(self, rnd: _Round, side: Side) -> None:
        c = rnd.active(side)
        if c.is_fainted:
            return
        for source, amount in triggers.end_of_turn_heal_sources(c):
            actual = min(amount, c.max_hp - c.current_hp)
            if actual <= 0:
                continue
            c.current_hp += actual
            rnd.emit(EventKind.HEAL, target=side, amount=actual)
            rnd.log(f"{c.name} restored HP with {_SOURCE_LABEL.get(source, source)}!")
        patch = triggers.low_hp_heal(c)
        if patch > 0:
            self._consume_item(rnd, side, c)
            actual = min(patch, c.max_hp - c.current_hp)
            c.current_hp += actual
            rnd.emit(EventKind.HEAL, target=side, amount=actual)
            rnd.log(f"{c.name} patched itself up!")
        if c.status != StatusCondition.NONE and triggers.cures_status(c):
            old = c.status
            self._consume_item(rnd, side, c)
            c.status = StatusCondition.NONE
            c.status_turns = 0
            rnd.emit(EventKind.STATUS_CLEARED, target=side, status=old)
            rnd.log(f"{c.name} debugged its condition!")
        div = _DOT_DIVISOR.get(c.status)
        if div:
            dot = min(c.max_hp // div, c.current_hp)
            if dot > 0:
                c.current_hp -= dot
                rnd.emit(EventKind.STATUS_DAMAGE, target=side, amount=dot, status=c.status)
                rnd.log(f"{c.name} is hurt by its {c.status.value.lower()} state!")
        self._faint_check(rnd, side)

    def _consume_item(self, rnd: _Round, side: Side, c: Combatant) -> None:
        c.held_item.consumed = True
        rnd.emit(EventKind.ITEM_CONSUMED, target=side, item_id=c.held_item.id)
        rnd.log(f"{c.name} used its {c.held_item.template.name}!")


__all__ = ["BattleCore","SWITCH_PRIORITY"]
