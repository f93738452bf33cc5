"""Battle state bookkeeping and the single-player battle loop.

``BattleState`` is shared by both ends of a networked battle: the host feeds it
through ``BattleCore`` and only syncs active pointers afterwards, while the guest
rebuilds the same state by replaying the host's events.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from shapenet.core.errors import SessionError
from shapenet.core.logging import logger
from shapenet.core.types import StatusCondition
from .ai import HeuristicPolicy, OpponentPolicy
from .core import BattleCore
from .events import EventKind, TurnEvent
from .models import Action, ActionKind, Combatant, Side, roster_digest

PHASE_ACTION = "ACTION"
PHASE_SWITCH = "SWITCH"
PHASE_DEFEATED = "DEFEATED"


@dataclass
class Party:
    members: List[Combatant]
    active_index: int = 0

    def active(self) -> Combatant:
        return self.members[self.active_index]

    def has_available(self) -> bool:
        return any(not m.is_fainted for m in self.members)

    def needs_replacement(self) -> bool:
        return self.active().is_fainted and self.has_available()

    def first_available(self) -> Optional[int]:
        for i, m in enumerate(self.members):
            if not m.is_fainted and i != self.active_index:
                return i
        return None


class BattleState:
    def __init__(self, party_a: Party, party_b: Party):
        self.parties: Dict[Side, Party] = {Side.A: party_a, Side.B: party_b}

    def party(self, side: Side) -> Party:
        return self.parties[side]

    def active(self, side: Side) -> Combatant:
        return self.parties[side].active()

    # ------------------------------------------------------------------
    # Host side
    # ------------------------------------------------------------------
    def resolve(self, core: BattleCore, action_a: Optional[Action], action_b: Optional[Action]) -> List[TurnEvent]:
        a, b = self.parties[Side.A], self.parties[Side.B]
        events = core.resolve_turn(action_a, action_b, a.active_index, b.active_index, a.members, b.members)
        self.sync_active(events)
        return events

    def resolve_replacements(self, core: BattleCore, replacements: Dict[Side, int]) -> List[TurnEvent]:
        a, b = self.parties[Side.A], self.parties[Side.B]
        events = core.resolve_replacements(replacements, a.active_index, b.active_index, a.members, b.members)
        self.sync_active(events)
        return events

    def sync_active(self, events: Iterable[TurnEvent]) -> None:
        for ev in events:
            if ev.kind == EventKind.SWITCH_ANIM and ev.target is not None and ev.new_active_index is not None:
                self.parties[ev.target].active_index = ev.new_active_index

    # ------------------------------------------------------------------
    # Mirror side
    # ------------------------------------------------------------------
    def replay(self, events: Iterable[TurnEvent]) -> None:
        """Apply resolver events to this state in order."""
        for ev in events:
            self._apply(ev)

    def _apply(self, ev: TurnEvent) -> None:
        k = ev.kind
        if k == EventKind.LOG:
            return
        if k == EventKind.SWITCH_ANIM:
            self.parties[ev.target].active_index = int(ev.new_active_index)
            return
        if k == EventKind.ATTACK_ANIM:
            slot = self.active(ev.attacker).moves[int(ev.move_index)]
            slot.pp = max(0, slot.pp - 1)
            return
        c = self.active(ev.target)
        if k in (EventKind.DAMAGE, EventKind.STATUS_DAMAGE):
            c.current_hp = max(0, c.current_hp - int(ev.amount or 0))
        elif k == EventKind.HEAL:
            c.current_hp = min(c.max_hp, c.current_hp + int(ev.amount or 0))
        elif k == EventKind.STATUS_APPLIED:
            c.status = ev.status
            c.status_turns = int(ev.amount or 0)
        elif k == EventKind.STATUS_CLEARED:
            c.status = StatusCondition.NONE
            c.status_turns = 0
        elif k == EventKind.STATUS_TICK:
            c.status_turns = int(ev.amount or 0)
        elif k == EventKind.STAT_BOOST:
            c.stats[ev.stat] = c.stats[ev.stat] + int(ev.amount or 0)
        elif k == EventKind.FAINT:
            c.current_hp = 0
        elif k == EventKind.ITEM_CONSUMED:
            if c.held_item is not None:
                c.held_item.consumed = True

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def side_phase(self, side: Side) -> str:
        party = self.parties[side]
        if not party.has_available():
            return PHASE_DEFEATED
        if party.active().is_fainted:
            return PHASE_SWITCH
        return PHASE_ACTION

    def forced_switch_sides(self) -> List[Side]:
        return [s for s in (Side.A, Side.B) if self.side_phase(s) == PHASE_SWITCH]

    def is_over(self) -> bool:
        return any(not p.has_available() for p in self.parties.values())

    def winner(self) -> Optional[Side]:
        a_alive = self.parties[Side.A].has_available()
        b_alive = self.parties[Side.B].has_available()
        if a_alive and not b_alive:
            return Side.A
        if b_alive and not a_alive:
            return Side.B
        return None

    def digest(self) -> str:
        a, b = self.parties[Side.A], self.parties[Side.B]
        return f"{a.active_index}:{b.active_index}:" + roster_digest(a.members, b.members)


class BattleSession:
    """Local battle against an opponent policy; the enemy replaces fainted shapes itself."""

    def __init__(self, player: Party, enemy: Party, policy: Optional[OpponentPolicy] = None, core: Optional[BattleCore] = None):
        self.player = player
        self.enemy = enemy
        self.state = BattleState(player, enemy)
        self.core = core or BattleCore()
        self.policy = policy or HeuristicPolicy(self.core.rng)
        self.turn_counter = 0
        self.max_turns = 200
        self.log: List[TurnEvent] = []

    def is_over(self) -> bool:
        return self.state.is_over()

    def needs_switch(self) -> bool:
        return self.player.needs_replacement()

    def step(self, action: Action) -> List[TurnEvent]:
        if self.is_over():
            return []
        if self.needs_switch():
            if action.kind != ActionKind.SWITCH:
                raise SessionError("active shape fainted; a switch is required")
            events = self.state.resolve_replacements(self.core, {Side.A: action.index})
        else:
            enemy_action = self.policy.choose_action(self.enemy.active(), self.player.active())
            events = self.state.resolve(self.core, action, enemy_action)
            self.turn_counter += 1
        events = events + self._auto_replace_enemy()
        self.log.extend(events)
        return events

    def _auto_replace_enemy(self) -> List[TurnEvent]:
        if not self.enemy.needs_replacement():
            return []
        idx = self.enemy.first_available()
        logger.debug("EnemyAutoReplace", index=idx)
        return self.state.resolve_replacements(self.core, {Side.B: idx})

    def run_auto(self, player_policy: Optional[OpponentPolicy] = None, max_turns: int = 200) -> str:
        player_policy = player_policy or HeuristicPolicy(self.core.rng)
        self.max_turns = max_turns
        while not self.is_over() and self.turn_counter < max_turns:
            if self.needs_switch():
                self.step(Action.switch(self.player.first_available()))
            else:
                self.step(player_policy.choose_action(self.player.active(), self.enemy.active()))
        return self.outcome()

    def outcome(self) -> str:
        winner = self.state.winner()
        if winner == Side.A:
            return "PLAYER_WIN"
        if winner == Side.B:
            return "PLAYER_LOSS"
        if self.is_over():
            return "DRAW"
        if self.turn_counter >= self.max_turns:
            return "STALEMATE"
        return "ONGOING"


__all__ = ["Party","BattleState","BattleSession","PHASE_ACTION","PHASE_SWITCH","PHASE_DEFEATED"]
