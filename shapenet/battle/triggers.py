"""Ability / item effects as closed lookup tables.

The resolver calls the named hooks below at fixed points of a round. Each hook
consults small tables keyed by ability or item id; adding a new ability or item
means a catalog entry plus a table row here.

Item hooks ignore items that are consumed or the NONE placeholder.
"""
from __future__ import annotations
from typing import Callable, Dict, List, Optional, Set, Tuple
import random

from shapenet.core.types import MoveCategory, ShapeType
from shapenet.data.templates import MoveTemplate
from .models import Combatant

CRIT_MULTIPLIER = 1.5

_Mult = Callable[[Combatant, MoveTemplate], float]


def _magnitude(c: Combatant, default: float = 1.0) -> float:
    mag = c.held_item.template.magnitude if c.held_item else None
    return float(mag) if mag is not None else default


def _physical(m: MoveTemplate) -> bool:
    return m.category == MoveCategory.PHYSICAL


def _special(m: MoveTemplate) -> bool:
    return m.category == MoveCategory.SPECIAL


# ---------------------------------------------------------------------------
# Ability tables
# ---------------------------------------------------------------------------
_ABILITY_TYPE_IMMUNITY: Dict[str, Set[ShapeType]] = {
    "LEVITATE": {ShapeType.STABLE},
}

_ABILITY_DEFENSIVE: Dict[str, _Mult] = {
    "DENSE_CORE": lambda c, m: 0.75 if _physical(m) else 1.0,
}

_ABILITY_OFFENSIVE_STAT: Dict[str, _Mult] = {
    "OVERCLOCK": lambda c, m: 1.5 if c.current_hp * 3 <= c.max_hp else 1.0,
}

_ABILITY_SPEED: Dict[str, float] = {
    "AERODYNAMICS": 1.5,
}

# fraction of the attacker's max HP, physical contact only
_ABILITY_RETALIATION: Dict[str, int] = {
    "ROUGH_SKIN": 8,
}

# max HP divisor restored at end of turn
_ABILITY_HEAL: Dict[str, int] = {
    "REGENERATOR": 16,
}

_ABILITY_STATUS_IMMUNE: Set[str] = {"INSULATED"}

_ABILITY_FATAL_SAVE: Dict[str, Callable[[Combatant], bool]] = {
    "STURDY": lambda c: c.current_hp == c.max_hp,
}

# ---------------------------------------------------------------------------
# Item tables
# ---------------------------------------------------------------------------
_ITEM_OFFENSIVE_STAT: Dict[str, _Mult] = {
    "ATTACK_PRISM": lambda c, m: _magnitude(c) if _physical(m) else 1.0,
    "MIND_GEM": lambda c, m: _magnitude(c) if _special(m) else 1.0,
}

_ITEM_DEFENSIVE_STAT: Dict[str, _Mult] = {
    "BRACE_FRAME": lambda c, m: _magnitude(c) if _physical(m) else 1.0,
}

_ITEM_DEFENSIVE: Dict[str, _Mult] = {
    "BUFFER_PLATE": lambda c, m: _magnitude(c),
}

_ITEM_POWER: Dict[str, _Mult] = {
    "LIFE_SHARD": lambda c, m: _magnitude(c),
}

_ITEM_RECOIL: Dict[str, float] = {
    "LIFE_SHARD": 0.1,
}

_ITEM_SPEED: Set[str] = {"SPEED_BOOTS"}

# heal = max HP x item magnitude
_ITEM_HEAL: Set[str] = {"CUBE_LEFTOVERS"}

_ITEM_CRIT: Set[str] = {"FOCUS_LENS"}

_ITEM_FATAL_SAVE: Set[str] = {"FOCUS_BAND"}

# hp fraction below which the item fires; heal = max HP x item magnitude
_ITEM_LOW_HP_HEAL: Dict[str, float] = {
    "PATCH_KIT": 0.5,
}

_ITEM_CURE: Set[str] = {"DEBUGGER"}


def _item(c: Combatant) -> Optional[str]:
    return c.item_id if c.item_active() else None


# ---------------------------------------------------------------------------
# Extension points
# ---------------------------------------------------------------------------
def type_immunity(defender: Combatant, move: MoveTemplate) -> bool:
    return move.type in _ABILITY_TYPE_IMMUNITY.get(defender.ability, set())


def defensive_multiplier(defender: Combatant, move: MoveTemplate) -> float:
    mult = 1.0
    if defender.ability in _ABILITY_DEFENSIVE:
        mult *= _ABILITY_DEFENSIVE[defender.ability](defender, move)
    item = _item(defender)
    if item in _ITEM_DEFENSIVE:
        mult *= _ITEM_DEFENSIVE[item](defender, move)
    return mult


def offensive_multiplier(attacker: Combatant, move: MoveTemplate) -> float:
    """Multiplier applied to the attacker's attack stat."""
    mult = 1.0
    item = _item(attacker)
    if item in _ITEM_OFFENSIVE_STAT:
        mult *= _ITEM_OFFENSIVE_STAT[item](attacker, move)
    if attacker.ability in _ABILITY_OFFENSIVE_STAT:
        mult *= _ABILITY_OFFENSIVE_STAT[attacker.ability](attacker, move)
    return mult


def defensive_stat_multiplier(defender: Combatant, move: MoveTemplate) -> float:
    item = _item(defender)
    if item in _ITEM_DEFENSIVE_STAT:
        return _ITEM_DEFENSIVE_STAT[item](defender, move)
    return 1.0


def power_multiplier(attacker: Combatant, move: MoveTemplate) -> float:
    item = _item(attacker)
    if item in _ITEM_POWER:
        return _ITEM_POWER[item](attacker, move)
    return 1.0


def speed_multiplier(c: Combatant) -> float:
    mult = _ABILITY_SPEED.get(c.ability, 1.0)
    item = _item(c)
    if item in _ITEM_SPEED:
        mult *= _magnitude(c)
    return mult


def contact_retaliation(defender: Combatant, attacker: Combatant, move: MoveTemplate) -> int:
    """HP the attacker loses for hitting ``defender``; 0 when nothing triggers."""
    div = _ABILITY_RETALIATION.get(defender.ability)
    if not div or not _physical(move):
        return 0
    return attacker.max_hp // div


def end_of_turn_heal_sources(c: Combatant) -> List[Tuple[str, int]]:
    """(source label, heal amount) pairs in application order."""
    out: List[Tuple[str, int]] = []
    if c.ability in _ABILITY_HEAL:
        out.append((c.ability, c.max_hp // _ABILITY_HEAL[c.ability]))
    item = _item(c)
    if item in _ITEM_HEAL:
        out.append((item, int(c.max_hp * _magnitude(c, 0.0))))
    return out


def fatal_hit_save(defender: Combatant, rng: random.Random) -> Optional[str]:
    """Id of the ability or item that keeps ``defender`` at 1 HP, if any.

    Only consulted when an incoming hit would knock the defender out.
    """
    check = _ABILITY_FATAL_SAVE.get(defender.ability)
    if check and check(defender):
        return defender.ability
    item = _item(defender)
    if item in _ITEM_FATAL_SAVE and rng.random() < _magnitude(defender, 0.0):
        return item
    return None


def status_immunity(c: Combatant) -> bool:
    return c.ability in _ABILITY_STATUS_IMMUNE


def crit_chance(attacker: Combatant) -> float:
    item = _item(attacker)
    if item in _ITEM_CRIT:
        return _magnitude(attacker, 0.0)
    return 0.0


def recoil_fraction(attacker: Combatant) -> float:
    item = _item(attacker)
    return _ITEM_RECOIL.get(item, 0.0) if item else 0.0


def low_hp_heal(c: Combatant) -> int:
    """Heal granted by a single-use low-HP item this upkeep, else 0."""
    item = _item(c)
    if item not in _ITEM_LOW_HP_HEAL:
        return 0
    if c.current_hp >= c.max_hp * _ITEM_LOW_HP_HEAL[item]:
        return 0
    return int(c.max_hp * _magnitude(c, 0.0))


def cures_status(c: Combatant) -> bool:
    return _item(c) in _ITEM_CURE


__all__ = [
    "CRIT_MULTIPLIER","type_immunity","defensive_multiplier","offensive_multiplier",
    "defensive_stat_multiplier","power_multiplier","speed_multiplier","contact_retaliation",
    "end_of_turn_heal_sources","fatal_hit_save","status_immunity","crit_chance",
    "recoil_fraction","low_hp_heal","cures_status",
]
