"""Immutable catalog templates (moves, items, abilities, species).

Pure data; battle behaviour keyed on ids lives in shapenet.battle.triggers.
"""
from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from shapenet.core.types import MoveCategory, ShapeType, StatusCondition


class ItemEffect(str, Enum):
    NONE = "NONE"
    STAT_MULTIPLIER = "STAT_MULTIPLIER"
    PER_TURN_HEAL = "PER_TURN_HEAL"
    DAMAGE_RESIST = "DAMAGE_RESIST"
    RECOIL_BOOST = "RECOIL_BOOST"
    LOW_HP_HEAL = "LOW_HP_HEAL"
    CURE_STATUS = "CURE_STATUS"
    CRIT_BOOST = "CRIT_BOOST"
    SURVIVE_FATAL = "SURVIVE_FATAL"


@dataclass(frozen=True)
class MoveTemplate:
    id: str
    name: str
    type: ShapeType
    category: MoveCategory
    power: int
    accuracy: int
    base_pp: int
    priority: int = 0
    description: str = ""
    heal_fraction: Optional[float] = None
    stat_buff_target: Optional[str] = None
    status_to_inflict: Optional[StatusCondition] = None
    status_chance: int = 0
    is_draining: bool = False

    @property
    def is_status(self) -> bool:
        return self.category == MoveCategory.STATUS

    @classmethod
    def from_json(cls, key: str, raw: Dict[str, Any]) -> "MoveTemplate":
        status = raw.get("status_to_inflict")
        category = MoveCategory(raw["category"])
        return cls(
            id=key,
            name=raw["name"],
            type=ShapeType(raw["type"]),
            category=category,
            power=0 if category == MoveCategory.STATUS else int(raw["power"]),
            accuracy=int(raw["accuracy"]),
            base_pp=int(raw["pp"]),
            priority=int(raw.get("priority", 0)),
            description=raw.get("description", ""),
            heal_fraction=raw.get("heal_fraction"),
            stat_buff_target=raw.get("stat_buff_target"),
            status_to_inflict=StatusCondition(status) if status else None,
            status_chance=int(raw.get("status_chance", 0)),
            is_draining=bool(raw.get("is_draining", False)),
        )


@dataclass(frozen=True)
class ItemTemplate:
    id: str
    name: str
    description: str
    effect_kind: ItemEffect
    affected_stat: Optional[str] = None
    magnitude: Optional[float] = None
    single_use: bool = False

    @classmethod
    def from_json(cls, key: str, raw: Dict[str, Any]) -> "ItemTemplate":
        return cls(
            id=key,
            name=raw["name"],
            description=raw["description"],
            effect_kind=ItemEffect(raw["effect_kind"]),
            affected_stat=raw.get("affected_stat"),
            magnitude=raw.get("magnitude"),
            single_use=bool(raw["single_use"]),
        )


@dataclass(frozen=True)
class AbilityTemplate:
    id: str
    name: str
    description: str


@dataclass(frozen=True)
class SpeciesTemplate:
    key: str
    species_id: str
    display_name: str
    type: ShapeType
    base_stats: Tuple[Tuple[str, int], ...]
    move_key_pool: Tuple[str, ...]
    default_ability_id: str
    color: str = "white"

    def base(self, stat: str) -> int:
        return dict(self.base_stats)[stat]

    @classmethod
    def from_json(cls, key: str, raw: Dict[str, Any]) -> "SpeciesTemplate":
        bs = raw["base_stats"]
        return cls(
            key=key,
            species_id=raw["species_id"],
            display_name=raw["name"],
            type=ShapeType(raw["type"]),
            base_stats=tuple((k, int(bs[k])) for k in ("hp", "atk", "def", "spd")),
            move_key_pool=tuple(raw["move_keys"]),
            default_ability_id=raw["default_ability"],
            color=raw.get("color", "white"),
        )

__all__ = ["ItemEffect","MoveTemplate","ItemTemplate","AbilityTemplate","SpeciesTemplate"]
