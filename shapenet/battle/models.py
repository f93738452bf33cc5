"""Mutable battle-time models: combatants, move slots, held items, actions."""
from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional
import hashlib
import json

from shapenet.core.types import ShapeType, StatusCondition
from shapenet.data.templates import ItemTemplate, MoveTemplate


class Side(str, Enum):
    A = "A"  # host / local player
    B = "B"  # guest / opponent

    @property
    def other(self) -> "Side":
        return Side.B if self is Side.A else Side.A


class ActionKind(str, Enum):
    MOVE = "MOVE"
    SWITCH = "SWITCH"


@dataclass(frozen=True)
class Action:
    kind: ActionKind
    index: int

    @classmethod
    def move(cls, index: int) -> "Action":
        return cls(ActionKind.MOVE, int(index))

    @classmethod
    def switch(cls, index: int) -> "Action":
        return cls(ActionKind.SWITCH, int(index))

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind.value, "index": self.index}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Action":
        return cls(ActionKind(data["kind"]), int(data["index"]))


@dataclass
class MoveSlot:
    template: MoveTemplate
    pp: int

    @property
    def usable(self) -> bool:
        return self.pp > 0


@dataclass
class HeldItem:
    """Per-combatant copy of an item template plus its consumed flag."""
    template: ItemTemplate
    consumed: bool = False

    @property
    def id(self) -> str:
        return self.template.id

    @property
    def active(self) -> bool:
        return not self.consumed and self.template.id != "NONE"


@dataclass
class Combatant:
    instance_id: str
    species_id: str
    name: str
    type: ShapeType
    stats: Dict[str, int]
    current_hp: int
    moves: List[MoveSlot] = field(default_factory=list)
    ability: str = "NONE"
    held_item: Optional[HeldItem] = None
    status: StatusCondition = StatusCondition.NONE
    status_turns: int = 0

    def __post_init__(self):
        self.current_hp = max(0, min(int(self.current_hp), self.max_hp))
        if len(self.moves) > 4:
            self.moves = self.moves[:4]

    @property
    def max_hp(self) -> int:
        return int(self.stats["hp"])

    @property
    def is_fainted(self) -> bool:
        return self.current_hp <= 0

    @property
    def item_id(self) -> str:
        return self.held_item.id if self.held_item else "NONE"

    def item_active(self) -> bool:
        return bool(self.held_item and self.held_item.active)

    def hp_fraction(self) -> float:
        return self.current_hp / self.max_hp if self.max_hp else 0.0

    # ------------------------------------------------------------------
    # Wire form
    # ------------------------------------------------------------------
    def to_dict(self) -> Dict[str, Any]:
        return {
            "instance_id": self.instance_id,
            "species_id": self.species_id,
            "name": self.name,
            "type": self.type.value,
            "stats": dict(self.stats),
            "current_hp": self.current_hp,
            "moves": [{"id": s.template.id, "pp": s.pp} for s in self.moves],
            "ability": self.ability,
            "item": {"id": self.item_id, "consumed": bool(self.held_item and self.held_item.consumed)},
            "status": self.status.value,
            "status_turns": self.status_turns,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Combatant":
        # catalog lookups raise CatalogLookupError for unknown ids
        from shapenet.data.moves import get_move
        from shapenet.data.abilities import get_ability
        from shapenet.data.items import get_item

        item = data.get("item") or {"id": "NONE", "consumed": False}
        return cls(
            instance_id=data["instance_id"],
            species_id=data["species_id"],
            name=data["name"],
            type=ShapeType(data["type"]),
            stats={k: int(v) for k, v in data["stats"].items()},
            current_hp=int(data["current_hp"]),
            moves=[MoveSlot(get_move(m["id"]), int(m["pp"])) for m in data.get("moves", [])],
            ability=get_ability(data.get("ability", "NONE")).id,
            held_item=HeldItem(get_item(item["id"]), bool(item.get("consumed", False))),
            status=StatusCondition(data.get("status", "NONE")),
            status_turns=int(data.get("status_turns", 0)),
        )

    def digest(self) -> str:
        blob = json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":"))
        return hashlib.sha1(blob.encode("utf-8")).hexdigest()


def roster_digest(*rosters: List[Combatant]) -> str:
    """Stable checksum over one or more rosters (order sensitive)."""
    h = hashlib.sha1()
    for roster in rosters:
        for c in roster:
            h.update(c.digest().encode("ascii"))
        h.update(b"|")
    return h.hexdigest()


__all__ = ["Side","ActionKind","Action","MoveSlot","HeldItem","Combatant","roster_digest"]
