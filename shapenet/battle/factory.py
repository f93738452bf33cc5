"""Factory helpers for constructing Combatant instances from species data.

Shared across the battle session, the coordinator handshake, roster loading and tests.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from itertools import count
from typing import Dict, Iterable, List, Optional, Sequence

from shapenet.core.errors import ValidationError
from shapenet.core.logging import logger
from shapenet.data.items import NO_ITEM, get_item
from shapenet.data.loader import get_species
from shapenet.data.moves import get_move
from .models import Combatant, HeldItem, MoveSlot

DEFAULT_LEVEL = 50
MAX_MOVES = 4

_instance_counter = count(1)


def derive_stats(base: Dict[str,int], level: int) -> Dict[str,int]:
    stats = {}
    for k, v in base.items():
        if k == "hp":
            stats[k] = int((v*2*level)//100 + level + 10)
        else:
            stats[k] = int((v*2*level)//100 + 5)
    return stats


def create_combatant(
    species_key: str,
    level: int = DEFAULT_LEVEL,
    id_prefix: str = "p1",
    move_overrides: Optional[Sequence[str]] = None,
    item_key: Optional[str] = None,
) -> Combatant:
    """Build a fresh full-HP combatant.

    Unknown species, move or item keys raise CatalogLookupError; more than four
    move overrides raise ValidationError.
    """
    sp = get_species(species_key)
    if move_overrides:
        if len(move_overrides) > MAX_MOVES:
            raise ValidationError(f"{sp.key}: at most {MAX_MOVES} moves, got {len(move_overrides)}")
        move_keys = list(move_overrides)
    else:
        move_keys = list(sp.move_key_pool[:MAX_MOVES])
    moves = [MoveSlot(t, t.base_pp) for t in (get_move(k) for k in move_keys)]
    item = HeldItem(get_item(item_key or NO_ITEM))
    stats = derive_stats(dict(sp.base_stats), level)
    instance_id = f"{id_prefix}_{sp.species_id}_{next(_instance_counter)}"
    return Combatant(
        instance_id=instance_id,
        species_id=sp.species_id,
        name=sp.display_name,
        type=sp.type,
        stats=stats,
        current_hp=stats["hp"],
        moves=moves,
        ability=sp.default_ability_id,
        held_item=item,
    )


@dataclass(frozen=True)
class RosterSlotConfig:
    species: str
    moves: List[str] = field(default_factory=list)
    item: str = NO_ITEM

    @classmethod
    def from_dict(cls, data: Dict) -> "RosterSlotConfig":
        return cls(species=data["species"], moves=list(data.get("moves") or []), item=data.get("item") or NO_ITEM)

    def to_dict(self) -> Dict:
        return {"species": self.species, "moves": list(self.moves), "item": self.item}


def build_roster(configs: Iterable[RosterSlotConfig], prefix: str = "p1", level: int = DEFAULT_LEVEL) -> List[Combatant]:
    roster = [
        create_combatant(cfg.species, level=level, id_prefix=prefix,
                         move_overrides=cfg.moves or None, item_key=cfg.item)
        for cfg in configs
    ]
    logger.debug("RosterBuilt", prefix=prefix, size=len(roster))
    return roster


__all__ = ["derive_stats","create_combatant","RosterSlotConfig","build_roster","DEFAULT_LEVEL"]
