"""Ability data loader.

Abilities are pure descriptions here; their battle effects are dispatched by
id in shapenet.battle.triggers.
"""
from __future__ import annotations
from functools import lru_cache
from typing import Dict

from shapenet.core.errors import CatalogLookupError
from shapenet.core.paths import ABILITIES_FILE
from .loader import load_catalog_file
from .templates import AbilityTemplate

@lru_cache(maxsize=None)
def all_abilities() -> Dict[str, AbilityTemplate]:
    raw = load_catalog_file(ABILITIES_FILE, "abilities")
    return {k: AbilityTemplate(id=k, name=v["name"], description=v["description"]) for k, v in raw.items()}

def get_ability(key: str) -> AbilityTemplate:
    try:
        return all_abilities()[key]
    except KeyError:
        raise CatalogLookupError("ability", key) from None

__all__ = ["get_ability","all_abilities"]
