"""Runtime loader for move data.

Provides cached access to the move catalog (assets/catalog/moves.json).
"""
from __future__ import annotations
from functools import lru_cache
from typing import Dict

from shapenet.core.errors import CatalogLookupError
from shapenet.core.paths import MOVES_FILE
from .loader import load_catalog_file
from .templates import MoveTemplate

@lru_cache(maxsize=None)
def all_moves() -> Dict[str, MoveTemplate]:
    raw = load_catalog_file(MOVES_FILE, "moves")
    return {k: MoveTemplate.from_json(k, v) for k, v in raw.items()}

def get_move(key: str) -> MoveTemplate:
    try:
        return all_moves()[key]
    except KeyError:
        raise CatalogLookupError("move", key) from None

__all__ = ["get_move","all_moves"]
