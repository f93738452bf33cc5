"""Item data loader."""
from __future__ import annotations
from functools import lru_cache
from typing import Dict

from shapenet.core.errors import CatalogLookupError
from shapenet.core.paths import ITEMS_FILE
from .loader import load_catalog_file
from .templates import ItemTemplate

NO_ITEM = "NONE"

@lru_cache(maxsize=None)
def all_items() -> Dict[str, ItemTemplate]:
    raw = load_catalog_file(ITEMS_FILE, "items")
    return {k: ItemTemplate.from_json(k, v) for k, v in raw.items()}

def get_item(key: str) -> ItemTemplate:
    try:
        return all_items()[key]
    except KeyError:
        raise CatalogLookupError("item", key) from None

__all__ = ["get_item","all_items","NO_ITEM"]
