"""Runtime loader utilities for catalog data.

Each catalog file is read once, validated against its JSON schema and cached.
Species lookups live here; moves, items and abilities have thin modules of
their own that share :func:`load_catalog_file`.
"""
from __future__ import annotations
import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Tuple

import jsonschema

from shapenet.core.errors import CatalogLookupError, DataLoadError
from shapenet.core.logging import logger
from shapenet.core.paths import SCHEMA, SPECIES_FILE
from .templates import SpeciesTemplate


@lru_cache(maxsize=None)
def load_schema(name: str) -> Dict[str, Any]:
    return json.loads((SCHEMA / f"{name}.schema.json").read_text(encoding="utf-8"))


def validate_document(data: Any, schema_name: str, source: str) -> None:
    try:
        jsonschema.validate(data, load_schema(schema_name))
    except jsonschema.ValidationError as e:
        raise DataLoadError(source, f"schema: {e.message}") from e


def load_catalog_file(path: Path, schema_name: str) -> Dict[str, Any]:
    if not path.exists():
        raise DataLoadError(str(path), "file missing")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise DataLoadError(str(path), f"invalid JSON: {e}") from e
    validate_document(data, schema_name, str(path))
    logger.debug("CatalogLoaded", file=path.name, entries=len(data))
    return data


@lru_cache(maxsize=None)
def all_species() -> Dict[str, SpeciesTemplate]:
    raw = load_catalog_file(SPECIES_FILE, "species")
    return {k: SpeciesTemplate.from_json(k, v) for k, v in raw.items()}


def get_species(key: str) -> SpeciesTemplate:
    try:
        return all_species()[key.upper()]
    except KeyError:
        raise CatalogLookupError("species", key) from None


def has_species(key: str) -> bool:
    return isinstance(key, str) and key.upper() in all_species()


@lru_cache(maxsize=None)
def species_keys() -> Tuple[str, ...]:
    return tuple(all_species())


def find_by_species_id(species_id: str) -> SpeciesTemplate | None:
    sid = species_id.lower()
    for sp in all_species().values():
        if sp.species_id == sid:
            return sp
    return None


# Simple CLI for debugging
if __name__ == "__main__":
    import sys
    if len(sys.argv) == 2:
        q = sys.argv[1]
        res = get_species(q) if has_species(q) else find_by_species_id(q)
        print(res if res else f"Not found {q}")
    else:
        from shapenet.core.types import colorize_type_text, type_abbreviation
        for key in species_keys():
            sp = get_species(key)
            print(f"{colorize_type_text(sp.type, type_abbreviation(sp.type))} {sp.display_name} ({key})")
        print(f"Loaded {len(species_keys())} species")
