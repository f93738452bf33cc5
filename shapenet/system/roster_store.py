"""Roster configuration persistence.

A roster file is a JSON list of ``{"species", "moves", "item"}`` entries. Loading
checks the shape against roster.schema.json and every key against the catalog;
a missing or invalid file falls back to the bundled default roster.
"""
from __future__ import annotations
import json, os
from pathlib import Path
from typing import Any, List, Optional

from shapenet.battle.factory import MAX_MOVES, RosterSlotConfig
from shapenet.core.errors import CatalogLookupError, DataLoadError, ValidationError
from shapenet.core.logging import logger
from shapenet.core.paths import DEFAULT_ROSTER_FILE
from shapenet.data.items import get_item
from shapenet.data.loader import get_species, load_catalog_file, validate_document
from shapenet.data.moves import get_move

ROSTER_FILENAME = ".shapenet_roster.json"


def default_roster_path() -> Path:
    home = Path(os.path.expanduser("~"))
    if home.is_dir() and os.access(home, os.W_OK):
        return home / ROSTER_FILENAME
    return Path.cwd() / ROSTER_FILENAME


def validate_roster(data: Any, source: str = "<roster>") -> List[RosterSlotConfig]:
    """Schema + catalog validation; raises ValidationError on the first problem."""
    try:
        validate_document(data, "roster", source)
    except DataLoadError as e:
        raise ValidationError(e.detail) from e
    configs = []
    for i, entry in enumerate(data):
        cfg = RosterSlotConfig.from_dict(entry)
        try:
            get_species(cfg.species)
            for mv in cfg.moves:
                get_move(mv)
            get_item(cfg.item)
        except CatalogLookupError as e:
            raise ValidationError(f"slot {i}: {e}") from e
        if len(cfg.moves) > MAX_MOVES:
            raise ValidationError(f"slot {i}: more than {MAX_MOVES} moves")
        configs.append(cfg)
    return configs


def builtin_roster() -> List[RosterSlotConfig]:
    return validate_roster(load_catalog_file(DEFAULT_ROSTER_FILE, "roster"), str(DEFAULT_ROSTER_FILE))


def load_roster(path: Optional[Path] = None) -> List[RosterSlotConfig]:
    path = path or default_roster_path()
    if not path.exists():
        logger.warn("RosterMissingUsingDefault", path=str(path))
        return builtin_roster()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        configs = validate_roster(data, str(path))
    except (OSError, ValueError, ValidationError) as e:
        logger.warn("RosterInvalidUsingDefault", path=str(path), error=str(e))
        return builtin_roster()
    logger.debug("RosterLoaded", path=str(path), size=len(configs))
    return configs


def save_roster(configs: List[RosterSlotConfig], path: Optional[Path] = None) -> Path:
    path = path or default_roster_path()
    data = [c.to_dict() for c in configs]
    validate_roster(data, str(path))
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")
    logger.info("RosterSaved", path=str(path), size=len(data))
    return path


__all__ = ["validate_roster","builtin_roster","load_roster","save_roster","default_roster_path"]
