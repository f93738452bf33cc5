"""
Centralized path helpers.
"""
from __future__ import annotations
from pathlib import Path

# This file lives at shapenet/core/paths.py
PACKAGE = Path(__file__).resolve().parents[1]
ASSETS = PACKAGE / "assets"
CATALOG = ASSETS / "catalog"
SCHEMA = ASSETS / "schema"
MOVES_FILE = CATALOG / "moves.json"
ITEMS_FILE = CATALOG / "items.json"
ABILITIES_FILE = CATALOG / "abilities.json"
SPECIES_FILE = CATALOG / "species.json"
DEFAULT_ROSTER_FILE = CATALOG / "default_roster.json"
