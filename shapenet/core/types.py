"""Global type metadata: shape types, move categories, status conditions.

Provides:
  ShapeType / MoveCategory / StatusCondition enums
  effectiveness(attack, defend): total type chart lookup
  TYPE_COLORS_HEX / TYPE_ABBREVIATIONS for terminal output
  helper functions for colorized terminal output.
"""
from __future__ import annotations
from enum import Enum
from typing import Dict, Tuple
import os, re

from colorama import Fore, Style


class ShapeType(str, Enum):
    SHARP = "SHARP"      # beats Round, weak to Stable
    ROUND = "ROUND"      # beats Stable, weak to Sharp
    STABLE = "STABLE"    # beats Sharp, weak to Round
    VOID = "VOID"
    FLUX = "FLUX"        # beats Round/Void, weak to Glitch
    GLITCH = "GLITCH"    # beats Stable/Flux, weak to Sharp
    ASTRAL = "ASTRAL"
    QUANTUM = "QUANTUM"


class MoveCategory(str, Enum):
    PHYSICAL = "PHYSICAL"
    SPECIAL = "SPECIAL"
    STATUS = "STATUS"


class StatusCondition(str, Enum):
    NONE = "NONE"
    FRAGMENTED = "FRAGMENTED"  # halves physical attack, 1/16 per turn
    LAGGING = "LAGGING"        # halves speed, 25% full skip
    GLITCHED = "GLITCHED"      # 1/8 per turn
    ASLEEP = "ASLEEP"          # skips turns until the counter runs out


# Sparse chart; missing pairs are neutral.
_TYPE_CHART: Dict[ShapeType, Dict[ShapeType, float]] = {
    ShapeType.SHARP:   {ShapeType.ROUND: 2.0, ShapeType.STABLE: 0.5, ShapeType.GLITCH: 2.0},
    ShapeType.ROUND:   {ShapeType.SHARP: 0.5, ShapeType.STABLE: 2.0, ShapeType.VOID: 0.5, ShapeType.FLUX: 0.5},
    ShapeType.STABLE:  {ShapeType.SHARP: 2.0, ShapeType.ROUND: 0.5, ShapeType.GLITCH: 0.5},
    ShapeType.VOID:    {ShapeType.FLUX: 0.5, ShapeType.ASTRAL: 0.0},
    ShapeType.FLUX:    {ShapeType.ROUND: 2.0, ShapeType.VOID: 2.0, ShapeType.FLUX: 0.5, ShapeType.GLITCH: 0.5},
    ShapeType.GLITCH:  {ShapeType.SHARP: 0.5, ShapeType.STABLE: 2.0, ShapeType.FLUX: 2.0},
    ShapeType.ASTRAL:  {ShapeType.VOID: 2.0, ShapeType.ASTRAL: 0.5, ShapeType.QUANTUM: 2.0, ShapeType.STABLE: 0.5},
    ShapeType.QUANTUM: {ShapeType.ASTRAL: 2.0, ShapeType.GLITCH: 0.5, ShapeType.QUANTUM: 0.5, ShapeType.VOID: 0.0},
}

EFFECTIVENESS_VALUES = (0.0, 0.5, 1.0, 2.0)


def effectiveness(attack_type: ShapeType | str, defend_type: ShapeType | str) -> float:
    """Multiplier for an attack of ``attack_type`` hitting ``defend_type``.

    Raises ValueError for names that are not shape types.
    """
    atk = ShapeType(attack_type)
    dfn = ShapeType(defend_type)
    return _TYPE_CHART[atk].get(dfn, 1.0)


TYPE_COLORS_HEX: Dict[ShapeType, str] = {
    ShapeType.SHARP: "#F87171",
    ShapeType.ROUND: "#60A5FA",
    ShapeType.STABLE: "#4ADE80",
    ShapeType.VOID: "#C084FC",
    ShapeType.FLUX: "#FBBF24",
    ShapeType.GLITCH: "#F472B6",
    ShapeType.ASTRAL: "#7DD3FC",
    ShapeType.QUANTUM: "#A3E635",
}

TYPE_ABBREVIATIONS: Dict[ShapeType, str] = {
    ShapeType.SHARP: "SHP",
    ShapeType.ROUND: "RND",
    ShapeType.STABLE: "STB",
    ShapeType.VOID: "VOI",
    ShapeType.FLUX: "FLX",
    ShapeType.GLITCH: "GLT",
    ShapeType.ASTRAL: "AST",
    ShapeType.QUANTUM: "QTM",
}

_TRUECOLOR = bool(os.environ.get("COLORTERM","" ).lower().find("truecolor") != -1)

_FALLBACK_FORE: Dict[ShapeType, str] = {
    ShapeType.SHARP: Fore.RED,
    ShapeType.ROUND: Fore.BLUE,
    ShapeType.STABLE: Fore.GREEN,
    ShapeType.VOID: Fore.MAGENTA,
    ShapeType.FLUX: Fore.YELLOW,
    ShapeType.GLITCH: Fore.MAGENTA,
    ShapeType.ASTRAL: Fore.CYAN,
    ShapeType.QUANTUM: Fore.GREEN,
}

RESET = Style.RESET_ALL

def _hex_to_rgb(h: str) -> Tuple[int,int,int]:
    h = h.lstrip('#')
    return int(h[0:2],16), int(h[2:4],16), int(h[4:6],16)

def color_code(shape_type: ShapeType) -> str:
    hex_val = TYPE_COLORS_HEX.get(shape_type)
    if not hex_val:
        return ''
    if _TRUECOLOR:
        r,g,b = _hex_to_rgb(hex_val)
        return f"\033[38;2;{r};{g};{b}m"
    return _FALLBACK_FORE.get(shape_type,'')

def colorize_type_text(shape_type: ShapeType, text: str) -> str:
    code = color_code(shape_type)
    if not code:
        return text
    return f"{code}{text}{RESET}"

def type_abbreviation(shape_type: ShapeType) -> str:
    return TYPE_ABBREVIATIONS.get(shape_type, shape_type.value[:3].upper())

ANSI_ESCAPE_RE = re.compile(r"\x1b\[[0-9;]*m")

def strip_ansi(s: str) -> str:
    return ANSI_ESCAPE_RE.sub('', s)

__all__ = [
    'ShapeType','MoveCategory','StatusCondition','effectiveness','EFFECTIVENESS_VALUES',
    'TYPE_COLORS_HEX','TYPE_ABBREVIATIONS','colorize_type_text','type_abbreviation','strip_ansi'
]
