"""Terminal replay of turn events (rich).

Stand-in for the real presentation layer: prints LOG lines, HP changes and
switches in order, optionally pacing them with ``delay_ms``, and can draw a
small status table of both actives.
"""
from __future__ import annotations
from typing import Iterable, Optional
import time

from rich.console import Console
from rich.table import Table
from rich.text import Text
from rich.box import ROUNDED

from shapenet.core.types import TYPE_COLORS_HEX, type_abbreviation
from .events import EventKind, TurnEvent
from .models import Combatant, Side
from .session import BattleState

SIDE_LABEL = {Side.A: "You", Side.B: "Foe"}


def _hp_color(ratio: float) -> str:
    if ratio >= 0.5:
        return "green"
    if ratio >= 0.2:
        return "yellow"
    return "red"


def hp_bar(cur: int, max_hp: int, width: int = 20) -> Text:
    cur = max(0, min(cur, max_hp))
    max_hp = max(1, max_hp)
    ratio = cur / max_hp
    filled = max(0, min(width, int(round(ratio * width))))
    bar = Text("[")
    bar.append("█" * filled, style=_hp_color(ratio))
    bar.append("░" * (width - filled), style="grey37")
    bar.append(f"] {cur}/{max_hp}")
    return bar


def _type_text(c: Combatant) -> Text:
    return Text(type_abbreviation(c.type), style=TYPE_COLORS_HEX.get(c.type, "white"))


class EventRenderer:
    def __init__(self, console: Optional[Console] = None, delay_ms: int = 0):
        self.console = console or Console()
        self.delay_ms = max(0, int(delay_ms))

    def format_event(self, ev: TurnEvent) -> Optional[Text]:
        """Single display line for an event, or None for events with no text."""
        k = ev.kind
        if k == EventKind.LOG:
            return Text(ev.message or "")
        side = SIDE_LABEL.get(ev.target or ev.attacker, "?")
        if k in (EventKind.DAMAGE, EventKind.STATUS_DAMAGE):
            return Text(f"  {side}: -{ev.amount} HP", style="red")
        if k == EventKind.HEAL:
            return Text(f"  {side}: +{ev.amount} HP", style="green")
        if k == EventKind.SWITCH_ANIM:
            return Text(f"  {side} -> slot {ev.new_active_index}", style="cyan")
        if k == EventKind.STAT_BOOST:
            return Text(f"  {side}: {ev.stat} +{ev.amount}", style="magenta")
        return None

    def play(self, events: Iterable[TurnEvent]) -> None:
        for ev in events:
            line = self.format_event(ev)
            if line is None:
                continue
            self.console.print(line)
            if self.delay_ms:
                time.sleep(self.delay_ms / 1000)

    def status_table(self, state: BattleState) -> Table:
        table = Table(box=ROUNDED, show_header=True, header_style="bold")
        table.add_column("Side")
        table.add_column("Shape")
        table.add_column("Type")
        table.add_column("HP")
        table.add_column("Status")
        table.add_column("Item")
        for side in (Side.A, Side.B):
            c = state.active(side)
            item = c.item_id if c.item_active() else "-"
            table.add_row(SIDE_LABEL[side], c.name, _type_text(c), hp_bar(c.current_hp, c.max_hp),
                          c.status.value if c.status.value != "NONE" else "-", item)
        return table

    def show_status(self, state: BattleState) -> None:
        self.console.print(self.status_table(state))


__all__ = ["EventRenderer","hp_bar"]
