"""Turn events emitted by the resolver and replayed by presentation / mirrors.

Events are immutable and carry absolute sides (``Side.A`` / ``Side.B``), so the
same list means the same thing to host and guest.
"""
from __future__ import annotations
from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Dict, Optional

from shapenet.core.types import StatusCondition
from .models import Side


class EventKind(str, Enum):
    LOG = "LOG"
    ATTACK_ANIM = "ATTACK_ANIM"
    DAMAGE = "DAMAGE"
    HEAL = "HEAL"
    STATUS_APPLIED = "STATUS_APPLIED"
    STATUS_DAMAGE = "STATUS_DAMAGE"
    STATUS_CLEARED = "STATUS_CLEARED"
    STATUS_TICK = "STATUS_TICK"
    STAT_BOOST = "STAT_BOOST"
    FAINT = "FAINT"
    SWITCH_ANIM = "SWITCH_ANIM"
    ITEM_CONSUMED = "ITEM_CONSUMED"


@dataclass(frozen=True)
class TurnEvent:
    kind: EventKind
    message: Optional[str] = None
    target: Optional[Side] = None
    attacker: Optional[Side] = None
    amount: Optional[int] = None
    status: Optional[StatusCondition] = None
    stat: Optional[str] = None
    new_active_index: Optional[int] = None
    move_index: Optional[int] = None
    item_id: Optional[str] = None

    @classmethod
    def log(cls, message: str) -> "TurnEvent":
        return cls(EventKind.LOG, message=message)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"kind": self.kind.value}
        for f in fields(self):
            if f.name == "kind":
                continue
            v = getattr(self, f.name)
            if v is None:
                continue
            out[f.name] = v.value if isinstance(v, Enum) else v
        return out

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TurnEvent":
        def _side(v):
            return Side(v) if v is not None else None
        status = data.get("status")
        return cls(
            kind=EventKind(data["kind"]),
            message=data.get("message"),
            target=_side(data.get("target")),
            attacker=_side(data.get("attacker")),
            amount=data.get("amount"),
            status=StatusCondition(status) if status is not None else None,
            stat=data.get("stat"),
            new_active_index=data.get("new_active_index"),
            move_index=data.get("move_index"),
            item_id=data.get("item_id"),
        )


__all__ = ["EventKind","TurnEvent"]
