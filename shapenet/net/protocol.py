"""Wire messages exchanged between host and guest.

Every message is a JSON object ``{"type": ..., "payload": {...}}``. Decoding
validates against assets/schema/message.schema.json and raises ProtocolError on
anything malformed.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union
import json
import random
import string

import jsonschema

from shapenet.battle.events import TurnEvent
from shapenet.battle.models import Action
from shapenet.core.errors import ProtocolError
from shapenet.data.loader import load_schema

ROOM_ALPHABET = string.ascii_uppercase + string.digits


@dataclass(frozen=True)
class Handshake:
    roster: List[Dict[str, Any]]
    type: str = field(default="HANDSHAKE", init=False)

    def payload(self) -> Dict[str, Any]:
        return {"roster": list(self.roster)}


@dataclass(frozen=True)
class ActionMessage:
    action: Action
    type: str = field(default="ACTION", init=False)

    def payload(self) -> Dict[str, Any]:
        return self.action.to_dict()


@dataclass(frozen=True)
class TurnResult:
    events: List[TurnEvent]
    digest: Optional[str] = None
    type: str = field(default="TURN_RESULT", init=False)

    def payload(self) -> Dict[str, Any]:
        return {"events": [e.to_dict() for e in self.events], "digest": self.digest}


@dataclass(frozen=True)
class Restart:
    type: str = field(default="RESTART", init=False)

    def payload(self) -> Dict[str, Any]:
        return {}


Message = Union[Handshake, ActionMessage, TurnResult, Restart]


def encode(msg: Message) -> str:
    return json.dumps({"type": msg.type, "payload": msg.payload()}, separators=(",", ":"))


def decode(text: Union[str, bytes]) -> Message:
    try:
        data = json.loads(text)
    except (TypeError, ValueError) as e:
        raise ProtocolError(f"undecodable message: {e}") from e
    try:
        jsonschema.validate(data, load_schema("message"))
    except jsonschema.ValidationError as e:
        raise ProtocolError(f"invalid message: {e.message}") from e
    kind = data["type"]
    payload = data["payload"]
    try:
        if kind == "HANDSHAKE":
            return Handshake(roster=payload["roster"])
        if kind == "ACTION":
            return ActionMessage(Action.from_dict(payload))
        if kind == "TURN_RESULT":
            return TurnResult(events=[TurnEvent.from_dict(e) for e in payload["events"]], digest=payload.get("digest"))
        return Restart()
    except (KeyError, ValueError, TypeError) as e:
        raise ProtocolError(f"bad {kind} payload: {e}") from e


def generate_room_id(length: int = 4, rng: Optional[random.Random] = None) -> str:
    if not 4 <= length <= 6:
        raise ValueError("room ids are 4-6 characters")
    rng = rng or random.Random()
    return "".join(rng.choice(ROOM_ALPHABET) for _ in range(length))


__all__ = ["Handshake","ActionMessage","TurnResult","Restart","Message","encode","decode","generate_room_id"]
