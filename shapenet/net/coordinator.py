"""Host-authoritative session coordinator.

One coordinator runs at each end of a channel. The host (room creator) owns
``Side.A`` and is the only end that resolves rounds; the guest owns ``Side.B``,
forwards its actions and mirrors the host by replaying ``TurnResult`` events.

State flow::

    LOBBY -> AWAITING_ACTIONS -> AWAITING_OPPONENT -> RESOLVING -> DISTRIBUTING
          -> AWAITING_ACTIONS | FORCED_SWITCH | GAME_OVER

plus DISCONNECTED once the channel closes. Everything runs on the caller's
thread; incoming messages arrive through the channel callback.
"""
from __future__ import annotations
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from shapenet.battle.core import BattleCore
from shapenet.battle.events import TurnEvent
from shapenet.battle.models import Action, ActionKind, Combatant, Side
from shapenet.battle.session import BattleState, Party
from shapenet.core.errors import (
    CatalogLookupError, ChannelClosedError, ProtocolError, SessionDisconnected, SessionError, ShapeNetError,
)
from shapenet.core.logging import logger
from .channel import Channel
from .protocol import ActionMessage, Handshake, Message, Restart, TurnResult, decode, encode, generate_room_id


class SessionState(str, Enum):
    LOBBY = "LOBBY"
    AWAITING_ACTIONS = "AWAITING_ACTIONS"
    AWAITING_OPPONENT = "AWAITING_OPPONENT"
    RESOLVING = "RESOLVING"
    DISTRIBUTING = "DISTRIBUTING"
    FORCED_SWITCH = "FORCED_SWITCH"
    GAME_OVER = "GAME_OVER"
    DISCONNECTED = "DISCONNECTED"


class Role(str, Enum):
    HOST = "HOST"
    GUEST = "GUEST"


EventsCallback = Callable[[List[TurnEvent]], None]
StateCallback = Callable[[SessionState], None]
ErrorCallback = Callable[[ShapeNetError], None]


class SessionCoordinator:
    def __init__(
        self,
        role: Role,
        channel: Channel,
        roster: List[Combatant],
        room_id: Optional[str] = None,
        core: Optional[BattleCore] = None,
    ):
        self.role = role
        self.side = Side.A if role == Role.HOST else Side.B
        self.channel = channel
        self.room_id = room_id or (generate_room_id() if role == Role.HOST else None)
        self.log = logger.bind(room=self.room_id, role=role.value)
        # only the host ever resolves
        self.core = (core or BattleCore()) if role == Role.HOST else None
        self.local_roster = [c.to_dict() for c in roster]
        self.snapshots: Dict[Side, List[Dict[str, Any]]] = {}
        self.battle: Optional[BattleState] = None
        self.pending: Dict[Side, Optional[Action]] = {Side.A: None, Side.B: None}
        self.state = SessionState.LOBBY
        self.winner: Optional[Side] = None
        self.turn = 0
        self.rounds_resolved = 0
        self.desyncs = 0
        self.on_events: Optional[EventsCallback] = None
        self.on_state: Optional[StateCallback] = None
        self.on_error: Optional[ErrorCallback] = None
        channel.on_close(self._on_close)
        channel.on_message(self._on_message)

    @classmethod
    def host(cls, channel: Channel, roster: List[Combatant], room_id: Optional[str] = None, core: Optional[BattleCore] = None) -> "SessionCoordinator":
        return cls(Role.HOST, channel, roster, room_id=room_id, core=core)

    @classmethod
    def guest(cls, channel: Channel, roster: List[Combatant], room_id: Optional[str] = None) -> "SessionCoordinator":
        return cls(Role.GUEST, channel, roster, room_id=room_id)

    @property
    def is_host(self) -> bool:
        return self.role == Role.HOST

    # ------------------------------------------------------------------
    # Outgoing
    # ------------------------------------------------------------------
    def start(self) -> None:
        """Announce the local roster; call once the channel is open."""
        self.snapshots[self.side] = self.local_roster
        self._send(Handshake(self.local_roster))
        self._maybe_begin()

    def submit_action(self, side: Side, action: Action) -> None:
        if self.state == SessionState.DISCONNECTED or not self.channel.is_open:
            raise ChannelClosedError(f"session {self.room_id} is disconnected")
        if self.battle is None or self.state in (SessionState.LOBBY, SessionState.GAME_OVER):
            raise SessionError(f"not accepting actions in {self.state.value}")
        if not self.is_host and side != self.side:
            raise SessionError("guest may only submit its own side")
        self._check_forced(side, action)
        if self.is_host:
            self._store(side, action)
        else:
            # the result can arrive before send() returns
            self.pending[side] = action
            self._set_state(SessionState.AWAITING_OPPONENT)
            self._send(ActionMessage(action))

    def request_restart(self) -> None:
        self._send(Restart())
        self._restart()

    def close(self) -> None:
        self.channel.close()

    # ------------------------------------------------------------------
    # Host round handling
    # ------------------------------------------------------------------
    def _check_forced(self, side: Side, action: Action) -> None:
        if self.state != SessionState.FORCED_SWITCH:
            return
        if side not in self.battle.forced_switch_sides():
            raise SessionError(f"side {side.value} has nothing to replace")
        if action.kind != ActionKind.SWITCH:
            raise SessionError(f"side {side.value} must switch")

    def _store(self, side: Side, action: Action) -> None:
        if self.pending[side] is not None:
            self.log.debug("ActionReplaced", side=side.value)
        self.pending[side] = action
        if self.state == SessionState.FORCED_SWITCH:
            required = self.battle.forced_switch_sides()
            if all(self.pending[s] is not None for s in required):
                self._resolve_replacements(required)
            return
        if self.pending[Side.A] is not None and self.pending[Side.B] is not None:
            self._resolve_round()
        else:
            self._set_state(SessionState.AWAITING_OPPONENT)

    def _resolve_round(self) -> None:
        self._set_state(SessionState.RESOLVING)
        action_a, action_b = self.pending[Side.A], self.pending[Side.B]
        self.pending = {Side.A: None, Side.B: None}
        events = self.battle.resolve(self.core, action_a, action_b)
        self.turn += 1
        self.rounds_resolved += 1
        self.log.info("RoundResolved", turn=self.turn, events=len(events))
        self._distribute(events)

    def _resolve_replacements(self, sides: List[Side]) -> None:
        self._set_state(SessionState.RESOLVING)
        reps = {s: self.pending[s].index for s in sides}
        self.pending = {Side.A: None, Side.B: None}
        events = self.battle.resolve_replacements(self.core, reps)
        self._distribute(events)

    def _distribute(self, events: List[TurnEvent]) -> None:
        self._set_state(SessionState.DISTRIBUTING)
        self._send(TurnResult(events, self.battle.digest()))
        self._after_round(events)

    def _after_round(self, events: List[TurnEvent]) -> None:
        if self.on_events:
            self.on_events(events)
        if self.battle.is_over():
            self.winner = self.battle.winner()
            self.log.info("GameOver", winner=self.winner.value if self.winner else "DRAW")
            self._set_state(SessionState.GAME_OVER)
        elif self.battle.forced_switch_sides():
            self._set_state(SessionState.FORCED_SWITCH)
        else:
            self._set_state(SessionState.AWAITING_ACTIONS)

    # ------------------------------------------------------------------
    # Incoming
    # ------------------------------------------------------------------
    def _on_message(self, text: str) -> None:
        try:
            msg = decode(text)
        except ProtocolError as e:
            self.log.warn("MalformedMessage", error=e)
            self._report(e)
            return
        if isinstance(msg, Handshake):
            self._on_handshake(msg)
        elif isinstance(msg, ActionMessage):
            self._on_remote_action(msg)
        elif isinstance(msg, TurnResult):
            self._on_turn_result(msg)
        elif isinstance(msg, Restart):
            self.log.info("RestartRequested", by="remote")
            self._restart()

    def _on_handshake(self, msg: Handshake) -> None:
        try:
            for raw in msg.roster:
                Combatant.from_dict(raw)
        except (CatalogLookupError, KeyError, ValueError, TypeError) as e:
            err = ProtocolError(f"unusable roster in handshake: {e}")
            self.log.warn("HandshakeRejected", error=err)
            self._report(err)
            return
        self.snapshots[self.side.other] = list(msg.roster)
        self.log.info("HandshakeReceived", size=len(msg.roster))
        self._maybe_begin()

    def _on_remote_action(self, msg: ActionMessage) -> None:
        if not self.is_host:
            self.log.warn("UnexpectedMessage", type=msg.type)
            return
        if self.battle is None or self.state in (SessionState.LOBBY, SessionState.GAME_OVER):
            self.log.warn("ActionOutOfPhase", state=self.state.value)
            return
        try:
            self._check_forced(Side.B, msg.action)
        except SessionError as e:
            self.log.warn("ActionRejected", reason=e)
            return
        self._store(Side.B, msg.action)

    def _on_turn_result(self, msg: TurnResult) -> None:
        if self.is_host or self.battle is None:
            self.log.warn("UnexpectedMessage", type=msg.type)
            return
        # a result that answers a forced switch is a replacement, not a turn
        replacing = bool(self.battle.forced_switch_sides())
        try:
            self.battle.replay(msg.events)
        except (KeyError, IndexError, TypeError, ValueError) as e:
            err = ProtocolError(f"unplayable turn result: {e!r}")
            self.desyncs += 1
            self.log.warn("TurnResultRejected", error=err)
            self._report(err)
            return
        self.pending = {Side.A: None, Side.B: None}
        if not replacing:
            self.turn += 1
        if msg.digest is not None:
            local = self.battle.digest()
            if local != msg.digest:
                self.desyncs += 1
                self.log.warn("DesyncDetected", turn=self.turn, local=local[:12], remote=msg.digest[:12])
        self._after_round(msg.events)

    def _on_close(self) -> None:
        if self.state == SessionState.DISCONNECTED:
            return
        self._set_state(SessionState.DISCONNECTED)
        err = SessionDisconnected(self.room_id)
        self.log.warn("SessionDisconnected")
        self._report(err)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _maybe_begin(self) -> None:
        if self.state == SessionState.LOBBY and Side.A in self.snapshots and Side.B in self.snapshots:
            self._begin()

    def _begin(self) -> None:
        self.battle = BattleState(Party(self._members(Side.A)), Party(self._members(Side.B)))
        self.pending = {Side.A: None, Side.B: None}
        self.winner = None
        self.turn = 0
        self.log.info("SessionStarted")
        self._set_state(SessionState.AWAITING_ACTIONS)

    def _members(self, side: Side) -> List[Combatant]:
        """Fresh combatants from a handshake snapshot.

        Both ends build rosters with their own id counters, so guest ids that
        clash with host ids get a side prefix. Host and guest apply the same
        rule to the same snapshots and end up with identical ids.
        """
        taken = {d["instance_id"] for d in self.snapshots[Side.A]} if side == Side.B else set()
        members = []
        for raw in self.snapshots[side]:
            c = Combatant.from_dict(raw)
            if c.instance_id in taken:
                c.instance_id = f"{side.value.lower()}_{c.instance_id}"
            members.append(c)
        return members

    def _restart(self) -> None:
        if Side.A not in self.snapshots or Side.B not in self.snapshots:
            self.log.warn("RestartIgnored", reason="handshake incomplete")
            return
        self._begin()

    def _send(self, msg: Message) -> None:
        self.channel.send(encode(msg))

    def _set_state(self, state: SessionState) -> None:
        if state == self.state:
            return
        self.log.debug("SessionState", old=self.state.value, new=state.value)
        self.state = state
        if self.on_state:
            self.on_state(state)

    def _report(self, err: ShapeNetError) -> None:
        if self.on_error:
            self.on_error(err)


__all__ = ["SessionCoordinator","SessionState","Role"]
