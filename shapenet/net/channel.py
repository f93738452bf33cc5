"""Reliable, ordered message channels.

The coordinator only needs ``send`` plus message / close callbacks. The concrete
peer transport is out of scope; ``LoopbackChannel`` connects two endpoints in
memory and is what the CLI and the tests use.
"""
from __future__ import annotations
from collections import deque
from typing import Callable, Deque, List, Optional, Protocol, Tuple

from shapenet.core.errors import ChannelClosedError
from shapenet.core.logging import logger

MessageHandler = Callable[[str], None]
CloseHandler = Callable[[], None]


class Channel(Protocol):
    @property
    def is_open(self) -> bool: ...
    def send(self, text: str) -> None: ...
    def on_message(self, handler: MessageHandler) -> None: ...
    def on_close(self, handler: CloseHandler) -> None: ...
    def close(self) -> None: ...


class _Link:
    def __init__(self):
        self.queue: Deque[Tuple["LoopbackChannel", str]] = deque()
        self.draining = False
        self.open = True

    def drain(self) -> None:
        # deliveries triggered from inside a handler are queued, never nested
        if self.draining:
            return
        self.draining = True
        try:
            while self.queue and self.open:
                target, text = self.queue[0]
                if target._handler is None:
                    break
                self.queue.popleft()
                target._handler(text)
        finally:
            self.draining = False


class LoopbackChannel:
    def __init__(self, link: _Link, name: str):
        self._link = link
        self.name = name
        self.peer: Optional[LoopbackChannel] = None
        self._handler: Optional[MessageHandler] = None
        self._close_handlers: List[CloseHandler] = []
        self.sent = 0

    @classmethod
    def pair(cls) -> Tuple["LoopbackChannel", "LoopbackChannel"]:
        link = _Link()
        a, b = cls(link, "host"), cls(link, "guest")
        a.peer, b.peer = b, a
        return a, b

    @property
    def is_open(self) -> bool:
        return self._link.open

    def on_message(self, handler: MessageHandler) -> None:
        self._handler = handler
        self._link.drain()

    def on_close(self, handler: CloseHandler) -> None:
        self._close_handlers.append(handler)

    def send(self, text: str) -> None:
        if not self._link.open:
            raise ChannelClosedError(f"{self.name} channel is closed")
        self.sent += 1
        self._link.queue.append((self.peer, text))
        self._link.drain()

    def close(self) -> None:
        if not self._link.open:
            return
        self._link.open = False
        self._link.queue.clear()
        logger.info("ChannelClosed", by=self.name)
        for ch in (self, self.peer):
            for handler in list(ch._close_handlers):
                handler()


__all__ = ["Channel","LoopbackChannel","MessageHandler","CloseHandler"]
