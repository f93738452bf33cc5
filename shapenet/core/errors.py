"""
Error classes for clearer exception sources.
"""
from __future__ import annotations

class ShapeNetError(Exception):
    pass

class DataLoadError(ShapeNetError):
    def __init__(self, path: str, detail: str):
        super().__init__(f"Failed to load {path}: {detail}")
        self.path = path
        self.detail = detail

class CatalogLookupError(ShapeNetError, KeyError):
    def __init__(self, kind: str, key: str):
        super().__init__(f"Unknown {kind}: {key}")
        self.kind = kind
        self.key = key

    def __str__(self) -> str:
        return f"Unknown {self.kind}: {self.key}"

class ValidationError(ShapeNetError):
    pass

class ProtocolError(ShapeNetError):
    pass

class SessionError(ShapeNetError):
    pass

class ChannelClosedError(SessionError):
    pass

class SessionDisconnected(SessionError):
    def __init__(self, room_id: str | None, detail: str = "channel closed"):
        super().__init__(f"Session {room_id or '?'} disconnected: {detail}")
        self.room_id = room_id
        self.detail = detail
