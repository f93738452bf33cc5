"""
Lightweight logger used across the project.
Colored output through colorama; event names are CamelCase with key=value extras.
"""
from __future__ import annotations
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Literal, Optional, TextIO

from colorama import Fore, Style, init as colorama_init

colorama_init()

Level = Literal["DEBUG","INFO","WARN","ERROR"]

COLORS = {
    "DEBUG": Fore.BLUE,
    "INFO": Fore.GREEN,
    "WARN": Fore.YELLOW,
    "ERROR": Fore.RED
}
RESET = Style.RESET_ALL

class Logger:
    _order = {"DEBUG":10,"INFO":20,"WARN":30,"ERROR":40}
    def __init__(self, level: Level = "INFO", stream: Optional[TextIO] = None):
        self.threshold = self._order[level]
        self.stream = stream  # None => whatever sys.stdout is at write time

    def set_level(self, level: Level):
        self.threshold = self._order.get(level, 20)

    def enabled(self, lvl: Level) -> bool:
        return self._order[lvl] >= self.threshold

    def bind(self, **context: Any) -> "BoundLogger":
        return BoundLogger(self, context)

    def _emit(self, lvl: Level, msg: str, **extra: Any):
        if not self.enabled(lvl):
            return
        ts = datetime.now(timezone.utc).isoformat(timespec="seconds")
        extras = ""
        if extra:
            kv = " ".join(f"{k}={v}" for k,v in extra.items() if v is not None)
            extras = " " + kv if kv else ""
        out = self.stream or sys.stdout
        out.write(f"{COLORS[lvl]}{ts} [{lvl}] {msg}{extras}{RESET}\n")

    def debug(self, msg: str, **kw): self._emit("DEBUG", msg, **kw)
    def info(self, msg: str, **kw): self._emit("INFO", msg, **kw)
    def warn(self, msg: str, **kw): self._emit("WARN", msg, **kw)
    def error(self, msg: str, **kw): self._emit("ERROR", msg, **kw)


class BoundLogger:
    """Same levels as Logger, with fixed key=value context written first.

    Shares the parent's threshold, so ``logger.set_level`` still governs it.
    """
    def __init__(self, parent: Logger, context: Dict[str, Any]):
        self.parent = parent
        self.context = dict(context)

    def bind(self, **context: Any) -> "BoundLogger":
        return BoundLogger(self.parent, {**self.context, **context})

    def debug(self, msg: str, **kw): self.parent._emit("DEBUG", msg, **{**self.context, **kw})
    def info(self, msg: str, **kw): self.parent._emit("INFO", msg, **{**self.context, **kw})
    def warn(self, msg: str, **kw): self.parent._emit("WARN", msg, **{**self.context, **kw})
    def error(self, msg: str, **kw): self.parent._emit("ERROR", msg, **{**self.context, **kw})

logger = Logger("INFO")
