from __future__ import annotations
import json, os
from dataclasses import dataclass, asdict, fields
from pathlib import Path
from typing import Callable, List, Optional
from shapenet.core.logging import logger

SETTINGS_FILENAME = ".shapenet_settings.json"
LOG_LEVELS = {"DEBUG","INFO","WARN","ERROR"}

@dataclass
class SettingsData:
    log_level: str = "INFO"        # DEBUG / INFO / WARN / ERROR
    debug: bool = False            # Verbose resolver output
    level: int = 50                # Level used when building rosters
    roster_path: str = ""          # Saved roster config; empty => ~/.shapenet_roster.json
    replay_delay_ms: int = 0       # Pause between rendered events

    def normalize(self):
        if self.log_level not in LOG_LEVELS:
            self.log_level = "INFO"
        if not isinstance(self.level, int) or not 1 <= self.level <= 100:
            self.level = 50
        if not isinstance(self.replay_delay_ms, int) or self.replay_delay_ms < 0:
            self.replay_delay_ms = 0
        if not isinstance(self.roster_path, str):
            self.roster_path = ""
        self.debug = bool(self.debug)

class Settings:
    def __init__(self, data: SettingsData, path: Path):
        self.data = data
        self.path = path
        self._listeners: List[Callable[[SettingsData], None]] = []

    @classmethod
    def _resolve_path(cls) -> Path:
        home = Path(os.path.expanduser("~"))
        if home.is_dir() and os.access(home, os.W_OK):
            return home / SETTINGS_FILENAME
        return Path.cwd() / SETTINGS_FILENAME

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "Settings":
        path = path or cls._resolve_path()
        if path.exists():
            try:
                raw = json.loads(path.read_text(encoding="utf-8"))
                # Backfill missing fields (migration safe)
                field_names = {f.name for f in fields(SettingsData)}
                data = SettingsData(**{k: v for k, v in raw.items() if k in field_names})
                data.normalize()
                logger.debug("SettingsLoaded", path=str(path))
                return cls(data, path)
            except (OSError, ValueError, TypeError, AttributeError) as e:
                logger.warn("SettingsParseFailedUsingDefaults", path=str(path), error=str(e))
        data = SettingsData()
        data.normalize()
        return cls(data, path)

    def save(self):
        try:
            self.path.write_text(json.dumps(asdict(self.data), indent=2))
            logger.debug("SettingsSaved", path=str(self.path))
        except OSError as e:
            logger.error("SettingsSaveFailed", error=str(e))

    def apply(self):
        """Push settings into process-wide state (logger threshold)."""
        logger.set_level("DEBUG" if self.data.debug else self.data.log_level)  # type: ignore[arg-type]

    def update(self, **changes):
        for k, v in changes.items():
            if not hasattr(self.data, k):
                raise AttributeError(f"Unknown setting: {k}")
            setattr(self.data, k, v)
        self.data.normalize()
        self.save()
        self._notify()

    def on_change(self, fn: Callable[[SettingsData], None]):
        self._listeners.append(fn)

    def _notify(self):
        for fn in self._listeners:
            fn(self.data)
