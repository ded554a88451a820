from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any, Dict, Optional

from ..config import Settings
from ..host import THEME_CHANGED, Host

logger = logging.getLogger(__name__)


class SettingsStore:
    """Process-wide settings record persisted as JSON.

    ``get()`` hands out the current immutable ``Settings``; writers build a
    new record and swap it in under ``_lock``, so readers never block.
    """

    def __init__(self, path: Path, host: Optional[Host] = None) -> None:
        self.path = Path(path)
        self.host = host
        self._lock = threading.Lock()
        self._settings = self._load()

    def get(self) -> Settings:
        return self._settings

    def update(self, settings: Settings) -> Settings:
        """Normalize, persist and publish new settings.

        Emits ``theme:changed`` when the theme differs from the previous one.
        """
        normalized = settings.normalized()
        with self._lock:
            previous = self._settings
            self._save(normalized)
            self._settings = normalized

        if self.host is not None and normalized.theme != previous.theme:
            self.host.emit(THEME_CHANGED, normalized.theme)
        return normalized

    def update_from_dict(self, data: Dict[str, Any]) -> Settings:
        return self.update(Settings.from_dict(data))

    def _load(self) -> Settings:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return Settings()
        except (OSError, ValueError) as e:
            logger.warning("Failed to load settings from %s: %s", self.path, e)
            return Settings()

        if not isinstance(data, dict):
            return Settings()
        return Settings.from_dict(data)

    def _save(self, settings: Settings) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(settings.to_dict(), indent=2), encoding="utf-8")
