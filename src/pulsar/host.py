"""Host capabilities injected into the services.

Services never talk to a GUI runtime directly; they receive a ``Host``
and use it to ask for a directory or to push named events.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from typing import Deque, List, Optional, Protocol

from .models.responses import HostEvent

logger = logging.getLogger(__name__)

LOG_UPDATE = "log:update"
LOG_ERROR = "log:error"
THEME_CHANGED = "theme:changed"


class Host(Protocol):
    def open_directory_dialog(self, title: str) -> Optional[str]:
        """Ask the user for a directory; None when cancelled."""
        ...

    def emit(self, channel: str, payload: str) -> None:
        """Push a named event to the presentation layer."""
        ...


class QueueHost:
    """Headless host that buffers events until a client drains them.

    Used by the MCP server, where there is no window to push events into.
    The oldest events are dropped once ``max_events`` is reached.
    """

    def __init__(self, max_events: int = 5000, directory: Optional[str] = None) -> None:
        self._events: Deque[HostEvent] = deque(maxlen=max_events)
        self._lock = threading.Lock()
        self.directory = directory

    def open_directory_dialog(self, title: str) -> Optional[str]:
        # No native dialog without a display; callers pass a path instead
        logger.debug("Directory dialog requested (%s): %s", title, self.directory)
        return self.directory

    def emit(self, channel: str, payload: str) -> None:
        with self._lock:
            self._events.append(HostEvent(channel=channel, payload=payload))

    def drain(self, channel: Optional[str] = None) -> List[HostEvent]:
        """Remove and return buffered events.

        Args:
            channel: Only drain events on this channel, or channels starting
                with it when it ends with ``:`` (e.g. ``"log:"``)
        """
        with self._lock:
            if channel is None:
                drained = list(self._events)
                self._events.clear()
                return drained

            drained, kept = [], []
            for event in self._events:
                if _matches(event.channel, channel):
                    drained.append(event)
                else:
                    kept.append(event)
            self._events.clear()
            self._events.extend(kept)
            return drained


def _matches(channel: str, pattern: str) -> bool:
    if pattern.endswith(":"):
        return channel.startswith(pattern)
    return channel == pattern
