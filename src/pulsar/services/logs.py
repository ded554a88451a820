from __future__ import annotations

import asyncio
import logging
import os
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Optional, Tuple

from ..config import LogsConfig
from ..host import LOG_ERROR, LOG_UPDATE, Host
from ..models.responses import TailStatus

logger = logging.getLogger(__name__)

# Leading bytes compared on each poll to notice a rewritten log
HEAD_BYTES = 64


def read_log_tail(path: Path, max_lines: int = 200) -> Tuple[str, int]:
    """Read the last ``max_lines`` lines of a log file.

    The file is read front to back keeping only a sliding window, so memory
    stays bounded however large the log is. A missing file is created.

    Args:
        path: Log file path
        max_lines: Maximum number of lines to return

    Returns:
        Tuple of (lines joined with newlines, byte offset reached)

    Raises:
        OSError: If the file cannot be created or read
    """
    if not path.exists():
        path.touch()

    window: deque = deque(maxlen=max_lines)
    with open(path, "rb") as f:
        for raw in f:
            window.append(raw.decode("utf-8", errors="replace").rstrip("\r\n"))
        offset = f.tell()
    return "\n".join(window), offset


@dataclass
class TailSession:
    log_path: Path
    cancel: asyncio.Event = field(default_factory=asyncio.Event)
    task: Optional[asyncio.Task] = None

    def stop(self) -> None:
        self.cancel.set()
        if self.task is not None and not self.task.done():
            self.task.cancel()


class LogTailService:
    """Follow a project's ``laravel.log`` and emit new lines as events.

    At most one session exists per service; starting a new one cancels the
    previous follower first. The session handle has its own lock so tail
    control never waits on project or settings operations.
    """

    def __init__(self, host: Host, config: Optional[LogsConfig] = None) -> None:
        self.host = host
        self.config = config or LogsConfig()
        self._session: Optional[TailSession] = None
        self._lock = asyncio.Lock()

    @property
    def is_running(self) -> bool:
        return self._session is not None

    @property
    def current_path(self) -> Optional[Path]:
        return self._session.log_path if self._session else None

    def status(self) -> TailStatus:
        path = self.current_path
        return TailStatus(running=path is not None, log_path=str(path) if path else None)

    def log_path(self, project_path: str) -> Path:
        return Path(project_path) / self.config.log_file

    async def start_tail(self, project_path: str) -> str:
        """Start following a project's log.

        Args:
            project_path: Root of the Laravel project

        Returns:
            The last ``initial_lines`` lines of the log, newline-joined

        Raises:
            ValueError: If ``project_path`` is empty
            OSError: If the log directory or file cannot be prepared or read
        """
        if not project_path:
            raise ValueError("project path is required")

        log_path = self.log_path(project_path)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        async with self._lock:
            self._stop_locked()

            session = TailSession(log_path=log_path)
            self._session = session
            try:
                snapshot, offset = read_log_tail(log_path, self.config.initial_lines)
                with open(log_path, "rb") as f:
                    head = f.read(HEAD_BYTES)
            except OSError:
                self._session = None
                raise

            session.task = asyncio.create_task(self._follow(session, offset, head))

        logger.info("Tailing %s", log_path)
        return snapshot

    async def stop_tail(self) -> None:
        """Stop the active follower, if any."""
        async with self._lock:
            self._stop_locked()

    def close(self) -> None:
        """Stop the active follower without taking the session lock.

        Used on process exit, where the event loop may not be available to
        await ``stop_tail()``.
        """
        self._stop_locked()

    def _stop_locked(self) -> None:
        if self._session is None:
            return
        logger.info("Stopping tail of %s", self._session.log_path)
        self._session.stop()
        self._session = None

    async def _follow(self, session: TailSession, offset: int, head: bytes) -> None:
        try:
            await self._follow_file(session, offset, head)
        except asyncio.CancelledError:
            pass
        except OSError as e:
            logger.error("Log tail of %s failed: %s", session.log_path, e)
            self.host.emit(LOG_ERROR, f"Error reading log: {e}")
        finally:
            if self._session is session:
                # Fatal error: a new start_tail is needed to resume
                self._session = None

    async def _follow_file(self, session: TailSession, offset: int, head: bytes) -> None:
        f = open(session.log_path, "rb")
        try:
            f.seek(offset)
            pending = b""
            check = True
            while not session.cancel.is_set():
                if check:
                    check = False
                    if _replaced(session.log_path, f, head):
                        logger.info(
                            "%s was truncated or replaced, following from the start",
                            session.log_path,
                        )
                        f.close()
                        f = open(session.log_path, "rb")
                        pending = b""
                    head = _read_head(f)

                raw = f.readline()
                if raw.endswith(b"\n"):
                    line = (pending + raw).decode("utf-8", errors="replace")
                    pending = b""
                    self.host.emit(LOG_UPDATE, line.rstrip("\r\n"))
                    continue

                # No complete line yet; keep partial data for the next read
                pending += raw
                try:
                    await asyncio.wait_for(
                        session.cancel.wait(), timeout=self.config.poll_interval
                    )
                except asyncio.TimeoutError:
                    pass
                check = True
        finally:
            f.close()


def _read_head(f: BinaryIO) -> bytes:
    position = f.tell()
    f.seek(0)
    head = f.read(HEAD_BYTES)
    f.seek(position)
    return head


def _replaced(path: Path, f: BinaryIO, head: bytes) -> bool:
    """Whether the open log was truncated, rewritten or rotated away.

    A rewrite is noticed by the first ``HEAD_BYTES`` of the file changing,
    a rotation by the path now naming a different inode.
    """
    st = os.fstat(f.fileno())
    if st.st_size < f.tell() or not _read_head(f).startswith(head):
        return True
    try:
        return path.stat().st_ino != st.st_ino
    except FileNotFoundError:
        # Rotated away and not recreated yet
        return False
