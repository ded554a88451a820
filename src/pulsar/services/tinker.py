from __future__ import annotations

import asyncio
import logging
import os
import signal
from pathlib import Path
from typing import AsyncIterator, Optional

from ..config import Settings, TinkerConfig
from ..runtime import InterpreterNotFoundError, PhpResolver
from .projects import is_laravel_project
from .settings import SettingsStore
from .transcript import is_prompt_line, parse_transcript

logger = logging.getLogger(__name__)

INVALID_PROJECT_MESSAGE = "Error: Invalid Laravel project path"
PHP_OPEN_TAG = "<?php"
# StreamReader buffer limit; longer lines are read in pieces
STREAM_LIMIT = 1024 * 1024


class TinkerError(Exception):
    """A failure reported to the caller as text instead of raised."""


def normalize_code(code: str) -> str:
    """Drop a leading ``<?php`` tag; tinker does not want it."""
    clean = code.strip()
    if clean.startswith(PHP_OPEN_TAG):
        clean = clean[len(PHP_OPEN_TAG):]
    return clean.strip()


class TinkerService:
    """Run PHP snippets through ``php artisan tinker``.

    Every call spawns its own tinker process, so calls are independent and
    share no REPL state. Results are always display strings: failures come
    back as text starting with ``Error``.
    """

    def __init__(
        self,
        settings_store: Optional[SettingsStore] = None,
        config: Optional[TinkerConfig] = None,
        system: Optional[str] = None,
    ) -> None:
        self.settings_store = settings_store
        self.config = config or TinkerConfig()
        self.system = system

    @property
    def timeout_message(self) -> str:
        return f"Error: Execution timed out ({self.config.timeout_seconds:g}s limit)"

    async def run(self, project_path: str, code: str) -> str:
        """Execute a snippet and return its cleaned-up result.

        Args:
            project_path: Root of the Laravel project
            code: PHP code, optionally starting with ``<?php``

        Returns:
            The ``= value`` results and printed output of the snippet,
            ``"null"`` when it printed nothing, or an ``Error...`` message.
        """
        try:
            process = await self._start(project_path)
        except TinkerError as e:
            return str(e)

        writer = asyncio.create_task(_feed(process, normalize_code(code) + "\n"))
        try:
            output = await asyncio.wait_for(
                _collect(process), timeout=self.config.timeout_seconds
            )
        except asyncio.TimeoutError:
            # Partial output is discarded on timeout
            logger.warning(
                "Tinker timed out after %ss in %s", self.config.timeout_seconds, project_path
            )
            await _terminate(process)
            return self.timeout_message
        finally:
            writer.cancel()
            if process.returncode is None:
                _kill(process)

        return parse_transcript(output.decode("utf-8", errors="replace"))

    async def stream(self, project_path: str, code: str) -> AsyncIterator[str]:
        """Yield tinker output line by line as it is produced.

        Only prompt-prefixed lines are filtered out; banner and result lines
        pass through unchanged. Errors and timeouts are yielded as a final
        ``Error...`` line.
        """
        try:
            process = await self._start(project_path)
        except TinkerError as e:
            yield str(e)
            return

        writer = asyncio.create_task(
            _feed(process, normalize_code(code) + "\nexit\n")
        )
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.config.timeout_seconds
        try:
            assert process.stdout is not None
            while True:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    raise asyncio.TimeoutError
                raw = await asyncio.wait_for(_read_line(process.stdout), timeout=remaining)
                if not raw:
                    break
                line = raw.decode("utf-8", errors="replace").rstrip("\r\n")
                if not is_prompt_line(line):
                    yield line
            await asyncio.wait_for(process.wait(), timeout=max(deadline - loop.time(), 0.1))
        except asyncio.TimeoutError:
            logger.warning("Streaming tinker timed out in %s", project_path)
            await _terminate(process)
            yield self.timeout_message
        finally:
            writer.cancel()
            if process.returncode is None:
                _kill(process)

    async def run_streaming(self, project_path: str, code: str) -> str:
        """Collect ``stream()`` into a single string."""
        lines = [line async for line in self.stream(project_path, code)]
        return "\n".join(lines).strip()

    def resolve_php(self, project_path: str) -> str:
        settings = self.settings_store.get() if self.settings_store else Settings()
        resolver = PhpResolver(Path(project_path), system=self.system)
        return resolver.resolve(settings).path

    async def _start(self, project_path: str) -> asyncio.subprocess.Process:
        if not is_laravel_project(project_path):
            raise TinkerError(INVALID_PROJECT_MESSAGE)

        try:
            php = self.resolve_php(project_path)
        except InterpreterNotFoundError as e:
            raise TinkerError(f"Error: {e}")

        logger.debug("Starting tinker with %s in %s", php, project_path)
        try:
            return await asyncio.create_subprocess_exec(
                php,
                "artisan",
                "tinker",
                cwd=project_path,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                start_new_session=os.name == "posix",
                limit=STREAM_LIMIT,
            )
        except OSError as e:
            logger.error("Failed to start tinker: %s", e)
            raise TinkerError(f"Error starting tinker: {e}")


async def _feed(process: asyncio.subprocess.Process, code: str) -> None:
    """Write the snippet and close stdin so tinker sees end of input."""
    assert process.stdin is not None
    try:
        process.stdin.write(code.encode("utf-8"))
        await process.stdin.drain()
    except (BrokenPipeError, ConnectionResetError) as e:
        logger.debug("Tinker closed stdin early: %s", e)
    finally:
        process.stdin.close()


async def _read_line(stream: asyncio.StreamReader) -> bytes:
    """Read one line of any length, including its newline if present."""
    chunks = []
    while True:
        try:
            chunks.append(await stream.readuntil(b"\n"))
            break
        except asyncio.IncompleteReadError as e:
            chunks.append(e.partial)
            break
        except asyncio.LimitOverrunError as e:
            chunks.append(await stream.read(e.consumed))
    return b"".join(chunks)


async def _collect(process: asyncio.subprocess.Process) -> bytes:
    assert process.stdout is not None
    output = await process.stdout.read()
    await process.wait()
    return output


def _kill(process: asyncio.subprocess.Process) -> None:
    try:
        if os.name == "posix":
            # Kill the whole session, including helpers spawned by PHP
            os.killpg(process.pid, signal.SIGKILL)
        else:
            process.kill()
    except ProcessLookupError:
        pass


async def _terminate(process: asyncio.subprocess.Process) -> None:
    _kill(process)
    try:
        await asyncio.wait_for(process.wait(), timeout=5.0)
    except asyncio.TimeoutError:
        logger.warning("Tinker process %s did not exit after kill", process.pid)
