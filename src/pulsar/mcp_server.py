"""MCP Server for Pulsar.

Exposes Laravel project management, tinker execution and log tailing as
MCP tools using FastMCP.
"""

from __future__ import annotations

import atexit
import logging
import os
import signal
import sys
from dataclasses import asdict
from typing import Any, Dict, List, Optional

from mcp.server import FastMCP

from .config import load_config
from .host import QueueHost
from .server import PulsarServer

logger = logging.getLogger(__name__)

LOG_LEVEL_ENV = "PULSAR_LOG_LEVEL"

# Global server instance
_server: Optional[PulsarServer] = None

mcp = FastMCP("Pulsar: Laravel tinker and logs")


def get_server() -> PulsarServer:
    """Get or create the Pulsar server instance."""
    global _server
    if _server is None:
        config = load_config()
        _server = PulsarServer(config=config, host=QueueHost())
        logger.info("Pulsar home: %s", config.home)
    return _server


def _cleanup_server() -> None:
    """Stop log tailing on exit.

    Runs from signal handlers while the MCP event loop may still be running,
    so it only uses the synchronous ``close()``.
    """
    global _server
    if _server is not None:
        try:
            _server.close()
        except Exception as e:
            logger.warning("Cleanup failed: %s", e)
        finally:
            _server = None


def _setup_cleanup_handlers() -> None:
    """Set up signal handlers and atexit hooks for cleanup."""
    atexit.register(_cleanup_server)

    def signal_handler(signum, frame):
        _cleanup_server()
        # Re-raise the signal to allow normal termination
        signal.signal(signum, signal.SIG_DFL)
        signal.raise_signal(signum)

    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)


def _to_dict(obj: Any) -> Any:
    """Convert dataclass objects to dictionaries for JSON serialization."""
    if hasattr(obj, "__dataclass_fields__"):
        return asdict(obj)
    elif isinstance(obj, list):
        return [_to_dict(item) for item in obj]
    elif isinstance(obj, dict):
        return {k: _to_dict(v) for k, v in obj.items()}
    return obj


# ============================================================================
# Projects
# ============================================================================


@mcp.tool()
async def list_projects() -> List[Dict[str, Any]]:
    """List saved Laravel projects (id, name, path)."""
    server = get_server()
    return _to_dict(await server.get_projects())


@mcp.tool()
async def add_project(path: str, name: str = "") -> Dict[str, Any]:
    """Save a Laravel project.

    Args:
        path: Project root; must contain the ``artisan`` file
        name: Display name (defaults to the directory name)

    Returns:
        The saved project, or ``{"error": ...}`` if the path is not a
        Laravel project.
    """
    server = get_server()
    try:
        project = await server.add_project(name, path)
    except ValueError as e:
        return {"error": str(e), "path": path}
    return _to_dict(project)


@mcp.tool()
async def remove_project(project_id: str) -> Dict[str, Any]:
    """Remove a saved project by id. Unknown ids are ignored."""
    server = get_server()
    removed = await server.remove_project(project_id)
    return {"id": project_id, "removed": removed}


@mcp.tool()
async def select_directory() -> Dict[str, Any]:
    """Ask the host for a project directory.

    Headless hosts have no picker and report ``cancelled``.
    """
    server = get_server()
    path = await server.select_directory()
    return {"path": path, "cancelled": path is None}


# ============================================================================
# Tinker
# ============================================================================


@mcp.tool()
async def run_tinker(project_path: str, code: str) -> str:
    """Execute PHP code with ``php artisan tinker`` in a Laravel project.

    Each call starts a fresh tinker process; variables do not survive
    between calls.

    Args:
        project_path: Root of the Laravel project
        code: PHP code; a leading ``<?php`` tag is ignored

    Returns:
        The evaluated results and printed output, ``null`` when the code
        printed nothing, or a message starting with ``Error``.

    Examples:
        >>> run_tinker("/srv/app", "User::count()")
        "42"
        >>> run_tinker("/srv/app", "$x = 1;")
        "null"
    """
    server = get_server()
    return await server.run_tinker(project_path, code)


@mcp.tool()
async def run_tinker_raw(project_path: str, code: str) -> str:
    """Execute PHP code in tinker and return the lightly filtered output.

    Only echoed prompt lines are removed; banner and ``= value`` lines are
    kept as tinker printed them.
    """
    server = get_server()
    return await server.run_tinker_streaming(project_path, code)


@mcp.tool()
async def get_php_info(project_path: str) -> Dict[str, Any]:
    """Show which PHP executable would run tinker for a project.

    Returns:
        ``path`` and ``source`` (project_herd, project_vendor, user_herd,
        os_bundle, settings, environment, system) when found, otherwise
        ``available: false`` with the error message.
    """
    server = get_server()
    return _to_dict(await server.php_info(project_path))


# ============================================================================
# Logs
# ============================================================================


@mcp.tool()
async def start_log_tail(project_path: str) -> Dict[str, Any]:
    """Start following ``storage/logs/laravel.log`` of a project.

    Any previous tail is stopped first. New lines are buffered as
    ``log:update`` events; fetch them with ``poll_log_events``.

    Returns:
        ``snapshot`` with the last lines of the log, or ``error``.
    """
    server = get_server()
    try:
        snapshot = await server.start_log_tail(project_path)
    except (ValueError, OSError) as e:
        return {"error": str(e), "project_path": project_path}
    return {"snapshot": snapshot, **_to_dict(await server.log_tail_status())}


@mcp.tool()
async def stop_log_tail() -> Dict[str, Any]:
    """Stop following the log. Safe to call when nothing is tailed."""
    server = get_server()
    await server.stop_log_tail()
    return _to_dict(await server.log_tail_status())


@mcp.tool()
async def poll_log_events() -> Dict[str, Any]:
    """Return log lines and errors received since the last poll.

    Returns:
        ``lines`` (new log lines in order), ``errors`` (follower failures;
        a failed follower must be restarted with ``start_log_tail``) and
        ``running``.
    """
    server = get_server()
    events = server.drain_events("log:")
    status = await server.log_tail_status()
    return {
        "lines": [e.payload for e in events if e.channel == "log:update"],
        "errors": [e.payload for e in events if e.channel == "log:error"],
        "running": status.running,
    }


# ============================================================================
# Settings
# ============================================================================


@mcp.tool()
async def get_settings() -> Dict[str, str]:
    """Return the current settings (``theme``, ``phpPath``)."""
    server = get_server()
    return await server.get_settings()


@mcp.tool()
async def update_settings(theme: str = "dark", php_path: str = "") -> Dict[str, str]:
    """Replace the settings.

    Args:
        theme: ``dark`` or ``light``; anything else becomes ``dark``
        php_path: Explicit PHP executable, used when no project-local PHP exists

    Returns:
        The stored settings, or ``{"error": ...}`` if they could not be saved.
    """
    server = get_server()
    try:
        return await server.update_settings({"theme": theme, "phpPath": php_path})
    except OSError as e:
        return {"error": f"Failed to save settings: {e}"}


# ============================================================================
# Entry Point
# ============================================================================


def main():
    """Run the MCP server.

    Configuration comes from ``~/.pulsar`` (or ``PULSAR_HOME``); logging goes
    to stderr at ``PULSAR_LOG_LEVEL`` (default INFO).

    Example:
        PULSAR_PHP_PATH=/opt/php/bin/php pulsar
    """
    logging.basicConfig(
        level=os.getenv(LOG_LEVEL_ENV, "INFO").upper(),
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    _setup_cleanup_handlers()

    server = get_server()

    # stdout is used for the MCP protocol
    print("🚀 Starting Pulsar MCP Server", file=sys.stderr)
    print(f"📂 Home: {server.config.home}", file=sys.stderr)
    print(f"📁 Projects: {len(server.projects.list())}", file=sys.stderr)
    print("", file=sys.stderr)

    mcp.run()


if __name__ == "__main__":
    main()
