from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import PulsarConfig, load_config
from .host import Host, QueueHost
from .models.responses import HostEvent, PhpInfo, Project, TailStatus
from .runtime import InterpreterNotFoundError, PhpResolver
from .services.logs import LogTailService
from .services.projects import ProjectStore
from .services.settings import SettingsStore
from .services.tinker import TinkerService


class PulsarServer:
    """Server facade delegating requests to service layers.

    Settings, projects and the log tail each keep their own lock; nothing
    here serializes unrelated operations.
    """

    def __init__(
        self, config: Optional[PulsarConfig] = None, host: Optional[Host] = None
    ) -> None:
        self.config = config or load_config()
        self.host = host if host is not None else QueueHost()

        self.settings = SettingsStore(self.config.settings_file, host=self.host)
        self.projects = ProjectStore(self.config.projects_file)
        self.tinker = TinkerService(
            settings_store=self.settings, config=self.config.tinker
        )
        self.logs = LogTailService(host=self.host, config=self.config.logs)

    async def shutdown(self) -> None:
        await self.logs.stop_tail()

    def close(self) -> None:
        """Stop log tailing without awaiting; safe from signal handlers."""
        self.logs.close()

    # Projects
    async def get_projects(self) -> List[Project]:
        return self.projects.list()

    async def add_project(self, name: str, path: str) -> Project:
        return self.projects.add(name, path)

    async def remove_project(self, project_id: str) -> bool:
        return self.projects.remove(project_id)

    async def select_directory(self) -> Optional[str]:
        return self.host.open_directory_dialog("Select Laravel Project")

    # Tinker
    async def run_tinker(self, project_path: str, code: str) -> str:
        return await self.tinker.run(project_path, code)

    async def run_tinker_streaming(self, project_path: str, code: str) -> str:
        return await self.tinker.run_streaming(project_path, code)

    async def php_info(self, project_path: str) -> PhpInfo:
        resolver = PhpResolver(Path(project_path), system=self.tinker.system)
        try:
            binary = resolver.resolve(self.settings.get())
        except InterpreterNotFoundError as e:
            return PhpInfo(project_path=project_path, available=False, error=str(e))
        return PhpInfo(
            project_path=project_path,
            available=True,
            path=binary.path,
            source=binary.source,
        )

    # Logs
    async def start_log_tail(self, project_path: str) -> str:
        return await self.logs.start_tail(project_path)

    async def stop_log_tail(self) -> None:
        await self.logs.stop_tail()

    async def log_tail_status(self) -> TailStatus:
        return self.logs.status()

    def drain_events(self, channel: Optional[str] = None) -> List[HostEvent]:
        if isinstance(self.host, QueueHost):
            return self.host.drain(channel)
        return []

    # Settings
    async def get_settings(self) -> Dict[str, str]:
        return self.settings.get().to_dict()

    async def update_settings(self, data: Dict[str, Any]) -> Dict[str, str]:
        return self.settings.update_from_dict(data).to_dict()


__all__ = ["PulsarServer"]
