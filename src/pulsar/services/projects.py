from __future__ import annotations

import json
import logging
import threading
import time
from dataclasses import asdict
from pathlib import Path
from typing import List, Optional

from ..models.responses import Project

logger = logging.getLogger(__name__)

PROJECT_MARKER = "artisan"


class InvalidProjectError(ValueError):
    """Raised when a directory is not a Laravel project."""


def is_laravel_project(path: str) -> bool:
    """A Laravel project has an ``artisan`` file at its root."""
    return (Path(path) / PROJECT_MARKER).is_file()


class ProjectStore:
    """Saved Laravel projects, persisted as a JSON list."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()
        self._projects: List[Project] = self._load()

    def list(self) -> List[Project]:
        with self._lock:
            return list(self._projects)

    def get(self, project_id: str) -> Optional[Project]:
        with self._lock:
            for project in self._projects:
                if project.id == project_id:
                    return project
        return None

    def add(self, name: str, path: str) -> Project:
        """Add a project after checking it is a Laravel app.

        Args:
            name: Display name; the directory name is used when empty
            path: Project root

        Raises:
            InvalidProjectError: If ``artisan`` is missing at ``path``
        """
        if not is_laravel_project(path):
            raise InvalidProjectError(
                "not a valid Laravel project: artisan file not found"
            )

        project = Project(
            id=str(time.time_ns()),
            name=name.strip() or Path(path).name,
            path=str(path),
        )
        with self._lock:
            self._projects.append(project)
            self._save()
        logger.info("Added project %s at %s", project.name, project.path)
        return project

    def remove(self, project_id: str) -> bool:
        """Remove a project by id; unknown ids are ignored."""
        with self._lock:
            remaining = [p for p in self._projects if p.id != project_id]
            removed = len(remaining) != len(self._projects)
            self._projects = remaining
            self._save()
        return removed

    def _load(self) -> List[Project]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return []
        except (OSError, ValueError) as e:
            logger.warning("Failed to load projects from %s: %s", self.path, e)
            return []

        projects = []
        for item in data if isinstance(data, list) else []:
            try:
                projects.append(
                    Project(id=str(item["id"]), name=item["name"], path=item["path"])
                )
            except (KeyError, TypeError):
                logger.warning("Skipping malformed project entry: %r", item)
        return projects

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        data = [asdict(p) for p in self._projects]
        self.path.write_text(json.dumps(data, indent=2), encoding="utf-8")
