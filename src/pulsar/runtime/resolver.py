"""PHP binary resolver for Laravel projects."""

import logging
import os
import platform
import shutil
from pathlib import Path
from typing import List, Optional

from ..config import PHP_PATH_ENV, Settings
from .specs import OS_BUNDLE_LOCATIONS, PROJECT_LOCATIONS, LocationSpec, executable_name
from .types import BinaryInfo, Candidate, InterpreterNotFoundError

logger = logging.getLogger(__name__)


class PhpResolver:
    """Locate the PHP executable a project should run with.

    Project-pinned toolchains (Herd shims, vendor/bin) beat user and OS
    installs, explicit configuration beats auto-detection, and PATH is
    the last resort.
    """

    def __init__(self, project_path: Path, system: Optional[str] = None):
        """Initialize resolver.

        Args:
            project_path: Root path of the Laravel project
            system: Platform name as returned by ``platform.system()``;
                detected when omitted
        """
        self.project_path = Path(project_path)
        self.system = system or platform.system()
        self.executable = executable_name(self.system)

    def resolve(self, settings: Optional[Settings] = None) -> BinaryInfo:
        """Resolve the PHP executable.

        Args:
            settings: Current settings; ``php_path`` is consulted when set

        Returns:
            BinaryInfo for the first candidate that is an existing file

        Raises:
            InterpreterNotFoundError: If no candidate exists
        """
        candidates = self.candidates(settings)

        for priority, candidate in enumerate(candidates, start=1):
            if candidate.path.exists() and not candidate.path.is_dir():
                logger.debug("Resolved PHP via %s: %s", candidate.source, candidate.path)
                return BinaryInfo(
                    path=str(candidate.path),
                    source=candidate.source,
                    priority=priority,
                )

        raise InterpreterNotFoundError(
            f"PHP executable not found (checked {len(candidates)} locations).\n"
            f"Set the PHP path in Settings, or export {PHP_PATH_ENV}=/path/to/{self.executable}"
        )

    def candidates(self, settings: Optional[Settings] = None) -> List[Candidate]:
        """Build the ordered candidate list, highest priority first."""
        candidates: List[Candidate] = []

        for spec in PROJECT_LOCATIONS + OS_BUNDLE_LOCATIONS.get(self.system, []):
            path = self._location_path(spec)
            if path is not None:
                candidates.append(Candidate(path=path, source=spec.source))

        if settings and settings.php_path:
            candidates.append(Candidate(path=Path(settings.php_path), source="settings"))

        env_path = os.getenv(PHP_PATH_ENV, "").strip()
        if env_path:
            candidates.append(Candidate(path=Path(env_path), source="environment"))

        system_php = shutil.which(self.executable)
        if system_php:
            candidates.append(Candidate(path=Path(system_php), source="system"))

        return candidates

    def _location_path(self, spec: LocationSpec) -> Optional[Path]:
        if spec.root == "project":
            base = self.project_path
        elif spec.root == "home":
            base = Path.home()
        elif spec.root.startswith("env:"):
            value = os.getenv(spec.root[len("env:"):], "")
            if not value:
                return None
            base = Path(value)
        else:
            return Path(spec.path) / self.executable

        return base / spec.path / self.executable
