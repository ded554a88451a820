"""Declarative PHP candidate locations.

This is DATA, not code. To probe a new install layout, add it here.
"""

from dataclasses import dataclass
from typing import Dict, List


@dataclass(frozen=True)
class LocationSpec:
    """A directory that may hold the PHP executable.

    ``root`` selects what ``path`` is relative to: ``project`` (the Laravel
    project root), ``home`` (the user's home directory), ``env:<VAR>`` (the
    value of an environment variable) or ``absolute``.
    """
    source: str
    root: str
    path: str


# Project-pinned and user-level toolchains, highest priority first
PROJECT_LOCATIONS: List[LocationSpec] = [
    LocationSpec(source="project_herd", root="project", path=".herd/bin"),
    LocationSpec(source="project_herd_config", root="project", path=".config/herd/bin"),
    LocationSpec(source="project_vendor", root="project", path="vendor/bin"),
    LocationSpec(source="user_herd", root="home", path=".config/herd/bin"),
]

# Well-known application bundles, keyed by platform.system()
OS_BUNDLE_LOCATIONS: Dict[str, List[LocationSpec]] = {
    "Darwin": [
        LocationSpec(
            source="os_bundle",
            root="absolute",
            path="/Applications/Herd.app/Contents/Resources/bin",
        ),
    ],
    "Windows": [
        LocationSpec(source="os_bundle", root="env:USERPROFILE", path=".config/herd/bin"),
        LocationSpec(
            source="os_bundle",
            root="absolute",
            path="C:/Program Files/Herd/resources/bin",
        ),
    ],
}


def executable_name(system: str) -> str:
    """Name of the PHP executable on the given platform."""
    return "php.exe" if system == "Windows" else "php"
