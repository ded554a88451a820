from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


# Projects
@dataclass
class Project:
    id: str
    name: str
    path: str


# Host events
@dataclass
class HostEvent:
    channel: str  # "log:update", "log:error", "theme:changed"
    payload: str


# Log tailing
@dataclass
class TailStatus:
    running: bool
    log_path: Optional[str] = None


# PHP resolution
@dataclass
class PhpInfo:
    """Result of probing a project for its PHP executable."""

    project_path: str
    available: bool
    path: Optional[str] = None
    source: Optional[str] = None
    error: Optional[str] = None
