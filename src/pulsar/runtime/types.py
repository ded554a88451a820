"""Data types for PHP binary resolution."""

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class Candidate:
    """One probed location for the PHP executable."""

    path: Path
    source: str


@dataclass
class BinaryInfo:
    """Information about a resolved PHP executable.

    Attributes:
        path: Path to the executable, as probed (symlinks are not resolved)
        source: Which candidate produced it ("project_herd", "settings", "system", ...)
        priority: 1-based position of the winning candidate in the list
    """

    path: str
    source: str
    priority: int = 1

    def __repr__(self) -> str:
        return f"<BinaryInfo {self.path} ({self.source}, #{self.priority})>"


class InterpreterNotFoundError(RuntimeError):
    """Raised when no PHP executable can be located."""
