"""PHP binary resolution for Laravel projects."""

from .resolver import PhpResolver
from .specs import OS_BUNDLE_LOCATIONS, PROJECT_LOCATIONS
from .types import BinaryInfo, Candidate, InterpreterNotFoundError

__all__ = [
    "PhpResolver",
    "BinaryInfo",
    "Candidate",
    "InterpreterNotFoundError",
    "OS_BUNDLE_LOCATIONS",
    "PROJECT_LOCATIONS",
]
