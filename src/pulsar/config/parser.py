"""Configuration loading for Pulsar."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Optional

try:
    import tomllib  # Python 3.11+
except ImportError:
    import tomli as tomllib  # Fallback for Python 3.10

from dotenv import load_dotenv

# Load environment variables from .env file if present
load_dotenv()

logger = logging.getLogger(__name__)

HOME_ENV = "PULSAR_HOME"
PHP_PATH_ENV = "PULSAR_PHP_PATH"

THEMES = ("dark", "light")
DEFAULT_THEME = "dark"


@dataclass(frozen=True)
class Settings:
    """User-editable settings shared by every request.

    Instances are immutable; an update replaces the whole record.
    """

    theme: str = DEFAULT_THEME
    php_path: str = ""

    def normalized(self) -> "Settings":
        theme = self.theme if self.theme in THEMES else DEFAULT_THEME
        php_path = (self.php_path or "").strip()
        return replace(self, theme=theme, php_path=php_path)

    def to_dict(self) -> Dict[str, str]:
        return {"theme": self.theme, "phpPath": self.php_path}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Settings":
        """Build settings from a JSON payload.

        Accepts both ``phpPath`` (as stored on disk) and ``php_path``.
        """
        php_path = data.get("phpPath", data.get("php_path", "")) or ""
        theme = data.get("theme", DEFAULT_THEME) or DEFAULT_THEME
        return cls(theme=str(theme), php_path=str(php_path)).normalized()


@dataclass
class TinkerConfig:
    """REPL execution configuration."""

    timeout_seconds: float = 60.0


@dataclass
class LogsConfig:
    """Log tailing configuration."""

    log_file: str = "storage/logs/laravel.log"
    initial_lines: int = 200
    poll_interval_ms: int = 300

    @property
    def poll_interval(self) -> float:
        return self.poll_interval_ms / 1000.0


@dataclass
class PulsarConfig:
    """Complete Pulsar configuration."""

    tinker: TinkerConfig = field(default_factory=TinkerConfig)
    logs: LogsConfig = field(default_factory=LogsConfig)

    # Directory holding projects.json, settings.json and config.toml
    home: Path = field(default_factory=lambda: default_home())

    @property
    def projects_file(self) -> Path:
        return self.home / "projects.json"

    @property
    def settings_file(self) -> Path:
        return self.home / "settings.json"


def default_home() -> Path:
    """Return the Pulsar home directory.

    ``PULSAR_HOME`` wins over ``~/.pulsar``.
    """
    override = os.getenv(HOME_ENV, "").strip()
    if override:
        return Path(override).expanduser()
    return Path.home() / ".pulsar"


def find_config_file(home: Path) -> Optional[Path]:
    """Find config.toml in the Pulsar home directory.

    Args:
        home: Pulsar home directory

    Returns:
        Path to config.toml if found, None otherwise
    """
    config_file = home / "config.toml"
    if config_file.exists():
        return config_file
    return None


def load_config(home: Optional[Path] = None) -> PulsarConfig:
    """Load configuration from config.toml or use defaults.

    Args:
        home: Pulsar home directory (defaults to ``default_home()``)

    Returns:
        PulsarConfig with loaded or default configuration
    """
    home = Path(home) if home is not None else default_home()
    config = PulsarConfig(home=home)

    config_file = find_config_file(home)
    if not config_file:
        return config

    try:
        with open(config_file, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        logger.warning("Ignoring unreadable config %s: %s", config_file, e)
        return config

    if "tinker" in data:
        tinker_data = data["tinker"]
        timeout = tinker_data.get("timeout_seconds", 60)
        if isinstance(timeout, (int, float)) and timeout > 0:
            config.tinker.timeout_seconds = float(timeout)

    if "logs" in data:
        logs_data = data["logs"]
        config.logs.log_file = logs_data.get("log_file", config.logs.log_file)
        initial_lines = logs_data.get("initial_lines", 200)
        if isinstance(initial_lines, int) and initial_lines > 0:
            config.logs.initial_lines = initial_lines
        poll_ms = logs_data.get("poll_interval_ms", 300)
        if isinstance(poll_ms, int) and poll_ms > 0:
            config.logs.poll_interval_ms = poll_ms

    return config
