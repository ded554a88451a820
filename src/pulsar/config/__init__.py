"""Configuration management for Pulsar."""

from .parser import (
    PHP_PATH_ENV,
    LogsConfig,
    PulsarConfig,
    Settings,
    TinkerConfig,
    default_home,
    find_config_file,
    load_config,
)

__all__ = [
    "PHP_PATH_ENV",
    "LogsConfig",
    "PulsarConfig",
    "Settings",
    "TinkerConfig",
    "default_home",
    "find_config_file",
    "load_config",
]
