"""Pytest configuration and shared fixtures."""

import sys
from pathlib import Path
from typing import Callable

import pytest

from pulsar.host import QueueHost


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path: Path, monkeypatch):
    """Keep tests away from the real home directory and system PHP.

    HOME points at an empty directory, the PHP/home overrides are unset and
    the PATH lookup for ``php`` finds nothing.
    """
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.delenv("PULSAR_PHP_PATH", raising=False)
    monkeypatch.delenv("PULSAR_HOME", raising=False)
    monkeypatch.setattr("pulsar.runtime.resolver.shutil.which", lambda name: None)
    return home


@pytest.fixture
def laravel_project(tmp_path: Path) -> Path:
    """Create a minimal Laravel project (just the artisan marker).

    Creates:
        project/
            artisan
    """
    project = tmp_path / "project"
    project.mkdir()
    (project / "artisan").write_text("#!/usr/bin/env php\n<?php\n")
    return project


@pytest.fixture
def fake_php(laravel_project: Path) -> Callable[[str], Path]:
    """Install a fake ``php`` in the project's vendor/bin.

    The returned factory takes the body of a Python script. The script runs
    with the project as its working directory and receives the tinker
    arguments in ``sys.argv``.
    """

    def install(body: str) -> Path:
        bin_dir = laravel_project / "vendor" / "bin"
        bin_dir.mkdir(parents=True, exist_ok=True)
        php = bin_dir / "php"
        php.write_text(f"#!{sys.executable}\n{body}")
        php.chmod(0o755)
        return php

    return install


@pytest.fixture
def host() -> QueueHost:
    return QueueHost()
