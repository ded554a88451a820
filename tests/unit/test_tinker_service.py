"""Unit tests for TinkerService.

Tinker itself is replaced by small Python scripts installed as the
project's ``vendor/bin/php``.
"""

import asyncio
import os
import sys
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from pulsar.config import Settings, TinkerConfig
from pulsar.services.settings import SettingsStore
from pulsar.services.tinker import (
    INVALID_PROJECT_MESSAGE,
    STREAM_LIMIT,
    TinkerService,
    normalize_code,
)
from tests.helpers.tinker_helpers import posix_only, tinker_script

BANNER = "Psy Shell v0.12.4 (PHP 8.3.10 - cli) by Justin Hileman\n"


class TestNormalizeCode:
    def test_strips_open_tag(self):
        assert normalize_code("<?php\n\necho 1;\n") == "echo 1;"

    def test_trims_whitespace(self):
        assert normalize_code("   User::count()  \n") == "User::count()"

    def test_open_tag_after_whitespace(self):
        assert normalize_code("\n  <?php User::first()") == "User::first()"

    def test_tag_elsewhere_is_kept(self):
        assert normalize_code("echo '<?php';") == "echo '<?php';"


class TestRunValidation:
    @pytest.mark.asyncio
    async def test_invalid_project_does_not_spawn(self, tmp_path: Path):
        service = TinkerService()

        with patch(
            "asyncio.create_subprocess_exec", new_callable=AsyncMock
        ) as mock_exec:
            result = await service.run(str(tmp_path), "1 + 1")

        assert result == INVALID_PROJECT_MESSAGE
        mock_exec.assert_not_called()

    @pytest.mark.asyncio
    async def test_no_interpreter(self, laravel_project: Path):
        service = TinkerService()

        result = await service.run(str(laravel_project), "1 + 1")

        assert result.startswith("Error: PHP executable not found")
        assert "PULSAR_PHP_PATH" in result

    @pytest.mark.asyncio
    async def test_spawn_failure_reported(self, laravel_project: Path):
        php = laravel_project / "vendor" / "bin" / "php"
        php.parent.mkdir(parents=True)
        php.write_text("not executable")
        php.chmod(0o644)
        service = TinkerService()

        result = await service.run(str(laravel_project), "1 + 1")

        assert result.startswith("Error starting tinker:")


@posix_only
class TestRun:
    @pytest.mark.asyncio
    async def test_result_line(self, laravel_project: Path, fake_php):
        fake_php(tinker_script(BANNER + ">>> User::count()\n= 42\n"))
        service = TinkerService()

        result = await service.run(str(laravel_project), "<?php\nUser::count()\n")

        assert result == "42"
        assert (laravel_project / "stdin.txt").read_text() == "User::count()\n"
        assert (laravel_project / "argv.txt").read_text() == "artisan tinker"

    @pytest.mark.asyncio
    async def test_no_output_is_null(self, laravel_project: Path, fake_php):
        fake_php(tinker_script(BANNER + ">>> $x = 1;\n"))
        service = TinkerService()

        assert await service.run(str(laravel_project), "$x = 1;") == "null"

    @pytest.mark.asyncio
    async def test_dump_output_and_result(self, laravel_project: Path, fake_php):
        fake_php(tinker_script(BANNER + ">>> dump('hi');\n\"hi\"\n= \"hi\"\n"))
        service = TinkerService()

        result = await service.run(str(laravel_project), "dump('hi');")

        assert result == '"hi"\n"hi"'

    @pytest.mark.asyncio
    async def test_stderr_is_merged(self, laravel_project: Path, fake_php):
        fake_php(
            "import sys\n"
            "sys.stdin.read()\n"
            "sys.stderr.write('PHP Warning:  boom\\n')\n"
            "sys.stderr.flush()\n"
        )
        service = TinkerService()

        result = await service.run(str(laravel_project), "trigger_error('boom');")

        assert result == "PHP Warning:  boom"

    @pytest.mark.asyncio
    async def test_child_ignoring_stdin(self, laravel_project: Path, fake_php):
        """A child that never reads its input still gets its output collected."""
        fake_php("import sys\nsys.stdout.write('= 7\\n')\n")
        service = TinkerService()

        result = await service.run(str(laravel_project), "x" * 200_000)

        assert result == "7"

    @pytest.mark.asyncio
    async def test_settings_php_path_used(self, laravel_project: Path, tmp_path: Path):
        php = tmp_path / "custom-php"
        php.write_text(f"#!{sys.executable}\nimport sys\nsys.stdin.read()\nprint('= 1')\n")
        php.chmod(0o755)
        store = SettingsStore(tmp_path / "settings.json")
        store.update(Settings(php_path=str(php)))
        service = TinkerService(settings_store=store)

        assert await service.run(str(laravel_project), "1") == "1"

    @pytest.mark.asyncio
    async def test_timeout_kills_process(self, laravel_project: Path, fake_php):
        fake_php(
            "import os, pathlib, sys, time\n"
            "pathlib.Path('pid.txt').write_text(str(os.getpid()))\n"
            "print('= partial', flush=True)\n"
            "time.sleep(30)\n"
        )
        service = TinkerService(config=TinkerConfig(timeout_seconds=1))

        result = await service.run(str(laravel_project), "sleep(70);")

        assert result == "Error: Execution timed out (1s limit)"
        pid = int((laravel_project / "pid.txt").read_text())
        with pytest.raises(ProcessLookupError):
            os.kill(pid, 0)

    def test_timeout_message_default(self):
        assert TinkerService().timeout_message == "Error: Execution timed out (60s limit)"

    @pytest.mark.asyncio
    async def test_concurrent_runs_are_independent(self, laravel_project: Path, fake_php):
        fake_php(
            "import sys\n"
            "code = sys.stdin.read().strip()\n"
            "print('= ' + code)\n"
        )
        service = TinkerService()

        results = await asyncio.gather(
            *(service.run(str(laravel_project), str(i)) for i in range(5))
        )

        assert results == ["0", "1", "2", "3", "4"]


@posix_only
class TestStream:
    @pytest.mark.asyncio
    async def test_filters_prompt_lines_only(self, laravel_project: Path, fake_php):
        fake_php(tinker_script(BANNER + ">>> 1 + 1\n= 2\n>>> exit\n"))
        service = TinkerService()

        lines = [line async for line in service.stream(str(laravel_project), "1 + 1")]

        assert lines == [BANNER.strip(), "= 2"]
        assert (laravel_project / "stdin.txt").read_text() == "1 + 1\nexit\n"

    @pytest.mark.asyncio
    async def test_run_streaming_joins(self, laravel_project: Path, fake_php):
        fake_php(tinker_script(">>> 1\n= 1\n\n"))
        service = TinkerService()

        assert await service.run_streaming(str(laravel_project), "1") == "= 1"

    @pytest.mark.parametrize("size", [100_000, 3 * STREAM_LIMIT])
    @pytest.mark.asyncio
    async def test_long_line(self, laravel_project: Path, fake_php, size):
        fake_php(
            "import sys\n"
            "sys.stdin.read()\n"
            f"sys.stdout.write('= ' + 'x' * {size} + '\\n')\n"
            "sys.stdout.write('= 2\\n')\n"
        )
        service = TinkerService()

        lines = [line async for line in service.stream(str(laravel_project), "str_repeat('x', 1)")]

        assert lines == ["= " + "x" * size, "= 2"]

    @pytest.mark.asyncio
    async def test_invalid_project(self, tmp_path: Path):
        service = TinkerService()

        lines = [line async for line in service.stream(str(tmp_path), "1")]

        assert lines == [INVALID_PROJECT_MESSAGE]

    @pytest.mark.asyncio
    async def test_timeout(self, laravel_project: Path, fake_php):
        fake_php("import time\nprint('working', flush=True)\ntime.sleep(30)\n")
        service = TinkerService(config=TinkerConfig(timeout_seconds=0.5))

        lines = [line async for line in service.stream(str(laravel_project), "1")]

        assert lines == ["working", "Error: Execution timed out (0.5s limit)"]
