"""
Unit tests for the terminal session
"""

import asyncio
import sys
from pathlib import Path

import pytest
import pytest_asyncio

from devpilot.config import TerminalSettings
from devpilot.errors import ErrorKind, TerminalError
from devpilot.terminal import TerminalCommandManager

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="needs a POSIX shell")


@pytest_asyncio.fixture
async def manager(tmp_path):
    m = TerminalCommandManager(TerminalSettings(shell="/bin/sh", command_timeout=5), cwd=tmp_path)
    yield m
    await m.close()


class TestFormatCommand:
    def test_unix_unchanged(self):
        manager = TerminalCommandManager(platform="linux")
        assert manager.format_command("sudo export A=b/c") == "sudo export A=b/c"

    def test_windows_adaptation(self):
        manager = TerminalCommandManager(platform="win32")

        assert manager.format_command("python src/app.py") == "python src\\app.py"
        assert manager.format_command("sudo npm install") == "npm install"
        assert manager.format_command("export NODE_ENV=production") == "set NODE_ENV=production"

    def test_platform_info(self):
        info = TerminalCommandManager(TerminalSettings(shell="/bin/zsh"), platform="darwin").platform_info()

        assert info == {
            "platform": "darwin",
            "isWindows": False,
            "isMac": True,
            "isLinux": False,
            "shell": "/bin/zsh",
        }


class TestExecuteCommand:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("command", ["", "   ", None])
    async def test_empty_command_rejected(self, command):
        manager = TerminalCommandManager(TerminalSettings(shell="/bin/sh"))

        with pytest.raises(TerminalError, match="Cannot execute empty command") as exc_info:
            await manager.execute_command(command)

        assert exc_info.value.kind is ErrorKind.TERMINAL
        assert manager.is_executing is False

    @pytest.mark.asyncio
    async def test_busy_rejected(self):
        manager = TerminalCommandManager(TerminalSettings(shell="/bin/sh"))
        manager.is_executing = True

        with pytest.raises(TerminalError, match="already being executed"):
            await manager.execute_command("echo hi")

    @pytest.mark.asyncio
    async def test_shell_creation_failure(self):
        manager = TerminalCommandManager(TerminalSettings(shell="/nonexistent/shell"))

        with pytest.raises(TerminalError, match="Failed to create terminal"):
            await manager.execute_command("echo hi")

        assert manager.is_executing is False

    @posix_only
    @pytest.mark.asyncio
    async def test_output_and_exit_code(self, manager):
        result = await manager.execute_command("echo hello")

        assert result == {"output": "hello\n", "exit_code": 0}

    @posix_only
    @pytest.mark.asyncio
    async def test_session_is_persistent(self, manager, tmp_path):
        (tmp_path / "sub").mkdir()

        await manager.execute_command("cd sub && export GREETING=hi")
        result = await manager.execute_command('pwd; echo "$GREETING"')

        cwd, greeting = result["output"].splitlines()
        assert Path(cwd).resolve() == (tmp_path / "sub").resolve()
        assert greeting == "hi"

    @posix_only
    @pytest.mark.asyncio
    async def test_nonzero_exit_and_stderr(self, manager):
        result = await manager.execute_command("echo oops >&2; (exit 3)")

        assert result["output"] == "oops\n"
        assert result["exit_code"] == 3

    @posix_only
    @pytest.mark.asyncio
    async def test_timeout_resets_shell(self, tmp_path):
        manager = TerminalCommandManager(TerminalSettings(shell="/bin/sh", command_timeout=0.3), cwd=tmp_path)

        with pytest.raises(TerminalError, match="timed out"):
            await manager.execute_command("sleep 5")

        assert manager.is_executing is False
        result = await manager.execute_command("echo again")
        assert result["output"] == "again\n"
        await manager.close()

    @posix_only
    @pytest.mark.asyncio
    async def test_concurrent_command_rejected(self, manager):
        first = asyncio.create_task(manager.execute_command("sleep 0.3; echo done"))
        await asyncio.sleep(0.05)

        with pytest.raises(TerminalError, match="already being executed"):
            await manager.execute_command("echo second")

        assert (await first)["output"] == "done\n"
