"""
Terminal session

One persistent shell per session. Commands are adapted to the platform,
written to the shell's stdin and followed by an echo of a unique sentinel
so the output of each command can be collected with its exit code.
"""

import asyncio
import logging
import os
import re
import sys
import uuid
from pathlib import Path
from typing import Any

from .config import TerminalSettings
from .errors import TerminalError

logger = logging.getLogger(__name__)


class TerminalCommandManager:
    """
    Runs one command at a time in a long-lived shell.

    A command that overruns the timeout kills the shell; the next command
    starts a fresh one.
    """

    def __init__(
        self,
        settings: TerminalSettings | None = None,
        cwd: str | Path | None = None,
        platform: str | None = None,
    ):
        self.settings = settings or TerminalSettings()
        self.cwd = str(cwd) if cwd else None
        self.platform = platform or sys.platform
        self.shell = self.settings.shell or self._default_shell()
        self.is_executing = False
        self._process: asyncio.subprocess.Process | None = None

    @property
    def is_windows(self) -> bool:
        return self.platform == "win32"

    def _default_shell(self) -> str:
        if self.is_windows:
            return os.environ.get("COMSPEC", "cmd.exe")
        return os.environ.get("SHELL", "/bin/bash")

    def format_command(self, command: str) -> str:
        """Adapt command text to the platform shell"""
        if not self.is_windows:
            return command
        formatted = command.replace("/", "\\")
        formatted = re.sub(r"^sudo\s+", "", formatted, flags=re.IGNORECASE)
        formatted = re.sub(r"export ([^=\s]+)=(.+)", r"set \1=\2", formatted)
        return formatted

    def platform_info(self) -> dict[str, Any]:
        return {
            "platform": self.platform,
            "isWindows": self.is_windows,
            "isMac": self.platform == "darwin",
            "isLinux": self.platform.startswith("linux"),
            "shell": self.shell,
        }

    async def _get_process(self) -> asyncio.subprocess.Process:
        if self._process is None or self._process.returncode is not None:
            try:
                self._process = await asyncio.create_subprocess_exec(
                    self.shell,
                    stdin=asyncio.subprocess.PIPE,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.STDOUT,
                    cwd=self.cwd,
                )
            except OSError as e:
                raise TerminalError("Failed to create terminal", cause=e) from e
            logger.info(f"Started shell {self.shell} (pid {self._process.pid})")
        return self._process

    async def execute_command(self, command: str) -> dict[str, Any]:
        """Run command in the shell; returns {"output", "exit_code"}"""
        if self.is_executing:
            raise TerminalError("A command is already being executed. Please wait.")
        if not command or not command.strip():
            raise TerminalError("Cannot execute empty command")

        self.is_executing = True
        try:
            process = await self._get_process()
            formatted = self.format_command(command)
            sentinel = f"__DEVPILOT_DONE_{uuid.uuid4().hex}__"
            status = "%ERRORLEVEL%" if self.is_windows else "$?"
            logger.info(f"Executing command on {self.platform}: {formatted}")

            process.stdin.write(f"{formatted}\necho {sentinel} {status}\n".encode())
            await process.stdin.drain()

            output, exit_code = await asyncio.wait_for(
                self._read_until(process, sentinel), timeout=self.settings.command_timeout
            )
        except asyncio.TimeoutError as e:
            await self.close()
            raise TerminalError(
                f"Command timed out after {self.settings.command_timeout:.0f}s: {command}", cause=e
            ) from e
        except (BrokenPipeError, ConnectionResetError) as e:
            self._process = None
            raise TerminalError("Terminal session ended unexpectedly", cause=e) from e
        finally:
            self.is_executing = False

        return {"output": output, "exit_code": exit_code}

    async def _read_until(self, process: asyncio.subprocess.Process, sentinel: str) -> tuple[str, int | None]:
        lines: list[str] = []
        while True:
            raw = await process.stdout.readline()
            if not raw:
                # Shell exited (e.g. the command was `exit`)
                await process.wait()
                return "".join(lines), process.returncode

            line = raw.decode("utf-8", errors="replace")
            if sentinel in line:
                if line.startswith(sentinel):
                    code = line[len(sentinel):].strip()
                    return "".join(lines), int(code) if code.lstrip("-").isdigit() else None
                # cmd.exe echoes the command line itself
                continue
            lines.append(line)

    async def close(self) -> None:
        if self._process is not None and self._process.returncode is None:
            self._process.kill()
            await self._process.wait()
        self._process = None
