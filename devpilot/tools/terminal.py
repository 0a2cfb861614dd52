"""TerminalClient tool"""

from typing import Any

from ..terminal import TerminalCommandManager
from .base import BaseTool


class TerminalClient(BaseTool):
    name = "TerminalClient"
    description = "Run a shell command in the workspace terminal and get its output"
    operations = {
        "executeCommand": "execute_command",
        "getPlatformInfo": "get_platform_info",
    }

    def __init__(self, manager: TerminalCommandManager):
        self.manager = manager

    async def execute_command(self, command: str) -> dict[str, Any]:
        return await self.manager.execute_command(command)

    def get_platform_info(self) -> dict[str, Any]:
        return self.manager.platform_info()
