"""
Tool dispatcher

Registry of tools by name. Actions are validated against the registry and
invoked positionally with their params. The dispatcher does not retry and
does not report: failures propagate to the caller as ToolError subclasses
that name the originating tool and command.
"""

import inspect
import logging
from collections.abc import Callable, Iterable
from typing import Any

from ..errors import (
    ConfigurationError,
    DevPilotError,
    ToolExecutionError,
    UnknownCommandError,
    UnknownToolError,
    classify,
)
from ..llm.protocol import ToolAction
from .base import BaseTool

logger = logging.getLogger(__name__)


def _as_action(action: ToolAction | dict[str, Any]) -> ToolAction:
    if isinstance(action, ToolAction):
        return action
    return ToolAction(
        tool=str(action.get("tool", "")),
        command=str(action.get("command", "")),
        params=list(action.get("params") or []),
    )


class ToolDispatcher:
    """
    Usage:
        dispatcher = ToolDispatcher([FileManager(root), WebScraper()])
        content = await dispatcher.execute_action(
            {"tool": "FileManager", "command": "readFile", "params": ["README.md"]}
        )
    """

    def __init__(self, tools: Iterable[BaseTool] = ()):
        self._tools: dict[str, BaseTool] = {}
        for tool in tools:
            self.register(tool)

    def register(self, tool: BaseTool) -> None:
        """Register a tool; its operation table must be fully implemented"""
        missing = tool.missing_operations()
        if missing:
            raise ConfigurationError(
                f"Tool {tool.name} declares operations it does not implement: {', '.join(missing)}"
            )
        if tool.name in self._tools:
            logger.warning(f"Replacing registered tool {tool.name}")
        self._tools[tool.name] = tool
        logger.debug(f"Tool registered: {tool.name} ({', '.join(tool.operations)})")

    def get(self, name: str) -> BaseTool | None:
        return self._tools.get(name)

    def list(self) -> list[str]:
        return list(self._tools.keys())

    def catalogue(self) -> str:
        """Tool catalogue text for the prompt"""
        return "\n".join(tool.describe() for tool in self._tools.values())

    def validate(self, action: ToolAction | dict[str, Any]) -> Callable:
        """Check an action against the registry and return the bound operation"""
        action = _as_action(action)
        tool = self._tools.get(action.tool)
        if tool is None:
            raise UnknownToolError(
                f"Tool {action.tool} not found. Available tools: {', '.join(self._tools)}",
                tool=action.tool,
                command=action.command,
            )

        method = tool.resolve(action.command)
        if method is None:
            raise UnknownCommandError(
                f"Command {action.command} not found for tool {action.tool}",
                tool=action.tool,
                command=action.command,
            )
        return method

    async def execute_action(self, action: ToolAction | dict[str, Any]) -> Any:
        action = _as_action(action)
        logger.info(f"Executing action: {action.tool}.{action.command} {action.params!r:.200}")

        method = self.validate(action)
        try:
            result = method(*action.params)
            if inspect.isawaitable(result):
                result = await result
        except DevPilotError as e:
            raise ToolExecutionError(
                f"Error executing {action.tool}.{action.command}: {e}",
                tool=action.tool,
                command=action.command,
                cause=e,
                kind=e.kind,
            ) from e
        except Exception as e:
            raise ToolExecutionError(
                f"Error executing {action.tool}.{action.command}: {e}",
                tool=action.tool,
                command=action.command,
                cause=e,
                kind=classify(e),
            ) from e

        logger.debug(f"Action result: {result!r:.200}")
        return result
