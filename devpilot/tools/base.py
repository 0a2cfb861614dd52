"""
Tool base class

A tool is a closed set of operations. Each tool declares an operation table
mapping the wire name the model emits (camelCase) to the method that
implements it; the dispatcher checks the table when the tool is registered.
"""

import inspect
from abc import ABC
from collections.abc import Callable
from pathlib import Path

from ..errors import FileSystemError


class BaseTool(ABC):
    """
    Base class for tools.

    Usage:
        class Clock(BaseTool):
            name = "Clock"
            description = "Tells the time"
            operations = {"now": "now"}

            async def now(self):
                return time.time()
    """

    name: str = "base"
    description: str = ""
    operations: dict[str, str] = {}

    def resolve(self, command: str) -> Callable | None:
        """Bound method for a wire command, None if the tool has no such command"""
        method_name = self.operations.get(command)
        if method_name is None:
            return None
        method = getattr(self, method_name, None)
        return method if callable(method) else None

    def missing_operations(self) -> list[str]:
        return [command for command in self.operations if self.resolve(command) is None]

    def describe(self) -> str:
        lines = [f"- {self.name}: {self.description}" if self.description else f"- {self.name}"]
        for command in self.operations:
            method = self.resolve(command)
            params = ", ".join(inspect.signature(method).parameters) if method else ""
            lines.append(f"    {command}({params})")
        return "\n".join(lines)


def resolve_workspace_path(root: str | Path, path: str) -> Path:
    """Resolve path against the workspace root; paths outside it are rejected"""
    if not isinstance(path, str) or not path.strip():
        raise FileSystemError(f"Invalid path: {path!r}")

    base = Path(root).resolve()
    target = (base / path).resolve()
    if target != base and base not in target.parents:
        raise FileSystemError(f"Path is outside the workspace: {path}")
    return target
