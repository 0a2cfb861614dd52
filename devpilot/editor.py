"""
Editor collaborator interface

The agent never talks to an editor UI directly. It receives an EditorState
snapshot per turn and pushes notifications, diffs and document edits through
an EditorBridge. HeadlessEditor is the bridge used by the CLI and tests.
"""

import difflib
import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass
class EditorState:
    """What the editor knows about the current turn"""

    selection: str = ""
    active_file_text: str = ""
    active_file_path: str | None = None
    workspace_root: str | None = None


class EditorBridge(ABC):
    """Narrow interface to the editor UI"""

    @abstractmethod
    def report_progress(self, message: str) -> None:
        pass

    @abstractmethod
    def show_info(self, message: str) -> None:
        pass

    @abstractmethod
    def show_error(self, message: str, actions: Sequence[str] = ()) -> None:
        """Show an error with optional follow-up affordances (e.g. "Open Settings")"""
        pass

    @abstractmethod
    async def open_diff(self, path: str, original: str, modified: str) -> None:
        pass

    @abstractmethod
    async def replace_document(self, path: str, content: str) -> None:
        """Replace the full text of an existing document"""
        pass

    @abstractmethod
    async def create_file(self, path: str, content: str) -> None:
        pass


class HeadlessEditor(EditorBridge):
    """
    Editor bridge without a UI.

    Notifications go to the log (and are kept for inspection), edits are
    written straight to disk and diffs are rendered as unified diffs.
    """

    def __init__(self):
        self.messages: list[tuple[str, str]] = []
        self.diffs: list[str] = []

    def report_progress(self, message: str) -> None:
        logger.info(f"[progress] {message}")
        self.messages.append(("progress", message))

    def show_info(self, message: str) -> None:
        logger.info(message)
        self.messages.append(("info", message))

    def show_error(self, message: str, actions: Sequence[str] = ()) -> None:
        suffix = f" [{', '.join(actions)}]" if actions else ""
        logger.error(f"{message}{suffix}")
        self.messages.append(("error", message))

    async def open_diff(self, path: str, original: str, modified: str) -> None:
        diff = "".join(
            difflib.unified_diff(
                original.splitlines(keepends=True),
                modified.splitlines(keepends=True),
                fromfile=f"{path} (original)",
                tofile=f"{path} (modified)",
            )
        )
        self.diffs.append(diff)
        logger.info(f"Diff for {path}:\n{diff}")

    async def replace_document(self, path: str, content: str) -> None:
        target = Path(path)
        if not target.exists():
            raise FileNotFoundError(f"Document not found: {path}")
        target.write_text(content, encoding="utf-8")

    async def create_file(self, path: str, content: str) -> None:
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
