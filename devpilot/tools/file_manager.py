"""FileManager tool: workspace file create/read/exists"""

import logging
from pathlib import Path

from ..editor import EditorBridge, HeadlessEditor
from ..errors import FileSystemError
from .base import BaseTool, resolve_workspace_path

logger = logging.getLogger(__name__)


class FileManager(BaseTool):
    name = "FileManager"
    description = "Create, read and check files relative to the workspace root"
    operations = {
        "createFile": "create_file",
        "readFile": "read_file",
        "fileExists": "file_exists",
    }

    def __init__(self, workspace_root: str | Path, editor: EditorBridge | None = None):
        self.workspace_root = Path(workspace_root)
        self.editor = editor or HeadlessEditor()

    async def create_file(self, path: str, content: str) -> bool:
        """New files go through the editor so it can open and track them"""
        target = resolve_workspace_path(self.workspace_root, path)
        await self.editor.create_file(str(target), content)
        logger.info(f"Created {target}")
        return True

    async def read_file(self, path: str) -> str:
        target = resolve_workspace_path(self.workspace_root, path)
        return target.read_text(encoding="utf-8")

    async def file_exists(self, path: str) -> bool:
        try:
            target = resolve_workspace_path(self.workspace_root, path)
        except FileSystemError:
            return False
        return target.exists()
