"""FileEditor tool: document edits and diff views through the editor"""

from pathlib import Path

from ..editor import EditorBridge
from .base import BaseTool, resolve_workspace_path


class FileEditor(BaseTool):
    name = "FileEditor"
    description = "Replace the full content of an existing file, or show a diff of proposed changes"
    operations = {
        "editFile": "edit_file",
        "showDiff": "show_diff",
    }

    def __init__(self, editor: EditorBridge, workspace_root: str | Path):
        self.editor = editor
        self.workspace_root = Path(workspace_root)

    async def edit_file(self, path: str, content: str) -> bool:
        target = resolve_workspace_path(self.workspace_root, path)
        await self.editor.replace_document(str(target), content)
        return True

    async def show_diff(self, path: str, original: str, modified: str) -> bool:
        target = resolve_workspace_path(self.workspace_root, path)
        await self.editor.open_diff(str(target), original, modified)
        return True
