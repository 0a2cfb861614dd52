"""
DevPilot tools
Operations the model can request: files, edits, terminal, web
"""

from .base import BaseTool, resolve_workspace_path
from .dispatcher import ToolDispatcher
from .file_editor import FileEditor
from .file_manager import FileManager
from .terminal import TerminalClient
from .web_scraper import WebScraper, extract_text

__all__ = [
    "BaseTool",
    "FileEditor",
    "FileManager",
    "TerminalClient",
    "ToolDispatcher",
    "WebScraper",
    "extract_text",
    "resolve_workspace_path",
]
