"""
DevPilot - codebase-aware coding assistant agent
Indexes a workspace, retrieves context for a request, asks an LLM for a plan
and runs the tool actions it requests

Quick Start:
    from devpilot import Session
    session = Session("/path/to/project")
    await session.initialize_codebase()
    result = await session.ask("Add a docstring to main()")

LLM Providers:
    from devpilot.llm import LLMConfig, LLMProvider, get_llm_provider
    llm = get_llm_provider(LLMConfig(provider=LLMProvider.OLLAMA, model="llama3.2"))
"""

__version__ = "0.1.0"

from .agent import AgentLoop, AgentState, ConversationHistory, ConversationTurn, TurnResult
from .config import Settings, get_settings
from .editor import EditorBridge, EditorState, HeadlessEditor
from .errors import DevPilotError, ErrorKind, ErrorReporter
from .session import Session

__all__ = [
    "AgentLoop",
    "AgentState",
    "ConversationHistory",
    "ConversationTurn",
    "DevPilotError",
    "EditorBridge",
    "EditorState",
    "ErrorKind",
    "ErrorReporter",
    "HeadlessEditor",
    "Session",
    "Settings",
    "TurnResult",
    "get_settings",
]
