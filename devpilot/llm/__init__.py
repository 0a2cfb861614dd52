"""
DevPilot LLM Module
Multi-provider gateway with a structured response protocol

Supported Providers:
- Ollama (local endpoint, default)
- OpenAI chat completions
- Anthropic Claude messages

Quick Start:
    from devpilot.llm import LLMGateway
    gateway = LLMGateway()
    response = await gateway.generate_response("Add a docstring", context, history)
"""

from .gateway import LLMGateway, construct_prompt
from .protocol import (
    END_MARKERS,
    START_MARKER,
    Question,
    StructuredResponse,
    ToolAction,
    parse_response,
)
from .providers import (
    BaseLLMProvider,
    ClaudeProvider,
    Completion,
    LLMConfig,
    LLMProvider,
    OllamaProvider,
    OpenAIProvider,
    get_llm_provider,
)

__all__ = [
    "END_MARKERS",
    "START_MARKER",
    "BaseLLMProvider",
    "ClaudeProvider",
    "Completion",
    "LLMConfig",
    "LLMGateway",
    "LLMProvider",
    "OllamaProvider",
    "OpenAIProvider",
    "Question",
    "StructuredResponse",
    "ToolAction",
    "construct_prompt",
    "get_llm_provider",
    "parse_response",
]
