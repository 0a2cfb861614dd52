"""
Unit tests for the LLM gateway
Prompt construction, decoding, retry policy and the failure fallback
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from devpilot.agent import ConversationTurn
from devpilot.config import LLMSettings
from devpilot.context.summary import ProjectSummary, format_summary
from devpilot.errors import (
    AuthenticationError,
    ProviderResponseError,
    ServiceUnreachableError,
)
from devpilot.llm.gateway import FAILURE_NARRATIVE, LLMGateway, construct_prompt, format_history
from devpilot.llm.providers import Completion

STRUCTURED = (
    "Here you go\n<RESPONSE_START>\n"
    '{"chat": "Reading the file", "actions": [{"tool": "FileManager", "command": "readFile", "params": ["a.py"]}],'
    ' "questions": []}\n<RESPONSE_END>'
)


def completion(text: str) -> Completion:
    return Completion(content=text, model="llama3.2", provider="ollama")


@pytest.fixture
def fake_provider():
    provider = MagicMock()
    provider.label = "Ollama"
    provider.generate = AsyncMock(return_value=completion(STRUCTURED))
    return provider


@pytest.fixture
def gateway(reporter, fake_provider):
    gw = LLMGateway(LLMSettings(max_retries=2, retry_delay=0.5), reporter, catalogue="- FileManager")
    gw._provider = fake_provider
    return gw


# =============================================================================
# Prompt construction
# =============================================================================


class TestConstructPrompt:
    def test_section_order(self):
        summary = format_summary(ProjectSummary(project_type="cli"))
        history = [ConversationTurn("user", "earlier question"), ConversationTurn("assistant", "earlier answer")]

        prompt = construct_prompt(
            "Add logging", [summary, "chunk one", "chunk two"], history, catalogue="- FileManager: files"
        )

        positions = [
            prompt.index("- FileManager: files"),
            prompt.index("<RESPONSE_START>"),
            prompt.index("Guidelines for asking questions"),
            prompt.index("Codebase Information:"),
            prompt.index("Context:\nchunk one\n\nchunk two"),
            prompt.index("Conversation History:\nUSER: earlier question\nASSISTANT: earlier answer"),
            prompt.index("User Request:\nAdd logging"),
        ]
        assert positions == sorted(positions)
        assert '"projectType": "cli"' in prompt

    def test_empty_sections_omitted(self):
        prompt = construct_prompt("Hi", [])

        assert "Codebase Information:" not in prompt
        assert "Conversation History:" not in prompt
        assert "\nContext:\n" not in prompt
        assert prompt.rstrip().endswith("User Request:\nHi")

    def test_history_limited(self):
        history = [ConversationTurn("user", f"msg {i}") for i in range(15)]
        text = format_history(history, limit=10)

        assert "msg 4" not in text
        assert text.splitlines()[0] == "USER: msg 5"
        assert text.splitlines()[-1] == "USER: msg 14"


# =============================================================================
# generate_response
# =============================================================================


class TestGenerateResponse:
    @pytest.mark.asyncio
    async def test_decodes_structured_reply(self, gateway, fake_provider):
        response = await gateway.generate_response("Fix a.py", ["ctx"], [])

        assert response.narrative == "Reading the file"
        assert response.actions[0].command == "readFile"
        prompt = fake_provider.generate.call_args.args[0]
        assert "User Request:\nFix a.py" in prompt

    @pytest.mark.asyncio
    async def test_plain_reply_is_narrative(self, gateway, fake_provider):
        fake_provider.generate.return_value = completion("No markers here")

        response = await gateway.generate_response("Hi")

        assert response.narrative == "No markers here"
        assert response.actions == []

    @pytest.mark.asyncio
    async def test_failure_returns_safe_default(self, gateway, fake_provider, editor):
        fake_provider.generate.side_effect = AuthenticationError("Invalid Ollama API key.")

        response = await gateway.generate_response("Hi")

        assert response.narrative == FAILURE_NARRATIVE
        assert response.actions == []
        assert editor.messages == [("error", "API Error: Invalid Ollama API key.")]

    @pytest.mark.asyncio
    async def test_missing_key_is_configuration_error(self, reporter, editor):
        gateway = LLMGateway(LLMSettings(provider="openai"), reporter)

        response = await gateway.generate_response("Hi")

        assert response.narrative == FAILURE_NARRATIVE
        assert editor.messages[0][1].startswith("Configuration Error: API key is required")


class TestRetry:
    @pytest.mark.asyncio
    async def test_unreachable_retried_with_backoff(self, gateway, fake_provider):
        fake_provider.generate.side_effect = [
            ServiceUnreachableError("down"),
            ServiceUnreachableError("down"),
            completion("finally"),
        ]

        with patch("devpilot.llm.gateway.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            text = await gateway.complete("Hi")

        assert text == "finally"
        assert fake_provider.generate.call_count == 3
        assert [c.args[0] for c in mock_sleep.call_args_list] == [0.5, 1.0]

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self, gateway, fake_provider):
        fake_provider.generate.side_effect = ServiceUnreachableError("down")

        with patch("devpilot.llm.gateway.asyncio.sleep", new_callable=AsyncMock):
            with pytest.raises(ServiceUnreachableError):
                await gateway.complete("Hi")

        assert fake_provider.generate.call_count == 3

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [AuthenticationError("bad key"), ProviderResponseError("500")])
    async def test_other_errors_not_retried(self, gateway, fake_provider, error):
        fake_provider.generate.side_effect = error

        with patch("devpilot.llm.gateway.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            with pytest.raises(type(error)):
                await gateway.complete("Hi")

        assert fake_provider.generate.call_count == 1
        mock_sleep.assert_not_called()

    @pytest.mark.asyncio
    async def test_system_prompt_passed_through(self, gateway, fake_provider):
        fake_provider.generate.return_value = completion("{}")

        await gateway.complete("Analyze", system="You are an analyst")

        assert fake_provider.generate.call_args.kwargs["system"] == "You are an analyst"
