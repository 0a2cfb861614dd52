"""
LLM gateway

Turns (request, context bundle, history) into one provider call and decodes
the reply with the structured response protocol. generate_response() is a
recover-and-report boundary: it always returns a StructuredResponse.
"""

import asyncio
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from ..config import LLMSettings, get_llm_settings
from ..context.summary import SUMMARY_MARKER
from ..errors import ErrorReporter, ServiceUnreachableError
from .protocol import END_MARKERS, START_MARKER, StructuredResponse, parse_response
from .providers import BaseLLMProvider, Completion, LLMConfig, get_llm_provider

if TYPE_CHECKING:
    from ..agent import ConversationTurn

logger = logging.getLogger(__name__)

FAILURE_NARRATIVE = "Failed to generate response. Please check the error message and try again."

PREAMBLE = """You are an AI programming assistant working inside the user's editor.
You can read and change files in the workspace, run terminal commands and fetch web pages
by requesting tool actions. Tools you can use:

{catalogue}
"""

PROTOCOL = f"""Response format:
- Wrap your entire structured answer between the literal markers {START_MARKER} and {END_MARKERS[0]}.
- Between the markers put exactly one JSON object using strict double-quoted JSON.
- Do not use markdown code fences around the JSON.
- The object has these keys:
  "chat": a short explanation for the user,
  "actions": a list of {{"tool": "<ToolName>", "command": "<operation>", "params": [<positional arguments>]}},
  "questions": a list of {{"id": "...", "text": "...", "type": "yes_no|choice|text|confirmation", "options": [], "context": "...", "importance": "high|medium|low"}}.
- To change a file you have not seen yet, first request FileManager.readFile; its content will be sent back to you."""

QUESTION_GUIDANCE = """Guidelines for asking questions:
1. Do not ask clarifying questions unless a missing answer would make the result wrong.
2. Don't ask about personal preferences, minor implementation details, or anything that can be
   reasonably assumed from the codebase and common practice.
3. Only ask about critical business requirements, security requirements for sensitive data,
   specific integration requirements or breaking changes that need confirmation.
4. When you have no questions, return an empty "questions" list."""


def format_history(history: Sequence["ConversationTurn"], limit: int = 10) -> str:
    return "\n".join(f"{turn.role.upper()}: {turn.content}" for turn in list(history)[-limit:])


def construct_prompt(
    prompt: str,
    context: Sequence[str],
    history: Sequence["ConversationTurn"] = (),
    catalogue: str = "",
    history_limit: int = 10,
) -> str:
    """Assemble the full request text in its fixed section order"""
    summary_blocks = [c for c in context if c.startswith(SUMMARY_MARKER)]
    retrieved = [c for c in context if not c.startswith(SUMMARY_MARKER)]

    sections = [
        PREAMBLE.format(catalogue=catalogue or "(no tools available)").rstrip(),
        PROTOCOL,
        QUESTION_GUIDANCE,
    ]
    if summary_blocks:
        sections.append("Codebase Information:\n" + summary_blocks[0])
    if retrieved:
        sections.append("Context:\n" + "\n\n".join(retrieved))
    if history:
        sections.append("Conversation History:\n" + format_history(history, history_limit))
    sections.append(f"User Request:\n{prompt}")

    return "\n\n".join(sections) + "\n"


class LLMGateway:
    """
    Single capability over the configured provider.

    The provider is built lazily so a missing credential surfaces as a
    reported configuration failure on first use instead of at startup.
    """

    def __init__(
        self,
        settings: LLMSettings | None = None,
        reporter: ErrorReporter | None = None,
        catalogue: str = "",
        history_limit: int = 10,
    ):
        self.settings = settings or get_llm_settings()
        self.config = LLMConfig.from_settings(self.settings)
        self.reporter = reporter or ErrorReporter()
        self.catalogue = catalogue
        self.history_limit = history_limit
        self._provider: BaseLLMProvider | None = None

    @property
    def provider(self) -> BaseLLMProvider:
        if self._provider is None:
            self._provider = get_llm_provider(self.config)
        return self._provider

    async def generate_response(
        self,
        prompt: str,
        context: Sequence[str] = (),
        history: Sequence["ConversationTurn"] = (),
    ) -> StructuredResponse:
        """Ask the model and decode its reply; failures become a safe default"""
        logger.info(
            f"Generating response with {self.config.provider.value}/{self.config.model} "
            f"(prompt {len(prompt)} chars, {len(context)} context entries)"
        )

        async def operation() -> StructuredResponse:
            full_prompt = construct_prompt(
                prompt, context, history, self.catalogue, self.history_limit
            )
            completion = await self._call_with_retry(full_prompt)
            return parse_response(completion.content)

        return await self.reporter.run(
            operation,
            "LLMGateway.generate_response",
            fallback=lambda: StructuredResponse.narrative_only(FAILURE_NARRATIVE),
        )

    async def complete(self, prompt: str, system: str | None = None) -> str:
        """Raw completion text; provider errors propagate"""
        completion = await self._call_with_retry(prompt, system)
        return completion.content

    async def _call_with_retry(self, prompt: str, system: str | None = None) -> Completion:
        for attempt in range(self.settings.max_retries):
            try:
                return await self.provider.generate(prompt, system=system)
            except ServiceUnreachableError as e:
                delay = self.settings.retry_delay * (2**attempt)
                logger.warning(
                    f"{self.provider.label} attempt {attempt + 1} failed: {e}; retrying in {delay:.1f}s"
                )
                await asyncio.sleep(delay)

        return await self.provider.generate(prompt, system=system)
