"""
DevPilot Agent Loop

One turn: combined query -> context bundle -> model -> tool actions
-> (at most one follow-up call after a file read) -> history.

States:
    IDLE -> ASSEMBLING_CONTEXT -> AWAITING_MODEL -> DISPATCHING_ACTIONS
         -> [AWAITING_MODEL -> DISPATCHING_ACTIONS] -> UPDATING_HISTORY -> IDLE

Every turn ends in IDLE with a TurnResult. Failures are reported through
the ErrorReporter and degrade into the result's narrative.
"""

import json
import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from .context.assembler import ContextAssembler
from .editor import EditorState
from .errors import ErrorKind, ErrorReporter, classify, describe
from .llm.gateway import LLMGateway
from .llm.protocol import Question, StructuredResponse, ToolAction
from .tools.dispatcher import ToolDispatcher

logger = logging.getLogger(__name__)

FILE_READ_ACTION = ("FileManager", "readFile")
BUSY_NARRATIVE = "Another request is still being processed. Please wait for it to finish."


class AgentState(Enum):
    """Phase of the current turn"""

    IDLE = "idle"
    ASSEMBLING_CONTEXT = "assembling_context"
    AWAITING_MODEL = "awaiting_model"
    DISPATCHING_ACTIONS = "dispatching_actions"
    UPDATING_HISTORY = "updating_history"


# =============================================================================
# History
# =============================================================================


@dataclass
class ConversationTurn:
    """Single message in the conversation"""

    role: str  # user, assistant
    content: str
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())


class ConversationHistory:
    """Bounded history; the oldest turns are dropped first"""

    def __init__(self, limit: int = 10):
        self.limit = limit
        self._turns: list[ConversationTurn] = []

    def append(self, role: str, content: str) -> None:
        self._turns.append(ConversationTurn(role=role, content=content))
        if len(self._turns) > self.limit:
            del self._turns[: len(self._turns) - self.limit]

    @property
    def turns(self) -> list[ConversationTurn]:
        return list(self._turns)

    def clear(self) -> None:
        self._turns.clear()

    def __len__(self) -> int:
        return len(self._turns)

    def __iter__(self) -> Iterator[ConversationTurn]:
        return iter(list(self._turns))


# =============================================================================
# Results
# =============================================================================


@dataclass
class ActionResult:
    """Outcome of one dispatched action"""

    action: ToolAction
    success: bool
    result: Any = None
    error: str | None = None
    kind: ErrorKind | None = None

    @property
    def is_file_read(self) -> bool:
        return (self.action.tool, self.action.command) == FILE_READ_ACTION

    def to_dict(self) -> dict[str, Any]:
        return {
            "action": self.action.to_dict(),
            "success": self.success,
            "result": self.result,
            "error": self.error,
            "kind": self.kind.value if self.kind else None,
        }


@dataclass
class TurnResult:
    """What the caller gets back from one turn"""

    narrative: str
    actions: list[ActionResult] = field(default_factory=list)
    questions: list[Question] = field(default_factory=list)
    requires_user_input: bool = False
    follow_up: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "narrative": self.narrative,
            "actions": [a.to_dict() for a in self.actions],
            "questions": [q.__dict__.copy() for q in self.questions],
            "requiresUserInput": self.requires_user_input,
            "followUp": self.follow_up,
        }


def build_query(prompt: str, selection: str = "", file_text: str = "") -> str:
    """Retrieval query from the request and the editor state"""
    return f"{prompt}\n\nSelected Text:\n{selection}\n\nFile Content:\n{file_text}"


def with_answers(prompt: str, answers: dict[str, Any] | None) -> str:
    if not answers:
        return prompt
    return f"{prompt}\n\nUser Answers: {json.dumps(answers, indent=2)}"


def follow_up_prompt(request: str, reads: list[ActionResult]) -> str:
    parts = [request, ""]
    for read in reads:
        path = read.action.params[0] if read.action.params else "file"
        parts.append(f"Content of {path}:\n{read.result}\n")
    parts.append(
        "Using the file content above, propose the concrete changes. "
        "Use FileEditor.editFile with the complete new file content."
    )
    return "\n".join(parts)


# =============================================================================
# Agent Loop
# =============================================================================


class AgentLoop:
    """
    Orchestrates one turn at a time.

    Usage:
        loop = AgentLoop(assembler, gateway, dispatcher, reporter)
        result = await loop.process_prompt("Add type hints", EditorState(active_file_text=src))
        if result.requires_user_input:
            result = await loop.process_prompt("Add type hints", state, answers={"q1": True})
    """

    def __init__(
        self,
        assembler: ContextAssembler,
        gateway: LLMGateway,
        dispatcher: ToolDispatcher,
        reporter: ErrorReporter | None = None,
        history: ConversationHistory | None = None,
    ):
        self.assembler = assembler
        self.gateway = gateway
        self.dispatcher = dispatcher
        self.reporter = reporter or ErrorReporter()
        self.history = history if history is not None else ConversationHistory()
        self.state = AgentState.IDLE
        self._observers: list[Callable[[AgentState], None]] = []

    def register_observer(self, callback: Callable[[AgentState], None]) -> None:
        """Register callback for state transitions"""
        self._observers.append(callback)

    def _set_state(self, state: AgentState) -> None:
        self.state = state
        for callback in self._observers:
            try:
                callback(state)
            except Exception as e:
                logger.warning(f"State observer failed: {e}")

    async def process_prompt(
        self,
        prompt: str,
        editor_state: EditorState | None = None,
        answers: dict[str, Any] | None = None,
    ) -> TurnResult:
        """Run one turn; never raises"""
        if self.state is not AgentState.IDLE:
            logger.warning(f"Rejected request while {self.state.value}")
            return TurnResult(narrative=BUSY_NARRATIVE)

        editor_state = editor_state or EditorState()
        logger.info(
            f"Processing prompt ({len(prompt)} chars, selection={bool(editor_state.selection)}, "
            f"file={bool(editor_state.active_file_text)}, answers={bool(answers)})"
        )

        try:
            return await self._run_turn(prompt, editor_state, answers)
        except Exception as e:
            self.reporter.handle(e, "AgentLoop.process_prompt")
            return TurnResult(narrative=f"Error: {describe(e)}")
        finally:
            self._set_state(AgentState.IDLE)

    async def _run_turn(self, prompt: str, editor_state: EditorState, answers: dict[str, Any] | None) -> TurnResult:
        request = with_answers(prompt, answers)

        self._set_state(AgentState.ASSEMBLING_CONTEXT)
        query = build_query(request, editor_state.selection, editor_state.active_file_text)
        context = await self.assembler.get_relevant_context(query)

        self._set_state(AgentState.AWAITING_MODEL)
        response = await self.gateway.generate_response(request, context, self.history.turns)
        if response.requires_user_input:
            return self._ask(response)

        self._set_state(AgentState.DISPATCHING_ACTIONS)
        results, failure = await self._dispatch(response.actions)
        narrative = response.narrative
        follow_up = False

        reads = [r for r in results if r.success and r.is_file_read]
        if reads and failure is None:
            follow_up = True
            self._set_state(AgentState.AWAITING_MODEL)
            second = await self.gateway.generate_response(
                follow_up_prompt(request, reads), context, self.history.turns
            )
            if second.requires_user_input:
                return self._ask(second, results)

            narrative = second.narrative or narrative
            self._set_state(AgentState.DISPATCHING_ACTIONS)
            more, failure = await self._dispatch(second.actions)
            results.extend(more)

        if failure is not None:
            narrative = f"{narrative}\n\nError: {failure}".strip()

        self._set_state(AgentState.UPDATING_HISTORY)
        self.history.append("user", request)
        self.history.append("assistant", narrative)

        return TurnResult(narrative=narrative, actions=results, follow_up=follow_up)

    def _ask(self, response: StructuredResponse, results: list[ActionResult] | None = None) -> TurnResult:
        logger.info(f"Model asked {len(response.questions)} question(s), waiting for answers")
        return TurnResult(
            narrative=response.narrative,
            actions=results or [],
            questions=response.questions,
            requires_user_input=True,
        )

    async def _dispatch(self, actions: list[ToolAction]) -> tuple[list[ActionResult], str | None]:
        """Run actions in order; the first failure stops the rest"""
        results: list[ActionResult] = []
        for action in actions:
            try:
                value = await self.dispatcher.execute_action(action)
            except Exception as e:
                self.reporter.handle(e, f"{action.tool}.{action.command}")
                message = describe(e)
                results.append(ActionResult(action=action, success=False, error=message, kind=classify(e)))
                skipped = len(actions) - len(results)
                if skipped:
                    logger.warning(f"Skipping {skipped} remaining action(s) after failure")
                return results, message
            results.append(ActionResult(action=action, success=True, result=value))
        return results, None
