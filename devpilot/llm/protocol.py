"""
Structured response protocol

The model answers in free text with one JSON payload wrapped between
<RESPONSE_START> and <RESPONSE_END>. parse_response() is a pure function:
anything it cannot decode degrades to a narrative-only response.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

START_MARKER = "<RESPONSE_START>"
END_MARKERS = ("<RESPONSE_END>", "</RESPONSE_END>", "</RESPONSE_START>")

NO_QUESTION = "none"

_WHITESPACE = re.compile(r"\s+")


@dataclass
class ToolAction:
    """Tool invocation requested by the model"""

    tool: str
    command: str
    params: list[Any] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"tool": self.tool, "command": self.command, "params": list(self.params)}


@dataclass
class Question:
    """Clarifying question for the user"""

    id: str
    text: str
    type: str
    options: list[str] = field(default_factory=list)
    context: str = ""
    importance: str = "medium"


@dataclass
class StructuredResponse:
    """Decoded model reply"""

    narrative: str
    actions: list[ToolAction] = field(default_factory=list)
    questions: list[Question] = field(default_factory=list)
    requires_user_input: bool = False

    @classmethod
    def narrative_only(cls, text: str) -> "StructuredResponse":
        return cls(narrative=text)

    def to_dict(self) -> dict[str, Any]:
        return {
            "narrative": self.narrative,
            "actions": [a.to_dict() for a in self.actions],
            "questions": [q.__dict__.copy() for q in self.questions],
            "requiresUserInput": self.requires_user_input,
        }


def extract_payload(text: str) -> str | None:
    """Text between the first start marker and the earliest end marker"""
    start = text.find(START_MARKER)
    if start < 0:
        return None

    ends = [pos for pos in (text.find(marker) for marker in END_MARKERS) if pos >= 0]
    if not ends:
        return None

    end = min(ends)
    if end < start:
        return None

    return text[start + len(START_MARKER) : end]


def normalize_payload(payload: str) -> str | None:
    """Drop line breaks, collapse whitespace, require a braced object"""
    flat = _WHITESPACE.sub(" ", payload.replace("\r", " ").replace("\n", " ")).strip()
    if not (flat.startswith("{") and flat.endswith("}")):
        return None
    return flat


def _parse_action(raw: Any) -> ToolAction | None:
    if not isinstance(raw, dict):
        return None
    tool, command = raw.get("tool"), raw.get("command")
    if not isinstance(tool, str) or not isinstance(command, str) or not tool or not command:
        return None
    params = raw.get("params", [])
    if params is None:
        params = []
    if not isinstance(params, list):
        return None
    return ToolAction(tool=tool, command=command, params=params)


def _parse_question(raw: Any) -> Question | None:
    if not isinstance(raw, dict):
        return None
    values = {key: raw.get(key) for key in ("id", "text", "type")}
    if not all(isinstance(v, str) and v.strip() for v in values.values()):
        return None
    if values["type"].strip().lower() == NO_QUESTION:
        return None

    options = raw.get("options") or []
    return Question(
        id=values["id"],
        text=values["text"],
        type=values["type"],
        options=[str(o) for o in options] if isinstance(options, list) else [],
        context=str(raw.get("context") or ""),
        importance=str(raw.get("importance") or "medium"),
    )


def parse_response(text: str) -> StructuredResponse:
    """Decode a model reply; never raises"""
    if not isinstance(text, str):
        text = "" if text is None else str(text)

    payload = extract_payload(text)
    if payload is None:
        logger.debug("No response markers found, treating reply as narrative")
        return StructuredResponse.narrative_only(text)

    flat = normalize_payload(payload)
    if flat is None:
        logger.warning("Response payload is not a JSON object, treating reply as narrative")
        return StructuredResponse.narrative_only(text)

    try:
        data = json.loads(flat)
    except ValueError as e:
        logger.warning(f"Failed to parse response JSON: {e}")
        return StructuredResponse.narrative_only(text)

    if not isinstance(data, dict):
        return StructuredResponse.narrative_only(text)

    raw_actions = data.get("actions") if isinstance(data.get("actions"), list) else []
    raw_questions = data.get("questions") if isinstance(data.get("questions"), list) else []

    actions = [a for a in map(_parse_action, raw_actions) if a is not None]
    if len(actions) != len(raw_actions):
        logger.warning(f"Dropped {len(raw_actions) - len(actions)} malformed actions")

    questions = [q for q in map(_parse_question, raw_questions) if q is not None]

    chat = data.get("chat")
    return StructuredResponse(
        narrative=chat if isinstance(chat, str) else "",
        actions=actions,
        questions=questions,
        requires_user_input=len(questions) > 0,
    )
