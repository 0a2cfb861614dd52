"""
Unit tests for the structured response protocol
"""

import json

import pytest

from devpilot.llm.protocol import (
    StructuredResponse,
    ToolAction,
    extract_payload,
    normalize_payload,
    parse_response,
)


def wrap(payload: str, end: str = "<RESPONSE_END>", prefix: str = "Sure.\n", suffix: str = "\nDone") -> str:
    return f"{prefix}<RESPONSE_START>{payload}{end}{suffix}"


class TestExtractPayload:
    @pytest.mark.parametrize("end", ["<RESPONSE_END>", "</RESPONSE_END>", "</RESPONSE_START>"])
    def test_end_marker_variants(self, end):
        assert extract_payload(wrap('{"chat": "x"}', end=end)) == '{"chat": "x"}'

    def test_earliest_end_marker_wins(self):
        text = '<RESPONSE_START>{"a": 1}</RESPONSE_END> trailing <RESPONSE_END>'
        assert extract_payload(text) == '{"a": 1}'

    def test_missing_markers(self):
        assert extract_payload("plain text") is None
        assert extract_payload("<RESPONSE_START> no end") is None
        assert extract_payload("no start <RESPONSE_END>") is None

    def test_end_before_start(self):
        assert extract_payload('<RESPONSE_END> <RESPONSE_START>{"a": 1}') is None


class TestNormalizePayload:
    def test_collapses_whitespace(self):
        assert normalize_payload('\n  {\n  "chat":   "hi"\r\n}\n') == '{ "chat": "hi" }'

    def test_requires_braced_object(self):
        assert normalize_payload('```json {"a": 1} ```') is None
        assert normalize_payload("[1, 2]") is None


class TestParseResponse:
    @pytest.mark.parametrize("text", ["", "Just an answer.", "Use {braces} freely", "<RESPONSE_START> only"])
    def test_no_markers_is_narrative_only(self, text):
        response = parse_response(text)

        assert response.narrative == text
        assert response.actions == []
        assert response.questions == []
        assert response.requires_user_input is False

    def test_minimal_payload(self):
        response = parse_response(wrap('{"chat":"hi","actions":[],"questions":[]}'))

        assert response.narrative == "hi"
        assert response.actions == []
        assert response.questions == []
        assert response.requires_user_input is False

    @pytest.mark.parametrize(
        "payload",
        ['{"chat": "hi", "actions": [}', "{'chat': 'single quotes'}", "{ not json at all }"],
    )
    def test_malformed_json_degrades(self, payload):
        text = wrap(payload)
        response = parse_response(text)

        assert response == StructuredResponse.narrative_only(text)

    def test_actions_decoded(self):
        payload = {
            "chat": "Creating the file",
            "actions": [
                {"tool": "FileManager", "command": "createFile", "params": ["a.py", "x = 1\n"]},
                {"tool": "TerminalClient", "command": "executeCommand"},
            ],
            "questions": [],
        }
        response = parse_response(wrap(json.dumps(payload, indent=2)))

        assert response.actions == [
            ToolAction("FileManager", "createFile", ["a.py", "x = 1\n"]),
            ToolAction("TerminalClient", "executeCommand", []),
        ]

    def test_escaped_newlines_survive_flattening(self):
        payload = '{\n "chat": "line one\\nline two",\n "actions": []\n}'
        response = parse_response(wrap(payload))

        assert response.narrative == "line one\nline two"

    def test_malformed_actions_dropped(self):
        payload = json.dumps(
            {
                "chat": "ok",
                "actions": [
                    {"tool": "FileManager"},
                    "readFile",
                    {"tool": "FileManager", "command": "readFile", "params": "a.py"},
                    {"tool": "FileManager", "command": "readFile", "params": ["a.py"]},
                ],
            }
        )
        response = parse_response(wrap(payload))

        assert response.actions == [ToolAction("FileManager", "readFile", ["a.py"])]

    def test_questions_filtered(self):
        payload = json.dumps(
            {
                "chat": "Need input",
                "actions": [],
                "questions": [
                    {"id": "q1", "text": "", "type": "text"},
                    {"id": "q2", "text": "Use PostgreSQL?", "type": "yes_no", "importance": "high"},
                ],
            }
        )
        response = parse_response(wrap(payload))

        assert [q.id for q in response.questions] == ["q2"]
        assert response.questions[0].importance == "high"
        assert response.requires_user_input is True

    def test_none_type_questions_filtered(self):
        payload = json.dumps(
            {"chat": "ok", "questions": [{"id": "q1", "text": "No questions", "type": "none"}]}
        )
        response = parse_response(wrap(payload))

        assert response.questions == []
        assert response.requires_user_input is False

    def test_missing_chat_is_empty_narrative(self):
        response = parse_response(wrap('{"actions": []}'))
        assert response.narrative == ""

    def test_non_string_input(self):
        assert parse_response(None).narrative == ""

    def test_to_dict(self):
        response = parse_response(
            wrap('{"chat": "hi", "actions": [{"tool": "T", "command": "c", "params": [1]}]}')
        )

        assert response.to_dict() == {
            "narrative": "hi",
            "actions": [{"tool": "T", "command": "c", "params": [1]}],
            "questions": [],
            "requiresUserInput": False,
        }
