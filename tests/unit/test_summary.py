"""
Unit tests for project summary analysis
"""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from devpilot.context.summary import (
    SUMMARY_MARKER,
    ProjectAnalyzer,
    ProjectSummary,
    format_summary,
    load_summary,
    parse_summary,
    save_summary,
)
from devpilot.errors import AnalysisError, ErrorKind, ServiceUnreachableError

SUMMARY_JSON = {
    "projectType": "web application",
    "mainLanguages": ["python", "javascript"],
    "frameworks": ["fastapi"],
    "architecture": {"type": "layered", "components": ["api", "db"]},
    "keyFeatures": ["auth"],
    "dependencies": ["httpx"],
}


class TestParseSummary:
    def test_whole_reply_json(self):
        summary = parse_summary(json.dumps(SUMMARY_JSON))

        assert summary.project_type == "web application"
        assert summary.architecture.components == ["api", "db"]

    def test_fenced_json_block(self):
        text = "Here is the analysis:\n```json\n" + json.dumps(SUMMARY_JSON, indent=2) + "\n```\nHope it helps."
        assert parse_summary(text).main_languages == ["python", "javascript"]

    def test_unparseable_falls_back_to_default(self):
        summary = parse_summary("I could not analyze this project.")

        assert summary == ProjectSummary()
        assert summary.project_type == "unknown"
        assert summary.architecture.type == "unknown"

    def test_partial_json_keeps_defaults(self):
        summary = parse_summary('{"projectType": "cli", "unexpected": 1}')

        assert summary.project_type == "cli"
        assert summary.frameworks == []


class TestPersistence:
    def test_save_load_by_alias(self, tmp_path):
        path = tmp_path / "state" / "summary.json"
        save_summary(ProjectSummary.model_validate(SUMMARY_JSON), path)

        assert json.loads(path.read_text()) == SUMMARY_JSON
        assert load_summary(path) == ProjectSummary.model_validate(SUMMARY_JSON)

    def test_load_missing_or_corrupt(self, tmp_path):
        assert load_summary(tmp_path / "missing.json") is None

        corrupt = tmp_path / "summary.json"
        corrupt.write_text("{not json")
        assert load_summary(corrupt) is None

    def test_format_summary(self):
        block = format_summary(ProjectSummary(project_type="cli"))

        assert block.startswith(f"{SUMMARY_MARKER}\n")
        assert json.loads(block[len(SUMMARY_MARKER) + 1 :])["projectType"] == "cli"


class TestProjectAnalyzer:
    @pytest.mark.asyncio
    async def test_analyze_writes_summary(self, tmp_path):
        gateway = MagicMock()
        gateway.complete = AsyncMock(return_value=json.dumps(SUMMARY_JSON))
        path = tmp_path / "summary.json"

        summary = await ProjectAnalyzer(gateway).analyze(["src/app.py", "README.md"], path)

        assert summary.project_type == "web application"
        assert load_summary(path) == summary
        prompt = gateway.complete.call_args.args[0]
        assert "- src/app.py\n- README.md" in prompt

    @pytest.mark.asyncio
    async def test_file_list_capped(self):
        gateway = MagicMock()
        gateway.complete = AsyncMock(return_value="{}")

        await ProjectAnalyzer(gateway, max_files=2).analyze(["a.py", "b.py", "c.py"])

        prompt = gateway.complete.call_args.args[0]
        assert "- b.py" in prompt
        assert "- c.py" not in prompt

    @pytest.mark.asyncio
    async def test_provider_failure_is_analysis_error(self):
        gateway = MagicMock()
        gateway.complete = AsyncMock(side_effect=ServiceUnreachableError("down"))

        with pytest.raises(AnalysisError) as exc_info:
            await ProjectAnalyzer(gateway).analyze(["a.py"])

        assert exc_info.value.kind is ErrorKind.ANALYSIS
        assert isinstance(exc_info.value.cause, ServiceUnreachableError)
