"""
Project summary

A cached, LLM-produced description of the workspace (type, languages,
frameworks, architecture). Produced once per codebase initialization and
reused until the next one.
"""

import json
import logging
import re
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..errors import AnalysisError, DevPilotError

if TYPE_CHECKING:
    from ..llm.gateway import LLMGateway

logger = logging.getLogger(__name__)

SUMMARY_MARKER = "Project Context:"

_JSON_BLOCK = re.compile(r"```json\s*\n(.*?)\n\s*```", re.DOTALL)


class Architecture(BaseModel):
    type: str = "unknown"
    components: list[str] = Field(default_factory=list)


class ProjectSummary(BaseModel):
    """Flat JSON summary persisted as summary.json"""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    project_type: str = Field(default="unknown", alias="projectType")
    main_languages: list[str] = Field(default_factory=list, alias="mainLanguages")
    frameworks: list[str] = Field(default_factory=list)
    architecture: Architecture = Field(default_factory=Architecture)
    key_features: list[str] = Field(default_factory=list, alias="keyFeatures")
    dependencies: list[str] = Field(default_factory=list)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)


def format_summary(summary: ProjectSummary) -> str:
    """Render the summary block placed at the head of the context bundle"""
    return f"{SUMMARY_MARKER}\n{summary.to_json()}"


def load_summary(path: str | Path) -> ProjectSummary | None:
    """Read a summary file; None when missing or unreadable"""
    try:
        return ProjectSummary.model_validate_json(Path(path).read_text(encoding="utf-8"))
    except FileNotFoundError:
        return None
    except (OSError, ValidationError, ValueError) as e:
        logger.warning(f"Failed to load project summary {path}: {e}")
        return None


def save_summary(summary: ProjectSummary, path: str | Path) -> None:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(summary.to_json(), encoding="utf-8")


def parse_summary(text: str) -> ProjectSummary:
    """Whole reply as JSON, else a ```json block, else the default summary"""
    candidates = [text.strip()]
    match = _JSON_BLOCK.search(text)
    if match:
        candidates.append(match.group(1))

    for candidate in candidates:
        try:
            data = json.loads(candidate)
        except ValueError:
            continue
        if isinstance(data, dict):
            try:
                return ProjectSummary.model_validate(data)
            except ValidationError as e:
                logger.warning(f"Summary JSON did not match the expected shape: {e}")

    logger.warning("Failed to parse codebase analysis response, using default structure")
    return ProjectSummary()


ANALYSIS_PROMPT = """Analyze the following codebase structure and provide a summary in JSON format:

Project Files:
{files}

The response should be a valid JSON object with the following structure:
{{
    "projectType": "string",
    "mainLanguages": ["string"],
    "frameworks": ["string"],
    "architecture": {{
        "type": "string",
        "components": ["string"]
    }},
    "keyFeatures": ["string"],
    "dependencies": ["string"]
}}
Respond with the JSON object only."""


class ProjectAnalyzer:
    """Asks the model to summarise a file list"""

    def __init__(self, gateway: "LLMGateway", max_files: int = 500):
        self.gateway = gateway
        self.max_files = max_files

    async def analyze(self, file_list: list[str], summary_path: str | Path | None = None) -> ProjectSummary:
        files = file_list[: self.max_files]
        prompt = ANALYSIS_PROMPT.format(files="\n".join(f"- {f}" for f in files))

        try:
            text = await self.gateway.complete(prompt)
        except DevPilotError as e:
            raise AnalysisError("Failed to analyze codebase structure", cause=e) from e

        summary = parse_summary(text)
        if summary_path is not None:
            try:
                save_summary(summary, summary_path)
            except OSError as e:
                raise AnalysisError(f"Failed to save project summary to {summary_path}", cause=e) from e
        return summary
