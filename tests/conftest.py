"""
Shared fixtures: an offline settings object (hash embeddings, no retries)
and a small workspace on disk
"""

import os

import pytest

from devpilot.config import (
    AgentSettings,
    EmbeddingSettings,
    IndexSettings,
    LLMSettings,
    Settings,
    TerminalSettings,
    get_settings,
)
from devpilot.editor import HeadlessEditor
from devpilot.errors import ErrorReporter


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Keep the developer's environment and .env out of the tests"""
    for prefix in ("LLM_", "EMBEDDING_", "INDEX_", "AGENT_", "TERMINAL_"):
        for name in list(os.environ):
            if name.startswith(prefix):
                monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings():
    """Offline settings"""
    return Settings(
        llm=LLMSettings(provider="ollama", model="llama3.2", max_retries=0, retry_delay=0),
        embedding=EmbeddingSettings(provider="hash"),
        index=IndexSettings(analyze_summary=True),
        agent=AgentSettings(),
        terminal=TerminalSettings(shell="/bin/sh", command_timeout=5),
    )


@pytest.fixture
def editor():
    return HeadlessEditor()


@pytest.fixture
def reporter(editor):
    return ErrorReporter(editor)


@pytest.fixture
def workspace(tmp_path):
    """Small project: two sources, a README and an ignored dependency folder"""
    root = tmp_path / "project"
    (root / "src").mkdir(parents=True)
    (root / "src" / "app.py").write_text(
        "import os\n\n\ndef main():\n    print(os.getcwd())\n", encoding="utf-8"
    )
    (root / "src" / "util.js").write_text(
        "export function add(a, b) {\n  return a + b;\n}\n", encoding="utf-8"
    )
    (root / "README.md").write_text("# Demo\n\nA small demo project.\n", encoding="utf-8")
    (root / "node_modules" / "lib").mkdir(parents=True)
    (root / "node_modules" / "lib" / "index.js").write_text("module.exports = {};\n", encoding="utf-8")
    return root
