"""
Unit tests for settings
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from devpilot.config import (
    EmbeddingSettings,
    IndexSettings,
    LLMSettings,
    Settings,
    get_agent_settings,
    get_embedding_settings,
    get_index_settings,
    get_llm_settings,
    get_settings,
)
from devpilot.context.embeddings import EmbeddingProvider
from devpilot.context.indexer import CodebaseIndexer
from devpilot.context.vector_store import VectorStore
from devpilot.llm.gateway import LLMGateway


class TestDefaults:
    def test_llm_defaults(self):
        settings = LLMSettings()

        assert settings.provider == "ollama"
        assert settings.model is None
        assert settings.endpoint == "http://localhost:11434"
        assert settings.temperature == 0.7
        assert settings.max_tokens == 2000
        assert settings.has_api_key is False

    def test_component_defaults(self):
        settings = Settings()

        assert settings.embedding.dimension == 384
        assert settings.embedding.model == "nomic-embed-text"
        assert settings.index.chunk_size == 1500
        assert settings.index.state_dir == ".devpilot"
        assert settings.agent.history_limit == 10
        assert settings.agent.context_results == 5

    def test_state_path(self):
        assert IndexSettings().state_path("/work/project") == Path("/work/project/.devpilot")


class TestEnvironment:
    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("LLM_PROVIDER", "  OpenAI ")
        monkeypatch.setenv("LLM_API_KEY", "sk-test")
        monkeypatch.setenv("EMBEDDING_PROVIDER", "hash")
        monkeypatch.setenv("AGENT_HISTORY_LIMIT", "4")

        settings = get_settings()

        assert settings.llm.provider == "openai"
        assert settings.llm.api_key.get_secret_value() == "sk-test"
        assert settings.llm.has_api_key is True
        assert settings.embedding.provider == "hash"
        assert get_agent_settings().history_limit == 4
        assert get_llm_settings() is settings.llm

    def test_dotenv_file(self, tmp_path):
        (tmp_path / ".env").write_text("LLM_MODEL=codellama\nLOG_LEVEL=debug\n")

        settings = Settings()

        assert settings.llm.model == "codellama"
        assert settings.log_level == "DEBUG"

    def test_api_key_not_in_repr(self, monkeypatch):
        monkeypatch.setenv("LLM_API_KEY", "sk-secret")
        assert "sk-secret" not in repr(LLMSettings())

    def test_invalid_values_rejected(self):
        with pytest.raises(ValidationError):
            LLMSettings(temperature=5)
        with pytest.raises(ValidationError):
            EmbeddingSettings(provider="openai")

    def test_components_default_to_cached_settings(self, monkeypatch):
        monkeypatch.setenv("EMBEDDING_PROVIDER", "hash")
        monkeypatch.setenv("INDEX_CHUNK_SIZE", "800")
        monkeypatch.setenv("LLM_MAX_RETRIES", "1")

        settings = get_settings()

        assert EmbeddingProvider().settings is get_embedding_settings() is settings.embedding
        assert EmbeddingProvider().uses_remote is False
        assert CodebaseIndexer(VectorStore(), EmbeddingProvider()).settings.chunk_size == 800
        assert get_index_settings() is settings.index
        assert LLMGateway().settings.max_retries == 1
