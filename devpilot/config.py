"""
Configuration Management - .env loading with validation
One settings class per concern, composed into a root Settings object
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LLMSettings(BaseSettings):
    """LLM provider configuration"""

    model_config = SettingsConfigDict(
        env_prefix="LLM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Unrecognized providers fall back to the local endpoint in the gateway
    provider: str = "ollama"
    model: str | None = None
    endpoint: str = "http://localhost:11434"
    api_base: str | None = None
    api_key: SecretStr = Field(default=SecretStr(""))

    # Generation parameters
    temperature: float = Field(default=0.7, ge=0, le=2)
    max_tokens: int = Field(default=2000, ge=1, le=200000)

    # Timeouts and retries
    timeout: float = Field(default=120.0, gt=0)
    max_retries: int = Field(default=2, ge=0, le=10)
    retry_delay: float = Field(default=1.0, ge=0)

    @field_validator("provider", mode="before")
    @classmethod
    def normalize_provider(cls, v: str) -> str:
        return (v or "").strip().lower()

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key.get_secret_value())


class EmbeddingSettings(BaseSettings):
    """Embedding endpoint configuration"""

    model_config = SettingsConfigDict(
        env_prefix="EMBEDDING_",
        env_file=".env",
        extra="ignore",
    )

    provider: Literal["ollama", "hash"] = "ollama"
    model: str = "nomic-embed-text"
    endpoint: str = "http://localhost:11434"
    dimension: int = Field(default=384, ge=8, le=8192)
    timeout: float = Field(default=30.0, gt=0)


class IndexSettings(BaseSettings):
    """Codebase indexing configuration"""

    model_config = SettingsConfigDict(
        env_prefix="INDEX_",
        env_file=".env",
        extra="ignore",
    )

    state_dir: str = ".devpilot"
    chunk_size: int = Field(default=1500, ge=100)
    max_depth: int = Field(default=10, ge=1, le=64)
    analyze_summary: bool = True

    def state_path(self, workspace_root: str | Path) -> Path:
        return Path(workspace_root) / self.state_dir


class AgentSettings(BaseSettings):
    """Agent loop configuration"""

    model_config = SettingsConfigDict(
        env_prefix="AGENT_",
        env_file=".env",
        extra="ignore",
    )

    history_limit: int = Field(default=10, ge=1, le=100)
    context_results: int = Field(default=5, ge=1, le=50)


class TerminalSettings(BaseSettings):
    """Terminal session configuration"""

    model_config = SettingsConfigDict(
        env_prefix="TERMINAL_",
        env_file=".env",
        extra="ignore",
    )

    shell: str | None = None
    command_timeout: float = Field(default=120.0, gt=0)


class Settings(BaseSettings):
    """Main application settings"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "DevPilot"
    app_version: str = "0.1.0"

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Component settings
    llm: LLMSettings = Field(default_factory=LLMSettings)
    embedding: EmbeddingSettings = Field(default_factory=EmbeddingSettings)
    index: IndexSettings = Field(default_factory=IndexSettings)
    agent: AgentSettings = Field(default_factory=AgentSettings)
    terminal: TerminalSettings = Field(default_factory=TerminalSettings)

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return v.upper() if isinstance(v, str) else v


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


def get_llm_settings() -> LLMSettings:
    """Get LLM settings"""
    return get_settings().llm


def get_embedding_settings() -> EmbeddingSettings:
    """Get embedding settings"""
    return get_settings().embedding


def get_index_settings() -> IndexSettings:
    """Get indexing settings"""
    return get_settings().index


def get_agent_settings() -> AgentSettings:
    """Get agent settings"""
    return get_settings().agent
