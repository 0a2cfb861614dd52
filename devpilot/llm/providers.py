"""
DevPilot LLM Provider Abstraction
Supports: Ollama (local endpoint), OpenAI (chat completions), Anthropic Claude (messages)

Usage:
    llm = get_llm_provider(LLMConfig(provider=LLMProvider.OLLAMA, model="llama3.2"))
    completion = await llm.generate("Explain this function")
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import httpx

from ..config import LLMSettings
from ..errors import (
    AuthenticationError,
    ConfigurationError,
    ProviderResponseError,
    ServiceUnreachableError,
)

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM = "You are a helpful AI programming assistant."


# =============================================================================
# Types and Configuration
# =============================================================================


class LLMProvider(str, Enum):
    """Supported LLM providers"""

    OLLAMA = "ollama"
    OPENAI = "openai"
    CLAUDE = "claude"

    @classmethod
    def from_name(cls, name: str | None) -> "LLMProvider":
        """Resolve a provider name; anything unrecognized is the local endpoint"""
        aliases = {"anthropic": cls.CLAUDE, "local": cls.OLLAMA}
        key = (name or "").strip().lower()
        if key in aliases:
            return aliases[key]
        try:
            return cls(key)
        except ValueError:
            logger.warning(f"Unsupported provider {name!r}, falling back to Ollama")
            return cls.OLLAMA

    @property
    def requires_api_key(self) -> bool:
        return self is not LLMProvider.OLLAMA


@dataclass
class LLMConfig:
    """LLM configuration"""

    provider: LLMProvider = LLMProvider.OLLAMA
    model: str = "llama3.2"
    api_key: str | None = None
    api_base: str | None = None

    # Generation parameters
    max_tokens: int = 2000
    temperature: float = 0.7

    timeout: float = 120.0

    # Ollama specific
    ollama_host: str = "http://localhost:11434"

    @classmethod
    def from_settings(cls, settings: LLMSettings) -> "LLMConfig":
        provider = LLMProvider.from_name(settings.provider)
        return cls(
            provider=provider,
            model=settings.model or cls._default_model(provider),
            api_key=settings.api_key.get_secret_value() or None,
            api_base=settings.api_base,
            max_tokens=settings.max_tokens,
            temperature=settings.temperature,
            timeout=settings.timeout,
            ollama_host=settings.endpoint.rstrip("/"),
        )

    @staticmethod
    def _default_model(provider: LLMProvider) -> str:
        defaults = {
            LLMProvider.OLLAMA: "llama3.2",
            LLMProvider.OPENAI: "gpt-4",
            LLMProvider.CLAUDE: "claude-3-opus-20240229",
        }
        return defaults[provider]


@dataclass
class Completion:
    """Raw provider reply"""

    content: str
    model: str
    provider: str

    # Usage stats
    input_tokens: int = 0
    output_tokens: int = 0

    latency_ms: float = 0
    finish_reason: str = "stop"
    raw_response: dict[str, Any] | None = field(default=None, repr=False)


# =============================================================================
# Base Provider Interface
# =============================================================================


class BaseLLMProvider(ABC):
    """Abstract base class for LLM providers"""

    label = "LLM"

    def __init__(self, config: LLMConfig):
        self.config = config

    @abstractmethod
    async def generate(self, prompt: str, system: str | None = None) -> Completion:
        """Generate completion from prompt"""
        pass

    @property
    @abstractmethod
    def url(self) -> str:
        pass

    def headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json"}

    async def _post(self, payload: dict[str, Any]) -> dict[str, Any]:
        """POST payload and map transport failures to typed errors"""
        try:
            async with httpx.AsyncClient(timeout=self.config.timeout) as client:
                response = await client.post(self.url, headers=self.headers(), json=payload)
                response.raise_for_status()
                data = response.json()
        except httpx.TimeoutException as e:
            raise ServiceUnreachableError(
                f"{self.label} did not respond within {self.config.timeout:.0f}s", cause=e
            ) from e
        except httpx.TransportError as e:
            raise ServiceUnreachableError(
                f"Could not connect to {self.label}. Make sure it is reachable at {self.url}",
                cause=e,
            ) from e
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status in (401, 403):
                raise AuthenticationError(
                    f"Invalid {self.label} API key. Please check your configuration.", cause=e
                ) from e
            raise ProviderResponseError(
                f"{self.label} API error ({status}): {_error_detail(e.response)}", cause=e
            ) from e
        except ValueError as e:
            raise ProviderResponseError(f"{self.label} returned a non-JSON response", cause=e) from e

        if not isinstance(data, dict):
            raise ProviderResponseError(f"{self.label} returned an unexpected payload")
        return data

    def _measure_latency(self, start_time: float) -> float:
        """Calculate latency in milliseconds"""
        return (time.time() - start_time) * 1000


def _error_detail(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text[:200] or response.reason_phrase
    error = data.get("error") if isinstance(data, dict) else None
    if isinstance(error, dict):
        return str(error.get("message") or error)
    return str(error or data)[:200]


# =============================================================================
# Ollama Provider (local endpoint)
# =============================================================================


class OllamaProvider(BaseLLMProvider):
    """
    Ollama native provider - POST {host}/api/generate

    Setup:
        1. Install Ollama: curl -fsSL https://ollama.com/install.sh | sh
        2. Pull model: ollama pull llama3.2
        3. Set LLM_ENDPOINT=http://localhost:11434 (default)
    """

    label = "Ollama"

    def __init__(self, config: LLMConfig):
        super().__init__(config)
        self.host = config.ollama_host

    @property
    def url(self) -> str:
        return f"{self.host}/api/generate"

    async def generate(self, prompt: str, system: str | None = None) -> Completion:
        start_time = time.time()

        payload = {
            "model": self.config.model,
            "prompt": prompt,
            "stream": False,
            "options": {
                "temperature": self.config.temperature,
                "num_predict": self.config.max_tokens,
            },
        }
        if system:
            payload["system"] = system

        data = await self._post(payload)
        if not isinstance(data.get("response"), str):
            raise ProviderResponseError("Ollama response has no 'response' text")

        return Completion(
            content=data["response"],
            model=data.get("model", self.config.model),
            provider="ollama",
            input_tokens=data.get("prompt_eval_count", 0),
            output_tokens=data.get("eval_count", 0),
            latency_ms=self._measure_latency(start_time),
            raw_response=data,
        )


# =============================================================================
# OpenAI Provider
# =============================================================================


class OpenAIProvider(BaseLLMProvider):
    """OpenAI chat completions provider (bearer token)"""

    label = "OpenAI"

    def __init__(self, config: LLMConfig):
        super().__init__(config)
        self.api_key = config.api_key
        self.api_base = (config.api_base or "https://api.openai.com/v1").rstrip("/")

        if not self.api_key:
            raise ConfigurationError("API key is required for openai")

    @property
    def url(self) -> str:
        return f"{self.api_base}/chat/completions"

    def headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    async def generate(self, prompt: str, system: str | None = None) -> Completion:
        start_time = time.time()

        payload = {
            "model": self.config.model,
            "messages": [
                {"role": "system", "content": system or DEFAULT_SYSTEM},
                {"role": "user", "content": prompt},
            ],
            "max_tokens": self.config.max_tokens,
            "temperature": self.config.temperature,
        }

        data = await self._post(payload)
        try:
            choice = data["choices"][0]
            content = choice["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise ProviderResponseError("OpenAI response has no message content", cause=e) from e

        usage = data.get("usage") or {}
        return Completion(
            content=content or "",
            model=data.get("model", self.config.model),
            provider="openai",
            input_tokens=usage.get("prompt_tokens", 0),
            output_tokens=usage.get("completion_tokens", 0),
            latency_ms=self._measure_latency(start_time),
            finish_reason=choice.get("finish_reason") or "stop",
            raw_response=data,
        )


# =============================================================================
# Anthropic Provider
# =============================================================================


class ClaudeProvider(BaseLLMProvider):
    """Anthropic messages provider (x-api-key header, separate system field)"""

    label = "Claude"

    def __init__(self, config: LLMConfig):
        super().__init__(config)
        self.api_key = config.api_key
        self.api_base = (config.api_base or "https://api.anthropic.com/v1").rstrip("/")

        if not self.api_key:
            raise ConfigurationError("API key is required for claude")

    @property
    def url(self) -> str:
        return f"{self.api_base}/messages"

    def headers(self) -> dict[str, str]:
        return {
            "x-api-key": self.api_key,
            "anthropic-version": "2023-06-01",
            "content-type": "application/json",
        }

    async def generate(self, prompt: str, system: str | None = None) -> Completion:
        start_time = time.time()

        payload = {
            "model": self.config.model,
            "max_tokens": self.config.max_tokens,
            "temperature": self.config.temperature,
            "system": system or DEFAULT_SYSTEM,
            "messages": [{"role": "user", "content": prompt}],
        }

        data = await self._post(payload)
        try:
            content = "".join(
                block.get("text", "") for block in data["content"] if block.get("type", "text") == "text"
            )
        except (KeyError, TypeError, AttributeError) as e:
            raise ProviderResponseError("Claude response has no text content", cause=e) from e

        usage = data.get("usage") or {}
        return Completion(
            content=content,
            model=data.get("model", self.config.model),
            provider="claude",
            input_tokens=usage.get("input_tokens", 0),
            output_tokens=usage.get("output_tokens", 0),
            latency_ms=self._measure_latency(start_time),
            finish_reason=data.get("stop_reason") or "stop",
            raw_response=data,
        )


# =============================================================================
# Provider Factory
# =============================================================================

PROVIDERS: dict[LLMProvider, type[BaseLLMProvider]] = {
    LLMProvider.OLLAMA: OllamaProvider,
    LLMProvider.OPENAI: OpenAIProvider,
    LLMProvider.CLAUDE: ClaudeProvider,
}


def get_llm_provider(config: LLMConfig) -> BaseLLMProvider:
    """
    Build the provider for config.

    Raises ConfigurationError when a cloud provider has no API key.
    """
    provider_class = PROVIDERS.get(config.provider, OllamaProvider)
    return provider_class(config)
