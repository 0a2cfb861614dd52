"""
Embedding provider

Calls the local endpoint's embeddings API and falls back to a deterministic
hash embedding whenever that fails, so indexing always works offline.
"""

import logging
import math

import httpx

from ..config import EmbeddingSettings, get_embedding_settings

logger = logging.getLogger(__name__)

DEFAULT_DIMENSION = 384


def string_hash(text: str) -> int:
    """Stable 32-bit signed rolling hash (h * 31 + c)"""
    h = 0
    for ch in text:
        h = (h * 31 + ord(ch)) & 0xFFFFFFFF
    return h - 0x100000000 if h & 0x80000000 else h


def hash_embedding(text: str, dimension: int = DEFAULT_DIMENSION) -> list[float]:
    """
    Deterministic bag-of-words embedding.

    Each whitespace token adds 1/(position+1) at hash(token) % dimension and
    the result is L2-normalized. Input without tokens gets a single unit
    component chosen by the hash of the raw string.
    """
    text = text if isinstance(text, str) else str(text or "")
    vector = [0.0] * dimension
    words = text.split()

    if not words:
        vector[abs(string_hash(text)) % dimension] = 1.0
        return vector

    for index, word in enumerate(words):
        vector[abs(string_hash(word)) % dimension] += 1.0 / (index + 1)

    magnitude = math.sqrt(sum(v * v for v in vector))
    if magnitude > 0:
        vector = [v / magnitude for v in vector]
    return vector


def chunk_text(text: str, max_chunk_size: int = 512) -> list[str]:
    """Greedy word packing into chunks of at most max_chunk_size characters"""
    if not isinstance(text, str):
        return [str(text or "")]

    chunks: list[str] = []
    current: list[str] = []
    size = 0

    for word in text.split():
        extra = len(word) + (1 if current else 0)
        if current and size + extra > max_chunk_size:
            chunks.append(" ".join(current))
            current, size = [word], len(word)
        else:
            current.append(word)
            size += extra

    if current:
        chunks.append(" ".join(current))

    return chunks or [text]


class EmbeddingProvider:
    """
    Text to fixed-length vector.

    With provider "ollama" the endpoint is tried first. The first remote
    vector fixes the dimension for the session. Any failed or malformed
    reply switches the provider to the hash fallback for good, at that same
    dimension, so a single index never mixes vector lengths.
    """

    def __init__(self, settings: EmbeddingSettings | None = None):
        self.settings = settings or get_embedding_settings()
        self.dimension = self.settings.dimension
        self._remote_enabled = self.settings.provider == "ollama"
        self._remote_dimension: int | None = None

    @property
    def uses_remote(self) -> bool:
        return self._remote_enabled

    async def embed(self, text: str) -> list[float]:
        if not self._remote_enabled:
            return hash_embedding(text, self.dimension)

        try:
            vector = await self._embed_remote(text)
        except httpx.TransportError as e:
            logger.warning(f"Embedding endpoint {self.settings.endpoint} unreachable ({e})")
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                logger.warning(
                    f"Embedding model not found. Pull it with: ollama pull {self.settings.model}"
                )
            else:
                logger.warning(f"Embedding request failed: {e}")
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"Malformed embedding response: {e}")
        else:
            if self._remote_dimension is None:
                self._remote_dimension = len(vector)
                self.dimension = len(vector)
            if len(vector) == self._remote_dimension:
                return vector
            logger.warning(
                f"Embedding has {len(vector)} dimensions, expected {self._remote_dimension}"
            )

        logger.warning(f"Using {self.dimension}-dimensional hash embeddings for this session")
        self._remote_enabled = False
        return hash_embedding(text, self.dimension)

    async def _embed_remote(self, text: str) -> list[float]:
        payload = {"model": self.settings.model, "prompt": text}

        async with httpx.AsyncClient(timeout=self.settings.timeout) as client:
            response = await client.post(f"{self.settings.endpoint}/api/embeddings", json=payload)
            response.raise_for_status()
            data = response.json()

        embedding = data.get("embedding") if isinstance(data, dict) else None
        if not embedding or not isinstance(embedding, list):
            raise ValueError("no embedding in response")
        return [float(v) for v in embedding]

    def chunk_text(self, text: str, max_chunk_size: int = 512) -> list[str]:
        return chunk_text(text, max_chunk_size)
