"""
Context assembler

Builds the context bundle for one query: the project summary block first,
then the vector-search hits.
"""

import logging
from pathlib import Path

from .embeddings import EmbeddingProvider
from .summary import ProjectSummary, format_summary, load_summary
from .vector_store import VectorStore

logger = logging.getLogger(__name__)


class ContextAssembler:
    """
    Never fails the caller: a failing sub-step only shortens the bundle.

    The on-disk summary is loaded lazily and cached after the first
    successful read. When it cannot be read, the summary remembered from
    the last initialization is used instead.
    """

    def __init__(
        self,
        store: VectorStore,
        embedder: EmbeddingProvider,
        summary_path: str | Path | None = None,
        k: int = 5,
    ):
        self.store = store
        self.embedder = embedder
        self.summary_path = Path(summary_path) if summary_path else None
        self.k = k
        self._loaded_summary: ProjectSummary | None = None
        self._memory_summary: ProjectSummary | None = None

    def remember_summary(self, summary: ProjectSummary | None) -> None:
        """Keep the summary produced by initialization as the fallback"""
        self._memory_summary = summary

    def invalidate(self) -> None:
        self._loaded_summary = None

    def current_summary(self) -> ProjectSummary | None:
        if self._loaded_summary is None and self.summary_path is not None:
            self._loaded_summary = load_summary(self.summary_path)
        return self._loaded_summary or self._memory_summary

    async def get_relevant_context(self, query: str, k: int | None = None) -> list[str]:
        context: list[str] = []

        try:
            query_vector = await self.embedder.embed(query)
            context = self.store.search(query_vector, k or self.k)
        except Exception as e:
            logger.warning(f"Vector search failed: {e}")

        try:
            summary = self.current_summary()
        except Exception as e:
            logger.warning(f"Failed to load project summary: {e}")
            summary = None

        if summary is not None:
            context.insert(0, format_summary(summary))

        return context
