"""
DevPilot context engine

- EmbeddingProvider: endpoint embeddings with a deterministic hash fallback
- VectorStore: persisted (vector, document) pairs with nearest-match search
- CodebaseIndexer: workspace walk, line chunking, full index rebuild
- ContextAssembler: project summary + retrieved chunks for a query
"""

from .assembler import ContextAssembler
from .embeddings import EmbeddingProvider, chunk_text, hash_embedding
from .indexer import CodebaseIndexer, IndexResult, chunk_document
from .summary import ProjectAnalyzer, ProjectSummary, format_summary
from .vector_store import Document, VectorStore

__all__ = [
    "CodebaseIndexer",
    "ContextAssembler",
    "Document",
    "EmbeddingProvider",
    "IndexResult",
    "ProjectAnalyzer",
    "ProjectSummary",
    "VectorStore",
    "chunk_document",
    "chunk_text",
    "format_summary",
    "hash_embedding",
]
