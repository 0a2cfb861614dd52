"""
Vector store

Append-only list of (vector, document) pairs with JSON persistence.
Search ranks by cosine similarity when given a query vector and returns
the first k entries otherwise.
"""

import json
import logging
from collections.abc import Sequence
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Literal

from ..errors import StorageError

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = "1.0"


@dataclass(frozen=True)
class Document:
    """Indexed file or chunk"""

    kind: Literal["file", "chunk"]
    path: str
    language: str
    content: str
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def header(self) -> str:
        """Metadata line block embedded together with the content"""
        source = self.metadata.get("source_kind", self.kind)
        return f"File: {self.path}\nLanguage: {self.language}\nType: {source}"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Document":
        return cls(
            kind=data["kind"],
            path=data["path"],
            language=data.get("language", "plaintext"),
            content=data["content"],
            metadata=dict(data.get("metadata") or {}),
        )


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Compute cosine similarity between two vectors"""
    if not a or not b or len(a) != len(b):
        return 0.0

    dot_product = sum(x * y for x, y in zip(a, b))
    magnitude_a = sum(x * x for x in a) ** 0.5
    magnitude_b = sum(x * x for x in b) ** 0.5

    if magnitude_a == 0 or magnitude_b == 0:
        return 0.0

    return dot_product / (magnitude_a * magnitude_b)


class VectorStore:
    """
    In-memory vector store.

    Position in the list is a record's identity. Only add() and reset()
    mutate the store; both mark it dirty so the next save() writes.
    """

    def __init__(self):
        self.vectors: list[list[float]] = []
        self.documents: list[Document] = []
        self.is_dirty = False

    def __len__(self) -> int:
        return len(self.documents)

    def add(self, document: Document, vector: Sequence[float]) -> None:
        self.vectors.append(list(vector))
        self.documents.append(document)
        self.is_dirty = True

    def reset(self) -> None:
        self.vectors = []
        self.documents = []
        self.is_dirty = True

    def is_empty(self) -> bool:
        return not self.vectors

    def save(self, path: str | Path) -> bool:
        """Persist the store; returns False when there was nothing to write"""
        if not self.is_dirty:
            logger.debug("No changes to save in vector store")
            return False

        data = {
            "vectors": self.vectors,
            "documents": [doc.to_dict() for doc in self.documents],
            "version": SNAPSHOT_VERSION,
        }

        try:
            target = Path(path)
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(json.dumps(data), encoding="utf-8")
        except (OSError, TypeError, ValueError) as e:
            raise StorageError(f"Failed to save vector store to {path}", cause=e) from e

        self.is_dirty = False
        logger.info(f"Saved vector store to {path} with {len(self.vectors)} entries")
        return True

    def load(self, path: str | Path) -> bool:
        """
        Load a snapshot.

        Any read, parse or shape problem leaves the store empty and dirty and
        returns False; nothing is raised.
        """
        try:
            parsed = json.loads(Path(path).read_text(encoding="utf-8"))
            vectors = parsed["vectors"]
            raw_documents = parsed["documents"]
            if not isinstance(vectors, list) or not isinstance(raw_documents, list):
                raise ValueError("vectors and documents must be lists")
            if len(vectors) != len(raw_documents):
                raise ValueError(
                    f"{len(vectors)} vectors for {len(raw_documents)} documents"
                )
            documents = [Document.from_dict(d) for d in raw_documents]
        except Exception as e:
            logger.warning(f"Invalid or unreadable vector store {path} ({e}), reinitializing")
            self.reset()
            return False

        self.vectors = [list(v) for v in vectors]
        self.documents = documents
        self.is_dirty = False
        logger.info(f"Loaded vector store from {path} with {len(self.vectors)} entries")
        return True

    def nearest(self, query_vector: Sequence[float], k: int = 5) -> list[tuple[Document, float]]:
        """Top-k documents by cosine similarity; ties keep insertion order"""
        scored = [
            (doc, cosine_similarity(query_vector, vector))
            for doc, vector in zip(self.documents, self.vectors)
        ]
        scored.sort(key=lambda item: item[1], reverse=True)
        return scored[:k]

    def search(self, query: Sequence[float] | str | None = None, k: int = 5) -> list[str]:
        """Return up to k stored contents, ranked when query is a vector"""
        if self.is_empty():
            logger.debug("Vector store is empty, no results to return")
            return []

        if query is not None and not isinstance(query, str):
            return [doc.content for doc, _ in self.nearest(query, k)]

        return [doc.content for doc in self.documents[:k]]
