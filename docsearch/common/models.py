"""
Retrieval Data Model

Embeddings pair an N x D vector matrix with N text chunks by index.
Everything else (scored chunks, clusters, blocks) is derived per call.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np


@dataclass(frozen=True)
class Embedding:
    """Immutable (vectors, chunks) pair for one document."""
    vectors: np.ndarray
    chunks: Tuple[str, ...]

    def __post_init__(self):
        vectors = np.array(self.vectors, dtype=np.float32)
        if vectors.ndim != 2:
            raise ValueError(f"Embedding vectors must be a 2-D matrix, got shape {vectors.shape}")

        chunks = tuple(self.chunks)
        if len(chunks) == 0:
            raise ValueError("Embedding requires at least one chunk")
        if vectors.shape[0] != len(chunks):
            raise ValueError(
                f"Vector/chunk count mismatch: {vectors.shape[0]} vectors vs {len(chunks)} chunks"
            )

        vectors.flags.writeable = False
        object.__setattr__(self, "vectors", vectors)
        object.__setattr__(self, "chunks", chunks)

    @classmethod
    def from_lists(cls, vectors: Sequence[Sequence[float]], chunks: Sequence[str]) -> "Embedding":
        return cls(vectors=np.asarray(vectors, dtype=np.float32), chunks=tuple(chunks))

    @property
    def dimension(self) -> int:
        return int(self.vectors.shape[1])

    def __len__(self) -> int:
        return len(self.chunks)


@dataclass(frozen=True)
class EmbeddedDocument:
    """
    A named document with metadata and its embedding.

    ``embedding`` is None when storage returns a document summary
    (``load_full=False``). ``matches`` holds the best-matching chunks
    attached by a storage query, in ranked order.
    """
    name: str
    metadata: Dict[str, str] = field(default_factory=dict)
    embedding: Optional[Embedding] = None
    matches: Tuple[str, ...] = ()

    def get_embedding(self) -> Embedding:
        if self.embedding is None:
            raise ValueError(f"Document '{self.name}' was loaded without its embedding")
        return self.embedding


@dataclass(frozen=True)
class ScoredChunk:
    """A chunk with its similarity to the query"""
    score: float
    index: int
    text: str


@dataclass(frozen=True)
class Cluster:
    """A k-means cluster: centroid plus member vector indices"""
    centroid: np.ndarray
    members: Tuple[int, ...]


def format_metadata(metadata: Optional[Dict[str, str]]) -> str:
    """Render metadata as one ``key: value`` line per entry."""
    if not metadata:
        return ""
    return "\n".join(f"{key}: {value}" for key, value in metadata.items())


@dataclass
class RetrievalBlock:
    """Formatted per-document result: name, metadata and selected chunks"""
    name: str
    metadata: Dict[str, str] = field(default_factory=dict)
    chunks: List[str] = field(default_factory=list)

    def render(self) -> str:
        body = "\n".join(self.chunks)
        return (
            "\n"
            f"Name:'{self.name}'\n"
            f"{format_metadata(self.metadata)}\n"
            "===\n"
            f"{body}\n"
            "===\n"
        )
