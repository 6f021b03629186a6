"""
Similarity Ranker

Ranks a document's chunks against a query vector by cosine similarity.

Ordering rules:
- strictly descending score
- ties resolved by ascending chunk index (stable sort)
- the eligible set is the leading run with score >= min_similarity
"""

import logging
from typing import List, Sequence

import numpy as np

from ..common.models import ScoredChunk

logger = logging.getLogger("docsearch.retriever.ranker")

# Score assigned when either vector has zero norm
MIN_SIMILARITY_SCORE = -1.0


def cosine_similarity(query, vectors) -> np.ndarray:
    """
    Cosine similarity between one query vector and every row of a matrix.

    Args:
        query: D-dimensional vector
        vectors: N x D matrix

    Returns:
        N similarities; rows (or a query) with zero norm score -1.0
    """
    q = np.asarray(query, dtype=np.float64).ravel()
    matrix = np.asarray(vectors, dtype=np.float64)
    if matrix.ndim == 1:
        matrix = matrix.reshape(1, -1)

    if matrix.shape[1] != q.shape[0]:
        raise ValueError(f"Vector dimension mismatch: {q.shape[0]} vs {matrix.shape[1]}")

    norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(q)
    dots = matrix @ q

    scores = np.full(matrix.shape[0], MIN_SIMILARITY_SCORE, dtype=np.float64)
    valid = norms > 0
    scores[valid] = dots[valid] / norms[valid]
    return scores


class SimilarityRanker:
    """
    Selects the chunks most similar to a query.

    Stateless: every call works on its own arrays, so one instance can be
    shared between concurrent queries.
    """

    def score(self, query, vectors, chunks: Sequence[str]) -> List[ScoredChunk]:
        """
        Score and sort every chunk.

        Returns:
            All chunks as ScoredChunk, descending score, ascending index on ties
        """
        if len(vectors) != len(chunks):
            raise ValueError(f"Vector/chunk count mismatch: {len(vectors)} vs {len(chunks)}")
        if len(chunks) == 0:
            return []

        scores = cosine_similarity(query, vectors)
        order = np.argsort(-scores, kind="stable")
        return [ScoredChunk(score=float(scores[i]), index=int(i), text=chunks[i]) for i in order]

    def rank_scored(
        self,
        query,
        vectors,
        chunks: Sequence[str],
        min_similarity: float,
        top_n: int,
    ) -> List[ScoredChunk]:
        """Ranked chunks passing the similarity cutoff, capped at top_n."""
        if top_n <= 0:
            return []

        scored = self.score(query, vectors, chunks)

        count = 0
        for item in scored:
            if item.score < min_similarity:
                break
            count += 1

        selected = scored[:min(top_n, count)]
        logger.debug(
            "Ranked %d chunks: %d above %.3f, returning %d",
            len(scored), count, min_similarity, len(selected),
        )
        return selected

    def rank(
        self,
        query,
        vectors,
        chunks: Sequence[str],
        min_similarity: float,
        top_n: int,
    ) -> List[str]:
        """
        Rank chunks against a query vector.

        Args:
            query: Query vector (never None; callers short-circuit first)
            vectors: N x D chunk vectors
            chunks: N chunk texts aligned with vectors
            min_similarity: Minimum cosine similarity to keep a chunk
            top_n: Maximum number of chunks to return

        Returns:
            Chunk texts in ranked order
        """
        return [item.text for item in self.rank_scored(query, vectors, chunks, min_similarity, top_n)]
