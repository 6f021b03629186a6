"""
Cluster Summarizer

Extractive summary of an Embedding: the lead chunk plus the chunk closest to
each k-means centroid.
"""

import logging
from typing import List

import numpy as np

from ..common.models import Embedding
from .clustering import DEFAULT_MAX_ITERATIONS, compute_clusters
from .ranker import cosine_similarity

logger = logging.getLogger("docsearch.retriever.summarizer")


class ClusterSummarizer:
    """
    Selects representative chunks of a document.

    Algorithm:
    1. Chunk 0 is always first (the opening context of the source)
    2. If the document has fewer chunks than max_clusters, every chunk is
       returned in original order
    3. Otherwise the vectors are clustered and, cluster by cluster, the chunk
       most similar to the centroid is appended. A representative at index 0
       is skipped, never replaced by a runner-up. Two clusters may share a
       representative; it is then appended twice.
    """

    def __init__(self, max_iterations: int = DEFAULT_MAX_ITERATIONS):
        self._max_iterations = max_iterations

    def select_indices(self, embedding: Embedding, max_clusters: int) -> List[int]:
        """Chunk indices of the summary, in output order."""
        count = len(embedding)
        selected = [0]

        if max_clusters <= 0:
            return selected

        if count < max_clusters:
            selected.extend(range(1, count))
            return selected

        clusters = compute_clusters(embedding.vectors, max_clusters, self._max_iterations)
        for cluster in clusters:
            similarity = cosine_similarity(cluster.centroid, embedding.vectors)
            best = int(np.argmax(similarity))
            if best > 0:
                selected.append(best)

        logger.debug(
            "Summarized %d chunks into %d using %d clusters",
            count, len(selected), max_clusters,
        )
        return selected

    def summarize(self, embedding: Embedding, max_clusters: int) -> List[str]:
        """
        Build the extractive summary.

        Args:
            embedding: Document embedding (N >= 1)
            max_clusters: Maximum number of clusters (K)

        Returns:
            Between 1 and K + 1 chunk texts, lead chunk first
        """
        return [embedding.chunks[i] for i in self.select_indices(embedding, max_clusters)]
