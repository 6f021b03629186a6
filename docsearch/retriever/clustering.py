"""
Deterministic k-means

Lloyd's algorithm with Euclidean distance and farthest-point seeding.
No randomness: identical input always produces identical clusters in the
same order.
"""

from typing import List

import numpy as np

from ..common.models import Cluster

DEFAULT_MAX_ITERATIONS = 100


def _squared_distances(points: np.ndarray, centroids: np.ndarray) -> np.ndarray:
    """N x K matrix of squared Euclidean distances."""
    diff = points[:, None, :] - centroids[None, :, :]
    return np.einsum("nkd,nkd->nk", diff, diff)


def seed_centroids(points: np.ndarray, k: int) -> np.ndarray:
    """
    Farthest-point seeding.

    The first seed is the point closest to the global mean; each following
    seed is the unchosen point farthest from its nearest seed. np.argmin and
    np.argmax return the first index on ties.
    """
    mean = points.mean(axis=0, keepdims=True)
    first = int(np.argmin(_squared_distances(points, mean)[:, 0]))
    chosen = [first]

    nearest = _squared_distances(points, points[[first]])[:, 0]
    while len(chosen) < k:
        candidates = nearest.copy()
        candidates[chosen] = -1.0
        nxt = int(np.argmax(candidates))
        chosen.append(nxt)
        nearest = np.minimum(nearest, _squared_distances(points, points[[nxt]])[:, 0])

    return points[chosen].copy()


def compute_clusters(vectors, k: int, max_iterations: int = DEFAULT_MAX_ITERATIONS) -> List[Cluster]:
    """
    Partition vectors into exactly k clusters.

    Args:
        vectors: N x D matrix, N >= k
        k: Number of clusters
        max_iterations: Upper bound on Lloyd iterations

    Returns:
        k clusters ordered by cluster id. A cluster that loses all members
        keeps its previous centroid.
    """
    points = np.asarray(vectors, dtype=np.float64)
    if points.ndim != 2:
        raise ValueError(f"Expected a 2-D matrix, got shape {points.shape}")
    n = points.shape[0]
    if k <= 0:
        raise ValueError("k must be positive")
    if n < k:
        raise ValueError(f"Cannot form {k} clusters from {n} vectors")

    centroids = seed_centroids(points, k)
    assignments = np.full(n, -1, dtype=np.int64)

    for _ in range(max(1, max_iterations)):
        new_assignments = np.argmin(_squared_distances(points, centroids), axis=1)
        if np.array_equal(new_assignments, assignments):
            break
        assignments = new_assignments

        for cluster_id in range(k):
            members = assignments == cluster_id
            if members.any():
                centroids[cluster_id] = points[members].mean(axis=0)

    return [
        Cluster(
            centroid=centroids[cluster_id].copy(),
            members=tuple(int(i) for i in np.flatnonzero(assignments == cluster_id)),
        )
        for cluster_id in range(k)
    ]
