"""Cosine k-means with farthest-point seeding."""

import logging
from dataclasses import dataclass

import numpy as np

from intent_engine.vectors import cosine_similarity_matrix, mean_vector, normalize_rows

logger = logging.getLogger(__name__)


@dataclass
class KMeansResult:
    """Cluster assignment for every input row."""

    labels: np.ndarray
    centroids: np.ndarray
    iterations: int
    converged: bool


def farthest_point_seeds(embeddings: np.ndarray, k: int) -> np.ndarray:
    """
    Pick ``k`` seed rows, starting from row 0.

    Each further seed is the unused row whose minimum cosine distance to the
    seeds chosen so far is largest; ties go to the lowest index.

    Returns:
        Indices of the chosen rows.
    """
    n = embeddings.shape[0]
    k = min(k, n)
    if k <= 0:
        return np.empty(0, dtype=int)

    unit = normalize_rows(embeddings)
    seeds = [0]
    used = np.zeros(n, dtype=bool)
    used[0] = True
    min_dist = 1.0 - unit @ unit[0]

    for _ in range(1, k):
        candidates = np.where(used, -np.inf, min_dist)
        best = int(np.argmax(candidates))
        seeds.append(best)
        used[best] = True
        min_dist = np.minimum(min_dist, 1.0 - unit @ unit[best])

    return np.asarray(seeds, dtype=int)


def assign_labels(embeddings: np.ndarray, centroids: np.ndarray) -> np.ndarray:
    """Index of the most cosine-similar centroid per row; the lowest index wins ties."""
    return np.argmax(cosine_similarity_matrix(embeddings, centroids), axis=1)


def recompute_centroids(
    embeddings: np.ndarray, labels: np.ndarray, centroids: np.ndarray
) -> np.ndarray:
    """Mean of each cluster's members. Empty clusters keep their previous centroid."""
    updated = np.array(centroids, dtype=np.float64, copy=True)
    for c in range(updated.shape[0]):
        members = embeddings[labels == c]
        if len(members) == 0:
            continue
        updated[c] = mean_vector(members)
    return updated


def kmeans_cluster(embeddings: np.ndarray, k: int, max_iter: int = 30) -> KMeansResult:
    """
    Cluster rows by cosine similarity.

    Args:
        embeddings: Array of shape (n, dim).
        k: Requested cluster count, capped at ``n``.
        max_iter: Iteration budget; stops early once no row changes cluster.

    Returns:
        Labels and centroids. Cluster ids are centroid indices, so some ids
        may have no members.
    """
    data = np.asarray(embeddings, dtype=np.float64)
    if data.ndim != 2:
        raise ValueError("embeddings must be a 2-dimensional array")
    if max_iter < 1:
        raise ValueError("max_iter must be at least 1")

    n = data.shape[0]
    if n == 0 or k <= 0:
        return KMeansResult(
            labels=np.empty(0, dtype=int),
            centroids=np.empty((0, data.shape[1]), dtype=np.float64),
            iterations=0,
            converged=True,
        )

    centroids = data[farthest_point_seeds(data, k)].copy()
    labels = np.full(n, -1, dtype=int)

    converged = False
    iterations = 0
    for iterations in range(1, max_iter + 1):
        new_labels = assign_labels(data, centroids)
        changed = int(np.count_nonzero(new_labels != labels))
        labels = new_labels
        centroids = recompute_centroids(data, labels, centroids)
        if changed == 0:
            converged = True
            break

    logger.info(
        f"k-means: n={n} k={centroids.shape[0]} iterations={iterations} converged={converged}"
    )
    return KMeansResult(labels=labels, centroids=centroids, iterations=iterations, converged=converged)


def group_members(labels: np.ndarray) -> dict[int, list[int]]:
    """Member row indices per cluster id, in order of first appearance."""
    groups: dict[int, list[int]] = {}
    for index, label in enumerate(labels.tolist()):
        groups.setdefault(int(label), []).append(index)
    return groups
