"""Vector math shared by the index, fuzzy resolver and discovery pipeline."""

from collections.abc import Sequence

import numpy as np

VectorLike = Sequence[float] | np.ndarray


def cosine_similarity(a: VectorLike, b: VectorLike) -> float:
    """
    Cosine similarity between two vectors of equal length.

    Args:
        a: First vector.
        b: Second vector.

    Returns:
        Normalized dot product in [-1, 1]. Zero vectors score 0.

    Raises:
        ValueError: If the vectors differ in length.
    """
    va = np.asarray(a, dtype=np.float64).ravel()
    vb = np.asarray(b, dtype=np.float64).ravel()
    if va.shape != vb.shape:
        raise ValueError(f"Vector length mismatch: {va.shape[0]} != {vb.shape[0]}")

    denom = np.sqrt(np.dot(va, va)) * np.sqrt(np.dot(vb, vb))
    if denom == 0:
        return 0.0
    return float(np.dot(va, vb) / denom)


def normalize_rows(matrix: np.ndarray) -> np.ndarray:
    """L2-normalize each row; zero rows stay zero."""
    m = np.asarray(matrix, dtype=np.float64)
    if m.ndim != 2:
        raise ValueError("Expected a 2-dimensional matrix")
    norms = np.linalg.norm(m, axis=1, keepdims=True)
    safe = np.where(norms == 0, 1.0, norms)
    return m / safe


def cosine_similarity_matrix(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """
    Pairwise cosine similarities between the rows of two matrices.

    Returns:
        Array of shape (len(a), len(b)).
    """
    na = normalize_rows(a)
    nb = normalize_rows(b)
    if na.shape[1] != nb.shape[1]:
        raise ValueError(f"Vector length mismatch: {na.shape[1]} != {nb.shape[1]}")
    return na @ nb.T


def mean_vector(matrix: np.ndarray) -> np.ndarray:
    """Arithmetic mean of the rows."""
    m = np.asarray(matrix, dtype=np.float64)
    if m.ndim != 2 or m.shape[0] == 0:
        raise ValueError("mean_vector needs at least one row")
    return m.mean(axis=0)
