"""Overlap between discovered clusters and the canonical catalog."""

import math
from dataclasses import dataclass

import numpy as np

from intent_engine.discovery.batching import batch_embed
from intent_engine.embeddings.base import Embedder
from intent_engine.intent_text import build_intent_identity_text
from intent_engine.progress import ProgressCallback
from intent_engine.types import CanonicalIntent, CanonicalOverlap
from intent_engine.vectors import cosine_similarity


@dataclass(frozen=True)
class CanonicalVector:
    """Canonical intent embedded for comparison with cluster centroids."""

    intent_id: str
    category: str
    embedding: np.ndarray


async def embed_canonical_intents(
    embedder: Embedder,
    intents: list[CanonicalIntent],
    batch_size: int = 100,
    on_progress: ProgressCallback | None = None,
    progress_pct: int = 70,
) -> list[CanonicalVector]:
    """Embed each intent's identity text once, with the same embedder as the corpus."""
    if not intents:
        return []
    vectors = await batch_embed(
        embedder,
        [build_intent_identity_text(intent) for intent in intents],
        batch_size=batch_size,
        on_progress=on_progress,
        progress_span=(progress_pct, progress_pct),
        label="Canonical: Embedding",
    )
    return [
        CanonicalVector(
            intent_id=intent["intent_id"],
            category=intent.get("category") or "",
            embedding=vector,
        )
        for intent, vector in zip(intents, vectors)
    ]


def top_canonical_matches(
    centroid: np.ndarray, canonicals: list[CanonicalVector], n: int = 3
) -> list[CanonicalOverlap]:
    """The ``n`` most similar canonical intents, highest first."""
    scored: list[CanonicalOverlap] = [
        {"intent_id": c.intent_id, "similarity": cosine_similarity(centroid, c.embedding)}
        for c in canonicals
    ]
    scored.sort(key=lambda item: item["similarity"], reverse=True)
    return scored[:n]


def best_canonical_similarity(centroid: np.ndarray, canonicals: list[CanonicalVector]) -> float:
    """Highest similarity to any canonical intent, floored at 0."""
    best = 0.0
    for c in canonicals:
        best = max(best, cosine_similarity(centroid, c.embedding))
    return best


def is_covered(centroid: np.ndarray, canonicals: list[CanonicalVector], threshold: float = 0.65) -> bool:
    """Whether the catalog already covers a cluster."""
    return best_canonical_similarity(centroid, canonicals) >= threshold


def percentage(part: int, whole: int) -> int:
    """Percentage rounded half up; 0 when ``whole`` is 0."""
    if whole <= 0:
        return 0
    return math.floor(part * 100 / whole + 0.5)


def overlap_percentage(
    centroids: list[np.ndarray], canonicals: list[CanonicalVector], threshold: float = 0.65
) -> int:
    """Rounded percentage of clusters covered by the catalog."""
    covered = sum(1 for centroid in centroids if is_covered(centroid, canonicals, threshold))
    return percentage(covered, len(centroids))
