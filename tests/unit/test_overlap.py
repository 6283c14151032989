"""Unit tests for batching and canonical overlap."""

import numpy as np
import pytest

from intent_engine.discovery.batching import batch_embed
from intent_engine.discovery.overlap import (
    CanonicalVector,
    best_canonical_similarity,
    embed_canonical_intents,
    is_covered,
    overlap_percentage,
    percentage,
    top_canonical_matches,
)


def canon(intent_id, vector):
    return CanonicalVector(intent_id=intent_id, category="", embedding=np.asarray(vector, dtype=float))


class TestBatchEmbed:
    """Test chunked embedding."""

    @pytest.mark.asyncio
    async def test_chunks_and_order(self, fake_embedder):
        """Texts are embedded in fixed-size chunks and stay in input order."""
        texts = ["eierskifte"] * 150 + ["faktura"] * 50
        messages = []

        vectors = await batch_embed(
            fake_embedder, texts, batch_size=100, on_progress=lambda m, p: messages.append((m, p))
        )

        assert fake_embedder.batches == [100, 100]
        assert vectors.shape == (200, 8)
        assert vectors[149, 0] == 1.0
        assert vectors[150, 3] == 1.0
        assert messages == [
            ("Embedding batch 1/2 (100/200)...", 0),
            ("Embedding batch 2/2 (200/200)...", 20),
        ]

    @pytest.mark.asyncio
    async def test_empty_input(self, fake_embedder):
        """No texts means no provider calls."""
        vectors = await batch_embed(fake_embedder, [])
        assert vectors.shape == (0, 8)
        assert fake_embedder.calls == 0

    @pytest.mark.asyncio
    async def test_short_batch_rejected(self, fake_embedder):
        """A provider returning the wrong number of vectors is an error."""

        async def short(texts):
            return np.zeros((len(texts) - 1, 8))

        fake_embedder.embed_many = short
        with pytest.raises(ValueError, match="for a batch of 3"):
            await batch_embed(fake_embedder, ["a", "b", "c"])

    @pytest.mark.asyncio
    async def test_provider_error_propagates(self, fake_embedder):
        """Provider failures abort the batch run."""

        async def boom(texts):
            raise RuntimeError("throttled")

        fake_embedder.embed_many = boom
        with pytest.raises(RuntimeError, match="throttled"):
            await batch_embed(fake_embedder, ["a"])


class TestOverlap:
    """Test centroid to catalog comparison."""

    def test_top_matches_sorted_and_limited(self):
        """Top matches are ordered by similarity and limited to n."""
        canonicals = [canon("A", [1, 0]), canon("B", [0, 1]), canon("C", [1, 1]), canon("D", [-1, 0])]
        matches = top_canonical_matches(np.array([1.0, 0.2]), canonicals, n=3)

        assert [m["intent_id"] for m in matches] == ["A", "C", "B"]

    def test_best_similarity_floor(self):
        """With only dissimilar intents the best similarity is 0."""
        assert best_canonical_similarity(np.array([1.0, 0.0]), [canon("D", [-1, 0])]) == 0.0
        assert best_canonical_similarity(np.array([1.0, 0.0]), []) == 0.0

    def test_is_covered_inclusive(self):
        """A similarity equal to the threshold counts as covered."""
        canonicals = [canon("A", [1.0, 0.0])]
        centroid = np.array([1.0, 1.0])
        sim = best_canonical_similarity(centroid, canonicals)
        assert is_covered(centroid, canonicals, threshold=sim)
        assert not is_covered(centroid, canonicals, threshold=float(np.nextafter(sim, 1.0)))

    def test_overlap_percentage(self):
        """Share of covered clusters, rounded."""
        canonicals = [canon("A", [1.0, 0.0])]
        centroids = [np.array([1.0, 0.0]), np.array([0.0, 1.0]), np.array([0.0, 1.0])]
        assert overlap_percentage(centroids, canonicals) == 33
        assert overlap_percentage([], canonicals) == 0

    def test_classification_depends_only_on_vectors(self):
        """Equal centroid and catalog vectors always give the same matches and coverage."""
        centroid = np.array([0.9, 0.3, 0.1])
        first = [canon("A", [1, 0, 0]), canon("B", [0, 1, 0]), canon("C", [0.5, 0.5, 0])]
        second = [canon(c.intent_id, c.embedding.copy()) for c in first]

        assert top_canonical_matches(centroid, first, n=3) == top_canonical_matches(centroid.copy(), second, n=3)
        assert is_covered(centroid, first) == is_covered(centroid.copy(), second)
        assert overlap_percentage([centroid], first) == overlap_percentage([centroid.copy()], second)

    def test_percentage_rounds_half_up(self):
        """Halves round up."""
        assert percentage(1, 8) == 13
        assert percentage(5, 200) == 3
        assert percentage(0, 0) == 0

    @pytest.mark.asyncio
    async def test_embed_canonical_intents(self, sample_intents, fake_embedder):
        """Each intent is embedded once from its identity text."""
        messages = []
        vectors = await embed_canonical_intents(
            fake_embedder, sample_intents[:2], on_progress=lambda m, p: messages.append((m, p))
        )

        assert [v.intent_id for v in vectors] == ["OwnershipTransfer", "ReportLostPet"]
        assert vectors[0].category == "Eierskap"
        assert vectors[0].embedding[0] == 1.0
        assert messages == [("Canonical: Embedding batch 1/1 (2/2)...", 70)]
