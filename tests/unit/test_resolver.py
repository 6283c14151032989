"""Unit tests for the intent resolver."""

import pytest

from intent_engine.fuzzy import FuzzyCandidateCache, FuzzyLabelMatcher
from intent_engine.index import SemanticIndex
from intent_engine.resolver import IntentResolver
from intent_engine.store.base import InMemoryStore


@pytest.fixture
def catalog(sample_intents):
    return InMemoryStore([i for i in sample_intents if i["embedding"] is not None])


async def build_resolver(catalog, embedder, normalize=True, fuzzy=True):
    index = SemanticIndex(catalog, embedder, pilot_mode=lambda: False)
    await index.refresh()
    matcher = None
    if fuzzy:
        matcher = FuzzyLabelMatcher(
            FuzzyCandidateCache(catalog, ttl_seconds=120),
            low_bound=0.60,
            high_bound=0.78,
            min_score=0.75,
        )
    return IntentResolver(index, fuzzy_matcher=matcher, normalize=normalize, threshold=0.78)


class TestIntentResolver:
    """Test the resolution flow."""

    @pytest.mark.asyncio
    async def test_semantic_match(self, catalog, fake_embedder):
        """A confident semantic match is returned directly."""
        resolver = await build_resolver(catalog, fake_embedder)

        result = await resolver.resolve("Hvordan gjør jeg EIERSKIFTE?")

        assert result["intent_id"] == "OwnershipTransfer"
        assert result["source"] == "semantic"
        assert result["score"] == pytest.approx(1.0)
        assert result["match_detail"] is None

    @pytest.mark.asyncio
    async def test_normalization_enables_semantic_match(self, catalog, fake_embedder):
        """A misspelling is corrected before embedding."""
        resolver = await build_resolver(catalog, fake_embedder)

        result = await resolver.resolve("eier skifte på hunden")

        assert result["intent_id"] == "OwnershipTransfer"
        assert result["normalization"]["changed"] is True
        assert result["normalization"]["normalized"] == "eierskifte på hunden"

    @pytest.mark.asyncio
    async def test_without_normalization(self, catalog, fake_embedder):
        """With normalization off the misspelling is embedded as typed."""
        resolver = await build_resolver(catalog, fake_embedder, normalize=False)

        result = await resolver.resolve("eier skifte på hunden")

        assert result["intent_id"] is None
        assert result["normalization"] is None

    @pytest.mark.asyncio
    async def test_fuzzy_rescue(self, catalog, make_embedder, unit):
        """An ambiguous semantic score is rescued by a keyword hit."""
        embedder = make_embedder({"katt": [1.0, 1.0, 0, 0, 0, 0, 0, 0]})
        resolver = await build_resolver(catalog, embedder)

        result = await resolver.resolve("savnet katt")

        assert result["intent_id"] == "ReportLostPet"
        assert result["source"] == "fuzzy"
        assert result["score"] == pytest.approx(1.1)
        assert result["semantic_score"] == pytest.approx(0.7071, abs=1e-4)
        assert result["best_intent_id"] == "OwnershipTransfer"
        assert "savnet" in result["match_detail"]

    @pytest.mark.asyncio
    async def test_no_fuzzy_matcher(self, catalog, make_embedder):
        """Without a fuzzy matcher the ambiguous band stays unresolved."""
        embedder = make_embedder({"katt": [1.0, 1.0, 0, 0, 0, 0, 0, 0]})
        resolver = await build_resolver(catalog, embedder, fuzzy=False)

        result = await resolver.resolve("savnet katt")

        assert result["intent_id"] is None
        assert result["source"] is None

    @pytest.mark.asyncio
    async def test_unresolved_keeps_diagnostics(self, catalog, fake_embedder):
        """An unrelated message comes back unresolved with diagnostics."""
        resolver = await build_resolver(catalog, fake_embedder)

        result = await resolver.resolve("hva koster vaksine")

        assert result["intent_id"] is None
        assert result["source"] is None
        assert result["score"] == 0.0
        assert result["semantic_score"] == 0.0
        assert result["best_intent_id"] == "OwnershipTransfer"

    @pytest.mark.asyncio
    async def test_empty_message_rejected(self, catalog, fake_embedder):
        """Blank messages are rejected before any lookup."""
        resolver = await build_resolver(catalog, fake_embedder)

        with pytest.raises(ValueError, match="message is required"):
            await resolver.resolve("   ")
        assert fake_embedder.calls == 0
