"""Unit tests for the staging clustering pipeline."""

import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from intent_engine.discovery.staging import StagingClusterer
from intent_engine.store.base import InMemoryStore

THEMES = ["eierskifte", "savnet", "chipnummer", "faktura", "innlogging"]
STRAYS = ["alfa", "bravo", "charlie", "delta", "ekko", "foxtrot", "golf", "hotell", "india", "juliett"]
DIM = 16


def one_hot(i):
    v = [0.0] * DIM
    v[i] = 1.0
    return v


@pytest.fixture
def corpus_embedder(make_embedder):
    vectors = {word: one_hot(i) for i, word in enumerate(THEMES + STRAYS)}
    return make_embedder(vectors, dim=DIM)


@pytest.fixture
def documents():
    docs = []
    for word in THEMES:
        for i in range(18):
            docs.append(
                {
                    "id": len(docs) + 1,
                    "subject": word,
                    "description": f"<p>Kunden trenger hjelp med {word}</p>",
                    "resolution": None,
                }
            )
    for word in STRAYS:
        docs.append({"id": len(docs) + 1, "subject": word, "description": None, "resolution": None})
    return docs


@pytest.fixture
def catalog(sample_intents):
    return InMemoryStore(sample_intents[:2])


def clusterer(documents, catalog, embedder, **kwargs):
    return StagingClusterer(
        source=InMemoryStore(documents=documents), catalog=catalog, embedder=embedder, k=80, **kwargs
    )


class TestStagingClusterer:
    """Test the full staging pipeline."""

    @pytest.mark.asyncio
    async def test_report_counts(self, documents, catalog, corpus_embedder):
        """Themes become clusters and singletons go to the noise bucket."""
        report = await clusterer(documents, catalog, corpus_embedder).run()

        assert report["total_documents"] == 100
        assert report["total_embedded"] == 100
        assert report["total_clusters"] == 5
        assert report["noise_bucket_size"] == 10
        assert [c["size"] for c in report["top_clusters"]] == [18] * 5

    @pytest.mark.asyncio
    async def test_clusters_are_pure(self, documents, catalog, corpus_embedder):
        """Every sample in a cluster comes from one theme."""
        report = await clusterer(documents, catalog, corpus_embedder).run()

        for cluster in report["top_clusters"]:
            subjects = {s["text"].split(" | ")[0] for s in cluster["samples"]}
            assert len(subjects) == 1
            assert len(cluster["samples"]) == 5
            assert cluster["keywords"][0] in THEMES

    @pytest.mark.asyncio
    async def test_overlap_and_fallback_labels(self, documents, catalog, corpus_embedder):
        """Covered clusters point at their intent and the rest are marked new."""
        report = await clusterer(documents, catalog, corpus_embedder).run()

        labels = {c["keywords"][0]: c["suggested_label"] for c in report["top_clusters"]}
        assert labels["eierskifte"] == "→ OwnershipTransfer"
        assert labels["savnet"] == "→ ReportLostPet"
        assert labels["chipnummer"] == "NEW: chipnummer-kunden-trenger"
        assert report["canonical_overlap_pct"] == 40

        first = report["top_clusters"][0]
        assert first["canonical_overlap"][0] == {"intent_id": "OwnershipTransfer", "similarity": pytest.approx(1.0)}
        assert len(first["canonical_overlap"]) == 2

    @pytest.mark.asyncio
    async def test_new_candidates(self, documents, catalog, corpus_embedder):
        """Uncovered clusters are expanded with member documents."""
        report = await clusterer(documents, catalog, corpus_embedder).run()

        candidates = report["new_candidate_clusters"]
        assert [c["suggested_label"] for c in candidates] == [
            "chipnummer-kunden-trenger",
            "faktura-kunden-trenger",
            "innlogging-kunden-trenger",
        ]
        assert len(candidates[0]["top_documents"]) == 10
        assert candidates[0]["top_documents"][0]["document_id"] == 37

    @pytest.mark.asyncio
    async def test_progress_sequence(self, documents, catalog, corpus_embedder):
        """Progress is reported per phase in increasing order."""
        updates = []
        await clusterer(documents, catalog, corpus_embedder).run(
            on_progress=lambda msg, pct: updates.append((msg, pct))
        )

        percents = [pct for _, pct in updates]
        assert percents == sorted(percents)
        assert updates[0] == ("Loading staging documents...", 0)
        assert ("Found 15 clusters. Analyzing...", 55) in updates
        assert updates[-1] == ("Done!", 100)

    @pytest.mark.asyncio
    async def test_generated_labels_applied(self, documents, catalog, corpus_embedder):
        """Generated labels refine the fallback labels."""
        generator = MagicMock()
        generator.generate_labels = AsyncMock(
            return_value='```json\n{"labels": {"0": "Eierskifte av hund", "2": "Chip problemer"}}\n```'
        )

        report = await clusterer(documents, catalog, corpus_embedder, label_generator=generator).run()

        labels = {c["cluster_id"]: c["suggested_label"] for c in report["top_clusters"]}
        assert labels[0] == "→ OwnershipTransfer (Eierskifte av hund)"
        assert labels[2] == "NEW: Chip problemer"
        prompt = generator.generate_labels.await_args.args[0]
        assert "Cluster 0 (18 tickets)" in prompt

    @pytest.mark.asyncio
    async def test_label_failure_is_non_fatal(self, documents, catalog, corpus_embedder, caplog):
        """A labeling failure keeps fallback labels and the run succeeds."""
        generator = MagicMock()
        generator.generate_labels = AsyncMock(side_effect=TimeoutError("slow model"))

        with caplog.at_level(logging.WARNING, logger="intent_engine.discovery.staging"):
            report = await clusterer(documents, catalog, corpus_embedder, label_generator=generator).run()

        assert report["top_clusters"][0]["suggested_label"] == "→ OwnershipTransfer"
        assert "slow model" in caplog.text

    @pytest.mark.asyncio
    async def test_malformed_labels_are_non_fatal(self, documents, catalog, corpus_embedder):
        """Unparseable label output keeps fallback labels."""
        generator = MagicMock()
        generator.generate_labels = AsyncMock(return_value="I cannot help with that")

        report = await clusterer(documents, catalog, corpus_embedder, label_generator=generator).run()

        assert report["top_clusters"][2]["suggested_label"].startswith("NEW: chipnummer")

    @pytest.mark.asyncio
    async def test_empty_corpus(self, catalog, corpus_embedder):
        """An empty corpus yields an empty report."""
        report = await clusterer([], catalog, corpus_embedder).run()

        assert report == {
            "total_documents": 0,
            "total_embedded": 0,
            "total_clusters": 0,
            "noise_bucket_size": 0,
            "top_clusters": [],
            "canonical_overlap_pct": 0,
            "new_candidate_clusters": [],
        }

    @pytest.mark.asyncio
    async def test_empty_catalog(self, documents, corpus_embedder):
        """Without canonical intents every cluster is new."""
        report = await clusterer(documents, InMemoryStore([]), corpus_embedder).run()

        assert report["canonical_overlap_pct"] == 0
        assert all(c["suggested_label"].startswith("NEW:") for c in report["top_clusters"])
        assert all(c["canonical_overlap"] == [] for c in report["top_clusters"])
        assert len(report["new_candidate_clusters"]) == 5

    @pytest.mark.asyncio
    async def test_embedding_failure_propagates(self, documents, catalog, corpus_embedder):
        """Provider failures abort the run."""
        corpus_embedder.embed_many = AsyncMock(side_effect=RuntimeError("provider down"))

        with pytest.raises(RuntimeError, match="provider down"):
            await clusterer(documents, catalog, corpus_embedder).run()
