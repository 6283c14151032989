"""K-means discovery over the staging corpus."""

import logging
from dataclasses import dataclass

import numpy as np

from intent_engine.discovery.batching import batch_embed
from intent_engine.discovery.keywords import extract_keywords
from intent_engine.discovery.kmeans import group_members, kmeans_cluster
from intent_engine.discovery.labeling import (
    LabelGenerator,
    apply_generated_labels,
    build_label_prompt,
    parse_cluster_labels,
)
from intent_engine.discovery.overlap import (
    CanonicalVector,
    embed_canonical_intents,
    is_covered,
    overlap_percentage,
    top_canonical_matches,
)
from intent_engine.discovery.text import build_document_text
from intent_engine.embeddings.base import Embedder
from intent_engine.progress import ProgressCallback, report_progress
from intent_engine.store.base import DocumentSource, IntentCatalog
from intent_engine.types import (
    ClusterReport,
    DocumentSample,
    NewCandidateCluster,
    StagingDocument,
    TopCluster,
)

logger = logging.getLogger(__name__)


@dataclass
class _Cluster:
    cluster_id: int
    members: list[int]
    keywords: list[str]
    samples: list[DocumentSample]
    centroid: np.ndarray

    @property
    def size(self) -> int:
        return len(self.members)


class StagingClusterer:
    """Groups staging documents into themes and compares them with the catalog.

    A run is read-only: nothing is written back to the catalog or the corpus.
    """

    def __init__(
        self,
        source: DocumentSource,
        catalog: IntentCatalog,
        embedder: Embedder,
        label_generator: LabelGenerator | None = None,
        k: int | None = None,
        max_iter: int | None = None,
        batch_size: int | None = None,
        noise_threshold: int | None = None,
        overlap_threshold: float | None = None,
        top_cluster_count: int | None = None,
        new_candidate_count: int | None = None,
    ):
        """
        Initialize the clusterer.

        Args:
            source: Staging corpus.
            catalog: Approved canonical intents used for overlap.
            embedder: Provider for both documents and intents.
            label_generator: Optional text generator for readable labels.
            k: Requested cluster count. Defaults to config.
            max_iter: k-means iteration budget. Defaults to config.
            batch_size: Texts per embedding call. Defaults to config.
            noise_threshold: Clusters smaller than this go to the noise bucket.
            overlap_threshold: Centroid similarity at which the catalog covers a cluster.
            top_cluster_count: Number of clusters reported in detail.
            new_candidate_count: Number of uncovered clusters expanded for review.
        """
        from intent_engine.config import settings

        self.source = source
        self.catalog = catalog
        self.embedder = embedder
        self.label_generator = label_generator
        self.k = k if k is not None else settings.cluster_k
        self.max_iter = max_iter if max_iter is not None else settings.cluster_max_iter
        self.batch_size = batch_size or settings.embed_batch_size
        self.noise_threshold = (
            noise_threshold if noise_threshold is not None else settings.noise_threshold
        )
        self.overlap_threshold = (
            overlap_threshold if overlap_threshold is not None else settings.overlap_threshold
        )
        self.top_cluster_count = top_cluster_count or settings.top_cluster_count
        self.new_candidate_count = new_candidate_count or settings.new_candidate_count
        self.keywords_per_cluster = settings.keywords_per_cluster
        self.sample_count = settings.cluster_sample_count
        self.candidate_document_count = settings.candidate_document_count

    async def run(self, on_progress: ProgressCallback | None = None) -> ClusterReport:
        """
        Run the full pipeline once.

        Args:
            on_progress: Optional sink for ``(message, percent)`` updates.

        Returns:
            Cluster report.
        """
        report_progress(on_progress, "Loading staging documents...", 0)
        documents = await self.source.list_staging_documents()

        report_progress(
            on_progress, f"Loaded {len(documents)} documents. Generating embeddings...", 2
        )
        texts = [build_document_text(document) for document in documents]
        embeddings = await batch_embed(
            self.embedder,
            texts,
            batch_size=self.batch_size,
            on_progress=on_progress,
            progress_span=(2, 40),
        )

        report_progress(
            on_progress,
            f"Embeddings generated for {len(embeddings)} documents. Running clustering...",
            45,
        )
        result = kmeans_cluster(embeddings, self.k, max_iter=self.max_iter)
        groups = group_members(result.labels)

        report_progress(on_progress, f"Found {len(groups)} clusters. Analyzing...", 55)
        clusters, noise = self._summarize(groups, result.centroids, documents, texts)

        report_progress(on_progress, "Loading canonical intents for overlap analysis...", 65)
        intents = await self.catalog.list_approved_canonical_intents()

        report_progress(on_progress, "Generating canonical intent embeddings...", 70)
        canonicals = await embed_canonical_intents(
            self.embedder, intents, batch_size=self.batch_size, on_progress=on_progress
        )

        report_progress(on_progress, "Computing overlap with canonical intents...", 80)
        top_clusters = [self._top_cluster(cluster, canonicals) for cluster in clusters[: self.top_cluster_count]]
        overlap_pct = overlap_percentage(
            [cluster.centroid for cluster in clusters], canonicals, self.overlap_threshold
        )

        report_progress(on_progress, "Identifying new candidate clusters...", 90)
        candidates = [
            self._new_candidate(cluster, documents, texts)
            for cluster in clusters
            if not is_covered(cluster.centroid, canonicals, self.overlap_threshold)
        ][: self.new_candidate_count]

        if self.label_generator is not None and top_clusters:
            report_progress(on_progress, "Generating cluster labels...", 92)
            await self._label(top_clusters)

        report_progress(on_progress, "Done!", 100)

        return {
            "total_documents": len(documents),
            "total_embedded": len(embeddings),
            "total_clusters": len(clusters),
            "noise_bucket_size": noise,
            "top_clusters": top_clusters,
            "canonical_overlap_pct": overlap_pct,
            "new_candidate_clusters": candidates,
        }

    def _summarize(
        self,
        groups: dict[int, list[int]],
        centroids: np.ndarray,
        documents: list[StagingDocument],
        texts: list[str],
    ) -> tuple[list[_Cluster], int]:
        clusters: list[_Cluster] = []
        noise = 0
        for cluster_id, members in groups.items():
            if len(members) < self.noise_threshold:
                noise += len(members)
                continue
            clusters.append(
                _Cluster(
                    cluster_id=cluster_id,
                    members=members,
                    keywords=extract_keywords(
                        [texts[i] for i in members], top_n=self.keywords_per_cluster
                    ),
                    samples=[
                        {"document_id": documents[i]["id"], "text": texts[i][:200]}
                        for i in members[: self.sample_count]
                    ],
                    centroid=centroids[cluster_id],
                )
            )

        # Stable, so equal sizes keep first-appearance order
        clusters.sort(key=lambda cluster: cluster.size, reverse=True)
        logger.info(f"{len(clusters)} clusters kept, {noise} documents in noise bucket")
        return clusters, noise

    def _top_cluster(self, cluster: _Cluster, canonicals: list[CanonicalVector]) -> TopCluster:
        matches = top_canonical_matches(cluster.centroid, canonicals, n=3)
        if matches and matches[0]["similarity"] >= self.overlap_threshold:
            label = f"→ {matches[0]['intent_id']}"
        else:
            label = f"NEW: {'-'.join(cluster.keywords[:3])}"
        return {
            "cluster_id": cluster.cluster_id,
            "size": cluster.size,
            "keywords": cluster.keywords,
            "samples": cluster.samples,
            "canonical_overlap": matches,
            "suggested_label": label,
        }

    def _new_candidate(
        self, cluster: _Cluster, documents: list[StagingDocument], texts: list[str]
    ) -> NewCandidateCluster:
        return {
            "cluster_id": cluster.cluster_id,
            "size": cluster.size,
            "suggested_label": "-".join(cluster.keywords[:3]),
            "keywords": cluster.keywords,
            "top_documents": [
                {"document_id": documents[i]["id"], "text": texts[i][:300]}
                for i in cluster.members[: self.candidate_document_count]
            ],
        }

    async def _label(self, top_clusters: list[TopCluster]) -> None:
        # Labels are cosmetic; any failure leaves the fallback labels in place
        try:
            reply = await self.label_generator.generate_labels(build_label_prompt(top_clusters))
            applied = apply_generated_labels(top_clusters, parse_cluster_labels(reply))
            logger.info(f"Applied generated labels to {applied} clusters")
        except Exception as e:
            logger.warning(f"Cluster labeling failed, keeping fallback labels: {e}")
