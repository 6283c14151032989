"""Single-linkage intent discovery over classified documents.

Documents are linked whenever their embeddings are close enough, and each
connected component of sufficient size becomes a proposed intent. Clusters
are then sorted into three buckets by how close their centroid sits to the
nearest approved canonical intent.
"""

import logging
import time
from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone

import numpy as np

from intent_engine.discovery.batching import batch_embed
from intent_engine.discovery.keywords import extract_keywords
from intent_engine.discovery.overlap import percentage
from intent_engine.discovery.text import EMPTY_PLACEHOLDER, NO_CONTENTS, strip_html
from intent_engine.embeddings.base import Embedder
from intent_engine.intent_text import build_intent_embedding_text
from intent_engine.progress import ProgressCallback, report_progress
from intent_engine.store.base import DocumentSource, IntentCatalog
from intent_engine.types import (
    CanonicalIntent,
    DiscoveryCluster,
    IntentDiscoveryResult,
    NearestCanonical,
    QualityFlag,
    StagingDocument,
)
from intent_engine.vectors import cosine_similarity, mean_vector, normalize_rows

logger = logging.getLogger(__name__)

# Nearest-canonical bands used for bucketing and the MIDDLE_ZONE flag
MAP_THRESHOLD = 0.78
AMBIGUOUS_THRESHOLD = 0.65

HIGH_RISK_REOPEN_PCT = 15
HIGH_AUTOMATION_PCT = 70
# Product name appears in nearly every ticket
DISCOVERY_STOPWORDS = frozenset({"dyreid"})

NOISE_LISTED = 50

_BLOCK_ROWS = 512


@dataclass
class LinkageResult:
    """Component assignment; ``-1`` marks noise."""

    labels: np.ndarray
    centroids: dict[int, np.ndarray]


class _UnionFind:
    def __init__(self, n: int):
        self.parent = list(range(n))
        self.rank = [0] * n

    def find(self, x: int) -> int:
        root = x
        while self.parent[root] != root:
            root = self.parent[root]
        while self.parent[x] != root:
            self.parent[x], x = root, self.parent[x]
        return root

    def union(self, x: int, y: int) -> None:
        rx, ry = self.find(x), self.find(y)
        if rx == ry:
            return
        if self.rank[rx] < self.rank[ry]:
            rx, ry = ry, rx
        self.parent[ry] = rx
        if self.rank[rx] == self.rank[ry]:
            self.rank[rx] += 1


def linkage_clustering(
    embeddings: np.ndarray,
    similarity_threshold: float = 0.65,
    min_cluster_size: int = 5,
) -> LinkageResult:
    """
    Connected components of the graph linking pairs with similarity >= threshold.

    Components with fewer than ``min_cluster_size`` members are labelled
    ``-1``. Cluster ids are assigned in order of each component's first
    member; a centroid is the mean of the member vectors.
    """
    data = np.asarray(embeddings, dtype=np.float64)
    n = data.shape[0]
    labels = np.full(n, -1, dtype=int)
    if n == 0:
        return LinkageResult(labels=labels, centroids={})

    unit = normalize_rows(data)
    forest = _UnionFind(n)
    # Pairwise similarities in row blocks to bound memory
    for start in range(0, n, _BLOCK_ROWS):
        block = unit[start:start + _BLOCK_ROWS] @ unit.T
        rows, cols = np.nonzero(block >= similarity_threshold)
        for row, col in zip(rows.tolist(), cols.tolist()):
            i = start + row
            if col > i:
                forest.union(i, col)

    components: dict[int, list[int]] = {}
    for i in range(n):
        components.setdefault(forest.find(i), []).append(i)

    centroids: dict[int, np.ndarray] = {}
    for members in components.values():
        if len(members) < min_cluster_size:
            continue
        cluster_id = len(centroids)
        labels[members] = cluster_id
        centroids[cluster_id] = mean_vector(data[members])

    logger.info(
        f"Linkage clustering: n={n} clusters={len(centroids)} "
        f"noise={int(np.count_nonzero(labels == -1))}"
    )
    return LinkageResult(labels=labels, centroids=centroids)


def build_question_text(document: StagingDocument, max_question: int = 400) -> str:
    """Subject plus the HTML-stripped question truncated to ``max_question`` characters."""
    parts: list[str] = []
    subject = document.get("subject")
    if subject and subject != NO_CONTENTS:
        parts.append(subject.strip())
    question = strip_html(document.get("description") or "")
    if question and question != NO_CONTENTS:
        parts.append(question[:max_question])
    return " | ".join(parts) or EMPTY_PLACEHOLDER


def is_eligible(document: StagingDocument, approved_ids: set[str]) -> bool:
    """Whether a document should take part in linkage discovery."""
    if document.get("auto_closed"):
        return False
    if document.get("intent") and document["intent"] in approved_ids:
        return False
    question = (document.get("description") or "").strip()
    if not question or question == NO_CONTENTS:
        return False
    lowered = question.lower()
    if "bekreftelse" in lowered and len(lowered) < 30:
        return False
    if "automatisk svar" in lowered or "auto-svar" in lowered:
        return False
    return True


def quality_flags(nearest: NearestCanonical, reopen_rate: int, auto_closeable_pct: int) -> list[QualityFlag]:
    flags: list[QualityFlag] = []
    similarity = nearest["similarity"]
    if AMBIGUOUS_THRESHOLD <= similarity < MAP_THRESHOLD:
        flags.append(
            {
                "flag": "MIDDLE_ZONE",
                "detail": f"Similarity {similarity:.3f} to {nearest['intent_id']}, needs manual verification",
            }
        )
    if reopen_rate > HIGH_RISK_REOPEN_PCT:
        flags.append(
            {
                "flag": "HIGH_RISK",
                "detail": f"Reopen/follow-up rate {reopen_rate}% indicates unresolved issues",
            }
        )
    if auto_closeable_pct > HIGH_AUTOMATION_PCT:
        flags.append(
            {
                "flag": "HIGH_AUTOMATION_POTENTIAL",
                "detail": f"{auto_closeable_pct}% auto-closeable, strong candidate for automation",
            }
        )
    return flags


def _nearest_canonical(
    centroid: np.ndarray, canonicals: list[tuple[CanonicalIntent, np.ndarray]]
) -> NearestCanonical:
    nearest: NearestCanonical = {"intent_id": "NONE", "similarity": 0.0, "category": ""}
    for intent, vector in canonicals:
        similarity = cosine_similarity(centroid, vector)
        if similarity > nearest["similarity"]:
            nearest = {
                "intent_id": intent["intent_id"],
                "similarity": similarity,
                "category": intent.get("category") or "",
            }
    return nearest


class IntentDiscovery:
    """Proposes new intents from documents the catalog does not yet cover."""

    def __init__(
        self,
        source: DocumentSource,
        catalog: IntentCatalog,
        embedder: Embedder,
        similarity_threshold: float | None = None,
        min_cluster_size: int | None = None,
        max_documents: int | None = None,
        batch_size: int | None = None,
        clock: Callable[[], float] = time.perf_counter,
    ):
        """
        Initialize linkage discovery.

        Args:
            source: Classified document corpus.
            catalog: Approved canonical intents used for bucketing.
            embedder: Provider for both documents and intents.
            similarity_threshold: Cosine similarity at which two documents are linked.
            min_cluster_size: Components smaller than this are noise.
            max_documents: Cap on eligible documents per run.
            batch_size: Texts per embedding call. Defaults to config.
            clock: Monotonic clock in seconds used for processing time.
        """
        from intent_engine.config import settings

        self.source = source
        self.catalog = catalog
        self.embedder = embedder
        self.similarity_threshold = (
            similarity_threshold
            if similarity_threshold is not None
            else settings.linkage_similarity_threshold
        )
        self.min_cluster_size = min_cluster_size or settings.linkage_min_cluster_size
        self.max_documents = max_documents or settings.linkage_max_documents
        self.batch_size = batch_size or settings.embed_batch_size
        self.clock = clock

    async def run(self, on_progress: ProgressCallback | None = None) -> IntentDiscoveryResult:
        """
        Run linkage discovery once.

        Args:
            on_progress: Optional sink for ``(message, percent)`` updates.

        Returns:
            Clusters split into proposed, mapped and ambiguous buckets, plus noise.
        """
        started = self.clock()
        run_at = datetime.now(timezone.utc).isoformat()

        report_progress(on_progress, "Loading source documents...", 0)
        source_documents = await self.source.list_staging_documents()
        intents = await self.catalog.list_approved_canonical_intents()
        approved_ids = {intent["intent_id"] for intent in intents}

        documents = [d for d in source_documents if is_eligible(d, approved_ids)][: self.max_documents]
        report_progress(
            on_progress, f"After filtering: {len(documents)} documents eligible for clustering", 8
        )

        def metadata(embedded: int, clusters: int, noise: int):
            return {
                "run_at": run_at,
                "source_documents": len(source_documents),
                "eligible_documents": len(documents),
                "embedded_documents": embedded,
                "total_clusters": clusters,
                "noise_documents": noise,
                "processing_time_ms": int((self.clock() - started) * 1000),
            }

        if not documents:
            report_progress(on_progress, "Intent discovery complete!", 100)
            return {
                "metadata": metadata(0, 0, 0),
                "proposed_new_intents": [],
                "map_to_existing": [],
                "ambiguous_clusters": [],
                "noise": [],
            }

        texts = [build_question_text(d) for d in documents]
        embeddings = await batch_embed(
            self.embedder,
            texts,
            batch_size=self.batch_size,
            on_progress=on_progress,
            progress_span=(10, 50),
        )

        report_progress(
            on_progress,
            f"Embeddings generated for {len(embeddings)} documents. Running linkage clustering...",
            50,
        )
        result = linkage_clustering(embeddings, self.similarity_threshold, self.min_cluster_size)
        noise_indices = [i for i, label in enumerate(result.labels.tolist()) if label == -1]

        report_progress(
            on_progress,
            f"Found {len(result.centroids)} clusters, {len(noise_indices)} noise points. "
            "Loading canonical intents...",
            60,
        )
        canonicals: list[tuple[CanonicalIntent, np.ndarray]] = []
        if intents:
            report_progress(on_progress, "Embedding canonical intents for comparison...", 65)
            vectors = await batch_embed(
                self.embedder,
                [build_intent_embedding_text(intent) for intent in intents],
                batch_size=self.batch_size,
            )
            canonicals = list(zip(intents, vectors))

        report_progress(on_progress, "Analyzing clusters and computing quality flags...", 75)
        buckets: dict[str, list[DiscoveryCluster]] = {
            "map_to_existing": [],
            "ambiguous_clusters": [],
            "proposed_new_intents": [],
        }
        for cluster_id, centroid in result.centroids.items():
            members = np.flatnonzero(result.labels == cluster_id).tolist()
            cluster = self._describe(cluster_id, members, centroid, documents, texts, canonicals)
            similarity = cluster["nearest_canonical"]["similarity"]
            if similarity >= MAP_THRESHOLD:
                buckets["map_to_existing"].append(cluster)
            elif similarity >= AMBIGUOUS_THRESHOLD:
                buckets["ambiguous_clusters"].append(cluster)
            else:
                buckets["proposed_new_intents"].append(cluster)

        for clusters in buckets.values():
            clusters.sort(key=lambda c: c["cluster_size"], reverse=True)

        noise = [
            {
                "document_id": documents[i]["id"],
                "question": texts[i][:200],
                "intent": documents[i].get("intent"),
            }
            for i in noise_indices[:NOISE_LISTED]
        ]

        report_progress(on_progress, "Intent discovery complete!", 100)
        return {
            "metadata": metadata(len(embeddings), len(result.centroids), len(noise_indices)),
            "proposed_new_intents": buckets["proposed_new_intents"],
            "map_to_existing": buckets["map_to_existing"],
            "ambiguous_clusters": buckets["ambiguous_clusters"],
            "noise": noise,
        }

    def _describe(
        self,
        cluster_id: int,
        members: list[int],
        centroid: np.ndarray,
        documents: list[StagingDocument],
        texts: list[str],
        canonicals: list[tuple[CanonicalIntent, np.ndarray]],
    ) -> DiscoveryCluster:
        size = len(members)
        nearest = _nearest_canonical(centroid, canonicals)
        auto_closeable_pct = percentage(
            sum(1 for i in members if documents[i].get("auto_close_possible")), size
        )
        reopen_rate = percentage(
            sum(1 for i in members if documents[i].get("follow_up_needed")), size
        )
        avg_confidence = sum(
            float(documents[i].get("intent_confidence") or 0.0) for i in members
        ) / size

        keywords = extract_keywords(
            [texts[i] for i in members], top_n=10, extra_stopwords=DISCOVERY_STOPWORDS
        )
        intent_counts = Counter(documents[i]["intent"] for i in members if documents[i].get("intent"))
        # most_common keeps first-seen order among equal counts
        dominant = intent_counts.most_common(1)[0][0] if intent_counts else None

        return {
            "cluster_id": cluster_id,
            "cluster_size": size,
            "nearest_canonical": nearest,
            "avg_semantic_similarity_to_nearest": round(nearest["similarity"], 3),
            "auto_closeable_pct": auto_closeable_pct,
            "reopen_rate": reopen_rate,
            "avg_confidence": round(avg_confidence, 2),
            "top_keywords": keywords,
            "example_questions": [texts[i].split(" | ")[0][:150] for i in members[:3]],
            "suggested_label": dominant or "-".join(keywords[:3]),
            "quality_flags": quality_flags(nearest, reopen_rate, auto_closeable_pct),
            "sample_documents": [
                {"document_id": documents[i]["id"], "text": texts[i][:200]} for i in members[:5]
            ],
            "dominant_intent": dominant,
        }
