"""Type definitions for the intent engine."""

from typing import Literal, TypedDict

from typing_extensions import NotRequired


class CanonicalIntent(TypedDict):
    """Approved canonical intent as returned by a catalog."""

    intent_id: str
    category: str
    subcategory: str | None
    description: str | None
    keywords: str | None
    actionable: bool
    approved: bool
    embedding: list[float] | None
    info_text: NotRequired[str | None]


class StagingDocument(TypedDict):
    """Historical support document used for discovery."""

    id: int | str
    subject: str | None
    description: str | None
    resolution: str | None
    # Classification metadata, only used by linkage discovery
    intent: NotRequired[str | None]
    intent_confidence: NotRequired[float | None]
    auto_close_possible: NotRequired[bool]
    follow_up_needed: NotRequired[bool]
    auto_closed: NotRequired[bool]


class SemanticMatch(TypedDict):
    """A scored canonical intent."""

    intent_id: str
    category: str
    subcategory: str | None
    actionable: bool
    similarity: float


class SemanticSearchResult(TypedDict):
    """Result of a best-match query against the semantic index."""

    match: SemanticMatch | None
    best_score: float
    best_intent_id: str | None


class NormalizationResult(TypedDict):
    """Result of the normalization pipeline."""

    original: str
    normalized: str
    changed: bool
    corrections: list[str]


class FuzzyCandidate(TypedDict):
    """Canonical intent reduced to tokens for fuzzy matching."""

    intent_id: str
    label: str
    label_tokens: list[str]
    keywords: list[str]


class FuzzyMatchResult(TypedDict):
    """A fuzzy rescue of an ambiguous semantic match."""

    intent_id: str
    fuzzy_score: float
    match_detail: str


class Resolution(TypedDict):
    """Final decision for one user message."""

    intent_id: str | None
    source: Literal["semantic", "fuzzy"] | None
    score: float
    semantic_score: float
    best_intent_id: str | None
    normalization: NormalizationResult | None
    match_detail: str | None


class DocumentSample(TypedDict):
    """Truncated cluster member shown for review."""

    document_id: int | str
    text: str


class CanonicalOverlap(TypedDict):
    """Similarity between a cluster centroid and a canonical intent."""

    intent_id: str
    similarity: float


class TopCluster(TypedDict):
    """Detailed view of one of the largest clusters."""

    cluster_id: int
    size: int
    keywords: list[str]
    samples: list[DocumentSample]
    canonical_overlap: list[CanonicalOverlap]
    suggested_label: str


class NewCandidateCluster(TypedDict):
    """Cluster not covered by the canonical catalog."""

    cluster_id: int
    size: int
    suggested_label: str
    keywords: list[str]
    top_documents: list[DocumentSample]


class ClusterReport(TypedDict):
    """Output of a staging clustering run."""

    total_documents: int
    total_embedded: int
    total_clusters: int
    noise_bucket_size: int
    top_clusters: list[TopCluster]
    canonical_overlap_pct: int
    new_candidate_clusters: list[NewCandidateCluster]


class QualityFlag(TypedDict):
    """Review hint attached to a linkage cluster."""

    flag: Literal["MIDDLE_ZONE", "HIGH_RISK", "HIGH_AUTOMATION_POTENTIAL"]
    detail: str


class NearestCanonical(TypedDict):
    """Closest canonical intent to a cluster centroid."""

    intent_id: str
    similarity: float
    category: str


class DiscoveryCluster(TypedDict):
    """Cluster produced by linkage discovery."""

    cluster_id: int
    cluster_size: int
    nearest_canonical: NearestCanonical
    avg_semantic_similarity_to_nearest: float
    auto_closeable_pct: int
    reopen_rate: int
    avg_confidence: float
    top_keywords: list[str]
    example_questions: list[str]
    suggested_label: str
    quality_flags: list[QualityFlag]
    sample_documents: list[DocumentSample]
    dominant_intent: str | None


class NoiseDocument(TypedDict):
    """Document that did not join any linkage cluster."""

    document_id: int | str
    question: str
    intent: str | None


class DiscoveryMetadata(TypedDict):
    """Counters for a linkage discovery run."""

    run_at: str
    source_documents: int
    eligible_documents: int
    embedded_documents: int
    total_clusters: int
    noise_documents: int
    processing_time_ms: int


class IntentDiscoveryResult(TypedDict):
    """Output of a linkage discovery run."""

    metadata: DiscoveryMetadata
    proposed_new_intents: list[DiscoveryCluster]
    map_to_existing: list[DiscoveryCluster]
    ambiguous_clusters: list[DiscoveryCluster]
    noise: list[NoiseDocument]
