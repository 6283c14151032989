"""In-memory semantic index over approved canonical intents."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field, replace

import numpy as np

from intent_engine.embeddings.base import Embedder
from intent_engine.exceptions import IndexIntegrityError
from intent_engine.store.base import IntentCatalog
from intent_engine.types import SemanticMatch, SemanticSearchResult
from intent_engine.vectors import cosine_similarity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IndexedIntent:
    """Lightweight record kept per loaded intent."""

    intent_id: str
    category: str
    subcategory: str | None
    actionable: bool
    embedding: np.ndarray


@dataclass(frozen=True)
class IndexSnapshot:
    """Immutable view served to readers until the next refresh swaps it."""

    entries: tuple[IndexedIntent, ...] = ()
    ready: bool = False
    missing_intent_ids: tuple[str, ...] = field(default=())

    @property
    def size(self) -> int:
        return len(self.entries)


def _as_match(entry: IndexedIntent, similarity: float) -> SemanticMatch:
    return {
        "intent_id": entry.intent_id,
        "category": entry.category,
        "subcategory": entry.subcategory,
        "actionable": entry.actionable,
        "similarity": similarity,
    }


class SemanticIndex:
    """Linear-scan cosine index over the approved catalog.

    Catalogs hold tens to low hundreds of intents, so every query scans the
    whole snapshot. Refresh builds a new snapshot and swaps the reference in
    one assignment; queries read the reference once and never block.
    """

    def __init__(
        self,
        catalog: IntentCatalog,
        embedder: Embedder,
        pilot_mode: Callable[[], bool] | None = None,
        expected_dim: int | None = None,
    ):
        """
        Initialize the index.

        Args:
            catalog: Source of approved canonical intents.
            embedder: Provider used to embed query text.
            pilot_mode: Callable returning the process-wide pilot flag.
                Defaults to ``settings.pilot_mode``.
            expected_dim: Required embedding dimension. Defaults to the
                embedder's ``dim``.
        """
        self.catalog = catalog
        self.embedder = embedder
        self.expected_dim = expected_dim
        if pilot_mode is None:
            from intent_engine.config import settings

            pilot_mode = lambda: settings.pilot_mode  # noqa: E731
        self._pilot_mode = pilot_mode
        self._snapshot = IndexSnapshot()

    @property
    def snapshot(self) -> IndexSnapshot:
        return self._snapshot

    async def refresh(self) -> int:
        """
        Rebuild the snapshot from the catalog.

        Returns:
            Number of intents loaded.

        Raises:
            IndexIntegrityError: If approved intents lack embeddings in pilot
                mode. The previous snapshot stays in place, marked not ready.
        """
        approved = await self.catalog.list_approved_canonical_intents()

        dim = self.expected_dim if self.expected_dim is not None else self.embedder.dim
        entries: list[IndexedIntent] = []
        missing: list[str] = []
        for intent in approved:
            raw = intent.get("embedding")
            vector = np.asarray(raw, dtype=np.float64) if raw is not None else None
            if vector is not None and vector.ndim == 1 and vector.size > 0:
                if vector.shape[0] == dim:
                    entries.append(
                        IndexedIntent(
                            intent_id=intent["intent_id"],
                            category=intent.get("category") or "",
                            subcategory=intent.get("subcategory"),
                            actionable=bool(intent.get("actionable")),
                            embedding=vector,
                        )
                    )
                    continue
                logger.warning(
                    f"[IntentIndex] {intent['intent_id']} has embedding dimension "
                    f"{vector.shape[0]}, expected {dim}"
                )
            missing.append(intent["intent_id"])

        if missing and self._pilot_mode():
            self._snapshot = replace(self._snapshot, ready=False, missing_intent_ids=tuple(missing))
            error = IndexIntegrityError(missing)
            logger.error(f"[IntentIndex] FATAL: {error}")
            raise error

        # Outside pilot mode a partial index still serves
        ready = len(entries) > 0
        self._snapshot = IndexSnapshot(
            entries=tuple(entries),
            ready=ready,
            missing_intent_ids=tuple(missing),
        )

        logger.info(
            f"[IntentIndex] Approved: {len(approved)} | Loaded embeddings: {len(entries)} | "
            f"Missing: {len(missing)} | Ready: {ready}"
        )
        if missing:
            logger.error(
                f"[IntentIndex] CRITICAL: {len(missing)} approved intents have null "
                f"embeddings: {', '.join(missing)}"
            )
        return len(entries)

    def is_ready(self) -> bool:
        return self._snapshot.ready

    def get_index_size(self) -> int:
        return self._snapshot.size

    def get_approved_intent_ids(self) -> list[str]:
        return [entry.intent_id for entry in self._snapshot.entries]

    def get_missing_intent_ids(self) -> list[str]:
        """Approved intents skipped by the last refresh for lack of a usable embedding."""
        return list(self._snapshot.missing_intent_ids)

    async def find_semantic_match(
        self, text: str, threshold: float | None = None
    ) -> SemanticSearchResult:
        """
        Find the closest intent to ``text``.

        Args:
            text: Message to resolve.
            threshold: Minimum similarity for a match. Defaults to
                ``settings.semantic_threshold``.

        Returns:
            The match when the best score reaches the threshold, otherwise
            ``match=None`` with the best score and candidate for diagnostics.
        """
        if threshold is None:
            from intent_engine.config import settings

            threshold = settings.semantic_threshold

        snapshot = self._snapshot
        if not snapshot.entries:
            return {"match": None, "best_score": 0.0, "best_intent_id": None}

        query = await self.embedder.embed(text)

        best_entry: IndexedIntent | None = None
        best_score = float("-inf")
        for entry in snapshot.entries:
            score = cosine_similarity(query, entry.embedding)
            # Strictly greater: the first-seen intent wins ties
            if score > best_score:
                best_score = score
                best_entry = entry

        best_intent_id = best_entry.intent_id if best_entry else None
        if best_entry is not None and best_score >= threshold:
            return {
                "match": _as_match(best_entry, best_score),
                "best_score": best_score,
                "best_intent_id": best_intent_id,
            }
        return {
            "match": None,
            "best_score": best_score if best_score > 0 else 0.0,
            "best_intent_id": best_intent_id,
        }

    async def find_top_n_semantic_matches(self, text: str, n: int | None = None) -> list[SemanticMatch]:
        """Score every intent against ``text`` and return the ``n`` best, highest first."""
        if n is None:
            from intent_engine.config import settings

            n = settings.top_n

        snapshot = self._snapshot
        if not snapshot.entries:
            return []

        query = await self.embedder.embed(text)
        scored = [
            _as_match(entry, cosine_similarity(query, entry.embedding)) for entry in snapshot.entries
        ]
        scored.sort(key=lambda m: m["similarity"], reverse=True)
        return scored[:n]

    def __repr__(self) -> str:
        """String representation."""
        return f"SemanticIndex(size={self.get_index_size()}, ready={self.is_ready()})"
