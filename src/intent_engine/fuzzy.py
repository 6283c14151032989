"""Edit-distance and token-overlap rescue for ambiguous semantic matches."""

import logging
import re
import time
from collections.abc import Callable, Iterable

from intent_engine.intent_text import derive_intent_label, split_keywords
from intent_engine.store.base import IntentCatalog
from intent_engine.types import FuzzyCandidate, FuzzyMatchResult

logger = logging.getLogger(__name__)

_NON_TOKEN = re.compile(r"[^a-zæøå0-9\s-]")
_SPLIT = re.compile(r"\s+")

KEYWORD_JACCARD_BOOST = 1.2
KEYWORD_EDIT_BOOST = 1.1
SHORT_TOKEN_LENGTH = 5


def levenshtein(a: str, b: str) -> int:
    """Edit distance with unit cost insert, delete and substitute."""
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            current.append(
                min(
                    previous[j] + 1,
                    current[j - 1] + 1,
                    previous[j - 1] + (ca != cb),
                )
            )
        previous = current
    return previous[-1]


def jaccard_similarity(a: set[str], b: set[str]) -> float:
    union = len(a | b)
    return len(a & b) / union if union else 0.0


def tokenize(text: str) -> list[str]:
    """Lowercase tokens of letters, digits, Norwegian letters and hyphens, longer than one char."""
    cleaned = _NON_TOKEN.sub("", text.lower())
    return [t for t in _SPLIT.split(cleaned) if len(t) > 1]


def _token_similarity(a: str, b: str, distance: int) -> float:
    return 1 - distance / max(len(a), len(b))


def score_candidate(message_tokens: list[str], candidate: FuzzyCandidate) -> tuple[float, str]:
    """
    Best fuzzy score of a message against one candidate.

    Returns:
        ``(score, detail)`` where detail names the comparison that produced
        the score; ``(0.0, "")`` when nothing qualifies.
    """
    max_score = 0.0
    detail = ""

    # Label tokens: distance 1 when either token is short, else distance 2
    for lt in candidate["label_tokens"]:
        for mt in message_tokens:
            short = len(lt) <= SHORT_TOKEN_LENGTH or len(mt) <= SHORT_TOKEN_LENGTH
            dist = levenshtein(mt, lt)
            if short and (dist > 1 or len(lt) < 3):
                continue
            if not short and dist > 2:
                continue
            score = _token_similarity(mt, lt, dist)
            if score > max_score:
                max_score = score
                detail = f'levenshtein: "{mt}"≈"{lt}" (dist={dist})'

    keywords = candidate["keywords"]
    if keywords:
        jaccard = jaccard_similarity(set(message_tokens), set(keywords))
        boosted = jaccard * KEYWORD_JACCARD_BOOST
        if boosted > max_score:
            max_score = boosted
            detail = f"jaccard: msgTokens∩keywords (score={jaccard:.3f})"

        for kw in keywords:
            if len(kw) < 3:
                continue
            for mt in message_tokens:
                dist = levenshtein(mt, kw)
                if dist > 2:
                    continue
                boosted = _token_similarity(mt, kw, dist) * KEYWORD_EDIT_BOOST
                if boosted > max_score:
                    max_score = boosted
                    detail = f'keyword-levenshtein: "{mt}"≈"{kw}" (dist={dist})'

    return max_score, detail


def build_candidates(intents: Iterable[dict]) -> list[FuzzyCandidate]:
    """Reduce catalog intents to label and keyword tokens."""
    candidates: list[FuzzyCandidate] = []
    for intent in intents:
        label = derive_intent_label(intent["intent_id"])
        candidates.append(
            {
                "intent_id": intent["intent_id"],
                "label": label,
                "label_tokens": tokenize(label),
                "keywords": split_keywords(intent.get("keywords")),
            }
        )
    return candidates


class FuzzyCandidateCache:
    """Time-based cache of fuzzy candidates, refreshed lazily on access.

    Edits to the catalog show up after at most ``ttl_seconds``. When a reload
    fails, a non-empty stale snapshot keeps serving; an empty one never does.
    """

    def __init__(
        self,
        catalog: IntentCatalog,
        ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if ttl_seconds is None:
            from intent_engine.config import settings

            ttl_seconds = settings.fuzzy_cache_ttl_seconds
        self.catalog = catalog
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._candidates: list[FuzzyCandidate] = []
        self._loaded_at: float | None = None

    def is_fresh(self) -> bool:
        if self._loaded_at is None or not self._candidates:
            return False
        return self._clock() - self._loaded_at < self.ttl_seconds

    def invalidate(self) -> None:
        self._loaded_at = None

    async def get(self) -> list[FuzzyCandidate]:
        if self.is_fresh():
            return self._candidates

        try:
            intents = await self.catalog.list_approved_canonical_intents()
        except Exception as e:
            if not self._candidates:
                raise
            logger.warning(f"Fuzzy candidate reload failed, serving stale cache: {e}")
            return self._candidates

        self._candidates = build_candidates(intents)
        self._loaded_at = self._clock()
        logger.debug(f"Loaded {len(self._candidates)} fuzzy candidates")
        return self._candidates


class FuzzyLabelMatcher:
    """Rescues messages whose semantic score falls in the ambiguous band."""

    def __init__(
        self,
        cache: FuzzyCandidateCache,
        low_bound: float | None = None,
        high_bound: float | None = None,
        min_score: float | None = None,
    ):
        from intent_engine.config import settings

        self.cache = cache
        self.low_bound = settings.fuzzy_low_bound if low_bound is None else low_bound
        self.high_bound = settings.semantic_threshold if high_bound is None else high_bound
        self.min_score = settings.fuzzy_min_score if min_score is None else min_score

    def in_band(self, semantic_score: float) -> bool:
        """True when ``low_bound < semantic_score < high_bound``."""
        return self.low_bound < semantic_score < self.high_bound

    async def fuzzy_label_fallback(
        self, normalized_message: str, semantic_score: float
    ) -> FuzzyMatchResult | None:
        """
        Match ``normalized_message`` against intent labels and keywords.

        Args:
            normalized_message: Output of the normalization pipeline.
            semantic_score: Best semantic similarity for the message.

        Returns:
            The highest-scoring intent at or above ``min_score``, or None when
            the score is outside the band or nothing qualifies.
        """
        if not self.in_band(semantic_score):
            return None

        candidates = await self.cache.get()
        message_tokens = tokenize(normalized_message)

        best: FuzzyMatchResult | None = None
        best_score = 0.0
        for candidate in candidates:
            score, detail = score_candidate(message_tokens, candidate)
            if score >= self.min_score and (best is None or score > best_score):
                best_score = score
                best = {
                    "intent_id": candidate["intent_id"],
                    "fuzzy_score": round(score, 3),
                    "match_detail": detail,
                }
        return best


def log_fuzzy_match(original: str, normalized: str, result: FuzzyMatchResult | None) -> None:
    """Audit line for a fuzzy rescue, only when runtime debugging is on."""
    from intent_engine.config import settings

    if not settings.runtime_debug or result is None:
        return
    logger.info(
        f'[Normalization] original="{original}" | normalized="{normalized}" | '
        f'fuzzyMatched="{result["intent_id"]}" | fuzzyScore={result["fuzzy_score"]} | '
        f"detail={result['match_detail']}"
    )
