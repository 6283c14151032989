"""Runtime resolution of a user message to a canonical intent."""

import logging

from intent_engine.fuzzy import FuzzyLabelMatcher, log_fuzzy_match
from intent_engine.index import SemanticIndex
from intent_engine.normalization import is_normalization_enabled, normalize_input
from intent_engine.types import Resolution

logger = logging.getLogger(__name__)


class IntentResolver:
    """Normalize, match semantically, then try the fuzzy rescue.

    A message that neither stage resolves comes back with ``intent_id=None``
    and the semantic diagnostics; the resolver never guesses.
    """

    def __init__(
        self,
        index: SemanticIndex,
        fuzzy_matcher: FuzzyLabelMatcher | None = None,
        normalize: bool | None = None,
        threshold: float | None = None,
    ):
        """
        Initialize the resolver.

        Args:
            index: Semantic index to query.
            fuzzy_matcher: Fallback for the ambiguous band; None disables it.
            normalize: Run the normalization pipeline. Defaults to
                ``settings.enable_input_normalization``.
            threshold: Semantic match threshold. Defaults to
                ``settings.semantic_threshold``.
        """
        self.index = index
        self.fuzzy_matcher = fuzzy_matcher
        self.normalize = is_normalization_enabled() if normalize is None else normalize
        self.threshold = threshold

    async def resolve(self, message: str) -> Resolution:
        """
        Resolve one message.

        Raises:
            ValueError: If the message is empty.
        """
        if not message or not message.strip():
            raise ValueError("message is required")

        normalization = normalize_input(message) if self.normalize else None
        text = normalization["normalized"] if normalization else message.strip().lower()

        semantic = await self.index.find_semantic_match(text, self.threshold)
        if semantic["match"] is not None:
            return {
                "intent_id": semantic["match"]["intent_id"],
                "source": "semantic",
                "score": semantic["best_score"],
                "semantic_score": semantic["best_score"],
                "best_intent_id": semantic["best_intent_id"],
                "normalization": normalization,
                "match_detail": None,
            }

        fuzzy = None
        if self.fuzzy_matcher is not None:
            fuzzy = await self.fuzzy_matcher.fuzzy_label_fallback(text, semantic["best_score"])
            log_fuzzy_match(message, text, fuzzy)

        if fuzzy is not None:
            return {
                "intent_id": fuzzy["intent_id"],
                "source": "fuzzy",
                "score": fuzzy["fuzzy_score"],
                "semantic_score": semantic["best_score"],
                "best_intent_id": semantic["best_intent_id"],
                "normalization": normalization,
                "match_detail": fuzzy["match_detail"],
            }

        logger.debug(
            f"No confident match (best={semantic['best_intent_id']}, score={semantic['best_score']:.3f})"
        )
        return {
            "intent_id": None,
            "source": None,
            "score": 0.0,
            "semantic_score": semantic["best_score"],
            "best_intent_id": semantic["best_intent_id"],
            "normalization": normalization,
            "match_detail": None,
        }
