"""Intent Engine - semantic intent resolution and discovery for support messages."""

from intent_engine.exceptions import IndexIntegrityError, IntentEngineError
from intent_engine.fuzzy import FuzzyCandidateCache, FuzzyLabelMatcher
from intent_engine.index import SemanticIndex
from intent_engine.resolver import IntentResolver

__all__ = [
    "SemanticIndex",
    "IntentResolver",
    "FuzzyCandidateCache",
    "FuzzyLabelMatcher",
    "IntentEngineError",
    "IndexIntegrityError",
]
__version__ = "0.1.0"
