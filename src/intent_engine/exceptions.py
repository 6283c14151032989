"""Exceptions raised by the intent engine."""


class IntentEngineError(Exception):
    """Base class for intent engine errors."""


class IndexIntegrityError(IntentEngineError):
    """Approved intents are missing embeddings while pilot mode is on."""

    def __init__(self, missing_intent_ids: list[str]):
        self.missing_intent_ids = list(missing_intent_ids)
        super().__init__(
            f"{len(self.missing_intent_ids)} approved intents have null embeddings "
            f"in PILOT MODE. Intents: {', '.join(self.missing_intent_ids)}"
        )


class LabelParseError(IntentEngineError):
    """Label generation returned text that could not be parsed."""
