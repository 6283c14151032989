"""Collaborator contracts for catalogs and document corpora."""

from typing import Protocol

from intent_engine.types import CanonicalIntent, StagingDocument


class IntentCatalog(Protocol):
    """Source of approved canonical intents."""

    async def list_approved_canonical_intents(self) -> list[CanonicalIntent]:
        """Return every intent with ``approved == True``."""
        ...


class DocumentSource(Protocol):
    """Source of staging documents for discovery."""

    async def list_staging_documents(self) -> list[StagingDocument]:
        """Return the staging corpus."""
        ...


class InMemoryStore:
    """Catalog and corpus held in process memory."""

    def __init__(
        self,
        intents: list[CanonicalIntent] | None = None,
        documents: list[StagingDocument] | None = None,
    ):
        self.intents: list[CanonicalIntent] = list(intents or [])
        self.documents: list[StagingDocument] = list(documents or [])

    async def list_approved_canonical_intents(self) -> list[CanonicalIntent]:
        return [intent for intent in self.intents if intent.get("approved", False)]

    async def list_staging_documents(self) -> list[StagingDocument]:
        return list(self.documents)

    def __repr__(self) -> str:
        return f"InMemoryStore(intents={len(self.intents)}, documents={len(self.documents)})"
