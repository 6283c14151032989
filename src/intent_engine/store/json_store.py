"""JSON file catalog used by the operator CLI."""

import json
import logging
from pathlib import Path
from typing import Any

from intent_engine.types import CanonicalIntent, StagingDocument

logger = logging.getLogger(__name__)


def _read_records(path: Path) -> list[dict[str, Any]]:
    """Read a JSON array, or an object wrapping one under ``items``."""
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get("items", [])
    if not isinstance(data, list):
        raise ValueError(f"{path} must contain a JSON array")
    return data


def _to_intent(record: dict[str, Any]) -> CanonicalIntent:
    if not record.get("intent_id"):
        raise ValueError(f"Intent record without intent_id: {record}")
    return {
        "intent_id": record["intent_id"],
        "category": record.get("category") or "",
        "subcategory": record.get("subcategory"),
        "description": record.get("description"),
        "keywords": record.get("keywords"),
        "actionable": bool(record.get("actionable", False)),
        "approved": bool(record.get("approved", False)),
        "embedding": record.get("embedding"),
        "info_text": record.get("info_text"),
    }


class JsonFileStore:
    """Reads intents and documents from JSON files on every call."""

    def __init__(self, intents_path: Path | None = None, documents_path: Path | None = None):
        self.intents_path = intents_path
        self.documents_path = documents_path

    def load_intents(self) -> list[CanonicalIntent]:
        """All intents in the file, approved or not."""
        if self.intents_path is None:
            return []
        return [_to_intent(r) for r in _read_records(self.intents_path)]

    async def list_approved_canonical_intents(self) -> list[CanonicalIntent]:
        return [intent for intent in self.load_intents() if intent["approved"]]

    async def list_staging_documents(self) -> list[StagingDocument]:
        if self.documents_path is None:
            return []
        documents: list[StagingDocument] = []
        for index, record in enumerate(_read_records(self.documents_path)):
            document: StagingDocument = {
                "id": record.get("id", index),
                "subject": record.get("subject"),
                "description": record.get("description"),
                "resolution": record.get("resolution"),
            }
            for field in (
                "intent",
                "intent_confidence",
                "auto_close_possible",
                "follow_up_needed",
                "auto_closed",
            ):
                if field in record:
                    document[field] = record[field]
            documents.append(document)
        logger.info(f"Read {len(documents)} documents from {self.documents_path}")
        return documents
