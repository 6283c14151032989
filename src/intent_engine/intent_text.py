"""Text representations of canonical intents."""

import re

from intent_engine.types import CanonicalIntent

_CAMEL_BOUNDARY = re.compile(r"([A-Z])")


def build_intent_embedding_text(intent: CanonicalIntent) -> str:
    """
    Labelled identity text stored as an intent's catalog embedding.

    Field labels are Norwegian to match the language of the support content.
    """
    parts = [f"Intent: {intent['intent_id']}", f"Kategori: {intent.get('category') or ''}"]
    if intent.get("subcategory"):
        parts.append(f"Underkategori: {intent['subcategory']}")
    if intent.get("description"):
        parts.append(f"Beskrivelse: {intent['description']}")
    if intent.get("keywords"):
        parts.append(f"Nøkkelord: {intent['keywords']}")
    info_text = intent.get("info_text")
    if info_text:
        parts.append(f"Info: {info_text[:500]}")
    return " | ".join(parts)


def build_intent_identity_text(intent: CanonicalIntent) -> str:
    """Unlabelled identity text used for discovery overlap."""
    parts = [intent["intent_id"], intent.get("category") or ""]
    for field in ("subcategory", "description", "keywords"):
        value = intent.get(field)
        if value:
            parts.append(value)
    return " | ".join(parts)


def derive_intent_label(intent_id: str) -> str:
    """Turn a CamelCase intent id into a lowercase label: ``LoginIssue`` -> ``login issue``."""
    return _CAMEL_BOUNDARY.sub(r" \1", intent_id).lower().strip()


def split_keywords(keywords: str | None) -> list[str]:
    """Split a comma-delimited keyword list into lowercase entries."""
    if not keywords:
        return []
    return [k.strip().lower() for k in keywords.split(",") if k.strip()]
