"""Representative text for staging documents."""

import re

from intent_engine.types import StagingDocument

EMPTY_PLACEHOLDER = "(tom)"
# Export artifact used by the ticketing system for empty fields
NO_CONTENTS = "No contents"

_TAG = re.compile(r"<[^>]+>")
_WHITESPACE = re.compile(r"\s+")


def strip_html(text: str) -> str:
    return _WHITESPACE.sub(" ", _TAG.sub(" ", text)).strip()


def build_document_text(document: StagingDocument, max_description: int = 500) -> str:
    """
    Subject plus truncated, HTML-stripped description.

    Empty documents get a placeholder so embeddings stay aligned with the corpus.
    """
    parts: list[str] = []
    subject = document.get("subject")
    if subject and subject != NO_CONTENTS:
        parts.append(subject.strip())
    description = document.get("description")
    if description and description != NO_CONTENTS:
        cleaned = strip_html(description)
        if cleaned:
            parts.append(cleaned[:max_description])
    return " | ".join(parts) or EMPTY_PLACEHOLDER
