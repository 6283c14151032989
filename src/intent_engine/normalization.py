"""Deterministic cleanup and domain spelling correction of user messages.

The tables below are Norwegian because the supported product and its users
are; each entry rewrites a known misspelling or variant into the phrasing
used by the canonical catalog.
"""

import logging
import re

from intent_engine.types import NormalizationResult

logger = logging.getLogger(__name__)

_TAG = re.compile(r"<[^>]*>")
_WHITESPACE = re.compile(r"\s+")
_REPEATED_PUNCTUATION = re.compile(r"([!?.,;:])\1{2,}")

# ASCII transliterations of words that should carry Norwegian letters
CHARACTER_NORMALIZATIONS: dict[str, str] = {
    "dyreide": "dyreid",
    "aendre": "endre",
    "aerlig": "ærlig",
    "hoere": "høre",
    "foerste": "første",
    "oensker": "ønsker",
    "aarsak": "årsak",
    "aapen": "åpen",
}

_CHARACTER_RULES = [
    (re.compile(rf"\b{re.escape(source)}\b", re.IGNORECASE), target)
    for source, target in CHARACTER_NORMALIZATIONS.items()
]

# Applied in order; each rule sees the output of the previous ones
DOMAIN_CORRECTIONS: list[tuple[str, str]] = [
    (r"\bqrkode\b", "qr-brikke"),
    (r"\bqr kode\b", "qr-brikke"),
    (r"\bbrikke qr\b", "qr-brikke"),
    (r"\bqr(?!\s*-?\s*(?:brikke|tag|kode))\b", "qr-brikke"),
    (r"\bvipps funker ikke\b", "vipps betaling feilet"),
    (r"\bvipps fungerer ikke\b", "vipps betaling feilet"),
    (r"\binnlogging funker ikke\b", "innlogging problem"),
    (r"\binnlogging fungerer ikke\b", "innlogging problem"),
    (r"\blogge inn funker ikke\b", "innlogging problem"),
    (r"\bfår ikke logga inn\b", "innlogging problem"),
    (r"\bfår ikke logget inn\b", "innlogging problem"),
    (r"\bminside\b", "min side"),
    (r"\bmin-side\b", "min side"),
    (r"\bfamilie deling\b", "familiedeling"),
    (r"\bfamilie-deling\b", "familiedeling"),
    (r"\bsmarttag\b", "smart tag"),
    (r"\bsmart-tag\b", "smart tag"),
    (r"\beier skifte\b", "eierskifte"),
    (r"\beier-skifte\b", "eierskifte"),
    (r"\beierskfte\b", "eierskifte"),
    (r"\bchip nummer\b", "chipnummer"),
    (r"\bchip-nummer\b", "chipnummer"),
    (r"\bchipnr\b", "chipnummer"),
    (r"\bchip nr\b", "chipnummer"),
    (r"\bid merke\b", "id-merke"),
    (r"\bidmerke\b", "id-merke"),
    (r"\bid merking\b", "id-merking"),
    (r"\bidmerking\b", "id-merking"),
    (r"\babonement\b", "abonnement"),
    (r"\babonnemang\b", "abonnement"),
    (r"\babonnoment\b", "abonnement"),
    (r"\bregistere\b", "registrere"),
    (r"\bregisrere\b", "registrere"),
    (r"\bregistring\b", "registrering"),
    (r"\bregistrerig\b", "registrering"),
    (r"\bfunkerer\b", "fungerer"),
    (r"\bfunger\b", "fungerer"),
    (r"\bfunka\b", "fungerer"),
    (r"\bfunker\b", "fungerer"),
    (r"\bkjæle dyr\b", "kjæledyr"),
    (r"\bkjæle-dyr\b", "kjæledyr"),
    (r"\bkjeledyr\b", "kjæledyr"),
    (r"\bkjæedyr\b", "kjæledyr"),
    (r"\bdyre id\b", "dyreid"),
    (r"\bdyre-id\b", "dyreid"),
    (r"\bpasord\b", "passord"),
    (r"\bveternær\b", "veterinær"),
    (r"\bvetrinær\b", "veterinær"),
    (r"\bveterinæren\b", "veterinær"),
    (r"\boverfør\b", "overføre"),
    (r"\boverførig\b", "overføring"),
]

_DOMAIN_RULES = [(re.compile(pattern), replacement) for pattern, replacement in DOMAIN_CORRECTIONS]


def is_normalization_enabled() -> bool:
    from intent_engine.config import settings

    return settings.enable_input_normalization


def _is_debug() -> bool:
    from intent_engine.config import settings

    return settings.runtime_debug


def preprocess_message(raw: str) -> str:
    """
    Lowercase, strip markup, collapse whitespace and punctuation runs.

    Args:
        raw: Message as typed by the user.

    Returns:
        Cleaned message.
    """
    s = raw.lower()
    s = _TAG.sub(" ", s)
    s = _WHITESPACE.sub(" ", s).strip()
    s = _REPEATED_PUNCTUATION.sub(r"\1", s)
    for pattern, target in _CHARACTER_RULES:
        s = pattern.sub(target, s)
    return s


def apply_domain_corrections(text: str) -> str:
    """Apply every domain correction rule in order."""
    result = text
    for pattern, replacement in _DOMAIN_RULES:
        result = pattern.sub(replacement, result)
    return result


def normalize_input(raw: str) -> NormalizationResult:
    """
    Run preprocessing and domain correction.

    ``changed`` compares against the lowercased, trimmed original so that
    casing alone never counts as a change.
    """
    preprocessed = preprocess_message(raw)
    corrected = apply_domain_corrections(preprocessed)

    corrections: list[str] = []
    if preprocessed != corrected:
        corrections.append(f'domain_correction: "{preprocessed}" → "{corrected}"')

    changed = raw.lower().strip() != corrected

    if changed and _is_debug():
        logger.info(
            f'[Normalization] original="{raw}" | normalized="{corrected}" | '
            f"corrections={'; '.join(corrections) if corrections else 'preprocessing-only'}"
        )

    return {
        "original": raw,
        "normalized": corrected,
        "changed": changed,
        "corrections": corrections,
    }
