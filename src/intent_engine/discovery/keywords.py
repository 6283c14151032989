"""Descriptive keywords for a cluster of documents."""

import re
from collections import Counter

# General Norwegian and English function words, HTML residue and
# greeting/sign-off words common to every support ticket
STOPWORDS = frozenset(
    {
        "og", "i", "på", "til", "for", "er", "det", "en", "et", "av", "med",
        "som", "har", "jeg", "at", "den", "de", "vi", "kan", "ikke", "fra",
        "om", "men", "så", "var", "min", "meg", "seg", "dette", "hei", "hva",
        "skal", "vil", "bli", "ble", "være", "sin", "sitt", "sine", "du",
        "dere", "oss", "dem", "hun", "han", "der", "her", "da", "når",
        "eller", "alle", "noen", "ingen", "annen", "andre", "hvor", "også",
        "bare", "etter", "over", "under", "mellom", "inn", "ut", "opp",
        "ned", "the", "and", "is", "it", "to", "of", "in", "a", "no",
        "contents", "tom", "nbsp", "div", "class", "span", "style", "http",
        "https", "www", "com", "org", "net", "href", "img", "src", "alt",
        "mvh", "vennlig", "hilsen", "takk", "hjelp", "kontakt",
    }
)

_NON_WORD = re.compile(r"[^a-zæøå0-9\s-]")
_SPLIT = re.compile(r"\s+")
_NUMERIC = re.compile(r"^\d+$")

MIN_TOKEN_LENGTH = 3


def extract_keywords(
    texts: list[str],
    top_n: int = 8,
    extra_stopwords: frozenset[str] | set[str] = frozenset(),
) -> list[str]:
    """
    Most common tokens by document frequency.

    Each token counts once per document, so a single verbose document cannot
    dominate. Stopwords, numbers and tokens under three characters are dropped.
    Ties keep first-seen order.
    """
    frequency: Counter[str] = Counter()
    for text in texts:
        words = _SPLIT.split(_NON_WORD.sub(" ", text.lower()))
        seen: set[str] = set()
        for word in words:
            if (
                len(word) < MIN_TOKEN_LENGTH
                or word in STOPWORDS
                or word in extra_stopwords
                or _NUMERIC.match(word)
                or not word.strip("-")
                or word in seen
            ):
                continue
            seen.add(word)
            frequency[word] += 1
    return [word for word, _ in frequency.most_common(top_n)]
