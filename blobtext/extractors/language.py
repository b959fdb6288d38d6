"""
Naive document language detection by keyword frequency.

Low confidence by nature: callers should only rely on detect vs. no-detect.
"""

import re
from typing import Dict, FrozenSet, Optional

SAMPLE_LENGTH = 1000
MIN_KEYWORD_HITS = 3

LANGUAGE_KEYWORDS: Dict[str, FrozenSet[str]] = {
    "en": frozenset({
        "the", "and", "is", "are", "of", "to", "that", "with", "for",
        "this", "was", "have", "from", "not", "be",
    }),
    "pl": frozenset({
        "się", "jest", "nie", "że", "na", "oraz", "jak", "ale", "dla",
        "to", "od", "są", "przez", "który", "która",
    }),
    "de": frozenset({
        "der", "die", "das", "und", "ist", "nicht", "mit", "ein", "eine",
        "zu", "den", "von", "sich", "auf", "für",
    }),
    "fr": frozenset({
        "le", "la", "les", "et", "est", "une", "des", "du", "pour",
        "dans", "que", "qui", "pas", "sur", "avec",
    }),
    "es": frozenset({
        "el", "los", "las", "y", "es", "que", "por", "una", "del",
        "con", "para", "como", "pero", "está", "son",
    }),
}

_TOKEN_RE = re.compile(r"[^\W\d_]+", re.UNICODE)


def keyword_hits(text: str) -> Dict[str, int]:
    """Count keyword hits per language in the first SAMPLE_LENGTH characters."""
    tokens = _TOKEN_RE.findall(text[:SAMPLE_LENGTH].lower())
    return {
        language: sum(1 for token in tokens if token in keywords)
        for language, keywords in LANGUAGE_KEYWORDS.items()
    }


def detect_language(text: str) -> Optional[str]:
    """Return the ISO 639-1 code with the most hits, if it has more than 3."""
    if not text:
        return None
    hits = keyword_hits(text)
    language, count = max(hits.items(), key=lambda item: item[1])
    if count > MIN_KEYWORD_HITS:
        return language
    return None
