"""Search-keyword extraction and title normalisation."""

from __future__ import annotations

import re
import unicodedata

from unidecode import unidecode as _unidecode

from reelmatch.infrastructure.parsing.roman import is_roman_numeral, join_roman_numerals

_MAX_KEYWORDS = 15

# Anything that is not a letter, digit or whitespace (underscore included).
_NON_WORD_RE = re.compile(r"[^\w\s]|_")
_MULTI_SPACE_RE = re.compile(r"\s{2,}")
_PUNCT_RE = re.compile(r"[^\w\s]")
_DIGITS_RE = re.compile(r"^\d+$")


def _keep_word(word: str) -> bool:
    return (
        len(word) > 1
        or word.lower() == "a"
        or word == "I"
        or is_roman_numeral(word)
        or bool(_DIGITS_RE.match(word))
    )


def extract_keywords(text: str) -> str:
    """Reduce a title to at most 15 search keywords.

    ``"Re:Zero - Starting Life in Another World"`` becomes
    ``"Re Zero Starting Life in Another World"``.
    """
    if not text:
        return ""
    cleaned = unicodedata.normalize("NFKC", text)
    cleaned = _NON_WORD_RE.sub(" ", cleaned).strip()
    cleaned = _MULTI_SPACE_RE.sub(" ", cleaned)
    cleaned = join_roman_numerals(cleaned)
    words = [w for w in cleaned.split() if _keep_word(w)]
    return " ".join(words[:_MAX_KEYWORDS])


def normalize_title(text: str) -> str:
    """Lowercase, transliterate Unicode to ASCII, ``&`` to ``and``, no punctuation."""
    text = _unidecode(text.lower()).replace("&", " and ")
    text = _PUNCT_RE.sub(" ", text.replace("_", " "))
    return " ".join(text.split())
