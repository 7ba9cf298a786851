"""Roman numeral helpers and Roman-season detection (``Title III - 04``)."""

from __future__ import annotations

import re

import structlog

from reelmatch.domain.entities.media import RomanSeasonInfo

log = structlog.get_logger(__name__)

_ROMAN_VALUES: list[tuple[str, int]] = [
    ("M", 1000),
    ("CM", 900),
    ("D", 500),
    ("CD", 400),
    ("C", 100),
    ("XC", 90),
    ("L", 50),
    ("XL", 40),
    ("X", 10),
    ("IX", 9),
    ("V", 5),
    ("IV", 4),
    ("I", 1),
]

_VALID_ROMAN_RE = re.compile(r"^M{0,4}(CM|CD|D?C{0,3})(XC|XL|L?X{0,3})(IX|IV|V?I{0,3})$")
_ROMAN_CHARS_RE = re.compile(r"^[IVXLCDM]+$")

# Only consulted when no explicit SxxEyy marker is present.
_ROMAN_SEASON_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"\b([IVX]{1,4})\s*[-–—]\s*(\d{1,3})", re.IGNORECASE),
    re.compile(r"\b([IVX]{1,4})\s+episode\s*(\d{1,3})", re.IGNORECASE),
]
_EXPLICIT_SE_RE = re.compile(r"s\d{1,2}e\d{1,3}", re.IGNORECASE)

JOIN_ROMAN_NUMERALS_RE = re.compile(r"\b([IVXLCDM]+)\s([IVXLCDM]+)\b")

_MAX_ROMAN_VALUE = 50
_MAX_ROMAN_SEASON = 10


def is_roman_numeral(text: str) -> bool:
    """True for a well-formed Roman numeral (case-insensitive)."""
    if not text:
        return False
    normalized = text.strip().upper()
    if not normalized or not _ROMAN_CHARS_RE.match(normalized):
        return False
    return bool(_VALID_ROMAN_RE.match(normalized))


def roman_to_int(text: str) -> int | None:
    """Convert a Roman numeral to an int in ``[1, 50]``, else None."""
    if not is_roman_numeral(text):
        return None
    roman = text.strip().upper()
    total = 0
    i = 0
    for symbol, value in _ROMAN_VALUES:
        while roman.startswith(symbol, i):
            total += value
            i += len(symbol)
    if i != len(roman) or not 1 <= total <= _MAX_ROMAN_VALUE:
        return None
    return total


def int_to_roman(number: int) -> str:
    if number < 1 or number > 3999:
        return ""
    parts: list[str] = []
    for symbol, value in _ROMAN_VALUES:
        count, number = divmod(number, value)
        parts.append(symbol * count)
    return "".join(parts)


def parse_roman_season(text: str) -> RomanSeasonInfo | None:
    """Detect ``<ROMAN> - <NN>`` or ``<ROMAN> episode <NN>`` in *text*.

    Returns None when an explicit ``SxxEyy`` marker exists, when the
    numeral is invalid, or when the season falls outside ``[1, 10]``.
    """
    if not text or _EXPLICIT_SE_RE.search(text):
        return None

    for pattern in _ROMAN_SEASON_PATTERNS:
        m = pattern.search(text)
        if m is None:
            continue
        roman = m.group(1).upper()
        season = roman_to_int(roman)
        if season is not None and 1 <= season <= _MAX_ROMAN_SEASON:
            log.debug("roman_season_found", roman=roman, season=season, text=text)
            return RomanSeasonInfo(
                season=season,
                episode=int(m.group(2)),
                roman_text=roman,
                full_match=m.group(0),
            )
    return None


def join_roman_numerals(text: str) -> str:
    """Join space-separated numeral pairs: ``"I I"`` -> ``"II"``."""
    return JOIN_ROMAN_NUMERALS_RE.sub(r"\1\2", text)
