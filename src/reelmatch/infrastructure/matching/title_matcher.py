"""Approximate title matching of provider candidates against search terms.

Pure transformation logic, no I/O. Two stages:

1. a cheap keyword pre-filter (normalised substring containment, then a
   typo-tolerant sliding window for keywords of four characters or more);
2. **rapidfuzz** scoring of each search term against the candidate's raw
   name and its parsed title.
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from rapidfuzz import fuzz

from reelmatch.domain.entities.media import Candidate
from reelmatch.infrastructure.parsing.keywords import extract_keywords, normalize_title

DEFAULT_PREFILTER_SIMILARITY = 0.85
MIN_FUZZY_KEYWORD_LENGTH = 4

# Letters, digits and whitespace survive; underscores count as punctuation.
_NON_ALNUM_RE = re.compile(r"[^\w\s]|_")


def _containment_form(text: str) -> str:
    return " ".join(_NON_ALNUM_RE.sub(" ", text.lower()).split())


def fuzzy_contains(text: str, keyword: str, min_similarity: float) -> bool:
    """True when *keyword* occurs in *text*, allowing a few substitutions.

    Exact containment always matches. Keywords shorter than four
    characters must match exactly; longer ones may differ in at most
    ``floor(len * (1 - min_similarity))`` positions of an equal-length
    window.
    """
    if not keyword:
        return False
    if keyword in text:
        return True
    size = len(keyword)
    if size < MIN_FUZZY_KEYWORD_LENGTH:
        return False

    # 20 * (1 - 0.85) is 2.9999... in floating point
    max_differences = math.floor(round(size * (1 - min_similarity), 6))
    for start in range(len(text) - size + 1):
        differences = 0
        for offset, char in enumerate(keyword):
            if text[start + offset] != char:
                differences += 1
                if differences > max_differences:
                    break
        if differences <= max_differences:
            return True
    return False


def prefilter_candidates(
    candidates: Iterable[Candidate],
    keywords: Sequence[str],
    *,
    min_similarity: float = DEFAULT_PREFILTER_SIMILARITY,
) -> list[Candidate]:
    """Keep the candidates whose name mentions at least one keyword.

    Order of the input is preserved.
    """
    raw_forms = [_containment_form(k) for k in keywords if k and k.strip()]
    keyword_forms = [extract_keywords(k).lower() for k in keywords if k and k.strip()]

    kept: list[Candidate] = []
    for candidate in candidates:
        raw_name = _containment_form(candidate.name)
        keyword_name = extract_keywords(candidate.name).lower()
        if any(form and form in raw_name for form in raw_forms) or any(
            fuzzy_contains(keyword_name, form, min_similarity) for form in keyword_forms
        ):
            kept.append(candidate)
    return kept


# ---------------------------------------------------------------------------
# rapidfuzz scoring
# ---------------------------------------------------------------------------


def similarity(term: str, text: str) -> float:
    """Similarity of two already normalised strings in ``[0, 1]``.

    ``token_set_ratio`` handles "term is a subset of a long release name";
    ``partial_ratio`` tolerates typos inside a longer string.
    """
    if not term or not text:
        return 0.0
    return (
        max(
            fuzz.token_set_ratio(term, text, processor=None),
            fuzz.partial_ratio(term, text, processor=None),
        )
        / 100.0
    )


def candidate_forms(candidate: Candidate) -> list[str]:
    """Normalised strings a term is compared against (raw name, parsed title)."""
    forms: list[str] = []
    for text in (
        extract_keywords(candidate.name),
        candidate.parsed_info.title if candidate.parsed_info is not None else "",
    ):
        norm = normalize_title(text) if text else ""
        if norm and norm not in forms:
            forms.append(norm)
    return forms


@dataclass(frozen=True)
class TitleMatch:
    """One candidate accepted for one term.

    ``score`` follows the "lower is better" convention: 0 is a perfect
    match, 1 no similarity at all.
    """

    candidate: Candidate
    term: str
    score: float


def score_candidate(term: str, candidate: Candidate) -> float:
    norm_term = normalize_title(extract_keywords(term) or term)
    best = max((similarity(norm_term, form) for form in candidate_forms(candidate)), default=0.0)
    return round(1.0 - best, 4)


def match_term(
    term: str, candidates: Iterable[Candidate], threshold: float
) -> list[TitleMatch]:
    """All candidates whose score for *term* is within *threshold*."""
    if not term or not term.strip():
        return []
    matches: list[TitleMatch] = []
    for candidate in candidates:
        score = score_candidate(term, candidate)
        if score <= threshold:
            matches.append(TitleMatch(candidate=candidate, term=term, score=score))
    return matches


def merge_matches(per_term: Iterable[Sequence[TitleMatch]]) -> list[TitleMatch]:
    """Flatten per-term results, first occurrence of a candidate wins."""
    seen: set[tuple[str, str]] = set()
    merged: list[TitleMatch] = []
    for matches in per_term:
        for match in matches:
            key = (match.candidate.source, match.candidate.id)
            if key in seen:
                continue
            seen.add(key)
            merged.append(match)
    return merged
