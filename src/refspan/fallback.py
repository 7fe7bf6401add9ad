"""Last-resort element marking when no phrase-tier selection survives.

CJK queries probe each element for distinctive kanji groups, then for the
query's most frequent bigrams. Other scripts probe for important keywords
as whole, case-insensitive words. Each element is marked at most once.
"""
from __future__ import annotations

import re
from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass

from refspan.normalization import normalize
from refspan.phrases import extract_salient_groups
from refspan.textmatch import has_kanji
from refspan.types import Band, PageText, Script

STOP_WORDS = frozenset({
    "the", "and", "that", "this", "with", "from", "have", "been",
    "were", "they", "their", "what", "when", "where", "which",
})
MAX_PRIORITY_GROUPS = 10
MAX_TOP_BIGRAMS = 20
MAX_IMPORTANT_WORDS = 20
MEDIUM_THRESHOLD = 0.7
BIGRAM_HIT_SCORE = 0.3

_DIGIT_RE = re.compile(r"\d")
_TOKEN_PUNCT = ".,;:!?\"'()[]{}"


@dataclass(frozen=True, slots=True)
class FallbackHit:
    """One element marked by a fallback matcher."""

    page_index: int
    element_index: int
    score: float
    band: Band
    term: str


def priority_groups(query: str) -> list[str]:
    """Kanji-bearing salient groups, longest first (stable), top 10."""
    groups = [
        g for g in dict.fromkeys(extract_salient_groups(query))
        if len(g) >= 2 and has_kanji(g)
    ]
    groups.sort(key=len, reverse=True)
    return groups[:MAX_PRIORITY_GROUPS]


def top_bigrams(query: str) -> list[str]:
    """Most frequent bigrams; kanji-bearing ones count double."""
    scores: dict[str, float] = {}
    for i in range(len(query) - 1):
        gram = query[i:i + 2]
        if len(gram.strip()) != 2 or " " in gram:
            continue
        scores[gram] = scores.get(gram, 0.0) + (2.0 if has_kanji(gram) else 1.0)
    ranked = sorted(scores.items(), key=lambda kv: -kv[1])
    return [gram for gram, _ in ranked[:MAX_TOP_BIGRAMS]]


def important_words(query: str) -> list[str]:
    """Top keywords by frequency plus length/capital/digit bonuses.

    Returned lowercased; bonuses are judged on the original token.
    """
    scores: Counter[str] = Counter()
    for raw in query.split():
        token = raw.strip(_TOKEN_PUNCT)
        word = token.lower()
        if len(word) < 3 or word in STOP_WORDS:
            continue
        bonus = 1.0
        if len(word) >= 6:
            bonus += 0.5
        if len(word) >= 9:
            bonus += 0.5
        if token[0].isupper():
            bonus += 1.0
        if _DIGIT_RE.search(token):
            bonus += 1.0
        scores[word] += bonus
    ranked = sorted(scores.items(), key=lambda kv: -kv[1])
    return [word for word, _ in ranked[:MAX_IMPORTANT_WORDS]]


def cjk_fallback(query: str, pages: Sequence[PageText]) -> list[FallbackHit]:
    groups = priority_groups(query)
    bigrams = top_bigrams(query)
    hits: list[FallbackHit] = []
    for page in pages:
        for element in page.elements:
            text = normalize(element.text)
            group = next((g for g in groups if g in text), None)
            if group is not None:
                score = 0.5 + min(0.3, len(group) * 0.05)
                hits.append(FallbackHit(page.page_index, element.index, score, "medium", group))
                continue
            gram = next((b for b in bigrams if b in text), None)
            if gram is not None:
                hits.append(
                    FallbackHit(page.page_index, element.index, BIGRAM_HIT_SCORE, "low", gram)
                )
    return hits


def keyword_fallback(query: str, pages: Sequence[PageText]) -> list[FallbackHit]:
    words = important_words(query)
    if not words:
        return []
    patterns = [
        (rank, word, re.compile(rf"\b{re.escape(word)}\b", re.IGNORECASE))
        for rank, word in enumerate(words)
    ]
    hits: list[FallbackHit] = []
    for page in pages:
        for element in page.elements:
            text = normalize(element.text).lower()
            for rank, word, pattern in patterns:
                if not pattern.search(text):
                    continue
                importance = 1.0 - rank / MAX_IMPORTANT_WORDS
                score = 0.5 + 0.2 * importance + 0.3 * min(len(word) / 10, 0.3)
                band: Band = "medium" if score >= MEDIUM_THRESHOLD else "low"
                hits.append(FallbackHit(page.page_index, element.index, score, band, word))
                break
    return hits


def run_fallback(
    query: str,
    script: Script,
    pages: Sequence[PageText],
) -> list[FallbackHit]:
    """Dispatch to the script's fallback matcher; ``query`` is normalized."""
    if not query:
        return []
    if script == "cjk":
        return cjk_fallback(query, pages)
    return keyword_fallback(query, pages)
