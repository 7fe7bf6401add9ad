"""Compact statistical fingerprints for cheap page pruning.

A fingerprint records:
- per-class character ratios (summing to 1)
- salient groups: kanji/katakana/numeric runs for CJK, frequent words otherwise
- frequency-ranked character bigrams

``compare_fingerprints`` is only a pruning heuristic; a page it rejects
can still contain the query, which is why the skip rule also requires a
long page.
"""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass, field

from refspan.config import DEFAULT_POLICY, MatchPolicy
from refspan.script import classify
from refspan.textmatch import is_ascii_digit, is_hiragana, is_kanji, is_katakana
from refspan.types import Script

KANJI_GROUP_RE = re.compile(r"[\u4e00-\u9faf]{2,}")
KATAKANA_GROUP_RE = re.compile(r"[\u30a0-\u30ff]{3,}")
NUMBER_GROUP_RE = re.compile(r"[0-9０-９]{2,}|[0-9０-９][年月日円％]")
_LETTER_BIGRAM_RE = re.compile(r"[a-z]{2}")

CJK_CLASSES = ("kanji", "hiragana", "katakana", "digit", "ascii", "other")
NON_CJK_CLASSES = ("letter", "digit", "punctuation", "other")

MAX_KANJI_GROUPS = 10
MAX_KATAKANA_GROUPS = 5
MAX_NUMBER_GROUPS = 5
MAX_TOP_WORDS = 20
MAX_TOP_BIGRAMS = 15


@dataclass(frozen=True, slots=True)
class Fingerprint:
    """Statistical signature of one normalized text block."""

    script: Script
    length: int
    char_class_ratios: dict[str, float]
    salient_groups: tuple[str, ...]
    top_ngrams: tuple[str, ...]
    kanji_groups: tuple[str, ...] = field(default=())
    katakana_groups: tuple[str, ...] = field(default=())
    number_groups: tuple[str, ...] = field(default=())


def _unique(items: list[str], limit: int) -> tuple[str, ...]:
    return tuple(dict.fromkeys(items))[:limit]


def _ratios(counts: dict[str, int], classes: tuple[str, ...]) -> dict[str, float]:
    total = sum(counts.values())
    if total == 0:
        # Empty text: put all mass on "other" so ratios still sum to 1.
        return {cls: (1.0 if cls == "other" else 0.0) for cls in classes}
    return {cls: counts.get(cls, 0) / total for cls in classes}


def _cjk_char_class(ch: str) -> str:
    if is_kanji(ch):
        return "kanji"
    if is_hiragana(ch):
        return "hiragana"
    if is_katakana(ch):
        return "katakana"
    if is_ascii_digit(ch):
        return "digit"
    if " " <= ch <= "~":
        return "ascii"
    return "other"


def _non_cjk_char_class(ch: str) -> str:
    if ch.isascii() and ch.isalpha():
        return "letter"
    if is_ascii_digit(ch):
        return "digit"
    if ch.isascii() and ch.isprintable() and not ch.isalnum() and ch != " ":
        return "punctuation"
    return "other"


def _build_cjk(text: str) -> Fingerprint:
    counts = Counter(_cjk_char_class(ch) for ch in text)
    kanji = _unique(KANJI_GROUP_RE.findall(text), MAX_KANJI_GROUPS)
    katakana = _unique(KATAKANA_GROUP_RE.findall(text), MAX_KATAKANA_GROUPS)
    numbers = _unique(NUMBER_GROUP_RE.findall(text), MAX_NUMBER_GROUPS)
    bigrams = Counter(text[i:i + 2] for i in range(len(text) - 1))
    return Fingerprint(
        script="cjk",
        length=len(text),
        char_class_ratios=_ratios(counts, CJK_CLASSES),
        salient_groups=tuple(dict.fromkeys(kanji + katakana + numbers)),
        top_ngrams=tuple(g for g, _ in bigrams.most_common(MAX_TOP_BIGRAMS)),
        kanji_groups=kanji,
        katakana_groups=katakana,
        number_groups=numbers,
    )


def _build_non_cjk(text: str) -> Fingerprint:
    counts = Counter(_non_cjk_char_class(ch) for ch in text)
    words = Counter(w for w in text.lower().split() if len(w) >= 3)
    lowered = text.lower()
    bigrams = Counter(
        gram
        for gram in (lowered[i:i + 2] for i in range(len(lowered) - 1))
        if _LETTER_BIGRAM_RE.fullmatch(gram)
    )
    return Fingerprint(
        script="non_cjk",
        length=len(text),
        char_class_ratios=_ratios(counts, NON_CJK_CLASSES),
        salient_groups=tuple(w for w, _ in words.most_common(MAX_TOP_WORDS)),
        top_ngrams=tuple(g for g, _ in bigrams.most_common(MAX_TOP_BIGRAMS)),
    )


def build_fingerprint(text: str, script: Script | None = None) -> Fingerprint:
    """Fingerprint normalized ``text``; ``script`` defaults to its own class."""
    text = text or ""
    if (script or classify(text)) == "cjk":
        return _build_cjk(text)
    return _build_non_cjk(text)


def overlap_ratio(a: tuple[str, ...], b: tuple[str, ...]) -> float:
    """Intersection size over the smaller set size (denominator >= 1).

    Two empty sets agree fully.
    """
    if not a and not b:
        return 1.0
    common = len(set(a) & set(b))
    return common / max(1, min(len(set(a)), len(set(b))))


def _ratio_agreement(fp1: Fingerprint, fp2: Fingerprint) -> float:
    classes = list(fp1.char_class_ratios)
    if not classes:
        return 0.0
    total = 0.0
    for cls in classes:
        diff = abs(fp1.char_class_ratios[cls] - fp2.char_class_ratios.get(cls, 0.0))
        total += 1.0 - diff
    return total / len(classes)


def compare_fingerprints(fp1: Fingerprint, fp2: Fingerprint) -> float:
    """Weighted similarity in [0, 1]; ``fp1``'s script picks the formula.

    CJK:     0.3 ratios + 0.3 groups (kanji .6, katakana .3, numeric .1) + 0.4 bigrams
    non-CJK: 0.1 length + 0.2 ratios + 0.4 words + 0.3 bigrams
    """
    ratio_sim = _ratio_agreement(fp1, fp2)
    bigram_sim = overlap_ratio(fp1.top_ngrams, fp2.top_ngrams)
    if fp1.script == "cjk":
        group_sim = (
            0.6 * overlap_ratio(fp1.kanji_groups, fp2.kanji_groups)
            + 0.3 * overlap_ratio(fp1.katakana_groups, fp2.katakana_groups)
            + 0.1 * overlap_ratio(fp1.number_groups, fp2.number_groups)
        )
        score = 0.3 * ratio_sim + 0.3 * group_sim + 0.4 * bigram_sim
    else:
        longest = max(fp1.length, fp2.length)
        length_sim = min(fp1.length, fp2.length) / longest if longest else 1.0
        word_sim = overlap_ratio(fp1.salient_groups, fp2.salient_groups)
        score = 0.1 * length_sim + 0.2 * ratio_sim + 0.4 * word_sim + 0.3 * bigram_sim
    return round(max(0.0, min(1.0, score)), 6)


def should_skip_page(
    similarity: float,
    page_length: int,
    policy: MatchPolicy = DEFAULT_POLICY,
) -> bool:
    """Skip long pages whose fingerprint is too dissimilar to the query."""
    return (
        similarity < policy.fingerprint_skip_similarity
        and page_length > policy.fingerprint_skip_min_length
    )
