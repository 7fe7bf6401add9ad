"""Reusable text-matching primitives for phrase/window/chunk scoring.

Pure text operations with zero pipeline dependencies. Character class
helpers use the same code-point ranges as the fingerprinter.
"""
from __future__ import annotations

import re
from collections import Counter
from difflib import SequenceMatcher

_KANJI_RE = re.compile(r"[\u4e00-\u9faf]")
_CHARACTERISTIC_RE = re.compile(r"[\u4e00-\u9faf\u30a0-\u30ff0-9]")
_CJK_RE = re.compile(r"[\u3040-\u30ff\u4e00-\u9faf]")
_WORD_RE = re.compile(r"\w+")


def is_kanji(ch: str) -> bool:
    return "\u4e00" <= ch <= "\u9faf"


def is_hiragana(ch: str) -> bool:
    return "\u3040" <= ch <= "\u309f"


def is_katakana(ch: str) -> bool:
    return "\u30a0" <= ch <= "\u30ff"


def is_ascii_digit(ch: str) -> bool:
    return "0" <= ch <= "9"


def has_kanji(text: str) -> bool:
    return _KANJI_RE.search(text) is not None


def char_weight(ch: str) -> float:
    """Bigram weight factor: kanji 2.0, katakana/digits 1.5, else 1.0."""
    if is_kanji(ch):
        return 2.0
    if is_katakana(ch) or is_ascii_digit(ch):
        return 1.5
    return 1.0


def find_all(text: str, needle: str) -> list[int]:
    """Offsets of all non-overlapping occurrences of ``needle``."""
    if not needle:
        return []
    offsets: list[int] = []
    pos = text.find(needle)
    while pos >= 0:
        offsets.append(pos)
        pos = text.find(needle, pos + len(needle))
    return offsets


def longest_common_substring(a: str, b: str) -> str:
    """Longest contiguous run shared by ``a`` and ``b`` (first one wins)."""
    if not a or not b:
        return ""
    matcher = SequenceMatcher(None, a, b, autojunk=False)
    m = matcher.find_longest_match(0, len(a), 0, len(b))
    return a[m.a:m.a + m.size]


def _weighted_bigrams(text: str) -> tuple[dict[str, float], float]:
    grams: dict[str, float] = {}
    total = 0.0
    for i in range(len(text) - 1):
        gram = text[i:i + 2]
        weight = char_weight(text[i]) * char_weight(text[i + 1])
        grams[gram] = grams.get(gram, 0.0) + weight
        total += weight
    return grams, total


def weighted_bigram_jaccard(a: str, b: str) -> float:
    """Jaccard-style overlap of weighted character bigrams, in [0, 1]."""
    grams_a, weight_a = _weighted_bigrams(a)
    grams_b, weight_b = _weighted_bigrams(b)
    common = 0.0
    for gram, weight in grams_a.items():
        other = grams_b.get(gram)
        if other:
            common += min(weight, other)
    denom = weight_a + weight_b - common
    if denom <= 0:
        return 0.0
    return common / denom


def characteristic_char_ratio(phrase: str, window: str) -> float:
    """Share of the phrase's kanji/katakana/digit chars also in the window.

    Counted with multiplicity. Returns 0.0 when the phrase has none.
    """
    if not phrase or not window:
        return 0.0
    phrase_chars = Counter(_CHARACTERISTIC_RE.findall(phrase))
    total = sum(phrase_chars.values())
    if total == 0:
        return 0.0
    window_chars = Counter(_CHARACTERISTIC_RE.findall(window))
    matched = sum(min(n, window_chars[ch]) for ch, n in phrase_chars.items())
    return matched / total


def phrase_window_score(phrase: str, window: str) -> float:
    """Blend LCS, weighted bigram Jaccard and characteristic-char ratio.

    Returns 1.0 when the window contains the phrase verbatim.
    """
    if not phrase or not window:
        return 0.0
    if phrase in window:
        return 1.0
    lcs_ratio = len(longest_common_substring(phrase, window)) / len(phrase)
    bigram = weighted_bigram_jaccard(phrase, window)
    characteristic = characteristic_char_ratio(phrase, window)
    return 0.4 * lcs_ratio + 0.4 * bigram + 0.2 * characteristic


def word_set(text: str) -> set[str]:
    """Lowercased words; character bigrams for CJK text, which has no
    spaces to split on."""
    if _CJK_RE.search(text):
        compact = "".join(text.split())
        return {compact[i:i + 2] for i in range(len(compact) - 1)}
    return {w.lower() for w in _WORD_RE.findall(text)}


def word_overlap_ratio(a: str, b: str) -> float:
    """Overlap of word sets over the smaller set, in [0, 1]."""
    words_a = word_set(a)
    words_b = word_set(b)
    if not words_a or not words_b:
        return 0.0
    return len(words_a & words_b) / min(len(words_a), len(words_b))
