"""Decompose a normalized query into weighted candidate phrases.

Strategy is chosen by query length:

  exact_plus_partial  (< 30 chars)  whole query + salient groups
  phrase_based        (< 100 chars) sentences + salient groups
  segmentation        (otherwise)   sentences/windows + salient groups
                                    + particle/connective phrases (CJK)

Non-CJK queries skip the script-specific steps (salient groups and
particle heuristics); their phrases are plain sentences and windows.
"""
from __future__ import annotations

import logging
import re

from refspan.config import DEFAULT_POLICY, MatchPolicy
from refspan.fingerprint import KANJI_GROUP_RE, KATAKANA_GROUP_RE, NUMBER_GROUP_RE
from refspan.types import Phrase, Script, Strategy

log = logging.getLogger(__name__)

_SENTENCE_SPLIT_RE = re.compile(r"(?<=[。．.!?！？])\s*")
_COMMON_EXPRESSIONS = frozenset({"これは", "それは", "ことが", "ための"})

_PARTICLE_PATTERNS = (
    re.compile(r"(.{5,20}[はがを])(.{5,20})"),
    re.compile(r"(.{5,15})(という.{5,15})"),
    re.compile(r"(.{5,15})(において.{5,15})"),
)
_SYNTAX_PATTERNS = (
    re.compile(r"(.{5,25})(とは|について|によって|によると)"),
    re.compile(r"(「.{5,30}」)"),
)

MIN_SENTENCE_LENGTH = 5
MIN_IMPORTANT_PHRASE_LENGTH = 10
SEGMENT_SIZE = 80
SEGMENT_STRIDE = 60
MIN_SEGMENT_LENGTH = 20

EXACT_GROUP_WEIGHT = 0.7
PHRASE_GROUP_WEIGHT = 0.6
SEGMENT_GROUP_WEIGHT = 0.5
SHORT_SENTENCE_WEIGHT = 0.9
IMPORTANT_PHRASE_WEIGHT = 0.7


def choose_strategy(
    normalized_query: str,
    policy: MatchPolicy = DEFAULT_POLICY,
) -> Strategy:
    length = len(normalized_query)
    if length < policy.exact_strategy_max_length:
        return "exact_plus_partial"
    if length < policy.phrase_strategy_max_length:
        return "phrase_based"
    return "segmentation"


def split_sentences(text: str) -> list[str]:
    """Split after CJK and Latin sentence terminators; drop empty pieces."""
    return [s.strip() for s in _SENTENCE_SPLIT_RE.split(text) if s.strip()]


def extract_salient_groups(text: str) -> list[str]:
    """Kanji runs (>= 2), katakana runs (>= 3) and numeric expressions."""
    groups = (
        KANJI_GROUP_RE.findall(text)
        + KATAKANA_GROUP_RE.findall(text)
        + NUMBER_GROUP_RE.findall(text)
    )
    return [g for g in groups if g not in _COMMON_EXPRESSIONS]


def extract_important_phrases(text: str) -> list[str]:
    """Captures around topic particles, connectives and quotations."""
    phrases: list[str] = []
    for pattern in _PARTICLE_PATTERNS:
        for m in pattern.finditer(text):
            head, tail = m.group(1), m.group(2)
            phrases.extend([head, tail, head + tail])
    for pattern in _SYNTAX_PATTERNS:
        for m in pattern.finditer(text):
            phrases.extend(g for g in m.groups() if g and len(g) >= 5)
    return list(dict.fromkeys(phrases))


def segment_sentence(sentence: str) -> list[Phrase]:
    """Overlapping windows over a long sentence; earlier windows weigh more."""
    segments: list[Phrase] = []
    length = len(sentence)
    for start in range(0, length, SEGMENT_STRIDE):
        segment = sentence[start:min(start + SEGMENT_SIZE, length)]
        if len(segment) < MIN_SEGMENT_LENGTH:
            continue
        weight = max(0.6, 1.0 - (start / length / 2))
        segments.append(Phrase(segment, weight))
    return segments


def _sentence_phrases(sentences: list[str], strategy: Strategy) -> list[Phrase]:
    phrases: list[Phrase] = []
    for sentence in sentences:
        if len(sentence) < MIN_SENTENCE_LENGTH:
            continue
        if strategy == "phrase_based":
            phrases.append(Phrase(sentence, min(1.0, 0.5 + len(sentence) / 50)))
        elif len(sentence) > 100:
            phrases.extend(segment_sentence(sentence))
        else:
            phrases.append(Phrase(sentence, SHORT_SENTENCE_WEIGHT))
    return phrases


def _dedupe(phrases: list[Phrase]) -> list[Phrase]:
    """Keep the first phrase for each text, preserving order."""
    seen: dict[str, Phrase] = {}
    for phrase in phrases:
        if phrase.text and phrase.text not in seen:
            seen[phrase.text] = phrase
    return list(seen.values())


def extract_phrases(
    normalized_query: str,
    strategy: Strategy | None = None,
    script: Script = "cjk",
    policy: MatchPolicy = DEFAULT_POLICY,
) -> list[Phrase]:
    """Ordered, text-deduplicated weighted phrases for ``normalized_query``."""
    if not normalized_query:
        return []
    strategy = strategy or choose_strategy(normalized_query, policy)
    cjk = script == "cjk"
    phrases: list[Phrase] = []

    if strategy == "exact_plus_partial":
        phrases.append(Phrase(normalized_query, 1.0))
        if cjk:
            phrases.extend(
                Phrase(g, EXACT_GROUP_WEIGHT)
                for g in extract_salient_groups(normalized_query)
            )
    else:
        phrases.extend(_sentence_phrases(split_sentences(normalized_query), strategy))
        if cjk:
            group_weight = (
                PHRASE_GROUP_WEIGHT if strategy == "phrase_based" else SEGMENT_GROUP_WEIGHT
            )
            phrases.extend(
                Phrase(g, group_weight)
                for g in extract_salient_groups(normalized_query)
            )
        if cjk and strategy == "segmentation":
            phrases.extend(
                Phrase(p, IMPORTANT_PHRASE_WEIGHT)
                for p in extract_important_phrases(normalized_query)
                if len(p) >= MIN_IMPORTANT_PHRASE_LENGTH
            )

    if not cjk:
        phrases = [
            p for p in phrases
            if len(p.text) >= policy.min_phrase_length_non_cjk
            or p.text == normalized_query
        ]
        if not phrases:
            # Every sentence was too short to stand alone; probe with the whole query.
            phrases = [Phrase(normalized_query, 1.0)]

    result = _dedupe(phrases)
    log.debug("strategy=%s script=%s phrases=%d", strategy, script, len(result))
    return result
