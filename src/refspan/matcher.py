"""Per-page phrase matching behind a single ``Matcher`` interface.

``Matcher.match_page`` first looks for the whole query verbatim (unless it is
already one of the phrases), then escalates through the tiers:

1. exact-plus-partial: full phrase occurrences (1.0), else fixed-length
   substrings scored 0.5 + 0.3 * sub/len.
2. sliding-window fuzzy: long phrases only; windows scoring above the
   threshold, else exact search on the phrase halves at a penalty.
3. chunk alignment: only when tiers 1-2 left the page without a candidate
   above the escalation score.

Every candidate reports ``adjusted_score = raw_score * phrase.weight``;
chunk sequences carry weight 1.0.
"""
from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from refspan.chunking import Chunk, align_chunks, chunk_text, map_chunks_to_elements
from refspan.config import DEFAULT_POLICY, MatchPolicy
from refspan.fingerprint import (
    Fingerprint,
    build_fingerprint,
    compare_fingerprints,
    should_skip_page,
)
from refspan.normalization import normalize
from refspan.phrases import choose_strategy, extract_phrases
from refspan.script import classify
from refspan.span_locator import ElementOffsets
from refspan.textmatch import find_all, phrase_window_score
from refspan.types import MatchCandidate, PageText, Phrase, Script, Strategy, Tier

log = logging.getLogger(__name__)

MIN_PARTIAL_PHRASE_LENGTH = 5


@dataclass(frozen=True, slots=True)
class MatchPlan:
    """Query-side state computed once per highlight request."""

    query: str
    script: Script
    strategy: Strategy
    phrases: tuple[Phrase, ...]
    fingerprint: Fingerprint
    query_chunks: tuple[Chunk, ...]


@dataclass(frozen=True, slots=True)
class PageMatches:
    """All candidates found on one page."""

    page_index: int
    candidates: tuple[MatchCandidate, ...]
    similarity: float = 0.0
    skipped: bool = False

    @property
    def best_score(self) -> float:
        return max((c.adjusted_score for c in self.candidates), default=0.0)


@dataclass(frozen=True, slots=True)
class PageContext:
    """Normalized page text plus the offsets that map it back to elements."""

    page_index: int
    text: str
    element_texts: list[str]
    offsets: ElementOffsets

    @classmethod
    def from_page(cls, page: PageText) -> PageContext:
        element_texts = page.normalized_texts()
        return cls(
            page_index=page.page_index,
            text=" ".join(element_texts),
            element_texts=element_texts,
            offsets=ElementOffsets(element_texts),
        )


class Matcher:
    """Scores a query's phrases (or chunks) against document pages."""

    def __init__(self, policy: MatchPolicy = DEFAULT_POLICY) -> None:
        self.policy = policy

    # ── Planning ──────────────────────────────────────────────────────

    def plan(self, content: str) -> MatchPlan:
        query = normalize(content)
        script = classify(content)
        strategy = choose_strategy(query, self.policy)
        phrases = extract_phrases(query, strategy, script, self.policy)
        return MatchPlan(
            query=query,
            script=script,
            strategy=strategy,
            phrases=tuple(phrases),
            fingerprint=build_fingerprint(query, script),
            query_chunks=tuple(chunk_text(query, self.policy.chunk_target_size)),
        )

    # ── Page matching ─────────────────────────────────────────────────

    def match_document(
        self,
        pages: Sequence[PageText],
        plan: MatchPlan,
    ) -> list[PageMatches]:
        return [self.match_page(page, plan) for page in pages if page.elements]

    def match_page(self, page: PageText, plan: MatchPlan) -> PageMatches:
        ctx = PageContext.from_page(page)
        similarity = compare_fingerprints(
            plan.fingerprint, build_fingerprint(ctx.text, plan.script)
        )
        if should_skip_page(similarity, len(ctx.text), self.policy):
            log.debug(
                "skipping page %d: fingerprint similarity %.3f", page.page_index, similarity
            )
            return PageMatches(page.page_index, (), similarity, skipped=True)

        candidates: list[MatchCandidate] = []
        if not any(p.text == plan.query for p in plan.phrases):
            candidates.extend(self.find_whole_query(plan.query, ctx))
        for phrase in plan.phrases:
            if phrase.weight < self.policy.min_phrase_weight:
                continue
            candidates.extend(self._match_phrase(phrase, ctx, plan.strategy))

        if plan.script == "non_cjk":
            candidates = [
                c for c in candidates
                if c.adjusted_score > self.policy.non_cjk_min_candidate_score
            ]

        best = max((c.adjusted_score for c in candidates), default=0.0)
        if self.policy.enable_chunk_alignment and best <= self.policy.chunk_escalation_score:
            chunk_candidates = self.find_chunk_matches(ctx, plan.query_chunks)
            if chunk_candidates:
                log.debug(
                    "page %d: chunk alignment added %d candidate(s)",
                    page.page_index, len(chunk_candidates),
                )
            candidates.extend(chunk_candidates)

        return PageMatches(page.page_index, tuple(candidates), similarity)

    def _match_phrase(
        self,
        phrase: Phrase,
        ctx: PageContext,
        strategy: Strategy,
    ) -> list[MatchCandidate]:
        exact = self.find_exact_matches(phrase, ctx)
        if (
            strategy == "exact_plus_partial"
            or len(phrase.text) < self.policy.fuzzy_min_phrase_length
            or any(c.tier == "exact" for c in exact)
        ):
            return exact
        return exact + self.find_fuzzy_matches(phrase, ctx)

    # ── Tier 1: exact plus partial ────────────────────────────────────

    def _candidate(
        self,
        ctx: PageContext,
        start: int,
        end: int,
        raw_score: float,
        phrase: Phrase,
        tier: Tier,
        probe: str,
    ) -> MatchCandidate:
        span = ctx.offsets.locate(start, end)
        return MatchCandidate(
            page_index=ctx.page_index,
            start_index=span.start_index,
            end_index=span.end_index,
            raw_score=raw_score,
            weight=phrase.weight,
            tier=tier,
            phrase=probe,
        )

    def find_whole_query(self, query: str, ctx: PageContext) -> list[MatchCandidate]:
        """Verbatim occurrences of the full query at weight 1.0, no partials.

        Sentence and window phrases only find a verbatim query piecewise, at
        sentence weight and as separate element ranges.
        """
        whole = Phrase(query, 1.0)
        return [
            self._candidate(ctx, pos, pos + len(query), 1.0, whole, "exact", query)
            for pos in find_all(ctx.text, query)
        ]

    def find_exact_matches(
        self,
        phrase: Phrase,
        ctx: PageContext,
    ) -> list[MatchCandidate]:
        text, needle = ctx.text, phrase.text
        matches = [
            self._candidate(ctx, pos, pos + len(needle), 1.0, phrase, "exact", needle)
            for pos in find_all(text, needle)
        ]
        if matches or len(needle) < MIN_PARTIAL_PHRASE_LENGTH:
            return matches

        sub_length = max(MIN_PARTIAL_PHRASE_LENGTH, int(len(needle) * 0.5))
        score = 0.5 + 0.3 * (sub_length / len(needle))
        for i in range(len(needle) - sub_length + 1):
            sub = needle[i:i + sub_length]
            for pos in find_all(text, sub):
                matches.append(
                    self._candidate(ctx, pos, pos + sub_length, score, phrase, "partial", sub)
                )
        return matches

    # ── Tier 2: sliding-window fuzzy ──────────────────────────────────

    def window_geometry(self, phrase_length: int) -> tuple[int, int]:
        """(window size, stride) for a phrase of ``phrase_length`` chars."""
        window = min(phrase_length * 2, self.policy.fuzzy_max_window)
        stride = max(self.policy.fuzzy_min_stride, window // self.policy.fuzzy_stride_divisor)
        return window, stride

    def scan_windows(
        self,
        phrase: str,
        text: str,
        window: int,
        stride: int,
        threshold: float,
    ) -> list[tuple[int, float]]:
        """(offset, score) of every window scoring above ``threshold``.

        A text shorter than the window is scored as a single window.
        """
        hits: list[tuple[int, float]] = []
        last_start = max(0, len(text) - window)
        for start in range(0, last_start + 1, stride):
            score = phrase_window_score(phrase, text[start:start + window])
            if score > threshold:
                hits.append((start, score))
        return hits

    def find_fuzzy_matches(
        self,
        phrase: Phrase,
        ctx: PageContext,
    ) -> list[MatchCandidate]:
        window, stride = self.window_geometry(len(phrase.text))
        hits = self.scan_windows(
            phrase.text, ctx.text, window, stride, self.policy.fuzzy_score_threshold
        )
        matches = [
            self._candidate(
                ctx, start, min(start + window, len(ctx.text)), score, phrase, "fuzzy",
                phrase.text,
            )
            for start, score in hits
        ]
        if matches:
            return matches

        # No window qualified: search the phrase halves exactly, penalized.
        half = len(phrase.text) // 2
        if half == 0:
            return []
        step = max(1, half // 2)
        for i in range(0, len(phrase.text) - half, step):
            segment = Phrase(phrase.text[i:i + half], phrase.weight)
            for m in self.find_exact_matches(segment, ctx):
                matches.append(
                    MatchCandidate(
                        page_index=m.page_index,
                        start_index=m.start_index,
                        end_index=m.end_index,
                        raw_score=m.raw_score * self.policy.half_match_penalty,
                        weight=m.weight,
                        tier="half",
                        phrase=m.phrase,
                    )
                )
        return matches

    # ── Tier 3: chunk alignment ───────────────────────────────────────

    def find_chunk_matches(
        self,
        ctx: PageContext,
        query_chunks: Sequence[Chunk],
    ) -> list[MatchCandidate]:
        if not query_chunks or not ctx.text:
            return []
        page_chunks = chunk_text(ctx.text, self.policy.chunk_target_size)
        sequences = align_chunks(page_chunks, query_chunks, self.policy)
        if not sequences:
            return []
        ranges = map_chunks_to_elements(page_chunks, ctx.element_texts)
        candidates: list[MatchCandidate] = []
        for seq in sequences:
            start = ranges[seq.first_page_chunk][0]
            end = max(start, ranges[seq.last_page_chunk][1])
            candidates.append(
                MatchCandidate(
                    page_index=ctx.page_index,
                    start_index=start,
                    end_index=end,
                    raw_score=seq.score,
                    weight=1.0,
                    tier="chunk",
                    phrase=" ".join(page_chunks[lk.page_chunk].text for lk in seq.links),
                )
            )
        return candidates
