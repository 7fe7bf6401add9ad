"""Tests for refspan.matcher module."""
from dataclasses import replace

import pytest

from refspan.config import DEFAULT_POLICY
from refspan.matcher import Matcher, PageContext
from refspan.types import PageText, Phrase, pages_from_texts

ML_BASICS = "機械学習の基礎について説明します。"


def _page(texts: list[str], page_index: int = 0) -> PageText:
    page = pages_from_texts([texts])[0]
    return replace(page, page_index=page_index)


@pytest.fixture()
def matcher() -> Matcher:
    return Matcher(DEFAULT_POLICY)


class TestPlan:
    def test_cjk_plan(self, matcher: Matcher) -> None:
        plan = matcher.plan(ML_BASICS)
        assert plan.script == "cjk"
        assert plan.strategy == "exact_plus_partial"
        assert plan.phrases[0].text == ML_BASICS
        assert plan.query_chunks[0].text == ML_BASICS

    def test_query_is_normalized(self, matcher: Matcher) -> None:
        plan = matcher.plan("  Hello\n\nworld  ")
        assert plan.query == "Hello world"
        assert plan.script == "non_cjk"


class TestExactMatches:
    def test_exact_hit_maps_to_element(self, matcher: Matcher) -> None:
        ctx = PageContext.from_page(_page(["第二章", ML_BASICS, "次の節では応用を扱います。"], 2))
        matches = matcher.find_exact_matches(Phrase(ML_BASICS, 1.0), ctx)
        assert len(matches) == 1
        m = matches[0]
        assert (m.page_index, m.start_index, m.end_index) == (2, 1, 1)
        assert m.tier == "exact"
        assert m.adjusted_score == 1.0

    def test_partial_score_formula(self, matcher: Matcher) -> None:
        phrase = "abcdefghijklmnopqrst"  # 20 chars -> 10-char probes
        ctx = PageContext.from_page(_page(["zz", "abcdefghij", "yy"]))
        matches = matcher.find_exact_matches(Phrase(phrase, 1.0), ctx)
        assert matches
        assert all(m.tier == "partial" for m in matches)
        assert abs(matches[0].raw_score - (0.5 + 0.3 * 10 / 20)) < 1e-9
        assert (matches[0].start_index, matches[0].end_index) == (1, 1)

    def test_short_phrase_no_partials(self, matcher: Matcher) -> None:
        ctx = PageContext.from_page(_page(["abc"]))
        assert matcher.find_exact_matches(Phrase("abxy", 1.0), ctx) == []

    def test_weight_applies(self, matcher: Matcher) -> None:
        ctx = PageContext.from_page(_page(["機械学習"]))
        [m] = matcher.find_exact_matches(Phrase("機械学習", 0.7), ctx)
        assert abs(m.adjusted_score - 0.7) < 1e-9


class TestFuzzy:
    def test_window_geometry(self, matcher: Matcher) -> None:
        assert matcher.window_geometry(20) == (40, 6)
        assert matcher.window_geometry(200) == (300, 50)
        assert matcher.window_geometry(10) == (20, 5)

    def test_scan_includes_short_text(self, matcher: Matcher) -> None:
        hits = matcher.scan_windows("abc", "xxabcxx", 40, 6, 0.4)
        assert hits == [(0, 1.0)]

    def test_stricter_threshold_never_finds_more(self, matcher: Matcher) -> None:
        text = "機械学習の基礎を学ぶ。深層学習の基礎を学ぶ。統計学習の応用を学ぶ。" * 3
        phrase = "機械学習の基礎と応用を学ぶ"
        loose = matcher.scan_windows(phrase, text, 26, 5, 0.3)
        strict = matcher.scan_windows(phrase, text, 26, 5, 0.6)
        wide = matcher.scan_windows(phrase, text, 26, 10, 0.3)
        assert len(strict) <= len(loose)
        assert len(wide) <= len(loose)

    def test_half_fallback_penalized(self, matcher: Matcher) -> None:
        phrase = "0123456789ABCDEFGHIJ"  # halves of 10 chars
        ctx = PageContext.from_page(_page(["prefix", "0123456789", "suffix"]))
        policy = replace(DEFAULT_POLICY, fuzzy_score_threshold=0.99)
        matches = Matcher(policy).find_fuzzy_matches(Phrase(phrase, 1.0), ctx)
        assert matches
        assert {m.tier for m in matches} == {"half"}
        assert max(m.raw_score for m in matches) == pytest.approx(0.7)


class TestMatchPage:
    def test_exact_page_scores_one(self, matcher: Matcher) -> None:
        plan = matcher.plan(ML_BASICS)
        result = matcher.match_page(_page(["第二章", ML_BASICS], 2), plan)
        assert not result.skipped
        assert result.best_score == 1.0

    def test_whole_query_found_for_sentence_split_plan(self, matcher: Matcher) -> None:
        query = "機械学習の基礎。深層学習の応用。統計的手法の紹介。強化学習の概要です。"
        plan = matcher.plan(query)
        assert plan.strategy == "phrase_based"
        assert all(p.text != plan.query for p in plan.phrases)
        result = matcher.match_page(_page(["序章", query, "付録"]), plan)
        whole = [c for c in result.candidates if c.phrase == plan.query]
        assert len(whole) == 1
        assert whole[0].tier == "exact"
        assert whole[0].adjusted_score == 1.0
        assert (whole[0].start_index, whole[0].end_index) == (1, 1)

    def test_whole_query_spans_elements(self, matcher: Matcher) -> None:
        query = "Coastal wetlands absorb carbon. Tidal marshes store more of it."
        ctx = PageContext.from_page(_page([
            "Intro", "Coastal wetlands absorb carbon.", "Tidal marshes store more of it.",
        ]))
        [m] = matcher.find_whole_query(query, ctx)
        assert (m.start_index, m.end_index) == (1, 2)
        assert m.weight == 1.0

    def test_fingerprint_skip_on_long_dissimilar_page(self) -> None:
        m = Matcher(replace(DEFAULT_POLICY, fingerprint_skip_similarity=0.5))
        plan = m.plan("Quantum chromodynamics lattice simulations")
        page = _page(["0123456789 " * 120])
        result = m.match_page(page, plan)
        assert result.skipped
        assert result.candidates == ()

    def test_non_cjk_floor(self, matcher: Matcher) -> None:
        plan = matcher.plan("Researchers measured how coastal wetlands")
        result = matcher.match_page(_page(["Researchers measured how"]), plan)
        assert any(c.tier == "partial" for c in result.candidates)
        assert all(c.adjusted_score > 0.5 for c in result.candidates)

    def test_non_cjk_floor_is_configurable(self) -> None:
        policy = replace(
            DEFAULT_POLICY, non_cjk_min_candidate_score=0.9, enable_chunk_alignment=False
        )
        m = Matcher(policy)
        plan = m.plan("Researchers measured how coastal wetlands")
        result = m.match_page(_page(["Researchers measured how"]), plan)
        assert result.candidates == ()

    def test_chunk_escalation(self) -> None:
        policy = replace(DEFAULT_POLICY, chunk_unit=4)
        m = Matcher(policy)
        query = ("Coastal wetlands absorb large amounts of carbon. "
                 "Tidal marshes store more carbon than forests do.")
        page = _page([
            "Intro text.",
            "Coastal wetland soils absorb big amounts of carbon.",
            "Tidal marsh plots keep more carbon compared with forest.",
        ])
        result = m.match_page(page, m.plan(query))
        tiers = {c.tier for c in result.candidates}
        assert "chunk" in tiers
        chunk = max(
            (c for c in result.candidates if c.tier == "chunk"),
            key=lambda c: c.adjusted_score,
        )
        assert chunk.start_index >= 1

    def test_chunk_alignment_disabled(self) -> None:
        policy = replace(DEFAULT_POLICY, enable_chunk_alignment=False)
        m = Matcher(policy)
        plan = m.plan("Coastal wetlands absorb large amounts of carbon.")
        result = m.match_page(_page(["Coastal wetlands absorb carbon."]), plan)
        assert all(c.tier != "chunk" for c in result.candidates)

    def test_match_document_skips_empty_pages(self, matcher: Matcher) -> None:
        pages = pages_from_texts([[], ["機械学習"]])
        results = matcher.match_document(pages, matcher.plan("機械学習"))
        assert [r.page_index for r in results] == [1]
