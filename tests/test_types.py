"""Tests for refspan.types module."""
import pytest

from refspan.types import (
    HighlightResult,
    HighlightSpan,
    MatchCandidate,
    Phrase,
    Selection,
    TextElement,
    pages_from_texts,
)


class TestPhrase:
    def test_valid_weight(self) -> None:
        assert Phrase("abc", 1.0).weight == 1.0

    @pytest.mark.parametrize("weight", [0.0, -0.1, 1.01])
    def test_invalid_weight_raises(self, weight: float) -> None:
        with pytest.raises(ValueError):
            Phrase("abc", weight)


class TestMatchCandidate:
    def test_adjusted_score(self) -> None:
        c = MatchCandidate(0, 1, 2, raw_score=0.8, weight=0.5)
        assert abs(c.adjusted_score - 0.4) < 1e-9
        assert c.span_length == 2

    def test_adjusted_score_clamped(self) -> None:
        assert MatchCandidate(0, 0, 0, raw_score=1.5).adjusted_score == 1.0

    def test_inverted_range_raises(self) -> None:
        with pytest.raises(ValueError):
            MatchCandidate(0, 3, 2, raw_score=1.0)

    def test_negative_start_raises(self) -> None:
        with pytest.raises(ValueError):
            MatchCandidate(0, -1, 2, raw_score=1.0)


class TestSelection:
    def test_from_candidate_keeps_range_and_tier(self) -> None:
        c = MatchCandidate(2, 4, 6, raw_score=0.9, weight=0.7, tier="partial")
        s = Selection.from_candidate(c)
        assert (s.page_index, s.start_index, s.end_index) == (2, 4, 6)
        assert s.score == round(0.9 * 0.7, 6)
        assert s.tier == "partial"


class TestHighlightResult:
    def test_highlighted_elements_counts_span_widths(self) -> None:
        result = HighlightResult(
            success=True,
            status="ok",
            spans=(
                HighlightSpan(0, 0, 2, 1.0, "high"),
                HighlightSpan(1, 5, 5, 0.7, "medium"),
            ),
        )
        assert result.highlighted_elements == 4


class TestPagesFromTexts:
    def test_indices(self) -> None:
        pages = pages_from_texts([["a", "b"], [], ["c"]])
        assert [p.page_index for p in pages] == [0, 1, 2]
        assert pages[0].elements == (TextElement(0, "a"), TextElement(1, "b"))
        assert pages[1].elements == ()

    def test_page_text_is_normalized_and_space_joined(self) -> None:
        page = pages_from_texts([["  one\n", "（two）"]])[0]
        assert page.page_text() == "one (two)"
