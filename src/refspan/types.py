"""Core types shared by every stage of the highlight pipeline.

Element indices are always page-scoped positions in ``PageText.elements``.
Ranges are inclusive on both ends. All dataclasses use slots=True.

Type hierarchy:
  TextElement     : one unit of extracted text (producer-owned, read-only)
  PageText        : ordered elements of one page
  Phrase          : weighted probe derived from the query
  MatchCandidate  : scored element range found by a matcher tier
  Selection       : candidate accepted by the selector
  HighlightSpan   : padded, banded display range for the consumer
  HighlightResult : outcome of one highlight request
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from refspan.normalization import normalize

type Script = Literal["cjk", "non_cjk"]
type Strategy = Literal["exact_plus_partial", "phrase_based", "segmentation"]
type Tier = Literal["exact", "partial", "fuzzy", "half", "chunk", "fallback"]
type Band = Literal["high", "medium", "low"]


@dataclass(frozen=True, slots=True)
class TextElement:
    """Smallest addressable unit of extracted document text."""

    index: int
    text: str


@dataclass(frozen=True, slots=True)
class PageText:
    """One document page as an ordered sequence of text elements."""

    page_index: int
    elements: tuple[TextElement, ...]

    def normalized_texts(self) -> list[str]:
        return [normalize(el.text) for el in self.elements]

    def page_text(self) -> str:
        """Normalized element texts joined by a single space separator."""
        return " ".join(self.normalized_texts())


@dataclass(frozen=True, slots=True)
class Phrase:
    """Weighted candidate substring of the query.

    Weight expresses matching priority, not probability.
    """

    text: str
    weight: float

    def __post_init__(self) -> None:
        if not 0.0 < self.weight <= 1.0:
            raise ValueError(f"phrase weight must be in (0, 1], got {self.weight}")


@dataclass(frozen=True, slots=True)
class MatchCandidate:
    """A scored element range on one page."""

    page_index: int
    start_index: int
    end_index: int
    raw_score: float
    weight: float = 1.0
    tier: Tier = "exact"
    phrase: str = ""

    def __post_init__(self) -> None:
        if self.start_index < 0 or self.start_index > self.end_index:
            raise ValueError(
                f"invalid element range {self.start_index}..{self.end_index}"
            )

    @property
    def adjusted_score(self) -> float:
        return max(0.0, min(1.0, self.raw_score * self.weight))

    @property
    def span_length(self) -> int:
        return self.end_index - self.start_index + 1


@dataclass(frozen=True, slots=True)
class Selection:
    """A candidate chosen for display."""

    page_index: int
    start_index: int
    end_index: int
    score: float
    tier: Tier = "exact"

    @classmethod
    def from_candidate(cls, candidate: MatchCandidate) -> Selection:
        return cls(
            page_index=candidate.page_index,
            start_index=candidate.start_index,
            end_index=candidate.end_index,
            score=round(candidate.adjusted_score, 6),
            tier=candidate.tier,
        )


@dataclass(frozen=True, slots=True)
class HighlightSpan:
    """Display range handed to the highlight consumer."""

    page_index: int
    start_index: int
    end_index: int
    score: float
    band: Band

    @property
    def element_count(self) -> int:
        return self.end_index - self.start_index + 1


@dataclass(frozen=True, slots=True)
class HighlightResult:
    """Outcome of one highlight request."""

    success: bool
    status: str
    selections: tuple[Selection, ...] = ()
    spans: tuple[HighlightSpan, ...] = ()
    best_score: float = 0.0
    fallback_used: bool = False
    cancelled: bool = False
    script: Script | None = None
    strategy: Strategy | None = None
    details: dict[str, object] = field(default_factory=dict)

    @property
    def highlighted_elements(self) -> int:
        return sum(span.element_count for span in self.spans)


def pages_from_texts(pages: list[list[str]]) -> list[PageText]:
    """Build ``PageText`` values from raw element strings, page by page."""
    return [
        PageText(
            page_index=page_index,
            elements=tuple(
                TextElement(index=i, text=text) for i, text in enumerate(texts)
            ),
        )
        for page_index, texts in enumerate(pages)
    ]
