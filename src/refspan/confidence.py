"""Display confidence helpers for accepted selections.

Maps a selection score to a display band and widens selections by a few
neighbouring elements so the consumer shows them in context.
"""

from __future__ import annotations

from refspan.config import DEFAULT_POLICY, MatchPolicy
from refspan.types import Band, HighlightSpan, Script, Selection

HIGH_BAND_MIN = 0.8
MEDIUM_BAND_MIN = 0.6


def confidence_band(score: float) -> Band:
    if score >= HIGH_BAND_MIN:
        return "high"
    if score >= MEDIUM_BAND_MIN:
        return "medium"
    return "low"


def context_padding(
    element_count: int,
    script: Script,
    policy: MatchPolicy = DEFAULT_POLICY,
) -> int:
    """Elements added on each side of a selection.

    CJK pages scale with page size (1% of elements, clamped to
    [1, cjk_context_max]); other scripts use a fixed pad.
    """
    if script == "cjk":
        scaled = int(element_count * policy.cjk_context_ratio)
        return max(1, min(policy.cjk_context_max, scaled))
    return policy.non_cjk_context


def to_display_span(
    selection: Selection,
    element_count: int,
    script: Script,
    policy: MatchPolicy = DEFAULT_POLICY,
) -> HighlightSpan:
    """Pad ``selection`` by its context and clamp to the page."""
    pad = context_padding(element_count, script, policy)
    last = max(0, element_count - 1)
    return HighlightSpan(
        page_index=selection.page_index,
        start_index=max(0, selection.start_index - pad),
        end_index=min(last, selection.end_index + pad),
        score=selection.score,
        band=confidence_band(selection.score),
    )
