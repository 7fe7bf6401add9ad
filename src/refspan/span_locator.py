"""Map character offsets in a page's conjoined text back to element indices.

Page text is every element's normalized text joined by one separator
character, so element ``i`` occupies ``len(text_i) + 1`` characters of
cumulative length.
"""
from __future__ import annotations

import bisect
import logging
from collections.abc import Sequence
from dataclasses import dataclass

from refspan.normalization import normalize
from refspan.types import TextElement

log = logging.getLogger(__name__)

REPAIR_SPAN = 5


@dataclass(frozen=True, slots=True)
class SpanRange:
    """Inclusive element range; ``repaired`` marks a clamped inversion."""

    start_index: int
    end_index: int
    repaired: bool = False


class ElementOffsets:
    """Cumulative element offsets for one page, built once per page."""

    __slots__ = ("_ends", "_count")

    def __init__(self, element_texts: Sequence[str]) -> None:
        ends: list[int] = []
        total = 0
        for text in element_texts:
            total += len(text) + 1
            ends.append(total)
        self._ends = ends
        self._count = len(ends)

    @classmethod
    def from_elements(cls, elements: Sequence[TextElement]) -> ElementOffsets:
        return cls([normalize(el.text) for el in elements])

    def __len__(self) -> int:
        return self._count

    def locate(self, start_offset: int, end_offset: int) -> SpanRange:
        """Element range covering ``[start_offset, end_offset)``.

        Start is the first element whose span extends past ``start_offset``;
        end is the first whose cumulative length reaches ``end_offset``.
        Offsets past the text clamp to the last element.
        """
        if self._count == 0:
            raise ValueError("cannot locate a span on a page with no elements")
        last = self._count - 1
        start_index = min(bisect.bisect_right(self._ends, start_offset), last)
        end_index = min(bisect.bisect_left(self._ends, end_offset), last)
        if start_index > end_index:
            repaired_end = min(start_index + REPAIR_SPAN, last)
            log.warning(
                "span range inversion repaired: offsets %d..%d gave elements %d > %d; "
                "using %d..%d",
                start_offset, end_offset, start_index, end_index,
                start_index, repaired_end,
            )
            return SpanRange(start_index, repaired_end, repaired=True)
        return SpanRange(start_index, end_index)


def locate_span(
    start_offset: int,
    end_offset: int,
    elements: Sequence[TextElement],
) -> SpanRange:
    """One-shot form of ``ElementOffsets.locate`` for a page's elements."""
    return ElementOffsets.from_elements(elements).locate(start_offset, end_offset)
