"""Cross-page candidate selection with overlap resolution.

Selection steps:
1. rank pages by best candidate score
2. take up to N strong candidates from the best page
3. take the single best candidate from a few runner-up pages if very strong
4. greedily accept by score unless >50% of a candidate's elements are
   already covered on its page
5. if nothing survives but candidates existed, force-accept the best one

All orderings are deterministic: score desc, page asc, start asc, end asc.
"""

from __future__ import annotations

from collections.abc import Sequence

from refspan.config import DEFAULT_POLICY, MatchPolicy
from refspan.matcher import PageMatches
from refspan.types import MatchCandidate, Selection


def candidate_sort_key(candidate: MatchCandidate) -> tuple[float, int, int, int]:
    return (
        -candidate.adjusted_score,
        candidate.page_index,
        candidate.start_index,
        candidate.end_index,
    )


def overlap_fraction(
    candidate: MatchCandidate | Selection,
    covered: set[tuple[int, int]],
) -> float:
    """Share of the candidate's elements already in ``covered``."""
    total = candidate.end_index - candidate.start_index + 1
    hits = sum(
        1
        for i in range(candidate.start_index, candidate.end_index + 1)
        if (candidate.page_index, i) in covered
    )
    return hits / total


def _ranked_pages(page_matches: Sequence[PageMatches]) -> list[list[MatchCandidate]]:
    ranked = [
        sorted(pm.candidates, key=candidate_sort_key)
        for pm in page_matches
        if pm.candidates
    ]
    ranked.sort(key=lambda cands: candidate_sort_key(cands[0]))
    return ranked


def select_candidates(
    page_matches: Sequence[PageMatches],
    policy: MatchPolicy = DEFAULT_POLICY,
) -> list[Selection]:
    """Final non-overlapping selection, best first."""
    pages = _ranked_pages(page_matches)
    if not pages:
        return []

    taken: list[MatchCandidate] = [
        c for c in pages[0][:policy.best_page_max_candidates]
        if c.adjusted_score > policy.best_page_min_score
    ]
    for cands in pages[1:1 + policy.other_pages_max]:
        if cands[0].adjusted_score > policy.other_page_min_score:
            taken.append(cands[0])
    taken.sort(key=candidate_sort_key)

    accepted: list[MatchCandidate] = []
    covered: set[tuple[int, int]] = set()
    for candidate in taken:
        if overlap_fraction(candidate, covered) > policy.max_overlap_fraction:
            continue
        accepted.append(candidate)
        covered.update(
            (candidate.page_index, i)
            for i in range(candidate.start_index, candidate.end_index + 1)
        )

    if not accepted:
        best = min((c for cands in pages for c in cands), key=candidate_sort_key)
        if best.adjusted_score > 0:
            accepted.append(best)

    return [Selection.from_candidate(c) for c in accepted]
