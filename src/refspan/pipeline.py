"""End-to-end highlight run: query + pages -> padded, scored display spans.

``highlight`` is a pure function. ``HighlightSession`` adds the little
state a viewer needs: the loaded pages, the last highlighted content (for
re-running after a zoom or resize) and the consumer that draws marks.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Protocol

from refspan.config import DEFAULT_POLICY, MatchPolicy
from refspan.confidence import to_display_span
from refspan.fallback import FallbackHit, run_fallback
from refspan.matcher import Matcher
from refspan.selector import select_candidates
from refspan.types import HighlightResult, HighlightSpan, PageText, Script

log = logging.getLogger(__name__)

STATUS_EMPTY_CONTENT = "No content to highlight"
STATUS_NO_DOCUMENT = "No document loaded to highlight"
STATUS_NO_MATCH = "No similar text found in document"
STATUS_CANCELLED = "Highlight superseded by a newer request"


def _fallback_status(count: int, script: Script) -> str:
    if script == "cjk":
        return f"Found {count} partial character matches"
    return f"Found {count} partial matches"


def _fallback_spans(hits: Sequence[FallbackHit]) -> tuple[HighlightSpan, ...]:
    return tuple(
        HighlightSpan(
            page_index=hit.page_index,
            start_index=hit.element_index,
            end_index=hit.element_index,
            score=round(hit.score, 6),
            band=hit.band,
        )
        for hit in hits
    )


def highlight(
    content: str | None,
    pages: Sequence[PageText] | None,
    policy: MatchPolicy | None = None,
) -> HighlightResult:
    """Locate ``content`` in ``pages``.

    Never raises for data-dependent outcomes: empty input, a missing
    document and "no match" all come back as a status on the result.
    """
    policy = policy or DEFAULT_POLICY
    if not content or not content.strip():
        return HighlightResult(success=False, status=STATUS_EMPTY_CONTENT)
    if not pages or not any(page.elements for page in pages):
        return HighlightResult(success=False, status=STATUS_NO_DOCUMENT)

    matcher = Matcher(policy)
    plan = matcher.plan(content)
    log.debug(
        "query: %d chars, script=%s, strategy=%s, %d phrase(s)",
        len(plan.query), plan.script, plan.strategy, len(plan.phrases),
    )
    page_matches = matcher.match_document(pages, plan)
    selections = select_candidates(page_matches, policy)
    details: dict[str, object] = {
        "pages_scanned": len(page_matches),
        "pages_skipped": sum(1 for pm in page_matches if pm.skipped),
        "candidates": sum(len(pm.candidates) for pm in page_matches),
        "phrases": [p.text for p in plan.phrases],
    }

    if selections:
        sizes = {page.page_index: len(page.elements) for page in pages}
        spans = tuple(
            to_display_span(sel, sizes[sel.page_index], plan.script, policy)
            for sel in selections
        )
        best = max(sel.score for sel in selections)
        covered = sum(span.element_count for span in spans)
        return HighlightResult(
            success=True,
            status=f"Highlighted with {round(best * 100)}% match ({covered} spans)",
            selections=tuple(selections),
            spans=spans,
            best_score=best,
            script=plan.script,
            strategy=plan.strategy,
            details=details,
        )

    hits = run_fallback(plan.query, plan.script, pages)
    if hits:
        log.debug("no phrase selection survived; fallback marked %d element(s)", len(hits))
        return HighlightResult(
            success=True,
            status=_fallback_status(len(hits), plan.script),
            spans=_fallback_spans(hits),
            best_score=round(max(hit.score for hit in hits), 6),
            fallback_used=True,
            script=plan.script,
            strategy=plan.strategy,
            details=details,
        )

    return HighlightResult(
        success=False,
        status=STATUS_NO_MATCH,
        script=plan.script,
        strategy=plan.strategy,
        details=details,
    )


# ── Session ───────────────────────────────────────────────────────────


class HighlightConsumer(Protocol):
    """Side that draws and removes marks; only sees index ranges."""

    def clear(self) -> None: ...

    def apply(self, result: HighlightResult) -> None: ...


class HighlightSession:
    """One viewer's document plus its most recent highlight request.

    A call to ``highlight`` made while the consumer is still clearing the
    previous marks supersedes the outer call, which then returns a
    cancelled result without touching the consumer again.
    """

    def __init__(
        self,
        consumer: HighlightConsumer | None = None,
        policy: MatchPolicy | None = None,
    ) -> None:
        self.consumer = consumer
        self.policy = policy or DEFAULT_POLICY
        self.pages: tuple[PageText, ...] = ()
        self.last_content: str | None = None
        self.active: HighlightResult | None = None
        self._generation = 0

    def load_document(self, pages: Sequence[PageText]) -> None:
        """Swap in a new document and drop the previous document's marks."""
        self._generation += 1
        if self.consumer is not None:
            self.consumer.clear()
        self.pages = tuple(pages)
        self.active = None

    def highlight(self, content: str | None) -> HighlightResult:
        self._generation += 1
        generation = self._generation
        self.last_content = content
        if self.consumer is not None:
            self.consumer.clear()
        if generation != self._generation:
            log.debug("highlight request %d superseded during clear", generation)
            return HighlightResult(success=False, status=STATUS_CANCELLED, cancelled=True)

        result = highlight(content, self.pages, self.policy)
        self.active = result
        if self.consumer is not None and result.spans:
            self.consumer.apply(result)
        return result

    def reapply(self) -> HighlightResult | None:
        """Re-run the last request, e.g. after the view geometry changed."""
        if self.last_content is None:
            return None
        return self.highlight(self.last_content)

    def clear(self) -> None:
        self._generation += 1
        if self.consumer is not None:
            self.consumer.clear()
        self.pages = ()
        self.last_content = None
        self.active = None
