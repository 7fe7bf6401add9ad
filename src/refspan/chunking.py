"""Sentence-bounded chunk alignment between a query and a page.

Both texts are packed into chunks of roughly ``target_size`` characters
without crossing sentence boundaries (oversized sentences are hard-split).
Every (page chunk, query chunk) pair is scored; pairs above the link
threshold become links, and runs of consecutive links form sequences that
reward long contiguous agreement.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from refspan.config import DEFAULT_POLICY, MatchPolicy
from refspan.phrases import split_sentences
from refspan.span_locator import ElementOffsets
from refspan.textmatch import longest_common_substring, word_overlap_ratio


@dataclass(frozen=True, slots=True)
class Chunk:
    """A sentence-respecting slice of text with its character offsets."""

    index: int
    text: str
    start: int
    end: int


@dataclass(frozen=True, slots=True)
class ChunkLink:
    page_chunk: int
    query_chunk: int
    similarity: float


@dataclass(frozen=True, slots=True)
class ChunkSequence:
    """Consecutive links; ``score`` already includes the run-length bonus."""

    links: tuple[ChunkLink, ...]
    score: float

    @property
    def first_page_chunk(self) -> int:
        return self.links[0].page_chunk

    @property
    def last_page_chunk(self) -> int:
        return self.links[-1].page_chunk


def _sentence_spans(text: str) -> list[tuple[int, int]]:
    """Offsets of each sentence inside ``text``, in order."""
    spans: list[tuple[int, int]] = []
    cursor = 0
    for sentence in split_sentences(text):
        start = text.find(sentence, cursor)
        if start < 0:
            continue
        end = start + len(sentence)
        spans.append((start, end))
        cursor = end
    return spans


def chunk_text(text: str, target_size: int) -> list[Chunk]:
    """Pack sentences into chunks of about ``target_size`` characters."""
    if not text or target_size <= 0:
        return []
    pieces: list[tuple[int, int]] = []
    for start, end in _sentence_spans(text):
        while end - start > target_size:
            pieces.append((start, start + target_size))
            start += target_size
        pieces.append((start, end))

    chunks: list[Chunk] = []
    current: tuple[int, int] | None = None
    for start, end in pieces:
        if current is None:
            current = (start, end)
        elif end - current[0] <= target_size:
            current = (current[0], end)
        else:
            chunks.append(_make_chunk(text, len(chunks), current))
            current = (start, end)
    if current is not None:
        chunks.append(_make_chunk(text, len(chunks), current))
    return [c for c in chunks if c.text]


def _make_chunk(text: str, index: int, span: tuple[int, int]) -> Chunk:
    raw = text[span[0]:span[1]]
    stripped = raw.strip()
    start = span[0] + (len(raw) - len(raw.lstrip()))
    return Chunk(index=index, text=stripped, start=start, end=start + len(stripped))


def chunk_similarity(page_chunk: str, query_chunk: str) -> float:
    """Similarity in [0, 1] between two chunk texts.

    Exact match scores 1.0. Containment scores 0.8 times the length ratio.
    Otherwise the score is 0.6 x word overlap + 0.4 x LCS ratio. The best of
    these wins.
    """
    if not page_chunk or not query_chunk:
        return 0.0
    if page_chunk == query_chunk:
        return 1.0
    shorter, longer = sorted((page_chunk, query_chunk), key=len)
    containment = 0.8 * len(shorter) / len(longer) if shorter in longer else 0.0
    lcs_ratio = len(longest_common_substring(page_chunk, query_chunk)) / len(shorter)
    blended = 0.6 * word_overlap_ratio(page_chunk, query_chunk) + 0.4 * lcs_ratio
    return min(1.0, max(containment, blended))


def find_links(
    page_chunks: Sequence[Chunk],
    query_chunks: Sequence[Chunk],
    threshold: float,
) -> list[ChunkLink]:
    """Best-scoring query chunk per page chunk, kept when above ``threshold``."""
    links: list[ChunkLink] = []
    for page_chunk in page_chunks:
        best: ChunkLink | None = None
        for query_chunk in query_chunks:
            sim = chunk_similarity(page_chunk.text, query_chunk.text)
            if sim > threshold and (best is None or sim > best.similarity):
                best = ChunkLink(page_chunk.index, query_chunk.index, sim)
        if best is not None:
            links.append(best)
    return links


def _sequence_score(links: list[ChunkLink]) -> float:
    avg = sum(link.similarity for link in links) / len(links)
    return min(1.0, avg * (1.0 + min(0.5, 0.1 * len(links))))


def group_sequences(links: Sequence[ChunkLink]) -> list[ChunkSequence]:
    """Group links whose page chunks are adjacent and whose query chunk
    indexes differ by at most one."""
    sequences: list[ChunkSequence] = []
    run: list[ChunkLink] = []
    for link in sorted(links, key=lambda lk: (lk.page_chunk, lk.query_chunk)):
        if run:
            prev = run[-1]
            adjacent = link.page_chunk == prev.page_chunk + 1
            in_order = abs(link.query_chunk - prev.query_chunk) <= 1
            if not (adjacent and in_order):
                sequences.append(ChunkSequence(tuple(run), _sequence_score(run)))
                run = []
        run.append(link)
    if run:
        sequences.append(ChunkSequence(tuple(run), _sequence_score(run)))
    return sequences


def map_chunks_to_elements(
    chunks: Sequence[Chunk],
    element_texts: Sequence[str],
) -> list[tuple[int, int]]:
    """Inclusive element range per chunk, by greedy accumulation.

    Elements are joined from a cursor until their text contains the chunk,
    then the window is tightened from the left. The cursor only moves
    forward, so chunks must be in page order. ``element_texts`` must already
    be normalized.
    """
    if not element_texts:
        return []
    offsets = ElementOffsets(element_texts)
    ranges: list[tuple[int, int]] = []
    cursor = 0
    count = len(element_texts)
    for chunk in chunks:
        found: tuple[int, int] | None = None
        for end in range(cursor, count):
            if chunk.text in " ".join(element_texts[cursor:end + 1]):
                start = cursor
                while start < end and chunk.text in " ".join(element_texts[start + 1:end + 1]):
                    start += 1
                found = (start, end)
                break
        if found is None:
            span = offsets.locate(chunk.start, chunk.end)
            found = (span.start_index, span.end_index)
        ranges.append(found)
        cursor = found[0]
    return ranges


def align_chunks(
    page_chunks: Sequence[Chunk],
    query_chunks: Sequence[Chunk],
    policy: MatchPolicy = DEFAULT_POLICY,
) -> list[ChunkSequence]:
    """Scored chunk sequences for one page, best first."""
    links = find_links(page_chunks, query_chunks, policy.chunk_link_threshold)
    sequences = group_sequences(links)
    return sorted(sequences, key=lambda s: (-s.score, s.first_page_chunk))
