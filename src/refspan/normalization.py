"""Deterministic text normalization shared by queries and page text."""

from __future__ import annotations

import re


_WHITESPACE_RE = re.compile(r"\s+")

# Width-variant and typographic punctuation folded to ASCII.
_PUNCT_TABLE = str.maketrans({
    "　": " ",   # ideographic space
    "＂": '"',   # fullwidth quotation mark
    "“": '"',
    "”": '"',
    "＇": "'",   # fullwidth apostrophe
    "‘": "'",
    "’": "'",
    "！": "!",
    "？": "?",
    "（": "(",
    "）": ")",
    "：": ":",
})


def normalize(text: str | None) -> str:
    """Canonicalize whitespace and width-variant punctuation.

    1. Fold full-width space and punctuation to half-width.
    2. Collapse whitespace runs (newlines, tabs) to one space.
    3. Trim both ends.

    Idempotent: ``normalize(normalize(x)) == normalize(x)``.
    """
    if not text:
        return ""
    folded = text.translate(_PUNCT_TABLE)
    return _WHITESPACE_RE.sub(" ", folded).strip()
