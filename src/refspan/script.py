"""Binary script classification that routes the pipeline."""

from __future__ import annotations

import re

from refspan.types import Script

# CJK symbols/punctuation, hiragana, katakana, half/full-width forms, CJK ideographs.
_CJK_PROBE_RE = re.compile(
    r"[\u3000-\u303f\u3040-\u309f\u30a0-\u30ff\uff00-\uff9f\u4e00-\u9faf]"
)


def classify(text: str | None) -> Script:
    """Return ``"cjk"`` if any CJK code point is present, else ``"non_cjk"``.

    One CJK character is enough; the decision is not proportional.
    """
    if text and _CJK_PROBE_RE.search(text):
        return "cjk"
    return "non_cjk"


def is_cjk(text: str | None) -> bool:
    return classify(text) == "cjk"
