"""Document producers: turn files into ``PageText`` sequences.

JSON documents look like::

    {"pages": [{"page_index": 0, "elements": ["text", {"text": "more"}]}]}

A bare list of pages is also accepted, and ``page_index`` defaults to the
page's position. PDFs are read with PyMuPDF: every text span of
``page.get_text("dict")`` becomes one element, in block/line/span order.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, cast

import fitz

from refspan.io_utils import load_json
from refspan.types import PageText, TextElement

log = logging.getLogger(__name__)

_PDF_SUFFIXES = frozenset({".pdf"})


def _element_text(raw: Any, page_pos: int, el_pos: int) -> str:
    if isinstance(raw, str):
        return raw
    if isinstance(raw, dict) and isinstance(raw.get("text"), str):
        return cast(str, raw["text"])
    raise ValueError(f"page {page_pos}, element {el_pos}: expected a string or {{'text': str}}")


def pages_from_payload(payload: Any) -> list[PageText]:
    """Validate a decoded JSON document and build its pages."""
    raw_pages = payload.get("pages") if isinstance(payload, dict) else payload
    if not isinstance(raw_pages, list):
        raise ValueError("document must be a list of pages or an object with a 'pages' list")

    pages: list[PageText] = []
    seen: set[int] = set()
    for pos, raw_page in enumerate(cast(list[Any], raw_pages)):
        if isinstance(raw_page, list):
            page_index, raw_elements = pos, raw_page
        elif isinstance(raw_page, dict):
            page_index = raw_page.get("page_index", pos)
            raw_elements = raw_page.get("elements")
        else:
            raise ValueError(f"page {pos}: expected an object or a list of elements")
        if not isinstance(page_index, int) or isinstance(page_index, bool) or page_index < 0:
            raise ValueError(f"page {pos}: page_index must be a non-negative integer")
        if page_index in seen:
            raise ValueError(f"page {pos}: duplicate page_index {page_index}")
        if not isinstance(raw_elements, list):
            raise ValueError(f"page {pos}: 'elements' must be a list")
        seen.add(page_index)
        elements = tuple(
            TextElement(index=i, text=_element_text(raw, pos, i))
            for i, raw in enumerate(cast(list[Any], raw_elements))
        )
        pages.append(PageText(page_index=page_index, elements=elements))
    return pages


def load_document(path: Path) -> list[PageText]:
    if not path.exists():
        raise FileNotFoundError(f"Document not found: {path}")
    try:
        payload = load_json(path)
    except ValueError as exc:
        raise ValueError(f"{path}: invalid JSON ({exc})") from exc
    return pages_from_payload(payload)


def load_pdf(path: Path) -> list[PageText]:
    """One ``PageText`` per PDF page, one element per non-empty text span."""
    if not path.exists():
        raise FileNotFoundError(f"Document not found: {path}")
    pages: list[PageText] = []
    with fitz.open(str(path)) as doc:
        for page_index, page in enumerate(doc):
            texts: list[str] = []
            data = page.get_text("dict") or {}
            for block in data.get("blocks", []):
                for line in block.get("lines", []):
                    for span in line.get("spans", []):
                        text = span.get("text", "")
                        if text.strip():
                            texts.append(text)
            pages.append(PageText(
                page_index=page_index,
                elements=tuple(TextElement(index=i, text=t) for i, t in enumerate(texts)),
            ))
    log.debug("loaded %d page(s) from %s", len(pages), path)
    return pages


def load_pages(path: Path) -> list[PageText]:
    """Load a document by suffix: ``.pdf`` via PyMuPDF, anything else as JSON."""
    if path.suffix.lower() in _PDF_SUFFIXES:
        return load_pdf(path)
    return load_document(path)
