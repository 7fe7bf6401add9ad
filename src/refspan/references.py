"""Extract PDF references from chat markup.

Chat pages embed retrieved sources as::

    <chunk><url>https://host/paper.pdf</url><content>quoted text</content></chunk>

Only chunks carrying both tags and pointing at a ``.pdf`` URL are kept.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from bs4 import BeautifulSoup

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Reference:
    """A quoted passage and the PDF it was taken from."""

    url: str
    content: str

    @property
    def label(self) -> str:
        """File name shown to the user: the last URL path segment."""
        return self.url.rstrip("/").split("/")[-1] if self.url else ""


def extract_references(markup: str) -> list[Reference]:
    if not markup:
        return []
    soup = BeautifulSoup(markup, "html.parser")
    refs: list[Reference] = []
    for chunk in soup.find_all("chunk"):
        url_tag = chunk.find("url")
        content_tag = chunk.find("content")
        if url_tag is None or content_tag is None:
            continue
        url = url_tag.get_text().strip()
        if not url.lower().endswith(".pdf"):
            continue
        refs.append(Reference(url=url, content=content_tag.get_text().strip()))
    log.debug("found %d PDF reference(s)", len(refs))
    return refs
