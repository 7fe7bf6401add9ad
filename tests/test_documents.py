"""Tests for refspan.documents module."""
from __future__ import annotations

from pathlib import Path

import fitz
import orjson
import pytest

from refspan.documents import load_document, load_pages, load_pdf, pages_from_payload


def _write(path: Path, payload: object) -> Path:
    path.write_bytes(orjson.dumps(payload))
    return path


class TestPagesFromPayload:
    def test_object_form(self) -> None:
        pages = pages_from_payload(
            {"pages": [{"page_index": 3, "elements": ["a", {"text": "b"}]}]}
        )
        assert pages[0].page_index == 3
        assert [e.text for e in pages[0].elements] == ["a", "b"]

    def test_bare_list_form(self) -> None:
        pages = pages_from_payload([["a"], {"elements": []}])
        assert [p.page_index for p in pages] == [0, 1]
        assert pages[1].elements == ()

    @pytest.mark.parametrize(
        "payload",
        [
            {"nope": []},
            "text",
            [{"elements": "abc"}],
            [{"elements": [1]}],
            [{"page_index": -1, "elements": []}],
            [{"page_index": 0, "elements": []}, {"page_index": 0, "elements": []}],
            [42],
        ],
    )
    def test_malformed(self, payload: object) -> None:
        with pytest.raises(ValueError):
            pages_from_payload(payload)


class TestLoadDocument:
    def test_json_file(self, tmp_path: Path) -> None:
        path = _write(tmp_path / "doc.json", {"pages": [["Hello", "world"]]})
        pages = load_document(path)
        assert pages[0].page_text() == "Hello world"

    def test_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "doc.json"
        path.write_text("{not json")
        with pytest.raises(ValueError):
            load_document(path)

    def test_missing(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_document(tmp_path / "absent.json")


class TestLoadPdf:
    def test_spans_become_elements(self, tmp_path: Path) -> None:
        path = tmp_path / "doc.pdf"
        doc = fitz.open()
        page = doc.new_page()
        page.insert_text((72, 72), "Coastal wetlands absorb carbon", fontsize=12)
        page.insert_text((72, 120), "Second line of text", fontsize=12)
        doc.new_page()
        doc.save(str(path))
        doc.close()

        pages = load_pdf(path)
        assert len(pages) == 2
        texts = [e.text for e in pages[0].elements]
        assert "Coastal wetlands absorb carbon" in texts
        assert "Second line of text" in texts
        assert [e.index for e in pages[0].elements] == list(range(len(texts)))
        assert pages[1].elements == ()

    def test_load_pages_dispatches_on_suffix(self, tmp_path: Path) -> None:
        json_path = _write(tmp_path / "doc.json", [["only"]])
        assert load_pages(json_path)[0].elements[0].text == "only"

        pdf_path = tmp_path / "doc.PDF"
        doc = fitz.open()
        doc.new_page().insert_text((72, 72), "pdf text", fontsize=12)
        doc.save(str(pdf_path))
        doc.close()
        assert load_pages(pdf_path)[0].elements[0].text == "pdf text"
