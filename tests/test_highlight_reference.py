"""Tests for scripts/highlight_reference.py CLI."""
from __future__ import annotations

import importlib.util
from pathlib import Path
from typing import Any

import orjson
import pytest

ML_BASICS = "機械学習の基礎について説明します。"


def _load_cli_module() -> Any:
    root = Path(__file__).resolve().parents[1]
    script_path = root / "scripts" / "highlight_reference.py"
    spec = importlib.util.spec_from_file_location("highlight_reference", script_path)
    assert spec is not None
    module = importlib.util.module_from_spec(spec)
    assert spec.loader is not None
    spec.loader.exec_module(module)
    return module


@pytest.fixture()
def cli() -> Any:
    return _load_cli_module()


@pytest.fixture()
def document(tmp_path: Path) -> Path:
    path = tmp_path / "doc.json"
    path.write_bytes(orjson.dumps({
        "pages": [
            ["はじめに", "本書の目的を述べます。"],
            ["第二章", ML_BASICS, "次の節では応用を扱います。"],
        ]
    }))
    return path


class TestHighlightReferenceCli:
    def test_found(self, cli: Any, document: Path, capsys: pytest.CaptureFixture[str]) -> None:
        code = cli.main(["--document", str(document), "--content", ML_BASICS])
        captured = capsys.readouterr()
        assert code == 0
        payload = orjson.loads(captured.out)
        assert payload["result"]["success"] is True
        assert payload["result"]["selections"][0]["page_index"] == 1
        assert payload["query"]["length"] == len(ML_BASICS)
        assert "Highlighted with 100% match" in captured.err

    def test_no_match(self, cli: Any, document: Path, capsys: pytest.CaptureFixture[str]) -> None:
        code = cli.main(["--document", str(document), "--content", "zzzz qqqq"])
        assert code == 1
        assert orjson.loads(capsys.readouterr().out)["result"]["success"] is False

    def test_missing_document(
        self, cli: Any, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        code = cli.main(["--document", str(tmp_path / "absent.json"), "--content", "x"])
        captured = capsys.readouterr()
        assert code == 2
        assert orjson.loads(captured.out)["status"] == "error"
        assert "Error:" in captured.err

    def test_bad_policy(
        self, cli: Any, document: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        policy = tmp_path / "policy.json"
        policy.write_bytes(orjson.dumps({"unknown": 1}))
        code = cli.main([
            "--document", str(document), "--content", ML_BASICS, "--policy", str(policy),
        ])
        assert code == 2
        capsys.readouterr()

    def test_references_then_store(
        self, cli: Any, document: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        chat = tmp_path / "chat.html"
        chat.write_text(
            "<chunk><url>https://example.org/a.pdf</url><content>無関係な引用</content></chunk>"
            f"<chunk><url>https://example.org/b.pdf</url><content>{ML_BASICS}</content></chunk>",
            encoding="utf-8",
        )
        store = tmp_path / "refs.duckdb"
        code = cli.main([
            "--document", str(document), "--references", str(chat), "--reference", "1",
            "--save-references", str(store),
        ])
        payload = orjson.loads(capsys.readouterr().out)
        assert code == 0
        assert payload["query"]["reference"] == {
            "url": "https://example.org/b.pdf", "label": "b.pdf",
        }

        code = cli.main(["--document", str(document), "--store", str(store), "--reference", "1"])
        payload = orjson.loads(capsys.readouterr().out)
        assert code == 0
        assert payload["query"]["content"] == ML_BASICS

    def test_reference_out_of_range(
        self, cli: Any, document: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        chat = tmp_path / "chat.html"
        chat.write_text("<p>nothing</p>", encoding="utf-8")
        code = cli.main(["--document", str(document), "--references", str(chat)])
        assert code == 2
        capsys.readouterr()

    def test_content_file(
        self, cli: Any, document: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        content = tmp_path / "q.txt"
        content.write_text(ML_BASICS + "\n", encoding="utf-8")
        code = cli.main(["--document", str(document), "--content-file", str(content)])
        assert code == 0
        capsys.readouterr()

    def test_output_file_matches_stdout(
        self, cli: Any, document: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        out = tmp_path / "results" / "hit.json"
        code = cli.main([
            "--document", str(document), "--content", ML_BASICS, "--output", str(out),
        ])
        captured = capsys.readouterr()
        assert code == 0
        assert orjson.loads(out.read_bytes()) == orjson.loads(captured.out)
        assert f"Wrote {out}" in captured.err
