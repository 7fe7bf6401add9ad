#!/usr/bin/env python3
"""Locate a quoted passage in a document and report the element spans to mark.

The passage comes from --content, a text file, chat markup containing
<chunk><url>..</url><content>..</content></chunk> references, or a
references database written by an earlier --save-references run.

Usage:
    python3 scripts/highlight_reference.py --document paper.pdf \
      --content "機械学習の基礎について説明します。"

    # Pick the second PDF reference from a saved chat page and remember the list
    python3 scripts/highlight_reference.py --document doc.json \
      --references chat.html --reference 1 --save-references refs.duckdb

    # Re-use the stored list with a tuned policy
    python3 scripts/highlight_reference.py --document doc.json \
      --store refs.duckdb --reference 0 --policy policy.json \
      --output result.json --verbose

Structured JSON output goes to stdout; human messages go to stderr.
Exit codes: 0 highlight found, 1 no match, 2 input error.
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any

import orjson

from refspan.config import DEFAULT_POLICY, MatchPolicy, load_policy
from refspan.documents import load_pages
from refspan.io_utils import save_json, to_jsonable
from refspan.pipeline import highlight
from refspan.reference_store import ReferenceStore
from refspan.references import Reference, extract_references

log = logging.getLogger("highlight_reference")

EXIT_FOUND = 0
EXIT_NO_MATCH = 1
EXIT_INPUT_ERROR = 2


def dump_json(obj: object) -> None:
    sys.stdout.buffer.write(orjson.dumps(obj, option=orjson.OPT_INDENT_2))
    sys.stdout.buffer.write(b"\n")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Highlight a quoted passage in a PDF or JSON text document."
    )
    parser.add_argument(
        "--document", required=True, type=Path,
        help="Document to search (.pdf, or JSON with a 'pages' list)",
    )
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--content", help="Passage text to locate")
    source.add_argument("--content-file", type=Path, help="File holding the passage text")
    source.add_argument(
        "--references", type=Path,
        help="Chat markup file; the passage is taken from a PDF reference in it",
    )
    source.add_argument(
        "--store", type=Path,
        help="References database written by --save-references",
    )
    parser.add_argument(
        "--reference", type=int, default=0,
        help="Zero-based reference position for --references/--store (default: 0)",
    )
    parser.add_argument("--policy", type=Path, default=None, help="Policy override JSON")
    parser.add_argument(
        "--save-references", type=Path, default=None,
        help="Store references extracted from --references in this DuckDB file",
    )
    parser.add_argument(
        "--output", type=Path, default=None,
        help="Also write the JSON result to this file",
    )
    parser.add_argument("--verbose", action="store_true", help="Debug logging on stderr")
    return parser


def _pick(refs: list[Reference], position: int, origin: str) -> Reference:
    if not refs:
        raise ValueError(f"no PDF references found in {origin}")
    if not 0 <= position < len(refs):
        raise ValueError(
            f"reference {position} out of range ({len(refs)} available in {origin})"
        )
    return refs[position]


def resolve_content(args: argparse.Namespace) -> tuple[str, Reference | None]:
    """Passage text plus the reference it came from, if any."""
    if args.content is not None:
        return args.content, None
    if args.content_file is not None:
        if not args.content_file.exists():
            raise FileNotFoundError(f"Content file not found: {args.content_file}")
        return args.content_file.read_text(encoding="utf-8"), None
    if args.references is not None:
        if not args.references.exists():
            raise FileNotFoundError(f"References file not found: {args.references}")
        refs = extract_references(args.references.read_text(encoding="utf-8"))
        if args.save_references is not None:
            with ReferenceStore(args.save_references, create_if_missing=True) as store:
                saved = store.replace_references(refs)
            print(f"Saved {saved} reference(s) to {args.save_references}", file=sys.stderr)
        ref = _pick(refs, args.reference, str(args.references))
        return ref.content, ref
    with ReferenceStore(args.store) as store:
        ref = _pick(store.list_references(), args.reference, str(args.store))
    return ref.content, ref


def run(args: argparse.Namespace) -> tuple[int, dict[str, Any]]:
    policy: MatchPolicy = load_policy(args.policy) if args.policy else DEFAULT_POLICY
    content, ref = resolve_content(args)
    pages = load_pages(args.document)
    result = highlight(content, pages, policy)

    payload: dict[str, Any] = {
        "document": str(args.document),
        "query": {
            "content": content,
            "length": len(content),
            "reference": None if ref is None else {"url": ref.url, "label": ref.label},
        },
        "result": to_jsonable(result),
        "highlighted_elements": result.highlighted_elements,
    }
    print(result.status, file=sys.stderr)
    return (EXIT_FOUND if result.success else EXIT_NO_MATCH), payload


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        stream=sys.stderr,
    )
    try:
        code, payload = run(args)
    except (FileNotFoundError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        dump_json({"status": "error", "error": str(exc)})
        return EXIT_INPUT_ERROR
    if args.output is not None:
        save_json(payload, args.output)
        print(f"Wrote {args.output}", file=sys.stderr)
    dump_json(payload)
    return code


if __name__ == "__main__":
    sys.exit(main())
