"""DuckDB store for the most recently extracted reference list.

The list is replaced wholesale on every extraction; positions are the
zero-based order in which references appeared in the chat markup.
"""
from __future__ import annotations

import importlib
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from refspan.references import Reference

# Dynamic DuckDB import for pyright compatibility
_duckdb_mod = importlib.import_module("duckdb")

_SCHEMA_DDL = """
CREATE TABLE IF NOT EXISTS refs (
    position INTEGER PRIMARY KEY,
    url VARCHAR NOT NULL,
    content VARCHAR NOT NULL,
    stored_at TIMESTAMP DEFAULT current_timestamp
)
"""


class ReferenceStore:
    """Read/write interface to a references database file."""

    def __init__(
        self,
        db_path: Path | str,
        *,
        create_if_missing: bool = False,
    ) -> None:
        self._db_path = Path(db_path)
        if not self._db_path.exists() and not create_if_missing:
            raise FileNotFoundError(f"References database not found: {self._db_path}")
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn: Any = _duckdb_mod.connect(str(self._db_path))
        self._create_schema()

    def _create_schema(self) -> None:
        self._conn.execute(_SCHEMA_DDL)

    def __enter__(self) -> ReferenceStore:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def replace_references(self, refs: Iterable[Reference]) -> int:
        """Replace the stored list with ``refs``; returns the new count."""
        rows = [(i, ref.url, ref.content) for i, ref in enumerate(refs)]
        self._conn.execute("BEGIN TRANSACTION")
        try:
            self._conn.execute("DELETE FROM refs")
            if rows:
                self._conn.executemany(
                    "INSERT INTO refs (position, url, content) VALUES (?, ?, ?)", rows
                )
            self._conn.execute("COMMIT")
        except Exception:
            self._conn.execute("ROLLBACK")
            raise
        return len(rows)

    def list_references(self) -> list[Reference]:
        rows = self._conn.execute(
            "SELECT url, content FROM refs ORDER BY position"
        ).fetchall()
        return [Reference(url=url, content=content) for url, content in rows]

    def get_reference(self, position: int) -> Reference | None:
        row = self._conn.execute(
            "SELECT url, content FROM refs WHERE position = ?", [position]
        ).fetchone()
        if row is None:
            return None
        return Reference(url=row[0], content=row[1])

    def count(self) -> int:
        return int(self._conn.execute("SELECT count(*) FROM refs").fetchone()[0])

    def clear(self) -> None:
        self._conn.execute("DELETE FROM refs")

    def close(self) -> None:
        """Close the DuckDB connection."""
        if self._conn:
            self._conn.close()
            self._conn = None
