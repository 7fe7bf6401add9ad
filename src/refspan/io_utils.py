"""orjson-backed JSON file helpers.

``to_jsonable`` turns the pipeline's frozen dataclasses (and the tuples
inside them) into plain dicts and lists before serialization.
"""
from __future__ import annotations

import dataclasses
from pathlib import Path
from typing import Any, cast

import orjson


def load_json(path: Path) -> Any:
    return orjson.loads(path.read_bytes())


def save_json(obj: Any, path: Path, *, pretty: bool = True) -> None:
    """Write ``obj`` with sorted keys, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    opts = orjson.OPT_INDENT_2 | orjson.OPT_SORT_KEYS if pretty else orjson.OPT_SORT_KEYS
    path.write_bytes(orjson.dumps(to_jsonable(obj), option=opts))


def to_jsonable(obj: Any) -> Any:
    """Recursively convert dataclasses and tuples to JSON-native values.

    Properties such as ``MatchCandidate.adjusted_score`` are not included;
    only declared fields are.
    """
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {
            f.name: to_jsonable(getattr(obj, f.name))
            for f in dataclasses.fields(obj)
        }
    if isinstance(obj, dict):
        obj_dict = cast(dict[Any, Any], obj)
        return {str(k): to_jsonable(v) for k, v in obj_dict.items()}
    if isinstance(obj, (list, tuple, set, frozenset)):
        items = sorted(obj) if isinstance(obj, (set, frozenset)) else obj
        return [to_jsonable(v) for v in cast(list[Any], items)]
    if isinstance(obj, Path):
        return str(obj)
    return obj
