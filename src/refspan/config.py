"""Tunable thresholds for the matching pipeline.

Every cutoff used by the matcher, selector and pruning pass lives on
``MatchPolicy`` so callers can override them from JSON instead of editing
constants. The defaults are empirically chosen; they are not claimed to be
optimal.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any

import orjson


@dataclass(frozen=True, slots=True)
class MatchPolicy:
    """Thresholds and sizes for one highlight run."""

    # Strategy selection by normalized query length
    exact_strategy_max_length: int = 30
    phrase_strategy_max_length: int = 100

    # Fingerprint pruning
    fingerprint_skip_similarity: float = 0.1
    fingerprint_skip_min_length: int = 1000

    # Phrase tiers
    min_phrase_weight: float = 0.3
    min_phrase_length_non_cjk: int = 15
    fuzzy_min_phrase_length: int = 15
    fuzzy_max_window: int = 300
    fuzzy_min_stride: int = 5
    fuzzy_stride_divisor: int = 6
    fuzzy_score_threshold: float = 0.4
    half_match_penalty: float = 0.7
    non_cjk_min_candidate_score: float = 0.5

    # Chunk alignment
    enable_chunk_alignment: bool = True
    chunk_unit: int = 8
    chunk_target_multiplier: int = 10
    chunk_link_threshold: float = 0.4
    chunk_escalation_score: float = 0.6

    # Selection
    best_page_max_candidates: int = 3
    best_page_min_score: float = 0.6
    other_pages_max: int = 2
    other_page_min_score: float = 0.7
    max_overlap_fraction: float = 0.5

    # Display padding around each selection
    cjk_context_ratio: float = 0.01
    cjk_context_max: int = 3
    non_cjk_context: int = 1

    @property
    def chunk_target_size(self) -> int:
        return self.chunk_unit * self.chunk_target_multiplier

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


DEFAULT_POLICY = MatchPolicy()

_RATIO_FIELDS = frozenset({
    "fingerprint_skip_similarity",
    "min_phrase_weight",
    "fuzzy_score_threshold",
    "half_match_penalty",
    "non_cjk_min_candidate_score",
    "chunk_link_threshold",
    "chunk_escalation_score",
    "best_page_min_score",
    "other_page_min_score",
    "max_overlap_fraction",
    "cjk_context_ratio",
})
_POSITIVE_INT_FIELDS = frozenset({
    "fuzzy_max_window",
    "fuzzy_min_stride",
    "fuzzy_stride_divisor",
    "chunk_unit",
    "chunk_target_multiplier",
})


def _coerce_field(name: str, expected: Any, value: Any) -> Any:
    """Coerce a JSON value to the field's declared type or raise."""
    if isinstance(expected, bool):
        if not isinstance(value, bool):
            raise ValueError(f"Policy field {name!r} must be a boolean, got {value!r}")
        return value
    if isinstance(expected, int):
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"Policy field {name!r} must be an integer, got {value!r}")
        if value < 0:
            raise ValueError(f"Policy field {name!r} must be non-negative, got {value}")
        if name in _POSITIVE_INT_FIELDS and value == 0:
            raise ValueError(f"Policy field {name!r} must be positive")
        return value
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"Policy field {name!r} must be a number, got {value!r}")
    number = float(value)
    if name in _RATIO_FIELDS and not 0.0 <= number <= 1.0:
        raise ValueError(f"Policy field {name!r} must be within [0, 1], got {number}")
    return number


def policy_from_dict(
    payload: dict[str, Any],
    *,
    base: MatchPolicy = DEFAULT_POLICY,
) -> MatchPolicy:
    """Apply overrides from ``payload`` on top of ``base``.

    Raises:
        ValueError: on unknown keys, wrongly typed values, or ratios
            outside [0, 1].
    """
    known = {f.name for f in fields(MatchPolicy)}
    unknown = sorted(k for k in payload if k not in known)
    if unknown:
        raise ValueError(f"Unknown policy field(s): {', '.join(unknown)}")

    overrides = {
        name: _coerce_field(name, getattr(base, name), value)
        for name, value in payload.items()
    }
    policy = replace(base, **overrides)
    if policy.exact_strategy_max_length > policy.phrase_strategy_max_length:
        raise ValueError(
            "exact_strategy_max_length must not exceed phrase_strategy_max_length"
        )
    return policy


def load_policy(path: Path) -> MatchPolicy:
    """Load a policy JSON file. Fields may be nested under ``"policy"``."""
    payload = orjson.loads(path.read_bytes())
    if isinstance(payload, dict) and isinstance(payload.get("policy"), dict):
        payload = payload["policy"]
    if not isinstance(payload, dict):
        raise ValueError(f"Policy payload must be a JSON object: {path}")
    return policy_from_dict(payload)
