"""Utility helpers for the AniRatio proxy."""

from __future__ import annotations

import dataclasses
import re
from typing import Any, Mapping


WHITESPACE_RE = re.compile(r"\s+")


def as_mapping(record: Any) -> Mapping[str, Any]:
    """Return a read-only mapping view for a provider-native record."""

    if isinstance(record, Mapping):
        return record
    if record is None:
        return {}
    model_dump = getattr(record, "model_dump", None)
    if callable(model_dump):
        dumped = model_dump()
        if isinstance(dumped, Mapping):
            return dumped
    if dataclasses.is_dataclass(record) and not isinstance(record, type):
        return dataclasses.asdict(record)
    try:
        return vars(record)
    except TypeError:
        return {}


def first_value(record: Any, *keys: str, default: Any = "") -> Any:
    """Return the first present, non-empty value for ``keys``."""

    data = as_mapping(record)
    for key in keys:
        value = data.get(key)
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    return default


def nested_value(record: Any, *path: str) -> Any:
    """Walk ``path`` through nested mappings, returning ``None`` when absent."""

    current: Any = record
    for key in path:
        current = as_mapping(current).get(key)
        if current is None:
            return None
    return current


def coerce_int(value: Any, *, default: int = 0, minimum: int | None = None) -> int:
    """Convert ``value`` to ``int`` falling back to ``default``."""

    if isinstance(value, bool):
        return default
    try:
        result = int(value)
    except (TypeError, ValueError, OverflowError):
        try:
            result = int(float(str(value).strip()))
        except (TypeError, ValueError, OverflowError):
            return default
    if minimum is not None and result < minimum:
        return default
    return result


def normalize_text(value: Any) -> str:
    """Collapse whitespace in ``value`` and strip the ends."""

    if value is None:
        return ""
    return WHITESPACE_RE.sub(" ", str(value)).strip()


CASE_INSENSITIVE_PARAMS = frozenset({"q"})


def build_cache_key(capability: str, **params: Any) -> str:
    """Return a deterministic cache key such as ``search:q=naruto``.

    Only free-text query parameters are case-folded; identifiers keep their
    case because native providers may treat ``AbC`` and ``abc`` as distinct.
    """

    parts = []
    for name in sorted(params):
        value = params[name]
        if isinstance(value, str):
            value = normalize_text(value)
            if name in CASE_INSENSITIVE_PARAMS:
                value = value.lower()
        parts.append(f"{name}={value}")
    if not parts:
        return capability
    return f"{capability}:{'&'.join(parts)}"
