"""Partial patch merging for nested assessment nodes.

A patch is a partial mapping applied onto a persisted node. Only keys present
in the patch are written; nested records are merged field by field; arrays and
scalars overwrite whole. Values that are "undefined" (the ``UNSET`` sentinel
or ``None``, which is how JSON ``null`` arrives) are skipped, so a patch can
never clear a field by omission. Clearing uses a typed empty value instead
(``""``, ``[]``, ``0``, ``False``).

Merging is idempotent: applying the same patch twice yields the same node.
"""

from __future__ import annotations

import copy
from enum import Enum
from typing import Any, Dict, Mapping, MutableMapping


class _Unset:
    """Marker for a field that was never provided."""

    _instance: "_Unset | None" = None

    def __new__(cls) -> "_Unset":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False

    def __copy__(self) -> "_Unset":
        return self

    def __deepcopy__(self, memo: dict) -> "_Unset":
        return self


UNSET: Any = _Unset()


class ValueKind(str, Enum):
    """Tagged variant for patch values; drives merge dispatch."""

    UNDEFINED = "undefined"
    RECORD = "record"
    ARRAY = "array"
    SCALAR = "scalar"


def classify(value: Any) -> ValueKind:
    """Return the variant tag for a patch value.

    Strings and bytes are scalars even though they are sequences. Tuples and
    lists are arrays. Any mapping is a record.
    """
    if value is None or value is UNSET:
        return ValueKind.UNDEFINED
    if isinstance(value, Mapping):
        return ValueKind.RECORD
    if isinstance(value, (list, tuple)):
        return ValueKind.ARRAY
    return ValueKind.SCALAR


def merge(node: MutableMapping[str, Any], patch: Mapping[str, Any] | None) -> MutableMapping[str, Any]:
    """Merge ``patch`` into ``node`` in place and return ``node``.

    - RECORD: recurse into ``node[key]`` (created as ``{}`` when missing or
      not itself a record).
    - ARRAY: replaced whole with a shallow list copy; elements never merge.
    - SCALAR: overwritten.
    - UNDEFINED: skipped; the existing value (if any) is kept.
    """
    if patch is None:
        return node
    for key, value in patch.items():
        kind = classify(value)
        if kind is ValueKind.UNDEFINED:
            continue
        if kind is ValueKind.RECORD:
            current = node.get(key)
            if not isinstance(current, MutableMapping):
                current = {}
                node[key] = current
            merge(current, value)
        elif kind is ValueKind.ARRAY:
            node[key] = list(value)
        else:
            node[key] = value
    return node


def merged(node: Mapping[str, Any], patch: Mapping[str, Any] | None) -> Dict[str, Any]:
    """Pure variant of :func:`merge`; ``node`` is left untouched."""
    out: Dict[str, Any] = copy.deepcopy(dict(node))
    merge(out, patch)
    return out


def prune_undefined(patch: Mapping[str, Any]) -> Dict[str, Any]:
    """Return a copy of ``patch`` with undefined values removed at every depth.

    Records that become empty after pruning are dropped as well, so the
    outgoing patch only carries fields that were actually provided.
    """
    out: Dict[str, Any] = {}
    for key, value in patch.items():
        kind = classify(value)
        if kind is ValueKind.UNDEFINED:
            continue
        if kind is ValueKind.RECORD:
            inner = prune_undefined(value)
            if inner:
                out[key] = inner
            continue
        out[key] = list(value) if kind is ValueKind.ARRAY else value
    return out


def diff(baseline: Mapping[str, Any], current: Mapping[str, Any]) -> Dict[str, Any]:
    """Field-by-field difference of ``current`` against ``baseline``.

    Returns the minimal patch that, merged into ``baseline``, yields the
    defined parts of ``current``. Undefined fields in ``current`` are never
    emitted. Arrays compare as whole values.
    """
    out: Dict[str, Any] = {}
    for key, value in current.items():
        kind = classify(value)
        if kind is ValueKind.UNDEFINED:
            continue
        before = baseline.get(key, UNSET) if isinstance(baseline, Mapping) else UNSET
        if kind is ValueKind.RECORD:
            inner = diff(before if isinstance(before, Mapping) else {}, value)
            if inner:
                out[key] = inner
            continue
        if kind is ValueKind.ARRAY:
            if not isinstance(before, (list, tuple)) or list(before) != list(value):
                out[key] = list(value)
            continue
        if before is UNSET or before != value:
            out[key] = value
    return out


__all__ = [
    "UNSET",
    "ValueKind",
    "classify",
    "merge",
    "merged",
    "prune_undefined",
    "diff",
]
