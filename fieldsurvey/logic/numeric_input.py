"""Lenient parsing for numeric text typed into amount/quantity fields.

Inputs arrive as text from free-form fields. Anything that is not a number
falls back to ``0`` so a bad keystroke never blocks the rest of a patch.
"""

from __future__ import annotations

import math
from typing import Any


def parse_number(value: Any) -> int | float:
    """Return ``value`` as an int when integral, else a float; ``0`` on junk.

    - bool  -> 0 (a checkbox is not a quantity)
    - int/float -> as-is (NaN/inf -> 0)
    - str   -> stripped, thousands separators removed, then parsed
    - other -> 0
    """
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            return 0
        return int(value) if value.is_integer() else value
    if not isinstance(value, str):
        return 0
    text = value.strip().replace(",", "")
    if not text:
        return 0
    try:
        f = float(text)
    except ValueError:
        return 0
    if math.isnan(f) or math.isinf(f):
        return 0
    return int(f) if f.is_integer() else f


def coerce_numeric_fields(patch: dict, names: frozenset[str] | set[str]) -> dict:
    """Coerce the listed keys of ``patch`` in place; missing keys untouched."""
    for name in names:
        if name in patch and patch[name] is not None:
            patch[name] = parse_number(patch[name])
    return patch


__all__ = ["parse_number", "coerce_numeric_fields"]
