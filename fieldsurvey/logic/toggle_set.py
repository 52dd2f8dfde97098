"""Symmetric add/remove over an ordered list of option ids.

Checklist selections are stored as plain lists so the patch merger can replace
them whole. Callers compute the next list here and send it in a patch.
Unknown ids are kept as-is; catalog membership is not validated.
"""

from __future__ import annotations

from typing import Iterable, List


def toggle(current: Iterable[str] | None, option_id: str, present: bool) -> List[str]:
    """Return a new list with ``option_id`` present or absent.

    - present and already there: unchanged copy, no duplicate added
    - present and missing: appended (insertion order, not catalog order)
    - not present: every occurrence filtered out
    """
    items = list(current or [])
    if present:
        if option_id in items:
            return items
        items.append(option_id)
        return items
    return [item for item in items if item != option_id]


def dedupe(items: Iterable[str] | None) -> List[str]:
    """Drop repeated ids, keeping the first occurrence."""
    seen: set[str] = set()
    out: List[str] = []
    for item in items or []:
        if item in seen:
            continue
        seen.add(item)
        out.append(item)
    return out


__all__ = ["toggle", "dedupe"]
