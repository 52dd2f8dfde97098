"""Keyed "select N of M materials" collection with per-entry assessments.

The collection is a view over a dict owned by the section node:
``{material_id: {condition?, repairStatus?, amountToRepair?, effectiveAge?}}``.
Presence of a key means the material is selected. Rendering order comes from
the external option catalog, not from insertion order.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterator, List, Mapping, MutableMapping, Sequence, Tuple

from fieldsurvey.logic.patch_merge import merge
from fieldsurvey.logic.triple import normalize_material_patch

logger = logging.getLogger(__name__)


class MaterialCollection:
    def __init__(
        self,
        store: MutableMapping[str, Dict[str, Any]],
        catalog: Sequence[str] | None = None,
    ) -> None:
        self._store = store
        self._catalog: Tuple[str, ...] = tuple(catalog or ())

    def is_selected(self, material_id: str) -> bool:
        return material_id in self._store

    def select(self, material_id: str, initial: Mapping[str, Any] | None = None) -> bool:
        """Select a material. Re-selecting keeps the existing assessment.

        Returns True when the material was newly selected.
        """
        if material_id in self._store:
            return False
        self._store[material_id] = merge({}, normalize_material_patch(initial))
        logger.info("material_selected id=%s", material_id)
        return True

    def update(self, material_id: str, patch: Mapping[str, Any] | None) -> bool:
        """Merge ``patch`` into a selected entry; unselected ids are ignored."""
        entry = self._store.get(material_id)
        if entry is None:
            logger.debug("material_update_ignored id=%s reason=not_selected", material_id)
            return False
        merge(entry, normalize_material_patch(patch))
        return True

    def deselect(self, material_id: str) -> bool:
        """Drop the entry and its assessment; unknown ids are ignored."""
        if self._store.pop(material_id, None) is None:
            return False
        logger.info("material_deselected id=%s", material_id)
        return True

    def toggle(self, material_id: str, present: bool) -> bool:
        if present:
            return self.select(material_id)
        return self.deselect(material_id)

    def clear(self) -> None:
        self._store.clear()

    def get(self, material_id: str) -> Dict[str, Any] | None:
        entry = self._store.get(material_id)
        return dict(entry) if entry is not None else None

    def ids(self) -> List[str]:
        return [mid for mid, _ in self.entries()]

    def entries(self) -> List[Tuple[str, Dict[str, Any]]]:
        """Selected entries, catalog order first, then unknown ids as inserted."""
        ordered: List[Tuple[str, Dict[str, Any]]] = []
        seen: set[str] = set()
        for mid in self._catalog:
            if mid in self._store and mid not in seen:
                ordered.append((mid, dict(self._store[mid])))
                seen.add(mid)
        for mid, entry in self._store.items():
            if mid not in seen:
                ordered.append((mid, dict(entry)))
        return ordered

    def __len__(self) -> int:
        return len(self._store)

    def __contains__(self, material_id: object) -> bool:
        return material_id in self._store

    def __iter__(self) -> Iterator[str]:
        return iter(self.ids())


__all__ = ["MaterialCollection"]
