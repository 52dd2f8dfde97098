"""Ordered list of repeatable equipment records (chillers, boilers, heaters).

Each record is ``{id, ...fields, assessment}``. Ids are generated on add,
never change, and are never handed out twice: every issued id is recorded in
``issued`` (persisted next to the list as ``unitIdsIssued``) and stays
reserved after its record is removed. Updates and removals with an
id that is not in the list are ignored: callers may still hold an id for a
moment after a removal.

The per-kind maximum is exposed as ``max_count`` / ``at_capacity`` for the
caller to enforce; ``add`` itself never rejects.
"""

from __future__ import annotations

import copy
import logging
import uuid
from typing import Any, Callable, Dict, List, Mapping, MutableSequence

from fieldsurvey.logic.numeric_input import coerce_numeric_fields
from fieldsurvey.logic.patch_merge import merge, prune_undefined
from fieldsurvey.logic.triple import normalize_triple_patch

logger = logging.getLogger(__name__)

NUMERIC_UNIT_FIELDS = frozenset(
    {"quantity", "capacity", "cfm", "age", "tonnage", "gallons", "yearInstalled", "amperage", "voltage"}
)

IdFactory = Callable[[str], str]


def default_unit_id(kind: str) -> str:
    return f"{kind}_{uuid.uuid4().hex}"


def _clean_unit_patch(patch: Mapping[str, Any] | None) -> Dict[str, Any]:
    if not patch:
        return {}
    cleaned = prune_undefined(patch)
    cleaned.pop("id", None)
    coerce_numeric_fields(cleaned, NUMERIC_UNIT_FIELDS)
    if "assessment" in cleaned:
        cleaned["assessment"] = normalize_triple_patch(cleaned["assessment"])
    return cleaned


class UnitList:
    def __init__(
        self,
        items: MutableSequence[Dict[str, Any]],
        *,
        issued: MutableSequence[str] | None = None,
        kind: str = "unit",
        max_count: int | None = None,
        id_factory: IdFactory | None = None,
    ) -> None:
        self._items = items
        self._issued = issued if issued is not None else []
        # Records loaded from an older snapshot still reserve their ids
        for item in items:
            if item.get("id") and item["id"] not in self._issued:
                self._issued.append(item["id"])
        self.kind = kind
        self.max_count = max_count
        self._id_factory = id_factory or default_unit_id

    @property
    def at_capacity(self) -> bool:
        return self.max_count is not None and len(self._items) >= self.max_count

    def _index(self, unit_id: str) -> int | None:
        for i, item in enumerate(self._items):
            if item.get("id") == unit_id:
                return i
        return None

    def _fresh_id(self) -> str:
        taken = set(self._issued)
        while True:
            candidate = self._id_factory(self.kind)
            if candidate not in taken:
                self._issued.append(candidate)
                return candidate

    def add(self, initial: Mapping[str, Any] | None = None) -> str:
        """Append a new record and return its generated id."""
        unit_id = self._fresh_id()
        record: Dict[str, Any] = {"id": unit_id, "assessment": {}}
        merge(record, _clean_unit_patch(initial))
        self._items.append(record)
        if self.max_count is not None and len(self._items) > self.max_count:
            logger.warning(
                "unit_list_over_capacity kind=%s count=%s max=%s", self.kind, len(self._items), self.max_count
            )
        logger.info("unit_added kind=%s id=%s", self.kind, unit_id)
        return unit_id

    def update(self, unit_id: str, patch: Mapping[str, Any] | None) -> bool:
        idx = self._index(unit_id)
        if idx is None:
            logger.debug("unit_update_ignored kind=%s id=%s", self.kind, unit_id)
            return False
        merge(self._items[idx], _clean_unit_patch(patch))
        return True

    def remove(self, unit_id: str) -> bool:
        idx = self._index(unit_id)
        if idx is None:
            return False
        del self._items[idx]
        logger.info("unit_removed kind=%s id=%s", self.kind, unit_id)
        return True

    def get(self, unit_id: str) -> Dict[str, Any] | None:
        idx = self._index(unit_id)
        return copy.deepcopy(self._items[idx]) if idx is not None else None

    def list(self) -> List[Dict[str, Any]]:
        return copy.deepcopy(list(self._items))

    def __len__(self) -> int:
        return len(self._items)


__all__ = ["UnitList", "NUMERIC_UNIT_FIELDS", "default_unit_id"]
