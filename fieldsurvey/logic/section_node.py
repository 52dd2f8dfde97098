"""Composite section node: N/A flag, free-form fields, checklist selections,
an optional assessment triple, nested subsections and dynamic collections.

Persisted shape::

    {
        "NotApplicable": false,
        "fields": {...},
        "selections": {"<field>": ["<option id>", ...]},
        "assessment": {"condition"?, "repairStatus"?, "amountToRepair"?},
        "subsections": {"<name>": <section node>},   # optional
        "materials": {"<material id>": {...}},        # optional
        "units": [{"id": ..., ..., "assessment": {...}}],  # optional
        "unitIdsIssued": ["<unit id>", ...],              # with units
    }

Setting ``NotApplicable`` never clears anything below it; consumers hide the
nested editors but the data stays.
"""

from __future__ import annotations

import copy
from typing import Any, Dict, List, Mapping, MutableMapping, Sequence

from pydantic import ValidationError as PydanticValidationError

from fieldsurvey.logic.errors import InvalidPatchError
from fieldsurvey.logic.material_collection import MaterialCollection
from fieldsurvey.logic.numeric_input import coerce_numeric_fields
from fieldsurvey.logic.patch_merge import merge, prune_undefined
from fieldsurvey.logic.toggle_set import dedupe, toggle
from fieldsurvey.logic.triple import normalize_triple_patch
from fieldsurvey.logic.unit_list import IdFactory, UnitList
from fieldsurvey.models.assessment import SectionPatch

# Free-form fields that hold counts/amounts typed as text
NUMERIC_SECTION_FIELDS = frozenset(
    {
        "temperature",
        "acreage",
        "numberSignDown",
        "yearRenovated",
        "numberOfBuildings",
        "netSqFt",
        "numberOfUnits",
        "GSF",
        "numberOfVacantUnits",
        "yearBuilt",
        "amountOfParkingSpaces",
        "openLotSpaces",
        "carportSpaces",
        "garageSpaces",
        "regADASpaces",
        "vanSpaces",
        "missingADASigns",
        "missingADAVanSigns",
        "quantity",
        "effectiveAge",
    }
)


# Changed only through their own operations, never by a section patch
COLLECTION_KEYS = ("materials", "units", "unitIdsIssued")


def new_section_node() -> Dict[str, Any]:
    return {"NotApplicable": False, "fields": {}, "selections": {}, "assessment": {}}


def normalize_section_patch(patch: Mapping[str, Any] | None) -> Dict[str, Any]:
    """Validate a section patch and return it in persisted (camelCase) form.

    Only provided keys survive. The collections in ``COLLECTION_KEYS`` are
    rejected here: they change through their own operations so a stale array
    in a section patch can never overwrite them.
    """
    if patch is None:
        return {}
    if not isinstance(patch, Mapping):
        raise InvalidPatchError("section patch must be an object")
    for key in COLLECTION_KEYS:
        if key in patch:
            raise InvalidPatchError(f"'{key}' cannot be patched directly; use the collection operations")
    try:
        parsed = SectionPatch.model_validate(prune_undefined(patch))
    except PydanticValidationError as e:
        raise InvalidPatchError(str(e)) from e

    out: Dict[str, Any] = {}
    if parsed.not_applicable is not None:
        out["NotApplicable"] = parsed.not_applicable
    if parsed.fields:
        out["fields"] = coerce_numeric_fields(dict(parsed.fields), NUMERIC_SECTION_FIELDS)
    if parsed.selections:
        out["selections"] = {name: dedupe(ids) for name, ids in parsed.selections.items()}
    if parsed.assessment is not None:
        triple = normalize_triple_patch(parsed.assessment)
        if triple:
            out["assessment"] = triple
    if parsed.subsections:
        subs = {name: normalize_section_patch(sub) for name, sub in parsed.subsections.items()}
        out["subsections"] = {name: sub for name, sub in subs.items() if sub}
    return out


class SectionNode:
    """Operations over one persisted section dict (mutated in place)."""

    def __init__(self, data: MutableMapping[str, Any]) -> None:
        for key, value in new_section_node().items():
            data.setdefault(key, value)
        self._data = data

    @property
    def data(self) -> MutableMapping[str, Any]:
        return self._data

    @property
    def not_applicable(self) -> bool:
        return bool(self._data.get("NotApplicable", False))

    def snapshot(self) -> Dict[str, Any]:
        return copy.deepcopy(dict(self._data))

    def apply_patch(self, patch: Mapping[str, Any] | None) -> Dict[str, Any]:
        """Merge a validated patch; returns the normalized patch applied."""
        normalized = normalize_section_patch(patch)
        subsections = normalized.pop("subsections", None)
        merge(self._data, normalized)
        for name, sub_patch in (subsections or {}).items():
            self.subsection(name).apply_patch(sub_patch)
        if subsections:
            normalized["subsections"] = subsections
        return normalized

    def set_not_applicable(self, value: bool) -> None:
        self._data["NotApplicable"] = bool(value)

    def selection(self, field: str) -> List[str]:
        return list(self._data["selections"].get(field, []))

    def toggle_selection(self, field: str, option_id: str, present: bool) -> List[str]:
        updated = toggle(self._data["selections"].get(field), option_id, present)
        self._data["selections"][field] = updated
        return list(updated)

    def subsection(self, name: str) -> "SectionNode":
        """Return the named subsection, creating an empty one on first use."""
        subs = self._data.setdefault("subsections", {})
        node = subs.get(name)
        if not isinstance(node, MutableMapping):
            node = new_section_node()
            subs[name] = node
        return SectionNode(node)

    def descend(self, path: Sequence[str]) -> "SectionNode":
        node: SectionNode = self
        for name in path:
            node = node.subsection(name)
        return node

    def materials(self, catalog: Sequence[str] | None = None) -> MaterialCollection:
        return MaterialCollection(self._data.setdefault("materials", {}), catalog)

    def units(
        self,
        kind: str,
        *,
        max_count: int | None = None,
        id_factory: IdFactory | None = None,
    ) -> UnitList:
        return UnitList(
            self._data.setdefault("units", []),
            issued=self._data.setdefault("unitIdsIssued", []),
            kind=kind,
            max_count=max_count,
            id_factory=id_factory,
        )


__all__ = ["SectionNode", "new_section_node", "normalize_section_patch", "COLLECTION_KEYS", "NUMERIC_SECTION_FIELDS"]
