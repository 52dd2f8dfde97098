"""Helpers for the condition / repair-status / cost triple.

Triples are stored as plain dicts with only the fields that were assessed.
Incoming triple patches are validated against the pydantic models so that a
typo in an enum value is rejected before it reaches the tree.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Type

from pydantic import BaseModel, ValidationError as PydanticValidationError

from fieldsurvey.logic.errors import InvalidPatchError
from fieldsurvey.logic.numeric_input import parse_number
from fieldsurvey.logic.patch_merge import prune_undefined
from fieldsurvey.models.assessment import AssessmentTriple, MaterialEntry


def _validate(patch: Mapping[str, Any] | None, model: Type[BaseModel]) -> Dict[str, Any]:
    if patch is None:
        return {}
    if not isinstance(patch, Mapping):
        raise InvalidPatchError("assessment patch must be an object")
    cleaned = prune_undefined(patch)
    try:
        parsed = model.model_validate(cleaned)
    except PydanticValidationError as e:
        raise InvalidPatchError(str(e)) from e
    return parsed.model_dump(by_alias=True, exclude_none=True)


def normalize_triple_patch(patch: Mapping[str, Any] | None) -> Dict[str, Any]:
    """Return a camelCase triple patch holding only provided fields."""
    return _validate(patch, AssessmentTriple)


def normalize_material_patch(patch: Mapping[str, Any] | None) -> Dict[str, Any]:
    """Triple patch plus ``effectiveAge``; malformed age text becomes 0."""
    if isinstance(patch, Mapping):
        patch = dict(patch)
        for key in ("effectiveAge", "effective_age"):
            if patch.get(key) is not None:
                patch[key] = parse_number(patch[key])
    return _validate(patch, MaterialEntry)


__all__ = [
    "normalize_triple_patch",
    "normalize_material_patch",
]
