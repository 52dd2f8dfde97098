"""Central error mapping for the assessment API.

Single source of truth for mapping domain errors to problem+json codes and
HTTP statuses. Route modules import from here instead of hardcoding strings
or numbers.
"""

from __future__ import annotations

from typing import Dict

from fieldsurvey.logic.errors import (
    AssessmentNotFoundError,
    AssessmentStoreError,
    InvalidPatchError,
    UnknownFormAreaError,
)

ERROR_MAP: Dict[str, Dict[str, object]] = {
    "assessment_not_found": {"code": AssessmentNotFoundError.code, "status": 404, "title": "Assessment Not Found"},
    "form_area_unknown": {"code": UnknownFormAreaError.code, "status": 404, "title": "Unknown Form Area"},
    "patch_invalid": {"code": InvalidPatchError.code, "status": 422, "title": "Invalid Patch"},
    "unit_cap_reached": {"code": "UNIT_CAP_REACHED", "status": 409, "title": "Unit Limit Reached"},
    "no_active_assessment": {"code": "NO_ACTIVE_ASSESSMENT", "status": 404, "title": "No Active Assessment"},
    "snapshot_not_found": {"code": "SNAPSHOT_NOT_FOUND", "status": 404, "title": "Snapshot Not Found"},
    "photo_not_found": {"code": "PHOTO_NOT_FOUND", "status": 404, "title": "Photo Not Found"},
}


def entry_for(exc: AssessmentStoreError) -> Dict[str, object]:
    if isinstance(exc, AssessmentNotFoundError):
        return ERROR_MAP["assessment_not_found"]
    if isinstance(exc, UnknownFormAreaError):
        return ERROR_MAP["form_area_unknown"]
    if isinstance(exc, InvalidPatchError):
        return ERROR_MAP["patch_invalid"]
    return {"code": exc.code, "status": 400, "title": "Bad Request"}


__all__ = ["ERROR_MAP", "entry_for"]
