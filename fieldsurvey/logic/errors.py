"""Domain errors raised by the assessment store.

Unknown unit and material ids are never errors (they are ignored by the
collections); these exceptions cover addressing mistakes that a caller must
hear about.
"""

from __future__ import annotations


class AssessmentStoreError(Exception):
    code = "ASSESSMENT_STORE_ERROR"


class AssessmentNotFoundError(AssessmentStoreError, KeyError):
    code = "ASSESSMENT_NOT_FOUND"

    def __init__(self, assessment_id: str) -> None:
        super().__init__(assessment_id)
        self.assessment_id = assessment_id

    def __str__(self) -> str:
        return f"assessment not found: {self.assessment_id}"


class UnknownFormAreaError(AssessmentStoreError, ValueError):
    code = "FORM_AREA_UNKNOWN"

    def __init__(self, area: str) -> None:
        super().__init__(area)
        self.area = area

    def __str__(self) -> str:
        return f"unknown form area: {self.area}"


class InvalidPatchError(AssessmentStoreError, ValueError):
    code = "PATCH_INVALID"


__all__ = [
    "AssessmentStoreError",
    "AssessmentNotFoundError",
    "UnknownFormAreaError",
    "InvalidPatchError",
]
