"""Pydantic models for assessment values and request/response bodies.

Persisted nodes are plain dicts in camelCase (the shape external storage and
the form screens agree on). These models validate what goes into them and
describe the HTTP payloads.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Condition(str, Enum):
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


class RepairStatus(str, Enum):
    IR = "IR"  # immediate repair
    ST = "ST"  # short term
    RR = "RR"  # replacement reserve
    RM = "RM"  # routine maintenance
    INV = "INV"  # investigate
    NA = "NA"


class FormArea(str, Enum):
    PROJECT_SUMMARY = "projectSummary"
    SITE_GROUNDS = "siteGrounds"
    BUILDING_ENVELOPE = "buildingEnvelope"
    MECHANICAL_SYSTEMS = "mechanicalSystems"
    INTERIOR_CONDITIONS = "interiorConditions"


class AssessmentStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"


class AssessmentTriple(BaseModel):
    """Condition / repair status / repair cost; every field may be absent."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid", use_enum_values=True)

    condition: Condition | None = None
    repair_status: RepairStatus | None = Field(default=None, alias="repairStatus")
    amount_to_repair: str | None = Field(default=None, alias="amountToRepair")

    @field_validator("amount_to_repair", mode="before")
    @classmethod
    def amount_as_text(cls, v: Any) -> Any:
        # Cost is kept as typed text; numbers from JSON clients are stringified
        if isinstance(v, bool):
            return str(v).lower()
        if isinstance(v, (int, float)):
            return str(v)
        return v


class MaterialEntry(AssessmentTriple):
    effective_age: int | float | None = Field(default=None, alias="effectiveAge")


class SectionPatch(BaseModel):
    """Partial SectionNode. Unknown top-level keys are rejected."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    not_applicable: bool | None = Field(default=None, alias="NotApplicable")
    fields: Dict[str, Any] | None = None
    selections: Dict[str, List[str]] | None = None
    assessment: Dict[str, Any] | None = None
    subsections: Dict[str, Dict[str, Any]] | None = None


class CreateAssessmentRequest(BaseModel):
    assessment_id: str | None = None


class ActiveAssessmentRequest(BaseModel):
    assessment_id: str


class SelectionToggleRequest(BaseModel):
    option_id: str
    present: bool
    subsection: str | None = None


class UnitCreateRequest(BaseModel):
    kind: str | None = None
    fields: Dict[str, Any] = Field(default_factory=dict)


class UploadStatus(str, Enum):
    PENDING = "pending"
    UPLOADING = "uploading"
    COMPLETED = "completed"
    FAILED = "failed"


class PhotoCreateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    local_uri: str = Field(alias="localUri")
    form_area: str = Field(default="", alias="formType")
    step: int = Field(default=0, alias="formStep")
    field_name: str = Field(default="", alias="fieldName")
    notes: str = ""


class PhotoStatusRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    upload_status: UploadStatus = Field(alias="uploadStatus")


class SubmissionResult(BaseModel):
    success: bool
    error: str | None = None


__all__ = [
    "Condition",
    "RepairStatus",
    "FormArea",
    "AssessmentStatus",
    "AssessmentTriple",
    "MaterialEntry",
    "SectionPatch",
    "CreateAssessmentRequest",
    "ActiveAssessmentRequest",
    "SelectionToggleRequest",
    "UnitCreateRequest",
    "UploadStatus",
    "PhotoCreateRequest",
    "PhotoStatusRequest",
    "SubmissionResult",
]
