"""Assessment store endpoints.

Thin handlers over the ``Workspace`` held on ``app.state``. Every handler runs
on the event loop so debounced autosave timers and request handling never
touch the tree concurrently.
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, Query, Request, Response

from fieldsurvey.catalogs import catalog as catalog_ids
from fieldsurvey.http.problem import problem
from fieldsurvey.logic.section_node import normalize_section_patch
from fieldsurvey.logic.submission import submit
from fieldsurvey.logic.workspace import Workspace
from fieldsurvey.models.assessment import (
    ActiveAssessmentRequest,
    CreateAssessmentRequest,
    PhotoCreateRequest,
    PhotoStatusRequest,
    SelectionToggleRequest,
    UnitCreateRequest,
)

router = APIRouter()
logger = logging.getLogger(__name__)

SECTION_PATH = "/assessments/{assessment_id}/areas/{area}/sections/{section}"


def _workspace(request: Request) -> Workspace:
    return request.app.state.workspace


@router.post("/assessments", status_code=201, summary="Create assessment", tags=["Assessments"])
async def create_assessment(request: Request, body: CreateAssessmentRequest | None = Body(None)):
    ws = _workspace(request)
    aid = ws.tree.create_assessment(body.assessment_id if body else None)
    return ws.tree.snapshot(aid)


@router.get("/assessments", summary="List assessments", tags=["Assessments"])
async def list_assessments(request: Request):
    return {"assessments": _workspace(request).tree.summaries()}


@router.get("/assessments/{assessment_id}", summary="Get assessment snapshot", tags=["Assessments"])
async def get_assessment(request: Request, assessment_id: str):
    return _workspace(request).tree.snapshot(assessment_id)


@router.get("/active-assessment", summary="Get active assessment id", tags=["Assessments"])
async def get_active_assessment(request: Request):
    active = _workspace(request).tree.active_id
    if active is None:
        raise problem("no_active_assessment", "no assessment is active")
    return {"assessment_id": active}


@router.put("/active-assessment", summary="Switch active assessment", tags=["Assessments"])
async def put_active_assessment(request: Request, body: ActiveAssessmentRequest):
    ws = _workspace(request)
    ws.tree.set_active(body.assessment_id)
    return {"assessment_id": ws.tree.active_id}


# ----------------------------------------------------------------------
# Sections
# ----------------------------------------------------------------------


@router.get("/assessments/{assessment_id}/areas/{area}", summary="Read every section of a form area", tags=["Sections"])
async def get_area(request: Request, assessment_id: str, area: str):
    return _workspace(request).tree.area_view(assessment_id, area)


@router.get(SECTION_PATH, summary="Read section", tags=["Sections"])
async def get_section(request: Request, assessment_id: str, area: str, section: str, subsection: str | None = None):
    return _workspace(request).tree.section(assessment_id, area, section, subsection)


@router.patch(SECTION_PATH, summary="Merge a partial section patch", tags=["Sections"])
async def patch_section(
    request: Request,
    assessment_id: str,
    area: str,
    section: str,
    subsection: str | None = None,
    patch: Dict[str, Any] = Body(...),
):
    return _workspace(request).tree.update_section(assessment_id, area, section, patch, subsection)


@router.post(SECTION_PATH + "/selections/{field}", summary="Toggle a selection option", tags=["Sections"])
async def toggle_selection(
    request: Request,
    assessment_id: str,
    area: str,
    section: str,
    field: str,
    body: SelectionToggleRequest,
):
    selected = _workspace(request).tree.toggle_selection(
        assessment_id, area, section, field, body.option_id, body.present, body.subsection
    )
    return {"field": field, "selected": selected}


# ----------------------------------------------------------------------
# Materials
# ----------------------------------------------------------------------


@router.get(SECTION_PATH + "/materials", summary="List selected materials", tags=["Materials"])
async def list_materials(
    request: Request,
    assessment_id: str,
    area: str,
    section: str,
    catalog: str | None = None,
    subsection: str | None = None,
):
    entries = _workspace(request).tree.materials(assessment_id, area, section, catalog_ids(catalog), subsection)
    return {"materials": [{"material_id": mid, "entry": entry} for mid, entry in entries]}


@router.put(SECTION_PATH + "/materials/{material_id}", summary="Select material", tags=["Materials"])
async def select_material(
    request: Request,
    assessment_id: str,
    area: str,
    section: str,
    material_id: str,
    subsection: str | None = None,
    initial: Dict[str, Any] | None = Body(None),
):
    created = _workspace(request).tree.select_material(assessment_id, area, section, material_id, initial, subsection)
    return {"material_id": material_id, "created": created}


@router.patch(SECTION_PATH + "/materials/{material_id}", summary="Update material entry", tags=["Materials"])
async def update_material(
    request: Request,
    assessment_id: str,
    area: str,
    section: str,
    material_id: str,
    subsection: str | None = None,
    patch: Dict[str, Any] = Body(...),
):
    updated = _workspace(request).tree.update_material(assessment_id, area, section, material_id, patch, subsection)
    return {"material_id": material_id, "updated": updated}


@router.delete(SECTION_PATH + "/materials/{material_id}", status_code=204, summary="Deselect material", tags=["Materials"])
async def deselect_material(
    request: Request,
    assessment_id: str,
    area: str,
    section: str,
    material_id: str,
    subsection: str | None = None,
) -> Response:
    _workspace(request).tree.remove_material(assessment_id, area, section, material_id, subsection)
    return Response(status_code=204)


# ----------------------------------------------------------------------
# Units
# ----------------------------------------------------------------------


@router.get(SECTION_PATH + "/units", summary="List units", tags=["Units"])
async def list_units(request: Request, assessment_id: str, area: str, section: str):
    tree = _workspace(request).tree
    return {
        "units": tree.units(assessment_id, area, section),
        "capacity": tree.unit_capacity(assessment_id, area, section),
    }


@router.post(SECTION_PATH + "/units", status_code=201, summary="Add unit", tags=["Units"])
async def add_unit(request: Request, assessment_id: str, area: str, section: str, body: UnitCreateRequest | None = Body(None)):
    tree = _workspace(request).tree
    body = body or UnitCreateRequest()
    capacity = tree.unit_capacity(assessment_id, area, section, body.kind)
    if capacity["at_capacity"]:
        raise problem(
            "unit_cap_reached",
            f"section {section!r} already holds {capacity['count']} of {capacity['max']} units",
            max=capacity["max"],
        )
    unit_id = tree.add_unit(assessment_id, area, section, body.fields, body.kind)
    return {"unit_id": unit_id, "units": tree.units(assessment_id, area, section)}


@router.patch(SECTION_PATH + "/units/{unit_id}", summary="Update unit", tags=["Units"])
async def update_unit(
    request: Request,
    assessment_id: str,
    area: str,
    section: str,
    unit_id: str,
    patch: Dict[str, Any] = Body(...),
):
    updated = _workspace(request).tree.update_unit(assessment_id, area, section, unit_id, patch)
    return {"unit_id": unit_id, "updated": updated}


@router.delete(SECTION_PATH + "/units/{unit_id}", status_code=204, summary="Remove unit", tags=["Units"])
async def remove_unit(request: Request, assessment_id: str, area: str, section: str, unit_id: str) -> Response:
    _workspace(request).tree.remove_unit(assessment_id, area, section, unit_id)
    return Response(status_code=204)


# ----------------------------------------------------------------------
# Debounced edits
# ----------------------------------------------------------------------


@router.post(SECTION_PATH + "/edits", status_code=202, summary="Debounced section edit", tags=["Autosave"])
async def post_edit(request: Request, assessment_id: str, area: str, section: str, patch: Dict[str, Any] = Body(...)):
    # Reject a bad patch now instead of at commit time
    normalize_section_patch(patch)
    ws = _workspace(request)
    key = (assessment_id, area, section)
    bridge = ws.sessions.get(key)
    if bridge is None:
        bridge = ws.sessions.open_section(ws.tree, assessment_id, area, section)
    bridge.edit(patch)
    return {"state": bridge.state.value, "pending": bridge.pending_patch()}


@router.post(SECTION_PATH + "/edits/flush", summary="Commit pending section edits", tags=["Autosave"])
async def flush_edits(request: Request, assessment_id: str, area: str, section: str):
    ws = _workspace(request)
    bridge = ws.sessions.get((assessment_id, area, section))
    committed = bridge.flush() if bridge is not None else {}
    return {"committed": committed, "section": ws.tree.section(assessment_id, area, section)}


@router.delete(SECTION_PATH + "/edits", summary="Close the section's edit session", tags=["Autosave"])
async def close_edits(request: Request, assessment_id: str, area: str, section: str):
    dropped = _workspace(request).sessions.close((assessment_id, area, section))
    return {"dropped": dropped}


# ----------------------------------------------------------------------
# Photos, submission, persistence
# ----------------------------------------------------------------------


@router.get("/assessments/{assessment_id}/photos/count", summary="Photo count for a form step", tags=["Photos"])
async def photo_count(request: Request, assessment_id: str, form_area: str = Query(...), step: int = Query(0)):
    count = _workspace(request).photos(assessment_id).photo_count_for_step(form_area, step)
    return {"form_area": form_area, "step": step, "count": count}


@router.post("/assessments/{assessment_id}/photos", status_code=201, summary="Register photo metadata", tags=["Photos"])
async def add_photo(request: Request, assessment_id: str, body: PhotoCreateRequest):
    photo_id = _workspace(request).photos(assessment_id).add_photo(
        body.local_uri,
        form_area=body.form_area,
        step=body.step,
        field_name=body.field_name,
        notes=body.notes,
    )
    return {"photo_id": photo_id}


@router.get("/assessments/{assessment_id}/photos", summary="Photos of a form step", tags=["Photos"])
async def list_photos(request: Request, assessment_id: str, form_area: str = Query(...), step: int = Query(0)):
    return {"photos": _workspace(request).photos(assessment_id).photos_for_step(form_area, step)}


@router.get("/assessments/{assessment_id}/photos/summary", summary="Photo totals", tags=["Photos"])
async def photo_summary(request: Request, assessment_id: str):
    index = _workspace(request).photos(assessment_id)
    return {"total": index.total_count, "pendingUpload": index.pending_upload_count}


@router.put("/assessments/{assessment_id}/photos/{photo_id}/status", summary="Set photo upload status", tags=["Photos"])
async def set_photo_status(request: Request, assessment_id: str, photo_id: str, body: PhotoStatusRequest):
    status = body.upload_status.value
    if not _workspace(request).photos(assessment_id).set_upload_status(photo_id, status):
        raise problem("photo_not_found", f"no photo {photo_id!r} in assessment {assessment_id!r}")
    return {"photo_id": photo_id, "uploadStatus": status}


@router.delete("/assessments/{assessment_id}/photos/{photo_id}", status_code=204, summary="Remove photo", tags=["Photos"])
async def remove_photo(request: Request, assessment_id: str, photo_id: str) -> Response:
    if not _workspace(request).photos(assessment_id).remove_photo(photo_id):
        raise problem("photo_not_found", f"no photo {photo_id!r} in assessment {assessment_id!r}")
    return Response(status_code=204)


@router.post("/assessments/{assessment_id}/submit", summary="Submit assessment", tags=["Submission"])
async def submit_assessment(request: Request, assessment_id: str):
    ws = _workspace(request)
    result = submit(ws.tree, assessment_id, ws.submitter)
    return result.model_dump(exclude_none=True)


@router.post("/assessments/{assessment_id}/save", summary="Persist assessment snapshot", tags=["Persistence"])
async def save_snapshot(request: Request, assessment_id: str):
    snapshot = _workspace(request).save(assessment_id)
    return {"assessment_id": assessment_id, "lastModified": snapshot["lastModified"]}


@router.post("/assessments/{assessment_id}/restore", summary="Restore stored snapshot", tags=["Persistence"])
async def restore_snapshot(request: Request, assessment_id: str):
    ws = _workspace(request)
    if not ws.restore(assessment_id):
        raise problem("snapshot_not_found", f"no stored snapshot for assessment {assessment_id!r}")
    return ws.tree.snapshot(assessment_id)


__all__ = ["router"]
