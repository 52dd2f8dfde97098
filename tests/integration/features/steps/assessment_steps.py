"""Step definitions for the assessment store feature.

Section references in the feature read ``"<formArea>/<section>"``.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Tuple

from behave import given, then, when


def _api(context, path: str) -> str:
    return f"{context.api_prefix}{path}"


def _split(ref: str) -> Tuple[str, str]:
    area, _, section = ref.partition("/")
    assert area and section, f"expected '<area>/<section>', got {ref!r}"
    return area, section


def _section_url(context, aid: str, ref: str) -> str:
    area, section = _split(ref)
    return _api(context, f"/assessments/{aid}/areas/{area}/sections/{section}")


def _json_text(context) -> Dict[str, Any]:
    return json.loads(context.text or "{}")


def _send(context, method: str, url: str, body: Any = None):
    if body is None:
        resp = context.client.request(method, url)
    else:
        resp = context.client.request(method, url, json=body)
    context.last_response = resp
    return resp


def _ok(resp) -> Dict[str, Any]:
    assert resp.status_code < 400, f"{resp.request.method} {resp.request.url} -> {resp.status_code} {resp.text}"
    return resp.json() if resp.content else {}


# ------------------
# Setup
# ------------------


@given('an assessment "{aid}" exists')
@when('I create assessment "{aid}"')
def step_create_assessment(context, aid: str) -> None:
    _ok(_send(context, "POST", _api(context, "/assessments"), {"assessment_id": aid}))


# ------------------
# Sections
# ------------------


@when('I patch section "{ref}" of "{aid}" with:')
def step_patch_section(context, ref: str, aid: str) -> None:
    _ok(_send(context, "PATCH", _section_url(context, aid, ref), _json_text(context)))


@then('the section "{ref}" of "{aid}" has assessment:')
def step_section_has_assessment(context, ref: str, aid: str) -> None:
    body = _ok(_send(context, "GET", _section_url(context, aid, ref)))
    assert body["assessment"] == _json_text(context), body["assessment"]


@then('the section "{ref}" of "{aid}" keeps selection "{field}" as "{options}"')
def step_section_keeps_selection(context, ref: str, aid: str, field: str, options: str) -> None:
    body = _ok(_send(context, "GET", _section_url(context, aid, ref)))
    assert body["NotApplicable"] is True
    assert body["selections"].get(field) == options.split(","), body["selections"]


@then('the section "{ref}" of "{aid}" has field "{name}" equal to "{value}"')
def step_section_field_equals(context, ref: str, aid: str, name: str, value: str) -> None:
    body = _ok(_send(context, "GET", _section_url(context, aid, ref)))
    assert body["fields"].get(name) == value, body["fields"]


# ------------------
# Materials
# ------------------


@when('I select material "{mid}" in "{ref}" of "{aid}"')
def step_select_material(context, mid: str, ref: str, aid: str) -> None:
    _ok(_send(context, "PUT", _section_url(context, aid, ref) + f"/materials/{mid}"))


@when('I update material "{mid}" in "{ref}" of "{aid}" with:')
def step_update_material(context, mid: str, ref: str, aid: str) -> None:
    body = _ok(_send(context, "PATCH", _section_url(context, aid, ref) + f"/materials/{mid}", _json_text(context)))
    assert body["updated"] is True


@then('materials of "{ref}" in "{aid}" ordered by "{catalog}" are "{expected}"')
def step_materials_ordered(context, ref: str, aid: str, catalog: str, expected: str) -> None:
    resp = context.client.get(_section_url(context, aid, ref) + "/materials", params={"catalog": catalog})
    ids = [m["material_id"] for m in _ok(resp)["materials"]]
    assert ids == expected.split(","), ids


@then('material "{mid}" in "{ref}" of "{aid}" has repair status "{status}"')
def step_material_repair_status(context, mid: str, ref: str, aid: str, status: str) -> None:
    listed = _ok(_send(context, "GET", _section_url(context, aid, ref) + "/materials"))["materials"]
    entry = next(m["entry"] for m in listed if m["material_id"] == mid)
    assert entry.get("repairStatus") == status, entry


# ------------------
# Units
# ------------------


@when('I add {count:d} units to "{ref}" of "{aid}"')
def step_add_units(context, count: int, ref: str, aid: str) -> None:
    for _ in range(count):
        _send(context, "POST", _section_url(context, aid, ref) + "/units", {})


@then("the response status is {status:d}")
def step_response_status(context, status: int) -> None:
    assert context.last_response is not None
    assert context.last_response.status_code == status, context.last_response.text


@then('the response code is "{code}"')
def step_response_code(context, code: str) -> None:
    assert context.last_response.headers.get("content-type", "").startswith("application/problem+json")
    assert context.last_response.json().get("code") == code


# ------------------
# Debounced edits
# ------------------


@when('I edit section "{ref}" of "{aid}" with:')
def step_edit_section(context, ref: str, aid: str) -> None:
    resp = _send(context, "POST", _section_url(context, aid, ref) + "/edits", _json_text(context))
    assert resp.status_code == 202, resp.text


@when('I flush edits of "{ref}" in "{aid}"')
def step_flush_edits(context, ref: str, aid: str) -> None:
    _ok(_send(context, "POST", _section_url(context, aid, ref) + "/edits/flush"))


# ------------------
# Submission
# ------------------


@when('I submit assessment "{aid}"')
def step_submit(context, aid: str) -> None:
    context.vars["submission"] = _ok(_send(context, "POST", _api(context, f"/assessments/{aid}/submit")))


@then('the submission result is failure with error "{error}"')
def step_submission_failed(context, error: str) -> None:
    assert context.vars["submission"] == {"success": False, "error": error}, context.vars["submission"]


@then('assessment "{aid}" has status "{status}"')
def step_assessment_status(context, aid: str, status: str) -> None:
    body = _ok(_send(context, "GET", _api(context, f"/assessments/{aid}")))
    assert body["status"] == status, body["status"]
