from __future__ import annotations

import pytest

from fieldsurvey.logic.errors import InvalidPatchError
from fieldsurvey.logic.section_node import SectionNode, new_section_node, normalize_section_patch


def test_new_node_has_canonical_shape():
    data: dict = {}
    SectionNode(data)
    assert data == new_section_node()


def test_condition_then_repair_status_preserves_both():
    node = SectionNode({})
    node.apply_patch({"assessment": {"condition": "poor"}})
    node.apply_patch({"assessment": {"repairStatus": "RR"}})
    assert node.data["assessment"] == {"condition": "poor", "repairStatus": "RR"}


def test_not_applicable_keeps_nested_data():
    node = SectionNode({})
    node.apply_patch({"fields": {"acreage": "2"}, "selections": {"pavement": ["gravel"]}})
    node.materials().select("gravel", {"condition": "good"})
    node.set_not_applicable(True)
    assert node.not_applicable
    assert node.data["fields"] == {"acreage": 2}
    assert node.data["materials"] == {"gravel": {"condition": "good"}}
    node.apply_patch({"NotApplicable": False})
    assert node.data["selections"] == {"pavement": ["gravel"]}


def test_collection_keys_cannot_be_patched():
    node = SectionNode({})
    with pytest.raises(InvalidPatchError):
        node.apply_patch({"materials": {"gravel": {}}})
    with pytest.raises(InvalidPatchError):
        node.apply_patch({"units": []})
    with pytest.raises(InvalidPatchError):
        node.apply_patch({"unitIdsIssued": []})


def test_unknown_keys_and_bad_enums_are_rejected():
    with pytest.raises(InvalidPatchError):
        normalize_section_patch({"bogus": 1})
    with pytest.raises(InvalidPatchError):
        normalize_section_patch({"assessment": {"repairStatus": "SOON"}})


def test_selections_are_deduplicated():
    assert normalize_section_patch({"selections": {"curbing": ["stone", "stone", "asphalt"]}}) == {
        "selections": {"curbing": ["stone", "asphalt"]}
    }


def test_subsection_patch_merges_into_nested_node():
    node = SectionNode({})
    node.apply_patch({"subsections": {"gutters": {"assessment": {"condition": "fair"}}}})
    node.apply_patch({"subsections": {"gutters": {"fields": {"notes": "leaking"}}}})
    gutters = node.data["subsections"]["gutters"]
    assert gutters["assessment"] == {"condition": "fair"}
    assert gutters["fields"] == {"notes": "leaking"}
    assert gutters["NotApplicable"] is False


def test_toggle_selection_round_trip():
    node = SectionNode({})
    assert node.toggle_selection("pavement", "asphalt", True) == ["asphalt"]
    assert node.toggle_selection("pavement", "asphalt", False) == []
    assert node.selection("pavement") == []


def test_empty_patch_applies_nothing():
    data = new_section_node()
    assert SectionNode(data).apply_patch({"fields": None, "assessment": {"condition": None}}) == {}
    assert data == new_section_node()
