from __future__ import annotations

import pytest

from fieldsurvey.catalogs import PAVEMENT_OPTIONS
from fieldsurvey.logic import events
from fieldsurvey.logic.assessment_tree import AssessmentTree
from fieldsurvey.logic.errors import AssessmentNotFoundError, InvalidPatchError, UnknownFormAreaError


def test_create_assessment_activates_and_publishes(tree):
    aid = tree.create_assessment("A-1")
    assert tree.active_id == "A-1"
    snap = tree.snapshot(aid)
    assert snap["status"] == "draft"
    assert snap["areas"] == {}
    types = [e["type"] for e in events.get_buffered_events(clear=False)]
    assert types == [events.ASSESSMENT_CREATED, events.ASSESSMENT_SWITCHED]


def test_event_ring_keeps_only_the_most_recent_events(tree):
    tree.create_assessment("A")
    for n in range(events.EVENT_BUFFER_LIMIT + 10):
        tree.update_section("A", "siteGrounds", "pavement", {"fields": {"notes": f"rev {n}"}})
    buffered = events.get_buffered_events(clear=False)
    assert len(buffered) == events.EVENT_BUFFER_LIMIT
    assert all(e["type"] == events.SECTION_UPDATED for e in buffered)
    seqs = [e["seq"] for e in buffered]
    assert seqs == sorted(seqs)


def test_operations_address_assessments_explicitly(tree):
    tree.create_assessment("A")
    tree.create_assessment("B")
    assert tree.active_id == "B"
    tree.update_section("A", "siteGrounds", "pavement", {"fields": {"notes": "for A"}})
    assert tree.section("A", "siteGrounds", "pavement")["fields"] == {"notes": "for A"}
    assert tree.section("B", "siteGrounds", "pavement")["fields"] == {}


def test_unknown_assessment_and_area_raise(tree):
    tree.create_assessment("A")
    with pytest.raises(AssessmentNotFoundError):
        tree.section("missing", "siteGrounds", "pavement")
    with pytest.raises(UnknownFormAreaError):
        tree.section("A", "rooftops", "pavement")
    with pytest.raises(AssessmentNotFoundError):
        tree.set_active("missing")


def test_switch_listeners_run_before_pointer_moves(tree):
    seen = []
    tree.add_switch_listener(lambda prev, new: seen.append((prev, new, tree.active_id)))
    tree.create_assessment("A")
    tree.create_assessment("B")
    assert seen == [(None, "A", None), ("A", "B", "A")]


def test_update_section_touches_last_modified_only_when_applied(tree):
    tree.create_assessment("A")
    before = tree.snapshot("A")["lastModified"]
    tree.update_section("A", "siteGrounds", "pavement", {"fields": None})
    assert tree.snapshot("A")["lastModified"] == before
    tree.update_section("A", "siteGrounds", "pavement", {"assessment": {"condition": "good"}})
    assert tree.snapshot("A")["lastModified"] != before


def test_gravel_scenario_through_the_tree(tree):
    tree.create_assessment("A")
    tree.select_material("A", "siteGrounds", "pavement", "gravel")
    tree.update_material("A", "siteGrounds", "pavement", "gravel", {"condition": "poor", "repairStatus": "ST"})
    tree.select_material("A", "siteGrounds", "pavement", "asphalt")
    tree.select_material("A", "siteGrounds", "pavement", "gravel")
    entries = tree.materials("A", "siteGrounds", "pavement", PAVEMENT_OPTIONS)
    assert entries == [("gravel", {"condition": "poor", "repairStatus": "ST"}), ("asphalt", {})]


def test_subsection_path_addressing(tree):
    tree.create_assessment("A")
    tree.update_section("A", "buildingEnvelope", "roof", {"fields": {"type": "flat"}}, subsection="drainage.gutters")
    roof = tree.section("A", "buildingEnvelope", "roof")
    assert roof["subsections"]["drainage"]["subsections"]["gutters"]["fields"] == {"type": "flat"}


def test_unit_caps_are_reported_not_enforced(tree):
    tree.create_assessment("A")
    for _ in range(3):
        tree.add_unit("A", "mechanicalSystems", "chillers")
    capacity = tree.unit_capacity("A", "mechanicalSystems", "chillers")
    assert capacity == {"count": 3, "max": 2, "at_capacity": True}
    assert tree.unit_capacity("A", "mechanicalSystems", "boilers")["max"] == 3


def test_unit_updates_and_removals(tree):
    tree.create_assessment("A")
    uid = tree.add_unit("A", "mechanicalSystems", "boilers", {"capacity": "120"})
    assert uid == "boilers_1"
    assert tree.update_unit("A", "mechanicalSystems", "boilers", uid, {"assessment": {"condition": "fair"}})
    assert tree.units("A", "mechanicalSystems", "boilers")[0]["assessment"] == {"condition": "fair"}
    assert tree.remove_unit("A", "mechanicalSystems", "boilers", uid)
    assert tree.remove_unit("A", "mechanicalSystems", "boilers", uid) is False


def test_removed_unit_stays_gone_and_its_id_is_not_reused():
    candidates = iter(["boilers_1", "boilers_1", "boilers_2"])
    tree = AssessmentTree(unit_id_factory=lambda kind: next(candidates))
    tree.create_assessment("A")
    uid = tree.add_unit("A", "mechanicalSystems", "boilers")
    assert tree.remove_unit("A", "mechanicalSystems", "boilers", uid)

    assert tree.update_unit("A", "mechanicalSystems", "boilers", uid, {"capacity": "90"}) is False
    assert tree.add_unit("A", "mechanicalSystems", "boilers") == "boilers_2"
    assert [u["id"] for u in tree.units("A", "mechanicalSystems", "boilers")] == ["boilers_2"]
    assert tree.update_unit("A", "mechanicalSystems", "boilers", uid, {"capacity": "90"}) is False

    section = tree.section("A", "mechanicalSystems", "boilers")
    assert section["unitIdsIssued"] == ["boilers_1", "boilers_2"]
    with pytest.raises(InvalidPatchError):
        tree.update_section("A", "mechanicalSystems", "boilers", {"unitIdsIssued": []})


def test_toggle_selection_and_not_applicable(tree):
    tree.create_assessment("A")
    assert tree.toggle_selection("A", "siteGrounds", "curbing", "curbing", "stone", True) == ["stone"]
    tree.set_not_applicable("A", "siteGrounds", "curbing", True)
    node = tree.section("A", "siteGrounds", "curbing")
    assert node["NotApplicable"] is True
    assert node["selections"] == {"curbing": ["stone"]}


def test_load_snapshot_replaces_assessment(tree):
    tree.create_assessment("A")
    tree.update_section("A", "siteGrounds", "pavement", {"fields": {"notes": "old"}})
    snap = tree.snapshot("A")
    tree.update_section("A", "siteGrounds", "pavement", {"fields": {"notes": "new"}})
    tree.load_snapshot(snap)
    assert tree.section("A", "siteGrounds", "pavement")["fields"] == {"notes": "old"}
    with pytest.raises(InvalidPatchError):
        tree.load_snapshot({"areas": {}})


def test_summaries_flag_the_active_assessment(tree):
    tree.create_assessment("A")
    tree.create_assessment("B", activate=False)
    assert {s["id"]: s["active"] for s in tree.summaries()} == {"A": True, "B": False}
