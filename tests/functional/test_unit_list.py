from __future__ import annotations

import itertools

from fieldsurvey.logic.unit_list import UnitList, default_unit_id


def _ids():
    seq = itertools.count(1)
    return lambda kind: f"{kind}_{next(seq)}"


def test_ids_are_unique_and_stable_across_updates():
    items: list = []
    units = UnitList(items, kind="boilers", max_count=3, id_factory=_ids())
    first = units.add({"capacity": "150"})
    second = units.add()
    units.update(first, {"capacity": "175", "id": "hijack"})
    assert [u["id"] for u in items] == [first, second]
    assert units.get(first)["capacity"] == 175


def test_taken_ids_are_never_reissued():
    candidates = iter(["chillers_same", "chillers_same", "chillers_other"])
    units = UnitList([], kind="chillers", id_factory=lambda kind: next(candidates))
    assert units.add() == "chillers_same"
    assert units.add() == "chillers_other"


def test_removed_ids_are_never_reissued():
    candidates = iter(["chillers_1", "chillers_1", "chillers_2"])
    items: list = []
    issued: list = []
    units = UnitList(items, issued=issued, kind="chillers", id_factory=lambda kind: next(candidates))
    first = units.add()
    assert units.remove(first)
    second = units.add()
    assert (first, second) == ("chillers_1", "chillers_2")
    assert issued == ["chillers_1", "chillers_2"]
    assert units.update(first, {"capacity": 1}) is False
    assert units.remove(first) is False
    assert [u["id"] for u in items] == ["chillers_2"]


def test_ids_of_loaded_records_are_reserved():
    candidates = iter(["boilers_7", "boilers_8"])
    issued: list = []
    loaded = [{"id": "boilers_7", "assessment": {}}]
    units = UnitList(loaded, issued=issued, kind="boilers", id_factory=lambda kind: next(candidates))
    assert units.add() == "boilers_8"
    assert issued == ["boilers_7", "boilers_8"]


def test_third_add_succeeds_and_reports_capacity():
    units = UnitList([], kind="chillers", max_count=2, id_factory=_ids())
    units.add()
    units.add()
    assert units.at_capacity
    third = units.add()
    assert len(units) == 3
    assert units.get(third) is not None


def test_unknown_ids_are_ignored():
    units = UnitList([], kind="boilers", id_factory=_ids())
    assert units.update("boilers_99", {"capacity": 1}) is False
    assert units.remove("boilers_99") is False
    assert units.list() == []


def test_unit_assessment_is_validated_and_numeric_fields_coerced():
    units = UnitList([], kind="waterHeaters", id_factory=_ids())
    uid = units.add({"gallons": "80", "assessment": {"condition": "fair", "amountToRepair": 900}})
    assert units.get(uid) == {
        "id": uid,
        "gallons": 80,
        "assessment": {"condition": "fair", "amountToRepair": "900"},
    }


def test_list_returns_copies():
    units = UnitList([], kind="boilers", id_factory=_ids())
    uid = units.add()
    snapshot = units.list()
    snapshot[0]["assessment"]["condition"] = "poor"
    assert units.get(uid)["assessment"] == {}


def test_default_unit_id_carries_kind_prefix():
    assert default_unit_id("exhaustFans").startswith("exhaustFans_")
