"""Root aggregate: every assessment in the session, keyed by id.

Every operation takes the assessment id explicitly. The active id is only a
convenience pointer for consumers; switching it is a barrier that notifies
switch listeners (the autosave sessions) *before* the pointer moves, so a
pending commit for the previous assessment can never land on the new one.

Assessment record shape::

    {
        "id": "...",
        "status": "draft" | "submitted",
        "createdAt": "2024-01-01T00:00:00Z",
        "lastModified": "2024-01-01T00:00:00Z",
        "areas": {"<formArea>": {"<section>": <section node>}},
    }
"""

from __future__ import annotations

import copy
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Sequence, Tuple

from fieldsurvey.logic import events
from fieldsurvey.logic.errors import AssessmentNotFoundError, InvalidPatchError, UnknownFormAreaError
from fieldsurvey.logic.section_node import SectionNode
from fieldsurvey.logic.unit_list import IdFactory
from fieldsurvey.models.assessment import AssessmentStatus, FormArea

logger = logging.getLogger(__name__)

SwitchListener = Callable[[str | None, str | None], None]


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


def _split_path(subsection: str | Sequence[str] | None) -> Tuple[str, ...]:
    if subsection is None:
        return ()
    if isinstance(subsection, str):
        return tuple(p for p in subsection.split(".") if p)
    return tuple(subsection)


class AssessmentTree:
    def __init__(
        self,
        *,
        unit_caps: Mapping[str, int] | None = None,
        default_unit_cap: int | None = 3,
        unit_id_factory: IdFactory | None = None,
        clock: Callable[[], str] = _utc_now,
    ) -> None:
        self._by_id: Dict[str, Dict[str, Any]] = {}
        self._active_id: str | None = None
        self._unit_caps = dict(unit_caps or {})
        self._default_unit_cap = default_unit_cap
        self._unit_id_factory = unit_id_factory
        self._clock = clock
        self._switch_listeners: List[SwitchListener] = []

    # ------------------------------------------------------------------
    # Assessment lifecycle
    # ------------------------------------------------------------------

    @property
    def active_id(self) -> str | None:
        return self._active_id

    def ids(self) -> List[str]:
        return list(self._by_id.keys())

    def exists(self, assessment_id: str) -> bool:
        return assessment_id in self._by_id

    def add_switch_listener(self, listener: SwitchListener) -> None:
        self._switch_listeners.append(listener)

    def create_assessment(self, assessment_id: str | None = None, *, activate: bool = True) -> str:
        """Create an assessment (or reuse an existing id) and optionally activate it."""
        aid = assessment_id or str(uuid.uuid4())
        if aid not in self._by_id:
            now = self._clock()
            self._by_id[aid] = {
                "id": aid,
                "status": AssessmentStatus.DRAFT.value,
                "createdAt": now,
                "lastModified": now,
                "areas": {},
            }
            events.publish(events.ASSESSMENT_CREATED, {"assessment_id": aid})
        if activate:
            self.set_active(aid)
        return aid

    def set_active(self, assessment_id: str | None) -> None:
        """Switch the active assessment.

        Listeners run first with ``(previous, new)`` so in-flight autosave
        sessions for ``previous`` are torn down before the pointer moves.
        """
        if assessment_id is not None and assessment_id not in self._by_id:
            raise AssessmentNotFoundError(assessment_id)
        previous = self._active_id
        if previous == assessment_id:
            return
        for listener in list(self._switch_listeners):
            listener(previous, assessment_id)
        self._active_id = assessment_id
        events.publish(events.ASSESSMENT_SWITCHED, {"from": previous, "to": assessment_id})

    def _assessment(self, assessment_id: str) -> Dict[str, Any]:
        try:
            return self._by_id[assessment_id]
        except KeyError:
            raise AssessmentNotFoundError(assessment_id) from None

    def _touch(self, assessment: Dict[str, Any]) -> None:
        assessment["lastModified"] = self._clock()

    def snapshot(self, assessment_id: str) -> Dict[str, Any]:
        return copy.deepcopy(self._assessment(assessment_id))

    def summaries(self) -> List[Dict[str, Any]]:
        return [
            {
                "id": a["id"],
                "status": a["status"],
                "createdAt": a["createdAt"],
                "lastModified": a["lastModified"],
                "active": a["id"] == self._active_id,
            }
            for a in self._by_id.values()
        ]

    def load_snapshot(self, snapshot: Mapping[str, Any], *, activate: bool = False) -> str:
        """Rehydrate an assessment from its persisted shape (replaces same id)."""
        aid = snapshot.get("id")
        if not isinstance(aid, str) or not aid:
            raise InvalidPatchError("snapshot requires a non-empty 'id'")
        record = copy.deepcopy(dict(snapshot))
        record.setdefault("status", AssessmentStatus.DRAFT.value)
        record.setdefault("createdAt", self._clock())
        record.setdefault("lastModified", record["createdAt"])
        record.setdefault("areas", {})
        self._by_id[aid] = record
        if activate:
            self.set_active(aid)
        return aid

    def mark_submitted(self, assessment_id: str) -> None:
        assessment = self._assessment(assessment_id)
        assessment["status"] = AssessmentStatus.SUBMITTED.value
        self._touch(assessment)

    # ------------------------------------------------------------------
    # Section addressing
    # ------------------------------------------------------------------

    def _node(
        self,
        assessment_id: str,
        area: str,
        section: str,
        subsection: str | Sequence[str] | None = None,
    ) -> Tuple[Dict[str, Any], SectionNode]:
        assessment = self._assessment(assessment_id)
        try:
            area_key = FormArea(area).value
        except ValueError:
            raise UnknownFormAreaError(area) from None
        if not isinstance(section, str) or not section.strip():
            raise InvalidPatchError("section name must be a non-empty string")
        sections = assessment["areas"].setdefault(area_key, {})
        node = SectionNode(sections.setdefault(section, {}))
        return assessment, node.descend(_split_path(subsection))

    def area_view(self, assessment_id: str, area: str) -> Dict[str, Any]:
        assessment = self._assessment(assessment_id)
        try:
            area_key = FormArea(area).value
        except ValueError:
            raise UnknownFormAreaError(area) from None
        return copy.deepcopy(assessment["areas"].get(area_key, {}))

    def section(
        self,
        assessment_id: str,
        area: str,
        section: str,
        subsection: str | Sequence[str] | None = None,
    ) -> Dict[str, Any]:
        """Read a section (an empty node is created on first read)."""
        _, node = self._node(assessment_id, area, section, subsection)
        return node.snapshot()

    def update_section(
        self,
        assessment_id: str,
        area: str,
        section: str,
        patch: Mapping[str, Any] | None,
        subsection: str | Sequence[str] | None = None,
    ) -> Dict[str, Any]:
        """Merge a partial patch into a section and return the updated node."""
        assessment, node = self._node(assessment_id, area, section, subsection)
        applied = node.apply_patch(patch)
        if applied:
            self._touch(assessment)
            events.publish(
                events.SECTION_UPDATED,
                {
                    "assessment_id": assessment_id,
                    "area": area,
                    "section": section,
                    "subsection": subsection,
                    "keys": sorted(applied.keys()),
                },
            )
        return node.snapshot()

    def set_not_applicable(
        self,
        assessment_id: str,
        area: str,
        section: str,
        value: bool,
        subsection: str | Sequence[str] | None = None,
    ) -> None:
        assessment, node = self._node(assessment_id, area, section, subsection)
        node.set_not_applicable(value)
        self._touch(assessment)

    def toggle_selection(
        self,
        assessment_id: str,
        area: str,
        section: str,
        field: str,
        option_id: str,
        present: bool,
        subsection: str | Sequence[str] | None = None,
    ) -> List[str]:
        assessment, node = self._node(assessment_id, area, section, subsection)
        updated = node.toggle_selection(field, option_id, present)
        self._touch(assessment)
        return updated

    # ------------------------------------------------------------------
    # Materials
    # ------------------------------------------------------------------

    def select_material(
        self,
        assessment_id: str,
        area: str,
        section: str,
        material_id: str,
        initial: Mapping[str, Any] | None = None,
        subsection: str | Sequence[str] | None = None,
    ) -> bool:
        assessment, node = self._node(assessment_id, area, section, subsection)
        changed = node.materials().select(material_id, initial)
        if changed:
            self._touch(assessment)
        return changed

    def update_material(
        self,
        assessment_id: str,
        area: str,
        section: str,
        material_id: str,
        patch: Mapping[str, Any] | None,
        subsection: str | Sequence[str] | None = None,
    ) -> bool:
        assessment, node = self._node(assessment_id, area, section, subsection)
        changed = node.materials().update(material_id, patch)
        if changed:
            self._touch(assessment)
        return changed

    def remove_material(
        self,
        assessment_id: str,
        area: str,
        section: str,
        material_id: str,
        subsection: str | Sequence[str] | None = None,
    ) -> bool:
        assessment, node = self._node(assessment_id, area, section, subsection)
        changed = node.materials().deselect(material_id)
        if changed:
            self._touch(assessment)
        return changed

    def materials(
        self,
        assessment_id: str,
        area: str,
        section: str,
        catalog: Sequence[str] | None = None,
        subsection: str | Sequence[str] | None = None,
    ) -> List[Tuple[str, Dict[str, Any]]]:
        _, node = self._node(assessment_id, area, section, subsection)
        return node.materials(catalog).entries()

    # ------------------------------------------------------------------
    # Units
    # ------------------------------------------------------------------

    def unit_cap(self, kind: str) -> int | None:
        return self._unit_caps.get(kind, self._default_unit_cap)

    def _unit_list(self, node: SectionNode, section: str, kind: str | None):
        resolved = kind or section
        return node.units(resolved, max_count=self.unit_cap(resolved), id_factory=self._unit_id_factory)

    def add_unit(
        self,
        assessment_id: str,
        area: str,
        section: str,
        initial: Mapping[str, Any] | None = None,
        kind: str | None = None,
    ) -> str:
        """Append a unit record; the cap is reported, never enforced here."""
        assessment, node = self._node(assessment_id, area, section)
        unit_id = self._unit_list(node, section, kind).add(initial)
        self._touch(assessment)
        return unit_id

    def update_unit(
        self,
        assessment_id: str,
        area: str,
        section: str,
        unit_id: str,
        patch: Mapping[str, Any] | None,
    ) -> bool:
        assessment, node = self._node(assessment_id, area, section)
        changed = self._unit_list(node, section, None).update(unit_id, patch)
        if changed:
            self._touch(assessment)
        return changed

    def remove_unit(self, assessment_id: str, area: str, section: str, unit_id: str) -> bool:
        assessment, node = self._node(assessment_id, area, section)
        changed = self._unit_list(node, section, None).remove(unit_id)
        if changed:
            self._touch(assessment)
        return changed

    def units(self, assessment_id: str, area: str, section: str) -> List[Dict[str, Any]]:
        _, node = self._node(assessment_id, area, section)
        return self._unit_list(node, section, None).list()

    def unit_capacity(self, assessment_id: str, area: str, section: str, kind: str | None = None) -> Dict[str, Any]:
        _, node = self._node(assessment_id, area, section)
        units = self._unit_list(node, section, kind)
        return {"count": len(units), "max": units.max_count, "at_capacity": units.at_capacity}


__all__ = ["AssessmentTree", "SwitchListener"]
