"""Functional test bootstrap for the field survey store.

Engine-level tests build an ``AssessmentTree`` with a deterministic clock and
unit ids. Debounce tests use ``ManualScheduler`` so timers fire only when a
test advances time. HTTP tests build the app around a file-backed SQLite
database under ``tmp_path`` and talk to it through FastAPI's TestClient.
"""

from __future__ import annotations

import itertools
from typing import Any, Callable, Dict, List, Mapping

import pytest
from fastapi.testclient import TestClient

from fieldsurvey.config import AppConfig, AutosaveConfig, DatabaseConfig, SubmissionConfig, UnitsConfig
from fieldsurvey.db.base import reset_engine
from fieldsurvey.logic import events
from fieldsurvey.logic.assessment_tree import AssessmentTree
from fieldsurvey.main import create_app
from fieldsurvey.models.assessment import SubmissionResult


class _ManualHandle:
    def __init__(self, scheduler: "ManualScheduler", due: float, callback: Callable[[], None]) -> None:
        self._scheduler = scheduler
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Timer source driven by ``advance(seconds)``."""

    def __init__(self) -> None:
        self.now = 0.0
        self._handles: List[_ManualHandle] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> _ManualHandle:
        handle = _ManualHandle(self, self.now + delay, callback)
        self._handles.append(handle)
        return handle

    @property
    def pending(self) -> int:
        return sum(1 for h in self._handles if not h.cancelled)

    def advance(self, seconds: float) -> None:
        self.now += seconds
        due = sorted((h for h in self._handles if not h.cancelled and h.due <= self.now), key=lambda h: h.due)
        for handle in due:
            self._handles.remove(handle)
            if not handle.cancelled:
                handle.callback()
        self._handles = [h for h in self._handles if not h.cancelled]


class RecordingSubmitter:
    """Collaborator double that records payloads and returns a canned result."""

    def __init__(self, result: SubmissionResult | None = None, raises: Exception | None = None) -> None:
        self.result = result or SubmissionResult(success=True)
        self.raises = raises
        self.calls: List[Dict[str, Any]] = []

    def submit_assessment(self, assessment: Mapping[str, Any]) -> SubmissionResult:
        self.calls.append(dict(assessment))
        if self.raises is not None:
            raise self.raises
        return self.result


def _fixed_clock() -> Callable[[], str]:
    ticks = itertools.count()
    return lambda: f"2024-01-01T00:00:{next(ticks) % 60:02d}Z"


def _counter_ids() -> Callable[[str], str]:
    seq = itertools.count(1)
    return lambda kind: f"{kind}_{next(seq)}"


@pytest.fixture(autouse=True)
def _clear_events():
    events.EVENT_BUFFER.clear()
    yield
    events.EVENT_BUFFER.clear()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def tree() -> AssessmentTree:
    return AssessmentTree(
        unit_caps={"chillers": 2},
        default_unit_cap=3,
        unit_id_factory=_counter_ids(),
        clock=_fixed_clock(),
    )


@pytest.fixture
def app_config(tmp_path) -> AppConfig:
    return AppConfig(
        database=DatabaseConfig(dsn=f"sqlite+pysqlite:///{tmp_path / 'store.db'}"),
        autosave=AutosaveConfig(debounce_ms=300),
        units=UnitsConfig(default_max=3, max_by_kind={"chillers": 2}),
        submission=SubmissionConfig(),
    )


@pytest.fixture
def submitter() -> RecordingSubmitter:
    return RecordingSubmitter()


@pytest.fixture
def client(app_config, submitter, scheduler):
    app = create_app(app_config, submitter=submitter, scheduler=scheduler)
    with TestClient(app) as c:
        c.scheduler = scheduler  # type: ignore[attr-defined]
        yield c
    reset_engine()


@pytest.fixture
def make_submitter():
    return RecordingSubmitter
